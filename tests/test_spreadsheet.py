"""Tests for spreadsheet reading."""

import pytest
from datetime import datetime

from openpyxl import Workbook

from schoolpay.domain.errors import NotFoundError, ValidationError
from schoolpay.domain.spreadsheet import cell_to_text, read_grid, read_rows, rows_from_grid


def _write_workbook(path, rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    workbook.save(path)
    return path


def test_read_rows_from_xlsx(tmp_path):
    """Workbook rows are keyed by the first row's headers."""
    path = _write_workbook(
        tmp_path / "parents.xlsx",
        [["Parent ID", "Name"], ["P-1", "Mona"], [None, None], ["P-2", "Karim"]],
    )
    rows = read_rows(path)
    assert rows == [{"Parent ID": "P-1", "Name": "Mona"}, {"Parent ID": "P-2", "Name": "Karim"}]


def test_read_grid_keeps_typed_cells(tmp_path):
    """Numbers and dates keep their cell types."""
    path = _write_workbook(
        tmp_path / "grid.xlsx",
        [["Receipt No", "Date", "Total"], ["R-1", datetime(2024, 9, 5), 150]],
    )
    grid = read_grid(path)
    assert grid[1][1] == datetime(2024, 9, 5)
    assert grid[1][2] == 150


def test_read_csv_semicolon_delimited(tmp_path):
    """The CSV delimiter is detected."""
    path = tmp_path / "students.csv"
    path.write_text("Student ID;Name\nS-1;Omar\nS-2;Laila\n", encoding="utf-8")
    assert read_rows(path)[1] == {"Student ID": "S-2", "Name": "Laila"}


def test_read_csv_with_bom_and_arabic(tmp_path):
    """UTF-8 files with a byte order mark are read cleanly."""
    path = tmp_path / "parents.csv"
    path.write_text("كود ولي الامر,الاسم\nP-1,منى\n", encoding="utf-8-sig")
    assert read_rows(path) == [{"كود ولي الامر": "P-1", "الاسم": "منى"}]


def test_read_csv_windows_arabic_encoding(tmp_path):
    """Files that are not UTF-8 fall back to the Windows Arabic code page."""
    path = tmp_path / "parents.csv"
    path.write_bytes("Name,Code\nمنى,P-1\n".encode("cp1256"))
    assert read_rows(path) == [{"Name": "منى", "Code": "P-1"}]


def test_read_missing_file(tmp_path):
    """Missing files raise NotFoundError."""
    with pytest.raises(NotFoundError):
        read_grid(tmp_path / "missing.xlsx")


def test_read_unsupported_type(tmp_path):
    """Unknown extensions raise ValidationError."""
    path = tmp_path / "notes.pdf"
    path.write_bytes(b"%PDF")
    with pytest.raises(ValidationError) as excinfo:
        read_grid(path)
    assert "unsupported" in str(excinfo.value).lower()


def test_read_corrupt_workbook(tmp_path):
    """Unreadable workbooks raise ValidationError."""
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a zip file")
    with pytest.raises(ValidationError):
        read_grid(path)


def test_rows_from_grid_names_blank_and_duplicate_headers():
    """Blank headers get placeholder names and duplicates get suffixes."""
    rows = rows_from_grid([["Name", None, "Name"], ["a", "b", "c"]])
    assert rows == [{"Name": "a", "__EMPTY_1": "b", "Name_1": "c"}]


def test_cell_to_text():
    """Cells render the way a spreadsheet displays them."""
    assert cell_to_text(None) == ""
    assert cell_to_text(12.0) == "12"
    assert cell_to_text(12.5) == "12.5"
    assert cell_to_text("  x ") == "x"
