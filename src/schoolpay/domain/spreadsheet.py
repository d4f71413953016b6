"""Spreadsheet reading for uploaded Excel and CSV files.

Only the first worksheet of a workbook is read. Two shapes are offered:

- ``read_grid``: every row as a list of cell values (used for payment
  gateway exports whose header row is not the first row)
- ``read_rows``: rows keyed by the first row's headers (used for parent
  and student lists)
"""

import csv
import io
import logging
import zipfile
from datetime import date, datetime
from pathlib import Path
from typing import Any

import xlrd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from schoolpay.domain.errors import NotFoundError, ValidationError, file_not_found, unsupported_file_type

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
LEGACY_EXCEL_SUFFIXES = {".xls"}
CSV_SUFFIXES = {".csv", ".txt"}


def cell_to_text(value: Any) -> str:
    """Render a cell value as text the way a spreadsheet displays it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _read_excel(path: Path) -> list[list[Any]]:
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _read_legacy_excel(path: Path) -> list[list[Any]]:
    book = xlrd.open_workbook(str(path))
    sheet = book.sheet_by_index(0)
    grid = []
    for row_index in range(sheet.nrows):
        row = []
        for cell in sheet.row(row_index):
            if cell.ctype == xlrd.XL_CELL_DATE:
                row.append(xlrd.xldate.xldate_as_datetime(cell.value, book.datemode))
            elif cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                row.append(None)
            else:
                row.append(cell.value)
        grid.append(row)
    return grid


def _read_csv(path: Path) -> list[list[Any]]:
    raw = path.read_bytes()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = raw.decode("cp1256")

    # Try to detect delimiter
    sample = text[:1024]
    try:
        delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
    except csv.Error:
        delimiter = ","

    return [row for row in csv.reader(io.StringIO(text), delimiter=delimiter)]


def read_grid(file_path: str | Path) -> list[list[Any]]:
    """Read the first worksheet of a spreadsheet as a list of rows.

    Args:
        file_path: Path to a .xlsx, .xlsm, .xls or .csv file

    Returns:
        List of rows, each a list of raw cell values

    Raises:
        NotFoundError: If the file doesn't exist
        ValidationError: If the file type is not supported or unreadable
    """
    path = Path(file_path)
    if not path.exists():
        raise NotFoundError(file_not_found(str(file_path)))

    suffix = path.suffix.lower()
    try:
        if suffix in EXCEL_SUFFIXES:
            grid = _read_excel(path)
        elif suffix in LEGACY_EXCEL_SUFFIXES:
            grid = _read_legacy_excel(path)
        elif suffix in CSV_SUFFIXES:
            grid = _read_csv(path)
        else:
            raise ValidationError(unsupported_file_type(str(file_path)))
    except ValidationError:
        raise
    except (OSError, ValueError, KeyError, zipfile.BadZipFile, InvalidFileException, xlrd.XLRDError) as e:
        raise ValidationError(f"Could not read spreadsheet '{path.name}': {e}") from e

    logger.debug("Read %d rows from %s", len(grid), path.name)
    return grid


def _unique_headers(header_row: list[Any]) -> list[str]:
    """Build header names, suffixing duplicates and naming blank columns."""
    headers = []
    seen: dict[str, int] = {}
    for index, cell in enumerate(header_row):
        name = cell_to_text(cell) or f"__EMPTY_{index}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        headers.append(name)
    return headers


def rows_from_grid(grid: list[list[Any]]) -> list[dict[str, Any]]:
    """Turn a grid into header-keyed rows, skipping fully blank rows."""
    if not grid:
        return []

    headers = _unique_headers(grid[0])
    rows = []
    for raw_row in grid[1:]:
        if all(cell_to_text(cell) == "" for cell in raw_row):
            continue
        row = {}
        for index, header in enumerate(headers):
            row[header] = raw_row[index] if index < len(raw_row) else None
        rows.append(row)
    return rows


def read_rows(file_path: str | Path) -> list[dict[str, Any]]:
    """Read the first worksheet as rows keyed by the header row."""
    return rows_from_grid(read_grid(file_path))
