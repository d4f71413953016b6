"""Parent and student spreadsheet import service."""

import logging
from pathlib import Path
from typing import Any, Mapping

from schoolpay.domain.aliases import PARENT_ALIASES, STUDENT_ALIASES, get_value_by_aliases
from schoolpay.domain.entities import ImportResult, Parent, Student
from schoolpay.domain.errors import SaveFailedError, StorageError
from schoolpay.domain.reconcile import count_new_keys, merge_into, parent_key, student_key
from schoolpay.domain.spreadsheet import read_rows
from schoolpay.storage.base import SnapshotStore

logger = logging.getLogger(__name__)


def parent_from_row(row: Mapping[str, Any]) -> Parent:
    """Map one spreadsheet row to a Parent using header aliases."""
    values = {field: get_value_by_aliases(row, aliases) for field, aliases in PARENT_ALIASES.items()}
    first_name = values.pop("first_name")
    last_name = values.pop("last_name")

    split_name = f"{first_name} {last_name}".strip()
    # "Name" also matches "First Name"/"Last Name" headers; prefer the joined name then
    if not values["name"] or (split_name and values["name"] in (first_name, last_name)):
        values["name"] = split_name or values["name"]

    return Parent(**values)


def student_from_row(row: Mapping[str, Any]) -> Student:
    """Map one spreadsheet row to a Student using header aliases."""
    return Student(
        **{field: get_value_by_aliases(row, aliases) for field, aliases in STUDENT_ALIASES.items()}
    )


class SchoolImportService:
    """Service for importing parent and student lists."""

    def __init__(self, store: SnapshotStore):
        """Initialize school import service.

        Args:
            store: Snapshot store instance
        """
        self.store = store

    def _parse_parents(self, file_path: str | Path) -> tuple[list[Parent], int]:
        parents = []
        skipped = 0
        for row_num, row in enumerate(read_rows(file_path), start=2):
            parent = parent_from_row(row)
            if not (parent.name or parent.code):
                logger.debug("Row %d: skipped parent without name or code", row_num)
                skipped += 1
                continue
            parents.append(parent)
        return parents, skipped

    def _parse_students(self, file_path: str | Path) -> tuple[list[Student], int]:
        students = []
        skipped = 0
        for row_num, row in enumerate(read_rows(file_path), start=2):
            student = student_from_row(row)
            if not (student.name or student.student_code or student.parent_code):
                logger.debug("Row %d: skipped student without name, code or parent code", row_num)
                skipped += 1
                continue
            students.append(student)
        return students, skipped

    def read_parents(self, file_path: str | Path) -> list[Parent]:
        """Read parents from a spreadsheet, dropping rows with neither name nor code.

        Raises:
            NotFoundError: If the file doesn't exist
            ValidationError: If the file can't be read
        """
        return self._parse_parents(file_path)[0]

    def read_students(self, file_path: str | Path) -> list[Student]:
        """Read students from a spreadsheet, dropping rows without any identifying field.

        Raises:
            NotFoundError: If the file doesn't exist
            ValidationError: If the file can't be read
        """
        return self._parse_students(file_path)[0]

    def import_parents(self, file_path: str | Path) -> ImportResult:
        """Import parents and merge them into the stored directory.

        Args:
            file_path: Path to the uploaded spreadsheet

        Returns:
            ImportResult with the number of rows read and the new total

        Raises:
            NotFoundError: If the file doesn't exist
            ValidationError: If the file can't be read
            StorageError: If the snapshot can't be loaded or saved
        """
        parents, skipped = self._parse_parents(file_path)
        snapshot = self.store.load_school()
        merged = merge_into(parents, snapshot.parents, parent_key)
        try:
            updated_at = self.store.save_school(merged, snapshot.students)
        except StorageError as e:
            raise SaveFailedError(len(parents), e) from e

        new_count = count_new_keys(parents, snapshot.parents, parent_key)
        result = ImportResult(
            read=len(parents),
            imported=new_count,
            updated=len(parents) - new_count,
            skipped=skipped,
            total=len(merged),
            updated_at=updated_at,
        )
        logger.info(
            "Imported parents from %s: %d read, %d new, %d skipped, %d total",
            Path(file_path).name,
            result.read,
            result.imported,
            result.skipped,
            result.total,
        )
        return result

    def import_students(self, file_path: str | Path) -> ImportResult:
        """Import students and merge them into the stored directory.

        Args:
            file_path: Path to the uploaded spreadsheet

        Returns:
            ImportResult with the number of rows read and the new total

        Raises:
            NotFoundError: If the file doesn't exist
            ValidationError: If the file can't be read
            StorageError: If the snapshot can't be loaded or saved
        """
        students, skipped = self._parse_students(file_path)
        snapshot = self.store.load_school()
        merged = merge_into(students, snapshot.students, student_key)
        try:
            updated_at = self.store.save_school(snapshot.parents, merged)
        except StorageError as e:
            raise SaveFailedError(len(students), e) from e

        new_count = count_new_keys(students, snapshot.students, student_key)
        result = ImportResult(
            read=len(students),
            imported=new_count,
            updated=len(students) - new_count,
            skipped=skipped,
            total=len(merged),
            updated_at=updated_at,
        )
        logger.info(
            "Imported students from %s: %d read, %d new, %d skipped, %d total",
            Path(file_path).name,
            result.read,
            result.imported,
            result.skipped,
            result.total,
        )
        return result
