"""Parents and students directory domain service."""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from schoolpay.domain.entities import ChildSummary, ClassGroup, Parent, ParentDetail, Student, Transaction
from schoolpay.domain.errors import (
    NotFoundError,
    ValidationError,
    parent_not_found,
    student_not_found,
)
from schoolpay.domain.ledger import LedgerService, is_successful
from schoolpay.domain.reconcile import (
    dedupe_parents,
    dedupe_students,
    merge_into,
    parent_key,
    student_key,
)
from schoolpay.storage.base import SnapshotStore
from schoolpay.utils.amount_parser import parse_amount
from schoolpay.utils.text import normalize_key

logger = logging.getLogger(__name__)

UNGRADED = "-"


def _matches(values: Iterable[str], query: str) -> bool:
    return any(query in normalize_key(value) for value in values)


def search_parents(parents: Iterable[Parent], query: str) -> list[Parent]:
    """Keep parents whose name, codes, email or phone contain the query."""
    normalized_query = normalize_key(query)
    if not normalized_query:
        return list(parents)
    return [
        parent
        for parent in parents
        if _matches(
            (parent.name, parent.code, parent.code2, parent.email, parent.phone),
            normalized_query,
        )
    ]


def search_students(students: Iterable[Student], query: str) -> list[Student]:
    """Keep students whose name, code, grade or parent code contain the query."""
    normalized_query = normalize_key(query)
    if not normalized_query:
        return list(students)
    return [
        student
        for student in students
        if _matches(
            (student.name, student.student_code, student.grade, student.parent_code),
            normalized_query,
        )
    ]


def parent_codes(parent: Parent) -> tuple[str, ...]:
    """Normalized, unique codes a parent's payments may carry."""
    codes = [normalize_key(parent.code), normalize_key(parent.code2)]
    return tuple(dict.fromkeys(code for code in codes if code))


def summarize_children(
    codes: Sequence[str],
    students: Iterable[Student],
    transactions: Iterable[Transaction],
) -> list[ChildSummary]:
    """Build the per-child payment summary for one parent.

    Children come from the directory (students linked by parent code) and
    from the parent's transactions, keyed by student code or name. Only
    successful transactions add to a child's paid amount.

    Args:
        codes: The parent's normalized codes
        students: All students in the directory
        transactions: The parent's transactions

    Returns:
        Children sorted by paid amount (highest first), then name
    """
    by_key: dict[str, ChildSummary] = {}

    def ensure(name: str, student_code: str, grade: str) -> Optional[ChildSummary]:
        key = normalize_key(student_code or name)
        if not key:
            return None
        child = by_key.get(key)
        if child is None:
            child = ChildSummary(name=name or "-", student_code=student_code or "-", grade=grade or "-")
            by_key[key] = child
        else:
            if child.grade == "-" and grade:
                child.grade = grade
            if child.student_code == "-" and student_code:
                child.student_code = student_code
        return child

    for student in students:
        if normalize_key(student.parent_code) in codes:
            ensure(student.name, student.student_code, student.grade)

    for txn in transactions:
        child = ensure(txn.student_name, txn.student_id, txn.grade_name)
        if child is not None and is_successful(txn):
            child.paid_amount += parse_amount(txn.total)

    return sorted(by_key.values(), key=lambda child: (-child.paid_amount, child.name))


def group_by_grade(students: Iterable[Student]) -> list[ClassGroup]:
    """Group students into classes by grade label, sorted by grade."""
    groups: dict[str, list[Student]] = {}
    for student in students:
        groups.setdefault(student.grade.strip() or UNGRADED, []).append(student)
    return [
        ClassGroup(grade=grade, students=tuple(sorted(members, key=lambda s: s.name)))
        for grade, members in sorted(groups.items())
    ]


class DirectoryService:
    """Service for browsing and editing the parents and students directory."""

    def __init__(self, store: SnapshotStore):
        """Initialize directory service.

        Args:
            store: Snapshot store instance
        """
        self.store = store

    def list_parents(self, query: str = "") -> list[Parent]:
        """List stored parents, optionally filtered by a search query."""
        return search_parents(self.store.load_school().parents, query)

    def list_students(self, query: str = "") -> list[Student]:
        """List stored students, optionally filtered by a search query."""
        return search_students(self.store.load_school().students, query)

    def find_parent(self, key: str) -> Parent:
        """Find a parent by code, secondary code or name.

        Raises:
            NotFoundError: If no parent matches
        """
        wanted = normalize_key(key)
        if wanted:
            for parent in self.store.load_school().parents:
                if wanted in (parent_key(parent), *parent_codes(parent), normalize_key(parent.name)):
                    return parent
        raise NotFoundError(parent_not_found(key))

    def parent_detail(self, key: str) -> ParentDetail:
        """Build the drill-down view of one parent.

        Args:
            key: Parent code, secondary code or name

        Returns:
            ParentDetail with transactions, children and payment totals

        Raises:
            NotFoundError: If no parent matches
        """
        parent = self.find_parent(key)
        codes = parent_codes(parent)
        students = self.store.load_school().students
        transactions = [
            txn
            for txn in LedgerService(self.store).load_transactions()
            if codes and normalize_key(txn.parent_code) in codes
        ]
        children = summarize_children(codes, students, transactions) if codes else []
        return ParentDetail(
            parent=parent,
            codes=codes,
            transactions=tuple(transactions),
            children=tuple(children),
            total_paid=sum((child.paid_amount for child in children), Decimal("0")),
            paid_children_count=sum(1 for child in children if child.paid_amount > 0),
        )

    def classes(self) -> list[ClassGroup]:
        """Group stored students by grade."""
        return group_by_grade(self.store.load_school().students)

    def add_parent(self, parent: Parent) -> Parent:
        """Add a parent, merging with an existing record of the same identity.

        Raises:
            ValidationError: If the parent has neither name nor code
            StorageError: If the snapshot can't be saved
        """
        if not (parent.name.strip() or parent.code.strip()):
            raise ValidationError("Parent name or code is required")
        snapshot = self.store.load_school()
        parents = merge_into([parent], snapshot.parents, parent_key)
        self.store.save_school(parents, snapshot.students)
        logger.info("Added parent %s", parent.code or parent.name)
        return next(p for p in parents if parent_key(p) == parent_key(parent))

    def add_student(self, student: Student) -> Student:
        """Add a student, merging with an existing record of the same identity.

        Raises:
            ValidationError: If the student has no name
            StorageError: If the snapshot can't be saved
        """
        if not student.name.strip():
            raise ValidationError("Student name is required")
        snapshot = self.store.load_school()
        students = merge_into([student], snapshot.students, student_key)
        self.store.save_school(snapshot.parents, students)
        logger.info("Added student %s", student.student_code or student.name)
        return next(s for s in students if student_key(s) == student_key(student))

    def edit_parent(self, key: str, **changes: str) -> Parent:
        """Update fields of the parent whose identity key matches.

        Args:
            key: Current code, secondary code or name of the parent
            **changes: Field values to replace

        Raises:
            NotFoundError: If no parent matches
            StorageError: If the snapshot can't be saved
        """
        original = self.find_parent(key)
        updated = replace(original, **changes)
        snapshot = self.store.load_school()
        parents = dedupe_parents(updated if p == original else p for p in snapshot.parents)
        self.store.save_school(parents, snapshot.students)
        logger.info("Updated parent %s", updated.code or updated.name)
        return updated

    def edit_student(self, key: str, **changes: str) -> Student:
        """Update fields of the student whose code (or name) matches.

        Args:
            key: Current student code or name
            **changes: Field values to replace

        Raises:
            NotFoundError: If no student matches
            StorageError: If the snapshot can't be saved
        """
        wanted = normalize_key(key)
        snapshot = self.store.load_school()
        original = next(
            (
                s
                for s in snapshot.students
                if wanted and wanted in (student_key(s), normalize_key(s.student_code), normalize_key(s.name))
            ),
            None,
        )
        if original is None:
            raise NotFoundError(student_not_found(key))

        updated = replace(original, **changes)
        students = dedupe_students(updated if s == original else s for s in snapshot.students)
        self.store.save_school(snapshot.parents, students)
        logger.info("Updated student %s", updated.student_code or updated.name)
        return updated
