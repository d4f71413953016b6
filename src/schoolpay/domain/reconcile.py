"""Record reconciliation: identity keys, field-wise merge and deduplication.

Records referring to the same real-world entity share an identity key. When
two records collide, every field is resolved independently: the value already
held is kept when non-empty, otherwise the incoming value is taken. The
result keeps first-seen order.
"""

from dataclasses import fields, replace
from typing import Any, Callable, Iterable, TypeVar

from schoolpay.domain.entities import Parent, Student, Transaction
from schoolpay.utils.text import first_non_empty, normalize_key

RecordT = TypeVar("RecordT", Parent, Student, Transaction)


def parent_key(parent: Parent) -> str:
    """Identity key of a parent: primary code, else secondary code, else name."""
    return normalize_key(first_non_empty(parent.code, parent.code2, parent.name))


def student_key(student: Student) -> str:
    """Identity key of a student: student code, else name plus parent code."""
    return normalize_key(
        first_non_empty(student.student_code, f"{student.name}-{student.parent_code}")
    )


def transaction_key(transaction: Transaction) -> str:
    """Identity key of a transaction: its trimmed receipt id."""
    return transaction.id.strip()


def _choose(current: Any, incoming: Any) -> Any:
    if isinstance(current, str):
        return current if current.strip() else incoming
    return current if current is not None else incoming


def merge_records(current: RecordT, incoming: RecordT) -> RecordT:
    """Merge two records of the same type, preferring non-empty current fields."""
    changes = {
        f.name: _choose(getattr(current, f.name), getattr(incoming, f.name))
        for f in fields(current)
    }
    return replace(current, **changes)


def dedupe(records: Iterable[RecordT], key: Callable[[RecordT], str]) -> list[RecordT]:
    """Collapse records sharing an identity key.

    Records with an empty key are dropped.

    Args:
        records: Records in priority order (earlier wins per field)
        key: Identity key function

    Returns:
        Deduplicated records in first-seen order
    """
    merged: dict[str, RecordT] = {}
    for record in records:
        record_key = key(record)
        if not record_key:
            continue
        existing = merged.get(record_key)
        merged[record_key] = record if existing is None else merge_records(existing, record)
    return list(merged.values())


def dedupe_parents(parents: Iterable[Parent]) -> list[Parent]:
    """Deduplicate parents by code, secondary code or name."""
    return dedupe(parents, parent_key)


def dedupe_students(students: Iterable[Student]) -> list[Student]:
    """Deduplicate students by student code, or name and parent code."""
    return dedupe(students, student_key)


def dedupe_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Deduplicate transactions by receipt id."""
    return dedupe(transactions, transaction_key)


def merge_into(
    incoming: Iterable[RecordT],
    existing: Iterable[RecordT],
    key: Callable[[RecordT], str],
) -> list[RecordT]:
    """Merge freshly imported records into a stored collection.

    Incoming records come first, so an upload's non-empty values win and the
    stored record only fills the gaps.
    """
    return dedupe([*incoming, *existing], key)


def count_new_keys(
    incoming: Iterable[RecordT],
    existing: Iterable[RecordT],
    key: Callable[[RecordT], str],
) -> int:
    """Count distinct identity keys in incoming that existing doesn't have."""
    known = {key(record) for record in existing}
    fresh = {key(record) for record in incoming}
    return len({k for k in fresh - known if k})
