"""Abstract snapshot store interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Optional, Sequence

# Import entities directly; domain services import this module
from schoolpay.domain.entities import (
    Parent,
    Student,
    Transaction,
    TransactionSnapshot,
    SchoolSnapshot,
)
from schoolpay.storage.mappers import (
    parent_to_dict,
    student_to_dict,
    transaction_to_dict,
    parents_from_dicts,
    students_from_dicts,
    transactions_from_dicts,
)


class SnapshotKind(Enum):
    """The two documents the dashboard persists, with their collection names."""

    TRANSACTIONS = ("transactions",)
    SCHOOL_CONTROL = ("parents", "students")

    @property
    def collections(self) -> tuple[str, ...]:
        return self.value


@dataclass(frozen=True)
class StoredSnapshot:
    """Raw JSON collections as last written, plus the write timestamp."""

    collections: dict[str, list[Any]] = field(default_factory=dict)
    updated_at: Optional[str] = None

    def get(self, name: str) -> list[Any]:
        return self.collections.get(name, [])


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """Return an ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    moment = moment or datetime.now(UTC)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def coerce_collections(kind: SnapshotKind, payload: Any) -> dict[str, list[Any]]:
    """Pick the kind's collections out of a payload; non-lists become empty."""
    payload = payload if isinstance(payload, dict) else {}
    return {
        name: payload[name] if isinstance(payload.get(name), list) else []
        for name in kind.collections
    }


class SnapshotStore(ABC):
    """Abstract snapshot store for schoolpay.

    A store keeps only the latest snapshot of each kind. Saving replaces the
    whole snapshot; there are no partial updates and no versioning.
    """

    @abstractmethod
    def load_snapshot(self, kind: SnapshotKind) -> StoredSnapshot:
        """Load the latest snapshot (empty collections when none was saved)."""
        pass

    @abstractmethod
    def save_snapshot(self, kind: SnapshotKind, collections: dict[str, list[Any]]) -> str:
        """Replace the snapshot wholesale. Returns the new updated_at timestamp."""
        pass

    def close(self) -> None:
        """Release backend resources."""

    # Typed helpers used by the domain services
    def load_transactions(self) -> TransactionSnapshot:
        """Load and hydrate the stored transactions."""
        snapshot = self.load_snapshot(SnapshotKind.TRANSACTIONS)
        return TransactionSnapshot(
            transactions=tuple(transactions_from_dicts(snapshot.get("transactions"))),
            updated_at=snapshot.updated_at,
        )

    def save_transactions(self, transactions: Sequence[Transaction]) -> str:
        """Overwrite the stored transactions."""
        return self.save_snapshot(
            SnapshotKind.TRANSACTIONS,
            {"transactions": [transaction_to_dict(txn) for txn in transactions]},
        )

    def load_school(self) -> SchoolSnapshot:
        """Load and hydrate the stored parents and students."""
        snapshot = self.load_snapshot(SnapshotKind.SCHOOL_CONTROL)
        return SchoolSnapshot(
            parents=tuple(parents_from_dicts(snapshot.get("parents"))),
            students=tuple(students_from_dicts(snapshot.get("students"))),
            updated_at=snapshot.updated_at,
        )

    def save_school(self, parents: Sequence[Parent], students: Sequence[Student]) -> str:
        """Overwrite the stored parents and students."""
        return self.save_snapshot(
            SnapshotKind.SCHOOL_CONTROL,
            {
                "parents": [parent_to_dict(parent) for parent in parents],
                "students": [student_to_dict(student) for student in students],
            },
        )
