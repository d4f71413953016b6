"""Domain model entities for schoolpay.

These are pure data classes representing the records the school office works
with, independent of how a storage backend lays them out. All text fields are
plain strings (empty when unknown) so that records can be merged field by
field without special-casing missing values.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Parent:
    """Parent (guardian) record."""

    name: str = ""
    code: str = ""
    code2: str = ""
    email: str = ""
    phone: str = ""
    secret_key: str = ""


@dataclass(frozen=True)
class Student:
    """Student record linked to a parent by code."""

    name: str = ""
    student_code: str = ""
    grade: str = ""
    parent_code: str = ""
    parent_name: str = ""
    external_id: str = ""
    birth_date: str = ""
    classification: str = ""


@dataclass(frozen=True)
class Transaction:
    """Payment transaction as exported by the payment gateway."""

    id: str
    customer: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    total_no_tax: str = "0.00"
    total: str = "0.00"
    date: str = ""
    date_value: Optional[datetime] = None
    status: str = ""
    branch: str = ""
    method: str = ""
    currency: str = ""
    provider: str = ""
    bank_reference_number: str = ""
    merchant_order_id: str = ""
    parent_code: str = ""
    parent_name: str = ""
    student_id: str = ""
    student_name: str = ""
    grade_name: str = ""
    item_name: str = ""
    item_amount: str = "0.00"
    quantity: str = "1"
    academic_year: str = ""
    fees: str = "0.00"
    discount: str = "0.00"


@dataclass(frozen=True)
class TransactionSnapshot:
    """Latest stored transactions collection."""

    transactions: tuple[Transaction, ...] = ()
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class SchoolSnapshot:
    """Latest stored parents and students collections."""

    parents: tuple[Parent, ...] = ()
    students: tuple[Student, ...] = ()
    updated_at: Optional[str] = None


class StatusLabel(str, Enum):
    """Canonical transaction status labels (as shown to the school office)."""

    SUCCESSFUL = "ناجحة"
    PENDING = "منتظرة"
    FAILED = "غير ناجحة"
    REFUNDED = "مستردة"
    CANCELLED = "ملغية"


class ImportMode(str, Enum):
    """How an uploaded transactions file combines with the stored ledger."""

    MERGE = "merge"
    REPLACE = "replace"


@dataclass(frozen=True)
class ImportResult:
    """Outcome of one spreadsheet import.

    ``imported`` and ``updated`` split the rows read into new and existing
    records; ``skipped`` counts rows dropped as unusable.
    """

    read: int
    imported: int
    updated: int
    total: int
    skipped: int = 0
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class LedgerTotals:
    """Totals shown above the transactions table."""

    count: int
    total_amount: Decimal
    successful_count: int
    successful_amount: Decimal


@dataclass
class ChildSummary:
    """One child of a parent with the amount paid for them."""

    name: str
    student_code: str
    grade: str
    paid_amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class ParentDetail:
    """Parent drill-down: children, transactions and payment totals."""

    parent: Parent
    codes: tuple[str, ...]
    transactions: tuple[Transaction, ...]
    children: tuple[ChildSummary, ...]
    total_paid: Decimal
    paid_children_count: int


@dataclass(frozen=True)
class ClassGroup:
    """Students sharing one grade label."""

    grade: str
    students: tuple[Student, ...]

    @property
    def count(self) -> int:
        return len(self.students)


@dataclass(frozen=True)
class DashboardReport:
    """KPI cards and chart series for the dashboard."""

    total_collected: Decimal
    transaction_count: int
    parent_count: int
    student_count: int
    online_count: int
    offline_count: int
    revenue_by_item: dict[str, Decimal] = field(default_factory=dict)
    payment_methods: dict[str, int] = field(default_factory=dict)
    monthly: dict[str, tuple[Decimal, int]] = field(default_factory=dict)
