"""Transactions ledger domain service."""

import csv
import logging
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from openpyxl import Workbook

from schoolpay.domain.entities import LedgerTotals, StatusLabel, Transaction
from schoolpay.domain.errors import NotFoundError, StorageError, ValidationError
from schoolpay.domain.reconcile import dedupe_transactions
from schoolpay.storage.base import SnapshotKind, SnapshotStore
from schoolpay.storage.mappers import transactions_from_dicts
from schoolpay.utils.amount_parser import parse_amount
from schoolpay.utils.text import normalize_key, normalize_text

logger = logging.getLogger(__name__)

# Checked in order; failure wording ("unsuccessful", "غير ناجحة") must win over success
STATUS_KEYWORDS: list[tuple[StatusLabel, tuple[str, ...]]] = [
    (StatusLabel.FAILED, ("failed", "declined", "error", "unsuccessful", "unpaid", "غير ناجحة")),
    (StatusLabel.SUCCESSFUL, ("success", "paid", "ناجحة", "تمت")),
    (StatusLabel.PENDING, ("pending", "waiting", "منتظرة")),
    (StatusLabel.REFUNDED, ("refund", "مستردة")),
    (StatusLabel.CANCELLED, ("cancel", "ملغية")),
]

EXPORT_COLUMNS: list[tuple[str, str]] = [
    ("اسم العميل", "customer"),
    ("رقم العملية", "id"),
    ("التاريخ", "date"),
    ("الحالة", "status"),
    ("الفرع", "branch"),
    ("طريقة الدفع", "method"),
    ("كود ولي الأمر", "parent_code"),
    ("الاجمالي بدون ضريبه", "total_no_tax"),
    ("الخصم", "discount"),
    ("الرسوم المتأخرة", "fees"),
    ("الاجمالي", "total"),
]


class SearchField(str, Enum):
    """Fields the ledger search box can target."""

    TRANSACTION_ID = "transaction-id"
    CUSTOMER_NAME = "customer-name"
    CUSTOMER_PHONE = "customer-phone"
    CUSTOMER_EMAIL = "customer-email"
    PARENT_CODE = "parent-code"
    STUDENT_CODE = "student-code"
    PARENT_NAME = "parent-name"
    STUDENT_NAME = "student-name"
    BANK_REFERENCE = "bank-reference"
    MERCHANT_ORDER_ID = "merchant-order-id"


SEARCH_GETTERS: dict[SearchField, Callable[[Transaction], str]] = {
    SearchField.TRANSACTION_ID: lambda txn: txn.id,
    SearchField.CUSTOMER_NAME: lambda txn: f"{txn.customer} {txn.student_name} {txn.parent_name}".strip(),
    SearchField.CUSTOMER_PHONE: lambda txn: txn.customer_phone,
    SearchField.CUSTOMER_EMAIL: lambda txn: txn.customer_email,
    SearchField.PARENT_CODE: lambda txn: txn.parent_code,
    SearchField.STUDENT_CODE: lambda txn: txn.student_id,
    SearchField.PARENT_NAME: lambda txn: txn.parent_name,
    SearchField.STUDENT_NAME: lambda txn: txn.student_name,
    SearchField.BANK_REFERENCE: lambda txn: txn.bank_reference_number,
    SearchField.MERCHANT_ORDER_ID: lambda txn: txn.merchant_order_id,
}


def normalize_status(status: str) -> Optional[StatusLabel]:
    """Map a raw gateway status to a canonical label, or None if unknown."""
    value = normalize_text(status)
    if not value:
        return None
    for label, keywords in STATUS_KEYWORDS:
        if any(keyword in value for keyword in keywords):
            return label
    return None


def parse_status(value: str) -> StatusLabel:
    """Parse a status filter value given as a label or a keyword.

    Raises:
        ValidationError: If the value names no known status
    """
    for label in StatusLabel:
        if value.strip().lower() in (label.name.lower(), label.value):
            return label
    label = normalize_status(value)
    if label is None:
        raise ValidationError(
            f"Unknown status '{value}'. Supported: {', '.join(l.name.lower() for l in StatusLabel)}"
        )
    return label


def is_successful(transaction: Transaction) -> bool:
    """Return True for transactions counted as collected money."""
    return normalize_status(transaction.status) == StatusLabel.SUCCESSFUL


def filter_by_date(
    transactions: Iterable[Transaction],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[Transaction]:
    """Keep transactions within an inclusive day range.

    Transactions without a parsed date are dropped when any bound is set.
    """
    if start_date is None and end_date is None:
        return list(transactions)

    start = datetime.combine(start_date, time.min) if start_date else None
    end = datetime.combine(end_date, time.max) if end_date else None

    result = []
    for txn in transactions:
        if txn.date_value is None:
            continue
        if start is not None and txn.date_value < start:
            continue
        if end is not None and txn.date_value > end:
            continue
        result.append(txn)
    return result


def filter_by_status(
    transactions: Iterable[Transaction], statuses: Optional[Iterable[StatusLabel]] = None
) -> list[Transaction]:
    """Keep transactions whose normalized status is selected.

    Selecting every status (or passing None) keeps everything, including
    transactions whose status is not recognized.
    """
    transactions = list(transactions)
    if statuses is None:
        return transactions
    selected = set(statuses)
    if selected >= set(StatusLabel):
        return transactions
    return [txn for txn in transactions if normalize_status(txn.status) in selected]


def search_transactions(
    transactions: Iterable[Transaction], field: SearchField, query: str
) -> list[Transaction]:
    """Keep transactions whose chosen field contains the query (normalized)."""
    transactions = list(transactions)
    normalized_query = normalize_key(query)
    if not normalized_query:
        return transactions
    getter = SEARCH_GETTERS[field]
    return [txn for txn in transactions if normalized_query in normalize_key(getter(txn))]


def compute_totals(transactions: Sequence[Transaction]) -> LedgerTotals:
    """Compute the summary cards shown above the ledger."""
    successful = [txn for txn in transactions if is_successful(txn)]
    return LedgerTotals(
        count=len(transactions),
        total_amount=sum((parse_amount(txn.total) for txn in transactions), Decimal("0")),
        successful_count=len(successful),
        successful_amount=sum((parse_amount(txn.total) for txn in successful), Decimal("0")),
    )


class LedgerService:
    """Service for browsing the stored transactions ledger."""

    def __init__(self, store: SnapshotStore):
        """Initialize ledger service.

        Args:
            store: Snapshot store instance
        """
        self.store = store

    def load_transactions(self) -> list[Transaction]:
        """Load the stored ledger, deduplicated.

        When the stored document held duplicates or unusable entries, the
        cleaned ledger is saved back once.

        Raises:
            StorageError: If the ledger can't be loaded
        """
        snapshot = self.store.load_snapshot(SnapshotKind.TRANSACTIONS)
        raw = snapshot.get("transactions")
        transactions = dedupe_transactions(transactions_from_dicts(raw))

        if transactions and len(transactions) != len(raw):
            logger.info(
                "Cleaning stored ledger: %d stored entries, %d unique", len(raw), len(transactions)
            )
            try:
                self.store.save_transactions(transactions)
            except StorageError as e:
                logger.warning("Could not save cleaned ledger: %s", e)
        return transactions

    def get_transaction(self, transaction_id: str) -> Transaction:
        """Get one transaction by receipt id.

        Raises:
            NotFoundError: If no transaction has this id
        """
        wanted = transaction_id.strip()
        for txn in self.load_transactions():
            if txn.id == wanted:
                return txn
        raise NotFoundError(f"Transaction '{transaction_id}' not found")

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        statuses: Optional[Iterable[StatusLabel]] = None,
        search_field: SearchField = SearchField.TRANSACTION_ID,
        query: str = "",
    ) -> list[Transaction]:
        """List transactions with the ledger filters applied in order.

        Args:
            start_date: Optional first day (inclusive)
            end_date: Optional last day (inclusive)
            statuses: Optional status selection (None keeps all)
            search_field: Field the query applies to
            query: Optional search text
        """
        transactions = self.load_transactions()
        transactions = filter_by_date(transactions, start_date, end_date)
        transactions = filter_by_status(transactions, statuses)
        return search_transactions(transactions, search_field, query)

    def export(self, transactions: Sequence[Transaction], output_path: str | Path) -> Path:
        """Write transactions to .xlsx (or .csv) with the office's column headers.

        Raises:
            ValidationError: If there is nothing to export or the extension is unknown
        """
        if not transactions:
            raise ValidationError("No transactions to export")

        path = Path(output_path)
        header = [title for title, _ in EXPORT_COLUMNS]
        rows = [[getattr(txn, attr) for _, attr in EXPORT_COLUMNS] for txn in transactions]

        suffix = path.suffix.lower()
        if suffix == ".xlsx":
            workbook = Workbook()
            sheet = workbook.active
            sheet.title = "Transactions"
            sheet.append(header)
            for row in rows:
                sheet.append(row)
            workbook.save(path)
        elif suffix == ".csv":
            with open(path, "w", encoding="utf-8-sig", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(header)
                writer.writerows(rows)
        else:
            raise ValidationError(f"Unsupported export type: {path.name} (expected .xlsx or .csv)")

        logger.info("Exported %d transactions to %s", len(rows), path)
        return path
