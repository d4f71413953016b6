"""Payment gateway export import service."""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional, Sequence

from schoolpay.domain.aliases import (
    MAIN_HEADER_FIRST,
    TRANSACTION_ALIASES,
    TRANSACTION_ITEM_ALIASES,
    find_column_index,
    is_transaction_header_row,
)
from schoolpay.domain.entities import ImportMode, ImportResult, StatusLabel, Transaction
from schoolpay.domain.errors import (
    SaveFailedError,
    StorageError,
    ValidationError,
    header_row_not_found,
    no_valid_rows,
    required_columns_missing,
)
from schoolpay.domain.reconcile import count_new_keys, dedupe_transactions, transaction_key
from schoolpay.domain.spreadsheet import cell_to_text, read_grid
from schoolpay.storage.base import SnapshotStore
from schoolpay.utils.amount_parser import clean_amount
from schoolpay.utils.date_parser import format_display_date, parse_transaction_date
from schoolpay.utils.text import normalize_label

logger = logging.getLogger(__name__)

# Placeholder customer names the gateway uses when the payer is anonymous
PLACEHOLDER_CUSTOMERS = {"btc user", "user"}

ZERO_AMOUNT = "0.00"


@dataclass(frozen=True)
class ColumnLayout:
    """Resolved column positions for one export file."""

    header_index: int
    columns: dict[str, int]
    sub_header: bool = False

    def cell(self, row: Sequence[Any], field: str) -> Any:
        index = self.columns.get(field, -1)
        if index < 0 or index >= len(row):
            return None
        return row[index]

    def text(self, row: Sequence[Any], field: str) -> str:
        return cell_to_text(self.cell(row, field))

    def amount(self, row: Sequence[Any], field: str) -> str:
        """Cleaned amount, or "" when the column is missing or the cell blank."""
        return clean_amount(self.cell(row, field)) if self.text(row, field) else ""


@dataclass(frozen=True)
class ParsedExport:
    """Rows read from one export, before defaults are filled in."""

    transactions: list[Transaction]
    skipped: int = 0


def find_header_index(grid: Sequence[Sequence[Any]]) -> int:
    """Return the index of the transactions header row, or -1."""
    for index, row in enumerate(grid):
        if row and is_transaction_header_row(row):
            return index
    return -1


def resolve_layout(grid: Sequence[Sequence[Any]]) -> ColumnLayout:
    """Locate the header row and every known column.

    Item-level columns may live in a second header row directly below the
    main one; their sub-header position wins, except for the parent code
    where the main header position wins.

    Raises:
        ValidationError: If no header row or no receipt/total column is found
    """
    header_index = find_header_index(grid)
    if header_index == -1:
        raise ValidationError(header_row_not_found())

    header_row = list(grid[header_index])
    sub_header_row = list(grid[header_index + 1]) if header_index + 1 < len(grid) else []

    columns = {field: find_column_index(header_row, aliases) for field, aliases in TRANSACTION_ALIASES.items()}
    sub_header = False
    for field, aliases in TRANSACTION_ITEM_ALIASES.items():
        main = find_column_index(header_row, aliases)
        sub = find_column_index(sub_header_row, aliases)
        if field in MAIN_HEADER_FIRST:
            columns[field] = main if main != -1 else sub
        else:
            columns[field] = sub if sub != -1 else main
        if sub != -1 and columns[field] == sub:
            sub_header = True

    if columns["id"] == -1 or columns["total"] == -1:
        raise ValidationError(required_columns_missing())

    return ColumnLayout(header_index=header_index, columns=columns, sub_header=sub_header)


def transaction_from_row(row: Sequence[Any], layout: ColumnLayout) -> Optional[Transaction]:
    """Map one data row to a Transaction, or None for rows to skip.

    Fields whose column is missing or whose cell is blank stay empty, so a
    merge can fill them from the stored ledger. See ``with_defaults``.
    """
    transaction_id = layout.text(row, "id")
    if not transaction_id:
        return None
    normalized_id = normalize_label(transaction_id)
    if "receipt" in normalized_id or "رقم العملية" in normalized_id:
        return None

    date_cell = layout.cell(row, "date")
    date_value = parse_transaction_date(date_cell)

    student_name = layout.text(row, "student_name")
    customer = layout.text(row, "customer")
    resolved_customer = customer
    if not customer or normalize_label(customer) in PLACEHOLDER_CUSTOMERS:
        resolved_customer = student_name or customer

    return Transaction(
        id=transaction_id,
        customer=resolved_customer,
        customer_phone=layout.text(row, "customer_phone"),
        customer_email=layout.text(row, "customer_email"),
        total_no_tax=layout.amount(row, "total_no_tax"),
        total=layout.amount(row, "total"),
        date=format_display_date(date_value) if date_value else cell_to_text(date_cell),
        date_value=date_value,
        status=layout.text(row, "status"),
        branch=layout.text(row, "branch"),
        method=layout.text(row, "method"),
        currency=layout.text(row, "currency"),
        provider=layout.text(row, "provider"),
        bank_reference_number=layout.text(row, "bank_reference_number"),
        merchant_order_id=layout.text(row, "merchant_order_id"),
        parent_code=layout.text(row, "parent_code"),
        parent_name=layout.text(row, "parent_name"),
        student_id=layout.text(row, "student_id"),
        student_name=student_name,
        grade_name=layout.text(row, "grade_name"),
        item_name=layout.text(row, "item_name"),
        item_amount=layout.amount(row, "item_amount"),
        quantity=layout.text(row, "quantity"),
        academic_year=layout.text(row, "academic_year"),
        fees=layout.amount(row, "fees"),
        discount=layout.amount(row, "discount"),
    )


def with_defaults(transaction: Transaction) -> Transaction:
    """Fill fields that are still empty after merging.

    The status defaults to successful, amounts to zero, the quantity to one
    and the item amount to the transaction total. Missing parent and student
    names fall back to the customer name.
    """
    total = transaction.total or ZERO_AMOUNT
    return replace(
        transaction,
        parent_name=transaction.parent_name or transaction.customer or transaction.student_name,
        student_name=transaction.student_name or transaction.customer,
        status=transaction.status or StatusLabel.SUCCESSFUL.value,
        total=total,
        total_no_tax=transaction.total_no_tax or ZERO_AMOUNT,
        fees=transaction.fees or ZERO_AMOUNT,
        discount=transaction.discount or ZERO_AMOUNT,
        item_amount=transaction.item_amount or total,
        quantity=transaction.quantity or "1",
    )


def parse_export(grid: Sequence[Sequence[Any]]) -> ParsedExport:
    """Parse a payment export grid into deduplicated transactions without defaults.

    Rows that carry data but no receipt number are counted as skipped;
    blank rows, repeated headers and the item sub-header row are not.

    Raises:
        ValidationError: If the header row or required columns are missing
    """
    layout = resolve_layout(grid)
    transactions = []
    skipped = 0
    for index in range(layout.header_index + 1, len(grid)):
        row = list(grid[index])
        transaction = transaction_from_row(row, layout)
        if transaction is not None:
            transactions.append(transaction)
            continue
        if layout.text(row, "id") or not any(cell_to_text(cell) for cell in row):
            continue
        if layout.sub_header and index == layout.header_index + 1:
            continue
        logger.debug("Row %d: skipped row without receipt number", index + 1)
        skipped += 1
    return ParsedExport(transactions=dedupe_transactions(transactions), skipped=skipped)


def parse_transactions(grid: Sequence[Sequence[Any]]) -> list[Transaction]:
    """Parse a payment export grid into deduplicated transactions.

    Raises:
        ValidationError: If the header row or required columns are missing
    """
    return [with_defaults(txn) for txn in parse_export(grid).transactions]


class TransactionImportService:
    """Service for importing payment gateway exports."""

    def __init__(self, store: SnapshotStore):
        """Initialize transaction import service.

        Args:
            store: Snapshot store instance
        """
        self.store = store

    def _read_export(self, file_path: str | Path) -> ParsedExport:
        parsed = parse_export(read_grid(file_path))
        if not parsed.transactions:
            raise ValidationError(no_valid_rows())
        return parsed

    def read_transactions(self, file_path: str | Path) -> list[Transaction]:
        """Read and deduplicate transactions from an export file.

        Raises:
            NotFoundError: If the file doesn't exist
            ValidationError: If the file can't be read or holds no valid rows
        """
        return [with_defaults(txn) for txn in self._read_export(file_path).transactions]

    def import_transactions(
        self, file_path: str | Path, mode: ImportMode = ImportMode.MERGE
    ) -> ImportResult:
        """Import an export file into the stored ledger.

        Args:
            file_path: Path to the uploaded export
            mode: MERGE combines with the stored ledger (non-empty upload
                values win, stored values fill the gaps); REPLACE makes the
                file the whole ledger

        Returns:
            ImportResult with counts and the save timestamp

        Raises:
            NotFoundError: If the file doesn't exist
            ValidationError: If the file can't be read or holds no valid rows
            StorageError: If the ledger can't be loaded or saved
        """
        parsed = self._read_export(file_path)
        transactions = parsed.transactions

        if mode == ImportMode.REPLACE:
            existing: tuple[Transaction, ...] = ()
            merged = transactions
        else:
            existing = self.store.load_transactions().transactions
            merged = dedupe_transactions([*transactions, *existing])
        ledger = [with_defaults(txn) for txn in merged]

        new_count = count_new_keys(transactions, existing, transaction_key)
        try:
            updated_at = self.store.save_transactions(ledger)
        except StorageError as e:
            raise SaveFailedError(len(transactions), e) from e

        logger.info(
            "Imported transactions from %s (%s): %d read, %d new, %d skipped, %d total",
            Path(file_path).name,
            mode.value,
            len(transactions),
            new_count,
            parsed.skipped,
            len(ledger),
        )
        return ImportResult(
            read=len(transactions),
            imported=new_count,
            updated=len(transactions) - new_count,
            skipped=parsed.skipped,
            total=len(ledger),
            updated_at=updated_at,
        )
