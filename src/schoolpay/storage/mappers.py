"""Mapper functions to convert between domain entities and stored JSON.

Stored documents use the dashboard's camelCase field names. Reading is
lenient: missing or null fields become empty strings, amounts are cleaned to
two decimals and records without an identity are dropped.
"""

from typing import Any, Iterable

from schoolpay.domain.entities import Parent, Student, Transaction
from schoolpay.utils.amount_parser import clean_amount
from schoolpay.utils.date_parser import parse_transaction_date
from schoolpay.utils.text import to_text

PARENT_FIELDS = {
    "name": "name",
    "code": "code",
    "code2": "code2",
    "email": "email",
    "phone": "phone",
    "secret_key": "secretKey",
}

STUDENT_FIELDS = {
    "name": "name",
    "student_code": "studentCode",
    "grade": "grade",
    "parent_code": "parentCode",
    "parent_name": "parentName",
    "external_id": "externalId",
    "birth_date": "birthDate",
    "classification": "classification",
}

TRANSACTION_TEXT_FIELDS = {
    "id": "id",
    "customer": "customer",
    "customer_phone": "customerPhone",
    "customer_email": "customerEmail",
    "date": "date",
    "status": "status",
    "branch": "branch",
    "method": "method",
    "currency": "currency",
    "provider": "provider",
    "bank_reference_number": "bankReferenceNumber",
    "merchant_order_id": "merchantOrderId",
    "parent_code": "parentCode",
    "parent_name": "parentName",
    "student_id": "studentId",
    "student_name": "studentName",
    "grade_name": "gradeName",
    "item_name": "itemName",
    "academic_year": "academicYear",
}

TRANSACTION_AMOUNT_FIELDS = {
    "total_no_tax": "totalNoTax",
    "total": "total",
    "item_amount": "itemAmount",
    "fees": "fees",
    "discount": "discount",
}


def parent_to_dict(parent: Parent) -> dict[str, Any]:
    """Convert a Parent entity to its stored JSON form."""
    return {wire: getattr(parent, attr) for attr, wire in PARENT_FIELDS.items()}


def parent_from_dict(data: dict[str, Any]) -> Parent:
    """Convert stored JSON to a Parent entity."""
    return Parent(**{attr: to_text(data.get(wire)) for attr, wire in PARENT_FIELDS.items()})


def student_to_dict(student: Student) -> dict[str, Any]:
    """Convert a Student entity to its stored JSON form."""
    return {wire: getattr(student, attr) for attr, wire in STUDENT_FIELDS.items()}


def student_from_dict(data: dict[str, Any]) -> Student:
    """Convert stored JSON to a Student entity."""
    return Student(**{attr: to_text(data.get(wire)) for attr, wire in STUDENT_FIELDS.items()})


def transaction_to_dict(transaction: Transaction) -> dict[str, Any]:
    """Convert a Transaction entity to its stored JSON form."""
    data: dict[str, Any] = {
        wire: getattr(transaction, attr) for attr, wire in TRANSACTION_TEXT_FIELDS.items()
    }
    data.update(
        {wire: getattr(transaction, attr) for attr, wire in TRANSACTION_AMOUNT_FIELDS.items()}
    )
    data["quantity"] = transaction.quantity
    data["dateValue"] = (
        transaction.date_value.isoformat() if transaction.date_value is not None else None
    )
    return data


def transaction_from_dict(data: dict[str, Any]) -> Transaction:
    """Convert stored JSON to a Transaction entity."""
    values: dict[str, Any] = {
        attr: to_text(data.get(wire)) for attr, wire in TRANSACTION_TEXT_FIELDS.items()
    }
    values.update(
        {attr: clean_amount(data.get(wire)) for attr, wire in TRANSACTION_AMOUNT_FIELDS.items()}
    )
    values["quantity"] = to_text(data.get("quantity")) or "1"

    raw_date = data.get("dateValue")
    values["date_value"] = parse_transaction_date(raw_date if raw_date else data.get("date"))
    return Transaction(**values)


def parents_from_dicts(rows: Iterable[Any]) -> list[Parent]:
    """Hydrate stored parents, skipping entries that are not objects."""
    return [parent_from_dict(row) for row in rows if isinstance(row, dict)]


def students_from_dicts(rows: Iterable[Any]) -> list[Student]:
    """Hydrate stored students, skipping entries that are not objects."""
    return [student_from_dict(row) for row in rows if isinstance(row, dict)]


def transactions_from_dicts(rows: Iterable[Any]) -> list[Transaction]:
    """Hydrate stored transactions, dropping entries without an id."""
    transactions = (transaction_from_dict(row) for row in rows if isinstance(row, dict))
    return [txn for txn in transactions if txn.id]
