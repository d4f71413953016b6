"""Column header aliases and alias-based lookups.

School exports come from several systems and in two languages, so each
target field lists every header it is known to appear under. Lookups are
fuzzy: a header matches an alias when their normalized forms are equal or
the header contains the alias. The first alias (in list order) that yields a
non-empty value wins.
"""

from typing import Any, Mapping, Sequence

from schoolpay.domain.spreadsheet import cell_to_text
from schoolpay.utils.text import normalize_header, normalize_label

PARENT_ALIASES: dict[str, list[str]] = {
    "first_name": ["First Name", "الاسم الاول"],
    "last_name": ["Last Name", "اسم العائلة"],
    "name": ["Parent Name", "اسم ولي الأمر", "Name", "Full Name"],
    "code": [
        "Parent ID",
        "ParentID",
        "Parent Code",
        "National ID",
        "رقم تعريف ولي الامر",
        "كود ولي الامر",
    ],
    "code2": [
        "Secondary Parent ID",
        "SecondaryParentID",
        "Parent ID 2",
        "كود ولي الامر الثانى",
        "كود ولي الامر الثاني",
    ],
    "email": ["Email", "البريد الإلكتروني", "البريد الالكتروني"],
    "phone": ["Phone", "Mobile", "رقم الهاتف", "رقم الهاتف المحمول"],
    "secret_key": ["Secret Key", "Password", "الرقم السري"],
}

STUDENT_ALIASES: dict[str, list[str]] = {
    "name": ["Name", "Student Name", "اسم الطالب"],
    "student_code": ["StudentID", "Student ID", "كود الطالب", "رقم الطالب"],
    "grade": ["Grade", "Grade Name", "الصف", "المرحلة"],
    "parent_code": [
        "ParentID",
        "Parent ID",
        "Parent Code",
        "رقم تعريف ولي الامر",
        "كود ولي الامر",
    ],
    "parent_name": ["Parent Name", "اسم ولي الأمر"],
    "external_id": ["External ID", "ExternalID", "الرقم الخارجي"],
    "birth_date": ["Birth Date", "Date of Birth", "DOB", "تاريخ الميلاد"],
    "classification": ["Classification", "Category", "التصنيف"],
}

# Header row detection for payment gateway exports
RECEIPT_MARKERS = ["receipt no", "رقم العملية"]
TOTAL_MARKERS = ["total amount", "sub total", "الاجمالي"]

# Main header columns
TRANSACTION_ALIASES: dict[str, list[str]] = {
    "id": ["Receipt No", "رقم العملية", "Transaction ID"],
    "customer": ["Full Name", "Customer Name", "اسم العميل", "Student Name"],
    "customer_phone": ["Mobile Number", "Phone", "رقم هاتف العميل"],
    "customer_email": ["Email", "Customer Email", "البريد الإلكتروني"],
    "total_no_tax": ["Sub Total", "Subtotal", "الاجمالي بدون ضريبه", "الاجمالي بدون ضريبة"],
    "total": ["Total Amount", "Total", "الاجمالي", "إجمالي"],
    "date": ["Transaction Date", "Date", "التاريخ"],
    "status": ["Order Status", "Status", "الحالة"],
    "branch": ["Branch Name", "Company Name", "Branch", "الفرع"],
    "method": ["Payment Method", "Payment Method Name", "طريقة الدفع"],
    "currency": ["Currency", "العملة"],
    "provider": ["Provider", "مزود الخدمة"],
    "bank_reference_number": ["Bank Reference Number", "Bank Ref", "الرقم المرجعي"],
    "merchant_order_id": ["Merchant Order ID", "Order ID", "رقم الطلب"],
    "parent_name": ["Parent Name", "اسم ولي الأمر"],
    "academic_year": ["Order Form", "Academic Year", "السنة الأكاديمية"],
    "discount": ["Discount", "الخصم"],
    "fees": ["Late Fees", "Fees", "الرسوم المتأخرة", "الرسوم المتاخره"],
}

# Item-level columns that may sit in a second header row
TRANSACTION_ITEM_ALIASES: dict[str, list[str]] = {
    "parent_code": ["Parent ID", "Parent Code", "كود ولي الأمر"],
    "item_name": ["Item Name", "Order Items", "اسم المدفوع"],
    "item_amount": ["Amount", "المبلغ"],
    "quantity": ["Quantity", "الكمية"],
    "student_id": ["Student ID", "رقم الطالب"],
    "student_name": ["Student Name", "اسم الطالب"],
    "grade_name": ["Grade Name", "المرحلة", "الصف"],
}

# For these, the main header position wins over the sub-header
MAIN_HEADER_FIRST = {"parent_code"}


def find_matching_key(keys: Sequence[str], alias: str) -> str | None:
    """Find the row key matching an alias.

    An exact normalized match anywhere in the row beats a substring match,
    so "Parent ID" is preferred over "Parent ID 2" for the alias "Parent ID".
    """
    normalized_alias = normalize_header(alias)
    if not normalized_alias:
        return None

    normalized_keys = [(key, normalize_header(key)) for key in keys]
    for key, normalized in normalized_keys:
        if normalized == normalized_alias:
            return key
    for key, normalized in normalized_keys:
        if normalized and normalized_alias in normalized:
            return key
    return None


def get_value_by_aliases(row: Mapping[str, Any], aliases: Sequence[str]) -> str:
    """Resolve a field from a header-keyed row.

    For each alias in order, the matching row key is taken; if its value is
    non-empty it is returned, otherwise the next alias is tried.

    Args:
        row: Row mapping header -> cell value
        aliases: Known header names for the field

    Returns:
        The trimmed cell text, or an empty string
    """
    keys = list(row.keys())
    for alias in aliases:
        key = find_matching_key(keys, alias)
        if key is None:
            continue
        text = cell_to_text(row[key])
        if text:
            return text
    return ""


def find_column_index(header_row: Sequence[Any], aliases: Sequence[str]) -> int:
    """Find the column whose label equals or contains one of the aliases.

    Aliases are tried in order. For each alias an exact label match wins over
    a label merely containing it, so "Total Amount" is found before
    "Sub Total" for the aliases ["Total Amount", "Total"].

    Args:
        header_row: Header cells, left to right
        aliases: Known labels for the column

    Returns:
        Zero-based column index, or -1 when no column matches
    """
    headers = [normalize_label(cell) for cell in header_row]
    for alias in aliases:
        normalized_alias = normalize_label(alias)
        if not normalized_alias:
            continue
        for index, header in enumerate(headers):
            if header == normalized_alias:
                return index
        for index, header in enumerate(headers):
            if header and normalized_alias in header:
                return index
    return -1


def is_transaction_header_row(row: Sequence[Any]) -> bool:
    """Return True for a row holding both a receipt number and a total label."""
    cells = [normalize_label(cell) for cell in row]
    has_receipt = any(marker in cell for cell in cells for marker in RECEIPT_MARKERS)
    has_total = any(marker in cell for cell in cells for marker in TOTAL_MARKERS)
    return has_receipt and has_total
