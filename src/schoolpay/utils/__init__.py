"""Utility functions for schoolpay."""

from schoolpay.utils.date_parser import parse_transaction_date
from schoolpay.utils.amount_parser import parse_amount, clean_amount
from schoolpay.utils.text import normalize_key, normalize_header, normalize_text

__all__ = [
    "parse_transaction_date",
    "parse_amount",
    "clean_amount",
    "normalize_key",
    "normalize_header",
    "normalize_text",
]
