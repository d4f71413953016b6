"""Text normalization utilities.

Spreadsheets arrive with English or Arabic headers, Arabic-Indic digits,
inconsistent casing and stray punctuation. Every comparison between two
user-supplied strings (header vs. alias, code vs. code, search query vs.
field) goes through one of the functions below.
"""

import re
import unicodedata
from typing import Any

_DIGITS = str.maketrans(
    "٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹",
    "01234567890123456789",
)

_KEY_STRIP = re.compile(r"[^a-z0-9\u0600-\u06ff]+")
_HEADER_STRIP = re.compile(r"[\s_\-:/\\]+")
_LABEL_SEPARATORS = re.compile(r"[_-]")
_WHITESPACE = re.compile(r"\s+")


def to_text(value: Any) -> str:
    """Return value as a stripped string, treating None as empty."""
    if value is None:
        return ""
    return str(value).strip()


def fold_diacritics(value: str) -> str:
    """Remove combining marks (accents, Arabic hamza and harakat)."""
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(value: Any) -> str:
    """Lowercase, fold digits and diacritics, trim."""
    text = "" if value is None else str(value)
    text = fold_diacritics(text.translate(_DIGITS))
    return text.lower().strip()


def normalize_key(value: Any) -> str:
    """Normalize a value for identity and search matching.

    Only ASCII letters, digits and the Arabic block survive, so
    ``"P-001"``, ``"p 001"`` and ``"P٠٠١"`` all map to ``"p001"``.
    """
    return _KEY_STRIP.sub("", normalize_text(value))


def normalize_header(value: Any) -> str:
    """Normalize a column header: whitespace and separators removed."""
    return _HEADER_STRIP.sub("", normalize_text(value))


def normalize_label(value: Any) -> str:
    """Normalize a grid cell label, keeping single spaces between words."""
    text = _LABEL_SEPARATORS.sub(" ", normalize_text(value))
    return _WHITESPACE.sub(" ", text).strip()


def first_non_empty(*values: str) -> str:
    """Return the first value that is not blank."""
    for value in values:
        if value and value.strip():
            return value
    return ""
