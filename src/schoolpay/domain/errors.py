"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested record or file does not exist."""


class StorageError(DomainError):
    """Snapshot backend failed to load or save data."""

    def __init__(self, message: str, detail: str = ""):
        super().__init__(f"{message}: {detail}" if detail else message)
        self.message = message
        self.detail = detail


class ConfigurationError(StorageError):
    """Snapshot backend is not configured."""


class SaveFailedError(StorageError):
    """Upload was read but saving the result failed."""

    def __init__(self, read: int, cause: StorageError):
        super().__init__(
            f"Loaded {read} records, but saving them failed", str(cause)
        )
        self.read = read
        self.cause = cause


def file_not_found(path: str) -> str:
    """Return message for a missing upload file."""
    return f"Spreadsheet file not found: {path}"


def unsupported_file_type(path: str) -> str:
    """Return message for an upload with an unknown extension."""
    return f"Unsupported spreadsheet type: {path} (expected .xlsx, .xlsm, .xls or .csv)"


def parent_not_found(key: str) -> str:
    """Return message for missing parent."""
    return f"Parent '{key}' not found"


def student_not_found(key: str) -> str:
    """Return message for missing student."""
    return f"Student '{key}' not found"


def header_row_not_found() -> str:
    """Return message when no transactions header row is detected."""
    return "No valid header row found in the transactions file"


def required_columns_missing() -> str:
    """Return message when receipt number or total columns are missing."""
    return "Could not locate the required columns (receipt number / total) in the file"


def no_valid_rows() -> str:
    """Return message when a file was read but produced no records."""
    return "The file was read but no valid rows were found"
