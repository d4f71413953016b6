"""Domain layer for schoolpay application."""

from schoolpay.domain.school_import import SchoolImportService
from schoolpay.domain.transaction_import import TransactionImportService
from schoolpay.domain.ledger import LedgerService
from schoolpay.domain.directory import DirectoryService
from schoolpay.domain.dashboard import DashboardService

__all__ = [
    "SchoolImportService",
    "TransactionImportService",
    "LedgerService",
    "DirectoryService",
    "DashboardService",
]
