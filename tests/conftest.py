"""Shared pytest fixtures for schoolpay tests."""

from pathlib import Path

import pytest

from schoolpay.domain.dashboard import DashboardService
from schoolpay.domain.directory import DirectoryService
from schoolpay.domain.ledger import LedgerService
from schoolpay.domain.school_import import SchoolImportService
from schoolpay.domain.transaction_import import TransactionImportService
from schoolpay.storage.factories import create_sqlalchemy_store


@pytest.fixture
def temp_store(tmp_path):
    """Create a snapshot store on a temporary SQLite database."""
    store = create_sqlalchemy_store(f"sqlite:///{tmp_path / 'schoolpay.db'}")

    yield store

    store.close()


@pytest.fixture
def school_import_service(temp_store):
    """Create a SchoolImportService with a temporary store."""
    return SchoolImportService(temp_store)


@pytest.fixture
def transaction_import_service(temp_store):
    """Create a TransactionImportService with a temporary store."""
    return TransactionImportService(temp_store)


@pytest.fixture
def ledger_service(temp_store):
    """Create a LedgerService with a temporary store."""
    return LedgerService(temp_store)


@pytest.fixture
def directory_service(temp_store):
    """Create a DirectoryService with a temporary store."""
    return DirectoryService(temp_store)


@pytest.fixture
def dashboard_service(temp_store):
    """Create a DashboardService with a temporary store."""
    return DashboardService(temp_store)


@pytest.fixture
def populated_store(temp_store, fixtures_dir):
    """Store holding the sample parents, students and transactions."""
    school = SchoolImportService(temp_store)
    school.import_parents(fixtures_dir / "parents.csv")
    school.import_students(fixtures_dir / "students.csv")
    TransactionImportService(temp_store).import_transactions(fixtures_dir / "transactions.csv")
    return temp_store


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
