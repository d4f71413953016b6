"""Store factory functions for creating snapshot store instances."""

import os
import re
from pathlib import Path
from typing import Optional

from schoolpay.domain.errors import ConfigurationError
from schoolpay.storage.base import SnapshotKind, SnapshotStore
from schoolpay.storage.blob_store import BlobSnapshotStore
from schoolpay.storage.sqlalchemy_store import SQLAlchemySnapshotStore
from schoolpay.storage.supabase_store import SupabaseSnapshotStore

BACKENDS = ("sqlalchemy", "supabase", "blob")

DEFAULT_TABLES = {
    SnapshotKind.TRANSACTIONS: "transactions_snapshots",
    SnapshotKind.SCHOOL_CONTROL: "school_control_snapshots",
}

TABLE_ENV_VARS = {
    SnapshotKind.TRANSACTIONS: "SUPABASE_TRANSACTIONS_TABLE",
    SnapshotKind.SCHOOL_CONTROL: "SUPABASE_SCHOOL_TABLE",
}

KEY_ENV_VARS = ("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_KEY", "SUPABASE_ANON_KEY")

_TABLE_NAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _data_dir() -> Path:
    """Return ~/.schoolpay, creating it if needed."""
    data_dir = Path.home() / ".schoolpay"
    data_dir.mkdir(exist_ok=True)
    return data_dir


def resolve_table_name(kind: SnapshotKind) -> str:
    """Table name from the environment, falling back to the default if invalid."""
    table = os.environ.get(TABLE_ENV_VARS[kind]) or DEFAULT_TABLES[kind]
    return table if _TABLE_NAME.match(table) else DEFAULT_TABLES[kind]


def create_sqlalchemy_store(database_url: Optional[str] = None) -> SQLAlchemySnapshotStore:
    """Create a SQLAlchemy snapshot store.

    Args:
        database_url: SQLAlchemy URL. If None, checks SCHOOLPAY_DB_URL
            environment variable, then defaults to ~/.schoolpay/schoolpay.db

    Returns:
        SQLAlchemySnapshotStore instance
    """
    if database_url is None:
        database_url = os.environ.get("SCHOOLPAY_DB_URL")

    if database_url is None:
        database_url = f"sqlite:///{_data_dir() / 'schoolpay.db'}"

    return SQLAlchemySnapshotStore(database_url)


def create_supabase_store() -> SupabaseSnapshotStore:
    """Create a Supabase REST snapshot store from environment variables.

    Raises:
        ConfigurationError: If SUPABASE_URL or every key variable is unset
    """
    base_url = os.environ.get("SUPABASE_URL", "").rstrip("/")
    api_key = next((os.environ[name] for name in KEY_ENV_VARS if os.environ.get(name)), "")

    if not base_url or not api_key:
        raise ConfigurationError(
            "Supabase env vars are missing",
            f"SUPABASE_URL or {'/'.join(KEY_ENV_VARS)} is not set",
        )

    tables = {kind: resolve_table_name(kind) for kind in SnapshotKind}
    return SupabaseSnapshotStore(base_url=base_url, api_key=api_key, tables=tables)


def create_blob_store(blob_dir: Optional[str] = None) -> BlobSnapshotStore:
    """Create a JSON blob store.

    Args:
        blob_dir: Directory for blobs. If None, checks SCHOOLPAY_BLOB_DIR,
            then defaults to ~/.schoolpay/blobs
    """
    if blob_dir is None:
        blob_dir = os.environ.get("SCHOOLPAY_BLOB_DIR")

    if blob_dir is None:
        return BlobSnapshotStore(_data_dir() / "blobs")
    return BlobSnapshotStore(blob_dir)


def create_store(
    backend: Optional[str] = None,
    database_url: Optional[str] = None,
    blob_dir: Optional[str] = None,
) -> SnapshotStore:
    """Create the configured snapshot store.

    Args:
        backend: One of 'sqlalchemy', 'supabase', 'blob'. If None, checks
            SCHOOLPAY_BACKEND, then defaults to 'sqlalchemy'
        database_url: Passed to the SQLAlchemy backend
        blob_dir: Passed to the blob backend

    Raises:
        ConfigurationError: If the backend is unknown or not configured
    """
    backend = (backend or os.environ.get("SCHOOLPAY_BACKEND") or "sqlalchemy").strip().lower()

    if backend == "sqlalchemy":
        return create_sqlalchemy_store(database_url)
    if backend == "supabase":
        return create_supabase_store()
    if backend == "blob":
        return create_blob_store(blob_dir)

    raise ConfigurationError(
        "Storage backend is not configured",
        f"unknown backend '{backend}' (expected one of: {', '.join(BACKENDS)})",
    )
