"""Snapshot storage layer for schoolpay."""

# Domain services import this package's modules; load them first so that
# importing storage on its own doesn't hit a half-initialized module
import schoolpay.domain  # noqa: F401
from schoolpay.storage.base import SnapshotKind, SnapshotStore, StoredSnapshot
from schoolpay.storage.factories import create_store

__all__ = ["SnapshotKind", "SnapshotStore", "StoredSnapshot", "create_store"]
