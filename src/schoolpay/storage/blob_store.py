"""Snapshot store writing one JSON blob per snapshot kind to a directory."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from schoolpay.domain.errors import StorageError
from schoolpay.storage.base import (
    SnapshotKind,
    SnapshotStore,
    StoredSnapshot,
    coerce_collections,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

BLOB_NAMES = {
    SnapshotKind.TRANSACTIONS: "transactions.json",
    SnapshotKind.SCHOOL_CONTROL: "school-control.json",
}


class BlobSnapshotStore(SnapshotStore):
    """Snapshot store where saving overwrites the whole blob."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def blob_path(self, kind: SnapshotKind) -> Path:
        return self.directory / BLOB_NAMES[kind]

    def load_snapshot(self, kind: SnapshotKind) -> StoredSnapshot:
        """Read the blob; a missing blob is an empty snapshot."""
        path = self.blob_path(kind)
        if not path.exists():
            return StoredSnapshot(collections=coerce_collections(kind, {}), updated_at=None)

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Failed to read blob %s: %s", path, e)
            raise StorageError(f"Failed to load blob {path.name}", str(e)) from e

        updated_at = payload.get("updatedAt") if isinstance(payload, dict) else None
        return StoredSnapshot(collections=coerce_collections(kind, payload), updated_at=updated_at)

    def save_snapshot(self, kind: SnapshotKind, collections: dict[str, list[Any]]) -> str:
        """Overwrite the blob atomically."""
        path = self.blob_path(kind)
        updated_at = utc_timestamp()
        document = {**coerce_collections(kind, collections), "updatedAt": updated_at}

        tmp_path = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            logger.error("Failed to write blob %s: %s", path, e)
            raise StorageError(f"Failed to save blob {path.name}", str(e)) from e

        logger.info("Saved %s", path.name)
        return updated_at
