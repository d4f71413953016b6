"""Snapshot store backed by a Supabase (PostgREST) table over HTTP."""

import json
import logging
from typing import Any, Optional

import requests

from schoolpay.domain.errors import StorageError
from schoolpay.storage.base import (
    SnapshotKind,
    SnapshotStore,
    StoredSnapshot,
    coerce_collections,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30

LABELS = {
    SnapshotKind.TRANSACTIONS: "transactions",
    SnapshotKind.SCHOOL_CONTROL: "school-control data",
}


def parse_rest_error(response: requests.Response) -> str:
    """Extract a readable error message from a failed REST response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(payload, dict):
        for key in ("message", "error", "hint"):
            if payload.get(key):
                return str(payload[key])
    return json.dumps(payload, ensure_ascii=False)


class SupabaseSnapshotStore(SnapshotStore):
    """Snapshot store using the Postgres REST interface.

    Each snapshot kind lives in its own table with one JSON column per
    collection and an ``updated_at`` column. Saving deletes every row and
    inserts a single new one.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        tables: dict[SnapshotKind, str],
        session: Optional[requests.Session] = None,
    ):
        """Initialize the REST store.

        Args:
            base_url: Project URL (trailing slashes are stripped)
            api_key: Service role or anon key
            tables: Table name per snapshot kind
            session: Optional requests session (a new one is created if omitted)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.tables = tables
        self.session = session or requests.Session()

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }
        headers.update(extra)
        return headers

    def _table_url(self, kind: SnapshotKind) -> str:
        return f"{self.base_url}/rest/v1/{self.tables[kind]}"

    def _request(self, label: str, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(
                method, url, timeout=REQUEST_TIMEOUT, **kwargs
            )
        except requests.RequestException as e:
            logger.error("%s: %s", label, e)
            raise StorageError(label, str(e)) from e

        if not response.ok:
            detail = parse_rest_error(response)
            logger.error("%s: %s", label, detail)
            raise StorageError(label, detail)
        return response

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()

    def load_snapshot(self, kind: SnapshotKind) -> StoredSnapshot:
        """Fetch the newest row of the kind's table."""
        columns = ",".join([*kind.collections, "updated_at"])
        response = self._request(
            f"Failed to load {LABELS[kind]} from Supabase",
            "GET",
            self._table_url(kind),
            params={"select": columns, "order": "updated_at.desc", "limit": "1"},
            headers=self._headers(Accept="application/json"),
        )

        try:
            rows = response.json()
        except ValueError as e:
            raise StorageError(f"Failed to load {LABELS[kind]} from Supabase", str(e)) from e

        if not isinstance(rows, list) or not rows or not isinstance(rows[0], dict):
            return StoredSnapshot(collections=coerce_collections(kind, {}), updated_at=None)

        latest = rows[0]
        return StoredSnapshot(
            collections=coerce_collections(kind, latest),
            updated_at=latest.get("updated_at"),
        )

    def save_snapshot(self, kind: SnapshotKind, collections: dict[str, list[Any]]) -> str:
        """Clear the table, then insert the new snapshot row."""
        updated_at = utc_timestamp()

        self._request(
            f"Failed to clear previous {LABELS[kind]} in Supabase",
            "DELETE",
            self._table_url(kind),
            params={"id": "not.is.null"},
            headers=self._headers(Prefer="return=minimal"),
        )

        row = {**coerce_collections(kind, collections), "updated_at": updated_at}
        self._request(
            f"Failed to save {LABELS[kind]} to Supabase",
            "POST",
            self._table_url(kind),
            data=json.dumps([row], ensure_ascii=False).encode("utf-8"),
            headers=self._headers(
                **{"Content-Type": "application/json", "Prefer": "return=representation"}
            ),
        )

        logger.info("Saved %s snapshot to Supabase", LABELS[kind])
        return updated_at
