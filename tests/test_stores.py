"""Tests for the snapshot store backends."""

import json
import subprocess
import sys

import pytest

from schoolpay.domain.entities import Parent, Student, Transaction
from schoolpay.domain.errors import ConfigurationError, StorageError
from schoolpay.storage.base import SnapshotKind, utc_timestamp
from schoolpay.storage.blob_store import BlobSnapshotStore
from schoolpay.storage.factories import (
    DEFAULT_TABLES,
    create_store,
    create_supabase_store,
    resolve_table_name,
)
from schoolpay.storage.sqlalchemy_store import SQLAlchemySnapshotStore
from schoolpay.storage.supabase_store import SupabaseSnapshotStore, parse_rest_error


@pytest.fixture(params=["sqlalchemy", "blob"])
def store(request, tmp_path):
    """Each local backend, freshly created."""
    if request.param == "sqlalchemy":
        store = SQLAlchemySnapshotStore(f"sqlite:///{tmp_path / 'snapshots.db'}")
    else:
        store = BlobSnapshotStore(tmp_path / "blobs")
    yield store
    store.close()


def test_empty_store_loads_empty_snapshot(store):
    """Nothing saved yet means empty collections and no timestamp."""
    snapshot = store.load_snapshot(SnapshotKind.SCHOOL_CONTROL)
    assert snapshot.collections == {"parents": [], "students": []}
    assert snapshot.updated_at is None


def test_save_overwrites_wholesale(store):
    """Saving replaces the previous snapshot entirely."""
    store.save_snapshot(SnapshotKind.TRANSACTIONS, {"transactions": [{"id": "R-1"}, {"id": "R-2"}]})
    updated_at = store.save_snapshot(SnapshotKind.TRANSACTIONS, {"transactions": [{"id": "R-3"}]})

    snapshot = store.load_snapshot(SnapshotKind.TRANSACTIONS)
    assert snapshot.get("transactions") == [{"id": "R-3"}]
    assert snapshot.updated_at == updated_at


def test_snapshot_kinds_are_independent(store):
    """Saving one kind leaves the other untouched."""
    store.save_snapshot(SnapshotKind.SCHOOL_CONTROL, {"parents": [{"name": "Mona"}], "students": []})
    store.save_snapshot(SnapshotKind.TRANSACTIONS, {"transactions": []})

    assert store.load_snapshot(SnapshotKind.SCHOOL_CONTROL).get("parents") == [{"name": "Mona"}]


def test_non_list_collections_become_empty(store):
    """Malformed collections are stored as empty lists."""
    store.save_snapshot(SnapshotKind.SCHOOL_CONTROL, {"parents": "oops", "students": None})
    assert store.load_snapshot(SnapshotKind.SCHOOL_CONTROL).collections == {"parents": [], "students": []}


def test_typed_helpers(store):
    """Entities survive a save and load."""
    store.save_school([Parent(name="منى", code="P-1")], [Student(name="Omar", student_code="S-1")])
    store.save_transactions([Transaction(id="R-1", total="10.00")])

    school = store.load_school()
    assert school.parents == (Parent(name="منى", code="P-1"),)
    assert school.students[0].student_code == "S-1"
    assert store.load_transactions().transactions[0].total == "10.00"


def test_utc_timestamp_format():
    """Timestamps are ISO-8601 UTC with milliseconds and a Z suffix."""
    from datetime import datetime

    assert utc_timestamp(datetime(2024, 9, 5, 10, 30, 0, 123456)) == "2024-09-05T10:30:00.123Z"


def test_blob_store_writes_json_document(tmp_path):
    """Blobs are plain JSON documents with an updatedAt field."""
    store = BlobSnapshotStore(tmp_path)
    store.save_snapshot(SnapshotKind.SCHOOL_CONTROL, {"parents": [], "students": [{"name": "Omar"}]})

    document = json.loads((tmp_path / "school-control.json").read_text(encoding="utf-8"))
    assert document["students"] == [{"name": "Omar"}]
    assert document["updatedAt"].endswith("Z")
    assert list(tmp_path.glob("*.tmp")) == []


def test_blob_store_corrupt_blob(tmp_path):
    """A corrupt blob raises StorageError."""
    (tmp_path / "transactions.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        BlobSnapshotStore(tmp_path).load_snapshot(SnapshotKind.TRANSACTIONS)


def test_blob_store_failed_write_leaves_no_temp_file(tmp_path):
    """A failed write keeps the previous blob and cleans up its temp file."""
    store = BlobSnapshotStore(tmp_path)
    store.save_snapshot(SnapshotKind.TRANSACTIONS, {"transactions": [{"id": "R-1"}]})

    with pytest.raises(StorageError):
        store.save_snapshot(SnapshotKind.TRANSACTIONS, {"transactions": [object()]})

    assert list(tmp_path.glob("*.tmp")) == []
    assert store.load_snapshot(SnapshotKind.TRANSACTIONS).get("transactions") == [{"id": "R-1"}]


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON")
        return self._payload


class FakeSession:
    """Records requests and replays queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return self.responses.pop(0)

    def close(self):
        self.closed = True


def _supabase(session):
    return SupabaseSnapshotStore(
        base_url="https://project.supabase.co/",
        api_key="secret",
        tables=dict(DEFAULT_TABLES),
        session=session,
    )


def test_supabase_load_latest_row():
    """Loading asks for the newest row only."""
    session = FakeSession(
        FakeResponse(payload=[{"parents": [{"name": "Mona"}], "students": [], "updated_at": "2024-09-05T10:30:00.000Z"}])
    )
    snapshot = _supabase(session).load_snapshot(SnapshotKind.SCHOOL_CONTROL)

    assert snapshot.get("parents") == [{"name": "Mona"}]
    assert snapshot.updated_at == "2024-09-05T10:30:00.000Z"
    method, url, kwargs = session.requests[0]
    assert method == "GET"
    assert url == "https://project.supabase.co/rest/v1/school_control_snapshots"
    assert kwargs["params"] == {"select": "parents,students,updated_at", "order": "updated_at.desc", "limit": "1"}
    assert kwargs["headers"]["apikey"] == "secret"
    assert kwargs["headers"]["Authorization"] == "Bearer secret"


def test_supabase_load_empty_table():
    """No rows means an empty snapshot."""
    snapshot = _supabase(FakeSession(FakeResponse(payload=[]))).load_snapshot(SnapshotKind.TRANSACTIONS)
    assert snapshot.get("transactions") == []
    assert snapshot.updated_at is None


def test_supabase_save_deletes_then_inserts():
    """Saving clears the table and inserts one row."""
    session = FakeSession(FakeResponse(status_code=204), FakeResponse(status_code=201, payload=[]))
    updated_at = _supabase(session).save_snapshot(SnapshotKind.TRANSACTIONS, {"transactions": [{"id": "R-1"}]})

    (delete_method, _, delete_kwargs), (insert_method, _, insert_kwargs) = session.requests
    assert delete_method == "DELETE"
    assert delete_kwargs["params"] == {"id": "not.is.null"}
    assert insert_method == "POST"
    body = json.loads(insert_kwargs["data"].decode("utf-8"))
    assert body == [{"transactions": [{"id": "R-1"}], "updated_at": updated_at}]


def test_supabase_save_reports_delete_failure():
    """A failed delete stops the save with the REST error message."""
    session = FakeSession(FakeResponse(status_code=401, payload={"message": "Invalid API key"}))

    with pytest.raises(StorageError) as excinfo:
        _supabase(session).save_snapshot(SnapshotKind.SCHOOL_CONTROL, {"parents": [], "students": []})

    assert excinfo.value.message == "Failed to clear previous school-control data in Supabase"
    assert excinfo.value.detail == "Invalid API key"
    assert len(session.requests) == 1


@pytest.mark.parametrize(
    "response,expected",
    [
        (FakeResponse(400, {"message": "bad"}), "bad"),
        (FakeResponse(400, {"error": "worse"}), "worse"),
        (FakeResponse(400, {"hint": "try again"}), "try again"),
        (FakeResponse(400, {"code": "42P01"}), '{"code": "42P01"}'),
        (FakeResponse(502, None, "Bad Gateway"), "Bad Gateway"),
        (FakeResponse(503, None, ""), "HTTP 503"),
    ],
)
def test_parse_rest_error(response, expected):
    """Error messages are pulled from the REST payload in priority order."""
    assert parse_rest_error(response) == expected


def test_create_supabase_store_requires_env(monkeypatch):
    """Missing Supabase settings are a configuration error."""
    for name in ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_KEY", "SUPABASE_ANON_KEY"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(ConfigurationError) as excinfo:
        create_supabase_store()
    assert excinfo.value.message == "Supabase env vars are missing"


def test_create_supabase_store_from_env(monkeypatch):
    """Supabase settings come from the environment, in key priority order."""
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co//")
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("SUPABASE_SCHOOL_TABLE", "school; drop table")

    store = create_supabase_store()

    assert store.base_url == "https://project.supabase.co"
    assert store.api_key == "service"
    assert store.tables[SnapshotKind.SCHOOL_CONTROL] == "school_control_snapshots"
    store.close()


def test_resolve_table_name(monkeypatch):
    """Valid table names from the environment are used."""
    monkeypatch.setenv("SUPABASE_TRANSACTIONS_TABLE", "payments_2024")
    assert resolve_table_name(SnapshotKind.TRANSACTIONS) == "payments_2024"


def test_create_store_backends(monkeypatch, tmp_path):
    """The backend is chosen by argument or environment."""
    monkeypatch.setenv("SCHOOLPAY_BACKEND", "blob")
    assert isinstance(create_store(blob_dir=str(tmp_path)), BlobSnapshotStore)

    store = create_store(backend="sqlalchemy", database_url=f"sqlite:///{tmp_path / 'x.db'}")
    assert isinstance(store, SQLAlchemySnapshotStore)
    store.close()


def test_create_store_unknown_backend():
    """Unknown backends are a configuration error."""
    with pytest.raises(ConfigurationError) as excinfo:
        create_store(backend="mongo")
    assert excinfo.value.message == "Storage backend is not configured"


@pytest.mark.parametrize("module", ["schoolpay.storage", "schoolpay.storage.base", "schoolpay.domain"])
def test_packages_import_on_their_own(module):
    """Storage and domain import cleanly in either order."""
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}; from schoolpay.domain import LedgerService"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0, result.stderr
