"""Tests for the HTTP snapshot endpoints."""

import pytest

from schoolpay.api import create_app
from schoolpay.domain.errors import StorageError
from schoolpay.storage.base import StoredSnapshot


@pytest.fixture
def client(temp_store):
    """Flask test client serving the temporary store."""
    app = create_app(temp_store)
    app.config["TESTING"] = True
    return app.test_client()


def test_get_transactions_empty(client):
    """An empty store returns no transactions and no timestamp."""
    response = client.get("/api/transactions")

    assert response.status_code == 200
    assert response.get_json() == {"transactions": [], "updatedAt": None}


def test_post_then_get_transactions(client):
    """POST replaces the ledger and GET returns it."""
    response = client.post("/api/transactions", json={"transactions": [{"id": "R-1"}, {"id": "R-2"}]})

    assert response.status_code == 200
    body = response.get_json()
    assert body["ok"] is True
    assert body["count"] == 2
    assert body["updatedAt"].endswith("Z")

    body = client.get("/api/transactions").get_json()
    assert body["transactions"] == [{"id": "R-1"}, {"id": "R-2"}]
    assert body["updatedAt"] is not None


def test_post_school_control(client):
    """POST replaces parents and students together."""
    response = client.post(
        "/api/school-control",
        json={"parents": [{"name": "منى"}], "students": [{"name": "Omar"}, {"name": "Laila"}]},
    )

    body = response.get_json()
    assert body["ok"] is True
    assert body["parentsCount"] == 1
    assert body["studentsCount"] == 2

    body = client.get("/api/school-control").get_json()
    assert body["parents"] == [{"name": "منى"}]
    assert len(body["students"]) == 2


def test_post_malformed_body_is_empty(client):
    """Unparseable bodies and non-list collections count as empty."""
    client.post("/api/transactions", json={"transactions": [{"id": "R-1"}]})

    response = client.post("/api/transactions", data="{not json", content_type="application/json")
    assert response.status_code == 200
    assert response.get_json()["count"] == 0
    assert client.get("/api/transactions").get_json()["transactions"] == []

    response = client.post("/api/school-control", json={"parents": "nope"})
    assert response.get_json()["parentsCount"] == 0


def test_post_without_content_type(client):
    """JSON bodies are accepted without a JSON content type."""
    response = client.post("/api/transactions", data='{"transactions": [{"id": "R-1"}]}')
    assert response.get_json()["count"] == 1


@pytest.mark.parametrize("path", ["/api/transactions", "/api/school-control"])
def test_other_methods_not_allowed(client, path):
    """Unsupported methods get a JSON 405."""
    response = client.delete(path)

    assert response.status_code == 405
    assert response.get_json() == {"message": "Method not allowed"}


class BrokenStore:
    """Store whose every call fails."""

    def load_snapshot(self, kind):
        raise StorageError("Failed to load transactions from Supabase", "connection refused")

    def save_snapshot(self, kind, collections):
        raise StorageError("Failed to save transactions to Supabase", "permission denied")


def test_storage_error_is_500():
    """Backend failures become JSON 500 responses."""
    client = create_app(BrokenStore()).test_client()

    response = client.get("/api/transactions")
    assert response.status_code == 500
    assert response.get_json() == {
        "message": "Failed to load transactions from Supabase",
        "error": "connection refused",
    }

    response = client.post("/api/transactions", json={"transactions": []})
    assert response.status_code == 500
    assert response.get_json()["error"] == "permission denied"


def test_missing_configuration_is_500(monkeypatch):
    """A backend without settings is reported on the first request."""
    monkeypatch.setenv("SCHOOLPAY_BACKEND", "supabase")
    for name in ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_KEY", "SUPABASE_ANON_KEY"):
        monkeypatch.delenv(name, raising=False)

    client = create_app().test_client()
    response = client.get("/api/school-control")

    assert response.status_code == 500
    assert response.get_json()["message"] == "Supabase env vars are missing"


def test_unexpected_error_is_500():
    """Unexpected failures are reported without crashing the server."""

    class ExplodingStore:
        def load_snapshot(self, kind):
            return StoredSnapshot(collections={"parents": [], "students": []}, updated_at=None)

        def save_snapshot(self, kind, collections):
            raise RuntimeError("boom")

    client = create_app(ExplodingStore()).test_client()
    response = client.post("/api/school-control", json={})

    assert response.status_code == 500
    assert response.get_json() == {"message": "Failed to process school-control request", "error": "boom"}
    assert client.get("/api/school-control").status_code == 200


def test_concurrent_requests_share_one_store(temp_store):
    """Parallel GET and POST requests against one store all succeed."""
    from concurrent.futures import ThreadPoolExecutor

    app = create_app(temp_store)
    app.config["TESTING"] = True

    def worker(worker_id):
        client = app.test_client()
        statuses = []
        for i in range(20):
            if i % 2:
                response = client.post(
                    "/api/transactions", json={"transactions": [{"id": f"R-{worker_id}-{i}"}]}
                )
            else:
                response = client.get("/api/transactions")
            statuses.append(response.status_code)
        return statuses

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = list(pool.map(worker, range(6)))

    assert all(status == 200 for statuses in results for status in statuses)
    body = app.test_client().get("/api/transactions").get_json()
    assert len(body["transactions"]) == 1
