"""Flask application serving the snapshot endpoints.

Both endpoints are thin: GET returns the latest stored snapshot as-is and
POST overwrites it wholesale with whatever collections the body carries.
"""

from typing import Any, Callable, Optional

from flask import Blueprint, Flask, current_app, jsonify, request

from schoolpay.domain.errors import StorageError
from schoolpay.storage.base import SnapshotKind, SnapshotStore, coerce_collections
from schoolpay.storage.factories import create_store

STORE_KEY = "schoolpay.store"

api_bp = Blueprint("api", __name__, url_prefix="/api")


def get_store() -> SnapshotStore:
    """Return the app's store, creating it from the environment on first use.

    Raises:
        ConfigurationError: If the configured backend is missing settings
    """
    store = current_app.extensions.get(STORE_KEY)
    if store is None:
        store = create_store()
        current_app.extensions[STORE_KEY] = store
    return store


def read_body() -> dict[str, Any]:
    """Parse the request body as JSON; anything malformed counts as empty."""
    body = request.get_json(force=True, silent=True)
    return body if isinstance(body, dict) else {}


def _handle(label: str, view: Callable[[], Any]) -> Any:
    try:
        return view()
    except StorageError as e:
        current_app.logger.error("%s: %s", e.message, e.detail)
        return jsonify({"message": e.message, "error": e.detail or e.message}), 500
    except Exception as e:
        current_app.logger.exception("Unexpected error handling %s request", label)
        return jsonify({"message": f"Failed to process {label} request", "error": str(e) or "Unknown error"}), 500


@api_bp.route("/transactions", methods=["GET", "POST"])
def transactions():
    def view():
        store = get_store()
        if request.method == "GET":
            snapshot = store.load_snapshot(SnapshotKind.TRANSACTIONS)
            return jsonify({"transactions": snapshot.get("transactions"), "updatedAt": snapshot.updated_at})

        collections = coerce_collections(SnapshotKind.TRANSACTIONS, read_body())
        updated_at = store.save_snapshot(SnapshotKind.TRANSACTIONS, collections)
        return jsonify({"ok": True, "count": len(collections["transactions"]), "updatedAt": updated_at})

    return _handle("transactions", view)


@api_bp.route("/school-control", methods=["GET", "POST"])
def school_control():
    def view():
        store = get_store()
        if request.method == "GET":
            snapshot = store.load_snapshot(SnapshotKind.SCHOOL_CONTROL)
            return jsonify(
                {
                    "parents": snapshot.get("parents"),
                    "students": snapshot.get("students"),
                    "updatedAt": snapshot.updated_at,
                }
            )

        collections = coerce_collections(SnapshotKind.SCHOOL_CONTROL, read_body())
        updated_at = store.save_snapshot(SnapshotKind.SCHOOL_CONTROL, collections)
        return jsonify(
            {
                "ok": True,
                "parentsCount": len(collections["parents"]),
                "studentsCount": len(collections["students"]),
                "updatedAt": updated_at,
            }
        )

    return _handle("school-control", view)


def method_not_allowed(error):
    return jsonify({"message": "Method not allowed"}), 405


def create_app(store: Optional[SnapshotStore] = None) -> Flask:
    """Create the Flask app.

    Args:
        store: Store to serve; when omitted one is created from the
            environment on the first request

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)
    app.json.ensure_ascii = False
    app.json.sort_keys = False
    if store is not None:
        app.extensions[STORE_KEY] = store
    app.register_blueprint(api_bp)
    app.register_error_handler(405, method_not_allowed)
    return app
