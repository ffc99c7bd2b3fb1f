"""
Critical Integration Tests for ShipDesk
======================================

Focused tests covering the Flask wiring: extension setup, the auth
routes, and the orders API end to end against a fake backend.
Run with: pytest tests/test_critical.py -v

NOTE: pytest is listed under extras_require["dev"] in setup.py.
Install with: pip install -e ".[dev]"
"""

import os
import shutil
import tempfile

import pytest
import requests
from flask import Flask

from shipdesk import ShipDesk
from shipdesk.core.logging_service import LoggingService
from shipdesk.core.database import Database

from .conftest import API_BASE_URL, FakeBackend


@pytest.fixture
def tmp_db_dir():
    """Create a temporary directory for test databases, cleaned up after."""
    d = tempfile.mkdtemp(prefix="shipdesk-test-")
    yield d
    shutil.rmtree(d, ignore_errors=True)


# ---------------------------------------------------------------------------
# 1. Extension initialisation -- ShipDesk(app) stores itself on the app
# ---------------------------------------------------------------------------

def test_extension_initialisation(app):
    shipdesk = app.extensions["shipdesk"]

    assert isinstance(shipdesk, ShipDesk)
    assert shipdesk.transport.base_url == API_BASE_URL
    assert sorted(shipdesk.get_registered_modules()) == ["auth", "orders"]


# ---------------------------------------------------------------------------
# 2. Routes -- every console endpoint is in the URL map
# ---------------------------------------------------------------------------

EXPECTED_RULES = [
    "/admin/login",
    "/admin/logout",
    "/admin/session",
    "/admin/change-password",
    "/admin/orders/api/orders",
    "/admin/orders/api/order/<order_id>",
    "/admin/orders/api/order/<order_id>/status",
    "/admin/orders/api/order/<order_id>/shipment",
    "/admin/orders/api/order/<order_id>/shipment/cancel",
    "/admin/orders/api/order/<order_id>/tracking",
]


def test_all_routes_registered(app):
    rules = [rule.rule for rule in app.url_map.iter_rules()]
    for rule in EXPECTED_RULES:
        assert rule in rules, f"Route {rule} missing. Routes: {sorted(rules)}"


# ---------------------------------------------------------------------------
# 3. SQLite session storage -- configured path is created and used
# ---------------------------------------------------------------------------

def test_sqlite_session_db(tmp_db_dir, clock):
    target = os.path.join(tmp_db_dir, "sub", "session.db")
    backend = FakeBackend()
    backend.on("POST", "/admin/login", payload={"adminId": "admin1", "token": "tok"})

    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["API_BASE_URL"] = API_BASE_URL
    app.config["SESSION_DB"] = target
    ShipDesk(app, {"http": backend.http, "clock": clock})

    app.test_client().post("/admin/login", json={"adminId": "admin1", "password": "pw"})
    assert os.path.isfile(target)

    # A restarted console picks the session back up
    restarted = Flask(__name__)
    restarted.config["API_BASE_URL"] = API_BASE_URL
    restarted.config["SESSION_DB"] = target
    desk = ShipDesk(restarted, {"http": backend.http, "clock": clock})
    assert desk.guard.authorize() == "tok"


# ---------------------------------------------------------------------------
# 4. Login / session / logout
# ---------------------------------------------------------------------------

def test_login_flow(logged_in, app):
    response = logged_in.get("/admin/session")
    data = response.get_json()

    assert data["authenticated"] is True
    assert data["admin"]["adminId"] == "admin1"
    assert "token" not in data["admin"]

    logged_in.post("/admin/logout")
    assert logged_in.get("/admin/session").get_json()["authenticated"] is False


def test_login_requires_fields(client):
    response = client.post("/admin/login", json={"adminId": "admin1"})
    assert response.status_code == 400


def test_login_bad_credentials(client, backend):
    backend.on("POST", "/admin/login", status_code=401, payload={"message": "Invalid credentials"})

    response = client.post("/admin/login", json={"adminId": "admin1", "password": "bad"})

    assert response.status_code == 401
    assert response.get_json()["error"] == "Invalid credentials"


def test_login_backend_unreachable(client, backend):
    backend.on("POST", "/admin/login", error=requests.ConnectionError("refused"))

    response = client.post("/admin/login", json={"adminId": "admin1", "password": "pw"})

    assert response.status_code == 502


def test_change_password(logged_in, backend):
    backend.on("POST", "/admin/change-password", payload={"message": "Password updated"})

    response = logged_in.post("/admin/change-password",
                              json={"currentPassword": "old", "newPassword": "New-pass1"})

    assert response.status_code == 200
    assert response.get_json()["message"] == "Password updated"


# ---------------------------------------------------------------------------
# 5. Auth guard -- order routes demand a live session
# ---------------------------------------------------------------------------

def test_orders_require_session(client, backend):
    response = client.get("/admin/orders/api/orders")

    assert response.status_code == 401
    data = response.get_json()
    assert data["outcome"] == "session_expired"
    assert data["redirect"] == "/admin/login"
    assert backend.calls == []


def test_session_expiry_blocks_orders(logged_in, backend, clock, orders_page):
    clock.advance(days=7, seconds=1)

    response = logged_in.get("/admin/orders/api/orders")

    assert response.status_code == 401
    assert backend.calls_to("GET", "/orders") == []


# ---------------------------------------------------------------------------
# 6. Orders listing, filter and search
# ---------------------------------------------------------------------------

def test_list_orders(logged_in, orders_page):
    data = logged_in.get("/admin/orders/api/orders?page=1").get_json()

    assert data["success"] is True
    assert [o["id"] for o in data["orders"]] == ["X1", "X2"]
    assert data["pagination"]["totalPages"] == 1
    assert data["orders"][0]["items"][0]["unitPrice"] == 249.5


def test_list_orders_filtered(logged_in, orders_page):
    data = logged_in.get("/admin/orders/api/orders?status=confirmed").get_json()
    assert [o["id"] for o in data["orders"]] == ["X2"]

    data = logged_in.get("/admin/orders/api/orders?q=diwali").get_json()
    assert [o["id"] for o in data["orders"]] == ["X1"]
    assert data["shown"] == 1
    assert data["total"] == 2


def test_list_orders_backend_failure(logged_in, backend):
    backend.on("GET", "/orders", status_code=500, payload={"message": "db down"})

    response = logged_in.get("/admin/orders/api/orders")

    assert response.status_code == 502
    assert response.get_json()["outcome"] == "load_failed"


def test_order_details_not_loaded(logged_in):
    assert logged_in.get("/admin/orders/api/order/X1").status_code == 404


# ---------------------------------------------------------------------------
# 7. Confirm order end to end
# ---------------------------------------------------------------------------

def test_confirm_order_creates_shipment(logged_in, backend, orders_page):
    backend.on("PUT", "/orders/X1/status", payload={"success": True})
    backend.on("POST", "/shiprocket/create-order/X1", payload={
        "shiprocketOrderId": "SR1", "shipmentId": "S1", "awbCode": "AWB1", "courierName": "Delhivery",
    })
    logged_in.get("/admin/orders/api/orders")

    response = logged_in.post("/admin/orders/api/order/X1/status", json={"status": "confirmed"})
    data = response.get_json()

    assert response.status_code == 200
    assert data["outcome"] == "success"
    assert data["order"]["status"] == "confirmed"
    assert data["order"]["shiprocketCreated"] is True
    assert data["order"]["awbCode"] == "AWB1"

    # Manual retry is harmless once the shipment exists
    retry = logged_in.post("/admin/orders/api/order/X1/shipment").get_json()
    assert retry["outcome"] == "already_created"
    assert len(backend.calls_to("POST", "/shiprocket/create-order/X1")) == 1


def test_confirm_order_partial_failure(logged_in, backend, orders_page):
    backend.on("PUT", "/orders/X1/status", payload={"success": True})
    backend.on("POST", "/shiprocket/create-order/X1", status_code=500, payload={"message": "Shiprocket down"})
    logged_in.get("/admin/orders/api/orders")

    response = logged_in.post("/admin/orders/api/order/X1/status", json={"status": "confirmed"})
    data = response.get_json()

    assert response.status_code == 502
    assert data["outcome"] == "partial_failure"
    assert data["order"]["status"] == "confirmed"
    assert data["order"]["shiprocketCreated"] is False
    assert data["shipment"]["outcome"] == "shipment_creation_failed"

    cached = logged_in.get("/admin/orders/api/order/X1").get_json()["order"]
    assert cached["status"] == "confirmed"


def test_invalid_transition_route(logged_in, backend, orders_page):
    logged_in.get("/admin/orders/api/orders")

    response = logged_in.post("/admin/orders/api/order/X1/status", json={"status": "delivered"})

    assert response.status_code == 400
    assert response.get_json()["outcome"] == "invalid_transition"
    assert backend.calls_to("PUT", "/orders/X1/status") == []


def test_rejected_credential_redirects(logged_in, app, backend, orders_page):
    backend.on("PUT", "/orders/X1/status", status_code=401, payload={"message": "invalid token"})
    logged_in.get("/admin/orders/api/orders")

    response = logged_in.post("/admin/orders/api/order/X1/status", json={"status": "confirmed"})

    assert response.status_code == 401
    assert response.get_json()["redirect"] == "/admin/login"
    assert not app.extensions["shipdesk"].guard.is_authorized()
    assert backend.calls_to("POST", "/shiprocket/create-order/X1") == []


# ---------------------------------------------------------------------------
# 8. Tracking and cancellation routes
# ---------------------------------------------------------------------------

def test_tracking_routes(logged_in, backend, orders_page):
    backend.on("GET", "/shiprocket/track/AWB9", payload={"status": "IN TRANSIT", "location": "Pune"})
    logged_in.get("/admin/orders/api/orders")

    missing = logged_in.get("/admin/orders/api/order/X1/tracking")
    assert missing.status_code == 400
    assert missing.get_json()["outcome"] == "missing_tracking_code"

    data = logged_in.get("/admin/orders/api/order/X2/tracking").get_json()
    assert data["data"] == {"status": "IN TRANSIT", "location": "Pune"}


def test_cancel_shipment_route(logged_in, backend, orders_page):
    backend.on("POST", "/shiprocket/cancel-order/X2", payload={"success": True})
    logged_in.get("/admin/orders/api/orders")

    response = logged_in.post("/admin/orders/api/order/X2/shipment/cancel")

    assert response.status_code == 200
    assert response.get_json()["outcome"] == "success"


# ---------------------------------------------------------------------------
# 9. Logging service -- entries persist to app_logs when LOGS_DB is set
# ---------------------------------------------------------------------------

def test_logging_service_persists(tmp_db_dir):
    path = os.path.join(tmp_db_dir, "logs.db")
    LoggingService.configure(path)
    try:
        LoggingService.info("orders", "hello", {"order_id": "X1"})
        with Database.connect(path) as conn:
            row = conn.execute("SELECT level, source, message, details FROM app_logs").fetchone()

        assert row["level"] == "INFO"
        assert row["source"] == "orders"
        assert "X1" in row["details"]
        assert LoggingService.cleanup_old_logs(days_to_keep=30) == 0
    finally:
        LoggingService.configure(None)


# ---------------------------------------------------------------------------
# 10. Config -- an empty app.config value overrides Config and env
# ---------------------------------------------------------------------------

def test_empty_app_config_disables_session_db(tmp_db_dir, monkeypatch, clock):
    from shipdesk.core.config import Config, get_config
    from shipdesk.modules.auth import MemorySessionStorage

    target = os.path.join(tmp_db_dir, "session.db")
    monkeypatch.setattr(Config, "SESSION_DB", target)

    app = Flask(__name__)
    app.config["API_BASE_URL"] = API_BASE_URL
    app.config["SESSION_DB"] = ""
    desk = ShipDesk(app, {"http": FakeBackend().http, "clock": clock})

    with app.app_context():
        assert get_config("SESSION_DB") == ""
    assert isinstance(desk.guard.storage, MemorySessionStorage)
    assert not os.path.exists(target)

    # Outside an app context the Config class still applies
    assert get_config("SESSION_DB") == target


# ---------------------------------------------------------------------------
# 11. Manual shipment routes -- auto-confirm and closed orders
# ---------------------------------------------------------------------------

def test_manual_shipment_confirms_pending_order(logged_in, backend, orders_page):
    backend.on("POST", "/shiprocket/create-order/X1", payload={"shiprocketOrderId": "SR1"})
    backend.on("PUT", "/orders/X1/status", payload={"success": True})
    logged_in.get("/admin/orders/api/orders")

    data = logged_in.post("/admin/orders/api/order/X1/shipment").get_json()

    assert data["outcome"] == "success"
    assert data["order"]["status"] == "confirmed"
    assert data["order"]["shiprocketCreated"] is True
    assert data["statusUpdate"]["outcome"] == "success"
    assert backend.calls_to("PUT", "/orders/X1/status")[0][2]["json"] == {"status": "confirmed"}


def test_manual_shipment_refused_for_cancelled_order(logged_in, backend, orders_page):
    backend.on("PUT", "/orders/X1/status", payload={"success": True})
    logged_in.get("/admin/orders/api/orders")
    logged_in.post("/admin/orders/api/order/X1/status", json={"status": "cancelled"})

    response = logged_in.post("/admin/orders/api/order/X1/shipment")

    assert response.status_code == 400
    assert response.get_json()["outcome"] == "order_closed"
    assert backend.calls_to("POST", "/shiprocket/create-order/X1") == []


def test_cancel_route_without_shipment(logged_in, backend, orders_page):
    logged_in.get("/admin/orders/api/orders")

    response = logged_in.post("/admin/orders/api/order/X1/shipment/cancel")

    assert response.status_code == 400
    assert response.get_json()["outcome"] == "no_shipment"
    assert backend.calls_to("POST", "/shiprocket/cancel-order/X1") == []
