"""
Shared fixtures for the ShipDesk test suite.

Run with: pytest -v
Install test dependencies with: pip install -e ".[dev]"
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from flask import Flask

from shipdesk import ShipDesk
from shipdesk.modules.auth import MemorySessionStorage, SessionGuard
from shipdesk.modules.orders import FulfillmentOrchestrator, Order, OrderStore, Pagination

API_BASE_URL = "http://backend.test/api"


class FakeClock:
    """Injectable clock so expiry can be tested without waiting."""

    def __init__(self, now=None):
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_response(status_code=200, payload=None, text=None):
    """A requests.Response stand-in with the attributes the transport reads."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    if payload is not None:
        response.content = json.dumps(payload).encode()
        response.json.return_value = payload
        response.text = json.dumps(payload)
    elif text is not None:
        response.content = text.encode()
        response.json.side_effect = ValueError("not json")
        response.text = text
    else:
        response.content = b""
        response.text = ""
    return response


class FakeBackend:
    """
    Routes ``http.request(method, url, ...)`` calls to canned responses.

    ``routes`` maps (METHOD, path) to a response, an exception instance, or
    a callable returning either. Every call is recorded in ``calls``.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.http = MagicMock()
        self.http.headers = {}
        self.http.request.side_effect = self._dispatch

    def on(self, method, path, status_code=200, payload=None, error=None):
        self.routes[(method, path)] = error if error is not None else make_response(status_code, payload)

    def calls_to(self, method, path):
        return [c for c in self.calls if c[0] == method and c[1] == path]

    def _dispatch(self, method, url, **kwargs):
        path = url[len(API_BASE_URL):]
        self.calls.append((method, path, kwargs))
        result = self.routes.get((method, path))
        if callable(result) and not isinstance(result, MagicMock):
            result = result()
        if isinstance(result, Exception):
            raise result
        if result is None:
            return make_response(404, {"message": f"No route for {method} {path}"})
        return result


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemorySessionStorage()


@pytest.fixture
def guard(storage, clock):
    """A SessionGuard with a live session."""
    guard = SessionGuard(storage=storage, lifetime=timedelta(days=7), clock=clock)
    guard.start("token-123", {"adminId": "admin1", "name": "Admin"})
    return guard


@pytest.fixture
def pending_order():
    return Order(id="X1", status="pending", shiprocket_created=False,
                 shipping_address={"name": "Asha Rao", "phone": "9876543210"})


@pytest.fixture
def store(pending_order):
    store = OrderStore()
    store.load_page(1, [
        pending_order,
        Order(id="X2", status="confirmed", shiprocket_created=True, shiprocket_order_id="SR9",
              awb_code="AWB9"),
        Order(id="X3", status="delivered", shiprocket_created=True, shiprocket_order_id="SR3"),
    ], Pagination(page=1, limit=10, total=3, total_pages=1))
    return store


@pytest.fixture
def orders_client():
    client = MagicMock()
    client.update_status.return_value = {"success": True}
    return client


@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.create.return_value = {
        "shiprocket_order_id": "SR1",
        "shipment_id": "S1",
        "awb_code": "AWB1",
        "courier_name": "Delhivery",
    }
    gateway.track.return_value = {"status": "IN TRANSIT", "location": "Mumbai"}
    gateway.cancel.return_value = {"success": True}
    return gateway


@pytest.fixture
def orchestrator(guard, orders_client, gateway, store):
    return FulfillmentOrchestrator(guard, orders_client, gateway, store)


# ---------------------------------------------------------------------------
# Flask fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def app(backend, clock):
    """Flask app with ShipDesk wired to the fake backend."""
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SECRET_KEY"] = "test-secret"
    app.config["API_BASE_URL"] = API_BASE_URL
    app.config["SESSION_DB"] = ""
    app.config["LOGS_DB"] = ""
    ShipDesk(app, {"http": backend.http, "clock": clock})
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logged_in(client, backend):
    """Log the admin in through the real login route."""
    backend.on("POST", "/admin/login", payload={
        "adminId": "admin1", "name": "Admin", "id": "a1", "token": "token-abc",
    })
    response = client.post("/admin/login", json={"adminId": "admin1", "password": "secret"})
    assert response.status_code == 200
    return client


ORDER_ROWS = [
    {"_id": "X1", "status": "pending", "paymentStatus": "paid", "total": 499,
     "userId": "u-100", "offerCode": "DIWALI10",
     "shippingAddress": {"name": "Asha Rao", "phone": "9876543210"},
     "items": [{"productId": "p1", "name": "Besan Laddu", "quantity": 2, "price": 249.5}]},
    {"_id": "X2", "status": "confirmed", "shiprocketCreated": True, "shiprocketOrderId": "SR9",
     "awbCode": "AWB9", "userId": "u-200",
     "shippingAddress": {"name": "Vikram Shah", "phone": "9000000000"}},
]


@pytest.fixture
def orders_page(backend):
    backend.on("GET", "/orders", payload={
        "orders": ORDER_ROWS,
        "pagination": {"page": 1, "limit": 10, "total": 2, "totalPages": 1},
    })
    return ORDER_ROWS
