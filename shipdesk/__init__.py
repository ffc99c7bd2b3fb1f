"""
ShipDesk - Order Fulfillment Console
====================================

A Flask admin console for an e-commerce backend:
- Admin session with hard expiry and backend-rejection handling
- Paginated order list with status filter and search
- Order status lifecycle with Shiprocket shipment creation
- Shipment tracking and cancellation

Usage:
    from flask import Flask
    from shipdesk import ShipDesk

    app = Flask(__name__)
    shipdesk = ShipDesk(app)
"""

import logging
from datetime import timedelta

from flask import g, has_app_context

from .core.config import get_config
from .core.logging_service import LoggingService
from .core.transport import TransportClient
from .modules.auth import AuthClient, MemorySessionStorage, SessionGuard, SQLiteSessionStorage, auth_bp
from .modules.orders import FulfillmentOrchestrator, OrdersClient, OrderStore, orders_bp
from .modules.shiprocket import ShiprocketService

__version__ = '0.1.0'

logger = logging.getLogger(__name__)

BLUEPRINTS = {
    'auth': auth_bp,
    'orders': orders_bp,
}


class ShipDesk:
    """
    Flask extension wiring the console together.

    Args:
        app: Flask app (or call init_app later)
        options: optional overrides for collaborators, used mostly by tests:
            http    -- requests.Session-like object for the transport
            clock   -- zero-argument callable returning an aware datetime
            storage -- session storage object
            gateway -- shipment gateway replacing ShiprocketService
    """

    def __init__(self, app=None, options=None):
        self.options = options or {}
        self.guard = None
        self.transport = None
        self.auth = None
        self.orders_client = None
        self.gateway = None
        self.store = None
        self.orchestrator = None
        self._registered_modules = []

        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        with app.app_context():
            base_url = get_config('API_BASE_URL')
            timeout = float(get_config('REQUEST_TIMEOUT', 30))
            lifetime_days = float(get_config('SESSION_LIFETIME_DAYS', 7))
            page_size = int(get_config('ORDERS_PAGE_SIZE', 10))
            session_db = get_config('SESSION_DB') or None
            logs_db = get_config('LOGS_DB') or None

        LoggingService.configure(logs_db)

        storage = self.options.get('storage')
        if storage is None:
            storage = SQLiteSessionStorage(session_db) if session_db else MemorySessionStorage()

        guard_kwargs = {'storage': storage, 'lifetime': timedelta(days=lifetime_days)}
        if self.options.get('clock'):
            guard_kwargs['clock'] = self.options['clock']

        self.guard = SessionGuard(**guard_kwargs)
        self.guard.add_listener(self._on_session_lost)
        self.transport = TransportClient(base_url, self.guard, timeout=timeout,
                                         http=self.options.get('http'))
        self.auth = AuthClient(self.transport, self.guard)
        self.orders_client = OrdersClient(self.transport, page_size=page_size)
        self.gateway = self.options.get('gateway') or ShiprocketService(self.transport)
        self.store = OrderStore()
        self.orchestrator = FulfillmentOrchestrator(self.guard, self.orders_client,
                                                    self.gateway, self.store)

        for name, blueprint in BLUEPRINTS.items():
            app.register_blueprint(blueprint)
            self._registered_modules.append(name)

        app.extensions['shipdesk'] = self
        logger.info(f"ShipDesk initialised against {base_url}")

    def _on_session_lost(self, reason):
        # Teardown is already done; the response layer turns this into a login redirect
        if has_app_context():
            g.shipdesk_reauth_reason = reason

    def get_registered_modules(self):
        return list(self._registered_modules)


__all__ = ['ShipDesk', '__version__']
