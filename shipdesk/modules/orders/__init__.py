"""
Orders Admin Module
===================

Order management for the console.

Provides:
- Paginated order listing, status filter and search
- Status changes through the fulfillment state machine
- Shiprocket shipment creation, tracking and cancellation
"""

from flask import Blueprint

orders_bp = Blueprint('orders_admin', __name__, url_prefix='/admin/orders')

from . import routes
from .client import OrdersClient
from .models import Order, OrderItem, OrderStatus, Pagination, PaymentStatus, can_transition
from .orchestrator import FulfillmentOrchestrator
from .outcomes import Outcome
from .store import OrderStore

__all__ = ['orders_bp', 'OrdersClient', 'Order', 'OrderItem', 'OrderStatus', 'Pagination',
           'PaymentStatus', 'can_transition', 'FulfillmentOrchestrator', 'Outcome', 'OrderStore']
