"""
Fulfillment Orchestrator
========================

Moves orders through pending -> confirmed -> shipped -> delivered (with
cancellation from pending or confirmed) and creates the Shiprocket
shipment when an order is confirmed.

Rules kept here:
- Illegal edges and missing tracking codes are rejected before any I/O.
- Every remote call is preceded by a session check.
- The store is patched only after the backend has confirmed a change.
- A shipment is created at most once per order: the cached
  ``shiprocket_created`` flag is checked under the order's lock before the
  gateway is called, so a second request waits for the first and then
  sees the updated cache.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace

from ...core.exceptions import SessionExpired, ShipDeskError
from ...core.logging_service import LoggingService
from . import outcomes
from .models import OrderStatus, can_transition
from .outcomes import Outcome

logger = logging.getLogger(__name__)


class FulfillmentOrchestrator:
    """
    Args:
        guard: SessionGuard for the console session
        orders_client: OrdersClient (list + status update)
        gateway: shipment gateway with create/track/cancel
        store: OrderStore shared with the presentation layer
    """

    def __init__(self, guard, orders_client, gateway, store):
        self.guard = guard
        self.orders_client = orders_client
        self.gateway = gateway
        self.store = store
        # order id -> [RLock, number of callers using it]
        self._locks = {}
        self._locks_lock = threading.Lock()

    @contextmanager
    def _order_lock(self, order_id):
        """Serialize operations on one order; other orders are unaffected."""
        key = str(order_id)
        with self._locks_lock:
            entry = self._locks.setdefault(key, [threading.RLock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def _admin_id(self):
        profile = self.guard.profile
        return profile.get('adminId') or profile.get('id')

    # ===== Listing =====

    def load_page(self, page=1, limit=None) -> Outcome:
        """Fetch a page of orders and replace the store's contents."""
        try:
            self.guard.authorize()
            orders, pagination = self.orders_client.list_orders(page, limit)
        except SessionExpired as e:
            return Outcome(outcomes.SESSION_EXPIRED, message=str(e))
        except ShipDeskError as e:
            LoggingService.error('orders', f"Failed to load orders page {page}: {e}")
            return Outcome(outcomes.LOAD_FAILED, message=str(e))

        self.store.load_page(page, orders, pagination)
        return Outcome(outcomes.SUCCESS, data={'pagination': self.store.pagination.to_dict()})

    # ===== Status transitions =====

    def transition(self, order, new_status) -> Outcome:
        """
        Change an order's status, creating its shipment when it is confirmed

        A failed shipment after a successful status change is reported as
        PARTIAL_FAILURE; the status change stays committed.
        """
        with self._order_lock(order.id):
            # Prefer the cached copy: it reflects every confirmed patch so far
            current = self.store.find(order.id) or order

            if new_status == current.status:
                return Outcome(outcomes.SUCCESS, order=current, message='Status unchanged')

            if not can_transition(current.status, new_status):
                return Outcome(
                    outcomes.INVALID_TRANSITION,
                    order=current,
                    message=f'Cannot change status from "{current.status}" to "{new_status}"',
                )

            try:
                self.guard.authorize()
                self.orders_client.update_status(current.id, new_status)
            except SessionExpired as e:
                return Outcome(outcomes.SESSION_EXPIRED, order=current, message=str(e))
            except ShipDeskError as e:
                LoggingService.error('orders', f"Status update failed for order {current.id}: {e}",
                                     {'from': current.status, 'to': new_status})
                return Outcome(outcomes.UPDATE_FAILED, order=current, message=str(e))

            updated = (self.store.upsert(current.id, {'status': new_status})
                       or replace(current, status=new_status))
            LoggingService.log_user_action(
                'orders', f"status {current.status} -> {new_status} for order {current.id}",
                user_id=self._admin_id(),
            )

            if new_status != OrderStatus.CONFIRMED or current.shiprocket_created:
                return Outcome(outcomes.SUCCESS, order=updated, message=f'Order marked {new_status}')

            shipment = self._create_shipment(updated)
            if shipment.ok:
                return Outcome(outcomes.SUCCESS, order=shipment.order or updated, shipment=shipment,
                               message='Order confirmed and shipment created')

            return Outcome(
                outcomes.PARTIAL_FAILURE,
                order=updated,
                shipment=shipment,
                message='Order confirmed, but the shipment could not be created. Retry shipment creation.',
            )

    # ===== Shipments =====

    def create_shipment(self, order_id) -> Outcome:
        """
        Create the shipment for a cached order unless one already exists

        A pending order is confirmed on the backend once its shipment
        exists. If that status update fails the shipment stays recorded and
        the result is PARTIAL_FAILURE with the status step attached.
        """
        with self._order_lock(order_id):
            order = self.store.find(order_id)
            if order is None:
                return Outcome(outcomes.ORDER_NOT_FOUND, message=f'Order {order_id} is not loaded')

            shipment = self._create_shipment(order)
            if shipment.kind != outcomes.SUCCESS or order.status != OrderStatus.PENDING:
                return shipment

            status_update = self._confirm_after_shipment(shipment.order)
            if status_update.ok:
                return Outcome(outcomes.SUCCESS, order=status_update.order, shipment=shipment,
                               status_update=status_update,
                               message='Shipment created and order confirmed')

            return Outcome(
                outcomes.PARTIAL_FAILURE,
                order=shipment.order,
                shipment=shipment,
                status_update=status_update,
                message='Shipment created, but the order could not be marked confirmed. Retry the status change.',
            )

    def _confirm_after_shipment(self, order) -> Outcome:
        # Caller holds the order lock
        try:
            self.guard.authorize()
            self.orders_client.update_status(order.id, OrderStatus.CONFIRMED)
        except SessionExpired as e:
            return Outcome(outcomes.SESSION_EXPIRED, order=order, message=str(e))
        except ShipDeskError as e:
            LoggingService.error('orders', f"Auto-confirm failed for order {order.id}: {e}")
            return Outcome(outcomes.UPDATE_FAILED, order=order, message=str(e))

        updated = (self.store.upsert(order.id, {'status': OrderStatus.CONFIRMED})
                   or replace(order, status=OrderStatus.CONFIRMED))
        LoggingService.log_user_action(
            'orders', f"status {order.status} -> {OrderStatus.CONFIRMED} for order {order.id}",
            user_id=self._admin_id(),
        )
        return Outcome(outcomes.SUCCESS, order=updated, message='Order marked confirmed')

    def _create_shipment(self, order) -> Outcome:
        # Caller holds the order lock
        if order.shiprocket_created:
            return Outcome(outcomes.ALREADY_CREATED, order=order,
                           message='Shipment already exists for this order')

        if order.is_terminal:
            return Outcome(outcomes.ORDER_CLOSED, order=order,
                           message=f'Order is {order.status}; no shipment can be created')

        try:
            self.guard.authorize()
        except SessionExpired as e:
            return Outcome(outcomes.SESSION_EXPIRED, order=order, message=str(e))

        try:
            shipment = self.gateway.create(order.id)
        except SessionExpired as e:
            return Outcome(outcomes.SESSION_EXPIRED, order=order, message=str(e))
        except Exception as e:
            # Provider failures are opaque; shiprocket_created stays False so a retry is safe
            LoggingService.log_error_with_traceback('shiprocket', e, {'order_id': order.id})
            return Outcome(outcomes.SHIPMENT_CREATION_FAILED, order=order,
                           message=str(e) or 'Shipment creation failed')

        shipment = shipment or {}
        if not shipment.get('shiprocket_order_id'):
            LoggingService.error('shiprocket', f"Shipment for order {order.id} has no Shiprocket order ID",
                                 {'response': shipment})
            return Outcome(outcomes.SHIPMENT_CREATION_FAILED, order=order,
                           message='Shiprocket did not return an order ID')

        patch = {
            'shiprocket_created': True,
            'shiprocket_order_id': str(shipment['shiprocket_order_id']),
            'shipment_id': shipment.get('shipment_id') or '',
            'awb_code': shipment.get('awb_code') or '',
            'courier_name': shipment.get('courier_name') or '',
        }
        updated = self.store.upsert(order.id, patch) or replace(order, **patch)

        LoggingService.log_user_action(
            'shiprocket', f"created shipment for order {order.id}",
            user_id=self._admin_id(),
            details={'shiprocket_order_id': patch['shiprocket_order_id'], 'awb_code': patch['awb_code']},
        )
        return Outcome(outcomes.SUCCESS, order=updated, message='Shipment created')

    def track(self, order) -> Outcome:
        """Read-only tracking lookup; never touches the store."""
        if not order.awb_code:
            return Outcome(outcomes.MISSING_TRACKING_CODE, order=order,
                           message='No AWB code assigned yet')

        try:
            self.guard.authorize()
            snapshot = self.gateway.track(order.awb_code)
        except SessionExpired as e:
            return Outcome(outcomes.SESSION_EXPIRED, order=order, message=str(e))
        except ShipDeskError as e:
            LoggingService.warning('shiprocket', f"Tracking failed for AWB {order.awb_code}: {e}")
            return Outcome(outcomes.TRACKING_FAILED, order=order, message=str(e))

        return Outcome(outcomes.SUCCESS, order=order, data=dict(snapshot))

    def cancel_shipment(self, order_id) -> Outcome:
        """Ask the provider to cancel the order's shipment. The cache is not patched."""
        with self._order_lock(order_id):
            order = self.store.find(order_id)
            if order is None:
                return Outcome(outcomes.ORDER_NOT_FOUND, message=f'Order {order_id} is not loaded')
            if not order.shiprocket_created:
                return Outcome(outcomes.NO_SHIPMENT, order=order,
                               message='This order has no shipment to cancel')

            try:
                self.guard.authorize()
                ack = self.gateway.cancel(order.id)
            except SessionExpired as e:
                return Outcome(outcomes.SESSION_EXPIRED, order=order, message=str(e))
            except ShipDeskError as e:
                LoggingService.error('shiprocket', f"Cancel failed for order {order_id}: {e}")
                return Outcome(outcomes.CANCEL_FAILED, order=order, message=str(e))

        LoggingService.log_user_action('shiprocket', f"cancelled shipment for order {order_id}",
                                       user_id=self._admin_id())
        return Outcome(outcomes.SUCCESS, order=order, message='Shipment cancelled', data=dict(ack or {}))
