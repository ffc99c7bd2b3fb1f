# shipdesk/modules/orders/client.py
import logging
from urllib.parse import quote

from ...core.exceptions import RemoteError
from .models import Order, Pagination

logger = logging.getLogger(__name__)


class OrdersClient:
    """Backend calls for the admin order list and status updates."""

    def __init__(self, transport, page_size=10):
        self.transport = transport
        self.page_size = page_size

    def list_orders(self, page=1, limit=None):
        """
        Fetch one page of orders

        Returns:
            (list of Order, Pagination). A bare-array response is treated as
            a single page holding every order.
        """
        limit = limit or self.page_size
        payload = self.transport.get('/orders', params={'page': page, 'limit': limit})

        if isinstance(payload, list):
            orders = self._parse(payload)
            return orders, Pagination(page=1, limit=max(limit, len(orders)),
                                      total=len(orders), total_pages=1)

        if not isinstance(payload, dict):
            raise RemoteError(f"Unexpected order list response: {type(payload).__name__}")

        orders = self._parse(payload.get('orders') or [])
        pagination = payload.get('pagination')
        if pagination is None:
            return orders, Pagination(page=page, limit=limit, total=len(orders), total_pages=1)
        return orders, Pagination.from_api(pagination, page=page, limit=limit)

    def update_status(self, order_id, status):
        """PUT /orders/<id>/status"""
        return self.transport.put(
            f"/orders/{quote(str(order_id), safe='')}/status",
            json={'status': status},
        )

    @staticmethod
    def _parse(rows):
        orders = []
        for row in rows:
            try:
                orders.append(Order.from_api(row))
            except (ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed order row: {e}")
        return orders
