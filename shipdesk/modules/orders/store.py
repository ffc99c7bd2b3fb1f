"""
Order Store
===========

In-memory copy of the order page currently shown in the console.
Pages are replaced wholesale after a list fetch and patched one order at a
time after a confirmed mutation. The store never talks to the network.
"""

import logging
import threading
from dataclasses import replace
from typing import Dict, Iterable, Optional, Tuple

from .models import Order, Pagination

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ('id', 'user_id', 'offer_code')
ADDRESS_SEARCH_FIELDS = ('name', 'phone')


class OrderStore:
    """Page-scoped cache of Order snapshots."""

    def __init__(self):
        self._lock = threading.Lock()
        self._orders: Tuple[Order, ...] = ()
        self._pagination = Pagination()

    # ===== Reads =====

    @property
    def orders(self) -> Tuple[Order, ...]:
        return self._orders

    @property
    def pagination(self) -> Pagination:
        return self._pagination

    @property
    def page(self) -> int:
        return self._pagination.page

    def __len__(self):
        return len(self._orders)

    def find(self, order_id) -> Optional[Order]:
        order_id = str(order_id)
        for order in self._orders:
            if order.id == order_id:
                return order
        return None

    def filter(self, status=None, search=''):
        """
        Filter the current page for display

        Args:
            status: exact status to keep; None or 'all' keeps everything
            search: case-insensitive substring matched against order id,
                user id, offer code, shipping name and shipping phone
        """
        orders = self._orders
        if status and status != 'all':
            orders = tuple(o for o in orders if o.status == status)

        query = (search or '').strip().lower()
        if not query:
            return list(orders)

        return [o for o in orders if self._matches(o, query)]

    @staticmethod
    def _matches(order: Order, query: str) -> bool:
        haystack = [getattr(order, name) or '' for name in SEARCH_FIELDS]
        haystack += [str(order.shipping_address.get(key) or '') for key in ADDRESS_SEARCH_FIELDS]
        return any(query in value.lower() for value in haystack)

    # ===== Writes =====

    def load_page(self, page: int, orders: Iterable[Order], pagination: Optional[Pagination] = None):
        """Replace the materialized page after a fresh list fetch."""
        orders = tuple(orders)
        if pagination is None:
            pagination = Pagination(page=page, limit=len(orders) or 10, total=len(orders), total_pages=1)
        elif pagination.page != page:
            pagination = replace(pagination, page=page)

        with self._lock:
            self._orders = orders
            self._pagination = pagination

        logger.debug(f"Loaded page {page} with {len(orders)} orders")

    def upsert(self, order_id, patch: Dict) -> Optional[Order]:
        """
        Merge patch fields into the cached order

        Returns the merged snapshot, or None when the order is not on the
        current page (not an error: it may live on another page).
        """
        order_id = str(order_id)
        with self._lock:
            for index, order in enumerate(self._orders):
                if order.id != order_id:
                    continue
                merged = replace(order, **patch)
                self._orders = self._orders[:index] + (merged,) + self._orders[index + 1:]
                return merged

        logger.debug(f"Order {order_id} not on current page; patch skipped")
        return None
