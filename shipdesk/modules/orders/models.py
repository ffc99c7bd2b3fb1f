"""
Order Models
============

Immutable snapshots of the backend's order records. The console never
creates orders; it reads them, and patches status and shipment fields
after the backend has confirmed a change.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Optional, Tuple


class OrderStatus:
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'

    ALL = (PENDING, CONFIRMED, SHIPPED, DELIVERED, CANCELLED)
    TERMINAL = (DELIVERED, CANCELLED)


class PaymentStatus:
    PENDING = 'pending'
    PAID = 'paid'


# Allowed forward edges; terminal states have none
TRANSITIONS = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
    OrderStatus.SHIPPED: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}


def can_transition(current, new_status):
    return new_status in TRANSITIONS.get(current, ())


def _money(value):
    try:
        return max(float(value or 0), 0.0)
    except (TypeError, ValueError):
        return 0.0


def _text(value):
    return '' if value is None else str(value)


def _parse_timestamp(value):
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        # Backend emits JavaScript ISO strings ("...Z")
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    name: str
    quantity: int = 1
    unit_price: float = 0.0

    @property
    def subtotal(self):
        return self.quantity * self.unit_price

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'OrderItem':
        product = data.get('product') if isinstance(data.get('product'), dict) else {}
        try:
            quantity = max(int(data.get('quantity') or 1), 1)
        except (TypeError, ValueError):
            quantity = 1
        return cls(
            product_id=_text(data.get('productId') or product.get('_id') or data.get('product')),
            name=_text(data.get('name') or product.get('name')),
            quantity=quantity,
            unit_price=_money(data.get('unitPrice', data.get('price'))),
        )

    def to_dict(self):
        return {
            'productId': self.product_id,
            'name': self.name,
            'quantity': self.quantity,
            'unitPrice': self.unit_price,
        }


@dataclass(frozen=True)
class Order:
    id: str
    status: str = OrderStatus.PENDING
    payment_status: str = PaymentStatus.PENDING
    subtotal: float = 0.0
    discount: float = 0.0
    shipping_charges: float = 0.0
    handling_fee: float = 0.0
    total: float = 0.0
    items: Tuple[OrderItem, ...] = ()
    shiprocket_created: bool = False
    shiprocket_order_id: str = ''
    shipment_id: str = ''
    awb_code: str = ''
    courier_name: str = ''
    created_at: Optional[datetime] = None
    user_id: str = ''
    offer_code: str = ''
    shipping_address: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self):
        return self.status in OrderStatus.TERMINAL

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Order':
        """Build a snapshot from a backend order document (camelCase keys)."""
        order_id = data.get('_id') or data.get('id')
        if not order_id:
            raise ValueError("Order payload has no id")

        return cls(
            id=str(order_id),
            status=_text(data.get('status') or OrderStatus.PENDING).lower(),
            payment_status=_text(data.get('paymentStatus') or PaymentStatus.PENDING).lower(),
            subtotal=_money(data.get('subtotal')),
            discount=_money(data.get('discount')),
            shipping_charges=_money(data.get('shippingCharges')),
            handling_fee=_money(data.get('handlingFee')),
            total=_money(data.get('total')),
            items=tuple(OrderItem.from_api(item) for item in data.get('items') or ()),
            shiprocket_created=bool(data.get('shiprocketCreated')),
            shiprocket_order_id=_text(data.get('shiprocketOrderId')),
            shipment_id=_text(data.get('shipmentId')),
            awb_code=_text(data.get('awbCode')),
            courier_name=_text(data.get('courierName')),
            created_at=_parse_timestamp(data.get('createdAt')),
            user_id=_text(data.get('userId')),
            offer_code=_text(data.get('offerCode')),
            shipping_address=dict(data.get('shippingAddress') or {}),
        )

    def to_dict(self):
        """JSON shape handed to the presentation layer."""
        return {
            'id': self.id,
            'status': self.status,
            'paymentStatus': self.payment_status,
            'subtotal': self.subtotal,
            'discount': self.discount,
            'shippingCharges': self.shipping_charges,
            'handlingFee': self.handling_fee,
            'total': self.total,
            'items': [item.to_dict() for item in self.items],
            'shiprocketCreated': self.shiprocket_created,
            'shiprocketOrderId': self.shiprocket_order_id,
            'shipmentId': self.shipment_id,
            'awbCode': self.awb_code,
            'courierName': self.courier_name,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'userId': self.user_id,
            'offerCode': self.offer_code,
            'shippingAddress': dict(self.shipping_address),
        }


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = 10
    total: int = 0
    total_pages: int = 1

    @classmethod
    def from_api(cls, data, page=1, limit=10):
        data = data or {}

        def _int(key, default):
            try:
                return int(data.get(key, default))
            except (TypeError, ValueError):
                return default

        return cls(
            page=_int('page', page),
            limit=_int('limit', limit),
            total=_int('total', 0),
            total_pages=max(_int('totalPages', 1), 1),
        )

    def to_dict(self):
        data = asdict(self)
        data['totalPages'] = data.pop('total_pages')
        return data
