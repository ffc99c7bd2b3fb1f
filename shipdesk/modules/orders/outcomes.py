"""
Fulfillment Outcomes
====================

Every orchestrator operation returns an Outcome instead of raising.
The ``kind`` tells the presentation layer what happened; ``order`` is the
cached snapshot after the operation (unchanged on failure).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .models import Order

SUCCESS = 'success'
ALREADY_CREATED = 'already_created'
INVALID_TRANSITION = 'invalid_transition'
MISSING_TRACKING_CODE = 'missing_tracking_code'
ORDER_NOT_FOUND = 'order_not_found'
ORDER_CLOSED = 'order_closed'
NO_SHIPMENT = 'no_shipment'
SESSION_EXPIRED = 'session_expired'
UPDATE_FAILED = 'update_failed'
SHIPMENT_CREATION_FAILED = 'shipment_creation_failed'
PARTIAL_FAILURE = 'partial_failure'
TRACKING_FAILED = 'tracking_failed'
CANCEL_FAILED = 'cancel_failed'
LOAD_FAILED = 'load_failed'

# Rejected before any I/O
LOCAL_ERRORS = (INVALID_TRANSITION, MISSING_TRACKING_CODE, ORDER_NOT_FOUND, ORDER_CLOSED, NO_SHIPMENT)
REMOTE_ERRORS = (UPDATE_FAILED, SHIPMENT_CREATION_FAILED, PARTIAL_FAILURE,
                 TRACKING_FAILED, CANCEL_FAILED, LOAD_FAILED)


@dataclass(frozen=True)
class Outcome:
    kind: str
    order: Optional[Order] = None
    message: str = ''
    # Result of the shipment step triggered by a transition to "confirmed"
    shipment: Optional['Outcome'] = None
    # Result of the auto-confirm that follows a manual shipment on a pending order
    status_update: Optional['Outcome'] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self):
        """True when nothing needs the admin's attention."""
        return self.kind in (SUCCESS, ALREADY_CREATED)

    @property
    def needs_reauth(self):
        if self.kind == SESSION_EXPIRED:
            return True
        return any(step is not None and step.needs_reauth for step in (self.shipment, self.status_update))

    def to_dict(self):
        result = {
            'success': self.ok,
            'outcome': self.kind,
        }
        if self.message:
            result['message' if self.ok else 'error'] = self.message
        if self.order is not None:
            result['order'] = self.order.to_dict()
        if self.shipment is not None:
            result['shipment'] = self.shipment.to_dict()
        if self.status_update is not None:
            result['statusUpdate'] = self.status_update.to_dict()
        if self.data:
            result['data'] = self.data
        return result


def http_status(outcome: Outcome) -> int:
    """HTTP status code the admin API answers with for an outcome."""
    if outcome.kind == SESSION_EXPIRED:
        return 401
    if outcome.kind == ORDER_NOT_FOUND:
        return 404
    if outcome.kind in LOCAL_ERRORS:
        return 400
    if outcome.kind in REMOTE_ERRORS:
        return 502
    return 200
