"""ShipDesk exceptions.

Raised by the transport, session and gateway layers. The fulfillment
orchestrator catches these and translates them into outcomes; nothing
above it sees a raw exception.
"""


class ShipDeskError(Exception):
    """Base class for every error raised by ShipDesk."""


class SessionExpired(ShipDeskError):
    """No live session: expired locally, logged out, or rejected by the backend."""

    def __init__(self, message='Session expired. Please login again.', rejected=False):
        super().__init__(message)
        self.rejected = rejected


class TransportError(ShipDeskError):
    """The request never produced a response (timeout, DNS, connection reset)."""


class RemoteError(ShipDeskError):
    """The backend answered with a non-2xx status."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


class ProviderError(ShipDeskError):
    """The shipment provider answered, but not with a usable shipment."""
