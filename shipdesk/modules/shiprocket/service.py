# shipdesk/modules/shiprocket/service.py
import logging
from typing import Any, Dict
from urllib.parse import quote

from ...core.exceptions import ProviderError
from ...core.logging_service import LoggingService

logger = logging.getLogger(__name__)


class ShiprocketService:
    """Shipment gateway backed by the console backend's Shiprocket proxy endpoints.

    No retries happen here: a failed create is reported once and the caller
    decides whether to try again.
    """

    def __init__(self, transport):
        self.transport = transport

    @staticmethod
    def _unwrap(payload) -> Dict[str, Any]:
        """Some backend builds nest the useful part under "data"."""
        if not isinstance(payload, dict):
            raise ProviderError(f"Unexpected Shiprocket response: {payload!r}")
        data = payload.get('data')
        return data if isinstance(data, dict) else payload

    def create(self, order_id: str) -> Dict[str, str]:
        """
        Create a Shiprocket shipment for an existing order

        Args:
            order_id: Backend order ID

        Returns:
            dict with shiprocket_order_id, shipment_id, awb_code, courier_name.
            Missing optional fields come back as empty strings.

        Raises:
            ProviderError: response did not identify the created shipment
            SessionExpired, TransportError, RemoteError: from the transport
        """
        payload = self.transport.post(f"/shiprocket/create-order/{quote(str(order_id), safe='')}")
        data = self._unwrap(payload)

        shiprocket_order_id = data.get('shiprocketOrderId')
        if not shiprocket_order_id:
            message = data.get('message') or 'Shiprocket did not return an order ID'
            raise ProviderError(message)

        shipment = {
            'shiprocket_order_id': str(shiprocket_order_id),
            'shipment_id': str(data.get('shipmentId') or ''),
            # Carrier assignment can lag behind creation
            'awb_code': str(data.get('awbCode') or ''),
            'courier_name': str(data.get('courierName') or ''),
        }

        LoggingService.info('shiprocket', f"Shipment created for order {order_id}", shipment)
        return shipment

    def track(self, awb_code: str) -> Dict[str, Any]:
        """Get the current tracking snapshot for an AWB code"""
        payload = self.transport.get(f"/shiprocket/track/{quote(awb_code, safe='')}")
        data = self._unwrap(payload)

        return {
            'status': data.get('status') or '',
            'location': data.get('location') or '',
        }

    def cancel(self, order_id: str) -> Dict[str, Any]:
        """Cancel the Shiprocket shipment attached to an order"""
        payload = self.transport.post(f"/shiprocket/cancel-order/{quote(str(order_id), safe='')}")
        LoggingService.info('shiprocket', f"Shipment cancelled for order {order_id}")
        return payload if isinstance(payload, dict) else {'result': payload}
