"""
Transport Client
================

Thin wrapper over a ``requests.Session`` for the ShipDesk backend.
Attaches the bearer token, applies the timeout, and turns every failure
into one of three exceptions:

- SessionExpired  -- local expiry, or HTTP 401 from the backend
- TransportError  -- no response at all (timeout, connection error)
- RemoteError     -- any other non-2xx response
"""

import logging
from typing import Any, Dict, Optional

import requests

from .exceptions import RemoteError, SessionExpired, TransportError
from .logging_service import LoggingService

logger = logging.getLogger(__name__)

AUTH_REJECTED_STATUS = 401


class TransportClient:
    """HTTP client bound to one backend and one SessionGuard."""

    def __init__(self, base_url: str, guard, timeout: float = 30, http: requests.Session = None):
        self.base_url = base_url.rstrip('/')
        self.guard = guard
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.setdefault('Content-Type', 'application/json')

    def get(self, path, params=None, auth=True):
        return self.request('GET', path, params=params, auth=auth)

    def post(self, path, json=None, auth=True):
        return self.request('POST', path, json=json, auth=auth)

    def put(self, path, json=None, auth=True):
        return self.request('PUT', path, json=json, auth=auth)

    def request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                json: Any = None, auth: bool = True) -> Any:
        """
        Issue a request and return the decoded JSON body.

        Args:
            method: HTTP method
            path: path relative to base_url, e.g. "/orders/42/status"
            params: query string parameters
            json: request body
            auth: attach the bearer token (raises SessionExpired when there is none)

        Returns:
            Decoded JSON body, or {} for an empty body
        """
        headers = {}
        if auth:
            # Raises SessionExpired before anything goes on the wire
            headers['Authorization'] = f"Bearer {self.guard.authorize()}"

        url = f"{self.base_url}/{path.lstrip('/')}"

        try:
            response = self.http.request(
                method, url, params=params, json=json, headers=headers, timeout=self.timeout
            )
        except requests.Timeout as e:
            LoggingService.warning('transport', f"API {method} {path} timed out after {self.timeout}s")
            raise TransportError(f"Request timed out: {method} {path}") from e
        except requests.RequestException as e:
            LoggingService.warning('transport', f"API {method} {path} failed: {e}")
            raise TransportError(f"Request failed: {e}") from e

        LoggingService.log_api_call('transport', path, method, response.status_code)

        if response.status_code == AUTH_REJECTED_STATUS and auth:
            self.guard.on_rejected()
            raise SessionExpired(rejected=True)

        payload = self._decode(response)

        if not response.ok:
            message = None
            if isinstance(payload, dict):
                message = payload.get('message') or payload.get('error')
            raise RemoteError(
                message or f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                payload=payload if isinstance(payload, dict) else None,
            )

        return payload

    @staticmethod
    def _decode(response):
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            logger.debug(f"Non-JSON response body ({response.status_code})")
            return {'message': response.text}
