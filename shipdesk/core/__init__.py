"""
ShipDesk Core
=============

Shared infrastructure: configuration, SQLite helpers, exceptions,
logging and the HTTP transport.
"""

from .config import Config, get_config
from .exceptions import ProviderError, RemoteError, SessionExpired, ShipDeskError, TransportError
from .logging_service import LoggingService
from .transport import TransportClient

__all__ = ['Config', 'get_config', 'ShipDeskError', 'SessionExpired', 'TransportError',
           'RemoteError', 'ProviderError', 'LoggingService', 'TransportClient']
