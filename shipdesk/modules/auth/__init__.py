"""
ShipDesk Auth Module

Admin session management for the console:
- Login / logout against the backend
- Session expiry and credential rejection handling
- Password change
"""

from flask import Blueprint

auth_bp = Blueprint('auth', __name__, url_prefix='/admin')

from . import routes
from .client import AuthClient
from .session import Session, SessionGuard
from .storage import MemorySessionStorage, SQLiteSessionStorage
from .utils import session_required

__all__ = ['auth_bp', 'AuthClient', 'Session', 'SessionGuard',
           'MemorySessionStorage', 'SQLiteSessionStorage', 'session_required']
