"""
Session Guard
=============

Owns the admin session lifecycle. Every mutating call asks the guard first;
expiry, logout and backend rejection all tear the session down through the
same path, and teardown always completes before listeners are told to send
the admin back to the login page.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from ...core.exceptions import SessionExpired
from ...core.logging_service import LoggingService
from .storage import MemorySessionStorage

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Session:
    """A bearer token plus the absolute instant it stops being valid."""

    __slots__ = ('token', 'expires_at', 'profile')

    def __init__(self, token: str, expires_at: datetime, profile: Optional[Dict[str, Any]] = None):
        self.token = token
        self.expires_at = expires_at
        self.profile = profile or {}

    def is_live(self, now: datetime) -> bool:
        return bool(self.token) and now < self.expires_at

    def to_record(self) -> Dict[str, Any]:
        return {'token': self.token, 'expires_at': self.expires_at, 'profile': self.profile}

    def __repr__(self):
        # Never print the token
        return f"<Session expires_at={self.expires_at.isoformat()}>"


class SessionGuard:
    """
    Gatekeeper for the single live admin session of this process.

    Args:
        storage: object with load()/save(record)/clear(); defaults to memory
        lifetime: how long a session lives after start()
        clock: zero-argument callable returning an aware datetime
    """

    def __init__(self, storage=None, lifetime: timedelta = timedelta(days=7),
                 clock: Callable[[], datetime] = utc_now):
        self.storage = storage if storage is not None else MemorySessionStorage()
        self.lifetime = lifetime
        self.clock = clock
        self._lock = threading.RLock()
        self._listeners: List[Callable[[str], None]] = []
        self._session: Optional[Session] = None
        self._hydrate()

    def _hydrate(self):
        record = self.storage.load()
        if not record:
            return

        expires_at = record['expires_at']
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        session = Session(record.get('token'), expires_at, record.get('profile'))
        if session.is_live(self.clock()):
            self._session = session
        else:
            logger.info("Discarding expired persisted session")
            self.storage.clear()

    # ===== Lifecycle =====

    def start(self, token: str, profile: Optional[Dict[str, Any]] = None) -> Session:
        """Create the live session after a successful login."""
        if not token:
            raise ValueError("Cannot start a session without a token")

        session = Session(token, self.clock() + self.lifetime, profile)
        with self._lock:
            self.storage.save(session.to_record())
            self._session = session

        LoggingService.log_user_action('session', 'login', user_id=self._profile_id(session))
        return session

    def end(self):
        """Logout: clear the session without asking anyone to redirect."""
        with self._lock:
            self._teardown()
        LoggingService.log_user_action('session', 'logout')

    def add_listener(self, callback: Callable[[str], None]):
        """Register a callback invoked with a reason after forced teardown."""
        self._listeners.append(callback)

    # ===== Checks =====

    def is_authorized(self) -> bool:
        with self._lock:
            return self._session is not None and self._session.is_live(self.clock())

    def authorize(self) -> str:
        """
        Return the bearer token for an immediate call.

        Raises:
            SessionExpired: no session, or the stored one has expired. An
                expired session is cleared so later checks short-circuit.
        """
        with self._lock:
            session = self._session
            if session is not None and session.is_live(self.clock()):
                return session.token
            had_session = session is not None
            if had_session:
                self._teardown()

        if had_session:
            LoggingService.log_security_event("Session expired; credential cleared")
            self._notify('expired')
        raise SessionExpired()

    def on_rejected(self):
        """The backend refused our credential: tear down, then ask for re-auth."""
        with self._lock:
            self._teardown()
        LoggingService.log_security_event("Backend rejected session credential")
        self._notify('rejected')

    # ===== Accessors =====

    @property
    def token(self) -> Optional[str]:
        with self._lock:
            return self._session.token if self.is_authorized() else None

    @property
    def profile(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._session.profile) if self.is_authorized() else {}

    @property
    def expires_at(self) -> Optional[datetime]:
        with self._lock:
            return self._session.expires_at if self._session else None

    # ===== Internals =====

    def _teardown(self):
        # Caller holds the lock
        self._session = None
        self.storage.clear()

    def _notify(self, reason: str):
        for callback in list(self._listeners):
            try:
                callback(reason)
            except Exception as e:
                logger.error(f"Session listener failed: {e}")

    @staticmethod
    def _profile_id(session: Session):
        profile = session.profile or {}
        return profile.get('adminId') or profile.get('id')
