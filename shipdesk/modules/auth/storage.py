"""
Session Storage
===============

Client-local persistence for the admin session: bearer token, absolute
expiry instant and the last-known admin profile. The three values are
always written and cleared together.
"""

import json
import threading
from datetime import datetime

from ...core.config import Config
from ...core.database import Database

SESSION_TABLE = Config.SESSION_TABLE

SESSION_DDL = f"""
    CREATE TABLE IF NOT EXISTS {SESSION_TABLE} (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        token TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        profile TEXT
    )
"""


class MemorySessionStorage:
    """Keeps the session record in process memory only."""

    def __init__(self):
        self._record = None
        self._lock = threading.Lock()

    def load(self):
        with self._lock:
            return dict(self._record) if self._record else None

    def save(self, record):
        with self._lock:
            self._record = dict(record)

    def clear(self):
        with self._lock:
            self._record = None


class SQLiteSessionStorage:
    """Single-row SQLite table so a console restart keeps the admin logged in."""

    def __init__(self, db_path):
        self.db_path = db_path
        Database.ensure_table(db_path, SESSION_DDL)

    def load(self):
        with Database.connect(self.db_path) as conn:
            row = conn.execute(
                f"SELECT token, expires_at, profile FROM {SESSION_TABLE} WHERE id = 1"
            ).fetchone()

        if not row:
            return None

        return {
            'token': row['token'],
            'expires_at': datetime.fromisoformat(row['expires_at']),
            'profile': json.loads(row['profile']) if row['profile'] else {},
        }

    def save(self, record):
        with Database.connect(self.db_path) as conn:
            conn.execute(f"""
                INSERT OR REPLACE INTO {SESSION_TABLE} (id, token, expires_at, profile)
                VALUES (1, ?, ?, ?)
            """, (
                record['token'],
                record['expires_at'].isoformat(),
                json.dumps(record.get('profile') or {}),
            ))
            conn.commit()

    def clear(self):
        with Database.connect(self.db_path) as conn:
            conn.execute(f"DELETE FROM {SESSION_TABLE}")
            conn.commit()
