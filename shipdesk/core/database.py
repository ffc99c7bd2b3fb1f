import os
import sqlite3
import threading


class Database:
    # Serializes schema creation across request threads
    _lock = threading.Lock()

    @staticmethod
    def connect(path):
        db_dir = os.path.dirname(path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        conn = sqlite3.connect(path)
        conn.row_factory = sqlite3.Row
        return conn

    @classmethod
    def ensure_table(cls, path, ddl, *indexes):
        """Create a table (and optional indexes) if it does not exist yet."""
        with cls._lock:
            with cls.connect(path) as conn:
                cursor = conn.cursor()
                cursor.execute(ddl)
                for index in indexes:
                    cursor.execute(index)
                conn.commit()
