"""
Centralized logging service for the ShipDesk console.
Mirrors every entry to the standard ``shipdesk`` logger and, when a logs
database is configured, stores it in the app_logs table.
"""

import json
import logging
import traceback
from datetime import datetime, timedelta

from flask import request, has_request_context

from .config import Config, get_config
from .database import Database

logger = logging.getLogger('shipdesk')

LOGS_TABLE = Config.LOGS_TABLE

LOGS_DDL = f"""
    CREATE TABLE IF NOT EXISTS {LOGS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        level TEXT NOT NULL,
        source TEXT NOT NULL,
        message TEXT NOT NULL,
        details TEXT,
        request_path TEXT,
        user_id TEXT
    )
"""


class LoggingService:
    """Centralized logging service for application-wide logging"""

    _db_path = None
    _table_ready = False

    @classmethod
    def configure(cls, db_path=None):
        """Point persistence at a SQLite file, or disable it with None."""
        cls._db_path = db_path or None
        cls._table_ready = False

    @classmethod
    def _resolve_db_path(cls):
        return cls._db_path or get_config('LOGS_DB') or None

    @classmethod
    def _ensure_logs_table(cls, db_path):
        """Ensure the app_logs table exists"""
        if cls._table_ready:
            return
        Database.ensure_table(
            db_path,
            LOGS_DDL,
            f"CREATE INDEX IF NOT EXISTS idx_logs_timestamp ON {LOGS_TABLE}(timestamp DESC)",
            f"CREATE INDEX IF NOT EXISTS idx_logs_source ON {LOGS_TABLE}(source)",
        )
        cls._table_ready = True

    @staticmethod
    def _get_request_path():
        if not has_request_context():
            return None
        return request.path

    @classmethod
    def log(cls, level, source, message, details=None, user_id=None):
        """
        Log a message to the shipdesk logger and, if configured, the database

        Args:
            level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            source (str): Source component (transport, session, orders, shiprocket)
            message (str): Main log message
            details (str/dict): Additional details (will be JSON-encoded if dict)
            user_id (str): Optional admin identifier
        """
        level = level.upper()
        if isinstance(details, dict):
            details = json.dumps(details, default=str)

        logger.log(getattr(logging, level, logging.INFO), "[%s] %s", source, message,
                   extra={'details': details})

        db_path = cls._resolve_db_path()
        if not db_path:
            return

        try:
            cls._ensure_logs_table(db_path)
            with Database.connect(db_path) as conn:
                conn.execute(f"""
                    INSERT INTO {LOGS_TABLE}
                    (timestamp, level, source, message, details, request_path, user_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (
                    datetime.now().isoformat(), level, source, message, details,
                    cls._get_request_path(), user_id
                ))
                conn.commit()
        except Exception as e:
            # Fallback to console logging if database fails
            logger.warning("Logging service error: %s", e)

    @staticmethod
    def debug(source, message, details=None, user_id=None):
        LoggingService.log('DEBUG', source, message, details, user_id)

    @staticmethod
    def info(source, message, details=None, user_id=None):
        LoggingService.log('INFO', source, message, details, user_id)

    @staticmethod
    def warning(source, message, details=None, user_id=None):
        LoggingService.log('WARNING', source, message, details, user_id)

    @staticmethod
    def error(source, message, details=None, user_id=None):
        LoggingService.log('ERROR', source, message, details, user_id)

    @staticmethod
    def critical(source, message, details=None, user_id=None):
        LoggingService.log('CRITICAL', source, message, details, user_id)

    @staticmethod
    def log_user_action(source, action, user_id=None, details=None):
        """Log admin actions (status change, shipment creation, login, ...)"""
        LoggingService.info(source, f"User action: {action}", details, user_id)

    @staticmethod
    def log_api_call(source, endpoint, method='GET', status_code=200, details=None):
        """Log backend API calls"""
        message = f"API {method} {endpoint} - Status: {status_code}"
        level = 'INFO' if 200 <= status_code < 400 else 'WARNING' if status_code < 500 else 'ERROR'
        LoggingService.log(level, source, message, details)

    @staticmethod
    def log_error_with_traceback(source, error, details=None):
        """Log error with full traceback"""
        error_details = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'traceback': traceback.format_exc()
        }
        if details:
            error_details['additional_details'] = details

        LoggingService.error(source, f"Exception occurred: {type(error).__name__}", error_details)

    @staticmethod
    def log_security_event(message, details=None):
        """Log security-related events (session teardown, rejected credentials)"""
        LoggingService.warning('security', message, details)

    @classmethod
    def cleanup_old_logs(cls, days_to_keep=30):
        """Clean up old log entries"""
        db_path = cls._resolve_db_path()
        if not db_path:
            return 0

        try:
            cls._ensure_logs_table(db_path)
            cutoff_iso = (datetime.now() - timedelta(days=days_to_keep)).isoformat()

            with Database.connect(db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(f"DELETE FROM {LOGS_TABLE} WHERE timestamp < ?", (cutoff_iso,))
                deleted_count = cursor.rowcount
                conn.commit()

            LoggingService.info('system', f"Cleaned up {deleted_count} old log entries")
            return deleted_count

        except Exception as e:
            LoggingService.error('system', f"Failed to cleanup old logs: {e}")
            return 0

