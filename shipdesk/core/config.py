import os
from dotenv import load_dotenv

load_dotenv(override=True)

class Config:
    """
    Base configuration for the ShipDesk console.
    Deployments provide the backend URL and database paths via environment variables.
    """
    # Remote backend
    API_BASE_URL = os.getenv('SHIPDESK_API_BASE_URL', 'http://localhost:8000/api')
    REQUEST_TIMEOUT = int(os.getenv('SHIPDESK_REQUEST_TIMEOUT', '30'))

    # Admin token lifetime, measured from login
    SESSION_LIFETIME_DAYS = int(os.getenv('SHIPDESK_SESSION_LIFETIME_DAYS', '7'))

    ORDERS_PAGE_SIZE = int(os.getenv('SHIPDESK_ORDERS_PAGE_SIZE', '10'))

    # Empty means in-memory session / console-only logging
    SESSION_DB = os.getenv('SESSION_DB', '')
    LOGS_DB = os.getenv('LOGS_DB', '')

    # Table names
    SESSION_TABLE = "console_session"
    LOGS_TABLE = "app_logs"


def get_config(key, default=None):
    """Get config value: app.config > Config class > env var > default.

    A key present in app.config wins even when empty, so an app can switch
    off a database the environment configures.
    """
    try:
        from flask import current_app
        if key in current_app.config:
            return current_app.config[key]
    except RuntimeError:
        pass
    if hasattr(Config, key):
        val = getattr(Config, key)
        if val not in (None, ''):
            return val
    return os.getenv(key, default)
