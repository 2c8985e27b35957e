"""
Configuration for the District Wi-Fi Monitor.

Defaults live here as module constants. They can be overridden by a JSON
file (path in WIFI_MONITOR_CONFIG) and then by environment variables.
Settings that can change while the server is running (update interval,
critical threshold, log retention) are also stored in the system_settings
table and read from there at runtime.
"""

import json
import logging
import os

import pytz

# Defaults
DATABASE = 'wifi_monitoring.db'       # SQLite database file for persistent storage
SECRET_KEY = 'change-me-in-production'  # Flask session signing key
HOST = '0.0.0.0'
PORT = 3000
TIMEZONE_NAME = 'UTC'                 # pytz zone used for lastUpdated / last_ping stamps
UPDATE_INTERVAL = 2                   # seconds between simulator ticks
CRITICAL_THRESHOLD = 80               # percent
MAX_LOGS = 100                        # activity log rows kept
DEFAULT_ADMIN_USERNAME = 'admin'
DEFAULT_ADMIN_PASSWORD = 'admin123'
DEFAULT_ADMIN_EMAIL = 'admin@wifi-monitor.com'
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

CONFIG_FILE = os.environ.get('WIFI_MONITOR_CONFIG', 'wifi_monitor_config.json')

_ENV_OVERRIDES = {
    'WIFI_MONITOR_DB': ('DATABASE', str),
    'SECRET_KEY': ('SECRET_KEY', str),
    'WIFI_MONITOR_HOST': ('HOST', str),
    'PORT': ('PORT', int),
    'WIFI_MONITOR_TZ': ('TIMEZONE_NAME', str),
    'UPDATE_INTERVAL': ('UPDATE_INTERVAL', int),
    'DEFAULT_ADMIN_PASSWORD': ('DEFAULT_ADMIN_PASSWORD', str),
    'LOG_LEVEL': ('LOG_LEVEL', str),
}

logger = logging.getLogger(__name__)


def load_config(config_path=None):
    """
    Apply JSON file and environment overrides to the module constants.

    Keys in the JSON file use the constant names (e.g. "DATABASE", "PORT").
    Unknown keys are ignored.

    Args:
        config_path (str, optional): JSON file to read. Defaults to CONFIG_FILE.

    Returns:
        dict: The effective configuration values
    """
    config_path = config_path or CONFIG_FILE
    module_globals = globals()

    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                file_config = json.load(f)
            for key, value in file_config.items():
                if key.isupper() and key in module_globals:
                    module_globals[key] = value
            logger.info(f"Loaded configuration from {config_path}")
        except (IOError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load configuration from {config_path}: {e}")

    for env_name, (key, cast) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None:
            continue
        try:
            module_globals[key] = cast(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid value for {env_name}: {raw!r}")

    return as_dict()


def as_dict():
    """Current configuration values, excluding secrets."""
    return {
        'DATABASE': DATABASE,
        'HOST': HOST,
        'PORT': PORT,
        'TIMEZONE_NAME': TIMEZONE_NAME,
        'UPDATE_INTERVAL': UPDATE_INTERVAL,
        'CRITICAL_THRESHOLD': CRITICAL_THRESHOLD,
        'MAX_LOGS': MAX_LOGS,
        'LOG_LEVEL': LOG_LEVEL,
    }


def get_timezone():
    """pytz timezone for TIMEZONE_NAME, falling back to UTC on unknown zones."""
    try:
        return pytz.timezone(TIMEZONE_NAME)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone {TIMEZONE_NAME!r}, using UTC")
        return pytz.utc


def configure_logging(level=None):
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT
    )
