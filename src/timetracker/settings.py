"""
Environment-driven settings for the time tracker.
"""
import logging
import os

APP_VERSION = "1.2.0"

# Environment variable names
ENV_DB_PATH = "TIMETRACKER_DB_PATH"
ENV_KEY_NAME = "TIMETRACKER_ENV_KEY"            # SQLCipher passphrase
ENV_EXPORT_PATH = "TIMETRACKER_EXPORT_PATH"
ENV_ENCRYPTION_KEY = "TIMETRACKER_ENCRYPTION_KEY"  # backup export passphrase
ENV_DEV_TOKEN = "TIMETRACKER_DEV_TOKEN"
ENV_ADMIN_TOKEN = "TIMETRACKER_ADMIN_TOKEN"
ENV_LOG_FILE = "TIMETRACKER_LOG_FILE"

DB_FILE = "timetracker.db"
DEFAULT_ADMIN_TOKEN = "x7k9m"
DEFAULT_DAILY_TARGET_HOURS = 8.0
HOLIDAY_HOURS = 8.0
TIMER_TICK_SECONDS = 1.0

LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s] - %(message)s'


def get_db_path() -> str:
    return os.getenv(ENV_DB_PATH) or DB_FILE


def get_admin_token() -> str:
    return os.getenv(ENV_ADMIN_TOKEN) or DEFAULT_ADMIN_TOKEN


def get_dev_token():
    """Developer token, or None when developer access is not configured."""
    return os.getenv(ENV_DEV_TOKEN) or None


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for command-line use."""
    level = logging.DEBUG if verbose else logging.WARNING
    log_file = os.getenv(ENV_LOG_FILE)
    if log_file:
        logging.basicConfig(level=level, format=LOG_FORMAT, filename=log_file, filemode='a')
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger('peewee').setLevel(logging.WARNING)
