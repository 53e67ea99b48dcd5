"""
Storage module for the time tracker.

Every piece of state lives in one key/value table: each key holds a single
self-contained JSON document that is overwritten in full on every save.
Uses SQLCipher for transparent AES-256 encryption at rest when a key is set.
"""
import datetime
import json
import logging
import os

from peewee import (
    Model, CharField, DateTimeField, TextField, DatabaseProxy, SqliteDatabase
)

from ..settings import ENV_KEY_NAME, get_db_path
from ..utils.errors import StorageError

logger = logging.getLogger(__name__)

# Storage keys
TIME_ENTRIES_KEY = "unifiedTimeEntries"
EMPLOYEE_SETTINGS_KEY = "employeeSettings"
PAY_PERIODS_KEY = "payPeriodsConfig"
PAY_PERIODS_NAME_KEY = "payPeriodsConfigName"
HOLIDAYS_KEY = "holidaysConfig"
HOLIDAYS_NAME_KEY = "holidaysConfigName"
APP_CONFIG_KEY = "adminAppConfig"
ADMIN_CREDENTIAL_KEY = "adminCredential"
TIMER_STATE_KEY = "timerState"

_CIPHER_PRAGMAS = {
    'kdf_iter': 256000,
    'cipher_page_size': 4096,
    'cipher_use_hmac': True,
}

db = DatabaseProxy()


def _get_database(path):
    """
    Create the appropriate database connection for ``path``.
    Uses SQLCipher if TIMETRACKER_ENV_KEY is set, otherwise plain SQLite.
    """
    passphrase = os.getenv(ENV_KEY_NAME)

    if passphrase and path != ':memory:':
        try:
            from playhouse.sqlcipher_ext import SqlCipherDatabase
            logger.info("SQLCipher encryption enabled")
            return SqlCipherDatabase(path, passphrase=passphrase, pragmas=_CIPHER_PRAGMAS)
        except ImportError:
            logger.error(
                "SQLCipher not available! Install with: pip install sqlcipher3-binary\n"
                "Database will NOT be encrypted."
            )
    elif path != ':memory:':
        logger.warning(
            f"No encryption key set. Set {ENV_KEY_NAME} environment variable "
            "for an encrypted database."
        )

    return SqliteDatabase(path)


class BaseModel(Model):
    class Meta:
        database = db


class StorageRecord(BaseModel):
    key = CharField(max_length=100, unique=True, null=False, index=True)
    value = TextField(null=False)
    updated_at = DateTimeField(default=datetime.datetime.now, null=False)

    def __str__(self):
        return f"{self.key} ({len(self.value)} bytes)"


def is_encrypted() -> bool:
    """Check if the database is using SQLCipher encryption."""
    try:
        from playhouse.sqlcipher_ext import SqlCipherDatabase
        return isinstance(db.obj, SqlCipherDatabase)
    except ImportError:
        return False


def ensure_db_connection():
    """Ensure database connection is open"""
    if db.obj is None:
        initialize_db()
    if db.is_closed():
        try:
            db.connect(reuse_if_open=True)
            logger.debug("Database connection opened")
        except Exception as e:
            logger.error(f"Failed to open database connection: {e}")
            raise


def initialize_db(path=None):
    """Bind the storage to ``path`` (default from settings) and create tables"""
    path = path or get_db_path()
    if db.obj is not None and not db.is_closed():
        db.close()
    db.initialize(_get_database(path))
    try:
        db.connect(reuse_if_open=True)
        db.create_tables([StorageRecord], safe=True)
        logger.info(f"Storage initialized at {path}")
    except Exception as e:
        logger.error(f"Storage initialization failed: {e}")
        raise StorageError(f"Cannot open storage at {path}: {e}") from e


def close_db():
    """Close database connection, ensuring all data is committed"""
    if db.obj is None:
        return
    try:
        if not db.is_closed():
            db.close()
            logger.info("Database connection closed")
    except Exception as e:
        logger.error(f"Error closing database: {e}")


def read_blob(key, default=None):
    """
    Return the decoded JSON document stored under ``key``.

    Missing keys, unreadable rows and malformed JSON all yield ``default``.
    """
    try:
        ensure_db_connection()
        record = StorageRecord.get_or_none(StorageRecord.key == key)
    except Exception as e:
        logger.error(f"Error reading '{key}' from storage: {e}")
        return default
    if record is None:
        return default
    try:
        return json.loads(record.value)
    except ValueError as e:
        logger.error(f"Stored value for '{key}' is not valid JSON: {e}")
        return default


def write_blob(key, value) -> bool:
    """Overwrite the document under ``key``. Failures are logged, not raised."""
    try:
        payload = json.dumps(value)
    except (TypeError, ValueError) as e:
        logger.error(f"Cannot serialize value for '{key}': {e}")
        return False
    try:
        ensure_db_connection()
        with db.atomic():
            (StorageRecord
             .insert(key=key, value=payload, updated_at=datetime.datetime.now())
             .on_conflict(
                 conflict_target=[StorageRecord.key],
                 update={StorageRecord.value: payload,
                         StorageRecord.updated_at: datetime.datetime.now()})
             .execute())
        logger.debug(f"Saved '{key}' ({len(payload)} bytes)")
        return True
    except Exception as e:
        logger.error(f"Failed to persist '{key}': {e}")
        return False


def delete_blob(key) -> bool:
    """Remove a key. Returns True if something was deleted."""
    try:
        ensure_db_connection()
        return StorageRecord.delete().where(StorageRecord.key == key).execute() > 0
    except Exception as e:
        logger.error(f"Failed to delete '{key}': {e}")
        return False


def list_keys():
    ensure_db_connection()
    return [r.key for r in StorageRecord.select(StorageRecord.key).order_by(StorageRecord.key)]


def dump_all():
    """Raw stored text for every key, as used by full backups."""
    ensure_db_connection()
    return {r.key: r.value for r in StorageRecord.select().order_by(StorageRecord.key)}


def load_raw(items) -> int:
    """Write raw (already JSON-encoded) values back, replacing existing keys."""
    ensure_db_connection()
    count = 0
    with db.atomic():
        for key, value in items.items():
            StorageRecord.delete().where(StorageRecord.key == key).execute()
            StorageRecord.create(key=key, value=value)
            count += 1
    return count


def clear_all() -> int:
    """Delete every stored key."""
    ensure_db_connection()
    with db.atomic():
        removed = StorageRecord.delete().execute()
    logger.info(f"Cleared {removed} stored key(s)")
    return removed


# --- Migration Utility ---

def migrate_to_encrypted(passphrase: str, source_db: str = "timetracker.db",
                         target_db: str = "timetracker_encrypted.db") -> bool:
    """
    Migrate an unencrypted database to an encrypted one.

    Args:
        passphrase: The encryption passphrase to use
        source_db: Path to the unencrypted source database
        target_db: Path for the new encrypted database

    Returns:
        True if migration succeeded, False otherwise
    """
    try:
        from playhouse.sqlcipher_ext import SqlCipherDatabase
    except ImportError:
        logger.error("SQLCipher not available. Install with: pip install sqlcipher3-binary")
        return False

    import sqlite3

    if not os.path.exists(source_db):
        logger.error(f"Source database not found: {source_db}")
        return False

    if os.path.exists(target_db):
        logger.error(f"Target database already exists: {target_db}")
        return False

    try:
        source_conn = sqlite3.connect(source_db)
        encrypted_db = SqlCipherDatabase(target_db, passphrase=passphrase, pragmas=_CIPHER_PRAGMAS)
        encrypted_db.connect()
        source_conn.backup(encrypted_db.connection())
        source_conn.close()
        encrypted_db.close()

        logger.info(f"Successfully migrated {source_db} -> {target_db} (encrypted)")
        return True

    except Exception as e:
        logger.error(f"Migration failed: {e}")
        return False
