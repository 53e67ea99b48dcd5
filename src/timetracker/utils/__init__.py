"""
Utilities for the time tracker.
"""

from .errors import (
    TimeTrackerError,
    StorageError,
    ValidationError,
    EntryNotFoundError,
    PermissionDisabledError,
    TimerError,
    ConfigImportError,
    AccessDeniedError,
    AuthenticationError,
    ExportError,
)
from .export_utils import (
    get_export_directory,
    write_file,
    write_encrypted_file,
    read_export_file,
)

__all__ = [
    'TimeTrackerError',
    'StorageError',
    'ValidationError',
    'EntryNotFoundError',
    'PermissionDisabledError',
    'TimerError',
    'ConfigImportError',
    'AccessDeniedError',
    'AuthenticationError',
    'ExportError',
    'get_export_directory',
    'write_file',
    'write_encrypted_file',
    'read_export_file',
]
