"""
Error handling utilities for the time tracker.
"""


class TimeTrackerError(Exception):
    """Base exception for the time tracker"""
    pass


class StorageError(TimeTrackerError):
    """Raised when a storage operation fails"""
    pass


class ValidationError(TimeTrackerError):
    """Raised when validation fails"""

    def __init__(self, message, problems=None):
        super().__init__(message)
        self.problems = list(problems or [])


class EntryNotFoundError(TimeTrackerError):
    """Raised when a time entry is not found"""
    pass


class PermissionDisabledError(TimeTrackerError):
    """Raised when editing or deleting is disabled by the administrator"""
    pass


class TimerError(TimeTrackerError):
    """Raised when an invalid timer action is attempted"""
    pass


class ConfigImportError(TimeTrackerError):
    """Raised when a pay period or holiday configuration cannot be imported"""
    pass


class AccessDeniedError(TimeTrackerError):
    """Raised when the current access level lacks a permission"""
    pass


class AuthenticationError(TimeTrackerError):
    """Raised when admin enrollment or authentication fails"""
    pass


class ExportError(TimeTrackerError):
    """Raised when an export operation fails"""
    pass
