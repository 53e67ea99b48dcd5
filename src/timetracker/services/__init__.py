"""
Service layer for the time tracker business logic.
"""

from .entry_service import EntryService, ImportResult
from .timer_service import TimerService, TimerTicker
from .pay_period_service import PayPeriodService
from .holiday_service import HolidayService
from .config_service import ConfigService
from .access_service import AccessService
from .backup_service import BackupService

__all__ = [
    'EntryService',
    'ImportResult',
    'TimerService',
    'TimerTicker',
    'PayPeriodService',
    'HolidayService',
    'ConfigService',
    'AccessService',
    'BackupService',
]
