"""
Employee time tracker: timer, timesheets, pay periods and holidays.
"""
from .settings import APP_VERSION

__version__ = APP_VERSION
