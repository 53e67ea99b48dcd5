"""
Typed records persisted as JSON documents.

Field names on disk follow the stored layout (camelCase); attributes use
snake_case. Every record round-trips through ``to_dict`` / ``from_dict``.
"""
import datetime
import uuid
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

from ..utils.time_utils import now_iso

CATEGORIES = (
    'work',
    'overhead',
    'travel',
    'pto',
    'sick',
    'holiday',
    'bereavement',
    'jury',
)

SOURCE_TIMER = 'timer'
SOURCE_IMPORT = 'import'
SOURCE_HOLIDAY = 'holiday-selection'
SOURCE_MANUAL = 'manual'
SOURCE_TEST = 'test-generator'

DEFAULT_PROJECT = 'No Project'


def new_id() -> str:
    return uuid.uuid4().hex


def _str(value) -> str:
    return '' if value is None else str(value).strip()


def _float(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class TimeEntry:
    employee: str
    date: str
    category: str = 'work'
    project: str = DEFAULT_PROJECT
    start_time: str = ''
    end_time: str = ''
    duration: float = 0.0
    description: str = ''
    timestamp: str = field(default_factory=now_iso)
    source: str = SOURCE_MANUAL
    id: str = field(default_factory=new_id)

    # Fields an edit is allowed to change
    EDITABLE = ('employee', 'date', 'category', 'project', 'start_time',
                'end_time', 'duration', 'description')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'employee': self.employee,
            'date': self.date,
            'category': self.category,
            'project': self.project,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'duration': self.duration,
            'description': self.description,
            'timestamp': self.timestamp,
            'source': self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TimeEntry':
        employee = data.get('employee', data.get('employeeName'))
        duration = data.get('duration', data.get('durationHours'))
        return cls(
            id=_str(data.get('id')) or new_id(),
            employee=_str(employee),
            date=_str(data.get('date')),
            category=_str(data.get('category')).lower() or 'work',
            project=_str(data.get('project')) or DEFAULT_PROJECT,
            start_time=_str(data.get('startTime')),
            end_time=_str(data.get('endTime')),
            duration=_float(duration),
            description=_str(data.get('description')),
            timestamp=_str(data.get('timestamp')) or now_iso(),
            source=_str(data.get('source')) or SOURCE_IMPORT,
        )

    def copy(self, **changes) -> 'TimeEntry':
        return replace(self, **changes)

    def same_slot(self, other: 'TimeEntry') -> bool:
        """Equality used for duplicate detection (not identity)."""
        return (
            self.employee == other.employee
            and self.date == other.date
            and self.start_time == other.start_time
            and self.end_time == other.end_time
        )

    def __str__(self):
        return f"{self.employee} - {self.date} {self.category}/{self.project} {self.duration:.1f}h"


@dataclass
class PayPeriod:
    id: str
    period_start: str
    period_end: str
    timesheet_due: str = ''
    pay_day: str = ''
    description: str = ''

    def contains(self, day: str) -> bool:
        """Inclusive containment on ISO date strings."""
        return bool(day) and self.period_start <= day <= self.period_end

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'periodStart': self.period_start,
            'periodEnd': self.period_end,
            'timesheetDue': self.timesheet_due,
            'payDay': self.pay_day,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PayPeriod':
        # Older configs used startDate/endDate/name
        start = _str(data.get('periodStart') or data.get('startDate'))
        end = _str(data.get('periodEnd') or data.get('endDate'))
        return cls(
            id=_str(data.get('id')),
            period_start=start,
            period_end=end,
            timesheet_due=_str(data.get('timesheetDue')) or end,
            pay_day=_str(data.get('payDay')),
            description=_str(data.get('description') or data.get('name')),
        )


@dataclass
class Holiday:
    id: str
    date: str
    name: str
    type: str = 'company'
    description: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'date': self.date,
            'name': self.name,
            'type': self.type,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Holiday':
        name = _str(data.get('name'))
        day = _str(data.get('date'))
        return cls(
            id=_str(data.get('id')) or f"{name.lower().replace(' ', '-')}-{day}",
            date=day,
            name=name,
            type=_str(data.get('type')) or 'company',
            description=_str(data.get('description')) or name,
        )


@dataclass
class AppConfig:
    company_name: str = 'CAND, LLC'
    allow_edit: bool = True
    allow_delete: bool = True
    allow_employee_edit: bool = True
    allow_employee_delete: bool = True
    is_licensed: bool = False
    licensed_company: str = ''
    license_key: str = ''
    logo_url: str = ''

    _KEYS = {
        'company_name': 'companyName',
        'allow_edit': 'allowEdit',
        'allow_delete': 'allowDelete',
        'allow_employee_edit': 'allowEmployeeEdit',
        'allow_employee_delete': 'allowEmployeeDelete',
        'is_licensed': 'isLicensed',
        'licensed_company': 'licensedCompany',
        'license_key': 'licenseKey',
        'logo_url': 'logoUrl',
    }

    def to_dict(self) -> Dict[str, Any]:
        return {json_key: getattr(self, attr) for attr, json_key in self._KEYS.items()}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'AppConfig':
        """Merge a stored blob over the defaults; unknown keys are ignored."""
        config = cls()
        for attr, json_key in cls._KEYS.items():
            if data and json_key in data and data[json_key] is not None:
                default = getattr(config, attr)
                value = data[json_key]
                setattr(config, attr, bool(value) if isinstance(default, bool) else str(value))
        return config

    @classmethod
    def field_names(cls):
        return [f.name for f in fields(cls)]


@dataclass
class EmployeeSettings:
    employee_name: str = ''
    daily_target: float = 8.0
    last_updated: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'employeeName': self.employee_name,
            'dailyTarget': self.daily_target,
            'lastUpdated': self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'EmployeeSettings':
        data = data or {}
        target = _float(data.get('dailyTarget')) or 8.0
        return cls(
            employee_name=_str(data.get('employeeName')),
            daily_target=target,
            last_updated=_str(data.get('lastUpdated')),
        )


@dataclass
class TimerState:
    running: bool = False
    employee: str = ''
    category: str = 'work'
    project: str = ''
    started_at: Optional[datetime.datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'running': self.running,
            'employee': self.employee,
            'category': self.category,
            'project': self.project,
            'startedAt': self.started_at.isoformat() if self.started_at else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'TimerState':
        data = data or {}
        started_at = None
        if data.get('startedAt'):
            try:
                started_at = datetime.datetime.fromisoformat(data['startedAt'])
            except (TypeError, ValueError):
                started_at = None
        return cls(
            running=bool(data.get('running')) and started_at is not None,
            employee=_str(data.get('employee')),
            category=_str(data.get('category')) or 'work',
            project=_str(data.get('project')),
            started_at=started_at,
        )
