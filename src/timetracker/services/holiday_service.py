"""
Holiday service: the holiday lookup table and per-employee holiday selection.
"""
import json
import logging
import os
from typing import Iterable, List, Optional, Tuple

from ..data.database import HOLIDAYS_KEY, HOLIDAYS_NAME_KEY, read_blob, write_blob
from ..data.defaults import DEFAULT_HOLIDAYS, DEFAULT_HOLIDAYS_NAME, HOLIDAY_TEMPLATE_CSV
from ..data.records import SOURCE_HOLIDAY, Holiday, PayPeriod, TimeEntry
from ..settings import APP_VERSION, HOLIDAY_HOURS
from ..utils.csv_utils import parse_holidays_csv, render_holidays_csv
from ..utils.errors import ConfigImportError, ValidationError
from ..utils.time_utils import normalize_date, now_iso

logger = logging.getLogger(__name__)

HOLIDAY_CATEGORY = 'holiday'
HOLIDAY_START = '09:00'
HOLIDAY_END = '17:00'


def _normalized(holiday: Holiday) -> Holiday:
    """ISO date for an imported holiday; raises when the date or name is unusable."""
    day = normalize_date(holiday.date)
    if not holiday.name:
        raise ConfigImportError(f"Holiday on {holiday.date or '?'} has no name")
    if not day:
        raise ConfigImportError(f"Holiday '{holiday.name}' has a missing or invalid date")
    holiday.date = day
    return holiday


def format_for_display(holiday: Holiday) -> str:
    """``MM/DD - Name``"""
    parts = holiday.date.split('-')
    if len(parts) == 3:
        return f"{parts[1]}/{parts[2]} - {holiday.name}"
    return f"{holiday.date} - {holiday.name}"


class HolidayService:
    """Loads and replaces the holiday table; books holidays as entries"""

    def __init__(self, entry_service=None):
        self.entry_service = entry_service
        self.holidays: List[Holiday] = []
        self.config_name = DEFAULT_HOLIDAYS_NAME

    def _use_defaults(self):
        self.holidays = [Holiday.from_dict(h) for h in DEFAULT_HOLIDAYS]
        self.config_name = DEFAULT_HOLIDAYS_NAME

    def load(self) -> List[Holiday]:
        """Stored table if readable, otherwise the built-in one."""
        data = read_blob(HOLIDAYS_KEY, default=None)
        try:
            if not data:
                self._use_defaults()
                return self.holidays
            self.holidays = sorted((Holiday.from_dict(h) for h in data['holidays']),
                                   key=lambda h: h.date)
            self.config_name = read_blob(HOLIDAYS_NAME_KEY, default=None) or 'Custom Holiday Configuration'
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Stored holiday table unreadable, using defaults: {e}")
            self._use_defaults()
        return self.holidays

    def replace(self, holidays: List[Holiday], name: str) -> List[Holiday]:
        if not holidays:
            raise ConfigImportError("No valid holidays found")
        self.holidays = sorted(holidays, key=lambda h: h.date)
        self.config_name = name or 'Custom Holiday Configuration'
        write_blob(HOLIDAYS_KEY, {'holidays': [h.to_dict() for h in self.holidays]})
        write_blob(HOLIDAYS_NAME_KEY, self.config_name)
        logger.info(f"Loaded {len(self.holidays)} holidays from {self.config_name}")
        return self.holidays

    def find(self, holiday_id: str) -> Optional[Holiday]:
        return next((h for h in self.holidays if h.id == holiday_id), None)

    def for_period(self, period: Optional[PayPeriod]) -> List[Holiday]:
        if period is None:
            return []
        return [h for h in self.holidays
                if period.period_start <= h.date <= period.period_end]

    def describe_period(self, period: Optional[PayPeriod]) -> str:
        holidays = self.for_period(period)
        if not holidays:
            return 'No holidays in this period'
        return ', '.join(format_for_display(h) for h in holidays)

    # --- selection ---

    def _booked(self, employee: str, day: str) -> List[TimeEntry]:
        return [e for e in self.entry_service.entries
                if e.employee == employee and e.date == day and e.category == HOLIDAY_CATEGORY]

    def selected_ids(self, employee: str, period: PayPeriod) -> List[str]:
        """Holidays in the period the employee already has an entry for."""
        return [h.id for h in self.for_period(period) if self._booked(employee, h.date)]

    def select_holidays(self, employee: str, period: PayPeriod,
                        selected_ids: Iterable[str]) -> Tuple[int, int]:
        """
        Sync the employee's holiday entries with a checkbox selection.

        Every holiday in the period is considered: a selected one gets an
        8 hour entry if it has none, an unselected one loses its entry.

        Returns:
            (added, removed)
        """
        employee = (employee or '').strip()
        if not employee:
            raise ValidationError("Employee name is required")
        if self.entry_service is None:
            raise ValidationError("No entry list to book holidays into")

        selected = set(selected_ids)
        added = removed = 0
        for holiday in self.for_period(period):
            booked = self._booked(employee, holiday.date)
            if holiday.id in selected:
                if not booked:
                    self.entry_service.add(TimeEntry(
                        employee=employee,
                        date=holiday.date,
                        category=HOLIDAY_CATEGORY,
                        project=holiday.name,
                        start_time=HOLIDAY_START,
                        end_time=HOLIDAY_END,
                        duration=HOLIDAY_HOURS,
                        description=f"Holiday: {holiday.name}",
                        source=SOURCE_HOLIDAY,
                    ), save=False)
                    added += 1
            elif booked:
                booked_ids = {e.id for e in booked}
                self.entry_service.entries = [
                    e for e in self.entry_service.entries if e.id not in booked_ids]
                removed += 1

        if added or removed:
            self.entry_service.save()
        logger.info(f"Holiday selection for {employee}: {added} added, {removed} removed")
        return added, removed

    # --- import / export ---

    def import_csv(self, text: str, name: str = 'Custom Holiday Configuration') -> List[Holiday]:
        holidays, skipped = parse_holidays_csv(text)
        if skipped:
            logger.warning(f"Skipped {skipped} invalid holiday row(s)")
        if not holidays:
            raise ConfigImportError("No valid holidays found in CSV")
        return self.replace(holidays, name)

    def import_json(self, text: str, name: str = 'Custom Holiday Configuration') -> List[Holiday]:
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ConfigImportError(f"Invalid JSON: {e}") from e
        if isinstance(data, dict) and 'holidaysConfig' in data:
            data = data['holidaysConfig']
        if not isinstance(data, dict) or not data.get('holidays'):
            raise ConfigImportError("Invalid holidays configuration file")
        try:
            holidays = [Holiday.from_dict(h) for h in data['holidays']]
        except (TypeError, AttributeError) as e:
            raise ConfigImportError(f"Invalid holiday record: {e}") from e
        return self.replace([_normalized(h) for h in holidays], name)

    def import_file(self, path: str) -> List[Holiday]:
        name = os.path.splitext(os.path.basename(path))[0]
        try:
            with open(path, 'r', encoding='utf-8') as f:
                text = f.read()
        except OSError as e:
            raise ConfigImportError(f"Could not read {path}: {e}") from e
        if path.lower().endswith('.csv'):
            return self.import_csv(text, name)
        return self.import_json(text, name)

    def export_csv(self) -> str:
        return render_holidays_csv(self.holidays)

    def export_json(self) -> str:
        return json.dumps({
            'version': APP_VERSION,
            'exportDate': now_iso(),
            'holidaysConfig': {'holidays': [h.to_dict() for h in self.holidays]},
        }, indent=2)

    @staticmethod
    def template_csv() -> str:
        return HOLIDAY_TEMPLATE_CSV
