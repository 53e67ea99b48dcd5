"""
Pay period service: the replaceable pay-period lookup table.
"""
import datetime
import json
import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from ..data.database import PAY_PERIODS_KEY, PAY_PERIODS_NAME_KEY, read_blob, write_blob
from ..data.defaults import DEFAULT_PAY_PERIODS, DEFAULT_PAY_PERIODS_NAME, PAY_PERIOD_TEMPLATE_CSV
from ..data.records import PayPeriod
from ..settings import APP_VERSION
from ..utils.csv_utils import parse_pay_periods_csv, render_pay_periods_csv
from ..utils.errors import ConfigImportError
from ..utils.time_utils import count_work_days, days_between, normalize_date, now_iso, parse_date, to_iso

logger = logging.getLogger(__name__)


@dataclass
class PeriodInfo:
    """Display facts about a pay period relative to a given day"""
    period: PayPeriod
    period_range: str
    timesheet_due: str
    pay_day: str
    days_remaining: int
    period_days: int
    days_elapsed: int
    work_days: int


def _sorted_checked(periods: List[PayPeriod]) -> List[PayPeriod]:
    """Sort by start date and reject overlapping periods."""
    ordered = sorted(periods, key=lambda p: (p.period_start, p.period_end))
    for previous, current in zip(ordered, ordered[1:]):
        if current.period_start <= previous.period_end:
            raise ConfigImportError(
                f"Pay periods {previous.id} and {current.id} overlap "
                f"({previous.period_end} >= {current.period_start})")
    return ordered


def _normalized(period: PayPeriod) -> PayPeriod:
    """ISO dates for an imported period; raises on missing, bad or reversed dates."""
    label = period.id or "?"
    start = normalize_date(period.period_start)
    end = normalize_date(period.period_end)
    if not period.id:
        raise ConfigImportError(f"Pay period starting {period.period_start or '?'} has no ID")
    if not start or not end:
        raise ConfigImportError(f"Pay period {label} has missing or invalid dates")
    if end < start:
        raise ConfigImportError(f"Pay period {label} ends before it starts ({end} < {start})")
    period.period_start = start
    period.period_end = end
    period.timesheet_due = normalize_date(period.timesheet_due) or end
    period.pay_day = normalize_date(period.pay_day) or ''
    return period


def generate_periods(start, end, length_days: int = 14) -> List[PayPeriod]:
    """
    Build a back-to-back table of fixed-length periods covering [start, end].

    Timesheets are due on the last day of a period and paid a week later.
    """
    first = parse_date(start)
    last = parse_date(end)
    if first is None or last is None or last < first or length_days < 1:
        return []
    periods = []
    current = first
    number = 1
    while current <= last:
        period_end = min(current + datetime.timedelta(days=length_days - 1), last)
        periods.append(PayPeriod(
            id=f"{current.year}-{number:02d}",
            period_start=current.isoformat(),
            period_end=period_end.isoformat(),
            timesheet_due=period_end.isoformat(),
            pay_day=(period_end + datetime.timedelta(days=7)).isoformat(),
            description=f"Pay Period {number} - {current:%b %d} to {period_end:%b %d, %Y}",
        ))
        current = period_end + datetime.timedelta(days=1)
        number += 1
    return periods


class PayPeriodService:
    """Loads, queries and replaces the pay-period table"""

    def __init__(self):
        self.periods: List[PayPeriod] = []
        self.config_name = DEFAULT_PAY_PERIODS_NAME

    def _use_defaults(self):
        self.periods = [PayPeriod.from_dict(p) for p in DEFAULT_PAY_PERIODS]
        self.config_name = DEFAULT_PAY_PERIODS_NAME

    def load(self) -> List[PayPeriod]:
        """Stored table if readable, otherwise the built-in one."""
        data = read_blob(PAY_PERIODS_KEY, default=None)
        try:
            if not data:
                self._use_defaults()
                return self.periods
            periods = [PayPeriod.from_dict(p) for p in data['payPeriods']]
            if not periods:
                raise ValueError("empty pay period table")
            self.periods = sorted(periods, key=lambda p: p.period_start)
            self.config_name = read_blob(PAY_PERIODS_NAME_KEY, default=None) or 'Custom Configuration'
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Stored pay period table unreadable, using defaults: {e}")
            self._use_defaults()
        logger.debug(f"Loaded {len(self.periods)} pay periods ({self.config_name})")
        return self.periods

    def replace(self, periods: List[PayPeriod], name: str) -> List[PayPeriod]:
        """Swap in a whole new table and persist it."""
        if not periods:
            raise ConfigImportError("No valid pay periods found")
        self.periods = _sorted_checked(periods)
        self.config_name = name or 'Custom Configuration'
        write_blob(PAY_PERIODS_KEY, {'payPeriods': [p.to_dict() for p in self.periods]})
        write_blob(PAY_PERIODS_NAME_KEY, self.config_name)
        logger.info(f"Loaded {len(self.periods)} pay periods from {self.config_name}")
        return self.periods

    # --- lookup ---

    def find(self, period_id: str) -> Optional[PayPeriod]:
        return next((p for p in self.periods if p.id == period_id), None)

    def find_for_date(self, day) -> Optional[PayPeriod]:
        """Period containing ``day`` (inclusive), or None."""
        day = to_iso(day)
        return next((p for p in self.periods if p.contains(day)), None)

    def current_or_next(self, today=None) -> Optional[PayPeriod]:
        """The period containing today, else the first one starting later."""
        today = to_iso(today or datetime.date.today())
        current = self.find_for_date(today)
        if current:
            return current
        return next((p for p in self.periods if p.period_start > today), None)

    def period_info(self, period: PayPeriod, today=None) -> PeriodInfo:
        today_date = parse_date(today) or datetime.date.today()
        due = parse_date(period.timesheet_due) or parse_date(period.period_end)
        remaining = 0
        if due is not None:
            remaining = max(0, (due - today_date).days)

        start = parse_date(period.period_start)
        end = parse_date(period.period_end)
        if start is None or today_date < start:
            elapsed = 0
        else:
            elapsed = days_between(start, min(today_date, end) if end else today_date)

        return PeriodInfo(
            period=period,
            period_range=f"{period.period_start} to {period.period_end}",
            timesheet_due=period.timesheet_due,
            pay_day=period.pay_day,
            days_remaining=remaining,
            period_days=days_between(period.period_start, period.period_end),
            days_elapsed=elapsed,
            work_days=count_work_days(period.period_start, period.period_end),
        )

    # --- import / export ---

    def import_csv(self, text: str, name: str = 'Custom Configuration') -> List[PayPeriod]:
        periods, skipped = parse_pay_periods_csv(text)
        if skipped:
            logger.warning(f"Skipped {skipped} invalid pay period row(s)")
        if not periods:
            raise ConfigImportError("No valid periods found in CSV")
        return self.replace(periods, name)

    def import_json(self, text: str, name: str = 'Custom Configuration') -> List[PayPeriod]:
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ConfigImportError(f"Invalid JSON: {e}") from e
        if isinstance(data, dict) and 'payPeriodsConfig' in data:
            data = data['payPeriodsConfig']
        if not isinstance(data, dict) or not data.get('payPeriods'):
            raise ConfigImportError("Invalid pay periods configuration file")
        try:
            periods = [PayPeriod.from_dict(p) for p in data['payPeriods']]
        except (TypeError, AttributeError) as e:
            raise ConfigImportError(f"Invalid pay period record: {e}") from e
        return self.replace([_normalized(p) for p in periods], name)

    def import_file(self, path: str) -> List[PayPeriod]:
        """Import a .csv or .json file; the table is named after the file."""
        name = os.path.splitext(os.path.basename(path))[0]
        try:
            with open(path, 'r', encoding='utf-8') as f:
                text = f.read()
        except OSError as e:
            raise ConfigImportError(f"Could not read {path}: {e}") from e
        if path.lower().endswith('.csv'):
            return self.import_csv(text, name)
        return self.import_json(text, name)

    def export_json(self) -> str:
        return json.dumps({
            'version': APP_VERSION,
            'exportDate': now_iso(),
            'payPeriodsConfig': {'payPeriods': [p.to_dict() for p in self.periods]},
        }, indent=2)

    def export_csv(self) -> str:
        return render_pay_periods_csv(self.periods)

    @staticmethod
    def template_csv() -> str:
        return PAY_PERIOD_TEMPLATE_CSV
