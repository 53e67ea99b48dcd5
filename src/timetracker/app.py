"""
Application facade wiring the services together.

The startup sequence mirrors the widget's page load: configuration, employee
settings, persisted entries, pay periods, holidays and any running timer.
"""
import datetime
import logging
import os
from typing import List, Optional

from .data.database import close_db, initialize_db
from .data.records import DEFAULT_PROJECT, SOURCE_MANUAL, TimeEntry
from .services.access_service import AccessService, requires
from .services.backup_service import BackupService
from .services.config_service import ConfigService
from .services.entry_service import EntryService, ImportResult, validate_entry
from .services.holiday_service import HolidayService
from .services.pay_period_service import PayPeriodService, generate_periods
from .services.timer_service import TimerService
from .services import report_service
from .utils.csv_utils import parse_entries_csv, render_entries_csv
from .utils.errors import ExportError, ValidationError
from .utils.time_utils import calculate_duration, normalize_date
from .utils.export_utils import get_export_directory, write_file

logger = logging.getLogger(__name__)


class TimeTrackerApp:
    """One process-lifetime instance of the time tracker"""

    def __init__(self, db_path: Optional[str] = None, load: bool = True):
        """
        Args:
            db_path: Storage path (default from TIMETRACKER_DB_PATH)
            load: Run the startup load sequence
        """
        initialize_db(db_path)
        self.access = AccessService()
        self.config = ConfigService()
        self.entries = EntryService(self.config)
        self.timer = TimerService(self.entries)
        self.pay_periods = PayPeriodService()
        self.holidays = HolidayService(self.entries)
        self.backup = BackupService(self.entries, self.pay_periods, self.holidays, self.config)
        if load:
            self.startup()

    def startup(self):
        self.config.load()
        self.config.load_employee_settings()
        self.entries.load()
        self.pay_periods.load()
        self.holidays.load()
        self.timer.load()
        logger.info(f"Time tracker ready for {self.config.display_name}")

    def close(self):
        close_db()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # --- employee identity ---

    @property
    def employee_name(self) -> str:
        return self.config.employee_settings.employee_name

    def set_employee_name(self, name: str) -> str:
        return self.config.save_employee_name(name).employee_name

    def _employee(self, employee: Optional[str]) -> str:
        name = (employee or self.employee_name or '').strip()
        if not name:
            raise ValidationError("Employee name is required. Run 'whoami NAME' first")
        return name

    # --- timer ---

    @requires('timer')
    def start_timer(self, employee: Optional[str] = None, category: str = 'work',
                    project: str = '', now: Optional[datetime.datetime] = None):
        return self.timer.start(self._employee(employee), category, project, now=now)

    @requires('timer')
    def stop_timer(self, now: Optional[datetime.datetime] = None):
        return self.timer.stop(now=now)

    # --- own entries ---

    @requires('edit_own_entries')
    def add_entry(self, date, start_time: str, end_time: str, employee: Optional[str] = None,
                  category: str = 'work', project: str = '', description: str = '',
                  duration: Optional[float] = None) -> TimeEntry:
        """Add a manual entry; duration defaults to end minus start."""
        day = normalize_date(date)
        if not day:
            raise ValidationError(f"Invalid date '{date}'")
        entry = TimeEntry(
            employee=self._employee(employee),
            date=day,
            category=(category or 'work').lower(),
            project=(project or '').strip() or DEFAULT_PROJECT,
            start_time=start_time,
            end_time=end_time,
            duration=float(duration) if duration is not None else calculate_duration(start_time, end_time),
            description=description,
            source=SOURCE_MANUAL,
        )
        problems = validate_entry(entry)
        if problems:
            raise ValidationError(f"Invalid entry: {'; '.join(problems)}", problems)
        return self.entries.add(entry)

    def _check_owner(self, entry_id: str):
        if self.access.is_admin:
            return
        entry = self.entries.get(entry_id)
        if entry.employee != self._employee(None):
            raise ValidationError(f"Entry {entry_id} belongs to another employee")

    @requires('edit_own_entries')
    def edit_entry(self, entry_id: str, **changes) -> TimeEntry:
        self._check_owner(entry_id)
        if ('start_time' in changes or 'end_time' in changes) and 'duration' not in changes:
            current = self.entries.get(entry_id)
            changes['duration'] = calculate_duration(
                changes.get('start_time', current.start_time),
                changes.get('end_time', current.end_time))
        if 'date' in changes:
            day = normalize_date(changes['date'])
            if not day:
                raise ValidationError(f"Invalid date '{changes['date']}'")
            changes['date'] = day
        return self.entries.update(entry_id, admin=self.access.is_admin, **changes)

    @requires('edit_own_entries')
    def delete_entry(self, entry_id: str) -> TimeEntry:
        self._check_owner(entry_id)
        return self.entries.delete(entry_id, admin=self.access.is_admin)

    @requires('view_own_entries')
    def my_entries(self, employee: Optional[str] = None, period_id: Optional[str] = None,
                   start=None, end=None) -> List[TimeEntry]:
        period = self.pay_periods.find(period_id) if period_id else None
        if period_id and period is None:
            raise ValidationError(f"Unknown pay period '{period_id}'")
        return self.entries.filter(employee=self._employee(employee), start=start, end=end,
                                   pay_period=period)

    @requires('edit_own_entries')
    def clear_my_entries(self, employee: Optional[str] = None) -> int:
        name = self._employee(employee)
        removed = self.entries.remove_where(lambda e: e.employee == name)
        logger.info(f"Cleared {removed} entries for {name}")
        return removed

    @requires('view_own_entries')
    def stats(self, employee: Optional[str] = None, period_id: Optional[str] = None,
              today: Optional[datetime.date] = None) -> report_service.EmployeeStats:
        today = today or datetime.date.today()
        period = (self.pay_periods.find(period_id) if period_id
                  else self.pay_periods.current_or_next(today))
        running = 0.0
        name = self._employee(employee)
        if self.timer.running and self.timer.state.employee == name:
            running = self.timer.elapsed().total_seconds() / 3600.0
        return report_service.employee_stats(
            self.entries.entries, employee=name,
            start=period.period_start if period else None,
            end=period.period_end if period else None,
            today=today,
            daily_target=self.config.employee_settings.daily_target,
            running_hours=running,
        )

    # --- CSV ---

    @requires('edit_own_entries')
    def import_csv_file(self, path: str, employee: Optional[str] = None,
                        skip_duplicates: bool = True) -> ImportResult:
        try:
            with open(path, 'r', encoding='utf-8-sig') as f:
                text = f.read()
        except OSError as e:
            raise ValidationError(f"Could not read {path}: {e}") from e
        parsed, skipped = parse_entries_csv(text, default_employee=employee or '',
                                            filename=os.path.basename(path))
        if not parsed and not skipped:
            raise ValidationError("Invalid CSV file: no data rows")
        return self.entries.import_entries(parsed, skip_duplicates=skip_duplicates,
                                           skipped_rows=skipped)

    @requires('export_own_data')
    def export_csv(self, path: Optional[str] = None, employee: Optional[str] = None,
                   all_employees: bool = False) -> str:
        if all_employees:
            self.access.check('export_team_data')
            entries = list(self.entries.entries)
            label = 'admin_timesheet_export'
        else:
            name = self._employee(employee)
            entries = self.entries.filter(employee=name)
            label = f"timesheet_{name.replace(' ', '_')}"
        if not entries:
            raise ExportError("No data to export")
        if path is None:
            path = os.path.join(get_export_directory(),
                                f"{label}_{datetime.date.today().isoformat()}.csv")
        write_file(render_entries_csv(entries).encode('utf-8'), path)
        logger.info(f"Exported {len(entries)} entries to {path}")
        return path

    # --- holidays ---

    @requires('timer')
    def select_holidays(self, period_id: str, holiday_ids, employee: Optional[str] = None):
        period = self.pay_periods.find(period_id)
        if period is None:
            raise ValidationError("Please select a pay period first")
        return self.holidays.select_holidays(self._employee(employee), period, holiday_ids)

    # --- admin ---

    def login(self, passphrase: str) -> str:
        return self.access.authenticate_admin(passphrase)

    def developer_login(self, token: str) -> str:
        return self.access.request(f"?dev={token}")

    @requires('configure_company')
    def configure(self, **changes):
        return self.config.update(**changes)

    @requires('configure_company')
    def reset_config(self):
        return self.config.reset_to_defaults()

    @requires('manage_pay_periods')
    def import_pay_periods(self, path: str):
        return self.pay_periods.import_file(path)

    @requires('manage_pay_periods')
    def generate_pay_periods(self, start, end, length_days: int = 14, name: str = 'Generated Periods'):
        """Replace the table with back-to-back periods covering [start, end]."""
        return self.pay_periods.replace(generate_periods(start, end, length_days), name)

    @requires('manage_holidays')
    def import_holidays(self, path: str):
        return self.holidays.import_file(path)

    @requires('view_all_entries')
    def all_entries(self, **filters) -> List[TimeEntry]:
        return self.entries.filter(**filters)

    @requires('data_cleanup')
    def cleanup(self) -> int:
        return self.entries.clean_data()

    @requires('view_all_entries')
    def validation_report(self):
        return self.entries.invalid_entries(), report_service.admin_stats(self.entries.annotate())

    @requires('view_all_entries')
    def analytics(self):
        return report_service.analytics(self.entries.entries)

    @requires('view_all_entries')
    def pay_period_report(self):
        return report_service.by_pay_period(self.entries.entries, self.pay_periods.periods)

    @requires('export_team_data')
    def timesheet_report(self) -> report_service.TimesheetReport:
        return report_service.TimesheetReport(self.entries.entries, self.config.display_name)

    @requires('data_cleanup')
    def clear_all_entries(self) -> int:
        return self.entries.clear()

    # --- backup and developer tools ---

    @requires('export_team_data')
    def write_backup(self, path: Optional[str] = None, encrypt: bool = False,
                     passphrase: Optional[str] = None) -> str:
        return self.backup.write_backup(path, encrypt=encrypt, passphrase=passphrase)

    @requires('system_reset')
    def restore_backup(self, path: str, passphrase: Optional[str] = None) -> int:
        return self.backup.restore(self.backup.read_backup(path, passphrase))

    @requires('developer_tools')
    def generate_test_data(self, count: int = 10, seed: Optional[int] = None):
        return self.backup.generate_test_data(count, seed)

    @requires('developer_tools')
    def inspect_storage(self):
        return self.backup.inspect_storage()

    @requires('force_settings')
    def force_license(self, company: str):
        return self.backup.force_license(company)

    @requires('system_reset')
    def factory_reset(self) -> int:
        return self.backup.factory_reset()
