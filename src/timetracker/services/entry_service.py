"""
Entry service: the in-memory list of time entries and everything that
mutates or queries it.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..data.database import TIME_ENTRIES_KEY, read_blob, write_blob
from ..data.records import CATEGORIES, PayPeriod, TimeEntry
from ..settings import APP_VERSION
from ..utils.errors import EntryNotFoundError, PermissionDisabledError, ValidationError
from ..utils.time_utils import now_iso, parse_date, parse_time

logger = logging.getLogger(__name__)

MAX_ENTRY_HOURS = 24.0


@dataclass
class ImportResult:
    """Outcome of a bulk import"""
    imported: int = 0
    skipped: int = 0
    duplicates: int = 0
    entries: List[TimeEntry] = field(default_factory=list)

    def __str__(self):
        return f"Imported {self.imported} entries, skipped {self.skipped + self.duplicates}"


def validate_entry(entry: TimeEntry) -> List[str]:
    """
    Return a list of problems with an entry (empty when valid).

    An entry needs an employee, a parseable date, start and end times,
    a known category and a duration in (0, 24] hours.
    """
    problems = []
    if not entry.employee:
        problems.append("missing employee")
    if not entry.date:
        problems.append("missing date")
    elif parse_date(entry.date) is None:
        problems.append(f"invalid date '{entry.date}'")
    if not entry.start_time:
        problems.append("missing start time")
    elif parse_time(entry.start_time) is None:
        problems.append(f"invalid start time '{entry.start_time}'")
    if not entry.end_time:
        problems.append("missing end time")
    elif parse_time(entry.end_time) is None:
        problems.append(f"invalid end time '{entry.end_time}'")
    if entry.duration <= 0:
        problems.append("duration must be positive")
    elif entry.duration > MAX_ENTRY_HOURS:
        problems.append(f"duration exceeds {MAX_ENTRY_HOURS:g} hours")
    if entry.category not in CATEGORIES:
        problems.append(f"unknown category '{entry.category}'")
    return problems


class EntryService:
    """Holds the entry list for the life of the process and persists it whole"""

    def __init__(self, config_service=None):
        """
        Args:
            config_service: Optional ConfigService consulted for the
                edit/delete permission flags.
        """
        self.config_service = config_service
        self.entries: List[TimeEntry] = []
        self.last_update: Optional[str] = None

    # --- persistence ---

    def load(self) -> List[TimeEntry]:
        """Read the stored entry list; unreadable data leaves an empty list."""
        data = read_blob(TIME_ENTRIES_KEY, default={}) or {}
        raw = data.get('allEntries') or data.get('employeeEntries') or []
        entries = []
        for item in raw:
            if not isinstance(item, dict):
                logger.warning(f"Ignoring malformed stored entry: {item!r}")
                continue
            entries.append(TimeEntry.from_dict(item))
        self.entries = entries
        self.last_update = data.get('lastUpdate')
        logger.debug(f"Loaded {len(entries)} time entries")
        return self.entries

    def save(self) -> bool:
        self.last_update = now_iso()
        return write_blob(TIME_ENTRIES_KEY, {
            'allEntries': [e.to_dict() for e in self.entries],
            'lastUpdate': self.last_update,
            'version': APP_VERSION,
        })

    # --- CRUD ---

    def add(self, entry: TimeEntry, save: bool = True) -> TimeEntry:
        self.entries.append(entry)
        logger.info(f"Added entry {entry.id}: {entry}")
        if save:
            self.save()
        return entry

    def get(self, entry_id: str) -> TimeEntry:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        raise EntryNotFoundError(f"Time entry {entry_id} not found")

    def _check_permission(self, action: str, admin: bool):
        if self.config_service is None:
            return
        config = self.config_service.config
        if admin:
            allowed = config.allow_edit if action == 'edit' else config.allow_delete
        else:
            allowed = config.allow_employee_edit if action == 'edit' else config.allow_employee_delete
        if not allowed:
            who = "Admin" if admin else "Employee"
            raise PermissionDisabledError(f"{who} {action} is disabled by the administrator")

    def update(self, entry_id: str, admin: bool = False, **changes) -> TimeEntry:
        """
        Replace editable fields of an entry and persist.

        Raises:
            EntryNotFoundError: no entry with that id
            PermissionDisabledError: editing is switched off
            ValidationError: unknown field or the edited entry is invalid
        """
        self._check_permission('edit', admin)
        entry = self.get(entry_id)
        unknown = set(changes) - set(TimeEntry.EDITABLE)
        if unknown:
            raise ValidationError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")

        updated = entry.copy(**changes)
        if 'category' in changes:
            updated.category = (updated.category or '').lower()
        if 'duration' in changes:
            updated.duration = float(updated.duration)
        problems = validate_entry(updated)
        if problems:
            raise ValidationError(f"Invalid entry: {'; '.join(problems)}", problems)

        updated.timestamp = now_iso()
        self.entries[self.entries.index(entry)] = updated
        self.save()
        logger.info(f"Updated entry {entry_id}")
        return updated

    def delete(self, entry_id: str, admin: bool = False) -> TimeEntry:
        self._check_permission('delete', admin)
        entry = self.get(entry_id)
        self.entries.remove(entry)
        self.save()
        logger.info(f"Deleted entry {entry_id}")
        return entry

    def remove_where(self, predicate) -> int:
        """Remove every entry matching predicate; returns the count removed."""
        before = len(self.entries)
        self.entries = [e for e in self.entries if not predicate(e)]
        removed = before - len(self.entries)
        if removed:
            self.save()
        return removed

    def clear(self) -> int:
        count = len(self.entries)
        self.entries = []
        self.save()
        logger.info(f"Cleared {count} entries")
        return count

    # --- queries ---

    def filter(self, employee: Optional[str] = None, start: Optional[str] = None,
               end: Optional[str] = None, category: Optional[str] = None,
               project: Optional[str] = None,
               pay_period: Optional[PayPeriod] = None) -> List[TimeEntry]:
        """Linear scan with inclusive ISO date bounds."""
        if pay_period is not None:
            start = max(start or pay_period.period_start, pay_period.period_start)
            end = min(end or pay_period.period_end, pay_period.period_end)
        result = []
        for entry in self.entries:
            if employee and entry.employee != employee:
                continue
            if category and entry.category != category.lower():
                continue
            if project and entry.project != project:
                continue
            if start and entry.date < start:
                continue
            if end and entry.date > end:
                continue
            result.append(entry)
        return result

    def employees(self) -> List[str]:
        return sorted({e.employee for e in self.entries if e.employee})

    def projects(self) -> List[str]:
        return sorted({e.project for e in self.entries if e.project})

    def categories(self) -> List[str]:
        return sorted({e.category for e in self.entries if e.category})

    # --- data quality ---

    def is_duplicate(self, candidate: TimeEntry, entries: Optional[Iterable[TimeEntry]] = None) -> bool:
        pool = self.entries if entries is None else entries
        return any(e.id != candidate.id and e.same_slot(candidate) for e in pool)

    def find_duplicates(self) -> List[TimeEntry]:
        """Entries repeating an earlier (employee, date, start, end); first occurrence wins."""
        seen = set()
        duplicates = []
        for entry in self.entries:
            key = (entry.employee, entry.date, entry.start_time, entry.end_time)
            if key in seen:
                duplicates.append(entry)
            else:
                seen.add(key)
        return duplicates

    def annotate(self) -> List[Tuple[TimeEntry, bool, bool]]:
        """Each entry with its validity and duplicate flags."""
        duplicate_ids = {e.id for e in self.find_duplicates()}
        return [(e, not validate_entry(e), e.id in duplicate_ids) for e in self.entries]

    def invalid_entries(self) -> Dict[str, List[str]]:
        """Map of entry id to its problems, for invalid entries only."""
        report = {}
        for entry in self.entries:
            problems = validate_entry(entry)
            if problems:
                report[entry.id] = problems
        return report

    def clean_data(self) -> int:
        """Drop entries with non-positive duration and later duplicates."""
        duplicate_ids = {e.id for e in self.find_duplicates()}
        removed = self.remove_where(lambda e: e.duration <= 0 or e.id in duplicate_ids)
        logger.info(f"Data cleanup removed {removed} entries")
        return removed

    def import_entries(self, entries: Iterable[TimeEntry], skip_duplicates: bool = True,
                       skipped_rows: int = 0) -> ImportResult:
        """Append parsed entries, optionally dropping ones already present."""
        result = ImportResult(skipped=skipped_rows)
        for entry in entries:
            if skip_duplicates and self.is_duplicate(entry):
                result.duplicates += 1
                continue
            self.entries.append(entry)
            result.entries.append(entry)
            result.imported += 1
        if result.imported:
            self.save()
        logger.info(str(result))
        return result
