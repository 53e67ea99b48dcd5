"""
CSV codecs for time entries, pay periods and holidays.

Parsing is lenient: malformed rows are skipped and counted, never raised.
"""
import csv
import io
import logging
import os
import re
from typing import Dict, Iterable, List, Optional, Tuple

from ..data.records import DEFAULT_PROJECT, SOURCE_IMPORT, Holiday, PayPeriod, TimeEntry
from .time_utils import calculate_duration, normalize_date

logger = logging.getLogger(__name__)

ENTRY_HEADER = ['Employee', 'Date', 'Category', 'Project', 'Start Time',
                'End Time', 'Duration', 'Description']
PAY_PERIOD_HEADER = ['ID', 'Description', 'Period Start', 'Period End',
                     'Timesheet Due', 'Pay Day']
HOLIDAY_HEADER = ['ID', 'Date', 'Name', 'Type', 'Description']

_FILENAME_EMPLOYEE = re.compile(r'^([^-_]+)[-_]')
_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z])(?=[A-Z])')


def parse_csv_line(line: str) -> List[str]:
    """Split one CSV line into stripped fields, honouring double quotes."""
    if not line or not line.strip():
        return []
    row = next(csv.reader([line.strip('\r\n')], skipinitialspace=True), [])
    return [value.strip() for value in row]


def _rows(text: str) -> List[List[str]]:
    """All non-blank rows of a CSV document."""
    reader = csv.reader(io.StringIO(text or ''), skipinitialspace=True)
    return [[value.strip() for value in row] for row in reader
            if any(value.strip() for value in row)]


def _normalize_header(headers: Iterable[str]) -> List[str]:
    return [h.strip().strip('"').lower() for h in headers]


def map_columns(headers: Iterable[str]) -> Dict[str, int]:
    """
    Map entry fields to column indices from free-form header names.

    Matching is by lower-cased substring, first rule wins per column:
    ``employee``/``name``, ``date``, ``start``, ``end``, ``category``/``type``,
    ``project``, ``duration``/``hours``, ``description``/``notes``.
    """
    mapping = {}
    for index, header in enumerate(_normalize_header(headers)):
        if 'employee' in header or header == 'name':
            mapping.setdefault('employee', index)
        elif 'date' in header:
            mapping.setdefault('date', index)
        elif 'start' in header:
            mapping.setdefault('start_time', index)
        elif 'end' in header:
            mapping.setdefault('end_time', index)
        elif 'category' in header or header == 'type':
            mapping.setdefault('category', index)
        elif 'project' in header:
            mapping.setdefault('project', index)
        elif 'duration' in header or 'hours' in header:
            mapping.setdefault('duration', index)
        elif 'description' in header or 'notes' in header:
            mapping.setdefault('description', index)
    return mapping


_STANDARD_MAP = {
    'employee': 0, 'date': 1, 'category': 2, 'project': 3,
    'start_time': 4, 'end_time': 5, 'duration': 6, 'description': 7,
}


def employee_from_filename(filename: Optional[str]) -> str:
    """
    Derive an employee name from a timesheet file name.

    ``JohnDoe-TimeSheet.csv`` becomes ``John Doe``. Returns an empty string
    when the name has no ``-`` or ``_`` separated prefix.
    """
    if not filename:
        return ''
    match = _FILENAME_EMPLOYEE.match(os.path.basename(filename))
    if not match:
        return ''
    return _CAMEL_BOUNDARY.sub(' ', match.group(1)).strip()


def _field(values: List[str], mapping: Dict[str, int], name: str) -> str:
    index = mapping.get(name)
    if index is None or index >= len(values):
        return ''
    return values[index]


def _entry_from_row(values: List[str], mapping: Dict[str, int],
                    default_employee: str) -> Optional[TimeEntry]:
    day = normalize_date(_field(values, mapping, 'date'))
    if not day:
        return None

    start_time = _field(values, mapping, 'start_time')
    end_time = _field(values, mapping, 'end_time')
    try:
        duration = float(_field(values, mapping, 'duration'))
    except ValueError:
        duration = 0.0
    if duration <= 0:
        duration = calculate_duration(start_time, end_time)

    return TimeEntry(
        employee=_field(values, mapping, 'employee') or default_employee or 'Unknown',
        date=day,
        category=(_field(values, mapping, 'category') or 'work').lower(),
        project=_field(values, mapping, 'project') or DEFAULT_PROJECT,
        start_time=start_time,
        end_time=end_time,
        duration=duration,
        description=_field(values, mapping, 'description'),
        source=SOURCE_IMPORT,
    )


def parse_entries_csv(text: str, default_employee: str = '',
                      filename: Optional[str] = None) -> Tuple[List[TimeEntry], int]:
    """
    Parse a timesheet CSV.

    The standard header is read by fixed position; any other header goes
    through :func:`map_columns`. Rows without a parseable date, or shorter
    than the standard header, are skipped.

    Returns:
        (entries, skipped_row_count)
    """
    rows = _rows(text)
    if not rows:
        return [], 0

    header, data = rows[0], rows[1:]
    standard = _normalize_header(header) == _normalize_header(ENTRY_HEADER)
    mapping = _STANDARD_MAP if standard else map_columns(header)
    if 'date' not in mapping:
        logger.warning(f"CSV header has no date column: {header}")
        return [], len(data)

    default_employee = default_employee or employee_from_filename(filename)
    entries, skipped = [], 0
    for values in data:
        if standard and len(values) < len(ENTRY_HEADER):
            skipped += 1
            continue
        entry = _entry_from_row(values, mapping, default_employee)
        if entry is None:
            skipped += 1
            continue
        entries.append(entry)

    if skipped:
        logger.info(f"Skipped {skipped} malformed CSV row(s)")
    return entries, skipped


def _render(header: List[str], rows: Iterable[List]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator='\n')
    writer.writerow(header)
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def _format_hours(value: float) -> str:
    return f"{value:g}"


def render_entries_csv(entries: Iterable[TimeEntry]) -> str:
    return _render(ENTRY_HEADER, (
        [e.employee, e.date, e.category, e.project, e.start_time, e.end_time,
         _format_hours(e.duration), e.description]
        for e in entries
    ))


def parse_pay_periods_csv(text: str) -> Tuple[List[PayPeriod], int]:
    """Parse ``ID,Description,Period Start,Period End,Timesheet Due,Pay Day`` rows."""
    rows = _rows(text)
    periods, skipped = [], 0
    for values in rows[1:]:
        if len(values) < len(PAY_PERIOD_HEADER):
            skipped += 1
            continue
        start = normalize_date(values[2])
        end = normalize_date(values[3])
        if not values[0] or not start or not end or end < start:
            skipped += 1
            continue
        periods.append(PayPeriod(
            id=values[0],
            description=values[1],
            period_start=start,
            period_end=end,
            timesheet_due=normalize_date(values[4]) or end,
            pay_day=normalize_date(values[5]) or '',
        ))
    return periods, skipped


def render_pay_periods_csv(periods: Iterable[PayPeriod]) -> str:
    return _render(PAY_PERIOD_HEADER, (
        [p.id, p.description, p.period_start, p.period_end, p.timesheet_due, p.pay_day]
        for p in periods
    ))


def parse_holidays_csv(text: str) -> Tuple[List[Holiday], int]:
    """Parse ``ID,Date,Name,Type,Description`` rows; Description is optional."""
    rows = _rows(text)
    holidays, skipped = [], 0
    for values in rows[1:]:
        if len(values) < 4:
            skipped += 1
            continue
        day = normalize_date(values[1])
        if not values[0] or not day or not values[2]:
            skipped += 1
            continue
        name = values[2]
        description = values[4] if len(values) > 4 and values[4] else name
        holidays.append(Holiday(
            id=values[0],
            date=day,
            name=name,
            type=values[3] or 'company',
            description=description,
        ))
    return holidays, skipped


def render_holidays_csv(holidays: Iterable[Holiday]) -> str:
    return _render(HOLIDAY_HEADER, (
        [h.id, h.date, h.name, h.type, h.description] for h in holidays
    ))
