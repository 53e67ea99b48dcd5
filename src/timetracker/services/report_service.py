"""
Timesheet reports and statistics.

Aggregations over the in-memory entry list for the employee view, the admin
dashboard and exported reports. Rendering is deterministic: the same data
always produces the same text.
"""
import datetime
import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..data.records import PayPeriod, TimeEntry
from ..settings import DEFAULT_DAILY_TARGET_HOURS
from ..utils.export_utils import get_export_directory, write_file
from ..utils.time_utils import count_work_days, days_between, parse_date, to_iso

logger = logging.getLogger(__name__)

WIDTH = 37
TARGET_HOURS_PER_DAY = 8


def _total(entries: Iterable[TimeEntry]) -> float:
    return sum(e.duration for e in entries)


def _avg(total: float, count: int) -> float:
    return total / count if count else 0.0


@dataclass
class EmployeeStats:
    total_hours: float
    work_days: int
    period_days: int
    days_elapsed: int
    today_hours: float
    running_hours: float
    daily_target: float
    progress_percent: float

    @property
    def daily_counter(self) -> str:
        if self.running_hours:
            return (f"{self.today_hours:.1f} (+{self.running_hours:.1f}) / "
                    f"{self.daily_target:.1f}h")
        return f"{self.today_hours:.1f} / {self.daily_target:.1f}h"


def employee_stats(entries: Iterable[TimeEntry], employee: Optional[str] = None,
                   start=None, end=None, today=None,
                   daily_target: float = DEFAULT_DAILY_TARGET_HOURS,
                   running_hours: float = 0.0) -> EmployeeStats:
    """
    Totals for one employee over an optional date range.

    ``work_days`` counts distinct dates with entries. Progress is today's
    hours against the daily target, capped at 100 percent.
    """
    start, end = to_iso(start), to_iso(end)
    today_date = parse_date(today) or datetime.date.today()
    relevant = [
        e for e in entries
        if (not employee or e.employee == employee)
        and (not start or e.date >= start)
        and (not end or e.date <= end)
    ]

    period_days = days_elapsed = 0
    if start and end:
        period_days = days_between(start, end)
        start_date = parse_date(start)
        if start_date is not None:
            days_elapsed = max(0, min((today_date - start_date).days + 1, period_days))

    today_hours = _total(e for e in relevant if e.date == today_date.isoformat())
    target = daily_target or DEFAULT_DAILY_TARGET_HOURS
    return EmployeeStats(
        total_hours=_total(relevant),
        work_days=len({e.date for e in relevant}),
        period_days=period_days,
        days_elapsed=days_elapsed,
        today_hours=today_hours,
        running_hours=running_hours,
        daily_target=target,
        progress_percent=min(today_hours / target * 100, 100.0),
    )


def daily_summary(entries: Iterable[TimeEntry]) -> List[Dict]:
    """Per date, newest first: total hours, entry count and projects."""
    by_date: Dict[str, List[TimeEntry]] = {}
    for entry in entries:
        by_date.setdefault(entry.date, []).append(entry)
    rows = []
    for day in sorted(by_date, reverse=True):
        day_entries = by_date[day]
        projects = []
        for e in day_entries:
            if e.project not in projects:
                projects.append(e.project)
        rows.append({
            'date': day,
            'total_hours': _total(day_entries),
            'entries': len(day_entries),
            'projects': projects,
        })
    return rows


def admin_stats(annotated: Sequence[Tuple[TimeEntry, bool, bool]]) -> Dict:
    """Dashboard counters from ``EntryService.annotate()`` output."""
    valid = [e for e, is_valid, is_duplicate in annotated if is_valid and not is_duplicate]
    total = len(annotated)
    return {
        'total_entries': total,
        'valid_entries': len(valid),
        'invalid_entries': sum(1 for _, is_valid, _ in annotated if not is_valid),
        'duplicate_entries': sum(1 for _, _, is_duplicate in annotated if is_duplicate),
        'total_hours': _total(valid),
        'employees': len({e.employee for e, _, _ in annotated}),
        'projects': len({e.project for e, _, _ in annotated}),
        'categories': len({e.category for e, _, _ in annotated}),
        'data_quality': round(len(valid) / total * 100) if total else 100,
    }


def breakdown(entries: Iterable[TimeEntry], attr: str) -> List[Dict]:
    """Group by ``employee``, ``category`` or ``project``, sorted by key."""
    entries = list(entries)
    grand_total = _total(entries)
    groups: Dict[str, List[TimeEntry]] = {}
    for entry in entries:
        groups.setdefault(getattr(entry, attr), []).append(entry)
    rows = []
    for key in sorted(groups):
        group = groups[key]
        hours = _total(group)
        rows.append({
            attr: key,
            'entries': len(group),
            'total_hours': hours,
            'average_hours': _avg(hours, len(group)),
            'employees': len({e.employee for e in group}),
            'projects': len({e.project for e in group}),
            'percent': hours / grand_total * 100 if grand_total else 0.0,
        })
    return rows


def analytics(entries: Iterable[TimeEntry]) -> Dict:
    entries = list(entries)
    total = _total(entries)
    employees = {e.employee for e in entries}
    dates = [d for d in (parse_date(e.date) for e in entries) if d is not None]
    span_days = (max(dates) - min(dates)).days + 1 if dates else 0

    categories: Dict[str, float] = {}
    for entry in entries:
        categories[entry.category] = categories.get(entry.category, 0.0) + entry.duration
    category_rows = [
        {'category': name, 'hours': hours, 'percent': hours / total * 100 if total else 0.0}
        for name, hours in sorted(categories.items(), key=lambda item: (-item[1], item[0]))
    ]

    return {
        'total_hours': total,
        'total_entries': len(entries),
        'employees': len(employees),
        'projects': len({e.project for e in entries}),
        'date_range_days': span_days,
        'avg_hours_per_entry': _avg(total, len(entries)),
        'avg_hours_per_employee': _avg(total, len(employees)),
        'avg_hours_per_day': _avg(total, span_days),
        'avg_entries_per_day': _avg(len(entries), span_days),
        'categories': category_rows,
    }


def by_pay_period(entries: Iterable[TimeEntry], periods: Iterable[PayPeriod]) -> List[Dict]:
    """
    Hours per pay period, skipping periods without entries.

    Target hours are work days (Mon-Fri) x 8 x employees with entries.
    """
    periods = list(periods)
    buckets: Dict[str, List[TimeEntry]] = {p.id: [] for p in periods}
    for entry in entries:
        for period in periods:
            if period.contains(entry.date):
                buckets[period.id].append(entry)
                break

    rows = []
    for period in periods:
        period_entries = buckets[period.id]
        if not period_entries:
            continue
        hours = _total(period_entries)
        employees = len({e.employee for e in period_entries})
        target = count_work_days(period.period_start, period.period_end) * TARGET_HOURS_PER_DAY * employees
        rows.append({
            'period': period,
            'total_hours': hours,
            'target_hours': float(target),
            'efficiency': hours / target * 100 if target else 0.0,
            'employees': employees,
            'entries': len(period_entries),
        })
    return rows


# --- text rendering ---

def render_entries_table(entries: Iterable[TimeEntry], show_ids: bool = False) -> str:
    entries = sorted(entries, key=lambda e: (e.date, e.start_time, e.employee), reverse=True)
    if not entries:
        return "No time entries found"
    lines = []
    header = f"{'Date':<11} {'Employee':<16} {'Category':<10} {'Project':<16} {'Time':<11} {'Hours':>5}"
    if show_ids:
        header = f"{'ID':<32} " + header
    lines.append(header)
    lines.append("-" * len(header))
    for e in entries:
        span = f"{e.start_time}-{e.end_time}" if e.start_time or e.end_time else ''
        row = (f"{e.date:<11} {e.employee[:16]:<16} {e.category[:10]:<10} "
               f"{e.project[:16]:<16} {span:<11} {e.duration:>5.1f}")
        if show_ids:
            row = f"{e.id:<32} " + row
        lines.append(row)
    return "\n".join(lines)


def render_daily_summary(rows: List[Dict]) -> str:
    if not rows:
        return "No time entries found"
    lines = [f"{'Date':<12} {'Hours':>6} {'Entries':>8}  Projects", "-" * WIDTH]
    for row in rows:
        lines.append(f"{row['date']:<12} {row['total_hours']:>6.1f} {row['entries']:>8}  "
                     f"{', '.join(row['projects'])}")
    return "\n".join(lines)


def render_stats(stats: EmployeeStats, employee: str = '') -> str:
    lines = ["=" * WIDTH, "EMPLOYEE STATS", "=" * WIDTH]
    if employee:
        lines.append(f"Name: {employee}")
    lines.append(f"Total Hours: {stats.total_hours:.1f}")
    lines.append(f"Work Days: {stats.work_days}")
    lines.append(f"Period Days: {stats.period_days}")
    lines.append(f"Days Elapsed: {stats.days_elapsed}")
    lines.append(f"Today: {stats.daily_counter}")
    lines.append(f"Progress: {stats.progress_percent:.0f}%")
    lines.append("=" * WIDTH)
    return "\n".join(lines)


def render_admin_stats(stats: Dict) -> str:
    lines = ["=" * WIDTH, "DATA SUMMARY", "=" * WIDTH]
    lines.append(f"Total Entries: {stats['total_entries']}")
    lines.append(f"Valid Entries: {stats['valid_entries']}")
    lines.append(f"Invalid Entries: {stats['invalid_entries']}")
    lines.append(f"Duplicate Entries: {stats['duplicate_entries']}")
    lines.append(f"Valid Hours: {stats['total_hours']:.1f}")
    lines.append(f"Employees: {stats['employees']}")
    lines.append(f"Projects: {stats['projects']}")
    lines.append(f"Data Quality: {stats['data_quality']}%")
    lines.append("=" * WIDTH)
    return "\n".join(lines)


def render_analytics(data: Dict) -> str:
    lines = ["=" * WIDTH, "ANALYTICS", "=" * WIDTH]
    if not data['total_entries']:
        lines.append("No time entries found.")
        return "\n".join(lines)
    lines.append(f"Total Hours: {data['total_hours']:.1f}h")
    lines.append(f"Total Entries: {data['total_entries']}")
    lines.append(f"Unique Employees: {data['employees']}")
    lines.append(f"Unique Projects: {data['projects']}")
    lines.append(f"Date Range: {data['date_range_days']} days")
    lines.append("-" * WIDTH)
    lines.append(f"Avg Hours/Entry: {data['avg_hours_per_entry']:.1f}h")
    lines.append(f"Avg Hours/Employee: {data['avg_hours_per_employee']:.1f}h")
    lines.append(f"Avg Hours/Day: {data['avg_hours_per_day']:.1f}h")
    lines.append(f"Avg Entries/Day: {data['avg_entries_per_day']:.1f}")
    lines.append("-" * WIDTH)
    lines.append("CATEGORY DISTRIBUTION")
    for row in data['categories']:
        lines.append(f"{row['category']}: {row['hours']:.1f}h ({row['percent']:.1f}%)")
    lines.append("=" * WIDTH)
    return "\n".join(lines)


def render_breakdown(rows: List[Dict], attr: str) -> str:
    lines = [f"BY {attr.upper()}", "-" * WIDTH]
    for row in rows:
        lines.append(f"{row[attr]}: {row['total_hours']:.1f}h ({row['entries']} entries, "
                     f"avg {row['average_hours']:.1f}h)")
    return "\n".join(lines)


def render_pay_period_report(rows: List[Dict]) -> str:
    lines = ["=" * WIDTH, "HOURS BY PAY PERIOD", "=" * WIDTH]
    if not rows:
        lines.append("No entries fall within a pay period.")
        return "\n".join(lines)
    for row in rows:
        period = row['period']
        lines.append(period.description or period.id)
        lines.append(f"  {period.period_start} - {period.period_end}")
        lines.append(f"  Total Hours: {row['total_hours']:.1f}h")
        lines.append(f"  Target Hours: {row['target_hours']:.1f}h")
        lines.append(f"  Efficiency: {row['efficiency']:.1f}%")
        lines.append(f"  Employees: {row['employees']}  Entries: {row['entries']}")
    lines.append("=" * WIDTH)
    return "\n".join(lines)


class TimesheetReport:
    """Company-wide time tracking report for HR export"""

    def __init__(self, entries: Iterable[TimeEntry], organization: str,
                 generated: Optional[datetime.date] = None):
        """
        Args:
            entries: Entries to report on
            organization: Company name printed in the header
            generated: Report date (defaults to today)
        """
        self.entries = list(entries)
        self.organization = organization
        self.generated = generated or datetime.date.today()

    def generate(self) -> Dict:
        return {
            'organization': self.organization,
            'generated': self.generated,
            'total_entries': len(self.entries),
            'total_hours': _total(self.entries),
            'employees': breakdown(self.entries, 'employee'),
            'projects': breakdown(self.entries, 'project'),
        }

    def to_text(self) -> str:
        report = self.generate()
        lines = []
        lines.append("=" * WIDTH)
        lines.append("TIME TRACKING REPORT")
        lines.append("=" * WIDTH)
        lines.append(f"Generated: {report['generated'].isoformat()}")
        lines.append(f"Organization: {report['organization']}")

        if not self.entries:
            lines.append("No time entries found.")
            return "\n".join(lines)

        lines.append("-" * WIDTH)
        lines.append("SUMMARY")
        lines.append("-" * WIDTH)
        lines.append(f"Total Entries: {report['total_entries']}")
        lines.append(f"Total Hours: {report['total_hours']:.1f}")
        lines.append(f"Unique Employees: {len(report['employees'])}")
        lines.append(f"Unique Projects: {len(report['projects'])}")
        lines.append("-" * WIDTH)
        lines.append("EMPLOYEE BREAKDOWN")
        lines.append("-" * WIDTH)
        for row in report['employees']:
            lines.append(f"{row['employee']}: {row['total_hours']:.1f}h ({row['entries']} entries)")
        lines.append("-" * WIDTH)
        lines.append("PROJECT BREAKDOWN")
        lines.append("-" * WIDTH)
        for row in report['projects']:
            lines.append(f"{row['project']}: {row['total_hours']:.1f}h")
        lines.append("=" * WIDTH)
        return "\n".join(lines)

    def to_csv(self, filename: Optional[str] = None, export_root: Optional[str] = None) -> str:
        """
        Export report to a CSV file.

        Returns:
            Path to the generated file.
        """
        import csv
        import io

        report = self.generate()
        if filename is None:
            root = export_root or get_export_directory()
            filename = os.path.join(root, f"time_tracking_report_{report['generated']:%Y%m%d}.csv")

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator='\n')
        writer.writerow(['Time Tracking Report'])
        writer.writerow(['Organization:', report['organization']])
        writer.writerow(['Generated:', report['generated'].isoformat()])
        writer.writerow([])
        writer.writerow(['Employee', 'Entries', 'Total Hours', 'Average Hours'])
        for row in report['employees']:
            writer.writerow([row['employee'], row['entries'], f"{row['total_hours']:.2f}",
                             f"{row['average_hours']:.2f}"])
        writer.writerow([])
        writer.writerow(['Project', 'Entries', 'Total Hours'])
        for row in report['projects']:
            writer.writerow([row['project'], row['entries'], f"{row['total_hours']:.2f}"])
        writer.writerow([])
        writer.writerow(['Total Hours:', f"{report['total_hours']:.2f}"])

        write_file(buffer.getvalue().encode('utf-8'), filename)
        logger.info(f"Report export written to {filename}")
        return filename
