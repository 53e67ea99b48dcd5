"""
Command-line front end for the time tracker.

Usage:
    timetracker whoami "John Doe"
    timetracker timer start --project "Project Alpha"
    timetracker timer stop
    timetracker entries list --period 2025-19
    timetracker admin report --passphrase ...
"""
import argparse
import getpass
import logging
import os
import sys
import time

from .app import TimeTrackerApp
from .data.database import is_encrypted, migrate_to_encrypted
from .data.defaults import SAMPLE_ENTRIES_CSV
from .data.records import CATEGORIES
from .services import report_service
from .services.access_service import COMPANY_ADMIN, DEVELOPER, parse_access_request
from .services.holiday_service import format_for_display
from .services.timer_service import TimerTicker
from .settings import APP_VERSION, ENV_KEY_NAME, get_db_path, setup_logging
from .utils.errors import AuthenticationError, TimeTrackerError

logger = logging.getLogger(__name__)

EPILOG = """
Examples:
  # Set who you are (stored for later commands)
  %(prog)s whoami "John Doe"

  # Track time with the timer
  %(prog)s timer start --category work --project "Project Alpha"
  %(prog)s timer stop

  # Add an entry by hand
  %(prog)s entries add --date 2025-10-02 --start 09:00 --end 17:00 --project Alpha

  # Import and export timesheets
  %(prog)s import JohnDoe-TimeSheet.csv
  %(prog)s export --output timesheet.csv

  # Admin commands need the admin passphrase
  %(prog)s admin enroll
  %(prog)s admin analytics --passphrase "correct horse battery"
"""


# --- helpers ---

def _print_entries(entries, show_ids=True):
    print(report_service.render_entries_table(entries, show_ids=show_ids))


def _read_passphrase(args, prompt="Admin passphrase: "):
    return getattr(args, 'passphrase', None) or getpass.getpass(prompt)


def _unlock(app, args):
    """Raise the access level for admin and developer commands."""
    token = getattr(args, 'dev_token', None)
    if token:
        if app.developer_login(token) != DEVELOPER:
            raise AuthenticationError("Invalid developer token")
        return
    app.login(_read_passphrase(args))


def _period_or_current(app, period_id):
    if period_id:
        period = app.pay_periods.find(period_id)
        if period is None:
            raise TimeTrackerError(f"Unknown pay period '{period_id}'")
        return period
    return app.pay_periods.current_or_next()


# --- employee commands ---

def cmd_whoami(app, args):
    if args.name:
        name = app.set_employee_name(args.name)
        print(f"✅ Employee name set to {name}")
    else:
        print(app.employee_name or "(not set)")
    print(f"Company: {app.config.display_name}")
    return 0


def cmd_timer(app, args):
    if args.timer_command == 'start':
        state = app.start_timer(args.employee, args.category, args.project or '')
        print(f"✅ Timer started for {state.employee} at {state.started_at:%H:%M:%S}")
    elif args.timer_command == 'stop':
        result = app.stop_timer()
        entry = result.entry
        print(f"✅ Timer stopped: {entry.duration:g}h logged for {entry.employee} "
              f"({entry.start_time}-{entry.end_time}, project {entry.project})")
    elif args.timer_command == 'status':
        if app.timer.running:
            state = app.timer.state
            print(f"Running for {state.employee}: {app.timer.format_elapsed()} "
                  f"({state.category}/{state.project or 'No Project'})")
        else:
            print("Timer is not running")
    elif args.timer_command == 'watch':
        if not app.timer.running:
            print("Timer is not running")
            return 1
        ticker = TimerTicker(app.timer, lambda text: print(f"\r{text}", end='', flush=True))
        ticker.start()
        try:
            deadline = time.monotonic() + args.seconds if args.seconds else None
            while ticker.running and (deadline is None or time.monotonic() < deadline):
                time.sleep(0.2)
        except KeyboardInterrupt:
            pass
        finally:
            ticker.stop()
            print()
    return 0


def cmd_entries(app, args):
    command = args.entries_command
    if command == 'list':
        _print_entries(app.my_entries(args.employee, args.period, args.start, args.end))
    elif command == 'add':
        entry = app.add_entry(args.date, args.start, args.end, employee=args.employee,
                              category=args.category, project=args.project or '',
                              description=args.description or '', duration=args.duration)
        print(f"✅ Added {entry.id}: {entry}")
    elif command == 'edit':
        changes = {}
        for attr in ('date', 'category', 'project', 'description', 'duration'):
            value = getattr(args, attr)
            if value is not None:
                changes[attr] = value
        if args.start is not None:
            changes['start_time'] = args.start
        if args.end is not None:
            changes['end_time'] = args.end
        if not changes:
            print("ERROR: Nothing to change")
            return 1
        entry = app.edit_entry(args.entry_id, **changes)
        print(f"✅ Updated {entry.id}: {entry}")
    elif command == 'delete':
        entry = app.delete_entry(args.entry_id)
        print(f"✅ Deleted {entry.id}: {entry}")
    elif command == 'clear':
        if not args.yes:
            print("ERROR: This deletes all of your entries. Re-run with --yes to confirm")
            return 1
        removed = app.clear_my_entries(args.employee)
        print(f"✅ Removed {removed} entries")
    elif command == 'summary':
        entries = app.my_entries(args.employee, args.period)
        print(report_service.render_daily_summary(report_service.daily_summary(entries)))
    elif command == 'stats':
        name = args.employee or app.employee_name
        print(report_service.render_stats(app.stats(args.employee, args.period), name))
    elif command == 'sample':
        _emit(SAMPLE_ENTRIES_CSV, args.output)
    return 0


def cmd_import(app, args):
    result = app.import_csv_file(args.file, employee=args.employee,
                                 skip_duplicates=not args.keep_duplicates)
    print(f"✅ {result}")
    return 0


def cmd_export(app, args):
    if args.all:
        _unlock(app, args)
    path = app.export_csv(args.output, employee=args.employee, all_employees=args.all)
    print(f"✅ Data exported to {path}")
    return 0


def cmd_periods(app, args):
    command = args.periods_command
    if command == 'list':
        print(f"Configuration: {app.pay_periods.config_name}")
        for period in app.pay_periods.periods:
            print(f"{period.id:<10} {period.period_start} to {period.period_end}  {period.description}")
    elif command in ('current', 'show'):
        period = _period_or_current(app, getattr(args, 'period_id', None))
        if period is None:
            print("No current or upcoming pay period")
            return 1
        info = app.pay_periods.period_info(period)
        print(period.description or period.id)
        print(f"Period: {info.period_range}")
        print(f"Timesheet Due: {info.timesheet_due}")
        print(f"Pay Day: {info.pay_day}")
        print(f"Days Remaining: {info.days_remaining}")
        print(f"Work Days: {info.work_days} of {info.period_days}")
        print(f"Holidays: {app.holidays.describe_period(period)}")
    elif command == 'import':
        _unlock(app, args)
        periods = app.import_pay_periods(args.file)
        print(f"✅ Pay periods configuration imported successfully ({len(periods)} periods loaded)")
    elif command == 'generate':
        _unlock(app, args)
        periods = app.generate_pay_periods(args.start, args.end, args.days)
        print(f"✅ Generated {len(periods)} pay periods "
              f"({periods[0].period_start} to {periods[-1].period_end})")
    elif command == 'export':
        text = app.pay_periods.export_csv() if args.csv else app.pay_periods.export_json()
        _emit(text, args.output)
    elif command == 'template':
        _emit(app.pay_periods.template_csv(), args.output)
    return 0


def cmd_holidays(app, args):
    command = args.holidays_command
    if command == 'list':
        period = _period_or_current(app, args.period) if args.period else None
        holidays = app.holidays.for_period(period) if period else app.holidays.holidays
        print(f"Configuration: {app.holidays.config_name}")
        for holiday in holidays:
            print(f"{holiday.id:<22} {format_for_display(holiday)} ({holiday.type})")
    elif command == 'select':
        period = _period_or_current(app, args.period)
        if period is None:
            print("ERROR: Please select a pay period first")
            return 1
        added, removed = app.select_holidays(period.id, args.holiday_ids, args.employee)
        messages = []
        if added:
            messages.append(f"{added} holidays added")
        if removed:
            messages.append(f"{removed} holidays removed")
        print(f"✅ {', '.join(messages)}" if messages else "No changes made")
    elif command == 'import':
        _unlock(app, args)
        holidays = app.import_holidays(args.file)
        print(f"✅ Holidays configuration imported successfully ({len(holidays)} holidays loaded)")
    elif command == 'export':
        text = app.holidays.export_json() if args.json else app.holidays.export_csv()
        _emit(text, args.output)
    elif command == 'template':
        _emit(app.holidays.template_csv(), args.output)
    return 0


def _emit(text, output):
    if output:
        with open(output, 'w', encoding='utf-8', newline='') as f:
            f.write(text)
        print(f"✅ Written to {output}")
    else:
        print(text, end='' if text.endswith('\n') else '\n')


def cmd_config(app, args):
    command = args.config_command
    if command == 'show':
        for key, value in app.config.config.to_dict().items():
            if key == 'licenseKey' and value:
                value = '****'
            print(f"{key}: {value}")
        return 0

    _unlock(app, args)
    if command == 'set':
        changes = {}
        if args.company_name is not None:
            changes['company_name'] = args.company_name
        if args.logo_url is not None:
            changes['logo_url'] = args.logo_url
        for flag in ('allow_edit', 'allow_delete', 'allow_employee_edit', 'allow_employee_delete'):
            value = getattr(args, flag)
            if value is not None:
                changes[flag] = value == 'on'
        app.configure(**changes)
        print("✅ Configuration saved successfully")
    elif command == 'reset':
        app.reset_config()
        print("✅ Settings reset to defaults")
    return 0


def cmd_admin(app, args):
    command = args.admin_command
    if command == 'enroll':
        passphrase = args.passphrase or getpass.getpass("New admin passphrase: ")
        if not args.passphrase and getpass.getpass("Repeat passphrase: ") != passphrase:
            print("ERROR: Passphrases do not match")
            return 1
        app.access.enroll_admin(passphrase)
        print("✅ Admin credential enrolled")
        return 0
    if command == 'access':
        level = parse_access_request(args.url)
        print(level)
        if level == COMPANY_ADMIN and not app.access.has_credential():
            print("No admin credential enrolled yet. Run 'admin enroll'")
        return 0

    _unlock(app, args)
    if command == 'login':
        print(f"✅ Authenticated as {app.access.level}")
    elif command == 'reset-credential':
        removed = app.access.reset_admin_credential()
        print("✅ Admin credential removed" if removed else "No admin credential stored")
    elif command == 'validate':
        problems, stats = app.validation_report()
        print(report_service.render_admin_stats(stats))
        for entry_id, issues in sorted(problems.items()):
            print(f"{entry_id}: {'; '.join(issues)}")
    elif command == 'cleanup':
        removed = app.cleanup()
        print(f"✅ Data cleanup completed: {removed} entries removed")
    elif command == 'analytics':
        print(report_service.render_analytics(app.analytics()))
        entries = app.all_entries()
        for attr in ('employee', 'category', 'project'):
            print(report_service.render_breakdown(report_service.breakdown(entries, attr), attr))
    elif command == 'report':
        if args.by_period:
            print(report_service.render_pay_period_report(app.pay_period_report()))
        else:
            report = app.timesheet_report()
            if args.csv:
                print(f"✅ Report written to {report.to_csv(args.output)}")
            else:
                print(report.to_text())
    elif command == 'entries':
        _print_entries(app.all_entries(employee=args.employee, start=args.start, end=args.end,
                                       category=args.category, project=args.project))
    elif command == 'clear':
        if not args.yes:
            print("ERROR: This deletes ALL time entries. Re-run with --yes to confirm")
            return 1
        print(f"✅ Removed {app.clear_all_entries()} entries")
    elif command == 'dev':
        return _dev_tools(app, args)
    return 0


def _dev_tools(app, args):
    tool = args.tool
    if tool == 'test-data':
        created = app.generate_test_data(args.count, args.seed)
        print(f"✅ Generated {len(created)} test entries")
    elif tool == 'inspect':
        print(f"Storage encrypted: {'yes' if is_encrypted() else 'no'}")
        for line in app.inspect_storage():
            print(line)
    elif tool == 'force-license':
        app.force_license(args.company)
        print(f"✅ Force-licensed to: {args.company}")
    elif tool == 'factory-reset':
        if not args.yes:
            print("ERROR: This deletes ALL data and settings. Re-run with --yes to confirm")
            return 1
        removed = app.factory_reset()
        print(f"✅ Factory reset removed {removed} stored keys")
    return 0


def cmd_backup(app, args):
    _unlock(app, args)
    if args.backup_command == 'export':
        path = app.write_backup(args.output, encrypt=args.encrypt, passphrase=args.key)
        print(f"✅ Full backup exported to {path}")
    elif args.backup_command == 'restore':
        count = app.restore_backup(args.file, passphrase=args.key)
        print(f"✅ Restored {count} stored keys")
    return 0


def cmd_db(args):
    key = args.key or os.getenv(ENV_KEY_NAME)
    if not key:
        print("ERROR: No encryption key provided!")
        print(f"Set {ENV_KEY_NAME} environment variable or use --key option")
        return 1
    if len(key) < 16:
        print("WARNING: Encryption key should be at least 16 characters for security")
    source = args.source or get_db_path()
    print(f"Migrating: {source} -> {args.target}")
    if migrate_to_encrypted(key, source, args.target):
        print("\n✓ Migration successful!")
        print("\nNext steps:")
        print(f"  1. Backup your original database: mv {source} {source}.backup")
        print(f"  2. Use the encrypted database: mv {args.target} {source}")
        print(f"  3. Ensure {ENV_KEY_NAME} is set when running the app")
        return 0
    print("\n✗ Migration failed!")
    return 1


# --- parser ---

def _admin_options():
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument('--passphrase', '-p', help='Admin passphrase (prompted if omitted)')
    parent.add_argument('--dev-token', help='Developer token (must match TIMETRACKER_DEV_TOKEN)')
    return parent


def _on_off(value):
    if value not in ('on', 'off'):
        raise argparse.ArgumentTypeError("expected 'on' or 'off'")
    return value


def build_parser():
    parser = argparse.ArgumentParser(
        prog='timetracker',
        description='Employee time tracking: timer, timesheets, pay periods and holidays',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument('--db', help='Database path (default: TIMETRACKER_DB_PATH or timetracker.db)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {APP_VERSION}')
    admin_opts = _admin_options()
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('whoami', help='Show or set the employee name')
    p.add_argument('name', nargs='?')
    p.set_defaults(handler=cmd_whoami)

    # timer
    p = sub.add_parser('timer', help='Start, stop or watch the timer')
    timer_sub = p.add_subparsers(dest='timer_command', required=True)
    start = timer_sub.add_parser('start')
    start.add_argument('--employee', '-e')
    start.add_argument('--category', '-c', default='work', choices=CATEGORIES)
    start.add_argument('--project', '-P')
    timer_sub.add_parser('stop')
    timer_sub.add_parser('status')
    watch = timer_sub.add_parser('watch', help='Show the elapsed time once per second')
    watch.add_argument('--seconds', type=float, help='Stop watching after N seconds')
    p.set_defaults(handler=cmd_timer)

    # entries
    p = sub.add_parser('entries', help='Manage your time entries')
    entries_sub = p.add_subparsers(dest='entries_command', required=True)
    for name in ('list', 'summary', 'stats'):
        q = entries_sub.add_parser(name)
        q.add_argument('--employee', '-e')
        q.add_argument('--period', help='Pay period id')
        if name == 'list':
            q.add_argument('--start', help='From date (YYYY-MM-DD)')
            q.add_argument('--end', help='To date (YYYY-MM-DD)')
    q = entries_sub.add_parser('add')
    q.add_argument('--employee', '-e')
    q.add_argument('--date', '-d', required=True)
    q.add_argument('--start', '-s', required=True, help='Start time (HH:MM)')
    q.add_argument('--end', '-E', required=True, help='End time (HH:MM)')
    q.add_argument('--category', '-c', default='work', choices=CATEGORIES)
    q.add_argument('--project', '-P')
    q.add_argument('--description', '-D')
    q.add_argument('--duration', type=float, help='Hours (default: end minus start)')
    q = entries_sub.add_parser('edit')
    q.add_argument('entry_id')
    q.add_argument('--date', '-d')
    q.add_argument('--start', '-s')
    q.add_argument('--end', '-E')
    q.add_argument('--category', '-c', choices=CATEGORIES)
    q.add_argument('--project', '-P')
    q.add_argument('--description', '-D')
    q.add_argument('--duration', type=float)
    q = entries_sub.add_parser('delete')
    q.add_argument('entry_id')
    q = entries_sub.add_parser('clear')
    q.add_argument('--employee', '-e')
    q.add_argument('--yes', action='store_true')
    q = entries_sub.add_parser('sample', help='Sample timesheet CSV showing the import format')
    q.add_argument('--output', '-o')
    p.set_defaults(handler=cmd_entries)

    # import / export
    p = sub.add_parser('import', help='Import a timesheet CSV')
    p.add_argument('file')
    p.add_argument('--employee', '-e', help='Employee for rows without one')
    p.add_argument('--keep-duplicates', action='store_true')
    p.set_defaults(handler=cmd_import)

    p = sub.add_parser('export', help='Export entries to CSV', parents=[admin_opts])
    p.add_argument('--output', '-o')
    p.add_argument('--employee', '-e')
    p.add_argument('--all', action='store_true', help='All employees (admin)')
    p.set_defaults(handler=cmd_export)

    # pay periods
    p = sub.add_parser('periods', help='Pay period table')
    periods_sub = p.add_subparsers(dest='periods_command', required=True)
    periods_sub.add_parser('list')
    periods_sub.add_parser('current')
    q = periods_sub.add_parser('show')
    q.add_argument('period_id')
    q = periods_sub.add_parser('import', parents=[admin_opts])
    q.add_argument('file', help='.csv or .json')
    q = periods_sub.add_parser('generate', parents=[admin_opts],
                               help='Replace the table with fixed-length periods')
    q.add_argument('--start', required=True, help='First period start (YYYY-MM-DD)')
    q.add_argument('--end', required=True, help='Last day covered (YYYY-MM-DD)')
    q.add_argument('--days', type=int, default=14, help='Period length in days (default: 14)')
    q = periods_sub.add_parser('export')
    q.add_argument('--output', '-o')
    q.add_argument('--csv', action='store_true')
    q = periods_sub.add_parser('template')
    q.add_argument('--output', '-o')
    p.set_defaults(handler=cmd_periods)

    # holidays
    p = sub.add_parser('holidays', help='Holiday table and selection')
    holidays_sub = p.add_subparsers(dest='holidays_command', required=True)
    q = holidays_sub.add_parser('list')
    q.add_argument('--period', help='Only holidays in this pay period')
    q = holidays_sub.add_parser('select', help='Book holidays in a pay period (unlisted ones are removed)')
    q.add_argument('holiday_ids', nargs='*')
    q.add_argument('--period', help='Pay period id (default: current)')
    q.add_argument('--employee', '-e')
    q = holidays_sub.add_parser('import', parents=[admin_opts])
    q.add_argument('file', help='.csv or .json')
    q = holidays_sub.add_parser('export')
    q.add_argument('--output', '-o')
    q.add_argument('--json', action='store_true')
    q = holidays_sub.add_parser('template')
    q.add_argument('--output', '-o')
    p.set_defaults(handler=cmd_holidays)

    # config
    p = sub.add_parser('config', help='Application configuration')
    config_sub = p.add_subparsers(dest='config_command', required=True)
    config_sub.add_parser('show')
    q = config_sub.add_parser('set', parents=[admin_opts])
    q.add_argument('--company-name')
    q.add_argument('--logo-url')
    for flag in ('allow-edit', 'allow-delete', 'allow-employee-edit', 'allow-employee-delete'):
        q.add_argument(f'--{flag}', type=_on_off, metavar='on|off')
    config_sub.add_parser('reset', parents=[admin_opts])
    p.set_defaults(handler=cmd_config)

    # admin
    p = sub.add_parser('admin', help='Admin mode')
    admin_sub = p.add_subparsers(dest='admin_command', required=True)
    q = admin_sub.add_parser('enroll')
    q.add_argument('--passphrase', '-p')
    q = admin_sub.add_parser('access', help='Show the access level a URL requests')
    q.add_argument('url')
    admin_sub.add_parser('login', parents=[admin_opts])
    admin_sub.add_parser('reset-credential', parents=[admin_opts])
    admin_sub.add_parser('validate', parents=[admin_opts])
    admin_sub.add_parser('cleanup', parents=[admin_opts])
    admin_sub.add_parser('analytics', parents=[admin_opts])
    q = admin_sub.add_parser('report', parents=[admin_opts])
    q.add_argument('--by-period', action='store_true')
    q.add_argument('--csv', action='store_true')
    q.add_argument('--output', '-o')
    q = admin_sub.add_parser('entries', parents=[admin_opts])
    q.add_argument('--employee', '-e')
    q.add_argument('--start')
    q.add_argument('--end')
    q.add_argument('--category', '-c')
    q.add_argument('--project', '-P')
    q = admin_sub.add_parser('clear', parents=[admin_opts])
    q.add_argument('--yes', action='store_true')
    q = admin_sub.add_parser('dev', parents=[admin_opts], help='Developer tools')
    dev_sub = q.add_subparsers(dest='tool', required=True)
    r = dev_sub.add_parser('test-data')
    r.add_argument('--count', type=int, default=10)
    r.add_argument('--seed', type=int)
    dev_sub.add_parser('inspect')
    r = dev_sub.add_parser('force-license')
    r.add_argument('company')
    r = dev_sub.add_parser('factory-reset')
    r.add_argument('--yes', action='store_true')
    p.set_defaults(handler=cmd_admin)

    # backup
    p = sub.add_parser('backup', help='Full backup and restore')
    backup_sub = p.add_subparsers(dest='backup_command', required=True)
    q = backup_sub.add_parser('export', parents=[admin_opts])
    q.add_argument('--output', '-o')
    q.add_argument('--encrypt', action='store_true')
    q.add_argument('--key', help='Encryption passphrase (default: TIMETRACKER_ENCRYPTION_KEY)')
    q = backup_sub.add_parser('restore', parents=[admin_opts])
    q.add_argument('file')
    q.add_argument('--key', help='Decryption passphrase (default: TIMETRACKER_ENCRYPTION_KEY)')
    p.set_defaults(handler=cmd_backup)

    # db
    p = sub.add_parser('db', help='Database maintenance')
    db_sub = p.add_subparsers(dest='db_command', required=True)
    q = db_sub.add_parser('migrate', help='Copy the database into a SQLCipher-encrypted file')
    q.add_argument('--key', '-k', help=f'Encryption key (or set {ENV_KEY_NAME})')
    q.add_argument('--source', '-s', help='Source database (default: current database)')
    q.add_argument('--target', '-t', default='timetracker_encrypted.db')
    p.set_defaults(handler=None)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.command == 'db':
        return cmd_db(args)

    app = None
    try:
        app = TimeTrackerApp(args.db)
        return args.handler(app, args)
    except TimeTrackerError as e:
        print(f"ERROR: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nAborted")
        return 130
    finally:
        if app is not None:
            app.close()


if __name__ == '__main__':
    sys.exit(main())
