"""
Backup service: full exports, restore, factory reset and developer tools.
"""
import datetime
import json
import logging
import os
import random
from typing import Dict, List, Optional

from ..data.database import clear_all, dump_all, load_raw
from ..data.records import SOURCE_TEST, TimeEntry
from ..settings import APP_VERSION
from ..utils.errors import ExportError, ValidationError
from ..utils.export_utils import get_export_directory, read_export_file, write_encrypted_file, write_file
from ..utils.time_utils import now_iso

logger = logging.getLogger(__name__)

TEST_EMPLOYEES = ['John Doe', 'Jane Smith', 'Bob Johnson', 'Alice Williams']
TEST_PROJECTS = ['Project Alpha', 'Project Beta', 'Project Gamma', 'Admin Tasks']
TEST_CATEGORIES = ['work', 'overhead', 'travel', 'pto']


class BackupService:
    """Whole-store exports and the developer maintenance tools"""

    def __init__(self, entry_service, pay_period_service, holiday_service, config_service):
        self.entries = entry_service
        self.pay_periods = pay_period_service
        self.holidays = holiday_service
        self.config = config_service

    def export_everything(self) -> Dict:
        return {
            'version': APP_VERSION,
            'timestamp': now_iso(),
            'appConfig': self.config.config.to_dict(),
            'allTimeEntries': [e.to_dict() for e in self.entries.entries],
            'payPeriodsConfig': {'payPeriods': [p.to_dict() for p in self.pay_periods.periods]},
            'holidaysConfig': {'holidays': [h.to_dict() for h in self.holidays.holidays]},
            'storage': dump_all(),
        }

    def default_backup_path(self) -> str:
        stamp = datetime.date.today().isoformat()
        return os.path.join(get_export_directory(), f"time_tracker_backup_{stamp}.json")

    def write_backup(self, path: Optional[str] = None, encrypt: bool = False,
                     passphrase: Optional[str] = None) -> str:
        """
        Write a full backup as JSON, optionally encrypted.

        Returns:
            The path written to.
        """
        path = path or self.default_backup_path()
        payload = json.dumps(self.export_everything(), indent=2).encode('utf-8')
        if encrypt:
            if not path.endswith('.enc'):
                path += '.enc'
            write_encrypted_file(payload, path, passphrase)
        else:
            write_file(payload, path)
        logger.info(f"Full backup exported to {path}")
        return path

    @staticmethod
    def read_backup(path: str, passphrase: Optional[str] = None) -> Dict:
        data = read_export_file(path, passphrase)
        try:
            backup = json.loads(data.decode('utf-8'))
        except (UnicodeDecodeError, ValueError) as e:
            raise ExportError(f"Backup file is not valid JSON: {e}") from e
        if not isinstance(backup, dict) or not isinstance(backup.get('storage'), dict):
            raise ExportError("Backup file has no storage section")
        return backup

    def restore(self, backup: Dict) -> int:
        """Write every stored key from a backup back, then reload the services."""
        storage = backup.get('storage')
        if not isinstance(storage, dict):
            raise ExportError("Backup file has no storage section")
        bad = [key for key, value in storage.items() if not isinstance(value, str)]
        if bad:
            raise ExportError(f"Backup storage values must be JSON text: {', '.join(bad)}")
        count = load_raw(storage)
        self.reload()
        logger.info(f"Restored {count} stored key(s) from backup dated {backup.get('timestamp')}")
        return count

    def reload(self):
        self.config.load()
        self.config.load_employee_settings()
        self.entries.load()
        self.pay_periods.load()
        self.holidays.load()

    def factory_reset(self) -> int:
        """Delete all data and settings."""
        removed = clear_all()
        self.reload()
        logger.warning(f"Factory reset removed {removed} stored key(s)")
        return removed

    def inspect_storage(self, preview: int = 100) -> List[str]:
        return [f"{key}: {value[:preview]}..." for key, value in dump_all().items()]

    def generate_test_data(self, count: int = 10, seed: Optional[int] = None,
                           today: Optional[datetime.date] = None) -> List[TimeEntry]:
        """Add ``count`` random 8 hour entries from the last 30 days."""
        rng = random.Random(seed)
        today = today or datetime.date.today()
        created = []
        for i in range(count):
            day = today - datetime.timedelta(days=rng.randrange(30))
            created.append(self.entries.add(TimeEntry(
                employee=rng.choice(TEST_EMPLOYEES),
                date=day.isoformat(),
                category=rng.choice(TEST_CATEGORIES),
                project=rng.choice(TEST_PROJECTS),
                start_time='09:00',
                end_time='17:00',
                duration=8.0,
                description=f"Test entry {i + 1}",
                source=SOURCE_TEST,
            ), save=False))
        self.entries.save()
        logger.info(f"Generated {count} test entries")
        return created

    def force_license(self, company: str):
        """Mark the installation as licensed to ``company``."""
        company = (company or '').strip()
        if not company:
            raise ValidationError("Company name is required")
        return self.config.update(is_licensed=True, licensed_company=company, company_name=company)
