import datetime
import json

import pytest

from timetracker.data.database import TIME_ENTRIES_KEY
from timetracker.utils.errors import ExportError, ValidationError
from timetracker.utils.export_utils import decrypt_bytes, encrypt_bytes, is_encrypted_payload

PASSPHRASE = "backup passphrase"


@pytest.fixture
def developer(app, monkeypatch):
    monkeypatch.setenv("TIMETRACKER_DEV_TOKEN", "dev-secret")
    app.developer_login("dev-secret")
    return app


def test_encrypt_round_trip():
    payload = encrypt_bytes(b"timesheet data", PASSPHRASE)
    assert is_encrypted_payload(payload)
    assert decrypt_bytes(payload, PASSPHRASE) == b"timesheet data"
    with pytest.raises(ExportError):
        decrypt_bytes(payload, "wrong passphrase")


def test_encrypted_export_needs_a_passphrase(developer, tmp_path):
    with pytest.raises(ExportError):
        developer.write_backup(str(tmp_path / "backup.json"), encrypt=True)


def test_plain_backup_contents(developer, make_entry, tmp_path):
    developer.entries.add(make_entry())
    path = developer.write_backup(str(tmp_path / "backup.json"))
    backup = json.loads(open(path, encoding="utf-8").read())
    assert backup["allTimeEntries"][0]["employee"] == "Jane Smith"
    assert backup["appConfig"]["companyName"] == "CAND, LLC"
    assert len(backup["payPeriodsConfig"]["payPeriods"]) == 10
    assert TIME_ENTRIES_KEY in backup["storage"]


def test_encrypted_backup_restores(developer, make_entry, tmp_path):
    developer.entries.add(make_entry())
    developer.configure(company_name="Acme")
    path = developer.write_backup(str(tmp_path / "backup.json"), encrypt=True, passphrase=PASSPHRASE)
    assert path.endswith(".json.enc")
    assert is_encrypted_payload(open(path, "rb").read())

    developer.factory_reset()
    assert developer.entries.entries == []
    assert developer.config.config.company_name == "CAND, LLC"

    with pytest.raises(ExportError):
        developer.restore_backup(path, passphrase="wrong passphrase")

    assert developer.restore_backup(path, passphrase=PASSPHRASE) >= 2
    assert len(developer.entries.entries) == 1
    assert developer.config.config.company_name == "Acme"


def test_restore_rejects_files_without_storage(developer, tmp_path):
    path = tmp_path / "other.json"
    path.write_text(json.dumps({"allTimeEntries": []}))
    with pytest.raises(ExportError):
        developer.restore_backup(str(path))

    path.write_text("{not json")
    with pytest.raises(ExportError):
        developer.restore_backup(str(path))


def test_generate_test_data(developer):
    created = developer.backup.generate_test_data(5, seed=7, today=datetime.date(2025, 10, 2))
    assert len(created) == 5
    assert len(developer.entries.entries) == 5
    assert all(e.source == "test-generator" and e.duration == 8.0 for e in created)
    assert all("2025-09-03" <= e.date <= "2025-10-02" for e in created)


def test_force_license(developer):
    config = developer.force_license("Acme Holdings")
    assert config.is_licensed
    assert developer.config.display_name == "Acme Holdings"
    with pytest.raises(ValidationError):
        developer.force_license("  ")


def test_inspect_storage_previews_values(developer, make_entry):
    developer.entries.add(make_entry())
    lines = developer.inspect_storage()
    assert any("Jane Smith" in line for line in lines)
