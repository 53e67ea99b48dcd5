import pytest

from timetracker.data.database import TIME_ENTRIES_KEY, read_blob, write_blob
from timetracker.data.records import PayPeriod
from timetracker.services.config_service import ConfigService
from timetracker.services.entry_service import EntryService, validate_entry
from timetracker.utils.errors import EntryNotFoundError, PermissionDisabledError, ValidationError


@pytest.fixture
def config(storage):
    service = ConfigService()
    service.load()
    return service


@pytest.fixture
def entries(config):
    service = EntryService(config)
    service.load()
    return service


def test_add_persists_whole_list(entries, make_entry):
    entry = entries.add(make_entry())
    stored = read_blob(TIME_ENTRIES_KEY)
    assert [e["id"] for e in stored["allEntries"]] == [entry.id]
    assert stored["lastUpdate"]

    reloaded = EntryService()
    reloaded.load()
    assert reloaded.get(entry.id).project == "Project Alpha"


def test_get_unknown_raises(entries):
    with pytest.raises(EntryNotFoundError):
        entries.get("missing")


def test_update_changes_fields(entries, make_entry):
    entry = entries.add(make_entry())
    updated = entries.update(entry.id, project="Project Beta", category="Overhead")
    assert updated.project == "Project Beta"
    assert updated.category == "overhead"
    assert entries.get(entry.id).project == "Project Beta"


def test_update_rejects_unknown_and_invalid(entries, make_entry):
    entry = entries.add(make_entry())
    with pytest.raises(ValidationError):
        entries.update(entry.id, source="timer")
    with pytest.raises(ValidationError) as excinfo:
        entries.update(entry.id, duration=30)
    assert "duration exceeds 24 hours" in excinfo.value.problems
    assert entries.get(entry.id).duration == 8.0


def test_employee_edit_can_be_disabled(entries, config, make_entry):
    entry = entries.add(make_entry())
    config.update(allow_employee_edit=False, allow_employee_delete=False)
    with pytest.raises(PermissionDisabledError):
        entries.update(entry.id, description="changed")
    with pytest.raises(PermissionDisabledError):
        entries.delete(entry.id)
    # admin flags are separate
    assert entries.update(entry.id, admin=True, description="changed").description == "changed"
    entries.delete(entry.id, admin=True)
    assert entries.entries == []


def test_admin_delete_can_be_disabled(entries, config, make_entry):
    entry = entries.add(make_entry())
    config.update(allow_delete=False)
    with pytest.raises(PermissionDisabledError):
        entries.delete(entry.id, admin=True)
    entries.delete(entry.id)


def test_validate_entry(make_entry):
    assert validate_entry(make_entry()) == []
    problems = validate_entry(make_entry(employee="", date="someday", category="lunch", duration=0))
    assert problems == [
        "missing employee",
        "invalid date 'someday'",
        "duration must be positive",
        "unknown category 'lunch'",
    ]


def test_filter(entries, make_entry):
    entries.add(make_entry(date="2025-09-30"))
    entries.add(make_entry(date="2025-10-01", category="travel"))
    entries.add(make_entry(date="2025-10-15", employee="Bob Johnson"))
    entries.add(make_entry(date="2025-10-16"))

    period = PayPeriod(id="2025-19", period_start="2025-10-01", period_end="2025-10-15")
    assert [e.date for e in entries.filter(pay_period=period)] == ["2025-10-01", "2025-10-15"]
    assert len(entries.filter(employee="Jane Smith")) == 3
    assert len(entries.filter(category="TRAVEL")) == 1
    assert [e.date for e in entries.filter(start="2025-10-15")] == ["2025-10-15", "2025-10-16"]
    assert entries.employees() == ["Bob Johnson", "Jane Smith"]
    assert entries.projects() == ["Project Alpha"]
    assert entries.categories() == ["travel", "work"]


def test_duplicates_first_occurrence_wins(entries, make_entry):
    first = entries.add(make_entry())
    second = entries.add(make_entry(description="again"))
    entries.add(make_entry(start_time="18:00", end_time="19:00", duration=1.0))

    assert entries.find_duplicates() == [second]
    flags = {e.id: (valid, dup) for e, valid, dup in entries.annotate()}
    assert flags[first.id] == (True, False)
    assert flags[second.id] == (True, True)


def test_clean_data_removes_zero_duration_and_duplicates(entries, make_entry):
    keep = entries.add(make_entry())
    entries.add(make_entry())
    entries.add(make_entry(start_time="10:00", end_time="10:00", duration=0.0))

    assert set(entries.invalid_entries()) == {entries.entries[2].id}
    assert entries.clean_data() == 2
    assert entries.entries == [keep]


def test_import_skips_existing_slots(entries, make_entry):
    entries.add(make_entry())
    result = entries.import_entries([make_entry(), make_entry(date="2025-10-03")], skipped_rows=1)
    assert (result.imported, result.duplicates, result.skipped) == (1, 1, 1)
    assert str(result) == "Imported 1 entries, skipped 2"
    assert len(entries.entries) == 2

    forced = entries.import_entries([make_entry()], skip_duplicates=False)
    assert forced.imported == 1


def test_load_accepts_legacy_key(storage):
    write_blob(TIME_ENTRIES_KEY, {"employeeEntries": [
        {"employeeName": "Old Timer", "date": "2024-01-02", "durationHours": 4},
        "garbage",
    ]})
    service = EntryService()
    service.load()
    assert len(service.entries) == 1
    assert service.entries[0].employee == "Old Timer"
    assert service.entries[0].duration == 4.0
