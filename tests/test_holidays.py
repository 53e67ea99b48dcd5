import json

import pytest

from timetracker.services.entry_service import EntryService
from timetracker.services.holiday_service import HolidayService, format_for_display
from timetracker.services.pay_period_service import PayPeriodService
from timetracker.utils.errors import ConfigImportError


@pytest.fixture
def services(storage):
    entries = EntryService()
    entries.load()
    holidays = HolidayService(entries)
    holidays.load()
    periods = PayPeriodService()
    periods.load()
    return entries, holidays, periods


def test_holidays_in_period(services):
    _, holidays, periods = services
    november = periods.find("2025-22")
    assert [h.id for h in holidays.for_period(november)] == ["thanksgiving-2025", "black-friday-2025"]
    assert holidays.for_period(None) == []


def test_describe_period(services):
    _, holidays, periods = services
    assert holidays.describe_period(periods.find("2025-19")) == "10/13 - Columbus Day"
    assert holidays.describe_period(periods.find("2025-18")) == "No holidays in this period"


def test_format_for_display(services):
    _, holidays, _ = services
    assert format_for_display(holidays.find("christmas-2025")) == "12/25 - Christmas Day"


def test_select_adds_holiday_entries(services):
    entries, holidays, periods = services
    period = periods.find("2025-22")

    added, removed = holidays.select_holidays("Jane Smith", period, ["thanksgiving-2025"])
    assert (added, removed) == (1, 0)
    entry = entries.entries[0]
    assert entry.category == "holiday"
    assert entry.date == "2025-11-27"
    assert entry.duration == 8.0
    assert (entry.start_time, entry.end_time) == ("09:00", "17:00")
    assert entry.project == "Thanksgiving Day"
    assert entry.description == "Holiday: Thanksgiving Day"
    assert entry.source == "holiday-selection"
    assert holidays.selected_ids("Jane Smith", period) == ["thanksgiving-2025"]


def test_reselecting_is_idempotent(services):
    entries, holidays, periods = services
    period = periods.find("2025-22")
    holidays.select_holidays("Jane Smith", period, ["thanksgiving-2025"])
    assert holidays.select_holidays("Jane Smith", period, ["thanksgiving-2025"]) == (0, 0)
    assert len(entries.entries) == 1


def test_unselecting_removes_entry(services):
    entries, holidays, periods = services
    period = periods.find("2025-22")
    holidays.select_holidays("Jane Smith", period, ["thanksgiving-2025", "black-friday-2025"])
    holidays.select_holidays("Bob Johnson", period, ["thanksgiving-2025"])

    added, removed = holidays.select_holidays("Jane Smith", period, ["black-friday-2025"])
    assert (added, removed) == (0, 1)
    remaining = sorted((e.employee, e.date) for e in entries.entries)
    assert remaining == [("Bob Johnson", "2025-11-27"), ("Jane Smith", "2025-11-28")]

    reloaded = EntryService()
    reloaded.load()
    assert len(reloaded.entries) == 2


def test_import_json_and_csv(services):
    _, holidays, _ = services
    holidays.import_csv(HolidayService.template_csv(), name="2025 company")
    assert holidays.find("2025-mlk").type == "federal"
    assert holidays.config_name == "2025 company"

    exported = holidays.export_json()
    fresh = HolidayService()
    fresh.import_json(exported)
    assert [h.id for h in fresh.holidays] == [h.id for h in holidays.holidays]


def test_invalid_import_keeps_table(services):
    _, holidays, _ = services
    before = list(holidays.holidays)
    with pytest.raises(ConfigImportError):
        holidays.import_json(json.dumps({"holidays": []}))
    with pytest.raises(ConfigImportError):
        holidays.import_csv("ID,Date,Name,Type,Description\nbad,never,Nothing,company\n")
    assert holidays.holidays == before


def test_json_import_normalizes_and_checks_dates(services):
    _, holidays, _ = services
    holidays.import_json(json.dumps({"holidays": [
        {"id": "new-year", "date": "01/01/2026", "name": "New Year's Day"},
    ]}))
    assert holidays.find("new-year").date == "2026-01-01"

    before = list(holidays.holidays)
    for record in ({"id": "x", "date": "never", "name": "Nothing"},
                   {"id": "y", "date": "2026-07-04"}):
        with pytest.raises(ConfigImportError):
            holidays.import_json(json.dumps({"holidays": [record]}))
    assert holidays.holidays == before
