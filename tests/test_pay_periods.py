import datetime
import json

import pytest

from timetracker.data.database import PAY_PERIODS_KEY, write_blob
from timetracker.data.defaults import DEFAULT_PAY_PERIODS_NAME
from timetracker.services.pay_period_service import PayPeriodService, generate_periods
from timetracker.utils.errors import ConfigImportError


@pytest.fixture
def periods(storage):
    service = PayPeriodService()
    service.load()
    return service


def test_defaults_load_when_nothing_is_stored(periods):
    assert periods.config_name == DEFAULT_PAY_PERIODS_NAME
    assert [p.id for p in periods.periods][:2] == ["2025-15", "2025-16"]
    assert periods.periods[-1].period_end == "2025-12-31"


def test_find_for_date_is_inclusive(periods):
    assert periods.find_for_date("2025-10-01").id == "2025-19"
    assert periods.find_for_date("2025-10-15").id == "2025-19"
    assert periods.find_for_date(datetime.date(2025, 10, 16)).id == "2025-20"
    assert periods.find_for_date("2026-02-01") is None


def test_current_or_next(periods):
    assert periods.current_or_next(datetime.date(2025, 10, 20)).id == "2025-20"
    assert periods.current_or_next(datetime.date(2025, 1, 10)).id == "2025-15"
    assert periods.current_or_next(datetime.date(2027, 1, 1)) is None


def test_period_info(periods):
    period = periods.find("2025-19")
    info = periods.period_info(period, today=datetime.date(2025, 10, 10))
    assert info.period_range == "2025-10-01 to 2025-10-15"
    assert info.days_remaining == 5
    assert info.period_days == 15
    assert info.days_elapsed == 10
    assert info.work_days == 11

    late = periods.period_info(period, today=datetime.date(2025, 11, 1))
    assert late.days_remaining == 0
    assert late.days_elapsed == 15


def test_csv_import_replaces_and_persists(periods):
    periods.import_csv(PayPeriodService.template_csv(), name="company_2025")
    assert [p.id for p in periods.periods] == ["2025-01", "2025-02", "2025-03"]

    reloaded = PayPeriodService()
    reloaded.load()
    assert reloaded.config_name == "company_2025"
    assert reloaded.find_for_date("2025-01-20").id == "2025-02"


def test_overlapping_periods_are_rejected(periods):
    text = (
        "ID,Description,Period Start,Period End,Timesheet Due,Pay Day\n"
        "A,First,2025-01-01,2025-01-15,2025-01-15,2025-01-22\n"
        "B,Second,2025-01-15,2025-01-31,2025-01-31,2025-02-07\n"
    )
    with pytest.raises(ConfigImportError):
        periods.import_csv(text)
    assert periods.config_name == DEFAULT_PAY_PERIODS_NAME


def test_csv_without_valid_rows_raises(periods):
    with pytest.raises(ConfigImportError):
        periods.import_csv("ID,Description,Period Start,Period End,Timesheet Due,Pay Day\n")


def test_json_import_accepts_export_wrapper(periods):
    exported = periods.export_json()
    assert "payPeriodsConfig" in json.loads(exported)

    other = PayPeriodService()
    other.import_json(exported, name="restored")
    assert len(other.periods) == len(periods.periods)


def test_json_import_requires_dates(periods):
    text = json.dumps({"payPeriods": [{"id": "X", "periodStart": "2025-01-01"}]})
    with pytest.raises(ConfigImportError):
        periods.import_json(text)


def test_json_import_normalizes_dates(periods):
    text = json.dumps({"payPeriods": [
        {"id": "B", "periodStart": "02/01/2025", "periodEnd": "02/15/2025"},
        {"id": "A", "periodStart": "2025-01-01", "periodEnd": "2025-01-31"},
    ]})
    periods.import_json(text)
    assert [p.id for p in periods.periods] == ["A", "B"]
    assert periods.find("B").period_start == "2025-02-01"
    assert periods.find("B").timesheet_due == "2025-02-15"
    assert periods.find_for_date("2025-02-10").id == "B"


@pytest.mark.parametrize("record", [
    {"id": "A", "periodStart": "2025-01-31", "periodEnd": "2025-01-01"},
    {"id": "A", "periodStart": "someday", "periodEnd": "2025-01-31"},
    {"periodStart": "2025-01-01", "periodEnd": "2025-01-31"},
])
def test_json_import_rejects_bad_periods(periods, record):
    before = list(periods.periods)
    with pytest.raises(ConfigImportError):
        periods.import_json(json.dumps({"payPeriods": [record]}))
    assert periods.periods == before


def test_import_file_names_table_after_file(periods, tmp_path):
    path = tmp_path / "fiscal_2025.csv"
    path.write_text(PayPeriodService.template_csv())
    periods.import_file(str(path))
    assert periods.config_name == "fiscal_2025"


def test_corrupt_stored_table_falls_back_to_defaults(storage):
    write_blob(PAY_PERIODS_KEY, {"payPeriods": "not a list"})
    service = PayPeriodService()
    service.load()
    assert service.config_name == DEFAULT_PAY_PERIODS_NAME
    assert service.find("2025-19") is not None


def test_generate_periods():
    generated = generate_periods("2026-01-01", "2026-01-31")
    assert [p.id for p in generated] == ["2026-01", "2026-02", "2026-03"]
    assert generated[0].period_end == "2026-01-14"
    assert generated[0].pay_day == "2026-01-21"
    assert generated[-1].period_end == "2026-01-31"
