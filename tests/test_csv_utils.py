from timetracker.data.defaults import HOLIDAY_TEMPLATE_CSV, PAY_PERIOD_TEMPLATE_CSV, SAMPLE_ENTRIES_CSV
from timetracker.data.records import SOURCE_IMPORT
from timetracker.utils.csv_utils import (
    ENTRY_HEADER,
    employee_from_filename,
    map_columns,
    parse_csv_line,
    parse_entries_csv,
    parse_holidays_csv,
    parse_pay_periods_csv,
    render_entries_csv,
)


def test_parse_csv_line_keeps_quoted_commas():
    assert parse_csv_line('a,"b, c",d') == ["a", "b, c", "d"]
    assert parse_csv_line('"John Doe", "2025-08-25" ,work') == ["John Doe", "2025-08-25", "work"]


def test_parse_csv_line_blank():
    assert parse_csv_line("   ") == []


def test_employee_from_filename():
    assert employee_from_filename("JohnDoe-TimeSheet.csv") == "John Doe"
    assert employee_from_filename("/tmp/exports/JaneSmith_week1.csv") == "Jane Smith"
    assert employee_from_filename("timesheet.csv") == ""


def test_parse_sample_entries():
    entries, skipped = parse_entries_csv(SAMPLE_ENTRIES_CSV)
    assert skipped == 0
    assert [e.employee for e in entries] == ["John Doe", "Jane Smith"]
    first = entries[0]
    assert first.date == "2025-08-25"
    assert first.duration == 8.0
    assert first.project == "Project Alpha"
    assert first.source == SOURCE_IMPORT


def test_entries_csv_round_trip(make_entry):
    originals = [
        make_entry(),
        make_entry(employee="Bob Johnson", project="Admin, Tasks", duration=2.5,
                   start_time="13:00", end_time="15:30", description='Said "hi"'),
    ]
    text = render_entries_csv(originals)
    assert text.splitlines()[0] == ",".join(ENTRY_HEADER)

    parsed, skipped = parse_entries_csv(text)
    assert skipped == 0
    for before, after in zip(originals, parsed):
        assert (after.employee, after.date, after.category, after.project, after.start_time,
                after.end_time, after.duration, after.description) == \
               (before.employee, before.date, before.category, before.project, before.start_time,
                before.end_time, before.duration, before.description)


def test_free_form_header_uses_column_mapping():
    text = (
        "Name,Work Date,Start,End,Type,Project Code\n"
        "Bob,10/02/2025,10:00 PM,2:00 AM,Travel,Site Visit\n"
    )
    entries, skipped = parse_entries_csv(text)
    assert skipped == 0
    entry = entries[0]
    assert entry.employee == "Bob"
    assert entry.date == "2025-10-02"
    assert entry.category == "travel"
    assert entry.project == "Site Visit"
    # overnight shift wraps past midnight
    assert entry.duration == 4.0


def test_missing_employee_falls_back_to_filename():
    text = "Date,Start Time,End Time,Hours\n2025-10-01,09:00,12:00,\n"
    entries, _ = parse_entries_csv(text, filename="AliceWilliams-TimeSheet.csv")
    assert entries[0].employee == "Alice Williams"
    assert entries[0].duration == 3.0
    assert entries[0].project == "No Project"


def test_rows_with_bad_dates_or_too_few_fields_are_skipped():
    text = (
        ",".join(ENTRY_HEADER) + "\n"
        '"Jane","not-a-date","work","P","09:00","10:00",1,""\n'
        '"Jane","2025-10-01","work"\n'
        "\n"
        '"Jane","2025-10-01","work","P","09:00","10:00",1,""\n'
    )
    entries, skipped = parse_entries_csv(text)
    assert len(entries) == 1
    assert skipped == 2


def test_map_columns():
    mapping = map_columns(["Employee Name", "Date", "Start Time", "End Time", "Category",
                           "Project", "Duration", "Notes"])
    assert mapping == {
        "employee": 0, "date": 1, "start_time": 2, "end_time": 3,
        "category": 4, "project": 5, "duration": 6, "description": 7,
    }


def test_parse_pay_period_template():
    periods, skipped = parse_pay_periods_csv(PAY_PERIOD_TEMPLATE_CSV)
    assert skipped == 0
    assert [p.id for p in periods] == ["2025-01", "2025-02", "2025-03"]
    assert periods[0].description == "Pay Period 1 - Jan 1-15 2025"
    assert periods[0].pay_day == "2025-01-22"


def test_pay_period_rows_need_six_fields():
    text = "ID,Description,Period Start,Period End,Timesheet Due,Pay Day\n2025-01,Short,2025-01-01\n"
    periods, skipped = parse_pay_periods_csv(text)
    assert periods == []
    assert skipped == 1


def test_holiday_description_defaults_to_name():
    text = HOLIDAY_TEMPLATE_CSV + "2025-picnic,2025-06-06,Company Picnic,\n"
    holidays, skipped = parse_holidays_csv(text)
    assert skipped == 0
    picnic = holidays[-1]
    assert picnic.type == "company"
    assert picnic.description == "Company Picnic"
