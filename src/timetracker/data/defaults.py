"""
Built-in pay period and holiday tables.

Used whenever no imported table is stored, or the stored one cannot be read.
"""

DEFAULT_PAY_PERIODS_NAME = "Default 2025 Pay Periods"
DEFAULT_HOLIDAYS_NAME = "Default 2025 Holidays"

DEFAULT_PAY_PERIODS = [
    {
        "id": "2025-15",
        "periodStart": "2025-08-02",
        "periodEnd": "2025-08-15",
        "timesheetDue": "2025-08-15",
        "payDay": "2025-08-22",
        "description": "Pay Period 15 - Aug 2-15, 2025",
    },
    {
        "id": "2025-16",
        "periodStart": "2025-08-16",
        "periodEnd": "2025-08-29",
        "timesheetDue": "2025-08-29",
        "payDay": "2025-09-05",
        "description": "Pay Period 16 - Aug 16-29, 2025",
    },
    {
        "id": "2025-17",
        "periodStart": "2025-08-30",
        "periodEnd": "2025-09-15",
        "timesheetDue": "2025-09-15",
        "payDay": "2025-09-22",
        "description": "Pay Period 17 - Aug 30 - Sep 15, 2025",
    },
    {
        "id": "2025-18",
        "periodStart": "2025-09-16",
        "periodEnd": "2025-09-30",
        "timesheetDue": "2025-09-30",
        "payDay": "2025-10-07",
        "description": "Pay Period 18 - Sep 16-30, 2025",
    },
    {
        "id": "2025-19",
        "periodStart": "2025-10-01",
        "periodEnd": "2025-10-15",
        "timesheetDue": "2025-10-15",
        "payDay": "2025-10-22",
        "description": "Pay Period 19 - Oct 1-15, 2025",
    },
    {
        "id": "2025-20",
        "periodStart": "2025-10-16",
        "periodEnd": "2025-10-31",
        "timesheetDue": "2025-10-31",
        "payDay": "2025-11-07",
        "description": "Pay Period 20 - Oct 16-31, 2025",
    },
    {
        "id": "2025-21",
        "periodStart": "2025-11-01",
        "periodEnd": "2025-11-14",
        "timesheetDue": "2025-11-14",
        "payDay": "2025-11-21",
        "description": "Pay Period 21 - Nov 1-14, 2025",
    },
    {
        "id": "2025-22",
        "periodStart": "2025-11-15",
        "periodEnd": "2025-11-28",
        "timesheetDue": "2025-11-28",
        "payDay": "2025-12-05",
        "description": "Pay Period 22 - Nov 15-28, 2025",
    },
    {
        "id": "2025-23",
        "periodStart": "2025-11-29",
        "periodEnd": "2025-12-15",
        "timesheetDue": "2025-12-15",
        "payDay": "2025-12-22",
        "description": "Pay Period 23 - Nov 29 - Dec 15, 2025",
    },
    {
        "id": "2025-24",
        "periodStart": "2025-12-16",
        "periodEnd": "2025-12-31",
        "timesheetDue": "2025-12-31",
        "payDay": "2026-01-07",
        "description": "Pay Period 24 - Dec 16-31, 2025",
    },
]

DEFAULT_HOLIDAYS = [
    {"id": "new-years-2025", "date": "2025-01-01", "name": "New Year's Day",
     "type": "federal", "description": "Federal Holiday - New Year's Day"},
    {"id": "mlk-2025", "date": "2025-01-20", "name": "Martin Luther King Jr. Day",
     "type": "federal", "description": "Federal Holiday - Martin Luther King Jr. Day"},
    {"id": "presidents-2025", "date": "2025-02-17", "name": "Presidents Day",
     "type": "federal", "description": "Federal Holiday - Presidents Day"},
    {"id": "memorial-2025", "date": "2025-05-26", "name": "Memorial Day",
     "type": "federal", "description": "Federal Holiday - Memorial Day"},
    {"id": "juneteenth-2025", "date": "2025-06-19", "name": "Juneteenth",
     "type": "federal", "description": "Federal Holiday - Juneteenth National Independence Day"},
    {"id": "independence-2025", "date": "2025-07-04", "name": "Independence Day",
     "type": "federal", "description": "Federal Holiday - Independence Day"},
    {"id": "labor-2025", "date": "2025-09-01", "name": "Labor Day",
     "type": "federal", "description": "Federal Holiday - Labor Day"},
    {"id": "columbus-2025", "date": "2025-10-13", "name": "Columbus Day",
     "type": "federal", "description": "Federal Holiday - Columbus Day"},
    {"id": "veterans-2025", "date": "2025-11-11", "name": "Veterans Day",
     "type": "federal", "description": "Federal Holiday - Veterans Day"},
    {"id": "thanksgiving-2025", "date": "2025-11-27", "name": "Thanksgiving Day",
     "type": "federal", "description": "Federal Holiday - Thanksgiving Day"},
    {"id": "black-friday-2025", "date": "2025-11-28", "name": "Day After Thanksgiving",
     "type": "company", "description": "Company Holiday - Day After Thanksgiving"},
    {"id": "christmas-2025", "date": "2025-12-25", "name": "Christmas Day",
     "type": "federal", "description": "Federal Holiday - Christmas Day"},
]

PAY_PERIOD_TEMPLATE_CSV = (
    'ID,Description,Period Start,Period End,Timesheet Due,Pay Day\n'
    '2025-01,"Pay Period 1 - Jan 1-15 2025",2025-01-01,2025-01-15,2025-01-15,2025-01-22\n'
    '2025-02,"Pay Period 2 - Jan 16-31 2025",2025-01-16,2025-01-31,2025-01-31,2025-02-07\n'
    '2025-03,"Pay Period 3 - Feb 1-15 2025",2025-02-01,2025-02-15,2025-02-15,2025-02-22\n'
)

HOLIDAY_TEMPLATE_CSV = (
    'ID,Date,Name,Type,Description\n'
    "2025-new-years,2025-01-01,New Year's Day,federal,Federal Holiday - New Year's Day\n"
    '2025-mlk,2025-01-20,Martin Luther King Jr. Day,federal,Federal Holiday - MLK Day\n'
    '2025-company-day,2025-03-15,Company Appreciation Day,company,Company Holiday - Employee Appreciation\n'
)

SAMPLE_ENTRIES_CSV = (
    'Employee,Date,Category,Project,Start Time,End Time,Duration,Description\n'
    '"John Doe","2025-08-25","work","Project Alpha","09:00","17:00",8,"Development work"\n'
    '"Jane Smith","2025-08-25","overhead","Admin Tasks","13:00","15:00",2,"Team meeting"\n'
)
