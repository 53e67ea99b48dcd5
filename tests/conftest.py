import pytest

from timetracker.app import TimeTrackerApp
from timetracker.data.database import close_db, initialize_db
from timetracker.data.records import TimeEntry


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for name in ("TIMETRACKER_ENV_KEY", "TIMETRACKER_DEV_TOKEN", "TIMETRACKER_ADMIN_TOKEN",
                 "TIMETRACKER_ENCRYPTION_KEY", "TIMETRACKER_DB_PATH", "TIMETRACKER_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TIMETRACKER_EXPORT_PATH", str(tmp_path / "exports"))


@pytest.fixture
def storage():
    initialize_db(":memory:")
    yield
    close_db()


@pytest.fixture
def app():
    tracker = TimeTrackerApp(":memory:")
    yield tracker
    tracker.close()


def make_entry(**overrides):
    fields = dict(
        employee="Jane Smith",
        date="2025-10-02",
        category="work",
        project="Project Alpha",
        start_time="09:00",
        end_time="17:00",
        duration=8.0,
        description="Development work",
    )
    fields.update(overrides)
    return TimeEntry(**fields)


@pytest.fixture(name="make_entry")
def _make_entry_fixture():
    return make_entry
