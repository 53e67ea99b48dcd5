"""
Timer service for handling start/stop timer business logic.
"""
import datetime
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from ..data.database import TIMER_STATE_KEY, delete_blob, read_blob, write_blob
from ..data.records import DEFAULT_PROJECT, SOURCE_TIMER, TimeEntry, TimerState
from ..settings import TIMER_TICK_SECONDS
from ..utils.errors import TimerError
from ..utils.time_utils import format_hms, round_to_half_hour

logger = logging.getLogger(__name__)

TIMER_DESCRIPTION = 'Timer entry'


@dataclass
class TimerResult:
    """Result of stopping the timer"""
    entry: TimeEntry
    elapsed_seconds: int
    raw_hours: float


class TimerService:
    """Starts and stops the timer; a stop produces a time entry"""

    def __init__(self, entry_service):
        """
        Args:
            entry_service: EntryService receiving the stopped timer's entry
        """
        self.entry_service = entry_service
        self.state = TimerState()

    def load(self) -> TimerState:
        """Restore a timer left running by an earlier process."""
        data = read_blob(TIMER_STATE_KEY, default=None)
        self.state = TimerState.from_dict(data if isinstance(data, dict) else None)
        if self.state.running:
            logger.info(f"Timer running for {self.state.employee} since {self.state.started_at}")
        return self.state

    @property
    def running(self) -> bool:
        return self.state.running

    def start(self, employee: str, category: str = 'work', project: str = '',
              now: Optional[datetime.datetime] = None) -> TimerState:
        employee = (employee or '').strip()
        if not employee:
            raise TimerError("Please enter your name first")
        if self.state.running:
            raise TimerError(f"Timer already running for {self.state.employee}")

        self.state = TimerState(
            running=True,
            employee=employee,
            category=(category or 'work').lower(),
            project=(project or '').strip(),
            started_at=now or datetime.datetime.now(),
        )
        write_blob(TIMER_STATE_KEY, self.state.to_dict())
        logger.info(f"Timer started - {employee}")
        return self.state

    def elapsed(self, now: Optional[datetime.datetime] = None) -> datetime.timedelta:
        if not self.state.running or self.state.started_at is None:
            return datetime.timedelta(0)
        return max((now or datetime.datetime.now()) - self.state.started_at, datetime.timedelta(0))

    def format_elapsed(self, now: Optional[datetime.datetime] = None) -> str:
        return format_hms(int(self.elapsed(now).total_seconds()))

    def stop(self, now: Optional[datetime.datetime] = None) -> TimerResult:
        """
        Stop the timer and record an entry.

        The duration is rounded to the nearest half hour and never negative,
        so a clock that moved backwards yields a zero-hour entry.
        """
        if not self.state.running:
            raise TimerError("Timer is not running")

        end = now or datetime.datetime.now()
        start = self.state.started_at
        elapsed_seconds = int((end - start).total_seconds())
        raw_hours = elapsed_seconds / 3600.0

        entry = TimeEntry(
            employee=self.state.employee,
            date=start.date().isoformat(),
            category=self.state.category,
            project=self.state.project or DEFAULT_PROJECT,
            start_time=start.strftime('%H:%M'),
            end_time=end.strftime('%H:%M'),
            duration=round_to_half_hour(raw_hours),
            description=TIMER_DESCRIPTION,
            source=SOURCE_TIMER,
        )
        self.entry_service.add(entry)

        self.state = TimerState()
        delete_blob(TIMER_STATE_KEY)
        logger.info(f"Timer stopped - {entry.employee}: {entry.duration:g}h")
        if entry.duration <= 0:
            logger.warning("Timer stopped with zero duration; the entry will be flagged invalid")
        return TimerResult(entry=entry, elapsed_seconds=max(0, elapsed_seconds), raw_hours=raw_hours)

    def cancel(self):
        """Discard a running timer without recording anything."""
        self.state = TimerState()
        delete_blob(TIMER_STATE_KEY)


class TimerTicker:
    """Calls ``callback`` with the formatted elapsed time once per interval"""

    def __init__(self, timer: TimerService, callback: Callable[[str], None],
                 interval: float = TIMER_TICK_SECONDS):
        self.timer = timer
        self.callback = callback
        self.interval = interval
        self.running = False
        self.thread = None
        self._stop_event = threading.Event()

    def start(self):
        self.running = True
        self._stop_event.clear()
        self.thread = threading.Thread(target=self._loop, daemon=True)
        self.thread.start()

    def stop(self):
        self.running = False
        self._stop_event.set()
        if self.thread:
            self.thread.join(timeout=1)

    def _loop(self):
        while self.running and self.timer.running:
            try:
                self.callback(self.timer.format_elapsed())
            except Exception as e:
                logger.error(f"Timer display callback failed: {e}")
            if self._stop_event.wait(self.interval):
                break
        self.running = False
