"""
Data model for the work-time tracker.

Everything here is an immutable value. The surrounding application loads a
WorkTimeState, asks the engine (calculations/lifecycle) for a new value and
persists that value as a whole.

Instants are datetimes in local wall-clock time, truncated to milliseconds
so they survive a JSON snapshot unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Optional, Tuple


DEFAULT_TARGET_HOURS = 8.0
DATE_KEY_FORMAT = "%Y-%m-%d"


def truncate_to_millis(dt: datetime) -> datetime:
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def to_local_instant(dt: datetime) -> datetime:
    """Naive local wall time at millisecond precision; aware values are converted first."""
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return truncate_to_millis(dt)


def now() -> datetime:
    """Current local instant at millisecond precision."""
    return truncate_to_millis(datetime.now())


def date_key(dt: datetime) -> str:
    """Local calendar date of an instant as YYYY-MM-DD."""
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime(DATE_KEY_FORMAT)


def parse_clock(value: str) -> Tuple[int, int]:
    """Parse "HH:MM" into (hour, minute); raises ValueError when malformed."""
    parts = value.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"expected HH:MM, got {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"clock time out of range: {value!r}")
    return hour, minute


def parse_local_datetime(value: str, today: Optional[date] = None) -> datetime:
    """Parse user input "YYYY-MM-DD HH:MM[:SS]" or "HH:MM" (on `today`) as a local instant."""
    text = value.strip()
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    hour, minute = parse_clock(text)
    return datetime.combine(today or date.today(), time(hour, minute))


@dataclass(frozen=True)
class WorkSession:
    id: str
    start_time: datetime
    end_time: Optional[datetime] = None  # None while the timer is running

    @property
    def is_running(self) -> bool:
        return self.end_time is None

    def with_end(self, instant: datetime) -> "WorkSession":
        return replace(self, end_time=instant)


@dataclass(frozen=True)
class DailyTarget:
    date: str  # YYYY-MM-DD, local calendar date
    target_hours: float


@dataclass(frozen=True)
class NotificationSettings:
    enable_start_reminder: bool = True
    start_reminder_time: str = "08:00"  # HH:MM local
    enable_stop_reminder: bool = True
    stop_after_hours: float = 8.0

    def start_reminder_clock(self) -> Tuple[int, int]:
        return parse_clock(self.start_reminder_time)


def _no_sessions() -> Tuple[WorkSession, ...]:
    return ()


def _no_targets() -> Tuple[DailyTarget, ...]:
    return ()


@dataclass(frozen=True)
class WorkTimeState:
    """Root aggregate persisted as one snapshot.

    Invariants:
    - current_session, when present, has no end_time.
    - every entry of sessions has an end_time; order is stop order.
    - daily_targets holds at most one entry per date (lookups take the first).
    - default_target_hours and notification_settings.stop_after_hours are > 0.

    Session intervals may overlap; nothing rejects that.
    """

    sessions: Tuple[WorkSession, ...] = field(default_factory=_no_sessions)
    daily_targets: Tuple[DailyTarget, ...] = field(default_factory=_no_targets)
    current_session: Optional[WorkSession] = None
    default_target_hours: float = DEFAULT_TARGET_HOURS
    notification_settings: NotificationSettings = field(default_factory=NotificationSettings)

    @property
    def is_running(self) -> bool:
        return self.current_session is not None


def initial_state() -> WorkTimeState:
    """State used when no snapshot has been saved yet."""
    return WorkTimeState()


__all__ = [
    "DEFAULT_TARGET_HOURS",
    "DailyTarget",
    "NotificationSettings",
    "WorkSession",
    "WorkTimeState",
    "date_key",
    "initial_state",
    "now",
    "parse_clock",
    "parse_local_datetime",
    "to_local_instant",
    "truncate_to_millis",
]
