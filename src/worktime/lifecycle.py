"""
Timer lifecycle and settings mutations.

States:
    IDLE (no current session) <-> RUNNING (current session without end time)

Every function takes a WorkTimeState and returns a new one; a rejected
transition raises a WorkTimeError and the input state stays untouched.
`now` and `new_id` are injectable so callers can pin the clock and ids.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from .calculations import format_duration, session_duration
from .errors import (
    AlreadyRunningError,
    FutureEndTimeError,
    FutureStartTimeError,
    InvalidRangeError,
    InvalidSettingError,
    NotRunningError,
)
from .models import (
    DATE_KEY_FORMAT,
    DailyTarget,
    NotificationSettings,
    WorkSession,
    WorkTimeState,
    now as current_instant,
    parse_clock,
    to_local_instant,
)

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]


def _uuid() -> str:
    return str(uuid.uuid4())


def _instant_or_now(instant: Optional[datetime]) -> datetime:
    return to_local_instant(instant) if instant is not None else current_instant()


# ---------------------------- Timer ----------------------------


def start(state: WorkTimeState, instant: Optional[datetime] = None, *, new_id: IdFactory = _uuid) -> WorkTimeState:
    """IDLE -> RUNNING with a session starting at `instant` (default: now)."""
    if state.current_session is not None:
        raise AlreadyRunningError(state.current_session)
    started = _instant_or_now(instant)
    session = WorkSession(id=new_id(), start_time=started)
    logger.info("Timer started at %s (session %s)", session.start_time.isoformat(), session.id)
    return replace(state, current_session=session)


def start_at(
    state: WorkTimeState,
    instant: datetime,
    *,
    now: Optional[datetime] = None,
    new_id: IdFactory = _uuid,
) -> WorkTimeState:
    """Start the timer at a caller-chosen instant, which may not lie in the future."""
    if state.current_session is not None:
        raise AlreadyRunningError(state.current_session)
    instant = to_local_instant(instant)
    reference = _instant_or_now(now)
    if instant > reference:
        raise FutureStartTimeError(instant, reference)
    return start(state, instant, new_id=new_id)


def stop(state: WorkTimeState, instant: Optional[datetime] = None) -> WorkTimeState:
    """RUNNING -> IDLE; the finished session is appended to the completed list."""
    current = state.current_session
    if current is None:
        raise NotRunningError()
    ended = current.with_end(_instant_or_now(instant))
    logger.info("Timer stopped: %s (session %s)", format_duration(session_duration(ended)), ended.id)
    return replace(state, sessions=state.sessions + (ended,), current_session=None)


def toggle(state: WorkTimeState, instant: Optional[datetime] = None, *, new_id: IdFactory = _uuid) -> WorkTimeState:
    if state.current_session is not None:
        return stop(state, instant)
    return start(state, instant, new_id=new_id)


def add_completed_session(
    state: WorkTimeState,
    start_time: datetime,
    end_time: datetime,
    *,
    now: Optional[datetime] = None,
    new_id: IdFactory = _uuid,
) -> WorkTimeState:
    """Record a finished session; the running timer (if any) is left alone."""
    start_time, end_time = to_local_instant(start_time), to_local_instant(end_time)
    if end_time <= start_time:
        raise InvalidRangeError(start_time, end_time)
    reference = _instant_or_now(now)
    if end_time > reference:
        raise FutureEndTimeError(end_time, reference)
    session = WorkSession(id=new_id(), start_time=start_time, end_time=end_time)
    logger.info(
        "Added session %s: %s - %s", session.id, start_time.isoformat(), end_time.isoformat()
    )
    return replace(state, sessions=state.sessions + (session,))


def delete_session(state: WorkTimeState, session_id: str) -> WorkTimeState:
    """Remove the first completed session with this id; unknown ids are a no-op."""
    for i, s in enumerate(state.sessions):
        if s.id == session_id:
            logger.info("Deleted session %s", session_id)
            return replace(state, sessions=state.sessions[:i] + state.sessions[i + 1:])
    logger.debug("Delete ignored, no session %s", session_id)
    return state


# ---------------------------- Targets & settings ----------------------------


def _positive_hours(field_name: str, value: object) -> float:
    try:
        hours = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidSettingError(field_name, value) from None
    if not (hours > 0 and math.isfinite(hours)):
        raise InvalidSettingError(field_name, value)
    return hours


def _check_date(day: str) -> str:
    try:
        datetime.strptime(day, DATE_KEY_FORMAT)
    except (TypeError, ValueError):
        raise InvalidSettingError("date", day, "must be a YYYY-MM-DD date") from None
    return day


def set_daily_target(state: WorkTimeState, day: str, target_hours: float) -> WorkTimeState:
    """Upsert the target override for one date."""
    _check_date(day)
    hours = _positive_hours("targetHours", target_hours)
    target = DailyTarget(date=day, target_hours=hours)
    kept = tuple(t for t in state.daily_targets if t.date != day)
    for i, t in enumerate(state.daily_targets):
        if t.date == day:
            # keep the original position of the entry being replaced
            updated = kept[:i] + (target,) + kept[i:]
            break
    else:
        updated = state.daily_targets + (target,)
    logger.info("Daily target for %s set to %.2fh", day, hours)
    return replace(state, daily_targets=updated)


def remove_daily_target(state: WorkTimeState, day: str) -> WorkTimeState:
    remaining = tuple(t for t in state.daily_targets if t.date != day)
    if len(remaining) == len(state.daily_targets):
        return state
    logger.info("Daily target for %s removed", day)
    return replace(state, daily_targets=remaining)


def update_settings(
    state: WorkTimeState,
    *,
    default_target_hours: Optional[float] = None,
    notification_settings: Optional[NotificationSettings] = None,
) -> WorkTimeState:
    """Validate and apply new settings; unspecified values are kept."""
    default_hours = state.default_target_hours
    if default_target_hours is not None:
        default_hours = _positive_hours("defaultTargetHours", default_target_hours)

    settings = state.notification_settings
    if notification_settings is not None:
        stop_after = _positive_hours("stopAfterHours", notification_settings.stop_after_hours)
        try:
            hour, minute = parse_clock(notification_settings.start_reminder_time)
        except ValueError:
            raise InvalidSettingError(
                "startReminderTime", notification_settings.start_reminder_time, "must be HH:MM"
            ) from None
        settings = replace(
            notification_settings,
            stop_after_hours=stop_after,
            start_reminder_time=f"{hour:02d}:{minute:02d}",
        )

    logger.info("Settings updated: default target %.2fh, %s", default_hours, settings)
    return replace(state, default_target_hours=default_hours, notification_settings=settings)


__all__ = [
    "add_completed_session",
    "delete_session",
    "remove_daily_target",
    "set_daily_target",
    "start",
    "start_at",
    "stop",
    "toggle",
    "update_settings",
]
