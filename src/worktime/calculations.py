"""
Time accounting: durations, per-date aggregation and balances against targets.

All functions are pure and work on plain sequences of WorkSession/DailyTarget,
so reports can run them on any filtered subset of a state.

Contract:
- session_duration(s): end - start in ms, 0 while running, never clamped.
- sessions_by_date(ss): completed sessions grouped by local start date.
- daily_balance(ss, targets, default): worked hours minus target, only for
  dates that have at least one completed session.
- total_balance(...): sum of daily_balance values. Dates with a target but
  no sessions do not contribute.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from collections.abc import Mapping
from typing import Dict, Iterable, List, Sequence

from .models import DailyTarget, WorkSession, date_key

MS_PER_MINUTE = 60 * 1000
MS_PER_HOUR = 60 * MS_PER_MINUTE
_ONE_MS = timedelta(milliseconds=1)


def session_duration(session: WorkSession) -> int:
    if session.end_time is None:
        return 0
    return (session.end_time - session.start_time) // _ONE_MS


def elapsed(session: WorkSession, now: datetime) -> int:
    """Live elapsed ms of a session; running sessions are measured up to now."""
    end = session.end_time if session.end_time is not None else now
    return (end - session.start_time) // _ONE_MS


def total_work_time(sessions: Iterable[WorkSession]) -> int:
    return sum(session_duration(s) for s in sessions if s.end_time is not None)


def sessions_by_date(sessions: Iterable[WorkSession]) -> Dict[str, List[WorkSession]]:
    grouped: Dict[str, List[WorkSession]] = {}
    for s in sessions:
        if s.end_time is None:
            continue
        grouped.setdefault(date_key(s.start_time), []).append(s)
    return grouped


def target_map(targets: Iterable[DailyTarget]) -> Dict[str, float]:
    """Date -> target hours; the first entry for a date wins."""
    lookup: Dict[str, float] = {}
    for t in targets:
        if t.date not in lookup:
            lookup[t.date] = t.target_hours
    return lookup


def target_hours_for(day: str, targets: Iterable[DailyTarget] | Mapping[str, float], default: float) -> float:
    lookup = targets if isinstance(targets, Mapping) else target_map(targets)
    return lookup.get(day, default)


def daily_balance(
    sessions: Iterable[WorkSession],
    targets: Iterable[DailyTarget],
    default_target_hours: float,
) -> Dict[str, float]:
    lookup = target_map(targets)
    balance: Dict[str, float] = {}
    for day, day_sessions in sessions_by_date(sessions).items():
        worked_ms = sum(session_duration(s) for s in day_sessions)
        balance[day] = worked_ms / MS_PER_HOUR - lookup.get(day, default_target_hours)
    return balance


def total_balance(
    sessions: Iterable[WorkSession],
    targets: Iterable[DailyTarget],
    default_target_hours: float,
) -> float:
    return sum(daily_balance(sessions, targets, default_target_hours).values())


def sessions_between(sessions: Sequence[WorkSession], start: datetime, end: datetime) -> List[WorkSession]:
    """Completed sessions whose start lies within [start, end]."""
    return [s for s in sessions if s.end_time is not None and start <= s.start_time <= end]


# ---------------------------- Formatting ----------------------------


def format_duration(duration_ms: int) -> str:
    hours = duration_ms // MS_PER_HOUR
    minutes = (duration_ms % MS_PER_HOUR) // MS_PER_MINUTE
    return f"{hours}h {minutes}m"


def format_hms(duration_ms: int) -> str:
    seconds = max(0, duration_ms) // 1000
    return f"{seconds // 3600:02d}:{(seconds % 3600) // 60:02d}:{seconds % 60:02d}"


def format_balance(hours: float) -> str:
    return f"{'+' if hours >= 0 else ''}{hours:.2f}h"


def format_balance_hm(hours: float) -> str:
    sign = "+" if hours >= 0 else "-"
    magnitude = abs(hours)
    whole = int(magnitude)
    minutes = int((magnitude % 1) * 60)
    return f"{sign}{whole}h {minutes}m"


__all__ = [
    "MS_PER_HOUR",
    "MS_PER_MINUTE",
    "daily_balance",
    "elapsed",
    "format_balance",
    "format_balance_hm",
    "format_duration",
    "format_hms",
    "session_duration",
    "sessions_between",
    "sessions_by_date",
    "target_hours_for",
    "target_map",
    "total_balance",
    "total_work_time",
]
