"""
Report and calendar views built on the calculation functions.

- weekly_summary / monthly_summary / work_patterns return Markdown text.
- month_calendar / calendar_weeks / day_detail return plain data for the
  calendar grid in the UI.

Weekends carry a 0h target in the weekly and monthly tables unless an
explicit daily target exists for that date.
"""

from __future__ import annotations

import calendar
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from .calculations import (
    MS_PER_HOUR,
    daily_balance,
    format_balance,
    format_duration,
    session_duration,
    sessions_between,
    sessions_by_date,
    target_map,
    total_balance,
    total_work_time,
)
from .models import DATE_KEY_FORMAT, WorkSession, WorkTimeState, date_key

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
WORKDAYS_PER_WEEK = 5
BAR_WIDTH = 20


# ---------------------------- Windows ----------------------------


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min)


def _day_end(day: date) -> datetime:
    return datetime.combine(day, time(23, 59, 59, 999000))


def week_bounds(day: date) -> Tuple[datetime, datetime]:
    """Monday 00:00 to Sunday 23:59:59.999 of the week containing `day`."""
    monday = day - timedelta(days=day.weekday())
    return _day_start(monday), _day_end(monday + timedelta(days=6))


def month_bounds(day: date) -> Tuple[datetime, datetime]:
    last = calendar.monthrange(day.year, day.month)[1]
    return _day_start(day.replace(day=1)), _day_end(day.replace(day=last))


def working_days(first: date, last: date) -> int:
    count = 0
    d = first
    while d <= last:
        if d.weekday() < 5:
            count += 1
        d += timedelta(days=1)
    return count


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


# ---------------------------- Summaries ----------------------------


def weekly_summary(state: WorkTimeState, today: date | datetime) -> str:
    today = _as_date(today)
    start, end = week_bounds(today)
    week_sessions = sessions_between(state.sessions, start, end)
    by_date = sessions_by_date(week_sessions)
    balances = daily_balance(week_sessions, state.daily_targets, state.default_target_hours)
    targets = target_map(state.daily_targets)

    lines = [
        "# Weekly Summary",
        "",
        f"**{start:%Y-%m-%d} - {end:%Y-%m-%d}**",
        "",
        "## Overview",
        "",
        f"- **Total Work Time:** {format_duration(total_work_time(week_sessions))}",
        f"- **Target Time:** {state.default_target_hours * WORKDAYS_PER_WEEK:g}h (assuming {WORKDAYS_PER_WEEK} workdays)",
        f"- **Balance:** {format_balance(total_balance(week_sessions, state.daily_targets, state.default_target_hours))}",
        "",
        "## Daily Breakdown",
        "",
        "| Day | Date | Work Time | Target | Balance |",
        "| --- | ---- | --------- | ------ | ------- |",
    ]
    for i in range(7):
        day = start.date() + timedelta(days=i)
        key = day.strftime(DATE_KEY_FORMAT)
        worked = sum(session_duration(s) for s in by_date.get(key, []))
        target = targets.get(key, state.default_target_hours if i < 5 else 0)
        lines.append(
            f"| {DAY_NAMES[i]} | {key} | {format_duration(worked)} | {target:g}h | {format_balance(balances.get(key, 0.0))} |"
        )
    return "\n".join(lines) + "\n"


def week_of_month(day: date) -> int:
    """1-based Monday-first week index of `day` within its month."""
    first_weekday = day.replace(day=1).weekday()
    return (day.day + first_weekday - 1) // 7 + 1


def top_days(state_sessions: Sequence[WorkSession], limit: int = 5) -> List[Tuple[str, int]]:
    totals = [(key, sum(session_duration(s) for s in ss)) for key, ss in sessions_by_date(state_sessions).items()]
    totals.sort(key=lambda kv: kv[1], reverse=True)
    return totals[:limit]


def monthly_summary(state: WorkTimeState, today: date | datetime) -> str:
    today = _as_date(today)
    start, end = month_bounds(today)
    month_sessions = sessions_between(state.sessions, start, end)
    by_date = sessions_by_date(month_sessions)
    targets = target_map(state.daily_targets)

    workdays = working_days(start.date(), end.date())
    balance = total_balance(month_sessions, state.daily_targets, state.default_target_hours)

    lines = [
        "# Monthly Summary",
        "",
        f"**{start:%B %Y}**",
        "",
        "## Overview",
        "",
        f"- **Total Work Time:** {format_duration(total_work_time(month_sessions))}",
        f"- **Working Days:** {workdays}",
        f"- **Target Time:** {workdays * state.default_target_hours:g}h",
        f"- **Balance:** {format_balance(balance)}",
        "",
        "## Weekly Breakdown",
        "",
        "| Week | Work Time | Target | Balance |",
        "| ---- | --------- | ------ | ------- |",
    ]

    weekly: Dict[int, List[int]] = {}  # week -> [worked_ms, target_ms]
    for key in sorted(by_date):
        day = datetime.strptime(key, DATE_KEY_FORMAT).date()
        bucket = weekly.setdefault(week_of_month(day), [0, 0])
        bucket[0] += sum(session_duration(s) for s in by_date[key])
        if day.weekday() < 5:
            bucket[1] += int(targets.get(key, state.default_target_hours) * MS_PER_HOUR)
    for week in sorted(weekly):
        worked, target = weekly[week]
        lines.append(
            f"| Week {week} | {format_duration(worked)} | {target / MS_PER_HOUR:.1f}h | {format_balance((worked - target) / MS_PER_HOUR)} |"
        )

    lines += [
        "",
        "## Top 5 Most Productive Days",
        "",
        "| Date | Work Time |",
        "| ---- | --------- |",
    ]
    for key, worked in top_days(month_sessions):
        lines.append(f"| {key} | {format_duration(worked)} |")
    return "\n".join(lines) + "\n"


# ---------------------------- Patterns ----------------------------


@dataclass
class WorkPatterns:
    start_hours: Counter = field(default_factory=Counter)
    end_hours: Counter = field(default_factory=Counter)
    weekday_hours: Dict[int, float] = field(default_factory=dict)  # 0=Monday

    @staticmethod
    def _most_common(counts: Dict[int, float], fallback: int) -> Tuple[int, float]:
        best, best_value = fallback, 0.0
        for key in sorted(counts):
            if counts[key] > best_value:
                best, best_value = key, counts[key]
        return best, best_value

    def most_common_start(self) -> Tuple[int, int]:
        hour, count = self._most_common(dict(self.start_hours), 9)
        return hour, int(count)

    def most_common_end(self) -> Tuple[int, int]:
        hour, count = self._most_common(dict(self.end_hours), 17)
        return hour, int(count)

    def most_productive_day(self) -> Tuple[int, float]:
        return self._most_common(self.weekday_hours, 0)


def analyze_patterns(sessions: Sequence[WorkSession]) -> WorkPatterns:
    patterns = WorkPatterns()
    for s in sessions:
        if s.end_time is None:
            continue
        patterns.start_hours[s.start_time.hour] += 1
        patterns.end_hours[s.end_time.hour] += 1
        wd = s.start_time.weekday()
        patterns.weekday_hours[wd] = patterns.weekday_hours.get(wd, 0.0) + session_duration(s) / MS_PER_HOUR
    return patterns


def _bar(value: float, max_value: float) -> str:
    length = round(value / max_value * BAR_WIDTH) if max_value > 0 else 0
    return ("█" * length).ljust(BAR_WIDTH)


def work_patterns(state: WorkTimeState) -> str:
    p = analyze_patterns(state.sessions)
    start_hour, start_count = p.most_common_start()
    end_hour, end_count = p.most_common_end()
    best_day, best_hours = p.most_productive_day()

    lines = [
        "# Work Patterns Analysis",
        "",
        "## Overview",
        "",
        f"- **Most common start time:** {start_hour}:00 ({start_count} times)",
        f"- **Most common end time:** {end_hour}:00 ({end_count} times)",
        f"- **Most productive day:** {DAY_NAMES[best_day]} ({best_hours:.1f} hours)",
        "",
        "## Start Time Distribution",
        "",
        "| Hour | Distribution | Count |",
        "| ---- | ------------ | ----- |",
    ]
    max_start = max(p.start_hours.values(), default=0)
    for hour in range(6, 13):
        count = p.start_hours.get(hour, 0)
        lines.append(f"| {f'{hour}:00':<5} | {_bar(count, max_start)} | {count} |")

    lines += ["", "## End Time Distribution", "", "| Hour | Distribution | Count |", "| ---- | ------------ | ----- |"]
    max_end = max(p.end_hours.values(), default=0)
    for hour in range(15, 22):
        count = p.end_hours.get(hour, 0)
        lines.append(f"| {f'{hour}:00':<5} | {_bar(count, max_end)} | {count} |")

    lines += ["", "## Day of Week Distribution", "", "| Day | Distribution | Hours |", "| --- | ------------ | ----- |"]
    max_day = max(p.weekday_hours.values(), default=0.0)
    for wd in range(5):
        hours = p.weekday_hours.get(wd, 0.0)
        lines.append(f"| {DAY_NAMES[wd]:<9} | {_bar(hours, max_day)} | {hours:.1f} |")
    return "\n".join(lines) + "\n"


# ---------------------------- Calendar ----------------------------


@dataclass
class CalendarDay:
    date: date
    worked_ms: int
    balance: Optional[float]  # None when nothing was logged that day
    is_today: bool
    sessions: List[WorkSession]

    @property
    def key(self) -> str:
        return self.date.strftime(DATE_KEY_FORMAT)


def month_calendar(state: WorkTimeState, year: int, month: int, today: Optional[date] = None) -> List[CalendarDay]:
    today = today or date.today()
    by_date = sessions_by_date(state.sessions)
    balances = daily_balance(state.sessions, state.daily_targets, state.default_target_hours)
    days: List[CalendarDay] = []
    for n in range(1, calendar.monthrange(year, month)[1] + 1):
        d = date(year, month, n)
        key = d.strftime(DATE_KEY_FORMAT)
        day_sessions = by_date.get(key, [])
        days.append(
            CalendarDay(
                date=d,
                worked_ms=sum(session_duration(s) for s in day_sessions),
                balance=balances.get(key),
                is_today=(d == today),
                sessions=day_sessions,
            )
        )
    return days


def calendar_weeks(days: Sequence[CalendarDay]) -> List[List[Optional[CalendarDay]]]:
    """Arrange a month of days into Monday-first weeks padded with None."""
    if not days:
        return []
    cells: List[Optional[CalendarDay]] = [None] * days[0].date.weekday()
    cells.extend(days)
    while len(cells) % 7:
        cells.append(None)
    return [cells[i:i + 7] for i in range(0, len(cells), 7)]


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


@dataclass
class DayDetail:
    date: str
    sessions: List[WorkSession]
    worked_ms: int
    target_hours: float
    balance: float


def day_detail(state: WorkTimeState, day: date | str) -> DayDetail:
    key = day if isinstance(day, str) else day.strftime(DATE_KEY_FORMAT)
    day_sessions = [s for s in state.sessions if s.end_time is not None and date_key(s.start_time) == key]
    worked = sum(session_duration(s) for s in day_sessions)
    target = target_map(state.daily_targets).get(key, state.default_target_hours)
    return DayDetail(
        date=key,
        sessions=day_sessions,
        worked_ms=worked,
        target_hours=target,
        balance=worked / MS_PER_HOUR - target,
    )


__all__ = [
    "CalendarDay",
    "DayDetail",
    "WorkPatterns",
    "analyze_patterns",
    "calendar_weeks",
    "day_detail",
    "month_bounds",
    "month_calendar",
    "monthly_summary",
    "shift_month",
    "top_days",
    "week_bounds",
    "week_of_month",
    "weekly_summary",
    "work_patterns",
    "working_days",
]
