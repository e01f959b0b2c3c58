from dataclasses import replace
from datetime import date, datetime

from worktime.models import DailyTarget, initial_state
from worktime.reports import (
    analyze_patterns,
    calendar_weeks,
    day_detail,
    month_bounds,
    month_calendar,
    monthly_summary,
    shift_month,
    top_days,
    week_bounds,
    week_of_month,
    weekly_summary,
    work_patterns,
    working_days,
)

from conftest import completed

# 2024-01-01 is a Monday
STATE = replace(
    initial_state(),
    sessions=(
        completed("a", "2024-01-01 09:00", "2024-01-01 12:00"),
        completed("b", "2024-01-01 13:00", "2024-01-01 17:00"),
        completed("c", "2024-01-03 08:00", "2024-01-03 18:00"),
        completed("d", "2024-01-06 10:00", "2024-01-06 12:00"),
        completed("e", "2024-01-15 09:00", "2024-01-15 17:00"),
    ),
    daily_targets=(DailyTarget("2024-01-03", 6.0),),
)


def test_week_bounds_run_monday_to_sunday():
    start, end = week_bounds(date(2024, 1, 3))
    assert start == datetime(2024, 1, 1, 0, 0)
    assert end == datetime(2024, 1, 7, 23, 59, 59, 999000)


def test_month_bounds_and_working_days():
    start, end = month_bounds(date(2024, 2, 10))
    assert start == datetime(2024, 2, 1)
    assert end.date() == date(2024, 2, 29)
    assert working_days(date(2024, 1, 1), date(2024, 1, 31)) == 23


def test_weekly_summary_tables():
    text = weekly_summary(STATE, date(2024, 1, 3))
    assert "**2024-01-01 - 2024-01-07**" in text
    assert "- **Total Work Time:** 19h 0m" in text
    assert "- **Target Time:** 40h (assuming 5 workdays)" in text
    # -1 (Mon) + 4 (Wed against a 6h override) - 6 (Sat against the default)
    assert "- **Balance:** -3.00h" in text
    assert "| Monday | 2024-01-01 | 7h 0m | 8h | -1.00h |" in text
    assert "| Tuesday | 2024-01-02 | 0h 0m | 8h | +0.00h |" in text
    assert "| Wednesday | 2024-01-03 | 10h 0m | 6h | +4.00h |" in text
    assert "| Sunday | 2024-01-07 | 0h 0m | 0h | +0.00h |" in text


def test_week_of_month_is_monday_first():
    assert week_of_month(date(2024, 1, 1)) == 1
    assert week_of_month(date(2024, 1, 7)) == 1
    assert week_of_month(date(2024, 1, 8)) == 2
    # February 2024 starts on a Thursday
    assert week_of_month(date(2024, 2, 4)) == 1
    assert week_of_month(date(2024, 2, 5)) == 2


def test_monthly_summary():
    text = monthly_summary(STATE, date(2024, 1, 20))
    assert "**January 2024**" in text
    assert "- **Working Days:** 23" in text
    assert "- **Target Time:** 184h" in text
    assert "- **Total Work Time:** 27h 0m" in text
    # week 1: 19h worked against 8 + 6 weekday target hours; saturday has none
    assert "| Week 1 | 19h 0m | 14.0h | +5.00h |" in text
    assert "| Week 3 | 8h 0m | 8.0h | +0.00h |" in text
    assert "| 2024-01-03 | 10h 0m |" in text


def test_top_days_sorted_by_work_time():
    assert [d for d, _ in top_days(STATE.sessions, limit=2)] == ["2024-01-03", "2024-01-15"]


def test_patterns():
    p = analyze_patterns(STATE.sessions)
    assert p.most_common_start() == (9, 2)
    assert p.most_common_end() == (12, 2)
    day, hours = p.most_productive_day()
    assert (day, hours) == (0, 15.0)
    text = work_patterns(STATE)
    assert "- **Most productive day:** Monday (15.0 hours)" in text


def test_patterns_without_sessions_use_defaults():
    text = work_patterns(initial_state())
    assert "- **Most common start time:** 9:00 (0 times)" in text
    assert "- **Most common end time:** 17:00 (0 times)" in text


def test_month_calendar_and_grid():
    days = month_calendar(STATE, 2024, 1, today=date(2024, 1, 3))
    assert len(days) == 31
    jan1, jan2, jan3 = days[0], days[1], days[2]
    assert jan1.worked_ms == 7 * 3_600_000 and jan1.balance == -1.0
    assert jan2.balance is None
    assert jan3.is_today and jan3.key == "2024-01-03"

    weeks = calendar_weeks(days)
    assert all(len(w) == 7 for w in weeks)
    assert weeks[0][0] is jan1
    assert weeks[-1][-1] is None  # Jan 31 2024 is a Wednesday


def test_shift_month_wraps_years():
    assert shift_month(2024, 1, -1) == (2023, 12)
    assert shift_month(2024, 12, 1) == (2025, 1)


def test_day_detail_without_sessions_has_negative_balance():
    detail = day_detail(STATE, date(2024, 1, 2))
    assert detail.sessions == []
    assert detail.balance == -8.0
    assert day_detail(STATE, "2024-01-03").balance == 4.0
