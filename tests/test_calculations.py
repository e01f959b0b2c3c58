from datetime import datetime, timedelta

from worktime.calculations import (
    daily_balance,
    elapsed,
    format_balance,
    format_balance_hm,
    format_duration,
    format_hms,
    session_duration,
    sessions_between,
    sessions_by_date,
    target_hours_for,
    target_map,
    total_balance,
    total_work_time,
)
from worktime.models import DailyTarget, WorkSession

from conftest import completed


def test_duration_of_completed_session_is_end_minus_start():
    start = datetime(2024, 1, 1, 9, 0)
    s = WorkSession("a", start, start + timedelta(hours=1, milliseconds=250))
    assert session_duration(s) == 3_600_250


def test_duration_of_running_session_is_zero():
    assert session_duration(WorkSession("a", datetime(2024, 1, 1, 9, 0))) == 0


def test_duration_is_not_clamped_when_end_precedes_start():
    s = WorkSession("a", datetime(2024, 1, 1, 10, 0), datetime(2024, 1, 1, 9, 0))
    assert session_duration(s) == -3_600_000


def test_elapsed_measures_running_session_up_to_now():
    s = WorkSession("a", datetime(2024, 1, 1, 9, 0))
    assert elapsed(s, datetime(2024, 1, 1, 9, 30)) == 30 * 60 * 1000


def test_total_work_time_scenario():
    sessions = [
        completed("a", "2024-01-01 09:00", "2024-01-01 12:00"),
        completed("b", "2024-01-01 13:00", "2024-01-01 17:00"),
    ]
    assert total_work_time(sessions) == 25_200_000


def test_total_work_time_ignores_running_sessions():
    sessions = [
        completed("a", "2024-01-01 09:00", "2024-01-01 10:00"),
        WorkSession("b", datetime(2024, 1, 1, 11, 0)),
    ]
    assert total_work_time(sessions) == 3_600_000


def test_sessions_by_date_groups_by_start_date_and_keeps_order():
    late = completed("late", "2024-01-01 22:00", "2024-01-02 02:00")
    morning = completed("morning", "2024-01-01 08:00", "2024-01-01 09:00")
    next_day = completed("next", "2024-01-02 10:00", "2024-01-02 11:00")
    running = WorkSession("run", datetime(2024, 1, 2, 12, 0))

    grouped = sessions_by_date([late, morning, next_day, running])

    assert list(grouped) == ["2024-01-01", "2024-01-02"]
    assert [s.id for s in grouped["2024-01-01"]] == ["late", "morning"]
    assert [s.id for s in grouped["2024-01-02"]] == ["next"]


def test_daily_balance_scenario_with_default_target():
    sessions = [
        completed("a", "2024-01-01 09:00", "2024-01-01 12:00"),
        completed("b", "2024-01-01 13:00", "2024-01-01 17:00"),
    ]
    assert daily_balance(sessions, [], 8) == {"2024-01-01": -1.0}


def test_daily_balance_uses_override_and_omits_dates_without_sessions():
    sessions = [completed("a", "2024-01-02 09:00", "2024-01-02 15:00")]
    targets = [DailyTarget("2024-01-02", 6.0), DailyTarget("2024-01-03", 4.0)]

    balance = daily_balance(sessions, targets, 8)

    assert balance == {"2024-01-02": 0.0}
    assert "2024-01-03" not in balance


def test_total_balance_sums_only_dates_with_sessions():
    sessions = [
        completed("a", "2024-01-01 09:00", "2024-01-01 19:00"),  # +2
        completed("b", "2024-01-02 09:00", "2024-01-02 16:00"),  # -1
    ]
    targets = [DailyTarget("2024-01-05", 8.0)]
    assert total_balance(sessions, targets, 8) == 1.0


def test_target_map_first_entry_wins():
    targets = [DailyTarget("2024-01-01", 4.0), DailyTarget("2024-01-01", 6.0)]
    assert target_map(targets) == {"2024-01-01": 4.0}
    assert target_hours_for("2024-01-01", targets, 8) == 4.0
    assert target_hours_for("2024-01-02", {"2024-01-01": 4.0}, 8) == 8


def test_sessions_between_filters_on_start_time():
    inside = completed("in", "2024-01-03 09:00", "2024-01-03 10:00")
    before = completed("before", "2023-12-31 23:00", "2024-01-01 01:00")
    result = sessions_between([inside, before], datetime(2024, 1, 1), datetime(2024, 1, 7, 23, 59))
    assert [s.id for s in result] == ["in"]


def test_formatting_helpers():
    assert format_duration(25_200_000) == "7h 0m"
    assert format_duration(5_400_000 + 59_999) == "1h 30m"
    assert format_hms(3_723_000) == "01:02:03"
    assert format_balance(1.5) == "+1.50h"
    assert format_balance(-0.25) == "-0.25h"
    assert format_balance_hm(-1.5) == "-1h 30m"
    assert format_balance_hm(0.0) == "+0h 0m"
