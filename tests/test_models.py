from datetime import date, datetime, timezone

import pytest

from worktime.models import (
    NotificationSettings,
    WorkSession,
    WorkTimeState,
    date_key,
    initial_state,
    parse_clock,
    parse_local_datetime,
    truncate_to_millis,
)


def test_truncate_to_millis_drops_microseconds():
    dt = datetime(2024, 1, 15, 9, 0, 0, 123456)
    assert truncate_to_millis(dt).microsecond == 123000


def test_date_key_naive_is_local_calendar_date():
    assert date_key(datetime(2024, 1, 15, 23, 59)) == "2024-01-15"


def test_date_key_aware_converts_to_local():
    aware = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
    assert date_key(aware) == aware.astimezone().strftime("%Y-%m-%d")


@pytest.mark.parametrize("value,expected", [("08:00", (8, 0)), (" 17:45 ", (17, 45)), ("0:05", (0, 5))])
def test_parse_clock(value, expected):
    assert parse_clock(value) == expected


@pytest.mark.parametrize("value", ["8", "24:00", "12:60", "ab:cd", "1:2:3"])
def test_parse_clock_rejects(value):
    with pytest.raises(ValueError):
        parse_clock(value)


def test_parse_local_datetime_full_forms():
    assert parse_local_datetime("2024-01-15 09:30") == datetime(2024, 1, 15, 9, 30)
    assert parse_local_datetime("2024-01-15T09:30:15") == datetime(2024, 1, 15, 9, 30, 15)


def test_parse_local_datetime_clock_only_uses_today():
    assert parse_local_datetime("14:05", today=date(2024, 2, 1)) == datetime(2024, 2, 1, 14, 5)


def test_parse_local_datetime_rejects_garbage():
    with pytest.raises(ValueError):
        parse_local_datetime("yesterday")


def test_initial_state_defaults():
    state = initial_state()
    assert state.sessions == ()
    assert state.daily_targets == ()
    assert state.current_session is None
    assert state.default_target_hours == 8.0
    assert state.notification_settings == NotificationSettings(True, "08:00", True, 8.0)
    assert not state.is_running


def test_session_with_end_returns_new_value():
    running = WorkSession("a", datetime(2024, 1, 15, 9))
    done = running.with_end(datetime(2024, 1, 15, 10))
    assert running.is_running
    assert not done.is_running
    assert done.id == "a"


def test_state_is_immutable():
    state = WorkTimeState()
    with pytest.raises(AttributeError):
        state.default_target_hours = 7.0  # type: ignore[misc]
