import json
from dataclasses import replace
from datetime import datetime

import pytest

from worktime import lifecycle
from worktime.errors import StateLoadError
from worktime.models import DailyTarget, NotificationSettings, WorkSession, initial_state
from worktime.storage import STATE_KEY, StateStore, parse_instant, state_from_dict, state_to_dict


@pytest.fixture
def store(tmp_path):
    return StateStore(str(tmp_path / "state.json"))


def _populated_state():
    return replace(
        initial_state(),
        sessions=(
            WorkSession("a", datetime(2024, 1, 1, 9, 0, 0, 123000), datetime(2024, 1, 1, 12, 0, 0, 456000)),
            WorkSession("b", datetime(2024, 1, 2, 13, 0), datetime(2024, 1, 2, 17, 30)),
        ),
        daily_targets=(DailyTarget("2024-01-02", 6.5),),
        current_session=WorkSession("c", datetime(2024, 1, 3, 8, 15, 30, 999000)),
        default_target_hours=7.5,
        notification_settings=NotificationSettings(
            enable_start_reminder=False, start_reminder_time="07:45", enable_stop_reminder=True, stop_after_hours=9.0
        ),
    )


def test_load_without_snapshot_returns_initial_state(store):
    state = store.load()
    assert state == initial_state()
    assert state.default_target_hours == 8
    assert state.notification_settings.start_reminder_time == "08:00"


def test_save_then_load_round_trips_exactly(store):
    state = _populated_state()
    store.save(state)
    assert store.load() == state


def test_save_of_loaded_state_is_a_fixed_point(store):
    store.save(_populated_state())
    first = store.load()
    store.save(first)
    assert store.load() == first


def test_snapshot_layout_uses_fixed_key_and_nulls(store):
    state = lifecycle.start(initial_state(), datetime(2024, 1, 1, 9, 0), new_id=lambda: "x")
    store.save(state)
    with open(store.path, encoding="utf-8") as f:
        doc = json.load(f)
    raw = doc[STATE_KEY]
    assert raw["currentSession"] == {"id": "x", "startTime": "2024-01-01T09:00:00.000", "endTime": None}
    assert raw["sessions"] == []
    assert raw["defaultTargetHours"] == 8.0


def test_unparseable_snapshot_fails_whole_load(store):
    with open(store.path, "w", encoding="utf-8") as f:
        f.write("{not json")
    with pytest.raises(StateLoadError) as exc:
        store.load()
    assert exc.value.path == store.path


@pytest.mark.parametrize("content", ["[1, 2, 3]", "\"text\"", "42", "null", '{"otherApp": {}}'])
def test_non_snapshot_documents_fail_whole_load(store, content):
    with open(store.path, "w", encoding="utf-8") as f:
        f.write(content)
    with pytest.raises(StateLoadError):
        store.load()
    with open(store.path, encoding="utf-8") as f:
        assert f.read() == content


@pytest.mark.parametrize("content", ["{}", '{"workTimeState": null}'])
def test_empty_snapshot_loads_initial_state(store, content):
    with open(store.path, "w", encoding="utf-8") as f:
        f.write(content)
    assert store.load() == initial_state()


def test_malformed_instant_fails_whole_load(store):
    doc = {STATE_KEY: {"sessions": [{"id": "a", "startTime": "yesterday", "endTime": None}]}}
    with open(store.path, "w", encoding="utf-8") as f:
        json.dump(doc, f)
    with pytest.raises(StateLoadError):
        store.load()


def test_duplicate_target_dates_collapse_first_wins():
    raw = {
        "dailyTargets": [
            {"date": "2024-01-01", "targetHours": 4},
            {"date": "2024-01-01", "targetHours": 6},
        ]
    }
    assert state_from_dict(raw).daily_targets == (DailyTarget("2024-01-01", 4.0),)


def test_missing_fields_fall_back_to_defaults():
    state = state_from_dict({"sessions": []})
    assert state == initial_state()


def test_utc_instants_are_read_as_local_time():
    utc = parse_instant("2024-01-01T09:00:00.000Z")
    expected = datetime.fromisoformat("2024-01-01T09:00:00+00:00").astimezone().replace(tzinfo=None)
    assert utc == expected


def test_state_to_dict_keeps_millisecond_precision():
    raw = state_to_dict(_populated_state())
    assert raw["sessions"][0]["startTime"] == "2024-01-01T09:00:00.123"
    assert raw["currentSession"]["endTime"] is None
