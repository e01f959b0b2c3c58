"""
JSON snapshot persistence for the work-time state.

The whole WorkTimeState is stored as one document under a fixed key:

{
  "workTimeState": {
    "sessions": [{"id": "uuid", "startTime": "2024-01-01T09:00:00.000", "endTime": "2024-01-01T12:00:00.000"}],
    "dailyTargets": [{"date": "2024-01-01", "targetHours": 6}],
    "currentSession": null,
    "defaultTargetHours": 8,
    "notificationSettings": {"enableStartReminder": true, "startReminderTime": "08:00",
                             "enableStopReminder": true, "stopAfterHours": 8}
  }
}

Writes are atomic (temp file + replace). There is no locking or versioning;
the last save wins. A snapshot that cannot be parsed fails the whole load.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import AppConfig
from .errors import StateLoadError
from .models import (
    DailyTarget,
    NotificationSettings,
    WorkSession,
    WorkTimeState,
    initial_state,
    to_local_instant,
)

logger = logging.getLogger(__name__)

STATE_KEY = "workTimeState"


# ---------------- Instants ----------------


def format_instant(dt: datetime) -> str:
    return dt.isoformat(timespec="milliseconds")


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant; UTC ("Z") values are converted to local wall time."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_local_instant(datetime.fromisoformat(text))


# ---------------- Dict conversion ----------------


def _session_to_dict(s: WorkSession) -> Dict[str, Any]:
    return {
        "id": s.id,
        "startTime": format_instant(s.start_time),
        "endTime": format_instant(s.end_time) if s.end_time is not None else None,
    }


def _session_from_dict(raw: Dict[str, Any]) -> WorkSession:
    end = raw.get("endTime")
    return WorkSession(
        id=str(raw["id"]),
        start_time=parse_instant(raw["startTime"]),
        end_time=parse_instant(end) if end else None,
    )


def state_to_dict(state: WorkTimeState) -> Dict[str, Any]:
    ns = state.notification_settings
    return {
        "sessions": [_session_to_dict(s) for s in state.sessions],
        "dailyTargets": [{"date": t.date, "targetHours": t.target_hours} for t in state.daily_targets],
        "currentSession": _session_to_dict(state.current_session) if state.current_session else None,
        "defaultTargetHours": state.default_target_hours,
        "notificationSettings": {
            "enableStartReminder": ns.enable_start_reminder,
            "startReminderTime": ns.start_reminder_time,
            "enableStopReminder": ns.enable_stop_reminder,
            "stopAfterHours": ns.stop_after_hours,
        },
    }


def state_from_dict(raw: Dict[str, Any]) -> WorkTimeState:
    """Build a state from its dict form. Raises KeyError/TypeError/ValueError on malformed data."""
    defaults = initial_state()
    default_ns = defaults.notification_settings

    sessions = tuple(_session_from_dict(s) for s in raw.get("sessions") or [])

    targets: List[DailyTarget] = []
    seen: set[str] = set()
    for t in raw.get("dailyTargets") or []:
        day = str(t["date"])
        if day in seen:
            continue  # first entry for a date wins
        seen.add(day)
        targets.append(DailyTarget(date=day, target_hours=float(t["targetHours"])))

    current_raw = raw.get("currentSession")
    current: Optional[WorkSession] = None
    if current_raw:
        # a running session never carries an end time
        current = WorkSession(id=str(current_raw["id"]), start_time=parse_instant(current_raw["startTime"]))

    ns_raw = raw.get("notificationSettings") or {}
    ns = NotificationSettings(
        enable_start_reminder=bool(ns_raw.get("enableStartReminder", default_ns.enable_start_reminder)),
        start_reminder_time=str(ns_raw.get("startReminderTime", default_ns.start_reminder_time)),
        enable_stop_reminder=bool(ns_raw.get("enableStopReminder", default_ns.enable_stop_reminder)),
        stop_after_hours=float(ns_raw.get("stopAfterHours", default_ns.stop_after_hours)),
    )

    return WorkTimeState(
        sessions=sessions,
        daily_targets=tuple(targets),
        current_session=current,
        default_target_hours=float(raw.get("defaultTargetHours", defaults.default_target_hours)),
        notification_settings=ns,
    )


# ---------------- Store ----------------


class StateStore:
    """Loads and saves the full state snapshot as a single JSON document."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or AppConfig.from_env().state_path

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def load(self) -> WorkTimeState:
        if not self.exists():
            logger.info("No snapshot at %s, using initial state", self.path)
            return initial_state()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                doc = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Unreadable snapshot %s: %s", self.path, e)
            raise StateLoadError(self.path, str(e), e) from e

        if not isinstance(doc, dict):
            raise StateLoadError(self.path, "snapshot is not a JSON object")
        if STATE_KEY not in doc and doc:
            raise StateLoadError(self.path, f"no '{STATE_KEY}' entry in snapshot")
        raw = doc.get(STATE_KEY)
        if raw is None:
            return initial_state()
        if not isinstance(raw, dict):
            raise StateLoadError(self.path, f"'{STATE_KEY}' is not an object")
        try:
            state = state_from_dict(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error("Malformed snapshot %s: %r", self.path, e)
            raise StateLoadError(self.path, f"malformed snapshot: {e!r}", e) from e
        logger.debug("Loaded %d sessions from %s", len(state.sessions), self.path)
        return state

    def save(self, state: WorkTimeState) -> None:
        # Atomic write: write to temp and replace
        out_dir = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(out_dir, exist_ok=True)
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump({STATE_KEY: state_to_dict(state)}, f, indent=2, ensure_ascii=False)
        os.replace(tmp, self.path)
        logger.debug("Saved %d sessions to %s", len(state.sessions), self.path)


__all__ = [
    "STATE_KEY",
    "StateStore",
    "format_instant",
    "parse_instant",
    "state_from_dict",
    "state_to_dict",
]
