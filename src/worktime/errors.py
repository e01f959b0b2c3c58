from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from .models import WorkSession


class WorkTimeError(Exception):
    """Base class for rejected timer and settings operations."""


class AlreadyRunningError(WorkTimeError):
    def __init__(self, current_session: WorkSession) -> None:
        self.current_session = current_session
        super().__init__(
            f"Timer already running since {current_session.start_time:%Y-%m-%d %H:%M:%S}; stop it first"
        )


class NotRunningError(WorkTimeError):
    def __init__(self) -> None:
        super().__init__("No timer running; start a timer first")


class FutureStartTimeError(WorkTimeError):
    def __init__(self, start: datetime, now: datetime) -> None:
        self.start = start
        self.now = now
        super().__init__(f"Start time {start:%Y-%m-%d %H:%M:%S} cannot be in the future")


class InvalidRangeError(WorkTimeError):
    def __init__(self, start: datetime, end: datetime) -> None:
        self.start = start
        self.end = end
        super().__init__(
            f"End time {end:%Y-%m-%d %H:%M:%S} must be after start time {start:%Y-%m-%d %H:%M:%S}"
        )


class FutureEndTimeError(WorkTimeError):
    def __init__(self, end: datetime, now: datetime) -> None:
        self.end = end
        self.now = now
        super().__init__(f"End time {end:%Y-%m-%d %H:%M:%S} cannot be in the future")


class InvalidSettingError(WorkTimeError):
    def __init__(self, field: str, value: Any, reason: str = "must be a positive number") -> None:
        self.field = field
        self.value = value
        super().__init__(f"{field} {reason} (got {value!r})")


class StateLoadError(WorkTimeError):
    """Raised by the store when a snapshot cannot be parsed; no partial state is returned."""

    def __init__(self, path: str, reason: str, cause: Optional[BaseException] = None) -> None:
        self.path = path
        self.reason = reason
        self.cause = cause
        super().__init__(f"Failed to load work time data from {path}: {reason}")


__all__ = [
    "AlreadyRunningError",
    "FutureEndTimeError",
    "FutureStartTimeError",
    "InvalidRangeError",
    "InvalidSettingError",
    "NotRunningError",
    "StateLoadError",
    "WorkTimeError",
]
