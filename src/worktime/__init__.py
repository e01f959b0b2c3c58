"""Personal work-time tracker: sessions, daily targets and balances."""

from .errors import (
    AlreadyRunningError,
    FutureEndTimeError,
    FutureStartTimeError,
    InvalidRangeError,
    InvalidSettingError,
    NotRunningError,
    StateLoadError,
    WorkTimeError,
)
from .models import (
    DailyTarget,
    NotificationSettings,
    WorkSession,
    WorkTimeState,
    initial_state,
)

__version__ = "0.1.0"

__all__ = [
    "AlreadyRunningError",
    "DailyTarget",
    "FutureEndTimeError",
    "FutureStartTimeError",
    "InvalidRangeError",
    "InvalidSettingError",
    "NotRunningError",
    "NotificationSettings",
    "StateLoadError",
    "WorkSession",
    "WorkTimeError",
    "WorkTimeState",
    "initial_state",
]
