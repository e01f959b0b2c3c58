"""
Start/stop reminders for the work timer.

check_notifications() is a pure function over a state snapshot. The
NotificationManager is the scheduled caller: on every check it re-reads the
snapshot from the store (never writes it), computes reminders and sends them
as desktop notifications.

Usage:

    from worktime.notification import NotificationManager
    from worktime.storage import StateStore

    nm = NotificationManager(StateStore())
    nm.start(interval_s=60)   # background thread
    ...
    nm.stop()
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .calculations import MS_PER_HOUR, elapsed
from .errors import StateLoadError
from .models import WorkTimeState, now as current_instant
from .storage import StateStore
from . import notifier as base_notifier

logger = logging.getLogger(__name__)

START_REMINDER = "start"
STOP_REMINDER = "stop"
START_WINDOW_MINUTES = 5


@dataclass(frozen=True)
class Reminder:
    kind: str  # "start" | "stop"
    title: str
    message: str


def check_notifications(state: WorkTimeState, now: datetime) -> List[Reminder]:
    """Reminders due at `now`.

    - start: enabled, timer idle, same hour as the reminder time and within
      5 minutes of it.
    - stop: enabled, timer running for at least stop_after_hours.
    """
    settings = state.notification_settings
    reminders: List[Reminder] = []

    if settings.enable_start_reminder and state.current_session is None:
        try:
            hour, minute = settings.start_reminder_clock()
        except ValueError:
            logger.warning("Ignoring malformed start reminder time %r", settings.start_reminder_time)
        else:
            if now.hour == hour and abs(now.minute - minute) <= START_WINDOW_MINUTES:
                reminders.append(
                    Reminder(START_REMINDER, "Time to start working", "Don't forget to start your work timer")
                )

    current = state.current_session
    if settings.enable_stop_reminder and current is not None:
        hours = elapsed(current, now) / MS_PER_HOUR
        if hours >= settings.stop_after_hours:
            reminders.append(
                Reminder(STOP_REMINDER, "Time to stop working", f"You've been working for {hours:.1f} hours")
            )
    return reminders


class NotificationManager:
    """Periodically checks the persisted state and dispatches due reminders.

    The same reminder kind is not re-sent within `min_interval_s`.
    """

    def __init__(
        self,
        store: StateStore,
        send: Optional[Callable[[str, str], None]] = None,
        min_interval_s: int = 15 * 60,
    ) -> None:
        self.store = store
        self._send = send
        self.min_interval_s = min_interval_s
        self._last_sent: Dict[str, datetime] = {}
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    # -------- Public API --------
    def check(self, now: Optional[datetime] = None) -> List[Reminder]:
        """Run one check; returns the reminders that were dispatched."""
        now = now or current_instant()
        try:
            state = self.store.load()
        except StateLoadError as e:
            logger.error("Notification check skipped: %s", e)
            return []

        sent: List[Reminder] = []
        with self._lock:
            for reminder in check_notifications(state, now):
                last = self._last_sent.get(reminder.kind)
                if last is not None and (now - last).total_seconds() < self.min_interval_s:
                    continue
                self._dispatch(reminder)
                self._last_sent[reminder.kind] = now
                sent.append(reminder)
        return sent

    def start(self, interval_s: int = 60) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, args=(interval_s,), name="WorkTime-Reminders", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    # -------- Internals --------
    def _run(self, interval_s: int) -> None:
        while not self._stop_event.is_set():
            self.check()
            self._stop_event.wait(timeout=max(1, interval_s))

    def _dispatch(self, reminder: Reminder) -> None:
        logger.info("Reminder: %s - %s", reminder.title, reminder.message)
        if self._send is not None:
            self._send(reminder.title, reminder.message)
        else:
            base_notifier.notify(reminder.title, reminder.message, timeout=6)


__all__ = [
    "NotificationManager",
    "Reminder",
    "START_REMINDER",
    "STOP_REMINDER",
    "check_notifications",
]
