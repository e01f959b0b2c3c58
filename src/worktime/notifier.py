from __future__ import annotations

import logging
import threading

from plyer import notification as plyer_notification  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)

APP_NAME = "Work Time"


def notify(title: str, message: str, timeout: int = 5) -> None:
    """Send a desktop notification in a non-blocking way."""
    def _do():
        try:
            notify_func = getattr(plyer_notification, "notify", None)
            if callable(notify_func):
                notify_func(title=title, message=message, timeout=timeout, app_name=APP_NAME)  # type: ignore[no-untyped-call]
            else:
                logger.warning("Notification backend unavailable: %s - %s", title, message)
        except Exception as e:
            # Platforms without a notification backend must not stop the timer
            logger.warning("Notification error (%s): %s - %s", e, title, message)

    t = threading.Thread(target=_do, name="WorkTime-Notify", daemon=True)
    t.start()
