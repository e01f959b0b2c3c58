"""
System tray integration for the work timer.

- Icon color reflects the timer: green=running, gray=idle, blue=idle with
  today's target reached
- Right-click menu: show/hide window, start/stop timer, reports, exit
- Tooltip with today's worked time and the overall balance

Usage:
    from worktime.system_tray import SystemTrayManager

    tray = SystemTrayManager(on_toggle_window=..., on_toggle_timer=..., on_exit=...)
    tray.start()
    tray.update_status(running=True, started_at="09:00")
    tray.update_totals(today_worked_ms=3_600_000, total_balance_h=-1.5)
    tray.stop()
"""

from __future__ import annotations

import atexit
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .calculations import format_balance_hm, format_duration

try:
    import pystray  # type: ignore
    from pystray import Menu, MenuItem  # type: ignore
    pystray_available = True
except Exception:  # pragma: no cover - no tray backend on this platform
    pystray = None  # type: ignore[assignment]
    Menu = None  # type: ignore[assignment]
    MenuItem = None  # type: ignore[assignment]
    pystray_available = False

try:
    from PIL import Image, ImageDraw  # type: ignore
except Exception:  # pragma: no cover - Pillow missing or broken
    Image = None  # type: ignore[assignment]
    ImageDraw = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


# ------------------------ Configuration & State ------------------------

@dataclass
class TrayState:
    running: bool = False
    started_at: str = ""  # HH:MM of the running session
    window_visible: bool = True
    today_worked_ms: int = 0
    today_target_met: bool = False
    total_balance_h: float = 0.0
    last_update_ms: int = 0


@dataclass
class TrayConfig:
    icon_size: int = 64
    icon_padding: int = 8

    # Colors (RGBA tuples)
    color_running: tuple[int, int, int, int] = (46, 204, 113, 255)     # Green
    color_idle: tuple[int, int, int, int] = (127, 140, 141, 255)       # Gray
    color_target_met: tuple[int, int, int, int] = (52, 152, 219, 255)  # Blue

    tooltip_template: str = "Work Time: {status} | Today {today} | Balance {balance}"

    # Menu refresh rate (seconds)
    stats_refresh_interval: float = 5.0


# ------------------------ Icon Generation ------------------------

class TrayIconGenerator:
    """Generates tray icons for the timer states"""

    def __init__(self, config: TrayConfig) -> None:
        self.config = config
        self._icon_cache: Dict[str, Any] = {}

    def create_icon(self, state: TrayState) -> Optional[Any]:
        """Create a PIL Image icon: a solid circle, with a white dot while running,
        drawn semi-transparent when the main window is hidden."""
        if Image is None or ImageDraw is None:
            return None

        color = self._get_state_color(state)
        cache_key = f"{color}_{state.running}_{state.window_visible}"
        if cache_key in self._icon_cache:
            return self._icon_cache[cache_key]

        size = self.config.icon_size
        img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)

        padding = self.config.icon_padding
        if not state.window_visible:
            color = (*color[:3], int(color[3] * 0.7))
        draw.ellipse((padding, padding, size - padding, size - padding), fill=color)

        if state.running:
            dot = size // 6
            x = size - dot - 2
            draw.ellipse((x, 2, x + dot, 2 + dot), fill=(255, 255, 255, 255))

        self._icon_cache[cache_key] = img
        return img

    def _get_state_color(self, state: TrayState) -> tuple[int, int, int, int]:
        if state.running:
            return self.config.color_running
        if state.today_target_met:
            return self.config.color_target_met
        return self.config.color_idle

    def clear_cache(self) -> None:
        self._icon_cache.clear()


# ------------------------ System Tray Manager ------------------------

class SystemTrayManager:
    """Tray icon, tooltip and menu for the timer, run on its own thread."""

    def __init__(
        self,
        on_toggle_window: Optional[Callable[[], None]] = None,
        on_toggle_timer: Optional[Callable[[], None]] = None,
        on_show_reports: Optional[Callable[[], None]] = None,
        on_exit: Optional[Callable[[], None]] = None,
        config: Optional[TrayConfig] = None,
    ) -> None:
        self.config = config or TrayConfig()
        self.state = TrayState()
        self.icon_generator = TrayIconGenerator(self.config)

        # Callbacks
        self.on_toggle_window = on_toggle_window
        self.on_toggle_timer = on_toggle_timer
        self.on_show_reports = on_show_reports
        self.on_exit = on_exit

        # Threading
        self._tray_icon: Optional[Any] = None
        self._tray_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._update_lock = threading.Lock()

        self._last_menu_update = 0.0

        atexit.register(self._cleanup)

    # -------------------- Public API --------------------

    def start(self) -> bool:
        """Start the tray icon; False when pystray/Pillow are unavailable."""
        if not self.dependencies_available():
            logger.warning("System tray unavailable on this platform")
            return False

        if self._tray_thread and self._tray_thread.is_alive():
            return True

        self._stop_event.clear()
        self._tray_thread = threading.Thread(target=self._run_tray, name="WorkTime-SystemTray", daemon=True)
        self._tray_thread.start()
        # Brief wait to ensure tray initializes
        time.sleep(0.1)
        return True

    def stop(self) -> None:
        self._stop_event.set()
        if self._tray_icon is not None:
            try:
                self._tray_icon.stop()
            except Exception as e:
                logger.debug("Tray stop error: %s", e)
        if self._tray_thread and self._tray_thread.is_alive():
            self._tray_thread.join(timeout=3.0)
        self._cleanup()

    def update_status(self, running: Optional[bool] = None, started_at: Optional[str] = None) -> None:
        with self._update_lock:
            changed = False
            if running is not None and self.state.running != running:
                self.state.running = running
                changed = True
            if started_at is not None:
                self.state.started_at = started_at
            self.state.last_update_ms = int(time.time() * 1000)
            if changed:
                self._update_icon_async()
                self._update_menu_async(force=True)
            self._update_tooltip_async()

    def update_totals(self, today_worked_ms: int, total_balance_h: float, today_target_met: bool = False) -> None:
        with self._update_lock:
            met_changed = self.state.today_target_met != today_target_met
            self.state.today_worked_ms = today_worked_ms
            self.state.total_balance_h = total_balance_h
            self.state.today_target_met = today_target_met
            if met_changed:
                self._update_icon_async()
            self._update_tooltip_async()
            self._update_menu_async()

    def set_window_visibility(self, visible: bool) -> None:
        with self._update_lock:
            if self.state.window_visible != visible:
                self.state.window_visible = visible
                self._update_icon_async()

    # -------------------- Internal Implementation --------------------

    def _run_tray(self) -> None:
        try:
            if pystray is not None:
                self._tray_icon = pystray.Icon(
                    name="WorkTime",
                    icon=self.icon_generator.create_icon(self.state),
                    title=self._generate_tooltip(),
                    menu=self._create_menu(),
                )
                self._tray_icon.run()
        except Exception as e:
            logger.error("Tray error: %s", e)
        finally:
            self._tray_icon = None

    def _create_menu(self) -> Any:
        if Menu is None or MenuItem is None:
            return None
        timer_label = "Stop Timer" if self.state.running else "Start Timer"
        window_label = "Hide Window" if self.state.window_visible else "Show Window"
        return Menu(
            MenuItem(text=window_label, action=self._menu_toggle_window, default=True),
            MenuItem(text=timer_label, action=self._menu_toggle_timer),
            Menu.SEPARATOR,
            MenuItem(text="Reports", action=self._menu_show_reports),
            MenuItem(text=self._generate_stats_text(), action=None, enabled=False),
            Menu.SEPARATOR,
            MenuItem(text="Exit", action=self._menu_exit),
        )

    def _generate_tooltip(self) -> str:
        if self.state.running:
            status = f"Running since {self.state.started_at}" if self.state.started_at else "Running"
        else:
            status = "Stopped"
        return self.config.tooltip_template.format(
            status=status,
            today=format_duration(self.state.today_worked_ms),
            balance=format_balance_hm(self.state.total_balance_h),
        )

    def _generate_stats_text(self) -> str:
        if self.state.today_worked_ms == 0 and not self.state.running:
            return "No work logged today"
        return f"Today: {format_duration(self.state.today_worked_ms)}"

    # -------------------- Event Handlers --------------------

    def _invoke(self, callback: Optional[Callable[[], None]], label: str) -> None:
        if callback is None:
            return
        try:
            callback()
        except Exception as e:
            logger.error("Tray %s error: %s", label, e)

    def _menu_toggle_window(self, icon: Any, item: Any) -> None:
        self._invoke(self.on_toggle_window, "window toggle")

    def _menu_toggle_timer(self, icon: Any, item: Any) -> None:
        self._invoke(self.on_toggle_timer, "timer toggle")

    def _menu_show_reports(self, icon: Any, item: Any) -> None:
        self._invoke(self.on_show_reports, "reports")

    def _menu_exit(self, icon: Any, item: Any) -> None:
        self._invoke(self.on_exit, "exit")
        self.stop()

    # -------------------- Async Updates --------------------

    def _update_icon_async(self) -> None:
        if self._tray_icon is None:
            return
        try:
            new_icon = self.icon_generator.create_icon(self.state)
            if new_icon:
                self._tray_icon.icon = new_icon
        except Exception as e:
            logger.debug("Tray icon update error: %s", e)

    def _update_tooltip_async(self) -> None:
        if self._tray_icon is None:
            return
        try:
            self._tray_icon.title = self._generate_tooltip()
        except Exception as e:
            logger.debug("Tray tooltip update error: %s", e)

    def _update_menu_async(self, force: bool = False) -> None:
        """Rebuild the menu; rate-limited unless forced."""
        if self._tray_icon is None:
            return
        now = time.time()
        if not force and now - self._last_menu_update < self.config.stats_refresh_interval:
            return
        try:
            new_menu = self._create_menu()
            if new_menu:
                self._tray_icon.menu = new_menu
                self._last_menu_update = now
        except Exception as e:
            logger.debug("Tray menu update error: %s", e)

    # -------------------- Cleanup --------------------

    def _cleanup(self) -> None:
        self.icon_generator.clear_cache()
        self._tray_icon = None

    @property
    def is_running(self) -> bool:
        return (
            self._tray_thread is not None
            and self._tray_thread.is_alive()
            and not self._stop_event.is_set()
        )

    @staticmethod
    def dependencies_available() -> bool:
        return pystray_available and Image is not None


__all__ = [
    "SystemTrayManager",
    "TrayConfig",
    "TrayState",
    "TrayIconGenerator",
]
