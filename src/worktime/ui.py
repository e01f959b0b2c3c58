from __future__ import annotations

import logging
import sys
import tkinter as tk
from datetime import date, datetime, timedelta
from tkinter import messagebox, simpledialog, ttk
from typing import Callable, List, Optional

from . import lifecycle
from .calculations import (
    daily_balance,
    elapsed,
    format_balance_hm,
    format_duration,
    format_hms,
    session_duration,
    sessions_by_date,
    total_balance,
    total_work_time,
)
from .config import AppConfig
from .errors import StateLoadError, WorkTimeError
from .export import FORMATS, export_sessions
from .log import setup_logger
from .models import (
    DATE_KEY_FORMAT,
    NotificationSettings,
    WorkTimeState,
    date_key,
    now as current_instant,
    parse_local_datetime,
)
from .notification import NotificationManager
from .plotter import show_daily_balance
from .reports import (
    calendar_weeks,
    day_detail,
    month_bounds,
    month_calendar,
    monthly_summary,
    shift_month,
    weekly_summary,
    work_patterns,
)
from .storage import StateStore
from .system_tray import SystemTrayManager

logger = logging.getLogger(__name__)

Transition = Callable[[WorkTimeState], WorkTimeState]

RECENT_SESSIONS = 20
DAY_HEADERS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


class WorkTimeApp:
    """Main window. Each action loads the snapshot, applies one engine
    transition and saves the result."""

    def __init__(
        self,
        root: tk.Tk,
        *,
        config: Optional[AppConfig] = None,
        store: Optional[StateStore] = None,
        with_tray: bool = False,
    ) -> None:
        self.root = root
        self.root.title("Work Time Tracker")
        self.root.geometry("640x460")

        self.config = config or AppConfig.from_env()
        self.store = store or StateStore(self.config.state_path)
        self.state: WorkTimeState = self._load()
        self.notifier = NotificationManager(self.store)
        self._tick_job: Optional[str] = None
        self._seconds_to_check = 0

        self.tray_manager: Optional[SystemTrayManager] = None
        if with_tray:
            self._setup_tray()

        self._build_ui()
        self._bind_close()
        self.refresh()
        self._start_tick_loop()

    # ---------------- UI -----------------
    def _build_ui(self) -> None:
        style = ttk.Style(self.root)
        try:
            style.theme_use("clam")
        except tk.TclError:
            pass

        menubar = tk.Menu(self.root)
        timer_menu = tk.Menu(menubar, tearoff=0)
        timer_menu.add_command(label="Start / Stop Timer", command=self.toggle_timer)
        timer_menu.add_command(label="Start at Custom Time...", command=self.start_custom)
        timer_menu.add_command(label="Add Completed Session...", command=self.add_session)
        timer_menu.add_separator()
        timer_menu.add_command(label="Exit", command=self.on_close)
        menubar.add_cascade(label="Timer", menu=timer_menu)

        reports_menu = tk.Menu(menubar, tearoff=0)
        reports_menu.add_command(label="Weekly Summary", command=lambda: self._show_report("Weekly Summary", weekly_summary(self.state, date.today())))
        reports_menu.add_command(label="Monthly Summary", command=lambda: self._show_report("Monthly Summary", monthly_summary(self.state, date.today())))
        reports_menu.add_command(label="Work Patterns", command=lambda: self._show_report("Work Patterns", work_patterns(self.state)))
        reports_menu.add_separator()
        reports_menu.add_command(label="Calendar", command=self.show_calendar)
        reports_menu.add_command(label="Balance Chart (this month)", command=self.show_balance_chart)
        menubar.add_cascade(label="Reports", menu=reports_menu)

        data_menu = tk.Menu(menubar, tearoff=0)
        data_menu.add_command(label="Set Daily Target...", command=self.set_daily_target)
        data_menu.add_command(label="Export...", command=self.export_dialog)
        data_menu.add_separator()
        data_menu.add_command(label="Settings...", command=self.settings_dialog)
        menubar.add_cascade(label="Data", menu=data_menu)
        self.root.config(menu=menubar)

        container = ttk.Frame(self.root, padding=10)
        container.pack(fill=tk.BOTH, expand=True)

        top = ttk.Frame(container)
        top.pack(fill=tk.X)
        self.toggle_btn = ttk.Button(top, text="Start Timer", command=self.toggle_timer, width=16)
        self.toggle_btn.pack(side=tk.LEFT)
        ttk.Button(top, text="Custom Start...", command=self.start_custom).pack(side=tk.LEFT, padx=(8, 0))
        self.status_lbl = ttk.Label(top, text="Timer Stopped")
        self.status_lbl.pack(side=tk.LEFT, padx=(16, 0))

        self.elapsed_lbl = tk.Label(container, text="00:00:00", font=("Consolas", 20, "bold"))
        self.elapsed_lbl.pack(anchor="w", pady=(10, 4))

        summary = ttk.Frame(container)
        summary.pack(fill=tk.X)
        self.total_lbl = ttk.Label(summary, text="Total Work Time: 0h 0m")
        self.total_lbl.pack(anchor="w")
        self.balance_lbl = ttk.Label(summary, text="Balance: +0h 0m")
        self.balance_lbl.pack(anchor="w")
        self.today_lbl = ttk.Label(summary, text="Today: 0h 0m")
        self.today_lbl.pack(anchor="w")

        ttk.Label(container, text="Recent Sessions").pack(anchor="w", pady=(10, 2))
        self.tree = ttk.Treeview(container, columns=("date", "time", "duration"), show="headings", height=8)
        self.tree.heading("date", text="Date")
        self.tree.heading("time", text="Time")
        self.tree.heading("duration", text="Duration")
        self.tree.pack(fill=tk.BOTH, expand=True)
        ttk.Button(container, text="Delete Session", command=self.delete_selected).pack(anchor="e", pady=(6, 0))

    def _bind_close(self) -> None:
        self.root.protocol("WM_DELETE_WINDOW", self.on_close)

    def _setup_tray(self) -> None:
        def on_main(fn: Callable[[], None]) -> Callable[[], None]:
            return lambda: self.root.after(0, fn)

        self.tray_manager = SystemTrayManager(
            on_toggle_window=on_main(self._toggle_window_visibility),
            on_toggle_timer=on_main(self.toggle_timer),
            on_show_reports=on_main(
                lambda: self._show_report("Weekly Summary", weekly_summary(self.state, date.today()))
            ),
            on_exit=on_main(self.on_close),
        )
        if not self.tray_manager.start():
            self.tray_manager = None

    # ---------------- State plumbing -----------------
    def _load(self) -> WorkTimeState:
        try:
            return self.store.load()
        except StateLoadError as e:
            messagebox.showerror("Failed to load work time data", str(e))
            raise

    def _apply(self, transition: Transition, success: Optional[str] = None) -> bool:
        """load -> transition -> save; engine and save errors are shown to the user."""
        try:
            state = self.store.load()
            new_state = transition(state)
        except WorkTimeError as e:
            messagebox.showerror("Work Time", str(e))
            return False
        if new_state is not state:
            try:
                self.store.save(new_state)
            except OSError as e:
                logger.error("Saving state to %s failed: %s", self.store.path, e)
                messagebox.showerror("Failed to save work time data", str(e))
                return False
        self.state = new_state
        self.refresh()
        if success:
            self.status_lbl.config(text=success)
        return True

    # ---------------- Actions -----------------
    def toggle_timer(self) -> None:
        was_running = self.state.is_running
        if self._apply(lifecycle.toggle) and was_running and self.state.sessions:
            last = self.state.sessions[-1]
            self.status_lbl.config(text=f"Timer stopped: {format_duration(session_duration(last))}")

    def start_custom(self) -> None:
        text = simpledialog.askstring(
            "Start Timer with Custom Time", "Start time (YYYY-MM-DD HH:MM or HH:MM):", parent=self.root
        )
        if not text:
            return
        try:
            instant = parse_local_datetime(text)
        except ValueError:
            messagebox.showerror("Invalid start time", f"Could not parse {text!r}")
            return
        self._apply(lambda s: lifecycle.start_at(s, instant), success=f"Started at {instant:%H:%M}")

    def add_session(self) -> None:
        start_text = simpledialog.askstring("Add Session", "Start (YYYY-MM-DD HH:MM):", parent=self.root)
        if not start_text:
            return
        end_text = simpledialog.askstring("Add Session", "End (YYYY-MM-DD HH:MM):", parent=self.root)
        if not end_text:
            return
        try:
            start = parse_local_datetime(start_text)
            end = parse_local_datetime(end_text, today=start.date())
        except ValueError:
            messagebox.showerror("Invalid time", "Use YYYY-MM-DD HH:MM")
            return
        self._apply(lambda s: lifecycle.add_completed_session(s, start, end), success="Session added")

    def delete_selected(self) -> None:
        selected = self.tree.selection()
        if not selected:
            return
        session_id = selected[0]
        if not messagebox.askyesno("Confirm Deletion", "Are you sure you want to delete this session?"):
            return
        self._apply(lambda s: lifecycle.delete_session(s, session_id), success="Session deleted")

    def set_daily_target(self) -> None:
        day = simpledialog.askstring(
            "Daily Target", "Date (YYYY-MM-DD):", initialvalue=date.today().strftime(DATE_KEY_FORMAT), parent=self.root
        )
        if not day:
            return
        hours = simpledialog.askfloat("Daily Target", f"Target hours for {day}:", parent=self.root)
        if hours is None:
            return
        self._apply(lambda s: lifecycle.set_daily_target(s, day.strip(), hours), success=f"Target for {day} saved")

    # ---------------- Dialogs -----------------
    def settings_dialog(self) -> None:
        ns = self.state.notification_settings
        win = tk.Toplevel(self.root)
        win.title("Work Time Tracker Settings")

        default_var = tk.StringVar(value=f"{self.state.default_target_hours:g}")
        start_enabled = tk.BooleanVar(value=ns.enable_start_reminder)
        start_time = tk.StringVar(value=ns.start_reminder_time)
        stop_enabled = tk.BooleanVar(value=ns.enable_stop_reminder)
        stop_after = tk.StringVar(value=f"{ns.stop_after_hours:g}")

        rows = [
            ("Default Daily Target (hours)", ttk.Entry(win, textvariable=default_var, width=8)),
            ("", ttk.Checkbutton(win, text="Enable Start Reminder", variable=start_enabled)),
            ("Start Reminder Time (HH:MM)", ttk.Entry(win, textvariable=start_time, width=8)),
            ("", ttk.Checkbutton(win, text="Enable Stop Reminder", variable=stop_enabled)),
            ("Stop Reminder After (hours)", ttk.Entry(win, textvariable=stop_after, width=8)),
        ]
        for i, (label, widget) in enumerate(rows):
            ttk.Label(win, text=label).grid(row=i, column=0, sticky="w", padx=8, pady=4)
            widget.grid(row=i, column=1, sticky="w", padx=8, pady=4)

        def _save() -> None:
            try:
                default_hours = float(default_var.get())
                stop_hours = float(stop_after.get())
            except ValueError:
                messagebox.showerror("Failed to save settings", "Hours must be numbers", parent=win)
                return
            settings = NotificationSettings(
                enable_start_reminder=start_enabled.get(),
                start_reminder_time=start_time.get(),
                enable_stop_reminder=stop_enabled.get(),
                stop_after_hours=stop_hours,
            )
            if self._apply(
                lambda s: lifecycle.update_settings(s, default_target_hours=default_hours, notification_settings=settings),
                success="Settings saved",
            ):
                win.destroy()

        ttk.Button(win, text="Save Settings", command=_save).grid(row=len(rows), column=1, sticky="e", padx=8, pady=8)

    def export_dialog(self) -> None:
        first, last = month_bounds(date.today())
        win = tk.Toplevel(self.root)
        win.title("Export Work Time Data")
        start_var = tk.StringVar(value=first.strftime(DATE_KEY_FORMAT))
        end_var = tk.StringVar(value=last.strftime(DATE_KEY_FORMAT))
        fmt_var = tk.StringVar(value=FORMATS[0])

        ttk.Label(win, text="Start Date").grid(row=0, column=0, sticky="w", padx=8, pady=4)
        ttk.Entry(win, textvariable=start_var, width=12).grid(row=0, column=1, padx=8, pady=4)
        ttk.Label(win, text="End Date").grid(row=1, column=0, sticky="w", padx=8, pady=4)
        ttk.Entry(win, textvariable=end_var, width=12).grid(row=1, column=1, padx=8, pady=4)
        ttk.Label(win, text="Export Format").grid(row=2, column=0, sticky="w", padx=8, pady=4)
        ttk.Combobox(win, textvariable=fmt_var, values=list(FORMATS), state="readonly", width=8).grid(
            row=2, column=1, padx=8, pady=4
        )

        def _export() -> None:
            try:
                start = datetime.strptime(start_var.get().strip(), DATE_KEY_FORMAT)
                end = datetime.strptime(end_var.get().strip(), DATE_KEY_FORMAT) + timedelta(days=1, milliseconds=-1)
            except ValueError:
                messagebox.showerror("Export failed", "Dates must be YYYY-MM-DD", parent=win)
                return
            try:
                path = export_sessions(self.store.load(), start, end, fmt_var.get(), self.config.export_dir)
            except (OSError, ValueError, WorkTimeError) as e:
                logger.error("Export failed: %s", e)
                messagebox.showerror("Export failed", str(e), parent=win)
                return
            messagebox.showinfo("Export", f"Export completed successfully:\n{path}", parent=win)
            win.destroy()

        ttk.Button(win, text="Export", command=_export).grid(row=3, column=1, sticky="e", padx=8, pady=8)

    def _show_report(self, title: str, markdown: str) -> None:
        win = tk.Toplevel(self.root)
        win.title(title)
        text = tk.Text(win, wrap=tk.NONE, font=("Consolas", 10), width=90, height=30)
        text.insert("1.0", markdown)
        text.config(state=tk.DISABLED)
        text.pack(fill=tk.BOTH, expand=True)

    def show_calendar(self, year: Optional[int] = None, month: Optional[int] = None) -> None:
        today = date.today()
        year = year or today.year
        month = month or today.month
        win = tk.Toplevel(self.root)
        win.title(f"{date(year, month, 1):%B %Y}")

        nav = ttk.Frame(win, padding=4)
        nav.grid(row=0, column=0, columnspan=7, sticky="ew")

        def _go(delta: int) -> None:
            win.destroy()
            self.show_calendar(*shift_month(year, month, delta))

        def _today() -> None:
            win.destroy()
            self.show_calendar(today.year, today.month)

        ttk.Button(nav, text="<", width=3, command=lambda: _go(-1)).pack(side=tk.LEFT)
        ttk.Button(nav, text="Today", command=_today).pack(side=tk.LEFT, padx=(4, 0))
        ttk.Label(nav, text=f"{date(year, month, 1):%B %Y}").pack(side=tk.LEFT, expand=True)
        ttk.Button(nav, text=">", width=3, command=lambda: _go(1)).pack(side=tk.RIGHT)

        for col, name in enumerate(DAY_HEADERS):
            ttk.Label(win, text=name, anchor="center").grid(row=1, column=col, padx=2)

        weeks = calendar_weeks(month_calendar(self.state, year, month, today))
        for r, week in enumerate(weeks, start=2):
            for c, day in enumerate(week):
                if day is None:
                    continue
                if day.balance is None:
                    bg = "#dddddd"
                elif day.balance >= 0:
                    bg = "#2ecc71"
                else:
                    bg = "#e74c3c"
                label = f"{day.date.day}\n{format_duration(day.worked_ms) if day.worked_ms else ''}"
                cell = tk.Label(win, text=label, width=8, height=3, bg=bg, relief=tk.RIDGE if day.is_today else tk.FLAT)
                cell.grid(row=r, column=c, padx=1, pady=1)
                cell.bind("<Button-1>", lambda _e, d=day.date: self._show_day(d))

    def _show_day(self, day: date) -> None:
        detail = day_detail(self.state, day)
        lines = [
            f"# {day:%A, %B %d, %Y}",
            "",
            f"- **Total Work Time:** {format_duration(detail.worked_ms)}",
            f"- **Target:** {detail.target_hours:g}h",
            f"- **Balance:** {format_balance_hm(detail.balance)}",
            "",
        ]
        for s in detail.sessions:
            end = f"{s.end_time:%H:%M}" if s.end_time else "..."
            lines.append(f"- {s.start_time:%H:%M} - {end} ({format_duration(session_duration(s))})")
        self._show_report(detail.date, "\n".join(lines))

    def show_balance_chart(self) -> None:
        start, end = month_bounds(date.today())
        show_daily_balance(self.state, start, end)

    # ---------------- Refresh & tick -----------------
    def refresh(self) -> None:
        state = self.state
        running = state.current_session is not None
        self.toggle_btn.config(text="Stop Timer" if running else "Start Timer")
        if state.current_session is not None:
            self.status_lbl.config(text=f"Timer Running since {state.current_session.start_time:%H:%M}")
        else:
            self.status_lbl.config(text="Timer Stopped")

        balance = total_balance(state.sessions, state.daily_targets, state.default_target_hours)
        self.total_lbl.config(text=f"Total Work Time: {format_duration(total_work_time(state.sessions))}")
        self.balance_lbl.config(text=f"Balance: {format_balance_hm(balance)}")
        self._render_sessions()
        self._update_live()

        if self.tray_manager is not None:
            started = f"{state.current_session.start_time:%H:%M}" if state.current_session else ""
            self.tray_manager.update_status(running=running, started_at=started)

    def _render_sessions(self) -> None:
        self.tree.delete(*self.tree.get_children())
        recent = list(reversed(self.state.sessions))[:RECENT_SESSIONS]
        for s in recent:
            end = f"{s.end_time:%H:%M}" if s.end_time else "..."
            self.tree.insert(
                "", tk.END, iid=s.id,
                values=(date_key(s.start_time), f"{s.start_time:%H:%M} - {end}", format_duration(session_duration(s))),
            )

    def _update_live(self) -> None:
        state = self.state
        now = current_instant()
        today = date_key(now)
        live_ms = elapsed(state.current_session, now) if state.current_session else 0
        self.elapsed_lbl.config(text=format_hms(live_ms))

        today_ms = sum(session_duration(s) for s in sessions_by_date(state.sessions).get(today, [])) + live_ms
        self.today_lbl.config(text=f"Today: {format_duration(today_ms)}")

        if self.tray_manager is not None:
            balances = daily_balance(state.sessions, state.daily_targets, state.default_target_hours)
            self.tray_manager.update_totals(
                today_worked_ms=today_ms,
                total_balance_h=sum(balances.values()),
                today_target_met=balances.get(today, -1.0) >= 0,
            )

    def _tick_loop(self) -> None:
        self._update_live()
        self._seconds_to_check -= 1
        if self._seconds_to_check <= 0:
            self._seconds_to_check = self.config.check_interval_s
            self.notifier.check()
        self._tick_job = self.root.after(1000, self._tick_loop)

    def _start_tick_loop(self) -> None:
        if self._tick_job is None:
            self._tick_job = self.root.after(1000, self._tick_loop)

    def _stop_tick_loop(self) -> None:
        if self._tick_job is not None:
            self.root.after_cancel(self._tick_job)
            self._tick_job = None

    def _toggle_window_visibility(self) -> None:
        if self.root.state() == "withdrawn":
            self.root.deiconify()
            visible = True
        else:
            self.root.withdraw()
            visible = False
        if self.tray_manager is not None:
            self.tray_manager.set_window_visibility(visible)

    def on_close(self) -> None:
        self._stop_tick_loop()
        if self.tray_manager is not None:
            self.tray_manager.stop()
        self.root.destroy()


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    config = AppConfig.from_env()
    setup_logger(config.log_file, config.log_level)
    root = tk.Tk()
    try:
        _app = WorkTimeApp(root, config=config, with_tray=any(a in ("--tray", "-t") for a in args))
    except StateLoadError:
        root.destroy()
        return 1
    root.mainloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
