"""
CSV/JSON export of completed sessions for a date range.

Usage:
    from worktime.export import export_sessions
    path = export_sessions(state, start, end, "csv")

Both formats carry, per session: date, local start/end time, duration in
hours (2 decimals) and duration in minutes (rounded to the nearest integer).
"""

from __future__ import annotations

import csv
import io
import json
import logging
import os
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .calculations import MS_PER_HOUR, MS_PER_MINUTE, session_duration
from .config import AppConfig
from .models import WorkSession, WorkTimeState, date_key

logger = logging.getLogger(__name__)

CSV_HEADER = ["Date", "Start Time", "End Time", "Duration (hours)", "Duration (minutes)"]
FORMATS = ("csv", "json")


def filter_sessions_for_export(sessions: Iterable[WorkSession], start: datetime, end: datetime) -> List[WorkSession]:
    """Completed sessions lying entirely inside [start, end]."""
    return [s for s in sessions if s.end_time is not None and s.start_time >= start and s.end_time <= end]


def _clock(dt: datetime) -> str:
    return dt.strftime("%H:%M:%S")


def duration_hours(ms: int) -> float:
    """Hours to 2 decimals, halves rounded up (0.125 -> 0.13)."""
    return float((Decimal(ms) / Decimal(MS_PER_HOUR)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def export_rows(sessions: Iterable[WorkSession]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for s in sessions:
        if s.end_time is None:
            continue
        ms = session_duration(s)
        rows.append(
            {
                "date": date_key(s.start_time),
                "startTime": _clock(s.start_time),
                "endTime": _clock(s.end_time),
                "durationHours": duration_hours(ms),
                "durationMinutes": int(ms / MS_PER_MINUTE + 0.5),
            }
        )
    return rows


def to_csv(sessions: Iterable[WorkSession]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in export_rows(sessions):
        writer.writerow(
            [
                row["date"],
                row["startTime"],
                row["endTime"],
                f"{row['durationHours']:.2f}",
                row["durationMinutes"],
            ]
        )
    return buf.getvalue()


def to_json(sessions: Iterable[WorkSession]) -> str:
    return json.dumps(export_rows(sessions), indent=2)


def default_export_filename(start: datetime, end: datetime, fmt: str) -> str:
    return f"work-time-export-{date_key(start)}-to-{date_key(end)}.{fmt}"


def export_sessions(
    state: WorkTimeState,
    start: datetime,
    end: datetime,
    fmt: str = "csv",
    directory: Optional[str] = None,
) -> Path:
    """Write the sessions of [start, end] to the export directory and return the file path."""
    fmt = fmt.lower()
    if fmt not in FORMATS:
        raise ValueError(f"Unsupported export format: {fmt!r} (expected one of {', '.join(FORMATS)})")
    selected = filter_sessions_for_export(state.sessions, start, end)
    content = to_csv(selected) if fmt == "csv" else to_json(selected)

    out_dir = Path(directory or AppConfig.from_env().export_dir)
    os.makedirs(out_dir, exist_ok=True)
    path = out_dir / default_export_filename(start, end, fmt)
    path.write_text(content, encoding="utf-8")
    logger.info("Exported %d sessions to %s", len(selected), path)
    return path


__all__ = [
    "CSV_HEADER",
    "FORMATS",
    "default_export_filename",
    "duration_hours",
    "export_rows",
    "export_sessions",
    "filter_sessions_for_export",
    "to_csv",
    "to_json",
]
