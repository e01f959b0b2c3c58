from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import matplotlib.pyplot as plt

from .calculations import daily_balance, sessions_between
from .models import WorkTimeState

logger = logging.getLogger(__name__)

COLOR_OVER = "#2ecc71"
COLOR_UNDER = "#e74c3c"


def plot_daily_balance(state: WorkTimeState, start: datetime, end: datetime) -> Any:
    """Bar chart of per-day balance (hours) for sessions started within [start, end]."""
    window = sessions_between(state.sessions, start, end)
    balances = daily_balance(window, state.daily_targets, state.default_target_hours)
    days = sorted(balances)
    values = [balances[d] for d in days]
    colors = [COLOR_OVER if v >= 0 else COLOR_UNDER for v in values]

    fig, ax = plt.subplots()  # type: ignore[call-arg]
    ax.bar(days, values, color=colors)
    ax.axhline(0, color="black", linewidth=0.8)
    ax.set_ylabel("Balance (hours)")
    ax.set_title(f"Daily Balance {start:%Y-%m-%d} - {end:%Y-%m-%d}")  # type: ignore[call-arg]
    if days:
        ax.tick_params(axis="x", labelrotation=45)
    else:
        ax.text(0.5, 0.5, "No sessions", ha="center", va="center", transform=ax.transAxes)
    fig.tight_layout()
    return fig


def show_daily_balance(state: WorkTimeState, start: datetime, end: datetime) -> None:
    """Show the balance chart on the main thread, non-blocking."""
    # Ensure an interactive backend (TkAgg) if available
    try:
        plt.switch_backend("TkAgg")
    except Exception as e:
        logger.debug("TkAgg backend unavailable: %s", e)
    plot_daily_balance(state, start, end)
    plt.show(block=False)  # type: ignore[call-arg]
