from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional


def _home(*parts: str) -> str:
    return os.path.join(os.path.expanduser("~"), *parts)


def _default_state_path() -> str:
    return _home(".worktime_state.json")


def _default_export_dir() -> str:
    return _home("Downloads")


def _default_log_file() -> str:
    return _home(".worktime", "worktime.log")


@dataclass
class AppConfig:
    state_path: str = field(default_factory=_default_state_path)
    export_dir: str = field(default_factory=_default_export_dir)
    log_file: str = field(default_factory=_default_log_file)
    log_level: str = "INFO"
    check_interval_s: int = 60  # notification check cadence

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Build config from WORKTIME_* environment variables; bad numbers keep the default."""
        env = os.environ if env is None else env
        cfg = cls()
        if env.get("WORKTIME_STATE_PATH"):
            cfg.state_path = os.path.expanduser(env["WORKTIME_STATE_PATH"])
        if env.get("WORKTIME_EXPORT_DIR"):
            cfg.export_dir = os.path.expanduser(env["WORKTIME_EXPORT_DIR"])
        if env.get("WORKTIME_LOG_FILE"):
            cfg.log_file = os.path.expanduser(env["WORKTIME_LOG_FILE"])
        if env.get("WORKTIME_LOG_LEVEL"):
            cfg.log_level = env["WORKTIME_LOG_LEVEL"].strip().upper()
        raw_interval = env.get("WORKTIME_CHECK_INTERVAL", "")
        try:
            interval = int(raw_interval)
            if interval > 0:
                cfg.check_interval_s = interval
        except ValueError:
            pass
        return cfg


__all__ = ["AppConfig"]
