"""Chart settings loaded from ``RENO_*`` environment variables."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "RENO"

DEFAULT_DAY_WIDTH = 3  # pixels per day
DEFAULT_ROW_HEIGHT = 40  # pixels per task row
DEFAULT_TICK_INTERVAL = 7
DEFAULT_MILESTONE_SIZE = 12
DEFAULT_LOG_DIR = Path(".local/renovation_timeline")
DEFAULT_CALENDAR_NAME = "Renovation Schedule"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_log_level(name: str, default: str) -> str:
    level = _env(name, default).upper()
    # getLevelName maps known names to their numeric level and echoes anything else
    return level if isinstance(logging.getLevelName(level), int) else default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class ChartSettings:
    # ---- Layout ----
    day_width_px: int = DEFAULT_DAY_WIDTH
    row_height_px: int = DEFAULT_ROW_HEIGHT
    tick_interval_days: int = DEFAULT_TICK_INTERVAL
    milestone_size_px: int = DEFAULT_MILESTONE_SIZE

    # ---- Logging ----
    log_level: str = "INFO"
    log_dir: Path = DEFAULT_LOG_DIR

    # ---- Exports ----
    calendar_name: str = DEFAULT_CALENDAR_NAME

    @staticmethod
    def from_env() -> "ChartSettings":
        return ChartSettings(
            day_width_px=_env_positive_int(_k("DAY_WIDTH"), DEFAULT_DAY_WIDTH),
            row_height_px=_env_positive_int(_k("ROW_HEIGHT"), DEFAULT_ROW_HEIGHT),
            tick_interval_days=_env_positive_int(_k("TICK_INTERVAL"), DEFAULT_TICK_INTERVAL),
            milestone_size_px=_env_positive_int(_k("MILESTONE_SIZE"), DEFAULT_MILESTONE_SIZE),
            log_level=_env_log_level(_k("LOG_LEVEL"), "INFO"),
            log_dir=_env_path(_k("LOG_DIR"), DEFAULT_LOG_DIR),
            calendar_name=_env(_k("CALENDAR_NAME"), DEFAULT_CALENDAR_NAME),
        )
