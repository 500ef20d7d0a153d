"""Centralized application configuration."""

import logging
import tomllib
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field, model_validator

from mb_focus.activities import Activity
from mb_focus.time_utils import parse_duration

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".local" / "mb-focus"


class Config(BaseModel):
    """Application-wide configuration."""

    model_config = ConfigDict(frozen=True)

    data_dir: Path = Field(description="Base directory for all application data")
    default_duration: str = Field(default="25", description="Default session duration (e.g. '25', '25m', '90s', '10m30s')")
    tick_interval_sec: int = Field(default=15, ge=1, description="Seconds between background re-evaluations")
    milestone_start: float = Field(default=0.10, ge=0, lt=1, description="Progress ratio opening the milestone window")
    milestone_end: float = Field(default=0.15, gt=0, le=1, description="Progress ratio closing the milestone window")
    alarm_volume: float = Field(default=0.7, ge=0, le=1, description="Completion sound volume")
    alarm_auto_stop_sec: float = Field(default=10.0, gt=0, description="Seconds before alarm feedback is stopped")
    alarm_sound_path: Path | None = Field(default=None, description="Completion sound file; None uses the system sound")
    activities: dict[str, Activity] = Field(default_factory=dict, description="Activity catalog keyed by activity id")

    @model_validator(mode="after")
    def check_milestone_window(self) -> Self:
        if self.milestone_start >= self.milestone_end:
            raise ValueError("milestone_start must be below milestone_end")
        return self

    @computed_field(description="SQLite key-value database file")
    @property
    def db_path(self) -> Path:
        """SQLite key-value database file."""
        return self.data_dir / "focus.db"

    @computed_field(description="Timer worker PID file")
    @property
    def worker_pid_path(self) -> Path:
        """Timer worker PID file."""
        return self.data_dir / "timer_worker.pid"

    @computed_field(description="Rotating log file")
    @property
    def log_path(self) -> Path:
        """Rotating log file."""
        return self.data_dir / "focus.log"

    @computed_field(description="Optional TOML configuration file")
    @property
    def config_path(self) -> Path:
        """Optional TOML configuration file."""
        return self.data_dir / "config.toml"

    def cli_base_args(self) -> list[str]:
        """Build CLI base args, including --data-dir only when non-default."""
        args: list[str] = ["mb-focus"]
        if self.data_dir != DEFAULT_DATA_DIR:
            args.extend(["--data-dir", str(self.data_dir)])
        return args

    @staticmethod
    def build(data_dir: Path | None = None) -> "Config":
        """Build a Config instance from defaults and optional config.toml."""
        resolved_dir = data_dir if data_dir is not None else DEFAULT_DATA_DIR
        config_path = resolved_dir / "config.toml"

        kwargs: dict[str, Any] = {"data_dir": resolved_dir}
        if config_path.is_file():
            with config_path.open("rb") as f:
                toml_data = tomllib.load(f)
            kwargs.update(_timer_options(_table(toml_data, "timer")))
            kwargs.update(_alarm_options(_table(toml_data, "alarm")))
            kwargs["activities"] = _activities(_table(toml_data, "activities"))

        try:
            return Config(**kwargs)
        except ValidationError:
            logger.warning("Invalid combination in %s, falling back to defaults", config_path, exc_info=True)
            return Config(data_dir=resolved_dir, activities=kwargs.get("activities", {}))


def _table(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a TOML sub-table, or an empty dict if missing or not a table."""
    value = data.get(name, {})
    return value if isinstance(value, dict) else {}


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _timer_options(timer: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    val = timer.get("default_duration")
    if isinstance(val, str) and parse_duration(val):
        result["default_duration"] = val
    val = timer.get("tick_interval_sec")
    if isinstance(val, int) and not isinstance(val, bool) and val >= 1:
        result["tick_interval_sec"] = val
    start, end = timer.get("milestone_start"), timer.get("milestone_end")
    if start is not None or end is not None:
        start = start if start is not None else 0.10
        end = end if end is not None else 0.15
        if _is_number(start) and _is_number(end) and 0 <= start < end <= 1:
            result["milestone_start"] = float(start)
            result["milestone_end"] = float(end)
        else:
            logger.warning("Ignoring invalid milestone window: start=%r end=%r", start, end)
    return result


def _alarm_options(alarm: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    val = alarm.get("volume")
    if _is_number(val) and 0 <= val <= 1:
        result["alarm_volume"] = float(val)
    val = alarm.get("auto_stop_sec")
    if _is_number(val) and val > 0:
        result["alarm_auto_stop_sec"] = float(val)
    val = alarm.get("sound_path")
    if isinstance(val, str) and val:
        result["alarm_sound_path"] = Path(val).expanduser()
    return result


def _activities(table: dict[str, Any]) -> dict[str, Activity]:
    result: dict[str, Activity] = {}
    for activity_id, raw in table.items():
        try:
            result[activity_id] = Activity.model_validate(raw)
        except ValidationError:
            logger.warning("Ignoring invalid activity entry id=%s", activity_id)
    return result
