"""Configuration loader -- reads config.yaml + .env, validates with Pydantic.

Resolves ${ENV_VAR} references in YAML values from environment variables.
Fails fast with clear errors if a value is malformed.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from core.calendar import HolidayCalendar
from core.dates import WEEKDAY_NAMES, parse_duration, parse_time_of_day, parse_weekday
from core.models.holidays import PublicHoliday

logger = logging.getLogger(__name__)

# Default home directory for config, tasks and holiday files
DEFAULT_HOME = Path.home() / ".checklist"

HOME_ENV_VAR = "CHECKLIST_HOME"

_ENV_PATTERN = re.compile(r"\$\{(\w+)\}")


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${ENV_VAR} references in config values."""
    if isinstance(value, str):
        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                logger.warning("Environment variable %s not set", var_name)
                return match.group(0)  # leave unresolved
            return env_value
        return _ENV_PATTERN.sub(replacer, value)
    elif isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Config models (Pydantic)
# ---------------------------------------------------------------------------

class CalendarConfig(BaseModel):
    """Weekday sets and public holidays.

    `non_working_weekdays` decides business days (daily tasks skip them).
    `workweek` is the Monday-Friday set used for holiday shifts and for
    counting workdays.
    """

    non_working_weekdays: list[str] = Field(default_factory=lambda: ["sun"])
    workweek: list[str] = Field(default_factory=lambda: list(WEEKDAY_NAMES[:5]))
    holidays: list[PublicHoliday] = Field(default_factory=list)
    holidays_file: str | None = None

    @field_validator("non_working_weekdays", "workweek", mode="before")
    @classmethod
    def _weekday_names(cls, value: Any) -> list[str]:
        if isinstance(value, (str, int)):
            value = [value]
        return [WEEKDAY_NAMES[parse_weekday(v)] for v in value]

    def build(self, extra_holidays: list[PublicHoliday] | None = None) -> HolidayCalendar:
        """Snapshot a calendar from inline holidays plus any loaded ones."""
        holidays = list(self.holidays) + list(extra_holidays or [])
        return HolidayCalendar(
            holidays,
            non_working_weekdays=self.non_working_weekdays,
            workweek=self.workweek,
        )


class EngineConfig(BaseModel):
    business_timezone: str = "Australia/Sydney"
    lock_time: str = "23:59"
    weekday_due_date: Literal["scheduled", "appearance"] = "scheduled"
    start_of_month_due_workdays: int = Field(default=5, ge=0)
    end_of_month_min_workdays: int = Field(default=5, ge=0)

    @field_validator("business_timezone")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value!r}")
        return value

    @field_validator("lock_time")
    @classmethod
    def _valid_lock_time(cls, value: str) -> str:
        parse_time_of_day(value)
        return value


class SchedulerConfig(BaseModel):
    check_interval: str = "60s"
    generation_horizon: str = "7d"
    tasks_file: str = "tasks.yaml"

    @field_validator("check_interval", "generation_horizon")
    @classmethod
    def _valid_duration(cls, value: str) -> str:
        parse_duration(value)
        return value

    @property
    def check_interval_seconds(self) -> int:
        return int(parse_duration(self.check_interval).total_seconds())

    @property
    def horizon_days(self) -> int:
        return parse_duration(self.generation_horizon).days


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    home_dir: str = str(DEFAULT_HOME)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def home_path(self) -> Path:
        """Resolved home directory as a Path."""
        return Path(self.home_dir).expanduser()

    def resolve_path(self, value: str) -> Path:
        """Relative paths are resolved against the home directory."""
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.home_path / path

    @property
    def tasks_path(self) -> Path:
        return self.resolve_path(self.scheduler.tasks_file)

    @property
    def holidays_path(self) -> Path | None:
        if not self.calendar.holidays_file:
            return None
        return self.resolve_path(self.calendar.holidays_file)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
) -> AppConfig:
    """Load configuration from YAML + .env files.

    1. Load .env into environment variables
    2. Load config.yaml and resolve ${ENV_VAR} references
    3. Validate against Pydantic models
    """
    home = Path(os.environ.get(HOME_ENV_VAR, str(DEFAULT_HOME))).expanduser()

    if env_path is None:
        env_path = home / ".env"
    if config_path is None:
        config_path = home / "config.yaml"

    env_path = Path(env_path)
    config_path = Path(config_path)

    if env_path.exists():
        load_dotenv(env_path)
        logger.info("Loaded environment from %s", env_path)
    else:
        logger.debug("No .env file at %s", env_path)

    raw_config: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            raw_config = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", config_path)
    else:
        logger.warning("No config file at %s, using defaults", config_path)

    resolved = _resolve_env_vars(raw_config)

    # .env may set the home directory too, so re-read after load_dotenv
    if HOME_ENV_VAR in os.environ:
        resolved["home_dir"] = os.environ[HOME_ENV_VAR]

    return AppConfig(**resolved)
