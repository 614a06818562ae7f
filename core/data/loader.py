"""File loaders for task definitions and public holidays.

YAML and JSON are both accepted. Records may sit in a top-level list or
under a `tasks:` / `holidays:` key. A malformed record fails the whole
load with an error naming the file and the record index.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from core.calendar import HolidayCalendar
from core.config import AppConfig
from core.models.holidays import PublicHoliday
from core.models.instances import TaskInstance
from core.models.tasks import TaskDefinition

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class DataFileError(ValueError):
    """A task or holiday file could not be read or validated."""


def load_tasks(path: str | Path) -> list[TaskDefinition]:
    """Load task definitions from a YAML or JSON file."""
    tasks = _load_models(Path(path), "tasks", TaskDefinition)
    ids = [t.id for t in tasks]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise DataFileError(f"{path}: duplicate task ids {', '.join(duplicates)}")
    return tasks


def load_holidays(path: str | Path) -> list[PublicHoliday]:
    """Load `{date, name}` holiday records from a YAML or JSON file."""
    return _load_models(Path(path), "holidays", PublicHoliday)


def load_instances(path: str | Path) -> list[TaskInstance]:
    """Load persisted instance state (e.g. an export) for a status pass."""
    return _load_models(Path(path), "instances", TaskInstance)


def load_calendar(config: AppConfig) -> HolidayCalendar:
    """Full calendar snapshot: inline holidays plus the holidays file."""
    extra: list[PublicHoliday] = []
    path = config.holidays_path
    if path is not None:
        if path.exists():
            extra = load_holidays(path)
        else:
            logger.warning("Holidays file %s not found, using inline holidays only", path)
    calendar = config.calendar.build(extra)
    logger.debug("Calendar snapshot: %r", calendar)
    return calendar


def _load_models(path: Path, key: str, model: type[T]) -> list[T]:
    records = _records(path, key)
    items: list[T] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise DataFileError(f"{path}: {key}[{index}] is not a mapping")
        try:
            items.append(model.model_validate(record))
        except ValidationError as exc:
            raise DataFileError(f"{path}: invalid {key}[{index}]: {exc}") from exc
    logger.info("Loaded %d %s from %s", len(items), key, path)
    return items


def _records(path: Path, key: str) -> list[Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DataFileError(f"Cannot read {path}: {exc}") from exc

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise DataFileError(f"Cannot parse {path}: {exc}") from exc

    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise DataFileError(f"{path}: expected a list of {key}")
    return data
