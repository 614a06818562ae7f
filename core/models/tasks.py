"""Task model -- the admin-defined checklist template read by the engine."""

from __future__ import annotations

from datetime import date, time

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from core.dates import parse_date, parse_time_of_day
from core.models.frequencies import FrequencyField


class TaskDefinition(BaseModel):
    """A recurring (or once-off) checklist task template.

    Persisted by the external CRUD layer; the engine only reads it.
    Dates are strict ISO strings or date objects; `due_time` is "HH:MM".
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    active: bool = True
    frequencies: tuple[FrequencyField, ...]

    # Default due time-of-day for every instance of this task
    due_time: time = Field(default=time(17, 0), validation_alias=AliasChoices("due_time", "timing"))

    # Visibility bounds
    publish_at: date | None = None
    start_date: date | None = None
    end_date: date | None = None

    # Admin-entered due date, only meaningful for once-off tasks
    due_date: date | None = None

    @field_validator("frequencies", mode="before")
    @classmethod
    def _single_frequency(cls, value):
        if isinstance(value, (str, dict)):
            return (value,)
        return value

    @field_validator("publish_at", "start_date", "end_date", "due_date", mode="before")
    @classmethod
    def _iso_date(cls, value):
        if value is None or value == "":
            return None
        return parse_date(value)

    @field_validator("due_time", mode="before")
    @classmethod
    def _time_of_day(cls, value):
        return parse_time_of_day(value)

    @model_validator(mode="after")
    def _check_window(self) -> TaskDefinition:
        if not self.frequencies:
            raise ValueError(f"Task {self.id!r} has no frequencies")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError(f"Task {self.id!r}: end_date is before start_date")
        return self

    @property
    def first_visible_date(self) -> date | None:
        """Earliest date any instance may be materialized, if bounded."""
        bounds = [d for d in (self.publish_at, self.start_date) if d is not None]
        return max(bounds) if bounds else None

    def is_within_bounds(self, on: date) -> bool:
        """True when `on` falls inside the task's publish/start/end window."""
        first = self.first_visible_date
        if first is not None and on < first:
            return False
        if self.end_date is not None and on > self.end_date:
            return False
        return True
