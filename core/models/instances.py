"""Instance models -- occurrences of a task on the checklist.

TaskInstance is the persisted state handed back by the storage layer.
InstanceDescriptor is what a generation pass emits; the storage layer
decides insert-or-skip per InstanceKey.
"""

from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator

from core.dates import parse_date, parse_time_of_day
from core.models.frequencies import FrequencyField


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    OVERDUE = "overdue"
    DONE = "done"
    MISSED = "missed"


class InstanceKey(BaseModel):
    """Deterministic identity of one occurrence.

    Carry renderings of an occurrence on later dates share this key, because
    it is anchored on the *first* appearance date.
    """

    model_config = ConfigDict(frozen=True)

    task_id: str
    frequency: FrequencyField
    first_appearance_date: date

    def __str__(self) -> str:
        return f"{self.task_id}:{self.frequency.code}:{self.first_appearance_date.isoformat()}"

    @classmethod
    def parse(cls, value: str) -> InstanceKey:
        """Inverse of str(); task ids may themselves contain ':'."""
        try:
            task_id, code, first = value.rsplit(":", 2)
        except ValueError:
            raise ValueError(f"Invalid instance key: {value!r}")
        return cls(task_id=task_id, frequency=code, first_appearance_date=parse_date(first))


class InstanceDescriptor(BaseModel):
    """One row of a generation pass: an occurrence rendered on a given date."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    frequency: FrequencyField
    appearance_date: date
    due_date: date
    due_time: time
    is_carry: bool = False
    original_appearance_date: date | None = None

    @property
    def first_appearance_date(self) -> date:
        return self.original_appearance_date or self.appearance_date

    @property
    def key(self) -> InstanceKey:
        return InstanceKey(
            task_id=self.task_id,
            frequency=self.frequency,
            first_appearance_date=self.first_appearance_date,
        )

    def to_instance(self, status: TaskStatus = TaskStatus.PENDING) -> TaskInstance:
        """Materialize as a fresh instance whose id is the string key."""
        return TaskInstance(
            id=str(self.key),
            task_id=self.task_id,
            frequency=self.frequency,
            appearance_date=self.first_appearance_date,
            due_date=self.due_date,
            due_time=self.due_time,
            status=status,
        )


class TaskInstance(BaseModel):
    """A persisted occurrence with its completion state."""

    id: str
    task_id: str
    frequency: FrequencyField
    appearance_date: date
    due_date: date
    due_time: time
    status: TaskStatus = TaskStatus.PENDING
    locked: bool = False

    is_carry: bool = False
    original_appearance_date: date | None = None

    # Admin overrides take precedence over the generated values
    due_date_override: date | None = None
    due_time_override: time | None = None

    completed_at: datetime | None = None

    @field_validator(
        "appearance_date", "due_date", "original_appearance_date", "due_date_override",
        mode="before",
    )
    @classmethod
    def _iso_date(cls, value):
        if value is None or value == "":
            return None
        return parse_date(value)

    @field_validator("due_time", "due_time_override", mode="before")
    @classmethod
    def _time_of_day(cls, value):
        if value is None or value == "":
            return None
        return parse_time_of_day(value)

    @property
    def effective_due_date(self) -> date:
        return self.due_date_override or self.due_date

    @property
    def effective_due_time(self) -> time:
        return self.due_time_override or self.due_time

    @property
    def first_appearance_date(self) -> date:
        return self.original_appearance_date or self.appearance_date

    @property
    def key(self) -> InstanceKey:
        return InstanceKey(
            task_id=self.task_id,
            frequency=self.frequency,
            first_appearance_date=self.first_appearance_date,
        )

    @property
    def is_settled(self) -> bool:
        """Done, missed and locked instances are terminal for the engine."""
        return self.locked or self.status in (TaskStatus.DONE, TaskStatus.MISSED)
