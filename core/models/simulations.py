"""Simulation models -- replay configuration and per-run counts."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from core.dates import parse_date, parse_time_of_day
from core.models.results import ValidationIssue


class SimulationConfig(BaseModel):
    """Configuration for a day-by-day checklist replay."""

    start: date
    end: date
    # Tasks whose open instances are ticked off every simulated day
    complete_task_ids: list[str] = Field(default_factory=list)
    completion_time: time = time(12, 0)

    @field_validator("start", "end", mode="before")
    @classmethod
    def _iso_date(cls, value):
        return parse_date(value)

    @field_validator("completion_time", mode="before")
    @classmethod
    def _time_of_day(cls, value):
        return parse_time_of_day(value)

    @model_validator(mode="after")
    def _ordered(self) -> SimulationConfig:
        if self.end < self.start:
            raise ValueError(f"Invalid date range: {self.start} is after {self.end}")
        return self


class SimulationReport(BaseModel):
    """A record of one simulation run."""

    id: str = Field(default_factory=lambda: f"sim_{uuid4().hex[:12]}")
    config: SimulationConfig
    status: Literal["pending", "running", "completed", "failed"] = "pending"

    started_at: datetime | None = None
    completed_at: datetime | None = None
    elapsed_seconds: float | None = None

    days_simulated: int = 0
    instances_created: int = 0
    completions: int = 0
    transitions: int = 0
    status_counts: dict[str, int] = Field(default_factory=dict)
    frequency_counts: dict[str, int] = Field(default_factory=dict)
    issues: list[ValidationIssue] = Field(default_factory=list)
    error: str | None = None

    def mark_started(self) -> None:
        self.status = "running"
        self.started_at = datetime.now(timezone.utc)

    def mark_completed(self) -> None:
        self.status = "completed"
        self._finish()

    def mark_failed(self, error: str) -> None:
        self.status = "failed"
        self.error = error
        self._finish()

    def _finish(self) -> None:
        self.completed_at = datetime.now(timezone.utc)
        if self.started_at:
            self.elapsed_seconds = (self.completed_at - self.started_at).total_seconds()
