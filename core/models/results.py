"""Result models returned by the rules and the three engine components."""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from core.models.instances import InstanceDescriptor, InstanceKey, TaskInstance, TaskStatus


class Occurrence(BaseModel):
    """One occurrence of a frequency rule, resolved against a calendar.

    `window_end` is the last date the occurrence stays visible (None means
    open-ended, i.e. until done). `lock_date` is the date at whose lock time
    an unfinished occurrence becomes missed (None means it never locks).
    """

    model_config = ConfigDict(frozen=True)

    scheduled_date: date
    appearance_date: date
    due_date: date
    window_end: date | None
    lock_date: date | None
    fallback: bool = False

    def covers(self, on: date) -> bool:
        if on < self.appearance_date:
            return False
        return self.window_end is None or on <= self.window_end


class ValidationIssue(BaseModel):
    """A non-fatal problem with a task definition found during evaluation."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    frequency: str
    message: str


class Appearance(BaseModel):
    """Evaluator decision for one (task, frequency, date)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["not_applicable", "new", "carry"]
    target_date: date
    appearance_date: date | None = None
    due_date: date | None = None
    issue: ValidationIssue | None = None
    fallback: bool = False

    @property
    def applies(self) -> bool:
        return self.kind != "not_applicable"

    @property
    def is_carry(self) -> bool:
        return self.kind == "carry"

    @classmethod
    def not_applicable(cls, target_date: date, issue: ValidationIssue | None = None) -> Appearance:
        return cls(kind="not_applicable", target_date=target_date, issue=issue)


class GenerationResult(BaseModel):
    """Outcome of a generation pass over a date range."""

    start: date
    end: date
    descriptors: list[InstanceDescriptor] = Field(default_factory=list)
    issues: list[ValidationIssue] = Field(default_factory=list)
    tasks_evaluated: int = 0
    cancelled: bool = False

    @property
    def new_descriptors(self) -> list[InstanceDescriptor]:
        return [d for d in self.descriptors if not d.is_carry]

    @property
    def carry_descriptors(self) -> list[InstanceDescriptor]:
        return [d for d in self.descriptors if d.is_carry]

    @property
    def keys(self) -> set[InstanceKey]:
        return {d.key for d in self.descriptors}

    def unmaterialized(self, existing_keys: set[InstanceKey]) -> list[InstanceDescriptor]:
        """One descriptor per occurrence whose key is not yet persisted.

        The earliest rendering in range represents each occurrence.
        """
        out: list[InstanceDescriptor] = []
        seen = set(existing_keys)
        for descriptor in sorted(self.descriptors, key=lambda d: d.appearance_date):
            key = descriptor.key
            if key in seen:
                continue
            seen.add(key)
            out.append(descriptor)
        return out


class RegenerationPlan(BaseModel):
    """Force-regenerate plan: only pending instances are ever replaced."""

    to_delete: list[TaskInstance] = Field(default_factory=list)
    to_create: list[InstanceDescriptor] = Field(default_factory=list)
    protected: list[TaskInstance] = Field(default_factory=list)
    issues: list[ValidationIssue] = Field(default_factory=list)
    cancelled: bool = False


class StatusTransition(BaseModel):
    """Decision of the status engine for a single instance."""

    instance_id: str
    old_status: TaskStatus
    new_status: TaskStatus
    locked: bool
    reason: str
    changed: bool = False


class RunSummary(BaseModel):
    """Counts from one scheduler tick (generation pass plus status pass)."""

    start: date
    end: date
    generated: int = 0
    inserted: int = 0
    failed: int = 0
    transitions: int = 0
    issues: list[ValidationIssue] = Field(default_factory=list)
    cancelled: bool = False
