"""Core protocols -- the extension points of the checklist engine.

The engine imports these protocols. Rules and storage backends implement
them. All protocols use structural subtyping (typing.Protocol): if your
class has the right methods, it implements the protocol.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Protocol, runtime_checkable

from core.calendar import HolidayCalendar
from core.models.frequencies import Frequency
from core.models.holidays import PublicHoliday
from core.models.instances import InstanceDescriptor, InstanceKey, TaskInstance
from core.models.results import Occurrence, StatusTransition
from core.models.tasks import TaskDefinition


class TaskValidationError(ValueError):
    """Raised by a rule when a task definition cannot yield a correct date.

    The evaluator turns it into a not-applicable result plus a
    ValidationIssue; it never escapes a generation pass.
    """


# ---------------------------------------------------------------------------
# 1. FrequencyRule -- appearance, due date and lock cutoff for one family
# ---------------------------------------------------------------------------

@runtime_checkable
class FrequencyRule(Protocol):
    """Date arithmetic for a single frequency family.

    Rules are pure: every call is re-derived from its arguments, so a
    changed holiday calendar is reflected on the next evaluation.
    """

    @property
    def name(self) -> str:
        """The frequency `kind` this rule handles, e.g. 'once_weekly'."""
        ...

    def occurrence(
        self,
        task: TaskDefinition,
        frequency: Frequency,
        on: date,
        calendar: HolidayCalendar,
    ) -> Occurrence | None:
        """Resolve the occurrence whose period contains `on`.

        Returns None when the period has no occurrence (e.g. a month filter
        that excludes it, or a closed day for daily tasks). Raises
        TaskValidationError for malformed tasks.
        """
        ...

    def lock_date(self, instance: TaskInstance, calendar: HolidayCalendar) -> date | None:
        """Date at whose lock time an unfinished instance becomes missed.

        None means the instance never auto-locks.
        """
        ...


# ---------------------------------------------------------------------------
# 2. InstanceRepository -- persistence owned by the caller
# ---------------------------------------------------------------------------

@runtime_checkable
class InstanceRepository(Protocol):
    """Storage collaborator used by the scheduler driver.

    Upserts must be idempotent per InstanceKey: writing a key that already
    exists is a no-op that returns False.
    """

    def list_tasks(self) -> list[TaskDefinition]:
        ...

    def list_holidays(self) -> list[PublicHoliday]:
        ...

    def existing_keys(self, start: date, end: date) -> set[InstanceKey]:
        """Keys of instances whose first appearance falls in [start, end]."""
        ...

    def upsert_many(self, descriptors: Iterable[InstanceDescriptor]) -> int:
        """Insert all new descriptors in one batch; returns rows inserted."""
        ...

    def upsert(self, descriptor: InstanceDescriptor) -> bool:
        """Insert a single descriptor; False if its key already exists."""
        ...

    def list_open_instances(self) -> list[TaskInstance]:
        """Instances that are neither done nor locked."""
        ...

    def apply_transition(self, transition: StatusTransition) -> None:
        ...
