"""Once-off rule -- a single occurrence that carries daily until done."""

from __future__ import annotations

from datetime import date

from core.calendar import HolidayCalendar
from core.models.frequencies import Frequency
from core.models.instances import TaskInstance
from core.models.results import Occurrence
from core.models.tasks import TaskDefinition
from core.protocols import TaskValidationError


class OnceOffRule:
    """Appear from `publish_at` (or the due date itself) and never lock.

    The due date is the admin-entered one; there is no carry window end,
    so the occurrence keeps rendering until someone marks it done.
    """

    @property
    def name(self) -> str:
        return "once_off"

    def occurrence(
        self,
        task: TaskDefinition,
        frequency: Frequency,
        on: date,
        calendar: HolidayCalendar,
    ) -> Occurrence | None:
        if task.due_date is None:
            raise TaskValidationError("once-off task has no due_date")
        if task.publish_at is not None and task.publish_at > task.due_date:
            raise TaskValidationError(
                f"publish_at {task.publish_at} is after due_date {task.due_date}"
            )

        first = task.publish_at or task.due_date
        return Occurrence(
            scheduled_date=first,
            appearance_date=first,
            due_date=task.due_date,
            window_end=None,
            lock_date=None,
        )

    def lock_date(self, instance: TaskInstance, calendar: HolidayCalendar) -> date | None:
        return None
