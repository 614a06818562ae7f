"""Every-day rule -- a fresh instance each business day, locked the same night."""

from __future__ import annotations

from datetime import date

from core.calendar import HolidayCalendar
from core.models.frequencies import Frequency
from core.models.instances import TaskInstance
from core.models.results import Occurrence
from core.models.tasks import TaskDefinition


class EveryDayRule:
    """No instance on closed weekdays or public holidays; no carry."""

    @property
    def name(self) -> str:
        return "every_day"

    def occurrence(
        self,
        task: TaskDefinition,
        frequency: Frequency,
        on: date,
        calendar: HolidayCalendar,
    ) -> Occurrence | None:
        if not calendar.is_business_day(on):
            return None
        return Occurrence(
            scheduled_date=on,
            appearance_date=on,
            due_date=on,
            window_end=on,
            lock_date=on,
        )

    def lock_date(self, instance: TaskInstance, calendar: HolidayCalendar) -> date | None:
        return instance.effective_due_date
