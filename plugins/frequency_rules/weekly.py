"""Weekly rules -- Monday-anchored weeks that close on Saturday.

Both families share the week cutoff: the week's Saturday, or the nearest
earlier non-holiday weekday in the same week when Saturday is a holiday.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Literal

from core.calendar import SATURDAY, HolidayCalendar
from core.models.frequencies import Frequency, Weekday
from core.models.instances import TaskInstance
from core.models.results import Occurrence
from core.models.tasks import TaskDefinition


def week_cutoff(calendar: HolidayCalendar, monday: date) -> date:
    """Last visible date of a Monday-Saturday week."""
    saturday = monday + timedelta(days=SATURDAY)
    if not calendar.is_holiday(saturday):
        return saturday
    return calendar.shift_backward(saturday, not_before=monday) or saturday


class OnceWeeklyRule:
    """Appear Monday (shifted forward over holidays), due by the week cutoff.

    Carries from appearance to due date inclusive and locks on the due date.
    """

    @property
    def name(self) -> str:
        return "once_weekly"

    def occurrence(
        self,
        task: TaskDefinition,
        frequency: Frequency,
        on: date,
        calendar: HolidayCalendar,
    ) -> Occurrence | None:
        monday = calendar.week_monday(on)
        saturday = monday + timedelta(days=SATURDAY)

        appearance = monday
        if calendar.is_holiday(monday):
            # Tuesday first, then the next non-holiday weekday in the week
            appearance = (
                calendar.shift_forward(monday, until=saturday)
                or calendar.next_non_holiday(monday, until=saturday)
                or monday
            )

        due = max(week_cutoff(calendar, monday), appearance)
        return Occurrence(
            scheduled_date=monday,
            appearance_date=appearance,
            due_date=due,
            window_end=due,
            lock_date=due,
        )

    def lock_date(self, instance: TaskInstance, calendar: HolidayCalendar) -> date | None:
        return instance.effective_due_date


class WeekdayRule:
    """Appear on a specific weekday and carry through the week cutoff.

    A holiday on the scheduled day moves the appearance: Monday only moves
    forward; Tuesday-Saturday move to the nearest earlier non-holiday
    weekday of the same week, falling back to moving forward.

    `due_date_policy` decides what the instance reports as its due date:
    "scheduled" keeps the original weekday, "appearance" follows the shift.
    """

    def __init__(self, due_date_policy: Literal["scheduled", "appearance"] = "scheduled") -> None:
        if due_date_policy not in ("scheduled", "appearance"):
            raise ValueError(f"Invalid weekday due date policy: {due_date_policy!r}")
        self.due_date_policy = due_date_policy

    @property
    def name(self) -> str:
        return "weekday"

    def occurrence(
        self,
        task: TaskDefinition,
        frequency: Frequency,
        on: date,
        calendar: HolidayCalendar,
    ) -> Occurrence | None:
        if not isinstance(frequency, Weekday):
            raise TypeError(f"WeekdayRule cannot evaluate {frequency!r}")
        monday = calendar.week_monday(on)
        saturday = monday + timedelta(days=SATURDAY)
        scheduled = monday + timedelta(days=frequency.day)

        appearance = scheduled
        if calendar.is_holiday(scheduled):
            if frequency.day == 0:
                shifted = calendar.shift_forward(scheduled, until=saturday)
            else:
                shifted = (
                    calendar.shift_backward(scheduled, not_before=monday)
                    or calendar.shift_forward(scheduled, until=saturday)
                )
            shifted = shifted or calendar.next_non_holiday(scheduled, until=saturday)
            appearance = shifted or scheduled

        cutoff = max(week_cutoff(calendar, monday), appearance)
        due = scheduled if self.due_date_policy == "scheduled" else appearance
        return Occurrence(
            scheduled_date=scheduled,
            appearance_date=appearance,
            due_date=due,
            window_end=cutoff,
            lock_date=cutoff,
        )

    def lock_date(self, instance: TaskInstance, calendar: HolidayCalendar) -> date | None:
        monday = calendar.week_monday(instance.first_appearance_date)
        return max(week_cutoff(calendar, monday), instance.first_appearance_date)
