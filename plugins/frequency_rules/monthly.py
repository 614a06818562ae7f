"""Monthly rules -- start of month, once monthly and end of month.

All three close on the month cutoff: the last Saturday of the month, pulled
back to the nearest earlier non-holiday weekday when it is a holiday.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from core.calendar import MONDAY, SATURDAY, HolidayCalendar
from core.models.frequencies import EndOfMonth, Frequency, StartOfMonth
from core.models.instances import TaskInstance
from core.models.results import Occurrence
from core.models.tasks import TaskDefinition

logger = logging.getLogger(__name__)


def month_cutoff(calendar: HolidayCalendar, on: date) -> date:
    return calendar.last_business_day_matching(SATURDAY, on)


def start_of_month_appearance(calendar: HolidayCalendar, on: date) -> date:
    """The 1st, moved off weekends to Monday and off holidays forward."""
    return calendar.roll_forward(calendar.month_start(on))


class StartOfMonthRule:
    """Appear on the first workday of the month, due N workdays later.

    Carries until the month cutoff and locks there. An optional month
    filter restricts the rule to one month of the year.
    """

    def __init__(self, due_workdays: int = 5) -> None:
        self.due_workdays = due_workdays

    @property
    def name(self) -> str:
        return "start_of_month"

    def occurrence(
        self,
        task: TaskDefinition,
        frequency: Frequency,
        on: date,
        calendar: HolidayCalendar,
    ) -> Occurrence | None:
        if not isinstance(frequency, StartOfMonth):
            raise TypeError(f"StartOfMonthRule cannot evaluate {frequency!r}")
        if frequency.month is not None and on.month != frequency.month:
            return None

        appearance = start_of_month_appearance(calendar, on)
        due = calendar.add_workdays(appearance, self.due_workdays)
        cutoff = max(month_cutoff(calendar, on), appearance)
        return Occurrence(
            scheduled_date=calendar.month_start(on),
            appearance_date=appearance,
            due_date=due,
            window_end=cutoff,
            lock_date=cutoff,
        )

    def lock_date(self, instance: TaskInstance, calendar: HolidayCalendar) -> date | None:
        first = instance.first_appearance_date
        return max(month_cutoff(calendar, first), first)


class OnceMonthlyRule:
    """Same appearance as start of month; due on, and closed at, the month cutoff."""

    @property
    def name(self) -> str:
        return "once_monthly"

    def occurrence(
        self,
        task: TaskDefinition,
        frequency: Frequency,
        on: date,
        calendar: HolidayCalendar,
    ) -> Occurrence | None:
        appearance = start_of_month_appearance(calendar, on)
        due = max(month_cutoff(calendar, on), appearance)
        return Occurrence(
            scheduled_date=calendar.month_start(on),
            appearance_date=appearance,
            due_date=due,
            window_end=due,
            lock_date=due,
        )

    def lock_date(self, instance: TaskInstance, calendar: HolidayCalendar) -> date | None:
        return instance.effective_due_date


class EndOfMonthRule:
    """Appear on the latest Monday that still leaves enough workdays.

    "Enough" means at least `min_workdays` workdays strictly after the
    Monday up to the month end. A holiday Monday shifts forward to the next
    workday. Due on the month cutoff, carried until then, locked there.
    """

    def __init__(self, min_workdays: int = 5) -> None:
        self.min_workdays = min_workdays

    @property
    def name(self) -> str:
        return "end_of_month"

    def occurrence(
        self,
        task: TaskDefinition,
        frequency: Frequency,
        on: date,
        calendar: HolidayCalendar,
    ) -> Occurrence | None:
        if not isinstance(frequency, EndOfMonth):
            raise TypeError(f"EndOfMonthRule cannot evaluate {frequency!r}")
        if frequency.month is not None and on.month != frequency.month:
            return None

        monday, fallback = self._anchor_monday(calendar, on)
        appearance = calendar.next_workday(monday) if calendar.is_holiday(monday) else monday
        due = max(month_cutoff(calendar, on), appearance)
        return Occurrence(
            scheduled_date=monday,
            appearance_date=appearance,
            due_date=due,
            window_end=due,
            lock_date=due,
            fallback=fallback,
        )

    def lock_date(self, instance: TaskInstance, calendar: HolidayCalendar) -> date | None:
        return instance.effective_due_date

    def _anchor_monday(self, calendar: HolidayCalendar, on: date) -> tuple[date, bool]:
        month_end = calendar.month_end(on)
        monday = calendar.last_weekday_of_month(MONDAY, on)
        while monday.month == on.month:
            if calendar.remaining_workdays_after(monday, month_end) >= self.min_workdays:
                return monday, False
            monday -= timedelta(days=7)

        first_monday = monday + timedelta(days=7)
        logger.warning(
            "No Monday in %s leaves %d workdays; falling back to first Monday %s",
            on.strftime("%Y-%m"), self.min_workdays, first_monday,
        )
        return first_monday, True
