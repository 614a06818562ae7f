"""HolidayCalendar -- immutable business-day calendar snapshot.

Two explicit weekday sets drive everything:

- non_working_weekdays: days the pharmacy is closed (default Sunday only).
  A *business day* is any other day that is not a public holiday. Daily
  tasks appear on business days.
- workweek: days that count as *workdays* for shifting and counting rules
  (default Monday to Friday). "Shift to the next non-holiday weekday" and
  "+5 workdays" both mean workdays.

Weekdays use Python's numbering: 0=Monday .. 6=Sunday.
"""

from __future__ import annotations

import calendar as _stdlib_calendar
import logging
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any

from core.dates import parse_date, parse_weekday
from core.models.holidays import PublicHoliday

logger = logging.getLogger(__name__)

MONDAY, SATURDAY, SUNDAY = 0, 5, 6

DEFAULT_NON_WORKING_WEEKDAYS = frozenset({SUNDAY})
DEFAULT_WORKWEEK = frozenset({0, 1, 2, 3, 4})

_ONE_DAY = timedelta(days=1)


class HolidayCalendar:
    """Read-only calendar of holidays and working weekdays.

    Usage:
        cal = HolidayCalendar.from_records([{"date": "2024-01-01", "name": "New Year"}])
        cal.is_business_day(date(2024, 1, 1))   # False
        cal.add_workdays(date(2024, 1, 2), 5)   # date(2024, 1, 9)
    """

    def __init__(
        self,
        holidays: Iterable[date | str | PublicHoliday] = (),
        non_working_weekdays: Iterable[int | str] = DEFAULT_NON_WORKING_WEEKDAYS,
        workweek: Iterable[int | str] = DEFAULT_WORKWEEK,
    ) -> None:
        names: dict[date, str] = {}
        for holiday in holidays:
            if isinstance(holiday, PublicHoliday):
                names[holiday.date] = holiday.name
            else:
                names[parse_date(holiday)] = ""
        self._holidays = names
        self._non_working = frozenset(parse_weekday(d) for d in non_working_weekdays)
        self._workweek = frozenset(parse_weekday(d) for d in workweek)
        if not self._workweek:
            raise ValueError("workweek must contain at least one weekday")
        if len(self._non_working) == 7:
            raise ValueError("non_working_weekdays cannot cover the whole week")

    @classmethod
    def from_records(
        cls,
        records: Iterable[PublicHoliday | dict[str, Any]],
        **kwargs: Any,
    ) -> HolidayCalendar:
        """Build from `{date, name}` records; malformed dates raise ValueError."""
        holidays = [
            r if isinstance(r, PublicHoliday) else PublicHoliday(**r)
            for r in records
        ]
        return cls(holidays, **kwargs)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    @property
    def holidays(self) -> frozenset[date]:
        return frozenset(self._holidays)

    @property
    def non_working_weekdays(self) -> frozenset[int]:
        return self._non_working

    @property
    def workweek(self) -> frozenset[int]:
        return self._workweek

    def is_holiday(self, day: date) -> bool:
        return day in self._holidays

    def holiday_name(self, day: date) -> str | None:
        return self._holidays.get(day)

    def is_business_day(self, day: date) -> bool:
        """Open for business: not a non-working weekday, not a holiday."""
        return day.weekday() not in self._non_working and day not in self._holidays

    def is_workday(self, day: date) -> bool:
        """A workweek day that is not a holiday."""
        return day.weekday() in self._workweek and day not in self._holidays

    # ------------------------------------------------------------------
    # Business-day stepping
    # ------------------------------------------------------------------

    def next_business_day(self, day: date) -> date:
        current = day + _ONE_DAY
        while not self.is_business_day(current):
            current += _ONE_DAY
        return current

    def previous_business_day(self, day: date) -> date:
        current = day - _ONE_DAY
        while not self.is_business_day(current):
            current -= _ONE_DAY
        return current

    def next_workday(self, day: date) -> date:
        current = day + _ONE_DAY
        while not self.is_workday(current):
            current += _ONE_DAY
        return current

    def roll_forward(self, day: date) -> date:
        """`day` itself if it is a workday, else the next workday."""
        return day if self.is_workday(day) else self.next_workday(day)

    def add_workdays(self, day: date, n: int) -> date:
        """Step forward `n` workdays from `day`.

        If the result lands on a holiday, keep shifting forward until it
        does not.
        """
        current = day
        added = 0
        while added < n:
            current += _ONE_DAY
            if self.is_workday(current):
                added += 1
        while self.is_holiday(current):
            current += _ONE_DAY
        return current

    # ------------------------------------------------------------------
    # Windowed shifts, shared by the frequency rules
    # ------------------------------------------------------------------

    def shift_forward(self, day: date, until: date | None = None) -> date | None:
        """Nearest workday strictly after `day`, not later than `until`."""
        current = day + _ONE_DAY
        while until is None or current <= until:
            if self.is_workday(current):
                return current
            current += _ONE_DAY
        return None

    def next_non_holiday(self, day: date, until: date) -> date | None:
        """Nearest non-holiday day strictly after `day`, not later than `until`.

        Ignores the workweek, so a Saturday qualifies.
        """
        current = day + _ONE_DAY
        while current <= until:
            if not self.is_holiday(current):
                return current
            current += _ONE_DAY
        return None

    def shift_backward(self, day: date, not_before: date) -> date | None:
        """Nearest workday strictly before `day`, not earlier than `not_before`."""
        current = day - _ONE_DAY
        while current >= not_before:
            if self.is_workday(current):
                return current
            current -= _ONE_DAY
        return None

    # ------------------------------------------------------------------
    # Week / month anchors
    # ------------------------------------------------------------------

    @staticmethod
    def week_monday(day: date) -> date:
        return day - timedelta(days=day.weekday())

    @staticmethod
    def month_start(day: date) -> date:
        return day.replace(day=1)

    @staticmethod
    def month_end(day: date) -> date:
        last = _stdlib_calendar.monthrange(day.year, day.month)[1]
        return day.replace(day=last)

    def last_weekday_of_month(self, weekday: int, month: date) -> date:
        """Last date in `month` (any date inside it) falling on `weekday`."""
        current = self.month_end(month)
        while current.weekday() != weekday:
            current -= _ONE_DAY
        return current

    def last_business_day_matching(self, weekday: int, month: date) -> date:
        """Last `weekday` of the month, pulled earlier if it is a holiday.

        A holiday moves it to the nearest earlier non-holiday workday inside
        the same month; if there is none it stays where it is.
        """
        anchor = self.last_weekday_of_month(weekday, month)
        if not self.is_holiday(anchor):
            return anchor
        earlier = self.shift_backward(anchor, not_before=self.month_start(month))
        if earlier is None:
            logger.warning("No earlier workday before holiday %s in its month", anchor)
            return anchor
        return earlier

    def remaining_workdays_after(self, day: date, month_end: date) -> int:
        """Count workdays strictly after `day` up to and including `month_end`."""
        count = 0
        current = day + _ONE_DAY
        while current <= month_end:
            if self.is_workday(current):
                count += 1
            current += _ONE_DAY
        return count

    def __repr__(self) -> str:
        return (
            f"HolidayCalendar(holidays={len(self._holidays)}, "
            f"non_working={sorted(self._non_working)}, workweek={sorted(self._workweek)})"
        )
