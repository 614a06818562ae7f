# tests/test_calendar.py

from __future__ import annotations

from datetime import date

import pytest

from core.calendar import HolidayCalendar


def test_saturday_is_business_day_but_not_workday(calendar: HolidayCalendar) -> None:
    saturday = date(2024, 1, 6)
    sunday = date(2024, 1, 7)

    assert calendar.is_business_day(saturday)
    assert not calendar.is_workday(saturday)
    assert not calendar.is_business_day(sunday)
    assert not calendar.is_workday(sunday)


def test_holiday_lookup_and_name(new_year_calendar: HolidayCalendar) -> None:
    assert new_year_calendar.is_holiday(date(2024, 1, 1))
    assert new_year_calendar.holiday_name(date(2024, 1, 26)) == "Australia Day"
    assert new_year_calendar.holiday_name(date(2024, 1, 2)) is None
    assert not new_year_calendar.is_business_day(date(2024, 1, 1))


def test_business_day_stepping_skips_sunday_and_holidays(new_year_calendar: HolidayCalendar) -> None:
    # Sat 2023-12-30 -> (Sun 31, Mon 1 holiday) -> Tue 2
    assert new_year_calendar.next_business_day(date(2023, 12, 30)) == date(2024, 1, 2)
    assert new_year_calendar.previous_business_day(date(2024, 1, 2)) == date(2023, 12, 30)


def test_add_workdays_counts_monday_to_friday(calendar: HolidayCalendar) -> None:
    assert calendar.add_workdays(date(2024, 4, 1), 5) == date(2024, 4, 8)
    assert calendar.add_workdays(date(2024, 4, 1), 0) == date(2024, 4, 1)


def test_add_workdays_skips_holidays() -> None:
    cal = HolidayCalendar([date(2024, 4, 3)])
    # Apr 2, (3 holiday), 4, 5, 8, 9
    assert cal.add_workdays(date(2024, 4, 1), 5) == date(2024, 4, 9)


def test_roll_forward_moves_weekend_first_to_monday(calendar: HolidayCalendar) -> None:
    # 2024-06-01 is a Saturday
    assert calendar.roll_forward(date(2024, 6, 1)) == date(2024, 6, 3)
    assert calendar.roll_forward(date(2024, 4, 1)) == date(2024, 4, 1)


def test_windowed_shifts_return_none_when_exhausted() -> None:
    monday = date(2024, 1, 1)
    cal = HolidayCalendar([date(2024, 1, d) for d in range(1, 7)])

    assert cal.shift_forward(monday, until=date(2024, 1, 6)) is None
    assert cal.shift_backward(date(2024, 1, 6), not_before=monday) is None


def test_last_saturday_pulled_back_on_holiday() -> None:
    cal = HolidayCalendar([date(2024, 6, 29)])
    assert cal.last_weekday_of_month(5, date(2024, 6, 10)) == date(2024, 6, 29)
    assert cal.last_business_day_matching(5, date(2024, 6, 10)) == date(2024, 6, 28)


def test_month_anchors(calendar: HolidayCalendar) -> None:
    assert calendar.month_start(date(2024, 2, 17)) == date(2024, 2, 1)
    assert calendar.month_end(date(2024, 2, 17)) == date(2024, 2, 29)
    assert calendar.week_monday(date(2024, 1, 7)) == date(2024, 1, 1)
    assert calendar.remaining_workdays_after(date(2024, 1, 29), date(2024, 1, 31)) == 2


def test_weekday_sets_are_configurable() -> None:
    cal = HolidayCalendar(non_working_weekdays=["sat", "sun"], workweek=["mon", "tue", "wed", "thu", "fri", "sat"])
    assert not cal.is_business_day(date(2024, 1, 6))
    assert cal.is_workday(date(2024, 1, 6))


def test_invalid_calendar_configuration() -> None:
    with pytest.raises(ValueError):
        HolidayCalendar(workweek=[])
    with pytest.raises(ValueError):
        HolidayCalendar(non_working_weekdays=range(7))
    with pytest.raises(ValueError):
        HolidayCalendar.from_records([{"date": "2024/01/01", "name": "bad"}])


def test_plain_holiday_dates_are_parsed() -> None:
    cal = HolidayCalendar(["2024-01-01", date(2024, 1, 26)])

    assert cal.is_holiday(date(2024, 1, 1))
    assert cal.holidays == frozenset({date(2024, 1, 1), date(2024, 1, 26)})
    with pytest.raises(ValueError):
        HolidayCalendar(["01/01/2024"])


def test_next_non_holiday_includes_saturday() -> None:
    cal = HolidayCalendar([date(2024, 1, d) for d in range(1, 6)])

    assert cal.next_non_holiday(date(2024, 1, 1), until=date(2024, 1, 6)) == date(2024, 1, 6)
    assert cal.next_non_holiday(date(2024, 1, 6), until=date(2024, 1, 6)) is None
