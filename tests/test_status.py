# tests/test_status.py

from __future__ import annotations

from datetime import date, datetime, time, timezone

import pytest

from core.calendar import HolidayCalendar
from core.models.instances import TaskInstance, TaskStatus
from core.time_context import TimeContext
from engine.status import StatusTransitionEngine


def _instance(frequency: str, appearance: str, due: str, **kwargs) -> TaskInstance:
    return TaskInstance(
        id=f"t:{frequency}:{appearance}",
        task_id="t",
        frequency=frequency,
        appearance_date=appearance,
        due_date=due,
        due_time=kwargs.pop("due_time", "17:00"),
        **kwargs,
    )


def test_every_day_goes_overdue_then_locks_at_2359(status_engine, calendar) -> None:
    daily = _instance("every_day", "2024-01-02", "2024-01-02")

    before = status_engine.evaluate(daily, datetime(2024, 1, 2, 16, 59), calendar)
    at_due = status_engine.evaluate(daily, datetime(2024, 1, 2, 17, 0), calendar)
    at_lock = status_engine.evaluate(daily, datetime(2024, 1, 2, 23, 59), calendar)

    assert not before.changed and before.new_status == TaskStatus.PENDING
    assert at_due.changed and at_due.new_status == TaskStatus.OVERDUE and not at_due.locked
    assert at_lock.changed
    assert at_lock.new_status == TaskStatus.MISSED
    assert at_lock.locked


def test_overdue_instance_is_locked_at_cutoff(status_engine, calendar) -> None:
    daily = _instance("every_day", "2024-01-02", "2024-01-02", status=TaskStatus.OVERDUE)

    waiting = status_engine.evaluate(daily, datetime(2024, 1, 2, 20, 0), calendar)
    locked = status_engine.evaluate(daily, datetime(2024, 1, 3, 8, 0), calendar)

    assert not waiting.changed and waiting.reason == "No change"
    assert locked.old_status == TaskStatus.OVERDUE
    assert locked.new_status == TaskStatus.MISSED and locked.locked


def test_aware_now_is_converted_to_business_time(status_engine, calendar) -> None:
    daily = _instance("every_day", "2024-01-02", "2024-01-02")

    # 12:59 UTC is 23:59 in Sydney (AEDT, UTC+11)
    utc_lock = datetime(2024, 1, 2, 12, 59, tzinfo=timezone.utc)
    utc_before = datetime(2024, 1, 2, 5, 0, tzinfo=timezone.utc)

    assert status_engine.evaluate(daily, utc_lock, calendar).new_status == TaskStatus.MISSED
    assert status_engine.evaluate(daily, utc_before, calendar).new_status == TaskStatus.PENDING
    assert status_engine.evaluate(daily, TimeContext.at(utc_lock), calendar).locked


def test_once_off_never_becomes_missed(status_engine, calendar) -> None:
    audit = _instance("once_off", "2024-01-05", "2024-01-10")

    much_later = status_engine.evaluate(audit, datetime(2024, 6, 1, 9, 0), calendar)
    assert much_later.new_status == TaskStatus.OVERDUE
    assert not much_later.locked

    overdue = audit.model_copy(update={"status": TaskStatus.OVERDUE})
    again = status_engine.evaluate(overdue, datetime(2025, 1, 1, 9, 0), calendar)
    assert not again.changed
    assert again.new_status == TaskStatus.OVERDUE


@pytest.mark.parametrize(
    ("status", "locked"),
    [
        (TaskStatus.DONE, False),
        (TaskStatus.DONE, True),
        (TaskStatus.MISSED, True),
        (TaskStatus.PENDING, True),
    ],
)
def test_settled_instances_never_regress(status_engine, calendar, status, locked) -> None:
    daily = _instance("every_day", "2024-01-02", "2024-01-02", status=status, locked=locked)

    result = status_engine.evaluate(daily, datetime(2024, 2, 1, 12, 0), calendar)

    assert not result.changed
    assert result.new_status == status
    assert result.locked == locked
    assert result.reason == "Already settled"


def test_weekday_shifted_monday_locks_at_week_cutoff(status_engine, new_year_calendar) -> None:
    monday = _instance("monday", "2024-01-02", "2024-01-01")

    tuesday = status_engine.evaluate(monday, datetime(2024, 1, 2, 9, 0), new_year_calendar)
    friday = status_engine.evaluate(monday, datetime(2024, 1, 5, 23, 59), new_year_calendar)
    saturday = status_engine.evaluate(monday, datetime(2024, 1, 6, 23, 59), new_year_calendar)

    assert tuesday.new_status == TaskStatus.OVERDUE
    assert friday.new_status == TaskStatus.OVERDUE
    assert saturday.new_status == TaskStatus.MISSED
    assert saturday.reason == "Missed at week cutoff"


def test_start_of_month_locks_at_month_cutoff(status_engine, calendar) -> None:
    som = _instance("start_of_every_month", "2024-04-01", "2024-04-08")

    assert not status_engine.evaluate(som, datetime(2024, 4, 8, 16, 0), calendar).changed
    assert status_engine.evaluate(som, datetime(2024, 4, 8, 18, 0), calendar).new_status == TaskStatus.OVERDUE
    assert status_engine.evaluate(som, datetime(2024, 4, 27, 23, 0), calendar).new_status == TaskStatus.OVERDUE
    assert status_engine.evaluate(som, datetime(2024, 4, 27, 23, 59), calendar).new_status == TaskStatus.MISSED


def test_due_date_override_moves_the_overdue_point(status_engine, calendar) -> None:
    monthly = _instance(
        "once_monthly", "2024-06-03", "2024-06-29",
        due_date_override="2024-06-05", due_time_override="08:00",
    )

    assert status_engine.evaluate(monthly, datetime(2024, 6, 5, 7, 59), calendar).new_status == TaskStatus.PENDING
    assert status_engine.evaluate(monthly, datetime(2024, 6, 5, 8, 0), calendar).new_status == TaskStatus.OVERDUE
    # once-monthly locks on the effective due date
    assert status_engine.evaluate(monthly, datetime(2024, 6, 5, 23, 59), calendar).locked


def test_lock_time_is_configurable(evaluator, calendar) -> None:
    engine = StatusTransitionEngine(evaluator, lock_time="20:00")
    daily = _instance("every_day", "2024-01-02", "2024-01-02")

    assert engine.lock_time == time(20, 0)
    assert engine.evaluate(daily, datetime(2024, 1, 2, 20, 0), calendar).new_status == TaskStatus.MISSED


def test_evaluate_many_counts_and_stops(status_engine, calendar) -> None:
    instances = [
        _instance("every_day", f"2024-01-0{d}", f"2024-01-0{d}") for d in range(2, 6)
    ]
    now = datetime(2024, 1, 4, 12, 0)

    results = status_engine.evaluate_many(instances, now, calendar)
    assert [r.changed for r in results] == [True, True, False, False]

    partial = status_engine.evaluate_many(instances, now, calendar, should_stop=lambda: True)
    assert partial == []


def test_holiday_calendar_does_not_change_daily_lock(status_engine) -> None:
    cal = HolidayCalendar([date(2024, 1, 3)])
    daily = _instance("every_day", "2024-01-02", "2024-01-02")

    assert status_engine.evaluate(daily, datetime(2024, 1, 2, 23, 59), cal).locked


def test_saturday_weekday_on_holiday_locks_friday_before_its_due_date(status_engine) -> None:
    cal = HolidayCalendar([date(2024, 1, 13)])
    saturday = _instance("saturday", "2024-01-12", "2024-01-13")

    friday_lock = status_engine.evaluate(saturday, datetime(2024, 1, 12, 23, 59), cal)

    assert friday_lock.new_status == TaskStatus.MISSED
    assert friday_lock.locked
