# tests/test_models.py

from __future__ import annotations

from datetime import date, time

import pytest
from pydantic import ValidationError

from core.dates import parse_date, parse_duration, parse_time_of_day
from core.models.frequencies import (
    EndOfMonth,
    EveryDay,
    OnceOff,
    OnceWeekly,
    StartOfMonth,
    Weekday,
    all_frequencies,
    parse_frequency,
)
from core.models.instances import InstanceDescriptor, InstanceKey, TaskInstance, TaskStatus
from core.models.tasks import TaskDefinition


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("every_day", EveryDay()),
        ("once_weekly", OnceWeekly()),
        ("monday", Weekday(day=0)),
        ("Saturday", Weekday(day=5)),
        ("start_of_every_month", StartOfMonth()),
        ("start_of_month_jan", StartOfMonth(month=1)),
        ("end-of-month-dec", EndOfMonth(month=12)),
        # earlier single-frequency schema
        ("OnceOff", OnceOff()),
        ("EveryMon", Weekday(day=0)),
        ("StartOfMonth", StartOfMonth()),
    ],
)
def test_parse_frequency_codes(code: str, expected) -> None:
    assert parse_frequency(code) == expected


def test_parse_frequency_tagged_dict_and_passthrough() -> None:
    assert parse_frequency({"kind": "weekday", "day": 2}) == Weekday(day=2)
    freq = EndOfMonth(month=3)
    assert parse_frequency(freq) is freq


@pytest.mark.parametrize("bad", ["fortnightly", "", {"kind": "hourly"}, 42, "sunday"])
def test_parse_frequency_rejects_unknown(bad) -> None:
    with pytest.raises(ValueError):
        parse_frequency(bad)


def test_frequency_codes_round_trip_and_are_unique() -> None:
    variants = all_frequencies()
    codes = [f.code for f in variants]

    assert len(codes) == len(set(codes))
    # 4 plain families + 6 weekdays + 13 start-of-month + 13 end-of-month
    assert len(variants) == 36
    assert all(parse_frequency(f.code) == f for f in variants)


def test_task_definition_accepts_codes_and_single_frequency() -> None:
    task = TaskDefinition.model_validate({
        "id": "fridge",
        "frequencies": "every_day",
        "timing": "09:30",
        "start_date": "2024-01-01",
    })

    assert task.frequencies == (EveryDay(),)
    assert task.due_time == time(9, 30)
    assert task.start_date == date(2024, 1, 1)
    assert task.model_dump(mode="json")["frequencies"] == ["every_day"]


def test_task_definition_validation() -> None:
    with pytest.raises(ValidationError):
        TaskDefinition(id="x", frequencies=[])
    with pytest.raises(ValidationError):
        TaskDefinition(id="x", frequencies="every_day", start_date="2024-02-01", end_date="2024-01-01")
    with pytest.raises(ValidationError):
        TaskDefinition(id="x", frequencies="every_day", start_date="01/02/2024")


def test_task_visibility_bounds() -> None:
    task = TaskDefinition(
        id="x", frequencies="every_day",
        publish_at="2024-01-03", start_date="2024-01-02", end_date="2024-01-10",
    )

    assert task.first_visible_date == date(2024, 1, 3)
    assert not task.is_within_bounds(date(2024, 1, 2))
    assert task.is_within_bounds(date(2024, 1, 10))
    assert not task.is_within_bounds(date(2024, 1, 11))


def test_instance_key_string_form_and_parse() -> None:
    key = InstanceKey(task_id="a:b", frequency="monday", first_appearance_date="2024-01-02")

    assert str(key) == "a:b:monday:2024-01-02"
    assert InstanceKey.parse(str(key)) == key
    with pytest.raises(ValueError):
        InstanceKey.parse("nonsense")


def test_descriptor_materializes_on_first_appearance() -> None:
    carry = InstanceDescriptor(
        task_id="weekly",
        frequency=OnceWeekly(),
        appearance_date=date(2024, 1, 3),
        due_date=date(2024, 1, 6),
        due_time=time(17, 0),
        is_carry=True,
        original_appearance_date=date(2024, 1, 1),
    )
    instance = carry.to_instance()

    assert instance.id == "weekly:once_weekly:2024-01-01"
    assert instance.appearance_date == date(2024, 1, 1)
    assert instance.status == TaskStatus.PENDING
    assert instance.key == carry.key


def test_instance_overrides_take_precedence() -> None:
    instance = TaskInstance(
        id="i", task_id="t", frequency="every_day",
        appearance_date="2024-01-02", due_date="2024-01-02", due_time="17:00",
        due_date_override="2024-01-05", due_time_override="08:00",
    )

    assert instance.effective_due_date == date(2024, 1, 5)
    assert instance.effective_due_time == time(8, 0)
    assert not instance.is_settled


def test_date_helpers_are_strict() -> None:
    assert parse_date("2024-02-29") == date(2024, 2, 29)
    assert parse_time_of_day("7:05") == time(7, 5)
    assert parse_duration("2w").days == 14
    for bad in ("2024-2-1", "2023-02-29", "yesterday"):
        with pytest.raises(ValueError):
            parse_date(bad)
    with pytest.raises(ValueError):
        parse_time_of_day("24:00")
    with pytest.raises(ValueError):
        parse_duration("5y")
