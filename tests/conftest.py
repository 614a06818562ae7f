# tests/conftest.py

from __future__ import annotations

import pytest

from core.calendar import HolidayCalendar
from core.models.tasks import TaskDefinition
from engine.evaluator import FrequencyRuleEvaluator
from engine.generator import RecurrenceEngine
from engine.status import StatusTransitionEngine
from plugins.frequency_rules import build_rule_registry


def make_task(task_id: str = "t1", frequencies="every_day", **kwargs) -> TaskDefinition:
    """TaskDefinition with sensible defaults for tests."""
    return TaskDefinition(id=task_id, title=task_id, frequencies=frequencies, **kwargs)


@pytest.fixture(name="make_task")
def make_task_fixture():
    return make_task


@pytest.fixture()
def calendar() -> HolidayCalendar:
    """No holidays, Sunday closed, Monday-Friday workweek."""
    return HolidayCalendar()


@pytest.fixture()
def new_year_calendar() -> HolidayCalendar:
    return HolidayCalendar.from_records([
        {"date": "2024-01-01", "name": "New Year's Day"},
        {"date": "2024-01-26", "name": "Australia Day"},
    ])


@pytest.fixture()
def evaluator() -> FrequencyRuleEvaluator:
    return FrequencyRuleEvaluator(build_rule_registry())


@pytest.fixture()
def recurrence(evaluator: FrequencyRuleEvaluator) -> RecurrenceEngine:
    return RecurrenceEngine(evaluator)


@pytest.fixture()
def status_engine(evaluator: FrequencyRuleEvaluator) -> StatusTransitionEngine:
    return StatusTransitionEngine(evaluator, business_timezone="Australia/Sydney")
