"""Frequency rule evaluator -- decides whether a task shows on a given date.

Pure and deterministic: (task, frequency, calendar, date) -> Appearance.
Nothing is cached, so a changed holiday calendar is picked up by the next
call automatically.
"""

from __future__ import annotations

import logging
from datetime import date

from core.calendar import HolidayCalendar
from core.dates import parse_date
from core.models.frequencies import Frequency, parse_frequency
from core.models.instances import TaskInstance
from core.models.results import Appearance, Occurrence, ValidationIssue
from core.models.tasks import TaskDefinition
from core.protocols import TaskValidationError
from core.registry import RuleRegistry

logger = logging.getLogger(__name__)


class FrequencyRuleEvaluator:
    """Dispatches to the registered rule for each frequency family.

    Applies the bounds every family shares (active flag, publish/start/end
    window) and classifies a positive result as a new appearance or a
    carry of an earlier one.
    """

    def __init__(self, registry: RuleRegistry) -> None:
        if not registry.sealed:
            registry.seal()
        self._registry = registry

    def evaluate(
        self,
        task: TaskDefinition,
        frequency: Frequency | str,
        on: date | str,
        calendar: HolidayCalendar,
    ) -> Appearance:
        """Evaluate one (task, frequency) on one date."""
        on = parse_date(on)
        frequency = parse_frequency(frequency)

        if not task.active or not task.is_within_bounds(on):
            return Appearance.not_applicable(on)

        try:
            occurrence = self.occurrence(task, frequency, on, calendar)
        except TaskValidationError as exc:
            return Appearance.not_applicable(
                on,
                issue=ValidationIssue(task_id=task.id, frequency=frequency.code, message=str(exc)),
            )

        if occurrence is None:
            return Appearance.not_applicable(on)

        # No rendering before the task is published or started
        first = occurrence.appearance_date
        bound = task.first_visible_date
        if bound is not None and first < bound:
            first = bound

        if on < first or not occurrence.covers(on):
            return Appearance.not_applicable(on)

        return Appearance(
            kind="new" if on == first else "carry",
            target_date=on,
            appearance_date=first,
            due_date=occurrence.due_date,
            fallback=occurrence.fallback,
        )

    def occurrence(
        self,
        task: TaskDefinition,
        frequency: Frequency,
        on: date,
        calendar: HolidayCalendar,
    ) -> Occurrence | None:
        """Raw occurrence of the period containing `on`, before task bounds."""
        rule = self._registry.for_frequency(frequency)
        return rule.occurrence(task, frequency, on, calendar)

    def lock_date(self, instance: TaskInstance, calendar: HolidayCalendar) -> date | None:
        """Lock cutoff date for a materialized instance (None: never locks)."""
        rule = self._registry.for_frequency(instance.frequency)
        return rule.lock_date(instance, calendar)
