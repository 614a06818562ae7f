"""Recurrence engine -- turns task definitions into instance descriptors.

Walks a date range, asks the evaluator about every (task, frequency, date)
and emits descriptors keyed by (task id, frequency, first appearance date).
It never touches storage: callers diff the keys against what they already
persisted, so running the same pass twice adds nothing the second time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import date

from core.calendar import HolidayCalendar
from core.dates import date_range, parse_date
from core.models.instances import InstanceDescriptor, TaskInstance, TaskStatus
from core.models.results import GenerationResult, RegenerationPlan
from core.models.tasks import TaskDefinition
from engine.evaluator import FrequencyRuleEvaluator

logger = logging.getLogger(__name__)


class RecurrenceEngine:
    """Generates new and carry instance descriptors over a date range.

    Usage:
        engine = RecurrenceEngine(evaluator)
        result = engine.generate(tasks, "2024-01-01", "2024-01-07", calendar)
        to_insert = result.unmaterialized(existing_keys)
    """

    def __init__(self, evaluator: FrequencyRuleEvaluator) -> None:
        self._evaluator = evaluator

    def generate(
        self,
        tasks: Iterable[TaskDefinition],
        start: date | str,
        end: date | str,
        calendar: HolidayCalendar,
        should_stop: Callable[[], bool] | None = None,
    ) -> GenerationResult:
        """Evaluate every active task over [start, end].

        `should_stop` is checked between tasks; when it returns True the pass
        ends early and the partial result is flagged `cancelled`.
        """
        start, end = _parse_range(start, end)
        result = GenerationResult(start=start, end=end)
        seen_issues: set[tuple[str, str, str]] = set()

        for task in tasks:
            if should_stop is not None and should_stop():
                logger.info("Generation cancelled after %d tasks", result.tasks_evaluated)
                result.cancelled = True
                break

            result.tasks_evaluated += 1
            if not task.active or not _overlaps(task, start, end):
                continue

            for frequency in task.frequencies:
                for day in date_range(start, end):
                    appearance = self._evaluator.evaluate(task, frequency, day, calendar)

                    if appearance.issue is not None:
                        marker = (task.id, frequency.code, appearance.issue.message)
                        if marker not in seen_issues:
                            seen_issues.add(marker)
                            result.issues.append(appearance.issue)
                            logger.warning(
                                "Task %s (%s) skipped: %s",
                                task.id, frequency.code, appearance.issue.message,
                            )
                        break

                    if not appearance.applies:
                        continue

                    result.descriptors.append(InstanceDescriptor(
                        task_id=task.id,
                        frequency=frequency,
                        appearance_date=day,
                        due_date=appearance.due_date,
                        due_time=task.due_time,
                        is_carry=appearance.is_carry,
                        original_appearance_date=appearance.appearance_date,
                    ))

        logger.info(
            "Generated %d descriptors (%d new, %d carry) for %s..%s from %d tasks",
            len(result.descriptors),
            len(result.new_descriptors),
            len(result.carry_descriptors),
            start, end, result.tasks_evaluated,
        )
        return result

    def regenerate(
        self,
        tasks: Iterable[TaskDefinition],
        start: date | str,
        end: date | str,
        calendar: HolidayCalendar,
        existing: Iterable[TaskInstance],
        today: date | str | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> RegenerationPlan:
        """Force-regenerate plan for [start, end].

        Only instances still `pending` (and unlocked) in the range may be
        deleted and recreated. Anything else -- done, in progress, overdue,
        missed or locked -- is protected, and no descriptor is recreated for
        a protected key. Instances first appearing before `today` are
        protected too: past passes are never rewritten.
        """
        start, end = _parse_range(start, end)
        today = parse_date(today) if today is not None else None

        to_delete: list[TaskInstance] = []
        protected: list[TaskInstance] = []
        kept_keys = set()
        for instance in existing:
            first = instance.first_appearance_date
            if not (start <= first <= end):
                kept_keys.add(instance.key)
                continue
            if _replaceable(instance) and (today is None or first >= today):
                to_delete.append(instance)
            else:
                protected.append(instance)
                kept_keys.add(instance.key)

        fresh = self.generate(tasks, start, end, calendar, should_stop=should_stop)
        to_create = fresh.unmaterialized(kept_keys)
        if today is not None:
            to_create = [d for d in to_create if d.first_appearance_date >= today]

        logger.info(
            "Regeneration plan %s..%s: delete %d pending, create %d, protect %d",
            start, end, len(to_delete), len(to_create), len(protected),
        )
        return RegenerationPlan(
            to_delete=to_delete,
            to_create=to_create,
            protected=protected,
            issues=list(fresh.issues),
            cancelled=fresh.cancelled,
        )


def _replaceable(instance: TaskInstance) -> bool:
    return instance.status == TaskStatus.PENDING and not instance.locked


def _overlaps(task: TaskDefinition, start: date, end: date) -> bool:
    first = task.first_visible_date
    if first is not None and first > end:
        return False
    if task.end_date is not None and task.end_date < start:
        return False
    return True


def _parse_range(start: date | str, end: date | str) -> tuple[date, date]:
    start, end = parse_date(start), parse_date(end)
    if end < start:
        raise ValueError(f"Invalid date range: {start} is after {end}")
    return start, end
