"""Status transition engine -- moves instances to overdue and missed.

The engine is the only component that decides time-driven transitions.
Completion (-> done), un-completion and unlocking are external actions.
Completely deterministic: same instance, calendar and instant give the
same decision, and a settled instance is always a no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, time

from core.calendar import HolidayCalendar
from core.dates import parse_time_of_day
from core.models.instances import TaskInstance, TaskStatus
from core.models.results import StatusTransition
from core.time_context import DEFAULT_BUSINESS_TIMEZONE, TimeContext, to_business_local
from engine.evaluator import FrequencyRuleEvaluator

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIME = time(23, 59)

_LOCK_REASONS = {
    "every_day": "Missed at end of day",
    "once_weekly": "Missed at due date cutoff",
    "once_monthly": "Missed at due date cutoff",
    "end_of_month": "Missed at due date cutoff",
    "weekday": "Missed at week cutoff",
    "start_of_month": "Missed at month cutoff",
}


class StatusTransitionEngine:
    """Computes status/lock transitions for persisted instances.

    Usage:
        engine = StatusTransitionEngine(evaluator, business_timezone="Australia/Sydney")
        transitions = engine.evaluate_many(instances, TimeContext.now(), calendar)
        changed = [t for t in transitions if t.changed]
    """

    def __init__(
        self,
        evaluator: FrequencyRuleEvaluator,
        business_timezone: str = DEFAULT_BUSINESS_TIMEZONE,
        lock_time: time | str = DEFAULT_LOCK_TIME,
    ) -> None:
        self._evaluator = evaluator
        self._business_timezone = business_timezone
        self._lock_time = parse_time_of_day(lock_time)

    @property
    def lock_time(self) -> time:
        return self._lock_time

    def evaluate(
        self,
        instance: TaskInstance,
        now: datetime | TimeContext,
        calendar: HolidayCalendar,
    ) -> StatusTransition:
        """Decide the transition for one instance at `now`."""
        local_now = self._local(now)

        if instance.is_settled:
            return self._unchanged(instance, "Already settled")

        lock_date = self._evaluator.lock_date(instance, calendar)
        if lock_date is not None and local_now >= datetime.combine(lock_date, self._lock_time):
            return StatusTransition(
                instance_id=instance.id,
                old_status=instance.status,
                new_status=TaskStatus.MISSED,
                locked=True,
                reason=_LOCK_REASONS.get(instance.frequency.kind, "Missed at cutoff"),
                changed=True,
            )

        due_at = datetime.combine(instance.effective_due_date, instance.effective_due_time)
        if (
            instance.status in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)
            and local_now >= due_at
        ):
            return StatusTransition(
                instance_id=instance.id,
                old_status=instance.status,
                new_status=TaskStatus.OVERDUE,
                locked=False,
                reason="Past due time",
                changed=True,
            )

        return self._unchanged(instance, "No change")

    def evaluate_many(
        self,
        instances: Iterable[TaskInstance],
        now: datetime | TimeContext,
        calendar: HolidayCalendar,
        should_stop: Callable[[], bool] | None = None,
    ) -> list[StatusTransition]:
        """Evaluate a batch; `should_stop` is checked between instances."""
        results: list[StatusTransition] = []
        for instance in instances:
            if should_stop is not None and should_stop():
                logger.info("Status pass cancelled after %d instances", len(results))
                break
            results.append(self.evaluate(instance, now, calendar))

        changed = sum(1 for r in results if r.changed)
        logger.info("Status pass: %d evaluated, %d transitions", len(results), changed)
        return results

    def _local(self, now: datetime | TimeContext) -> datetime:
        if isinstance(now, TimeContext):
            return now.local_now
        return to_business_local(now, self._business_timezone)

    @staticmethod
    def _unchanged(instance: TaskInstance, reason: str) -> StatusTransition:
        return StatusTransition(
            instance_id=instance.id,
            old_status=instance.status,
            new_status=instance.status,
            locked=instance.locked,
            reason=reason,
            changed=False,
        )
