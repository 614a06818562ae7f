"""Simulation engine -- replays a date range through the checklist pipeline.

Reuses the exact same rules, recurrence engine and status engine.
The only differences from production:
1. TimeContext is advanced day by day instead of reading the clock
2. Storage is an in-memory repository
3. Completions come from the simulation config, not from staff
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, time

from core.calendar import HolidayCalendar
from core.dates import date_range
from core.models.simulations import SimulationConfig, SimulationReport
from core.models.tasks import TaskDefinition
from core.time_context import DEFAULT_BUSINESS_TIMEZONE, TimeContext
from engine.generator import RecurrenceEngine
from engine.status import StatusTransitionEngine
from simulator.mocks import InMemoryInstanceRepository

logger = logging.getLogger(__name__)

_START_OF_DAY = time(0, 0)


class ChecklistSimulator:
    """Replays a checklist over a date range in sandbox mode.

    Usage:
        sim = ChecklistSimulator(recurrence, status_engine, calendar)
        report = sim.run(tasks, SimulationConfig(start="2024-01-01", end="2024-01-31"))
        print(report.status_counts)
    """

    def __init__(
        self,
        recurrence: RecurrenceEngine,
        status_engine: StatusTransitionEngine,
        calendar: HolidayCalendar,
        business_timezone: str = DEFAULT_BUSINESS_TIMEZONE,
    ) -> None:
        self._recurrence = recurrence
        self._status = status_engine
        self._calendar = calendar
        self._business_timezone = business_timezone

    def run(
        self,
        tasks: list[TaskDefinition],
        config: SimulationConfig,
        repository: InMemoryInstanceRepository | None = None,
    ) -> SimulationReport:
        """Execute a full replay.

        For every day: generate and persist new instances, tick off the
        configured tasks at `completion_time`, then run the status pass at
        the lock time so same-day cutoffs are applied.
        """
        report = SimulationReport(config=config)
        report.mark_started()
        repo = repository if repository is not None else InMemoryInstanceRepository(tasks)
        complete = set(config.complete_task_ids)
        clock = TimeContext.at(
            datetime.combine(config.start, _START_OF_DAY), self._business_timezone,
        )

        logger.info("Starting simulation %s (%s to %s)", report.id, config.start, config.end)

        try:
            seen_issues = set()
            for day in date_range(config.start, config.end):
                clock.advance_to(datetime.combine(day, _START_OF_DAY))

                result = self._recurrence.generate(tasks, day, day, self._calendar)
                report.instances_created += repo.upsert_many(result.descriptors)
                for issue in result.issues:
                    if issue not in seen_issues:
                        seen_issues.add(issue)
                        report.issues.append(issue)

                if complete:
                    completed_at = datetime.combine(day, config.completion_time)
                    clock.advance_to(completed_at)
                    for instance in repo.list_open_instances():
                        if instance.task_id in complete and instance.appearance_date <= day:
                            repo.mark_done(instance.id, completed_at)
                            report.completions += 1

                clock.advance_to(datetime.combine(day, self._status.lock_time))
                for transition in self._status.evaluate_many(
                    repo.list_open_instances(), clock, self._calendar,
                ):
                    if transition.changed:
                        repo.apply_transition(transition)
                        report.transitions += 1

                report.days_simulated += 1

            instances = repo.list_instances()
            report.status_counts = dict(Counter(i.status.value for i in instances))
            report.frequency_counts = dict(Counter(i.frequency.code for i in instances))
            report.mark_completed()

            logger.info(
                "Simulation complete: %s | %d days | %d instances | %d transitions",
                report.id, report.days_simulated, report.instances_created, report.transitions,
            )
        except Exception as e:
            logger.exception("Simulation failed")
            report.mark_failed(str(e))

        return report
