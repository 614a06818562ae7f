"""Scheduler runner -- asyncio loop that keeps the checklist materialized.

Every `check_interval` seconds:
1. Loads a full calendar snapshot (weekday sets + stored holidays)
2. Runs a generation pass for today..today+horizon
3. Persists new instances (batch upsert, per-row fallback on failure)
4. Runs a status pass over open instances and applies the transitions
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from core.calendar import HolidayCalendar
from core.config import CalendarConfig
from core.models.instances import InstanceDescriptor
from core.models.results import RunSummary
from core.protocols import InstanceRepository
from core.time_context import DEFAULT_BUSINESS_TIMEZONE, TimeContext
from engine.generator import RecurrenceEngine
from engine.status import StatusTransitionEngine

logger = logging.getLogger(__name__)


class ChecklistScheduler:
    """Async scheduler that generates instances and applies status cutoffs.

    Usage:
        scheduler = ChecklistScheduler(repository, recurrence, status_engine)
        await scheduler.start()  # runs until stopped
    """

    def __init__(
        self,
        repository: InstanceRepository,
        recurrence: RecurrenceEngine,
        status_engine: StatusTransitionEngine,
        calendar_config: CalendarConfig | None = None,
        check_interval: int = 60,
        horizon_days: int = 7,
        business_timezone: str = DEFAULT_BUSINESS_TIMEZONE,
    ) -> None:
        self._repository = repository
        self._recurrence = recurrence
        self._status = status_engine
        self._calendar_config = calendar_config or CalendarConfig()
        self._check_interval = check_interval
        self._horizon_days = max(1, horizon_days)
        self._business_timezone = business_timezone
        self._running = False
        self._stop_requested = False
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        """Start the scheduler loop."""
        self._running = True
        self._stop_requested = False
        self._task = asyncio.create_task(self._loop())
        logger.info("Scheduler started (check every %ds)", self._check_interval)

    async def stop(self) -> None:
        """Stop the scheduler loop; an in-flight pass ends at the next task boundary."""
        self._running = False
        self._stop_requested = True
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Scheduler stopped")

    @property
    def running(self) -> bool:
        return self._running

    async def _loop(self) -> None:
        """Main scheduler loop."""
        while self._running:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Error in scheduler loop")
            await asyncio.sleep(self._check_interval)

    def _should_stop(self) -> bool:
        return self._stop_requested

    def load_calendar(self) -> HolidayCalendar:
        """Snapshot the calendar before a pass; never refreshed mid-pass."""
        return self._calendar_config.build(self._repository.list_holidays())

    async def run_once(self, now: datetime | None = None) -> RunSummary:
        """One generation pass plus one status pass at `now`."""
        clock = (
            TimeContext.now(self._business_timezone)
            if now is None
            else TimeContext.at(now, self._business_timezone)
        )
        start = clock.today
        end = start + timedelta(days=self._horizon_days - 1)
        calendar = self.load_calendar()
        summary = RunSummary(start=start, end=end)

        tasks = self._repository.list_tasks()
        result = self._recurrence.generate(
            tasks, start, end, calendar, should_stop=self._should_stop,
        )
        summary.generated = len(result.descriptors)
        summary.issues = list(result.issues)
        summary.cancelled = result.cancelled

        earliest = min((d.first_appearance_date for d in result.descriptors), default=start)
        existing = self._repository.existing_keys(earliest, end)
        summary.inserted, summary.failed = self._persist(result.unmaterialized(existing))

        if summary.cancelled:
            logger.info("Pass cancelled, skipping status pass")
            return summary

        # Yield to the loop between the two passes
        await asyncio.sleep(0)

        transitions = self._status.evaluate_many(
            self._repository.list_open_instances(), clock, calendar,
            should_stop=self._should_stop,
        )
        for transition in transitions:
            if not transition.changed:
                continue
            try:
                self._repository.apply_transition(transition)
                summary.transitions += 1
            except Exception:
                logger.exception("Failed to apply transition to %s", transition.instance_id)
                summary.failed += 1

        logger.info(
            "Scheduler pass %s..%s: %d generated, %d inserted, %d transitions, %d failed",
            start, end, summary.generated, summary.inserted, summary.transitions, summary.failed,
        )
        return summary

    def _persist(self, descriptors: list[InstanceDescriptor]) -> tuple[int, int]:
        """Batch upsert; on failure retry row by row so one bad row never blocks the rest."""
        if not descriptors:
            return 0, 0
        try:
            return self._repository.upsert_many(descriptors), 0
        except Exception:
            logger.exception(
                "Batch upsert of %d instances failed, retrying one by one", len(descriptors),
            )

        inserted = failed = 0
        for descriptor in descriptors:
            try:
                if self._repository.upsert(descriptor):
                    inserted += 1
            except Exception:
                logger.exception("Failed to upsert instance %s", descriptor.key)
                failed += 1
        return inserted, failed
