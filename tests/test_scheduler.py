# tests/test_scheduler.py

from __future__ import annotations

import asyncio
from datetime import date, datetime

import pytest

from core.config import CalendarConfig
from core.models.holidays import PublicHoliday
from core.models.instances import InstanceDescriptor, TaskStatus
from core.protocols import InstanceRepository
from scheduler.runner import ChecklistScheduler
from simulator.mocks import InMemoryInstanceRepository


class FlakyRepository(InMemoryInstanceRepository):
    """Batch upserts always fail; single upserts fail for one task id."""

    def __init__(self, *args, bad_task: str, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.bad_task = bad_task
        self.batch_calls = 0

    def upsert_many(self, descriptors):
        self.batch_calls += 1
        raise RuntimeError("connection reset")

    def upsert(self, descriptor: InstanceDescriptor) -> bool:
        if descriptor.task_id == self.bad_task:
            raise RuntimeError("constraint violation")
        return super().upsert(descriptor)


@pytest.fixture()
def repo(make_task) -> InMemoryInstanceRepository:
    return InMemoryInstanceRepository(
        tasks=[make_task("daily", "every_day"), make_task("weekly", "once_weekly")],
    )


@pytest.fixture()
def scheduler(repo, recurrence, status_engine) -> ChecklistScheduler:
    return ChecklistScheduler(repo, recurrence, status_engine, check_interval=1, horizon_days=7)


def test_in_memory_repository_satisfies_protocol(repo) -> None:
    assert isinstance(repo, InstanceRepository)


@pytest.mark.asyncio
async def test_run_once_materializes_horizon_idempotently(scheduler, repo) -> None:
    first = await scheduler.run_once(datetime(2024, 1, 1, 9, 0))
    second = await scheduler.run_once(datetime(2024, 1, 1, 9, 0))

    assert (first.start, first.end) == (date(2024, 1, 1), date(2024, 1, 7))
    # six daily (Sunday closed) plus one weekly
    assert first.inserted == 7
    assert second.inserted == 0
    assert len(repo) == 7
    assert first.transitions == 0


@pytest.mark.asyncio
async def test_next_day_pass_locks_yesterday_and_skips_carries(scheduler, repo) -> None:
    await scheduler.run_once(datetime(2024, 1, 1, 9, 0))
    summary = await scheduler.run_once(datetime(2024, 1, 2, 9, 0))

    # Jan 8 daily and the second week's weekly instance
    assert summary.inserted == 2
    assert summary.transitions == 1
    missed = repo.get("daily:every_day:2024-01-01")
    assert missed.status == TaskStatus.MISSED and missed.locked
    assert repo.get("weekly:once_weekly:2024-01-01").status == TaskStatus.PENDING


@pytest.mark.asyncio
async def test_holidays_come_from_the_repository(recurrence, status_engine, make_task) -> None:
    repo = InMemoryInstanceRepository(
        tasks=[make_task("daily", "every_day")],
        holidays=[PublicHoliday(date="2024-01-01", name="New Year's Day")],
    )
    scheduler = ChecklistScheduler(
        repo, recurrence, status_engine,
        calendar_config=CalendarConfig(holidays=[{"date": "2024-01-02", "name": "Extra"}]),
        horizon_days=3,
    )

    await scheduler.run_once(datetime(2024, 1, 1, 9, 0))

    assert [i.appearance_date for i in repo.list_instances()] == [date(2024, 1, 3)]


@pytest.mark.asyncio
async def test_failed_batch_falls_back_to_single_rows(recurrence, status_engine, make_task, caplog) -> None:
    repo = FlakyRepository(
        tasks=[make_task("good", "every_day"), make_task("bad", "every_day")],
        bad_task="bad",
    )
    scheduler = ChecklistScheduler(repo, recurrence, status_engine, horizon_days=2)

    summary = await scheduler.run_once(datetime(2024, 1, 1, 9, 0))

    assert repo.batch_calls == 1
    assert summary.inserted == 2
    assert summary.failed == 2
    assert {i.task_id for i in repo.list_instances()} == {"good"}
    assert "retrying one by one" in caplog.text


@pytest.mark.asyncio
async def test_stop_request_cancels_the_pass(scheduler, repo) -> None:
    await scheduler.stop()
    summary = await scheduler.run_once(datetime(2024, 1, 1, 9, 0))

    assert summary.cancelled
    assert summary.inserted == 0
    assert len(repo) == 0


@pytest.mark.asyncio
async def test_loop_runs_until_stopped(scheduler, repo) -> None:
    await scheduler.start()
    assert scheduler.running
    for _ in range(50):
        if len(repo):
            break
        await asyncio.sleep(0.01)
    await scheduler.stop()

    assert not scheduler.running
    assert len(repo) > 0
