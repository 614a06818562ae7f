"""In-memory storage for simulation mode and tests.

Implements the InstanceRepository protocol without a database. Instances
are keyed by their InstanceKey string, so repeated upserts of the same
occurrence are no-ops.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime

from core.models.holidays import PublicHoliday
from core.models.instances import InstanceDescriptor, InstanceKey, TaskInstance, TaskStatus
from core.models.results import StatusTransition
from core.models.tasks import TaskDefinition

logger = logging.getLogger(__name__)


class InMemoryInstanceRepository:
    """Dict-backed repository of task definitions, holidays and instances."""

    def __init__(
        self,
        tasks: Iterable[TaskDefinition] = (),
        holidays: Iterable[PublicHoliday] = (),
    ) -> None:
        self._tasks = list(tasks)
        self._holidays = list(holidays)
        self._instances: dict[str, TaskInstance] = {}

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    def list_tasks(self) -> list[TaskDefinition]:
        return list(self._tasks)

    def list_holidays(self) -> list[PublicHoliday]:
        return list(self._holidays)

    def set_tasks(self, tasks: Iterable[TaskDefinition]) -> None:
        self._tasks = list(tasks)

    def add_holiday(self, holiday: PublicHoliday) -> None:
        self._holidays.append(holiday)

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    def existing_keys(self, start: date, end: date) -> set[InstanceKey]:
        return {
            instance.key
            for instance in self._instances.values()
            if start <= instance.first_appearance_date <= end
        }

    def upsert_many(self, descriptors: Iterable[InstanceDescriptor]) -> int:
        # Materialize everything first so a bad row leaves the store untouched
        pending = {}
        for descriptor in descriptors:
            instance_id = str(descriptor.key)
            if instance_id in self._instances or instance_id in pending:
                continue
            pending[instance_id] = descriptor.to_instance()
        self._instances.update(pending)
        return len(pending)

    def upsert(self, descriptor: InstanceDescriptor) -> bool:
        instance_id = str(descriptor.key)
        if instance_id in self._instances:
            return False
        self._instances[instance_id] = descriptor.to_instance()
        return True

    def list_open_instances(self) -> list[TaskInstance]:
        return [
            instance for instance in self.list_instances()
            if not instance.locked and instance.status != TaskStatus.DONE
        ]

    def list_instances(self) -> list[TaskInstance]:
        return sorted(
            self._instances.values(),
            key=lambda i: (i.appearance_date, i.task_id, i.frequency.code),
        )

    def get(self, instance_id: str) -> TaskInstance:
        return self._instances[instance_id]

    def delete(self, instance_id: str) -> bool:
        return self._instances.pop(instance_id, None) is not None

    def apply_transition(self, transition: StatusTransition) -> None:
        instance = self._instances[transition.instance_id]
        if not transition.changed:
            return
        instance.status = transition.new_status
        instance.locked = transition.locked
        logger.debug(
            "Instance %s: %s -> %s (%s)",
            instance.id, transition.old_status.value, transition.new_status.value,
            transition.reason,
        )

    def mark_done(self, instance_id: str, at: datetime) -> TaskInstance:
        """External completion; locked instances cannot be completed."""
        instance = self._instances[instance_id]
        if instance.locked:
            raise ValueError(f"Instance {instance_id} is locked")
        instance.status = TaskStatus.DONE
        instance.completed_at = at
        return instance

    def __len__(self) -> int:
        return len(self._instances)
