"""Pydantic data models shared across all components."""

from core.models.frequencies import (
    EndOfMonth,
    EveryDay,
    Frequency,
    OnceMonthly,
    OnceOff,
    OnceWeekly,
    StartOfMonth,
    Weekday,
    parse_frequency,
)
from core.models.holidays import PublicHoliday
from core.models.instances import InstanceDescriptor, InstanceKey, TaskInstance, TaskStatus
from core.models.results import (
    Appearance,
    GenerationResult,
    Occurrence,
    RegenerationPlan,
    RunSummary,
    StatusTransition,
    ValidationIssue,
)
from core.models.simulations import SimulationReport
from core.models.tasks import TaskDefinition

__all__ = [
    "Frequency",
    "OnceOff",
    "EveryDay",
    "OnceWeekly",
    "Weekday",
    "OnceMonthly",
    "StartOfMonth",
    "EndOfMonth",
    "parse_frequency",
    "PublicHoliday",
    "TaskDefinition",
    "TaskStatus",
    "TaskInstance",
    "InstanceKey",
    "InstanceDescriptor",
    "Occurrence",
    "Appearance",
    "ValidationIssue",
    "GenerationResult",
    "RegenerationPlan",
    "StatusTransition",
    "RunSummary",
    "SimulationReport",
]
