"""Checklist engine entrypoint -- wires the components together behind a CLI.

Usage:
    python main.py generate --start 2024-01-01 --end 2024-01-07
    python main.py status --instances instances.json --now 2024-01-06T23:59
    python main.py simulate --start 2024-01-01 --end 2024-01-31 --complete daily-fridge-temp
    python main.py holiday 2024-01-26
    python main.py run
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from typing import Any

from core.config import AppConfig, load_config
from core.data.loader import DataFileError, load_calendar, load_holidays, load_instances, load_tasks
from core.dates import parse_date
from core.models.simulations import SimulationConfig
from core.time_context import TimeContext
from engine.evaluator import FrequencyRuleEvaluator
from engine.generator import RecurrenceEngine
from engine.status import StatusTransitionEngine
from plugins.frequency_rules import build_rule_registry
from scheduler.runner import ChecklistScheduler
from simulator.engine import ChecklistSimulator
from simulator.mocks import InMemoryInstanceRepository

logger = logging.getLogger("checklist")


def setup_logging(level: str) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pharmacy checklist recurrence and status engine")
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config.yaml (default: ~/.checklist/config.yaml)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Path to .env file (default: ~/.checklist/.env)",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Overrides logging.level")

    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate instance descriptors for a date range")
    gen.add_argument("--start", required=True)
    gen.add_argument("--end", required=True)
    gen.add_argument("--tasks", default=None, help="Task file (default: scheduler.tasks_file)")
    gen.add_argument(
        "--all", action="store_true",
        help="Emit every rendering including carries, not one row per instance",
    )

    status = sub.add_parser("status", help="Evaluate status transitions for stored instances")
    status.add_argument("--instances", required=True)
    status.add_argument("--now", default=None, help="ISO datetime (default: current time)")

    sim = sub.add_parser("simulate", help="Replay a date range day by day")
    sim.add_argument("--start", required=True)
    sim.add_argument("--end", required=True)
    sim.add_argument("--tasks", default=None)
    sim.add_argument(
        "--complete", action="append", default=[], metavar="TASK_ID",
        help="Tick off this task every simulated day (repeatable)",
    )

    hol = sub.add_parser("holiday", help="Check whether a date is a business day")
    hol.add_argument("date")

    run = sub.add_parser("run", help="Run the scheduler loop until interrupted")
    run.add_argument("--tasks", default=None)

    return parser.parse_args(argv)


def build_engines(
    config: AppConfig,
) -> tuple[FrequencyRuleEvaluator, RecurrenceEngine, StatusTransitionEngine]:
    """Rule registry -> evaluator -> recurrence and status engines."""
    registry = build_rule_registry(
        weekday_due_date=config.engine.weekday_due_date,
        start_of_month_due_workdays=config.engine.start_of_month_due_workdays,
        end_of_month_min_workdays=config.engine.end_of_month_min_workdays,
    )
    evaluator = FrequencyRuleEvaluator(registry)
    recurrence = RecurrenceEngine(evaluator)
    status = StatusTransitionEngine(
        evaluator,
        business_timezone=config.engine.business_timezone,
        lock_time=config.engine.lock_time,
    )
    return evaluator, recurrence, status


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _dump(models) -> list[dict]:
    return [m.model_dump(mode="json") for m in models]


def cmd_generate(config: AppConfig, args: argparse.Namespace) -> int:
    _, recurrence, _ = build_engines(config)
    tasks = load_tasks(args.tasks or config.tasks_path)
    calendar = load_calendar(config)

    result = recurrence.generate(tasks, args.start, args.end, calendar)
    descriptors = result.descriptors if args.all else result.unmaterialized(set())
    _emit({
        "start": result.start.isoformat(),
        "end": result.end.isoformat(),
        "descriptors": _dump(descriptors),
        "issues": _dump(result.issues),
    })
    return 0


def cmd_status(config: AppConfig, args: argparse.Namespace) -> int:
    _, _, status = build_engines(config)
    instances = load_instances(args.instances)
    calendar = load_calendar(config)

    tz = config.engine.business_timezone
    clock = TimeContext.at(datetime.fromisoformat(args.now), tz) if args.now else TimeContext.now(tz)
    transitions = status.evaluate_many(instances, clock, calendar)
    _emit({"now": clock.local_now.isoformat(), "transitions": _dump(transitions)})
    return 0


def cmd_simulate(config: AppConfig, args: argparse.Namespace) -> int:
    _, recurrence, status = build_engines(config)
    tasks = load_tasks(args.tasks or config.tasks_path)
    calendar = load_calendar(config)

    simulator = ChecklistSimulator(
        recurrence, status, calendar, business_timezone=config.engine.business_timezone,
    )
    report = simulator.run(tasks, SimulationConfig(
        start=args.start,
        end=args.end,
        complete_task_ids=args.complete,
    ))
    _emit(report.model_dump(mode="json"))
    return 0 if report.status == "completed" else 1


def cmd_holiday(config: AppConfig, args: argparse.Namespace) -> int:
    calendar = load_calendar(config)
    day = parse_date(args.date)
    _emit({
        "date": day.isoformat(),
        "is_holiday": calendar.is_holiday(day),
        "holiday_name": calendar.holiday_name(day),
        "is_business_day": calendar.is_business_day(day),
        "is_workday": calendar.is_workday(day),
    })
    return 0


async def run(config: AppConfig, args: argparse.Namespace) -> None:
    """Start the scheduler against an in-memory repository seeded from files."""
    _, recurrence, status = build_engines(config)
    holidays = []
    if config.holidays_path is not None and config.holidays_path.exists():
        holidays = load_holidays(config.holidays_path)
    repository = InMemoryInstanceRepository(
        tasks=load_tasks(args.tasks or config.tasks_path),
        holidays=holidays,
    )

    scheduler = ChecklistScheduler(
        repository,
        recurrence,
        status,
        calendar_config=config.calendar,
        check_interval=config.scheduler.check_interval_seconds,
        horizon_days=config.scheduler.horizon_days,
        business_timezone=config.engine.business_timezone,
    )
    await scheduler.start()
    logger.info("Checklist scheduler running, state directory: %s", config.home_path)

    # Run until interrupted
    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        logger.info("Shutting down...")
        await scheduler.stop()
        logger.info("Shutdown complete (%d instances in memory)", len(repository))


COMMANDS = {
    "generate": cmd_generate,
    "status": cmd_status,
    "simulate": cmd_simulate,
    "holiday": cmd_holiday,
}


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = load_config(config_path=args.config, env_path=args.env)
    setup_logging(args.log_level or config.logging.level)

    try:
        if args.command == "run":
            asyncio.run(run(config, args))
            return 0
        return COMMANDS[args.command](config, args)
    except KeyboardInterrupt:
        return 130
    except (DataFileError, ValueError) as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
