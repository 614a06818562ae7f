"""Frequency models -- the closed set of recurrence variants a task can carry.

Each family is its own frozen model with a `kind` tag. Weekday carries the
scheduled day; StartOfMonth/EndOfMonth carry an optional month filter
("every month" when absent). Together they cover the ~30 string codes the
admin UI and the database use, e.g. "monday", "start_of_month_jan".
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

from core.dates import MONTH_NAMES

WEEKDAY_CODES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


class Frequency(BaseModel):
    """Base for all frequency variants. Frozen so it can be part of a key."""

    model_config = ConfigDict(frozen=True)

    kind: str

    @property
    def code(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.code


class OnceOff(Frequency):
    kind: Literal["once_off"] = "once_off"

    @property
    def code(self) -> str:
        return "once_off"


class EveryDay(Frequency):
    kind: Literal["every_day"] = "every_day"

    @property
    def code(self) -> str:
        return "every_day"


class OnceWeekly(Frequency):
    kind: Literal["once_weekly"] = "once_weekly"

    @property
    def code(self) -> str:
        return "once_weekly"


class Weekday(Frequency):
    """A specific day of the Monday-Saturday week (0=Mon .. 5=Sat)."""

    kind: Literal["weekday"] = "weekday"
    day: int = Field(ge=0, le=5)

    @property
    def code(self) -> str:
        return WEEKDAY_CODES[self.day]


class OnceMonthly(Frequency):
    kind: Literal["once_monthly"] = "once_monthly"

    @property
    def code(self) -> str:
        return "once_monthly"


class StartOfMonth(Frequency):
    kind: Literal["start_of_month"] = "start_of_month"
    month: int | None = Field(default=None, ge=1, le=12)

    @property
    def code(self) -> str:
        if self.month is None:
            return "start_of_every_month"
        return f"start_of_month_{MONTH_NAMES[self.month - 1]}"


class EndOfMonth(Frequency):
    kind: Literal["end_of_month"] = "end_of_month"
    month: int | None = Field(default=None, ge=1, le=12)

    @property
    def code(self) -> str:
        if self.month is None:
            return "end_of_every_month"
        return f"end_of_month_{MONTH_NAMES[self.month - 1]}"


FREQUENCY_CLASSES: tuple[type[Frequency], ...] = (
    OnceOff,
    EveryDay,
    OnceWeekly,
    Weekday,
    OnceMonthly,
    StartOfMonth,
    EndOfMonth,
)

FREQUENCY_KINDS: tuple[str, ...] = tuple(
    cls.model_fields["kind"].default for cls in FREQUENCY_CLASSES
)

_CLASSES_BY_KIND = dict(zip(FREQUENCY_KINDS, FREQUENCY_CLASSES))


def _build_code_table() -> dict[str, Frequency]:
    table: dict[str, Frequency] = {}
    variants: list[Frequency] = [OnceOff(), EveryDay(), OnceWeekly(), OnceMonthly()]
    variants += [Weekday(day=day) for day in range(6)]
    for month in [None, *range(1, 13)]:
        variants.append(StartOfMonth(month=month))
        variants.append(EndOfMonth(month=month))
    for variant in variants:
        table[variant.code] = variant

    # Codes written by the earlier single-frequency schema
    legacy = {
        "onceoff": OnceOff(),
        "everyday": EveryDay(),
        "onceweekly": OnceWeekly(),
        "oncemonthly": OnceMonthly(),
        "startofmonth": StartOfMonth(),
        "endofmonth": EndOfMonth(),
    }
    for day, short in enumerate(("mon", "tue", "wed", "thu", "fri", "sat")):
        legacy[f"every{short}"] = Weekday(day=day)
    table.update(legacy)
    return table


_CODE_TABLE = _build_code_table()


def all_frequencies() -> list[Frequency]:
    """Every distinct variant, one per canonical code."""
    seen: dict[str, Frequency] = {}
    for variant in _CODE_TABLE.values():
        seen.setdefault(variant.code, variant)
    return list(seen.values())


def parse_frequency(value: Any) -> Frequency:
    """Convert a code string, a tagged dict or a model into a Frequency.

    Raises ValueError for anything outside the closed set.
    """
    if isinstance(value, Frequency):
        return value

    if isinstance(value, dict):
        kind = value.get("kind")
        cls = _CLASSES_BY_KIND.get(kind)
        if cls is None:
            raise ValueError(f"Unknown frequency kind: {kind!r}")
        return cls(**value)

    if isinstance(value, str):
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        found = _CODE_TABLE.get(key) or _CODE_TABLE.get(key.replace("_", ""))
        if found is None:
            raise ValueError(f"Unknown frequency code: {value!r}")
        return found

    raise ValueError(f"Cannot interpret {value!r} as a frequency")


# Field type used by the task/instance models: accepts codes, serializes as code
FrequencyField = Annotated[
    Frequency,
    BeforeValidator(parse_frequency),
    PlainSerializer(lambda f: f.code, return_type=str),
]
