"""TimeContext -- the wall-clock "now" a status pass is evaluated at.

In production mode, current_time is the real 'now'.
In simulation mode, current_time is a chosen instant that a replay advances
day by day. Either way, cutoffs are compared in the business timezone.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

DEFAULT_BUSINESS_TIMEZONE = "Australia/Sydney"


class TimeContext(BaseModel):
    """Current instant plus the timezone the pharmacy operates in."""

    current_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    business_timezone: str = DEFAULT_BUSINESS_TIMEZONE
    mode: Literal["production", "simulation"] = "production"

    @field_validator("business_timezone")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value!r}")
        return value

    @classmethod
    def now(cls, business_timezone: str = DEFAULT_BUSINESS_TIMEZONE) -> TimeContext:
        """Create a production-mode TimeContext with real current time."""
        return cls(
            current_time=datetime.now(timezone.utc),
            business_timezone=business_timezone,
            mode="production",
        )

    @classmethod
    def at(cls, dt: datetime, business_timezone: str = DEFAULT_BUSINESS_TIMEZONE) -> TimeContext:
        """Create a simulation-mode TimeContext at a specific instant.

        A naive `dt` is taken as business-local time.
        """
        return cls(current_time=dt, business_timezone=business_timezone, mode="simulation")

    def advance_to(self, dt: datetime) -> None:
        """Advance the simulated time (only valid in simulation mode)."""
        if self.mode != "simulation":
            raise RuntimeError("Cannot advance time in production mode")
        self.current_time = dt

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)

    @property
    def local_now(self) -> datetime:
        """Naive business-local datetime used for all cutoff comparisons."""
        return to_business_local(self.current_time, self.business_timezone)

    @property
    def today(self) -> date:
        return self.local_now.date()

    @property
    def is_simulation(self) -> bool:
        return self.mode == "simulation"


def to_business_local(moment: datetime, business_timezone: str) -> datetime:
    """Convert an aware datetime to naive business-local time.

    Naive datetimes are assumed to already be business-local.
    """
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(ZoneInfo(business_timezone)).replace(tzinfo=None)
