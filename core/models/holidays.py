"""Public holiday record, as persisted by the admin holiday screen."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, field_validator

from core.dates import parse_date


class PublicHoliday(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    name: str = ""
    region: str | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _iso_date(cls, value):
        return parse_date(value)
