"""Aggregated report rows that are cached between requests."""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

# "" marks a month without samples, distinct from a measured zero.
NO_DATA = ""

SummaryValue = Union[float, Literal[""]]


class MonthlySummary(BaseModel):
    """High/low/average per metric for one calendar month."""

    month: str
    ammonia_max: SummaryValue = NO_DATA
    ammonia_min: SummaryValue = NO_DATA
    ammonia_avg: SummaryValue = NO_DATA
    temp_max: SummaryValue = NO_DATA
    temp_min: SummaryValue = NO_DATA
    temp_avg: SummaryValue = NO_DATA

    @classmethod
    def empty(cls, month: str) -> "MonthlySummary":
        return cls(month=month)

    @property
    def has_data(self) -> bool:
        return any(
            value != NO_DATA
            for value in (
                self.ammonia_max,
                self.ammonia_min,
                self.ammonia_avg,
                self.temp_max,
                self.temp_min,
                self.temp_avg,
            )
        )


def summary_number(value: SummaryValue) -> Optional[float]:
    return None if value == NO_DATA else float(value)
