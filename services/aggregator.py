"""Bucket-then-reduce aggregation of sensor readings."""

from __future__ import annotations

import calendar
import statistics
from datetime import datetime, timezone, tzinfo
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from models.records import Reading, as_utc
from models.reports import MONTH_NAMES, NO_DATA, MonthlySummary, SummaryValue

HOUR_KEYS = tuple(f"{hour:02d}:00" for hour in range(24))

MonthReadings = Tuple[Sequence[Reading], Sequence[Reading]]


def _round(value: float) -> float:
    return round(value, 2)


def _local(timestamp: datetime, tz: tzinfo) -> datetime:
    return as_utc(timestamp).astimezone(tz)


def month_is_future(year: int, month: int, now: datetime) -> bool:
    return year > now.year or (year == now.year and month > now.month)


def month_is_complete(year: int, month: int, now: datetime) -> bool:
    return year < now.year or (year == now.year and month < now.month)


class Aggregator:
    """Stateless aggregation component that can be unit tested in isolation."""

    def aggregate_hourly(
        self, readings: Iterable[Reading], tz: tzinfo = timezone.utc
    ) -> Dict[str, Optional[float]]:
        """Average readings by hour of day; every hour key is always present."""
        buckets: List[List[float]] = [[] for _ in range(24)]
        for reading in readings:
            if not reading.is_valid:
                continue
            buckets[_local(reading.timestamp, tz).hour].append(reading.value)

        return {
            key: _round(statistics.fmean(values)) if values else None
            for key, values in zip(HOUR_KEYS, buckets)
        }

    def aggregate_daily(
        self,
        readings: Iterable[Reading],
        year: int,
        month: int,
        tz: tzinfo = timezone.utc,
    ) -> List[Optional[float]]:
        """One average per calendar day of the month; days without data are ``None``."""
        days_in_month = calendar.monthrange(year, month)[1]
        buckets: List[List[float]] = [[] for _ in range(days_in_month)]
        for reading in readings:
            if not reading.is_valid:
                continue
            local = _local(reading.timestamp, tz)
            if local.year != year or local.month != month:
                continue
            buckets[local.day - 1].append(reading.value)

        return [_round(statistics.fmean(values)) if values else None for values in buckets]

    def aggregate_month(
        self,
        month_name: str,
        ammonia: Iterable[Reading],
        temperature: Iterable[Reading],
    ) -> MonthlySummary:
        ammonia_max, ammonia_min, ammonia_avg = self._extremes(ammonia)
        temp_max, temp_min, temp_avg = self._extremes(temperature)
        return MonthlySummary(
            month=month_name,
            ammonia_max=ammonia_max,
            ammonia_min=ammonia_min,
            ammonia_avg=ammonia_avg,
            temp_max=temp_max,
            temp_min=temp_min,
            temp_avg=temp_avg,
        )

    def aggregate_annual(
        self,
        year: int,
        monthly_readings: Mapping[int, MonthReadings],
        now: datetime,
    ) -> List[MonthlySummary]:
        """Twelve month rows; future months and months without data are empty."""
        rows: List[MonthlySummary] = []
        for month, name in enumerate(MONTH_NAMES, start=1):
            if month_is_future(year, month, now):
                rows.append(MonthlySummary.empty(name))
                continue
            ammonia, temperature = monthly_readings.get(month, ((), ()))
            rows.append(self.aggregate_month(name, ammonia, temperature))
        return rows

    @staticmethod
    def _extremes(
        readings: Iterable[Reading],
    ) -> Tuple[SummaryValue, SummaryValue, SummaryValue]:
        values = [reading.value for reading in readings if reading.is_valid]
        if not values:
            return NO_DATA, NO_DATA, NO_DATA
        return _round(max(values)), _round(min(values)), _round(statistics.fmean(values))
