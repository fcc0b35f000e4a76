"""Descriptive statistics and least-squares trend over numeric series."""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from typing import Iterable, Literal, Optional, Sequence

from models.records import Reading

Trend = Literal["increasing", "decreasing", "stable"]

# Slope band for index-based series (one unit per sample).
INDEX_TREND_THRESHOLD = 0.05


@dataclass(frozen=True)
class StatisticsSummary:
    """Computed statistics for a series of values."""

    mean: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    std_dev: Optional[float] = None
    trend: Trend = "stable"
    count: int = 0


def classify_trend(delta: float, threshold: float) -> Trend:
    if delta > threshold:
        return "increasing"
    if delta < -threshold:
        return "decreasing"
    return "stable"


def linear_regression(points: Sequence[tuple[float, float]]) -> tuple[float, float]:
    """Ordinary least squares fit ``value = slope * x + intercept``.

    A single point, or points sharing one x coordinate, yield a flat line
    through the mean of the values.
    """
    if not points:
        raise ValueError("linear_regression requires at least one point")

    xs = [float(x) for x, _ in points]
    ys = [float(y) for _, y in points]
    if len(points) == 1:
        return 0.0, ys[0]

    try:
        slope, intercept = statistics.linear_regression(xs, ys)
    except statistics.StatisticsError:
        return 0.0, statistics.fmean(ys)
    return slope, intercept


def summarize(points: Sequence[tuple[float, float]]) -> StatisticsSummary:
    """Summarize clean ``(index, value)`` pairs."""
    if not points:
        return StatisticsSummary()

    values = [float(value) for _, value in points]
    if len(values) == 1:
        single = values[0]
        return StatisticsSummary(
            mean=single, min=single, max=single, std_dev=0.0, trend="stable", count=1
        )

    slope, _ = linear_regression(points)
    return StatisticsSummary(
        mean=statistics.fmean(values),
        min=min(values),
        max=max(values),
        std_dev=statistics.pstdev(values),
        trend=classify_trend(slope, INDEX_TREND_THRESHOLD),
        count=len(values),
    )


def _is_number(value: Optional[float]) -> bool:
    return value is not None and not isinstance(value, bool) and math.isfinite(value)


def series_statistics(readings: Optional[Iterable[Reading]]) -> StatisticsSummary:
    """Statistics for a reading series, indexed by position in the feed."""
    points = [
        (index, reading.value)
        for index, reading in enumerate(readings or ())
        if reading.is_valid
    ]
    return summarize(points)


def chart_statistics(values: Optional[Iterable[Optional[float]]]) -> StatisticsSummary:
    """Statistics for a chart series; gaps keep their position on the index axis."""
    points = [
        (index, value) for index, value in enumerate(values or ()) if _is_number(value)
    ]
    return summarize(points)
