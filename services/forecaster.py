"""Linear-trend projection of recent sensor readings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from models.records import Metric, Reading, as_utc
from services.stats import Trend, classify_trend, linear_regression

logger = logging.getLogger(__name__)

_SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class ForecastProfile:
    horizon_hours: float
    min_points: int
    window: int
    trend_threshold: float


# 168 hourly samples ~ 7 days of history.
DAILY_PROFILE = ForecastProfile(horizon_hours=24, min_points=10, window=168, trend_threshold=0.5)
# 720 hourly samples ~ 30 days of history.
WEEKLY_PROFILE = ForecastProfile(horizon_hours=168, min_points=20, window=720, trend_threshold=1.0)


@dataclass(frozen=True)
class Prediction:
    predicted_value: float
    trend: Trend


def profile_for(horizon_hours: float) -> ForecastProfile:
    return DAILY_PROFILE if horizon_hours <= DAILY_PROFILE.horizon_hours else WEEKLY_PROFILE


def _hours_since_epoch(reading: Reading) -> float:
    return as_utc(reading.timestamp).timestamp() / _SECONDS_PER_HOUR


def predict_ahead(
    series: Optional[Sequence[Reading]],
    horizon_hours: float,
    metric: Optional[Metric] = None,
) -> Optional[Prediction]:
    """Project ``series`` ``horizon_hours`` past its last reading.

    Returns ``None`` when there are too few valid readings for the horizon.
    The projection is clamped at zero unless ``metric`` can go negative.
    """
    profile = profile_for(horizon_hours)
    if not series or len(series) < profile.min_points:
        logger.debug(
            "Not enough readings to forecast",
            extra={"point_count": len(series or ()), "metric": getattr(metric, "value", None)},
        )
        return None

    recent = [reading for reading in series[-profile.window :] if reading.is_valid]
    if len(recent) < profile.min_points:
        logger.debug(
            "Not enough valid readings to forecast",
            extra={"point_count": len(recent), "metric": getattr(metric, "value", None)},
        )
        return None

    points = [(_hours_since_epoch(reading), reading.value) for reading in recent]
    slope, intercept = linear_regression(points)

    target = points[-1][0] + horizon_hours
    predicted = slope * target + intercept
    if metric is None or metric.non_negative:
        predicted = max(0.0, predicted)

    return Prediction(
        predicted_value=predicted,
        trend=classify_trend(slope * horizon_hours, profile.trend_threshold),
    )


def predict_next_24_hours(
    series: Optional[Sequence[Reading]], metric: Optional[Metric] = None
) -> Optional[Prediction]:
    return predict_ahead(series, DAILY_PROFILE.horizon_hours, metric)


def predict_next_7_days(
    series: Optional[Sequence[Reading]], metric: Optional[Metric] = None
) -> Optional[Prediction]:
    return predict_ahead(series, WEEKLY_PROFILE.horizon_hours, metric)
