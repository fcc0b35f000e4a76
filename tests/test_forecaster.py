"""Unit tests for the linear-trend forecaster."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from models.records import Metric, Reading
from services.forecaster import (
    DAILY_PROFILE,
    WEEKLY_PROFILE,
    predict_ahead,
    predict_next_7_days,
    predict_next_24_hours,
    profile_for,
)

_START = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _hourly(values) -> list[Reading]:
    return [Reading(timestamp=_START + timedelta(hours=i), value=v) for i, v in enumerate(values)]


def test_rising_week_of_ammonia_projects_above_last_value() -> None:
    values = [5 + 15 * i / 167 for i in range(168)]

    prediction = predict_ahead(_hourly(values), 24, Metric.ammonia)

    assert prediction is not None
    assert prediction.trend == "increasing"
    assert prediction.predicted_value > 20


def test_projection_from_last_reading() -> None:
    prediction = predict_next_24_hours(_hourly(range(10)))

    assert prediction is not None
    assert prediction.predicted_value == pytest.approx(33.0)
    assert prediction.trend == "increasing"


def test_too_few_points_returns_none() -> None:
    assert predict_next_24_hours(_hourly(range(9))) is None
    assert predict_next_24_hours([]) is None
    assert predict_next_24_hours(None) is None


def test_gate_counts_valid_points_after_filtering() -> None:
    values = [1.0, 2.0, None, 4.0, float("nan"), 6.0, 7.0, None, 9.0, 10.0, 11.0]

    assert predict_next_24_hours(_hourly(values)) is None


def test_only_the_recent_window_is_used() -> None:
    values = [1000.0] * 32 + [5.0] * 168

    prediction = predict_next_24_hours(_hourly(values))

    assert prediction is not None
    assert prediction.predicted_value == pytest.approx(5.0)
    assert prediction.trend == "stable"


def test_ammonia_projection_is_clamped_at_zero() -> None:
    prediction = predict_next_24_hours(_hourly([10 - i for i in range(10)]), Metric.ammonia)

    assert prediction is not None
    assert prediction.predicted_value == 0.0
    assert prediction.trend == "decreasing"


def test_projection_without_metric_is_clamped() -> None:
    prediction = predict_next_24_hours(_hourly([10 - i for i in range(10)]))

    assert prediction is not None
    assert prediction.predicted_value == 0.0


def test_temperature_projection_may_go_below_zero() -> None:
    prediction = predict_next_24_hours(_hourly([2 - 0.5 * i for i in range(12)]), Metric.temperature)

    assert prediction is not None
    assert prediction.predicted_value == pytest.approx(-15.5)


def test_weekly_profile_needs_twenty_points_and_wider_band() -> None:
    assert predict_next_7_days(_hourly([1.0] * 19)) is None

    gentle = [20 + 0.005 * i for i in range(30)]
    prediction = predict_next_7_days(_hourly(gentle))

    assert prediction is not None
    assert prediction.trend == "stable"


def test_profile_selection_by_horizon() -> None:
    assert profile_for(1) is DAILY_PROFILE
    assert profile_for(24) is DAILY_PROFILE
    assert profile_for(25) is WEEKLY_PROFILE
    assert profile_for(168) is WEEKLY_PROFILE


def test_repeated_forecasts_are_identical() -> None:
    readings = _hourly([5 + 15 * i / 167 for i in range(168)])

    assert predict_ahead(readings, 24, Metric.ammonia) == predict_ahead(readings, 24, Metric.ammonia)
