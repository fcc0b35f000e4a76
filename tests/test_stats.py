"""Unit tests for the statistics kernel."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import pytest

from models.records import Reading
from services.stats import (
    StatisticsSummary,
    chart_statistics,
    classify_trend,
    linear_regression,
    series_statistics,
)


def _series(*values):
    start = datetime(2024, 3, 1, tzinfo=timezone.utc)
    return [Reading(timestamp=start + timedelta(hours=i), value=v) for i, v in enumerate(values)]


def test_empty_series_returns_default_summary() -> None:
    assert series_statistics([]) == StatisticsSummary()
    assert series_statistics(None).count == 0
    assert chart_statistics(None).trend == "stable"


def test_single_value_is_flat() -> None:
    summary = chart_statistics([7.5])

    assert summary.mean == summary.min == summary.max == 7.5
    assert summary.std_dev == 0.0
    assert summary.trend == "stable"
    assert summary.count == 1


def test_increasing_series() -> None:
    summary = chart_statistics([1, 2, 3, 4])

    assert summary.mean == 2.5
    assert summary.min == 1
    assert summary.max == 4
    assert summary.std_dev == pytest.approx(math.sqrt(1.25))
    assert summary.trend == "increasing"
    assert summary.count == 4


def test_constant_series_is_stable() -> None:
    summary = chart_statistics([5, 5, 5])

    assert summary.std_dev == 0.0
    assert summary.trend == "stable"


def test_slope_inside_band_is_stable() -> None:
    summary = chart_statistics([10.0, 10.04, 10.08])

    assert summary.trend == "stable"


def test_decreasing_series() -> None:
    assert chart_statistics([9, 6, 3]).trend == "decreasing"


def test_gaps_and_non_finite_values_are_ignored() -> None:
    summary = chart_statistics([1.0, None, float("nan"), 3.0])

    assert summary.count == 2
    assert summary.mean == 2.0
    assert summary.trend == "increasing"


def test_series_statistics_skips_invalid_readings() -> None:
    summary = series_statistics(_series(10.0, None, 14.0, float("inf")))

    assert summary.count == 2
    assert summary.mean == 12.0
    assert summary.min == 10.0
    assert summary.max == 14.0


def test_statistics_are_deterministic() -> None:
    readings = _series(3.0, 1.0, 4.0, 1.0, 5.0)

    assert series_statistics(readings) == series_statistics(readings)


def test_linear_regression_fits_line() -> None:
    slope, intercept = linear_regression([(0, 1.0), (1, 3.0), (2, 5.0)])

    assert slope == pytest.approx(2.0)
    assert intercept == pytest.approx(1.0)


def test_linear_regression_degenerate_inputs() -> None:
    assert linear_regression([(4, 9.0)]) == (0.0, 9.0)
    assert linear_regression([(1, 2.0), (1, 4.0)]) == (0.0, 3.0)
    with pytest.raises(ValueError):
        linear_regression([])


@pytest.mark.parametrize(
    "delta, expected",
    [(0.06, "increasing"), (-0.06, "decreasing"), (0.05, "stable"), (-0.05, "stable")],
)
def test_classify_trend_band_is_exclusive(delta: float, expected: str) -> None:
    assert classify_trend(delta, 0.05) == expected
