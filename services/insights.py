"""Categorized descriptive insights for a poultry house's dashboard."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Mapping, Optional, Sequence

from models.records import Alert, Reading, ThresholdConfig, as_utc
from models.reports import MONTH_NAMES, NO_DATA, MonthlySummary, summary_number
from services.stats import StatisticsSummary, Trend, series_statistics

logger = logging.getLogger(__name__)

ALERT_WINDOW = timedelta(days=30)
VOLATILITY_STD_DEV = 2.0

_TREND_ICONS = {
    "increasing": "bi-arrow-up-right",
    "decreasing": "bi-arrow-down-right",
    "stable": "bi-check-circle",
}


@dataclass(frozen=True)
class Insight:
    text: str
    icon: str


@dataclass
class InsightCategory:
    title: str
    icon: str
    color: str
    insights: List[Insight] = field(default_factory=list)

    def add(self, text: str, icon: str) -> None:
        self.insights.append(Insight(text=text, icon=icon))


@dataclass(frozen=True)
class MetricSeries:
    ammonia: Sequence[Reading] = ()
    temperature: Sequence[Reading] = ()


@dataclass(frozen=True)
class InsightInputs:
    """Everything the generator needs; ``now`` anchors the calendar and alert window."""

    thresholds: Optional[ThresholdConfig]
    now: datetime
    daily: MetricSeries = MetricSeries()
    weekly: MetricSeries = MetricSeries()
    hourly_ammonia: Mapping[str, Optional[float]] = field(default_factory=dict)
    hourly_temperature: Mapping[str, Optional[float]] = field(default_factory=dict)
    annual: Sequence[MonthlySummary] = ()
    alerts: Sequence[Alert] = ()


def _categories() -> Dict[str, InsightCategory]:
    return {
        "daily": InsightCategory("Daily Summary", "bi-sun", "#fd7e14"),
        "weekly": InsightCategory("Weekly Trends", "bi-graph-up", "#0dcaf0"),
        "monthly": InsightCategory("This Month At a Glance", "bi-calendar-check", "#6f42c1"),
        "annual": InsightCategory("Annual Overview", "bi-calendar3", "#198754"),
        "hourly": InsightCategory("Hourly Patterns", "bi-clock-history", "#d63384"),
        "alerts": InsightCategory("Alert Analysis", "bi-exclamation-triangle", "#dc3545"),
    }


def _limit(value: float) -> str:
    return f"{value:g}"


def _daily(category: InsightCategory, inputs: InsightInputs, thresholds: ThresholdConfig) -> None:
    ammonia = series_statistics(inputs.daily.ammonia)
    temperature = series_statistics(inputs.daily.temperature)

    if ammonia.count > 0:
        if thresholds.ammonia_high is not None and ammonia.max >= thresholds.ammonia_high:
            category.add(
                f"Ammonia peaked at **{ammonia.max:.2f} ppm**, exceeding the "
                f"**{_limit(thresholds.ammonia_high)} ppm** threshold.",
                "bi-exclamation-circle-fill",
            )
        else:
            category.add(
                f"Average ammonia in the last 24h was **{ammonia.mean:.2f} ppm**.", "bi-wind"
            )

    if temperature.count > 0:
        _daily_temperature(category, temperature, thresholds)

    if ammonia.count == 0 and temperature.count == 0:
        category.add("No new data recorded in the last 24 hours.", "bi-info-circle")


def _daily_temperature(
    category: InsightCategory, stats: StatisticsSummary, thresholds: ThresholdConfig
) -> None:
    if thresholds.temp_high is not None and stats.max >= thresholds.temp_high:
        category.add(
            f"Temperature hit a high of **{stats.max:.2f}°C**, exceeding the "
            f"**{_limit(thresholds.temp_high)}°C** limit.",
            "bi-thermometer-high",
        )
    elif thresholds.temp_low is not None and stats.min <= thresholds.temp_low:
        category.add(
            f"Temperature dropped to **{stats.min:.2f}°C**, below the "
            f"**{_limit(thresholds.temp_low)}°C** limit.",
            "bi-thermometer-low",
        )
    else:
        category.add(
            f"Temperature ranged from **{stats.min:.2f}°C** to **{stats.max:.2f}°C**.",
            "bi-thermometer-half",
        )

    if stats.std_dev > VOLATILITY_STD_DEV:
        category.add(
            f"Temperature was **volatile**, fluctuating by ~**{stats.std_dev:.1f}°C** "
            "from the average.",
            "bi-activity",
        )


def _weekly(category: InsightCategory, inputs: InsightInputs) -> None:
    ammonia = series_statistics(inputs.weekly.ammonia)
    temperature = series_statistics(inputs.weekly.temperature)

    def icon(trend: Trend) -> str:
        return _TREND_ICONS[trend]

    if ammonia.count > 0:
        category.add(
            f"Ammonia levels showed a **{ammonia.trend}** trend this week.", icon(ammonia.trend)
        )
    if temperature.count > 0:
        category.add(
            f"Temperature showed a **{temperature.trend}** trend this week.",
            icon(temperature.trend),
        )
    if ammonia.count < 2 and temperature.count < 2:
        category.add("Not enough data for weekly trend analysis.", "bi-info-circle")


def _monthly(category: InsightCategory, inputs: InsightInputs) -> None:
    current_name = MONTH_NAMES[inputs.now.month - 1]
    current = next((row for row in inputs.annual if row.month == current_name), None)
    if current is None:
        return
    if current.ammonia_avg != NO_DATA:
        category.add(
            f"This month's average ammonia is **{current.ammonia_avg:.2f} ppm**.", "bi-wind"
        )
    if current.temp_avg != NO_DATA:
        category.add(
            f"The average temperature this month is **{current.temp_avg:.2f}°C**.",
            "bi-thermometer-half",
        )


def _annual(category: InsightCategory, inputs: InsightInputs) -> None:
    valid = [
        row for row in inputs.annual if row.ammonia_avg != NO_DATA and row.temp_avg != NO_DATA
    ]
    if len(valid) < 2:
        return

    hottest = max(valid, key=lambda row: summary_number(row.temp_avg))
    category.add(
        f"**{hottest.month}** was the hottest month on average (**{hottest.temp_avg:.2f}°C**).",
        "bi-thermometer-sun",
    )
    worst = max(valid, key=lambda row: summary_number(row.ammonia_avg))
    category.add(
        f"Ammonia levels were highest in **{worst.month}** (**{worst.ammonia_avg:.2f} ppm**).",
        "bi-wind",
    )


def peak_hour(hourly: Mapping[str, Optional[float]]) -> Optional[str]:
    """Hour key with the highest average; the earliest hour wins ties."""
    valid = [(hour, value) for hour, value in hourly.items() if value is not None]
    if not valid:
        return None
    return max(valid, key=lambda entry: entry[1])[0]


def _hourly(category: InsightCategory, inputs: InsightInputs) -> None:
    ammonia_peak = peak_hour(inputs.hourly_ammonia)
    if ammonia_peak is not None:
        category.add(f"Ammonia levels typically peak around **{ammonia_peak}**.", "bi-clock")
    temperature_peak = peak_hour(inputs.hourly_temperature)
    if temperature_peak is not None:
        category.add(
            f"The warmest part of the day is usually around **{temperature_peak}**.",
            "bi-clock-fill",
        )


def _alerts(category: InsightCategory, inputs: InsightInputs) -> None:
    cutoff = as_utc(inputs.now) - ALERT_WINDOW
    recent = [alert for alert in inputs.alerts if alert.timestamp >= cutoff]
    if not recent:
        category.add(
            "No critical alerts have been triggered in the past 30 days.", "bi-shield-check"
        )
        return

    category.add(f"Triggered **{len(recent)}** alert(s) in the last 30 days.", "bi-bell-fill")
    most_common, _ = Counter(alert.type.value for alert in recent).most_common(1)[0]
    category.add(f"The most frequent alert type was **'{most_common}'**.", "bi-bar-chart-fill")


def generate_insights(inputs: InsightInputs) -> Optional[Dict[str, InsightCategory]]:
    """Build the non-empty insight categories, or ``None`` when there is nothing to say."""
    if inputs.thresholds is None:
        logger.debug("No location configuration; skipping insights")
        return None

    categories = _categories()
    _daily(categories["daily"], inputs, inputs.thresholds)
    _weekly(categories["weekly"], inputs)
    _monthly(categories["monthly"], inputs)
    _annual(categories["annual"], inputs)
    _hourly(categories["hourly"], inputs)
    _alerts(categories["alerts"], inputs)

    populated = {key: category for key, category in categories.items() if category.insights}
    return populated or None
