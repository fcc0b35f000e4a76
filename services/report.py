"""Numbers and narrative fragments for monthly and annual reports.

Everything here receives values in °C/ppm; conversion to the reader's
temperature unit happens only while formatting text.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Iterable, List, Literal, Mapping, Optional, Sequence

from models.records import Metric, ThresholdConfig
from models.reports import NO_DATA, MonthlySummary, summary_number
from services.aggregator import HOUR_KEYS
from services.stats import StatisticsSummary, chart_statistics
from services.units import TemperatureUnit, celsius_to_fahrenheit, to_display, unit_symbol

Style = Literal["bold", "normal"]


@dataclass(frozen=True)
class TextSegment:
    text: str
    style: Style = "normal"


def bold(text: str) -> TextSegment:
    return TextSegment(text, "bold")


def normal(text: str) -> TextSegment:
    return TextSegment(text, "normal")


@dataclass(frozen=True)
class MetricSummary:
    """Month-level average and hourly-pattern peak for one metric."""

    avg: Optional[float] = None
    peak: Optional[float] = None


@dataclass(frozen=True)
class MonthlyReportSummary:
    ammonia: MetricSummary
    temperature: MetricSummary


def combine_hourly_patterns(
    patterns: Iterable[Mapping[str, Optional[float]]],
) -> List[Optional[float]]:
    """Average each hour across channels; hours with no data stay ``None``."""
    combined: List[List[float]] = [[] for _ in HOUR_KEYS]
    for pattern in patterns:
        for index, key in enumerate(HOUR_KEYS):
            value = pattern.get(key)
            if value is not None:
                combined[index].append(value)
    return [statistics.fmean(values) if values else None for values in combined]


def summarize_metric(
    daily_series: Iterable[Sequence[Optional[float]]],
    hourly_patterns: Iterable[Mapping[str, Optional[float]]],
) -> MetricSummary:
    """Average of the daily averages and peak of the hourly-averaged pattern.

    Peaks come from hourly means rather than raw samples so that days with
    denser sampling do not dominate.
    """
    daily_values = [value for series in daily_series for value in series if value is not None]
    hourly = [value for value in combine_hourly_patterns(hourly_patterns) if value is not None]
    return MetricSummary(
        avg=statistics.fmean(daily_values) if daily_values else None,
        peak=max(hourly) if hourly else None,
    )


def format_metric_summary(
    summary: MetricSummary,
    metric: Metric,
    temp_unit: TemperatureUnit = TemperatureUnit.celsius,
) -> dict[str, str]:
    symbol = unit_symbol(metric, temp_unit)

    def render(value: Optional[float]) -> str:
        if value is None:
            return "N/A"
        return f"{to_display(value, metric, temp_unit):.2f}{symbol}"

    return {"avg": render(summary.avg), "peak": render(summary.peak)}


def analyze_line_chart(
    values: Sequence[Optional[float]],
    metric: Metric,
    temp_unit: TemperatureUnit = TemperatureUnit.celsius,
) -> List[TextSegment]:
    stats = chart_statistics(values)
    if stats.count < 2:
        return [
            bold("Trend Analysis:\n"),
            normal("Not enough data for a detailed trend analysis."),
        ]

    symbol = unit_symbol(metric, temp_unit).strip()

    def show(value: float) -> str:
        return f"{to_display(value, metric, temp_unit):.2f}{symbol}"

    trend_text = f"an {stats.trend}" if stats.trend != "stable" else "a stable"
    return [
        bold("Trend Analysis:\n"),
        normal(f"This month showed {trend_text} trend for {metric.value}. "),
        bold(f"The average was {show(stats.mean)}"),
        normal(f", with a recorded high of {show(stats.max)} and a low of {show(stats.min)}."),
    ]


def analyze_bar_chart(
    values: Sequence[Optional[float]],
    metric: Metric,
    temp_unit: TemperatureUnit = TemperatureUnit.celsius,
) -> List[TextSegment]:
    valid = [(hour, value) for hour, value in enumerate(values) if value is not None]
    if not valid:
        return [
            bold("Hourly Pattern:\n"),
            normal("No hourly data was available to identify daily patterns."),
        ]

    hour, peak = max(valid, key=lambda entry: entry[1])
    symbol = unit_symbol(metric, temp_unit).strip()
    return [
        bold("Hourly Pattern:\n"),
        normal("Levels typically peaked around "),
        bold(f"{hour:02d}:00 at approximately {to_display(peak, metric, temp_unit):.2f}{symbol}"),
        normal(", suggesting a consistent daily cycle."),
    ]


def _breaches(value: Optional[float], limit: Optional[float], above: bool = True) -> bool:
    if value is None or limit is None:
        return False
    return value > limit if above else value < limit


def overall_summary(
    summary: MonthlyReportSummary,
    thresholds: Optional[ThresholdConfig],
    ammonia_stats: StatisticsSummary,
    temp_stats: StatisticsSummary,
) -> List[TextSegment]:
    """Month narrative: both trends plus a safe/unsafe note from the monthly averages."""
    issues: List[str] = []
    if thresholds is not None:
        if _breaches(summary.ammonia.avg, thresholds.ammonia_high):
            issues.append("high ammonia levels")
        if _breaches(summary.temperature.avg, thresholds.temp_high):
            issues.append("high temperatures")
        if _breaches(summary.temperature.avg, thresholds.temp_low, above=False):
            issues.append("low temperatures")

    if issues:
        safety = (
            "Environmental metrics were outside recommended thresholds, specifically "
            f"{' and '.join(issues)}, suggesting a need for closer monitoring."
        )
    else:
        safety = "Overall, conditions were stable and within safe limits this month."

    ammonia_trend = ammonia_stats.trend if ammonia_stats.count > 1 else "stable"
    temp_trend = temp_stats.trend if temp_stats.count > 1 else "stable"
    return [
        normal("This report summarizes the environmental conditions for the month. "),
        normal(
            f"Ammonia levels showed a {ammonia_trend} trend, while temperature showed "
            f"a {temp_trend} trend.\n\n"
        ),
        bold("Safety Note: "),
        normal(safety),
    ]


def count_threshold_breaches(
    annual: Sequence[MonthlySummary], thresholds: ThresholdConfig
) -> tuple[int, int]:
    """Months whose average ammonia / temperature exceeded the high limits."""
    ammonia_months = 0
    temp_months = 0
    for row in annual:
        if _breaches(summary_number(row.ammonia_avg), thresholds.ammonia_high):
            ammonia_months += 1
        if _breaches(summary_number(row.temp_avg), thresholds.temp_high):
            temp_months += 1
    return ammonia_months, temp_months


def analyze_annual_table(
    annual: Sequence[MonthlySummary],
    thresholds: Optional[ThresholdConfig],
    temp_unit: TemperatureUnit = TemperatureUnit.celsius,
) -> List[TextSegment]:
    valid = [row for row in annual if row.temp_avg != NO_DATA and row.ammonia_avg != NO_DATA]
    if len(valid) < 2:
        return [
            normal("This table summarizes available monthly data for the year. "),
            bold("More data is needed for a full annual trend analysis."),
        ]

    hottest = max(valid, key=lambda row: summary_number(row.temp_avg))
    worst = max(valid, key=lambda row: summary_number(row.ammonia_avg))

    safety = (
        "Throughout the year, the monthly average conditions remained largely within "
        "safe operational thresholds."
    )
    if thresholds is not None:
        ammonia_months, temp_months = count_threshold_breaches(valid, thresholds)
        if ammonia_months > 1 or temp_months > 1:
            safety = (
                "Several months experienced average conditions that exceeded safety "
                "thresholds, particularly during warmer periods."
            )

    hottest_avg = summary_number(hottest.temp_avg)
    if temp_unit is TemperatureUnit.fahrenheit:
        hottest_text = f"{celsius_to_fahrenheit(hottest_avg):.1f}°F"
    else:
        hottest_text = f"{hottest_avg:.2f}°C"
    return [
        bold("Yearly Patterns:\n"),
        normal(
            f"The warmest month was {hottest.month} ({hottest_text}), while ammonia levels "
            f"were highest in {worst.month} ({summary_number(worst.ammonia_avg):.2f} ppm).\n\n"
        ),
        bold("Overall Safety: "),
        normal(safety),
    ]
