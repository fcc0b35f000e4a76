"""Orchestration of feed fetches, caching and the analytics functions."""

from __future__ import annotations

import calendar
import logging
import statistics
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from threading import Event
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from datastore.annual_cache import AnnualSummaryCache, build_default_cache
from models.records import Alert, Metric, Reading, SensorChannel, as_utc
from models.reports import MONTH_NAMES, MonthlySummary
from services.aggregator import Aggregator, month_is_complete, month_is_future
from services.diagnostics import DiagnosticReport, generate_diagnostic
from services.forecaster import Prediction, predict_next_24_hours, predict_next_7_days
from services.insights import InsightCategory, InsightInputs, MetricSeries, generate_insights
from services.prescriptive import Prescription, recommend
from services.report import (
    MonthlyReportSummary,
    TextSegment,
    analyze_annual_table,
    analyze_bar_chart,
    analyze_line_chart,
    combine_hourly_patterns,
    format_metric_summary,
    overall_summary,
    summarize_metric,
)
from services.stats import chart_statistics
from services.units import TemperatureUnit
from settings import get_settings
from storage.feeds import FeedSource, FeedUnavailableError
from storage.thingspeak import build_default_feed_source

logger = logging.getLogger(__name__)

Series = Tuple[List[Reading], List[Reading]]


class AnalysisCancelled(Exception):
    """Raised when the caller's cancel signal is set during a fetch sequence."""


@dataclass
class DashboardAnalytics:
    daily_predictions: Dict[Metric, Optional[Prediction]]
    weekly_predictions: Dict[Metric, Optional[Prediction]]
    hourly: Dict[Metric, Dict[str, Optional[float]]]
    annual: List[MonthlySummary]
    insights: Optional[Dict[str, InsightCategory]]


@dataclass
class AlertAnalysis:
    diagnostic: DiagnosticReport
    prescription: Prescription


@dataclass
class MonthlyReport:
    year: int
    month: int
    summary: MonthlyReportSummary
    display: Dict[Metric, Dict[str, str]]
    daily: Dict[Metric, List[Optional[float]]]
    hourly: Dict[Metric, List[Optional[float]]]
    sections: Dict[str, List[TextSegment]] = field(default_factory=dict)


@dataclass
class AnnualReport:
    year: int
    rows: List[MonthlySummary]
    overview: List[TextSegment]


def _check(cancel: Optional[Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise AnalysisCancelled("Analysis cancelled by caller.")


class AnalyticsService:
    """Coordinates feed access, the annual cache and the pure analytics."""

    def __init__(
        self,
        feed: FeedSource,
        cache: AnnualSummaryCache,
        aggregator: Aggregator,
        tz: tzinfo = timezone.utc,
        workers: int = 2,
    ) -> None:
        self.feed = feed
        self.cache = cache
        self.aggregator = aggregator
        self.tz = tz
        self.executor = ThreadPoolExecutor(max_workers=workers)

    def shutdown(self) -> None:
        """Clean up executor resources during application shutdown."""
        self.executor.shutdown(wait=False, cancel_futures=True)
        close = getattr(self.feed, "close", None)
        if callable(close):
            close()

    def fetch_both(self, channel: SensorChannel, start: datetime, end: datetime) -> Series:
        """Fetch ammonia and temperature for the same range concurrently."""
        ammonia = self.executor.submit(self.feed.fetch, channel, Metric.ammonia, start, end)
        temperature = self.executor.submit(self.feed.fetch, channel, Metric.temperature, start, end)
        return ammonia.result(), temperature.result()

    def _month_bounds(self, year: int, month: int) -> Tuple[datetime, datetime]:
        last_day = calendar.monthrange(year, month)[1]
        start = datetime(year, month, 1, tzinfo=self.tz)
        end = datetime.combine(start.replace(day=last_day).date(), time.max, tzinfo=self.tz)
        return start, end

    def annual_summary(
        self,
        channel: SensorChannel,
        year: int,
        now: Optional[datetime] = None,
        cancel: Optional[Event] = None,
    ) -> List[MonthlySummary]:
        """Twelve month rows, reusing cached rows for months that have fully elapsed."""
        now = as_utc(now or datetime.now(timezone.utc)).astimezone(self.tz)
        cached = self.cache.get(channel.location, year) or [None] * 12
        location = "/".join(channel.location)

        rows: List[MonthlySummary] = []
        completed: List[MonthlySummary] = []
        for month, name in enumerate(MONTH_NAMES, start=1):
            if month_is_future(year, month, now):
                rows.append(MonthlySummary.empty(name))
                continue

            cached_row = cached[month - 1]
            if month_is_complete(year, month, now) and cached_row is not None:
                logger.debug(
                    "Annual cache hit", extra={"location": location, "year": year, "month": month}
                )
                rows.append(cached_row)
                continue

            _check(cancel)
            start, end = self._month_bounds(year, month)
            try:
                ammonia, temperature = self.fetch_both(channel, start, end)
            except FeedUnavailableError as exc:
                logger.warning(
                    "Feed unavailable for month",
                    extra={"location": location, "year": year, "month": month, "reason": str(exc)},
                )
                rows.append(MonthlySummary.empty(name))
                continue
            _check(cancel)

            row = self.aggregator.aggregate_month(name, ammonia, temperature)
            rows.append(row)
            if month_is_complete(year, month, now):
                completed.append(row)

        if completed:
            try:
                self.cache.put(channel.location, year, completed)
            except Exception as exc:  # noqa: BLE001 - cache writes must not fail aggregation
                logger.warning(
                    "Failed to store annual summary",
                    extra={"location": location, "year": year, "reason": str(exc)},
                )
        return rows

    def dashboard(
        self,
        channel: SensorChannel,
        alerts: Sequence[Alert] = (),
        now: Optional[datetime] = None,
        cancel: Optional[Event] = None,
    ) -> DashboardAnalytics:
        now = as_utc(now or datetime.now(timezone.utc))
        local_now = now.astimezone(self.tz)
        month_start = datetime(local_now.year, local_now.month, 1, tzinfo=self.tz)
        start = min(now - timedelta(days=30), month_start)

        _check(cancel)
        ammonia, temperature = self.fetch_both(channel, start, now)
        _check(cancel)

        def since(series: List[Reading], delta: timedelta) -> List[Reading]:
            cutoff = now - delta
            return [reading for reading in series if as_utc(reading.timestamp) >= cutoff]

        def this_month(series: List[Reading]) -> List[Reading]:
            return [reading for reading in series if as_utc(reading.timestamp) >= month_start]

        week, day = timedelta(days=7), timedelta(days=1)
        weekly = MetricSeries(since(ammonia, week), since(temperature, week))
        daily = MetricSeries(since(ammonia, day), since(temperature, day))
        thirty_days = {
            Metric.ammonia: since(ammonia, timedelta(days=30)),
            Metric.temperature: since(temperature, timedelta(days=30)),
        }
        hourly = {
            Metric.ammonia: self.aggregator.aggregate_hourly(this_month(ammonia), self.tz),
            Metric.temperature: self.aggregator.aggregate_hourly(this_month(temperature), self.tz),
        }
        annual = self.annual_summary(channel, local_now.year, now, cancel)

        house_alerts = [
            alert
            for alert in alerts
            if alert.location == channel.location and not alert.is_acknowledged
        ]
        insights = generate_insights(
            InsightInputs(
                thresholds=channel.thresholds,
                now=local_now,
                daily=daily,
                weekly=weekly,
                hourly_ammonia=hourly[Metric.ammonia],
                hourly_temperature=hourly[Metric.temperature],
                annual=annual,
                alerts=house_alerts,
            )
        )
        return DashboardAnalytics(
            daily_predictions={
                Metric.ammonia: predict_next_24_hours(weekly.ammonia, Metric.ammonia),
                Metric.temperature: predict_next_24_hours(weekly.temperature, Metric.temperature),
            },
            weekly_predictions={
                metric: predict_next_7_days(series, metric) for metric, series in thirty_days.items()
            },
            hourly=hourly,
            annual=annual,
            insights=insights,
        )

    def analyze_alert(
        self,
        alert: Alert,
        channel: Optional[SensorChannel],
        history: Sequence[Alert],
        now: Optional[datetime] = None,
    ) -> AlertAnalysis:
        """Diagnose an alert and prescribe actions using a 24h forecast of its metrics."""
        diagnostic = generate_diagnostic(alert, history, self.tz)
        forecasts: Optional[Dict[Metric, Optional[Prediction]]] = None
        if channel is not None:
            now = as_utc(now or datetime.now(timezone.utc))
            forecasts = {}
            try:
                ammonia, temperature = self.fetch_both(channel, now - timedelta(days=7), now)
            except FeedUnavailableError as exc:
                logger.warning(
                    "Feed unavailable for alert forecast",
                    extra={"location": "/".join(channel.location), "reason": str(exc)},
                )
            else:
                forecasts[Metric.ammonia] = predict_next_24_hours(ammonia, Metric.ammonia)
                forecasts[Metric.temperature] = predict_next_24_hours(
                    temperature, Metric.temperature
                )
        prescription = recommend(alert, forecasts, diagnostic.findings)
        return AlertAnalysis(diagnostic=diagnostic, prescription=prescription)

    def monthly_report(
        self,
        channels: Sequence[SensorChannel],
        year: int,
        month: int,
        temp_unit: TemperatureUnit = TemperatureUnit.celsius,
    ) -> MonthlyReport:
        """Numbers and narrative for one month; several channels form a branch report."""
        if not channels:
            raise ValueError("At least one channel is required for a monthly report.")
        start, end = self._month_bounds(year, month)
        daily: Dict[Metric, List[List[Optional[float]]]] = {metric: [] for metric in Metric}
        patterns: Dict[Metric, List[Mapping[str, Optional[float]]]] = {
            metric: [] for metric in Metric
        }
        for channel in channels:
            ammonia, temperature = self.fetch_both(channel, start, end)
            series = {Metric.ammonia: ammonia, Metric.temperature: temperature}
            for metric, readings in series.items():
                daily[metric].append(self.aggregator.aggregate_daily(readings, year, month, self.tz))
                patterns[metric].append(self.aggregator.aggregate_hourly(readings, self.tz))

        summary = MonthlyReportSummary(
            ammonia=summarize_metric(daily[Metric.ammonia], patterns[Metric.ammonia]),
            temperature=summarize_metric(daily[Metric.temperature], patterns[Metric.temperature]),
        )
        combined_daily = {metric: _combine_daily(daily[metric]) for metric in Metric}
        combined_hourly = {metric: combine_hourly_patterns(patterns[metric]) for metric in Metric}
        thresholds = channels[0].thresholds if len(channels) == 1 else None

        sections = {
            "overview": overall_summary(
                summary,
                thresholds,
                chart_statistics(combined_daily[Metric.ammonia]),
                chart_statistics(combined_daily[Metric.temperature]),
            ),
            "ammonia_trend": analyze_line_chart(combined_daily[Metric.ammonia], Metric.ammonia),
            "temperature_trend": analyze_line_chart(
                combined_daily[Metric.temperature], Metric.temperature, temp_unit
            ),
            "ammonia_hourly": analyze_bar_chart(combined_hourly[Metric.ammonia], Metric.ammonia),
            "temperature_hourly": analyze_bar_chart(
                combined_hourly[Metric.temperature], Metric.temperature, temp_unit
            ),
        }
        return MonthlyReport(
            year=year,
            month=month,
            summary=summary,
            display={
                Metric.ammonia: format_metric_summary(summary.ammonia, Metric.ammonia, temp_unit),
                Metric.temperature: format_metric_summary(
                    summary.temperature, Metric.temperature, temp_unit
                ),
            },
            daily=combined_daily,
            hourly=combined_hourly,
            sections=sections,
        )

    def annual_report(
        self,
        channel: SensorChannel,
        year: int,
        temp_unit: TemperatureUnit = TemperatureUnit.celsius,
        now: Optional[datetime] = None,
        cancel: Optional[Event] = None,
    ) -> AnnualReport:
        rows = self.annual_summary(channel, year, now, cancel)
        overview = analyze_annual_table(rows, channel.thresholds, temp_unit)
        return AnnualReport(year=year, rows=rows, overview=overview)


def _combine_daily(series: Sequence[Sequence[Optional[float]]]) -> List[Optional[float]]:
    if not series:
        return []
    combined: List[Optional[float]] = []
    for day_values in zip(*series):
        values = [value for value in day_values if value is not None]
        combined.append(round(statistics.fmean(values), 2) if values else None)
    return combined


@lru_cache
def build_default_service(workers: Optional[int] = None) -> AnalyticsService:
    """Factory that wires the service with the configured feed and cache."""
    settings = get_settings()
    return AnalyticsService(
        feed=build_default_feed_source(),
        cache=build_default_cache(),
        aggregator=Aggregator(),
        tz=settings.tzinfo,
        workers=workers or settings.feed_workers,
    )
