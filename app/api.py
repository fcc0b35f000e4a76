"""HTTP route definitions for the service."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import (
    AlertAnalysisOut,
    AlertAnalysisRequest,
    AnnualOverviewRequest,
    AnnualReportOut,
    AnnualReportRequest,
    AnnualRequest,
    DailyRequest,
    DashboardOut,
    DashboardRequest,
    DiagnosticOut,
    DiagnosticRequest,
    ForecastRequest,
    InsightCategoryOut,
    InsightsRequest,
    MonthlyReportOut,
    MonthlyReportRequest,
    PredictionOut,
    PrescriptionOut,
    RecommendationRequest,
    SeriesRequest,
    StatisticsOut,
    StatisticsRequest,
    TextSegmentOut,
    to_alerts,
    to_readings,
)
from models.records import Metric, ThresholdConfig
from models.reports import MonthlySummary
from services.aggregator import Aggregator
from services.diagnostics import generate_diagnostic
from services.forecaster import predict_ahead, predict_next_24_hours
from services.insights import InsightInputs, MetricSeries, generate_insights
from services.pipeline import AnalyticsService, build_default_service
from services.prescriptive import recommend
from services.report import analyze_annual_table
from services.stats import chart_statistics
from settings import get_settings

router = APIRouter()


def get_service() -> AnalyticsService:
    return build_default_service()


def _thresholds(raw: Optional[dict]) -> Optional[ThresholdConfig]:
    return None if raw is None else ThresholdConfig.from_raw(raw)


@router.post(
    "/analytics/statistics",
    response_model=StatisticsOut,
    summary="Descriptive statistics and index trend of a value series.",
)
async def statistics_endpoint(payload: StatisticsRequest) -> StatisticsOut:
    return StatisticsOut.model_validate(asdict(chart_statistics(payload.values)))


@router.post(
    "/analytics/hourly",
    response_model=Dict[str, Optional[float]],
    summary="Average readings by hour of day.",
)
async def hourly_endpoint(payload: SeriesRequest) -> Dict[str, Optional[float]]:
    return Aggregator().aggregate_hourly(to_readings(payload.readings), get_settings().tzinfo)


@router.post(
    "/analytics/daily",
    response_model=List[Optional[float]],
    summary="Average readings per calendar day of a month.",
)
async def daily_endpoint(payload: DailyRequest) -> List[Optional[float]]:
    return Aggregator().aggregate_daily(
        to_readings(payload.readings), payload.year, payload.month, get_settings().tzinfo
    )


@router.post(
    "/analytics/annual",
    response_model=List[MonthlySummary],
    summary="Monthly high/low/average for a year of readings.",
)
async def annual_endpoint(payload: AnnualRequest) -> List[MonthlySummary]:
    monthly = {
        month: (to_readings(pair.ammonia), to_readings(pair.temperature))
        for month, pair in payload.months.items()
    }
    now = payload.now or datetime.now(timezone.utc)
    return Aggregator().aggregate_annual(payload.year, monthly, now)


@router.post(
    "/analytics/forecast",
    response_model=Optional[PredictionOut],
    summary="Linear projection of a series; null when there is not enough data.",
)
async def forecast_endpoint(payload: ForecastRequest) -> Optional[PredictionOut]:
    prediction = predict_ahead(to_readings(payload.readings), payload.horizon_hours, payload.metric)
    return None if prediction is None else PredictionOut.model_validate(asdict(prediction))


@router.post(
    "/analytics/insights",
    response_model=Optional[Dict[str, InsightCategoryOut]],
    summary="Categorized dashboard insights; null when there is insufficient data.",
)
async def insights_endpoint(payload: InsightsRequest) -> Optional[Dict[str, InsightCategoryOut]]:
    inputs = InsightInputs(
        thresholds=_thresholds(payload.thresholds),
        now=payload.now or datetime.now(timezone.utc),
        daily=MetricSeries(to_readings(payload.daily.ammonia), to_readings(payload.daily.temperature)),
        weekly=MetricSeries(
            to_readings(payload.weekly.ammonia), to_readings(payload.weekly.temperature)
        ),
        hourly_ammonia=payload.hourly_ammonia,
        hourly_temperature=payload.hourly_temperature,
        annual=payload.annual,
        alerts=to_alerts(payload.alerts),
    )
    insights = generate_insights(inputs)
    if insights is None:
        return None
    return {key: InsightCategoryOut.model_validate(asdict(value)) for key, value in insights.items()}


@router.post(
    "/analytics/diagnostics",
    response_model=DiagnosticOut,
    summary="Explain an alert using the location's alert history.",
)
async def diagnostics_endpoint(payload: DiagnosticRequest) -> DiagnosticOut:
    alert = payload.alert.to_domain() if payload.alert else None
    report = generate_diagnostic(alert, to_alerts(payload.history), get_settings().tzinfo)
    return DiagnosticOut.model_validate(asdict(report))


@router.post(
    "/analytics/recommendations",
    response_model=PrescriptionOut,
    summary="Ranked corrective actions for an alert.",
)
async def recommendations_endpoint(payload: RecommendationRequest) -> PrescriptionOut:
    alert = payload.alert.to_domain() if payload.alert else None
    diagnostic = generate_diagnostic(alert, to_alerts(payload.history), get_settings().tzinfo)
    forecasts = None
    if payload.channel_configured:
        forecasts = {
            Metric.ammonia: predict_next_24_hours(to_readings(payload.ammonia), Metric.ammonia),
            Metric.temperature: predict_next_24_hours(
                to_readings(payload.temperature), Metric.temperature
            ),
        }
    prescription = recommend(alert, forecasts, diagnostic.findings)
    return PrescriptionOut.model_validate(asdict(prescription))


@router.post(
    "/reports/annual-overview",
    response_model=List[TextSegmentOut],
    summary="Narrative for an annual table.",
)
async def annual_overview_endpoint(payload: AnnualOverviewRequest) -> List[TextSegmentOut]:
    segments = analyze_annual_table(payload.annual, _thresholds(payload.thresholds), payload.temp_unit)
    return [TextSegmentOut.model_validate(asdict(segment)) for segment in segments]


@router.post(
    "/channels/dashboard",
    response_model=DashboardOut,
    summary="Fetch a house's feeds and compute predictions, patterns and insights.",
)
def dashboard_endpoint(
    payload: DashboardRequest,
    service: AnalyticsService = Depends(get_service),
) -> DashboardOut:
    result = service.dashboard(payload.channel.to_domain(), to_alerts(payload.alerts), payload.now)
    return DashboardOut.model_validate(asdict(result))


@router.post(
    "/channels/alert-analysis",
    response_model=AlertAnalysisOut,
    summary="Diagnose an alert and prescribe actions from a fresh forecast.",
)
def alert_analysis_endpoint(
    payload: AlertAnalysisRequest,
    service: AnalyticsService = Depends(get_service),
) -> AlertAnalysisOut:
    alert = payload.alert.to_domain()
    if alert is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Alert is malformed."
        )
    channel = payload.channel.to_domain() if payload.channel else None
    result = service.analyze_alert(alert, channel, to_alerts(payload.history), payload.now)
    return AlertAnalysisOut.model_validate(asdict(result))


@router.post(
    "/channels/annual-report",
    response_model=AnnualReportOut,
    summary="Annual table for a house, reusing cached completed months.",
)
def annual_report_endpoint(
    payload: AnnualReportRequest,
    service: AnalyticsService = Depends(get_service),
) -> AnnualReportOut:
    report = service.annual_report(
        payload.channel.to_domain(), payload.year, payload.temp_unit, payload.now
    )
    return AnnualReportOut.model_validate(asdict(report))


@router.post(
    "/channels/monthly-report",
    response_model=MonthlyReportOut,
    summary="Monthly report numbers and narrative for one house or a branch.",
)
def monthly_report_endpoint(
    payload: MonthlyReportRequest,
    service: AnalyticsService = Depends(get_service),
) -> MonthlyReportOut:
    report = service.monthly_report(
        [channel.to_domain() for channel in payload.channels],
        payload.year,
        payload.month,
        payload.temp_unit,
    )
    return MonthlyReportOut(
        year=report.year,
        month=report.month,
        summary=report.display,
        daily=report.daily,
        hourly=report.hourly,
        sections={
            name: [TextSegmentOut.model_validate(asdict(segment)) for segment in segments]
            for name, segments in report.sections.items()
        },
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
