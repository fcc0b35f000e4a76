"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from models.records import Alert, Metric, Reading, SensorChannel, ThresholdConfig, parse_alerts
from models.reports import MonthlySummary
from services.units import TemperatureUnit

TrendName = Literal["increasing", "decreasing", "stable"]


class ReadingIn(BaseModel):
    """One feed sample; ``value`` may be null for a gap."""

    timestamp: datetime
    value: Optional[float] = None

    def to_domain(self) -> Reading:
        return Reading(timestamp=self.timestamp, value=self.value)


def to_readings(readings: Optional[List[ReadingIn]]) -> List[Reading]:
    return [reading.to_domain() for reading in readings or []]


class SeriesPair(BaseModel):
    ammonia: List[ReadingIn] = Field(default_factory=list)
    temperature: List[ReadingIn] = Field(default_factory=list)


class AlertIn(BaseModel):
    id: Optional[str] = None
    house_id: str
    branch_name: str
    type: str = "info"
    message: str
    timestamp: datetime
    is_acknowledged: bool = False
    actions_taken: List[str] = Field(default_factory=list)

    def to_domain(self) -> Optional[Alert]:
        return Alert.from_record(self.model_dump())


def to_alerts(alerts: List[AlertIn]) -> List[Alert]:
    return parse_alerts(item.model_dump() for item in alerts)


class ChannelIn(BaseModel):
    channel_id: str
    branch_name: str
    house_id: str
    ammonia_field: int = Field(default=3, ge=1, le=8)
    temperature_field: int = Field(default=1, ge=1, le=8)
    read_api_key: Optional[str] = None
    thresholds: Optional[Dict[str, Any]] = Field(
        default=None, description="Raw threshold record; unparseable fields are ignored."
    )

    def to_domain(self) -> SensorChannel:
        return SensorChannel(
            channel_id=self.channel_id,
            branch_name=self.branch_name,
            house_id=self.house_id,
            ammonia_field=self.ammonia_field,
            temperature_field=self.temperature_field,
            read_api_key=self.read_api_key,
            thresholds=None if self.thresholds is None else ThresholdConfig.from_raw(self.thresholds),
        )


class StatisticsRequest(BaseModel):
    values: List[Optional[float]] = Field(default_factory=list)


class StatisticsOut(BaseModel):
    mean: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    std_dev: Optional[float] = None
    trend: TrendName = "stable"
    count: int = Field(default=0, ge=0)


class SeriesRequest(BaseModel):
    readings: List[ReadingIn] = Field(default_factory=list)


class DailyRequest(SeriesRequest):
    year: int = Field(..., ge=1970)
    month: int = Field(..., ge=1, le=12)


class AnnualRequest(BaseModel):
    year: int = Field(..., ge=1970)
    months: Dict[int, SeriesPair] = Field(
        default_factory=dict, description="Readings per month number (1-12)."
    )
    now: Optional[datetime] = None


class ForecastRequest(SeriesRequest):
    horizon_hours: float = Field(default=24, gt=0)
    metric: Optional[Metric] = None


class PredictionOut(BaseModel):
    predicted_value: float
    trend: TrendName


class InsightOut(BaseModel):
    text: str
    icon: str


class InsightCategoryOut(BaseModel):
    title: str
    icon: str
    color: str
    insights: List[InsightOut]


class InsightsRequest(BaseModel):
    thresholds: Optional[Dict[str, Any]] = None
    now: Optional[datetime] = None
    daily: SeriesPair = Field(default_factory=SeriesPair)
    weekly: SeriesPair = Field(default_factory=SeriesPair)
    hourly_ammonia: Dict[str, Optional[float]] = Field(default_factory=dict)
    hourly_temperature: Dict[str, Optional[float]] = Field(default_factory=dict)
    annual: List[MonthlySummary] = Field(default_factory=list)
    alerts: List[AlertIn] = Field(default_factory=list)


class DiagnosticRequest(BaseModel):
    alert: Optional[AlertIn] = None
    history: List[AlertIn] = Field(default_factory=list)


class FindingsOut(BaseModel):
    is_recurrent: bool
    count: int
    last_occurrence: Optional[datetime] = None
    ineffective_actions: List[str] = Field(default_factory=list)


class DiagnosticOut(BaseModel):
    title: str
    insights: List[str]
    findings: FindingsOut


class RecommendationRequest(DiagnosticRequest):
    ammonia: List[ReadingIn] = Field(default_factory=list)
    temperature: List[ReadingIn] = Field(default_factory=list)
    channel_configured: bool = Field(
        default=True, description="False when the house has no channel configuration."
    )


class PrescriptionOut(BaseModel):
    title: str
    recommendations: List[str]


class TextSegmentOut(BaseModel):
    text: str
    style: Literal["bold", "normal"]


class AnnualOverviewRequest(BaseModel):
    annual: List[MonthlySummary]
    thresholds: Optional[Dict[str, Any]] = None
    temp_unit: TemperatureUnit = TemperatureUnit.celsius


class DashboardRequest(BaseModel):
    channel: ChannelIn
    alerts: List[AlertIn] = Field(default_factory=list)
    now: Optional[datetime] = None


class DashboardOut(BaseModel):
    daily_predictions: Dict[Metric, Optional[PredictionOut]]
    weekly_predictions: Dict[Metric, Optional[PredictionOut]]
    hourly: Dict[Metric, Dict[str, Optional[float]]]
    annual: List[MonthlySummary]
    insights: Optional[Dict[str, InsightCategoryOut]] = None


class AlertAnalysisRequest(BaseModel):
    alert: AlertIn
    channel: Optional[ChannelIn] = None
    history: List[AlertIn] = Field(default_factory=list)
    now: Optional[datetime] = None


class AlertAnalysisOut(BaseModel):
    diagnostic: DiagnosticOut
    prescription: PrescriptionOut


class AnnualReportRequest(BaseModel):
    channel: ChannelIn
    year: int = Field(..., ge=1970)
    temp_unit: TemperatureUnit = TemperatureUnit.celsius
    now: Optional[datetime] = None


class AnnualReportOut(BaseModel):
    year: int
    rows: List[MonthlySummary]
    overview: List[TextSegmentOut]


class MonthlyReportRequest(BaseModel):
    channels: List[ChannelIn] = Field(..., min_length=1)
    year: int = Field(..., ge=1970)
    month: int = Field(..., ge=1, le=12)
    temp_unit: TemperatureUnit = TemperatureUnit.celsius


class MonthlyReportOut(BaseModel):
    year: int
    month: int
    summary: Dict[Metric, Dict[str, str]]
    daily: Dict[Metric, List[Optional[float]]]
    hourly: Dict[Metric, List[Optional[float]]]
    sections: Dict[str, List[TextSegmentOut]]
