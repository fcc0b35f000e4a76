"""Historical alert pattern analysis."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import List, Optional, Sequence

from models.records import Alert, AlertType, Metric

logger = logging.getLogger(__name__)

RECURRENCE_WINDOW = timedelta(days=30)
# How many of the latest matching alerts are inspected for repeated actions.
RECENT_ACTIONS_DEPTH = 3

_NUMBER = re.compile(r"\d+\.?\d*")


@dataclass(frozen=True)
class DiagnosticFindings:
    is_recurrent: bool = False
    count: int = 0
    last_occurrence: Optional[datetime] = None
    ineffective_actions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DiagnosticReport:
    title: str
    insights: List[str]
    findings: DiagnosticFindings = field(default_factory=DiagnosticFindings)


def analyze_history(current: Alert, alerts: Sequence[Alert]) -> DiagnosticFindings:
    """Find same-type alerts at the same location in the 30 days before ``current``."""
    window_start = current.timestamp - RECURRENCE_WINDOW
    similar = sorted(
        (
            alert
            for alert in alerts
            if alert.location == current.location
            and alert.type is current.type
            and window_start <= alert.timestamp < current.timestamp
        ),
        key=lambda alert: alert.timestamp,
        reverse=True,
    )

    ineffective: List[str] = []
    for alert in similar[:RECENT_ACTIONS_DEPTH]:
        for action in alert.actions_taken:
            if action not in ineffective:
                ineffective.append(action)

    return DiagnosticFindings(
        is_recurrent=bool(similar),
        count=len(similar),
        last_occurrence=similar[0].timestamp if similar else None,
        ineffective_actions=ineffective,
    )


def alert_value(message: str) -> float:
    match = _NUMBER.search(message)
    return float(match.group(0)) if match else 0.0


def _format_value(value: float) -> str:
    return f"{value:g}"


def generate_diagnostic(
    alert: Optional[Alert],
    alerts: Sequence[Alert],
    tz: tzinfo = timezone.utc,
) -> DiagnosticReport:
    """Explain an alert from its type, time of day and the location's history."""
    if alert is None:
        logger.warning("Diagnostic requested without an alert")
        return DiagnosticReport(title="Analysis Error", insights=["Invalid alert data provided."])

    findings = analyze_history(alert, alerts)
    value = _format_value(alert_value(alert.message))
    hour = alert.timestamp.astimezone(tz).hour
    insights: List[str] = []
    title = f"{alert.type.value.capitalize()} Alert"
    metrics = alert.type.metrics

    if findings.is_recurrent:
        insights.append(
            f"This is a **repeated alert**. It happened {findings.count} time(s) "
            "in the past 30 days."
        )

    if Metric.ammonia in metrics:
        insights.append(
            f"High ammonia (**{value} PPM**) is often caused by animal waste or poor airflow."
        )
        if hour >= 20 or hour <= 6:
            insights.append("Happened at night. Cool air and less fan activity can trap ammonia.")
        if "Improved airflow" in findings.ineffective_actions:
            insights.append(
                "Just improving airflow didn't fix this before. The problem might be "
                "**animal waste** or **too many animals**."
            )
    if Metric.temperature in metrics:
        direction = "High" if alert.is_high else "Low"
        title = (
            "Ammonia and Temperature Alert"
            if alert.type is AlertType.both
            else f"{direction} Temperature Alert"
        )
        insights.extend(_temperature_insights(alert, value, hour, findings))
    if not metrics:
        insights.append("General alert. Check all systems.")

    return DiagnosticReport(title=title, insights=insights, findings=findings)


def _temperature_insights(
    alert: Alert, value: str, hour: int, findings: DiagnosticFindings
) -> List[str]:
    insights: List[str] = []
    if alert.is_high:
        insights.append(
            f"High temperature (**{value}°C**) suggests a cooling problem or very hot "
            "weather outside."
        )
        if 12 <= hour <= 16:
            insights.append("Happened in the afternoon, the hottest time of day.")
        if "Activated cooling system" in findings.ineffective_actions:
            insights.append(
                "Using the cooling system didn't prevent this alert before. The system "
                "may be **weak** or the airflow is poor."
            )
        return insights

    insights.append(
        f"Low temperature (**{value}°C**) points to a heater problem or cold drafts."
    )
    if hour >= 22 or hour <= 5:
        insights.append("Happened overnight when it's naturally colder.")
    if "Activated heating system" in findings.ineffective_actions:
        insights.append(
            "Using the heater didn't prevent this alert before. It may need a "
            "**check-up or repair**."
        )
    return insights
