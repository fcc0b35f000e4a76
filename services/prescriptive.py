"""Ranked corrective actions for an alert."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Literal, Mapping, Optional

from models.records import Alert, Metric
from services.diagnostics import DiagnosticFindings
from services.forecaster import Prediction

logger = logging.getLogger(__name__)

Priority = Literal["high", "medium", "low", "long-term"]

PRIORITY_RANK: Dict[str, int] = {"high": 1, "medium": 2, "low": 3, "long-term": 4}


@dataclass(frozen=True)
class Recommendation:
    text: str
    priority: Priority


@dataclass(frozen=True)
class Prescription:
    title: str
    recommendations: List[str]


def rank(recommendations: List[Recommendation]) -> List[str]:
    """Drop repeated texts (first one wins) and order by priority."""
    unique: Dict[str, Recommendation] = {}
    for recommendation in recommendations:
        unique.setdefault(recommendation.text, recommendation)
    ordered = sorted(unique.values(), key=lambda item: PRIORITY_RANK[item.priority])
    return [item.text for item in ordered]


def _ammonia_actions(
    prediction: Optional[Prediction], recurrent: bool
) -> tuple[List[Recommendation], List[Recommendation]]:
    urgent: List[Recommendation] = []
    if prediction is not None and prediction.trend == "increasing":
        urgent.append(Recommendation("Improve airflow immediately.", "high"))
        urgent.append(Recommendation("Check and clean animal waste.", "high"))

    routine = [
        Recommendation("Clean animal waste.", "medium"),
        Recommendation("Check feed and water quality.", "low"),
    ]
    if recurrent:
        routine.append(
            Recommendation("Review and improve animal waste management schedule.", "long-term")
        )
    return urgent, routine


def _temperature_actions(
    prediction: Optional[Prediction], is_high: bool, recurrent: bool
) -> tuple[List[Recommendation], List[Recommendation]]:
    urgent: List[Recommendation] = []
    if prediction is not None:
        if prediction.trend == "increasing" and is_high:
            urgent.append(Recommendation("Activate cooling systems now.", "high"))
            urgent.append(Recommendation("Ensure water sources are full and accessible.", "high"))
        elif prediction.trend == "decreasing" and not is_high:
            urgent.append(Recommendation("Activate heating systems.", "high"))
            urgent.append(Recommendation("Check for and seal any drafts.", "high"))

    if is_high:
        routine = [
            Recommendation("Improve airflow.", "medium"),
            Recommendation("Increase water supply.", "medium"),
        ]
    else:
        routine = [Recommendation("Activate heating system.", "medium")]
    if recurrent:
        routine.append(Recommendation("Schedule climate control system maintenance.", "long-term"))
    return urgent, routine


def recommend(
    alert: Optional[Alert],
    forecasts: Optional[Mapping[Metric, Optional[Prediction]]],
    diagnostic: Optional[DiagnosticFindings] = None,
) -> Prescription:
    """Combine the metric forecasts and alert history into ordered actions.

    ``forecasts`` is ``None`` when the location has no channel configuration;
    a missing entry for a metric means no forecast could be made.
    """
    if alert is None or forecasts is None:
        logger.warning("Recommendation requested without alert or channel configuration")
        return Prescription(
            title="Recommendation Error", recommendations=["Missing data for analysis."]
        )

    metrics = alert.type.metrics
    if not metrics:
        return Prescription(
            title="Recommended Actions", recommendations=["General alert. Check all systems."]
        )

    recurrent = diagnostic.is_recurrent if diagnostic is not None else False
    urgent: List[Recommendation] = []
    routine: List[Recommendation] = []

    if Metric.ammonia in metrics:
        high, rest = _ammonia_actions(forecasts.get(Metric.ammonia), recurrent)
        urgent.extend(high)
        routine.extend(rest)
    if Metric.temperature in metrics:
        high, rest = _temperature_actions(
            forecasts.get(Metric.temperature), alert.is_high, recurrent
        )
        urgent.extend(high)
        routine.extend(rest)

    return Prescription(title="Recommended Actions", recommendations=rank(urgent + routine))
