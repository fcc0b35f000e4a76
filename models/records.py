"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping, Optional


class Metric(str, Enum):
    """Environmental quantity measured by a poultry-house sensor."""

    ammonia = "ammonia"
    temperature = "temperature"

    @property
    def non_negative(self) -> bool:
        return self is Metric.ammonia


class AlertType(str, Enum):
    ammonia = "ammonia"
    temperature = "temperature"
    both = "both"
    info = "info"

    @property
    def metrics(self) -> tuple[Metric, ...]:
        if self is AlertType.ammonia:
            return (Metric.ammonia,)
        if self is AlertType.temperature:
            return (Metric.temperature,)
        if self is AlertType.both:
            return (Metric.ammonia, Metric.temperature)
        return ()

    @classmethod
    def parse(cls, raw: Any) -> "AlertType":
        candidate = str(raw or "").strip().lower()
        for member in cls:
            if member.value == candidate:
                return member
        if "ammonia" in candidate and "temp" in candidate:
            return cls.both
        if "ammonia" in candidate:
            return cls.ammonia
        if "temp" in candidate:
            return cls.temperature
        return cls.info


class AlertAlreadyAcknowledged(Exception):
    """Raised when acknowledging an alert that is already acknowledged."""


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_float(raw: Any) -> Optional[float]:
    """Lenient number parsing: ``None`` for anything that is not a finite number."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(str(raw).strip()) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return as_utc(raw)

    candidate = str(raw or "").strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    return as_utc(parsed)


@dataclass(frozen=True, slots=True)
class Reading:
    """A single timestamped sensor value; ``value`` is ``None`` for a gap."""

    timestamp: datetime
    value: Optional[float]

    @property
    def is_valid(self) -> bool:
        return self.value is not None and math.isfinite(self.value)


@dataclass(frozen=True, slots=True)
class ThresholdConfig:
    """Per-house alert thresholds. ``None`` means no comparison is possible."""

    ammonia_high: Optional[float] = None
    temp_high: Optional[float] = None
    temp_low: Optional[float] = None

    @classmethod
    def from_raw(cls, raw: Optional[Mapping[str, Any]]) -> "ThresholdConfig":
        raw = raw or {}
        return cls(
            ammonia_high=parse_float(raw.get("ammonia_high", raw.get("ammoniaHigh"))),
            temp_high=parse_float(raw.get("temp_high", raw.get("tempHigh"))),
            temp_low=parse_float(raw.get("temp_low", raw.get("tempLow"))),
        )


@dataclass(frozen=True, slots=True)
class Alert:
    """Historical threshold alert raised for a poultry house."""

    id: str
    house_id: str
    branch_name: str
    type: AlertType
    message: str
    timestamp: datetime
    is_acknowledged: bool = False
    actions_taken: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Naive timestamps are taken as UTC so histories compare cleanly.
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))

    @property
    def location(self) -> tuple[str, str]:
        return (self.branch_name, self.house_id)

    @property
    def is_high(self) -> bool:
        return "high" in self.message.lower()

    def acknowledge(self, actions: Iterable[str]) -> "Alert":
        if self.is_acknowledged:
            raise AlertAlreadyAcknowledged(f"Alert {self.id!r} is already acknowledged.")
        return replace(self, is_acknowledged=True, actions_taken=tuple(actions))

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        branch_name: Optional[str] = None,
        house_id: Optional[str] = None,
    ) -> Optional["Alert"]:
        """Build an alert from a loosely-typed store record, or ``None`` if unusable."""
        message = record.get("message")
        raw_timestamp = record.get("timestamp")
        if not message or raw_timestamp is None:
            return None
        try:
            timestamp = parse_timestamp(raw_timestamp)
        except ValueError:
            return None

        branch = branch_name or str(record.get("branch_name") or record.get("branchName") or "")
        house = house_id or str(record.get("house_id") or record.get("houseId") or "")
        actions = record.get("actions_taken", record.get("actionTaken")) or ()
        if isinstance(actions, str):
            actions = (actions,)
        acknowledged = record.get("is_acknowledged", record.get("isAcknowledge", False))
        alert_id = record.get("id") or f"{branch}-{house}-{int(timestamp.timestamp() * 1000)}"
        return cls(
            id=str(alert_id),
            house_id=house,
            branch_name=branch,
            type=AlertType.parse(record.get("type") or record.get("warning")),
            message=str(message),
            timestamp=timestamp,
            is_acknowledged=bool(acknowledged),
            actions_taken=tuple(str(action) for action in actions),
        )


def parse_alerts(records: Iterable[Mapping[str, Any]]) -> list[Alert]:
    """Parse raw alert records, dropping malformed ones, newest first."""
    alerts = [alert for alert in (Alert.from_record(record) for record in records) if alert]
    alerts.sort(key=lambda alert: alert.timestamp, reverse=True)
    return alerts


@dataclass(frozen=True, slots=True)
class SensorChannel:
    """Feed coordinates and configuration for one poultry house."""

    channel_id: str
    branch_name: str
    house_id: str
    ammonia_field: int = 3
    temperature_field: int = 1
    read_api_key: Optional[str] = None
    thresholds: Optional[ThresholdConfig] = None

    @property
    def location(self) -> tuple[str, str]:
        return (self.branch_name, self.house_id)

    def field_for(self, metric: Metric) -> int:
        return self.ammonia_field if metric is Metric.ammonia else self.temperature_field
