"""Display-unit conversion. Analytics always run in °C and ppm."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from models.records import Metric


class TemperatureUnit(str, Enum):
    celsius = "C"
    fahrenheit = "F"


def celsius_to_fahrenheit(value: float) -> float:
    return value * 9 / 5 + 32


def converts(metric: Optional[Metric], unit: TemperatureUnit) -> bool:
    return metric is Metric.temperature and unit is TemperatureUnit.fahrenheit


def to_display(
    value: float, metric: Optional[Metric], unit: TemperatureUnit = TemperatureUnit.celsius
) -> float:
    return celsius_to_fahrenheit(value) if converts(metric, unit) else value


def unit_symbol(metric: Optional[Metric], unit: TemperatureUnit = TemperatureUnit.celsius) -> str:
    if metric is Metric.temperature:
        return "°F" if unit is TemperatureUnit.fahrenheit else "°C"
    return " ppm"
