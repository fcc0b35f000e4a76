from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from services.units import TemperatureUnit

DEFAULT_TIMEZONE = "UTC"
DEFAULT_TEMP_UNIT = TemperatureUnit.celsius

_TIMEZONE_ENV = "ANALYTICS_TIMEZONE"
_TEMP_UNIT_ENV = "CLI_TEMP_UNIT"


@dataclass(frozen=True)
class CLIConfig:
    timezone: str = DEFAULT_TIMEZONE
    temp_unit: TemperatureUnit = DEFAULT_TEMP_UNIT

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _valid_timezone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        return None
    return candidate


def _read_temp_unit(value: Optional[str], default: TemperatureUnit) -> TemperatureUnit:
    if value is None:
        return default
    try:
        return TemperatureUnit(value.strip().upper())
    except ValueError:
        return default


def load_config(
    timezone: Optional[str] = None,
    temp_unit: Optional[TemperatureUnit] = None,
) -> CLIConfig:
    """Explicit options win over the environment; invalid values fall back to defaults."""
    zone = (
        _valid_timezone(timezone)
        or _valid_timezone(os.getenv(_TIMEZONE_ENV))
        or DEFAULT_TIMEZONE
    )
    if temp_unit is None:
        temp_unit = _read_temp_unit(os.getenv(_TEMP_UNIT_ENV), DEFAULT_TEMP_UNIT)
    return CLIConfig(timezone=zone, temp_unit=temp_unit)
