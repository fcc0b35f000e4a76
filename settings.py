from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


_TIMEZONE_ENV = "ANALYTICS_TIMEZONE"
_CACHE_PATH_ENV = "ANNUAL_CACHE_PATH"
_FEED_BASE_URL_ENV = "THINGSPEAK_BASE_URL"
_FEED_TIMEOUT_ENV = "FEED_TIMEOUT_SECONDS"
_WORKER_COUNT_ENV = "FEED_WORKER_COUNT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    timezone: str
    annual_cache_path: Optional[str]
    feed_base_url: str
    feed_timeout: float
    feed_workers: int
    log_level: str

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_worker_count(default: int) -> int:
    value = os.getenv(_WORKER_COUNT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_timeout(default: float) -> float:
    value = os.getenv(_FEED_TIMEOUT_ENV)
    if value is None:
        return default
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_timezone(default: str) -> str:
    candidate = _read_str_env(_TIMEZONE_ENV, default)
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return candidate


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        timezone=_read_timezone("UTC"),
        annual_cache_path=_read_optional_env(_CACHE_PATH_ENV, "./tmp/annual_cache.json"),
        feed_base_url=_read_str_env(_FEED_BASE_URL_ENV, "https://api.thingspeak.com").rstrip("/"),
        feed_timeout=_read_timeout(30.0),
        feed_workers=_read_worker_count(2),
        log_level=_read_log_level("INFO"),
    )
