from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional

import httpx

from models.records import Metric, Reading, SensorChannel, as_utc, parse_float, parse_timestamp
from settings import get_settings
from storage.feeds import FeedUnavailableError

logger = logging.getLogger(__name__)

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class ThingSpeakFeedSource:
    """Reads channel fields from a ThingSpeak-compatible HTTP API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def fetch(
        self, channel: SensorChannel, metric: Metric, start: datetime, end: datetime
    ) -> List[Reading]:
        field_id = channel.field_for(metric)
        params: Dict[str, Any] = {
            "start": as_utc(start).strftime(_TIME_FORMAT),
            "end": as_utc(end).strftime(_TIME_FORMAT),
            "timezone": "UTC",
        }
        if channel.read_api_key:
            params["api_key"] = channel.read_api_key

        try:
            response = self._client.get(
                f"/channels/{channel.channel_id}/fields/{field_id}.json", params=params
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise FeedUnavailableError(
                f"Feed request for channel {channel.channel_id!r} failed with status "
                f"{exc.response.status_code}."
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise FeedUnavailableError(
                f"Feed request for channel {channel.channel_id!r} failed: {exc}"
            ) from exc

        return self._parse_feeds(payload, field_id)

    @staticmethod
    def _parse_feeds(payload: Any, field_id: int) -> List[Reading]:
        if not isinstance(payload, dict):
            return []
        field_key = f"field{field_id}"
        readings: List[Reading] = []
        for entry in payload.get("feeds") or []:
            try:
                timestamp = parse_timestamp(entry.get("created_at"))
            except (AttributeError, ValueError):
                logger.debug("Skipping feed entry without a usable timestamp")
                continue
            readings.append(Reading(timestamp=timestamp, value=parse_float(entry.get(field_key))))
        return readings


@lru_cache
def build_default_feed_source(base_url: Optional[str] = None) -> ThingSpeakFeedSource:
    settings = get_settings()
    url = settings.feed_base_url if base_url is None else base_url
    return ThingSpeakFeedSource(base_url=url, timeout=settings.feed_timeout)
