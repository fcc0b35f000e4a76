from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Dict, Iterable, List, Protocol, Tuple

from models.records import Metric, Reading, SensorChannel, as_utc


class FeedUnavailableError(Exception):
    """The sensor feed could not be reached or returned an unusable response."""


class FeedSource(Protocol):
    def fetch(
        self, channel: SensorChannel, metric: Metric, start: datetime, end: datetime
    ) -> List[Reading]:
        """Readings for ``metric`` with ``start <= timestamp <= end``, oldest first."""
        ...


class InMemoryFeedSource:
    """Feed source over readings held in memory, keyed by channel and metric."""

    def __init__(self) -> None:
        self._series: Dict[Tuple[str, Metric], List[Reading]] = {}
        self._lock = Lock()
        self.fetch_count = 0

    def put_readings(self, channel_id: str, metric: Metric, readings: Iterable[Reading]) -> None:
        with self._lock:
            series = self._series.setdefault((channel_id, metric), [])
            series.extend(readings)
            series.sort(key=lambda reading: as_utc(reading.timestamp))

    def fetch(
        self, channel: SensorChannel, metric: Metric, start: datetime, end: datetime
    ) -> List[Reading]:
        lower, upper = as_utc(start), as_utc(end)
        with self._lock:
            self.fetch_count += 1
            series = list(self._series.get((channel.channel_id, metric), ()))
        return [reading for reading in series if lower <= as_utc(reading.timestamp) <= upper]
