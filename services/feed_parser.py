"""Parsing of exported sensor feeds (CSV) into reading series."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from typing import Dict, List, TextIO

from models.records import Metric, Reading, parse_float, parse_timestamp

logger = logging.getLogger(__name__)

_TIMESTAMP_COLUMNS = ("timestamp", "created_at")


@dataclass(frozen=True)
class FeedRowError:
    row_number: int
    reason: str


@dataclass
class ParsedFeed:
    series: Dict[Metric, List[Reading]] = field(default_factory=dict)
    errors: List[FeedRowError] = field(default_factory=list)

    def readings(self, metric: Metric) -> List[Reading]:
        return self.series.get(metric, [])

    @property
    def row_count(self) -> int:
        return max((len(readings) for readings in self.series.values()), default=0)


def parse_feed_csv(stream: TextIO) -> ParsedFeed:
    """Read ``timestamp`` plus ``ammonia``/``temperature`` columns.

    Blank or non-numeric cells become gaps (``value=None``); rows with a bad
    timestamp are reported and skipped.
    """
    reader = csv.DictReader(stream)
    if not reader.fieldnames:
        raise ValueError("CSV file is missing a header row.")

    normalized = {name.lower().strip(): name for name in reader.fieldnames}
    timestamp_col = next((normalized[c] for c in _TIMESTAMP_COLUMNS if c in normalized), None)
    if timestamp_col is None:
        raise ValueError("CSV missing required columns: timestamp")

    metric_cols = {metric: normalized[metric.value] for metric in Metric if metric.value in normalized}
    if not metric_cols:
        raise ValueError("CSV needs at least one of the columns: ammonia, temperature")

    parsed = ParsedFeed(series={metric: [] for metric in metric_cols})
    for row_number, row in enumerate(reader, start=2):
        timestamp_raw = (row.get(timestamp_col) or "").strip()
        if not timestamp_raw:
            parsed.errors.append(FeedRowError(row_number=row_number, reason="missing timestamp"))
            continue

        try:
            timestamp = parse_timestamp(timestamp_raw)
        except ValueError:
            parsed.errors.append(FeedRowError(row_number=row_number, reason="invalid timestamp"))
            continue

        for metric, column in metric_cols.items():
            value_raw = (row.get(column) or "").strip()
            value = parse_float(value_raw)
            if value_raw and value is None:
                parsed.errors.append(
                    FeedRowError(row_number=row_number, reason=f"invalid {metric.value} value")
                )
            parsed.series[metric].append(Reading(timestamp=timestamp, value=value))

    if parsed.errors:
        logger.info(
            "Feed parsed with row errors",
            extra={"error_count": len(parsed.errors), "point_count": parsed.row_count},
        )
    return parsed
