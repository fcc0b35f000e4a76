from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Sequence

from models.reports import MONTH_NAMES, MonthlySummary
from settings import get_settings


def cache_key(location: Sequence[str], year: int) -> str:
    return "/".join([*location, str(year)])


class AnnualSummaryCache:
    """Per-location, per-year monthly summaries; only months written are stored."""

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._items: Dict[str, Dict[str, MonthlySummary]] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def get(self, location: Sequence[str], year: int) -> Optional[List[Optional[MonthlySummary]]]:
        """Twelve slots (``None`` where a month is not cached), or ``None`` on a miss."""
        with self._lock:
            months = self._items.get(cache_key(location, year))
            if not months:
                return None
            return [
                months[name].model_copy(deep=True) if name in months else None
                for name in MONTH_NAMES
            ]

    def put(self, location: Sequence[str], year: int, rows: Sequence[MonthlySummary]) -> None:
        if not rows:
            return
        with self._lock:
            months = self._items.setdefault(cache_key(location, year), {})
            for row in rows:
                months[row.month] = row.model_copy(deep=True)
            self._persist()

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            key: {name: row.model_dump(mode="json") for name, row in months.items()}
            for key, months in self._items.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for key, months in data.items():
            self._items[key] = {
                name: MonthlySummary.model_validate(payload) for name, payload in months.items()
            }


@lru_cache
def build_default_cache(path: Optional[str] = None) -> AnnualSummaryCache:
    settings = get_settings()
    cache_path = settings.annual_cache_path if path is None else path
    persistence = Path(cache_path) if cache_path else None
    return AnnualSummaryCache(persistence_path=persistence)
