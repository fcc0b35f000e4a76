from __future__ import annotations

from pathlib import Path
from typing import Iterable

from datastore.annual_cache import build_default_cache
from services.pipeline import build_default_service
from settings import get_settings
from storage.thingspeak import build_default_feed_source


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    cache_path = tmp_path / "annual.json"

    monkeypatch.setenv("ANALYTICS_TIMEZONE", "Africa/Nairobi")
    monkeypatch.setenv("ANNUAL_CACHE_PATH", str(cache_path))
    monkeypatch.setenv("THINGSPEAK_BASE_URL", "https://feeds.example.test/")
    monkeypatch.setenv("FEED_TIMEOUT_SECONDS", "5")
    monkeypatch.setenv("FEED_WORKER_COUNT", "3")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (
        get_settings,
        build_default_feed_source,
        build_default_cache,
        build_default_service,
    )
    _clear_caches(caches)

    settings = get_settings()
    service = build_default_service()

    try:
        assert settings.timezone == "Africa/Nairobi"
        assert settings.feed_base_url == "https://feeds.example.test"
        assert settings.feed_timeout == 5.0
        assert settings.log_level == "DEBUG"
        assert service.cache.persistence_path == Path(cache_path)
        assert str(service.tz) == "Africa/Nairobi"
        assert service.executor._max_workers == 3
    finally:
        service.shutdown()
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("ANALYTICS_TIMEZONE", "Nowhere/Special")
    monkeypatch.setenv("ANNUAL_CACHE_PATH", "   ")
    monkeypatch.setenv("FEED_TIMEOUT_SECONDS", "-1")
    monkeypatch.setenv("FEED_WORKER_COUNT", "many")

    get_settings.cache_clear()
    try:
        settings = get_settings()

        assert settings.timezone == "UTC"
        assert settings.annual_cache_path is None
        assert settings.feed_timeout == 30.0
        assert settings.feed_workers == 2
    finally:
        get_settings.cache_clear()
