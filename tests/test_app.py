from datetime import datetime, timedelta, timezone
from typing import Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.annual_cache import AnnualSummaryCache, build_default_cache
from models.records import Metric, Reading
from services.aggregator import Aggregator
from services.pipeline import AnalyticsService, build_default_service
from settings import get_settings
from storage.feeds import FeedUnavailableError, InMemoryFeedSource
from storage.thingspeak import build_default_feed_source

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
CHANNEL = {
    "channel_id": "100",
    "branch_name": "north",
    "house_id": "house-1",
    "thresholds": {"ammoniaHigh": "20", "tempHigh": 32, "tempLow": "n/a"},
}


def _readings(values, start: datetime = NOW - timedelta(hours=167)) -> list[dict]:
    return [
        {"timestamp": (start + timedelta(hours=i)).isoformat(), "value": value}
        for i, value in enumerate(values)
    ]


def _rising() -> list[float]:
    return [5 + 15 * i / 167 for i in range(168)]


class _DownFeed(InMemoryFeedSource):
    def fetch(self, channel, metric, start, end):
        raise FeedUnavailableError("feed is down")


@pytest.fixture
def feed() -> InMemoryFeedSource:
    source = InMemoryFeedSource()
    start = NOW - timedelta(hours=167)
    source.put_readings(
        "100", Metric.ammonia, [Reading(start + timedelta(hours=i), v) for i, v in enumerate(_rising())]
    )
    source.put_readings(
        "100", Metric.temperature, [Reading(start + timedelta(hours=i), 27.0) for i in range(168)]
    )
    return source


@pytest.fixture
def api_client(feed: InMemoryFeedSource, monkeypatch) -> Iterator[TestClient]:
    services: Dict[int, AnalyticsService] = {}

    def build_test_service(workers: int | None = None) -> AnalyticsService:
        worker_count = workers or 1
        service = services.get(worker_count)
        if service is None:
            service = AnalyticsService(
                feed=feed,
                cache=AnnualSummaryCache(),
                aggregator=Aggregator(),
                workers=worker_count,
            )
            services[worker_count] = service
        return service

    def cache_clear() -> None:
        while services:
            _, service = services.popitem()
            service.shutdown()

    build_test_service.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_service", build_test_service)
    monkeypatch.setattr("services.pipeline.build_default_service", build_test_service)

    app = create_app()
    with TestClient(app) as client:
        yield client

    cache_clear()


def test_lifespan_shuts_down_service_and_clears_caches(monkeypatch) -> None:
    monkeypatch.setenv("ANNUAL_CACHE_PATH", "")
    get_settings.cache_clear()
    build_default_cache.cache_clear()
    build_default_feed_source.cache_clear()
    app = create_app()

    with TestClient(app):
        service_during = build_default_service()
        assert service_during.executor._shutdown is False
        feed_during = service_during.feed
        assert feed_during._client.is_closed is False

    assert service_during.executor._shutdown is True
    assert feed_during._client.is_closed is True
    assert build_default_feed_source() is not feed_during

    service_after = build_default_service()
    try:
        assert service_after is not service_during
        assert service_after.executor._shutdown is False
    finally:
        service_after.shutdown()
        build_default_service.cache_clear()
        build_default_feed_source.cache_clear()
        build_default_cache.cache_clear()
        get_settings.cache_clear()


def test_health_and_root(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"


def test_statistics_endpoint(api_client: TestClient) -> None:
    response = api_client.post("/analytics/statistics", json={"values": [1, 2, None, 4]})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 3
    assert body["min"] == 1
    assert body["max"] == 4
    assert body["trend"] == "increasing"


def test_hourly_endpoint_returns_all_hours(api_client: TestClient) -> None:
    response = api_client.post(
        "/analytics/hourly",
        json={"readings": [{"timestamp": "2024-03-01T05:30:00Z", "value": 8.0}]},
    )

    body = response.json()
    assert len(body) == 24
    assert body["05:00"] == 8.0
    assert body["06:00"] is None


def test_daily_endpoint_validates_month(api_client: TestClient) -> None:
    response = api_client.post("/analytics/daily", json={"year": 2024, "month": 13, "readings": []})

    assert response.status_code == 422


def test_annual_endpoint(api_client: TestClient) -> None:
    response = api_client.post(
        "/analytics/annual",
        json={
            "year": 2024,
            "now": NOW.isoformat(),
            "months": {"1": {"ammonia": [{"timestamp": "2024-01-02T00:00:00Z", "value": 11.111}]}},
        },
    )

    rows = response.json()
    assert len(rows) == 12
    assert rows[0]["ammonia_max"] == 11.11
    assert rows[0]["temp_avg"] == ""
    assert rows[11]["ammonia_avg"] == ""


def test_forecast_endpoint(api_client: TestClient) -> None:
    response = api_client.post(
        "/analytics/forecast",
        json={"readings": _readings(_rising()), "horizon_hours": 24, "metric": "ammonia"},
    )

    body = response.json()
    assert body["trend"] == "increasing"
    assert body["predicted_value"] > 20


def test_forecast_endpoint_with_too_little_data(api_client: TestClient) -> None:
    response = api_client.post("/analytics/forecast", json={"readings": _readings([1.0, 2.0])})

    assert response.status_code == 200
    assert response.json() is None


def test_insights_endpoint(api_client: TestClient) -> None:
    response = api_client.post(
        "/analytics/insights",
        json={
            "thresholds": {"ammoniaHigh": 20},
            "now": NOW.isoformat(),
            "daily": {"ammonia": _readings([18.0, 22.0], start=NOW - timedelta(hours=2))},
        },
    )

    body = response.json()
    assert list(body) == ["daily", "weekly", "alerts"]
    daily = body["daily"]["insights"][0]["text"]
    assert "22" in daily and "20" in daily


def test_insights_endpoint_without_configuration(api_client: TestClient) -> None:
    response = api_client.post("/analytics/insights", json={})

    assert response.json() is None


def test_diagnostics_endpoint(api_client: TestClient) -> None:
    alert = {
        "house_id": "house-1",
        "branch_name": "north",
        "type": "ammonia",
        "message": "Ammonia high: 27 ppm",
        "timestamp": "2024-03-15T23:00:00Z",
    }
    earlier = dict(alert, timestamp="2024-03-10T23:00:00Z", actions_taken=["Improved airflow"])

    response = api_client.post("/analytics/diagnostics", json={"alert": alert, "history": [earlier]})

    body = response.json()
    assert body["title"] == "Ammonia Alert"
    assert body["findings"]["count"] == 1
    assert body["findings"]["ineffective_actions"] == ["Improved airflow"]


def test_diagnostics_endpoint_without_alert(api_client: TestClient) -> None:
    body = api_client.post("/analytics/diagnostics", json={}).json()

    assert body["title"] == "Analysis Error"


def test_recommendations_endpoint(api_client: TestClient) -> None:
    response = api_client.post(
        "/analytics/recommendations",
        json={
            "alert": {
                "house_id": "house-1",
                "branch_name": "north",
                "type": "ammonia",
                "message": "Ammonia high: 27 ppm",
                "timestamp": NOW.isoformat(),
            },
            "ammonia": _readings(_rising()),
        },
    )

    body = response.json()
    assert body["recommendations"][:2] == [
        "Improve airflow immediately.",
        "Check and clean animal waste.",
    ]


def test_recommendations_without_channel(api_client: TestClient) -> None:
    response = api_client.post(
        "/analytics/recommendations",
        json={
            "alert": {
                "house_id": "house-1",
                "branch_name": "north",
                "message": "Check sensors",
                "timestamp": NOW.isoformat(),
            },
            "channel_configured": False,
        },
    )

    assert response.json()["title"] == "Recommendation Error"


def test_annual_overview_endpoint(api_client: TestClient) -> None:
    response = api_client.post(
        "/reports/annual-overview",
        json={"annual": [{"month": "May", "ammonia_avg": 10.0, "temp_avg": 28.0}]},
    )

    segments = response.json()
    assert segments[-1] == {
        "text": "More data is needed for a full annual trend analysis.",
        "style": "bold",
    }


def test_dashboard_endpoint(api_client: TestClient) -> None:
    response = api_client.post(
        "/channels/dashboard", json={"channel": CHANNEL, "now": NOW.isoformat()}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["daily_predictions"]["ammonia"]["trend"] == "increasing"
    assert len(body["hourly"]["temperature"]) == 24
    assert len(body["annual"]) == 12
    assert "alerts" in body["insights"]


def test_dashboard_feed_failure_maps_to_bad_gateway(api_client: TestClient, monkeypatch) -> None:
    service = AnalyticsService(
        feed=_DownFeed(), cache=AnnualSummaryCache(), aggregator=Aggregator(), workers=1
    )
    monkeypatch.setattr("app.api.build_default_service", lambda workers=None: service)
    try:
        response = api_client.post(
            "/channels/dashboard", json={"channel": CHANNEL, "now": NOW.isoformat()}
        )
    finally:
        service.shutdown()

    assert response.status_code == 502
    assert response.json()["detail"] == "feed is down"


def test_alert_analysis_endpoint(api_client: TestClient) -> None:
    response = api_client.post(
        "/channels/alert-analysis",
        json={
            "alert": {
                "house_id": "house-1",
                "branch_name": "north",
                "type": "temperature",
                "message": "Temperature high: 34",
                "timestamp": "2024-03-15T13:00:00Z",
            },
            "channel": CHANNEL,
            "now": NOW.isoformat(),
        },
    )

    body = response.json()
    assert body["diagnostic"]["title"] == "High Temperature Alert"
    assert body["prescription"]["recommendations"] == ["Improve airflow.", "Increase water supply."]


def test_annual_report_endpoint(api_client: TestClient) -> None:
    response = api_client.post(
        "/channels/annual-report",
        json={"channel": CHANNEL, "year": 2024, "now": NOW.isoformat()},
    )

    body = response.json()
    assert body["year"] == 2024
    assert body["rows"][2]["month"] == "March"
    assert body["rows"][2]["ammonia_max"] == 20.0


def test_monthly_report_endpoint(api_client: TestClient) -> None:
    response = api_client.post(
        "/channels/monthly-report",
        json={"channels": [CHANNEL], "year": 2024, "month": 3, "temp_unit": "F"},
    )

    body = response.json()
    assert response.status_code == 200
    assert len(body["daily"]["ammonia"]) == 31
    assert body["summary"]["temperature"]["avg"] == "80.60°F"
    assert body["sections"]["ammonia_hourly"][0]["text"] == "Hourly Pattern:\n"


def test_monthly_report_requires_a_channel(api_client: TestClient) -> None:
    response = api_client.post(
        "/channels/monthly-report", json={"channels": [], "year": 2024, "month": 3}
    )

    assert response.status_code == 422
