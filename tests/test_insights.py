"""Tests for the dashboard insight generator."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from models.records import Alert, AlertType, Reading, ThresholdConfig
from models.reports import MONTH_NAMES, MonthlySummary
from services.insights import InsightInputs, MetricSeries, generate_insights, peak_hour

NOW = datetime(2024, 7, 15, 12, 0, tzinfo=timezone.utc)
THRESHOLDS = ThresholdConfig(ammonia_high=20, temp_high=32, temp_low=18)


def _series(values, end: datetime = NOW) -> list[Reading]:
    start = end - timedelta(hours=len(values))
    return [Reading(timestamp=start + timedelta(hours=i), value=v) for i, v in enumerate(values)]


def _alert(hours_ago: float, type_: AlertType = AlertType.ammonia) -> Alert:
    return Alert(
        id=f"a-{hours_ago}",
        house_id="house-1",
        branch_name="north",
        type=type_,
        message="Ammonia high: 25 ppm",
        timestamp=NOW - timedelta(hours=hours_ago),
    )


def _texts(category) -> list[str]:
    return [insight.text for insight in category.insights]


def test_daily_ammonia_breach_mentions_peak_and_threshold() -> None:
    inputs = InsightInputs(
        thresholds=ThresholdConfig(ammonia_high=20),
        now=NOW,
        daily=MetricSeries(ammonia=_series([18.0, 22.0, 19.5])),
    )

    insights = generate_insights(inputs)

    assert insights is not None
    daily = _texts(insights["daily"])
    assert any("22" in text and "20" in text for text in daily)
    assert insights["daily"].title == "Daily Summary"


def test_daily_average_when_below_threshold() -> None:
    inputs = InsightInputs(
        thresholds=THRESHOLDS, now=NOW, daily=MetricSeries(ammonia=_series([10.0, 12.0]))
    )

    daily = _texts(generate_insights(inputs)["daily"])

    assert daily == ["Average ammonia in the last 24h was **11.00 ppm**."]


def test_daily_temperature_low_breach_and_volatility() -> None:
    inputs = InsightInputs(
        thresholds=THRESHOLDS,
        now=NOW,
        daily=MetricSeries(temperature=_series([17.0, 25.0, 30.0, 21.0])),
    )

    daily = _texts(generate_insights(inputs)["daily"])

    assert "dropped to **17.00°C**" in daily[0]
    assert "**18°C** limit" in daily[0]
    assert "volatile" in daily[1]


def test_no_daily_data_message() -> None:
    inputs = InsightInputs(thresholds=THRESHOLDS, now=NOW)

    daily = _texts(generate_insights(inputs)["daily"])

    assert daily == ["No new data recorded in the last 24 hours."]


def test_weekly_trend_and_insufficient_data() -> None:
    rising = InsightInputs(
        thresholds=THRESHOLDS, now=NOW, weekly=MetricSeries(ammonia=_series([1.0, 2.0, 3.0]))
    )
    sparse = InsightInputs(
        thresholds=THRESHOLDS, now=NOW, weekly=MetricSeries(temperature=_series([25.0]))
    )

    rising_weekly = generate_insights(rising)["weekly"]
    sparse_weekly = _texts(generate_insights(sparse)["weekly"])

    assert rising_weekly.insights[0].text == "Ammonia levels showed a **increasing** trend this week."
    assert rising_weekly.insights[0].icon == "bi-arrow-up-right"
    assert sparse_weekly[-1] == "Not enough data for weekly trend analysis."


def test_monthly_and_annual_categories() -> None:
    annual = [MonthlySummary.empty(name) for name in MONTH_NAMES]
    annual[5] = MonthlySummary(month="June", ammonia_avg=14.2, temp_avg=31.0)
    annual[6] = MonthlySummary(month="July", ammonia_avg=9.5, temp_avg=29.25)
    inputs = InsightInputs(thresholds=THRESHOLDS, now=NOW, annual=annual)

    insights = generate_insights(inputs)

    assert _texts(insights["monthly"]) == [
        "This month's average ammonia is **9.50 ppm**.",
        "The average temperature this month is **29.25°C**.",
    ]
    annual_texts = _texts(insights["annual"])
    assert "**June** was the hottest month" in annual_texts[0]
    assert "highest in **June**" in annual_texts[1]


def test_annual_needs_two_complete_months() -> None:
    annual = [MonthlySummary(month="July", ammonia_avg=9.5, temp_avg=29.25)]

    insights = generate_insights(InsightInputs(thresholds=THRESHOLDS, now=NOW, annual=annual))

    assert "annual" not in insights


def test_hourly_peaks() -> None:
    inputs = InsightInputs(
        thresholds=THRESHOLDS,
        now=NOW,
        hourly_ammonia={"05:00": 12.0, "06:00": 15.0, "07:00": None},
        hourly_temperature={"13:00": 33.0, "14:00": 33.0},
    )

    hourly = _texts(generate_insights(inputs)["hourly"])

    assert hourly == [
        "Ammonia levels typically peak around **06:00**.",
        "The warmest part of the day is usually around **13:00**.",
    ]


def test_peak_hour_without_values() -> None:
    assert peak_hour({"00:00": None}) is None


def test_alerts_within_thirty_days() -> None:
    alerts = [
        _alert(1, AlertType.temperature),
        _alert(2),
        _alert(30),
        _alert(24 * 45, AlertType.temperature),
    ]
    inputs = InsightInputs(thresholds=THRESHOLDS, now=NOW, alerts=alerts)

    texts = _texts(generate_insights(inputs)["alerts"])

    assert texts == [
        "Triggered **3** alert(s) in the last 30 days.",
        "The most frequent alert type was **'ammonia'**.",
    ]


def test_quiet_alert_history() -> None:
    inputs = InsightInputs(thresholds=THRESHOLDS, now=NOW, alerts=[_alert(24 * 40)])

    texts = _texts(generate_insights(inputs)["alerts"])

    assert texts == ["No critical alerts have been triggered in the past 30 days."]


def test_category_order_is_fixed() -> None:
    inputs = InsightInputs(
        thresholds=THRESHOLDS,
        now=NOW,
        daily=MetricSeries(ammonia=_series([5.0])),
        hourly_ammonia={"01:00": 4.0},
    )

    assert list(generate_insights(inputs)) == ["daily", "weekly", "hourly", "alerts"]


def test_missing_configuration_returns_none() -> None:
    inputs = InsightInputs(
        thresholds=None, now=NOW, daily=MetricSeries(ammonia=_series([22.0, 23.0]))
    )

    assert generate_insights(inputs) is None


def test_repeated_generation_with_fixed_now_is_identical() -> None:
    inputs = InsightInputs(
        thresholds=THRESHOLDS,
        now=NOW,
        daily=MetricSeries(ammonia=_series([18.0, 22.0, 19.5]), temperature=_series([30.0, 33.0])),
        weekly=MetricSeries(ammonia=_series([10.0, 12.0, 14.0, 16.0])),
        hourly_ammonia={"08:00": 12.0, "14:00": 15.0},
        alerts=[_alert(2), _alert(30, AlertType.temperature)],
    )

    assert generate_insights(inputs) == generate_insights(inputs)


def test_naive_alert_timestamps_count_in_the_alert_window() -> None:
    naive = Alert(
        id="a-naive",
        house_id="house-1",
        branch_name="north",
        type=AlertType.ammonia,
        message="Ammonia high: 25 ppm",
        timestamp=(NOW - timedelta(days=1)).replace(tzinfo=None),
    )

    insights = generate_insights(
        InsightInputs(thresholds=THRESHOLDS, now=NOW, alerts=[naive, _alert(5)])
    )

    assert _texts(insights["alerts"])[0] == "Triggered **2** alert(s) in the last 30 days."
