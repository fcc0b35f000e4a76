from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

import typer

from models.records import Metric
from models.reports import MonthlySummary, SummaryValue, summary_number
from services.feed_parser import FeedRowError
from services.forecaster import Prediction
from services.report import TextSegment
from services.stats import StatisticsSummary
from services.units import TemperatureUnit, converts, to_display, unit_symbol


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _show(value: Optional[float], metric: Metric, unit: TemperatureUnit) -> str:
    if value is None:
        return "n/a"
    return f"{to_display(value, metric, unit):.2f}{unit_symbol(metric, unit)}"


def render_statistics(summary: StatisticsSummary, metric: Metric, unit: TemperatureUnit) -> None:
    echo_heading(f"Statistics ({metric.value})")
    spread = summary.std_dev
    if spread is not None and converts(metric, unit):
        spread = spread * 9 / 5
    echo_key_values(
        [
            ("count", summary.count),
            ("mean", _show(summary.mean, metric, unit)),
            ("min", _show(summary.min, metric, unit)),
            ("max", _show(summary.max, metric, unit)),
            ("std_dev", "n/a" if spread is None else f"{spread:.2f}"),
            ("trend", summary.trend),
        ]
    )


def render_hourly(pattern: Dict[str, Optional[float]], metric: Metric, unit: TemperatureUnit) -> None:
    echo_heading(f"Hourly averages ({metric.value})")
    echo_key_values((hour, _show(value, metric, unit)) for hour, value in pattern.items())


def render_daily(
    values: Sequence[Optional[float]], year: int, month: int, metric: Metric, unit: TemperatureUnit
) -> None:
    echo_heading(f"Daily averages {year}-{month:02d} ({metric.value})")
    echo_key_values(
        (f"{year}-{month:02d}-{day:02d}", _show(value, metric, unit))
        for day, value in enumerate(values, start=1)
    )


def render_prediction(
    prediction: Optional[Prediction], horizon_hours: float, metric: Metric, unit: TemperatureUnit
) -> None:
    echo_heading(f"Forecast +{horizon_hours:g}h ({metric.value})")
    if prediction is None:
        typer.echo("Not enough data to forecast.")
        return
    echo_key_values(
        [
            ("predicted_value", _show(prediction.predicted_value, metric, unit)),
            ("trend", prediction.trend),
        ]
    )


def render_segments(segments: List[TextSegment]) -> None:
    for segment in segments:
        typer.secho(segment.text, bold=segment.style == "bold", nl=False)
    typer.echo()


def render_annual(rows: List[MonthlySummary], unit: TemperatureUnit) -> None:
    echo_heading("Monthly summary")
    for row in rows:
        if not row.has_data:
            typer.echo(f"{row.month}: no data")
            continue
        typer.echo(
            f"{row.month}: "
            f"ammonia max={_cell(row.ammonia_max, Metric.ammonia, unit)} "
            f"min={_cell(row.ammonia_min, Metric.ammonia, unit)} "
            f"avg={_cell(row.ammonia_avg, Metric.ammonia, unit)} | "
            f"temperature max={_cell(row.temp_max, Metric.temperature, unit)} "
            f"min={_cell(row.temp_min, Metric.temperature, unit)} "
            f"avg={_cell(row.temp_avg, Metric.temperature, unit)}"
        )


def _cell(value: SummaryValue, metric: Metric, unit: TemperatureUnit) -> str:
    return _show(summary_number(value), metric, unit)


def render_row_errors(errors: List[FeedRowError]) -> None:
    if not errors:
        return
    typer.secho(f"Skipped or blanked {len(errors)} row value(s):", fg=typer.colors.YELLOW, err=True)
    for error in errors:
        typer.secho(f"  - row {error.row_number}: {error.reason}", err=True)
