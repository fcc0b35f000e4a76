from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import typer

from cli.config import CLIConfig, load_config
from cli.render import (
    render_annual,
    render_daily,
    render_hourly,
    render_prediction,
    render_row_errors,
    render_segments,
    render_statistics,
)
from models.records import Metric, Reading, ThresholdConfig, as_utc
from services.aggregator import Aggregator
from services.feed_parser import ParsedFeed, parse_feed_csv
from services.forecaster import predict_ahead
from services.report import analyze_annual_table
from services.stats import series_statistics
from services.units import TemperatureUnit


@dataclass
class CLIState:
    config: CLIConfig
    aggregator: Aggregator


app = typer.Typer(
    help="Run poultry-house analytics locally against a CSV feed export.",
    context_settings={"help_option_names": ["-h", "--help"]},
)

_FILE_ARGUMENT = typer.Argument(
    ...,
    exists=True,
    dir_okay=False,
    readable=True,
    help="CSV with a timestamp column and ammonia and/or temperature columns.",
)
_METRIC_OPTION = typer.Option(Metric.ammonia, "--metric", "-m", help="Metric column to analyse.")


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        _fail("CLI state is uninitialized.")
    return state


def _load_feed(file: Path) -> ParsedFeed:
    try:
        with file.open(newline="", encoding="utf-8") as stream:
            parsed = parse_feed_csv(stream)
    except ValueError as exc:
        _fail(str(exc))
    render_row_errors(parsed.errors)
    return parsed


def _load_series(file: Path, metric: Metric) -> List[Reading]:
    readings = _load_feed(file).readings(metric)
    if not any(reading.is_valid for reading in readings):
        _fail(f"No usable {metric.value} rows in {file}.")
    return readings


@app.callback()
def main(
    ctx: typer.Context,
    tz: Optional[str] = typer.Option(
        None,
        "--timezone",
        "-z",
        help="IANA timezone for hour/day buckets (defaults to ANALYTICS_TIMEZONE env or UTC).",
    ),
    unit: Optional[TemperatureUnit] = typer.Option(
        None,
        "--unit",
        "-u",
        help="Temperature display unit (defaults to CLI_TEMP_UNIT env or C).",
    ),
) -> None:
    """Entry point for the CLI."""
    ctx.obj = CLIState(config=load_config(timezone=tz, temp_unit=unit), aggregator=Aggregator())


@app.command("stats")
def stats_command(
    ctx: typer.Context,
    file: Path = _FILE_ARGUMENT,
    metric: Metric = _METRIC_OPTION,
) -> None:
    """Mean, extremes, spread and trend of one metric."""
    state = _get_state(ctx)
    readings = _load_series(file, metric)
    render_statistics(series_statistics(readings), metric, state.config.temp_unit)


@app.command("hourly")
def hourly_command(
    ctx: typer.Context,
    file: Path = _FILE_ARGUMENT,
    metric: Metric = _METRIC_OPTION,
) -> None:
    """Average of one metric for each hour of the day."""
    state = _get_state(ctx)
    readings = _load_series(file, metric)
    pattern = state.aggregator.aggregate_hourly(readings, state.config.tzinfo)
    render_hourly(pattern, metric, state.config.temp_unit)


@app.command("daily")
def daily_command(
    ctx: typer.Context,
    file: Path = _FILE_ARGUMENT,
    year: int = typer.Option(..., "--year", min=1970, help="Calendar year."),
    month: int = typer.Option(..., "--month", min=1, max=12, help="Calendar month (1-12)."),
    metric: Metric = _METRIC_OPTION,
) -> None:
    """Average of one metric for each day of a month."""
    state = _get_state(ctx)
    readings = _load_series(file, metric)
    values = state.aggregator.aggregate_daily(readings, year, month, state.config.tzinfo)
    render_daily(values, year, month, metric, state.config.temp_unit)


@app.command("forecast")
def forecast_command(
    ctx: typer.Context,
    file: Path = _FILE_ARGUMENT,
    metric: Metric = _METRIC_OPTION,
    horizon: float = typer.Option(
        24.0, "--horizon", min=0.0, help="Hours past the last reading (24 or less uses the daily profile)."
    ),
) -> None:
    """Project one metric ahead with a linear trend."""
    state = _get_state(ctx)
    readings = _load_series(file, metric)
    prediction = predict_ahead(readings, horizon, metric)
    render_prediction(prediction, horizon, metric, state.config.temp_unit)


@app.command("annual")
def annual_command(
    ctx: typer.Context,
    file: Path = _FILE_ARGUMENT,
    year: int = typer.Option(..., "--year", min=1970, help="Calendar year."),
    ammonia_high: Optional[float] = typer.Option(None, "--ammonia-high", help="Ammonia limit (ppm)."),
    temp_high: Optional[float] = typer.Option(None, "--temp-high", help="Upper temperature limit (°C)."),
    temp_low: Optional[float] = typer.Option(None, "--temp-low", help="Lower temperature limit (°C)."),
) -> None:
    """Monthly high/low/average table and its narrative for one year."""
    state = _get_state(ctx)
    feed = _load_feed(file)
    if feed.row_count == 0:
        _fail(f"No usable rows in {file}.")

    tz = state.config.tzinfo
    monthly: Dict[int, Tuple[List[Reading], List[Reading]]] = defaultdict(lambda: ([], []))
    for position, metric in enumerate((Metric.ammonia, Metric.temperature)):
        for reading in feed.readings(metric):
            local = as_utc(reading.timestamp).astimezone(tz)
            if local.year == year:
                monthly[local.month][position].append(reading)

    rows = state.aggregator.aggregate_annual(year, monthly, datetime.now(timezone.utc).astimezone(tz))
    thresholds = None
    if any(limit is not None for limit in (ammonia_high, temp_high, temp_low)):
        thresholds = ThresholdConfig(ammonia_high=ammonia_high, temp_high=temp_high, temp_low=temp_low)

    render_annual(rows, state.config.temp_unit)
    typer.echo()
    render_segments(analyze_annual_table(rows, thresholds, state.config.temp_unit))
