"""CLI entry point for the risk dashboard aggregator."""

import asyncio
import logging
import sys
import uuid
from collections.abc import AsyncIterator
from pathlib import Path

import click
import structlog
from pydantic import ValidationError

from riskboard.aggregation.factory import build_store, open_dashboard
from riskboard.aggregation.models import DashboardView
from riskboard.observability.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
)
from riskboard.ranking.metrics import RankingMetrics
from riskboard.ranking.sink import ExposureUpdateSink
from riskboard.settings.app import AppSettings


logger = structlog.get_logger()

COMPONENT_CLI = "cli"


def _load_settings() -> AppSettings:
    """Load settings from the environment, exit on validation failure."""
    try:
        return AppSettings()
    except ValidationError as e:
        click.echo("Configuration validation failed:", err=True)
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            click.echo(f"  - {location}: {error['msg']}", err=True)
        sys.exit(1)


def _setup_logging(settings: AppSettings, verbose: bool, json_logs: bool | None) -> None:
    level = logging.DEBUG if verbose else settings.log_level_value
    json_format = settings.log_json if json_logs is None else json_logs
    configure_logging(level=level, json_format=json_format)


async def _run_aggregate(settings: AppSettings) -> DashboardView:
    request_id = str(uuid.uuid4())
    bind_request_context(request_id, command="aggregate")
    try:
        async with open_dashboard(settings) as dashboard:
            return await dashboard.engine.aggregate()
    finally:
        clear_request_context()


async def _read_lines(path: Path) -> AsyncIterator[bytes]:
    # Raw bytes, so undecodable lines reach the sink and are dropped there
    with path.open("rb") as f:
        for line in f:
            stripped = line.strip()
            if stripped:
                yield stripped


async def _replay(settings: AppSettings, path: Path) -> int:
    store = build_store(settings)
    sink = ExposureUpdateSink(store, key=settings.ranked_set_key)
    try:
        return await sink.consume(_read_lines(path))
    finally:
        await store.aclose()


@click.group()
@click.version_option(version="0.1.0")
def cli() -> None:
    """Risk dashboard aggregator CLI."""


@cli.command()
@click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Use JSON format for logs (default: RISKBOARD_LOG_JSON).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
def aggregate(json_logs: bool | None, verbose: bool) -> None:
    """Build one dashboard view and print it as camelCase JSON.

    Downstream base URLs, timeouts, retries and the Redis URL come from
    RISKBOARD_* environment variables. Unreachable downstreams degrade the
    view instead of failing the command.
    """
    settings = _load_settings()
    _setup_logging(settings, verbose, json_logs)

    log = logger.bind(component=COMPONENT_CLI, command="aggregate")
    log.info(
        "aggregate_command_started",
        risk_base_url=settings.risk_base_url,
        trading_base_url=settings.trading_base_url,
        ledger_base_url=settings.ledger_base_url,
        redis=bool(settings.redis_url),
    )

    view = asyncio.run(_run_aggregate(settings))
    click.echo(view.model_dump_json(by_alias=True, indent=2))


@cli.command("replay-events")
@click.argument(
    "events_path",
    metavar="FILE",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Use JSON format for logs (default: RISKBOARD_LOG_JSON).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
def replay_events(events_path: Path, json_logs: bool | None, verbose: bool) -> None:
    """Apply exposure events from a JSON-lines FILE to the ranked set.

    Each non-empty line is one event, e.g.
    {"accountId": "ACC-001", "netExposure": 1500000.0}. Invalid lines are
    logged and skipped. Without RISKBOARD_REDIS_URL the events only reach an
    in-memory store, and a warning says so.
    """
    settings = _load_settings()
    _setup_logging(settings, verbose, json_logs)

    log = logger.bind(component=COMPONENT_CLI, command="replay-events")
    log.info("replay_started", events_path=str(events_path))

    metrics = RankingMetrics.get_instance()
    applied_before = metrics.events_applied
    processed = asyncio.run(_replay(settings, events_path))
    applied = metrics.events_applied - applied_before

    log.info(
        "replay_complete",
        processed=processed,
        applied=applied,
        persisted=bool(settings.redis_url),
    )
    click.echo(
        f"Processed {processed} events ({applied} applied, {processed - applied} dropped)"
    )
    if not settings.redis_url:
        click.echo(
            "Warning: RISKBOARD_REDIS_URL is not set; events were applied to an "
            "in-memory store and nothing was persisted.",
            err=True,
        )


if __name__ == "__main__":
    cli()
