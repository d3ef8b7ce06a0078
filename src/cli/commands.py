"""CLI command implementations for the market intelligence core."""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
from pydantic import ValidationError

from src.app import build_application
from src.models.config import Config
from src.services.json_sources import (
    JsonReviewSource,
    JsonSourceFetcher,
    StaticBusinessDataProvider,
    load_competitors,
    load_review_profiles,
)
from src.utils.clock import SystemClock
from src.utils.logger import configure_logging

if TYPE_CHECKING:
    from src.app import Application


def _get_config() -> Config:
    """Load configuration from environment and .env file."""
    return Config()


def _print_summary(title: str, stats: dict[str, Any]) -> None:
    """Print a formatted summary of a cycle's results."""
    click.echo(f"\n[SUCCESS] {title}")
    for key, value in stats.items():
        if key == "errors" and isinstance(value, list):
            if value:
                click.echo(f"  Errors ({len(value)}):")
                for error in value[:10]:
                    click.echo(f"    - {error}")
                if len(value) > 10:
                    click.echo(f"    ... and {len(value) - 10} more")
        else:
            click.echo(f"  {key}: {value}")


def _build_from_data_file(config: Config, data_file: Path) -> Application:
    """Build the application against a JSON data file and load its entities and profiles."""
    clock = SystemClock()
    app = build_application(
        config,
        fetcher=JsonSourceFetcher(data_file, clock),
        review_source=JsonReviewSource(data_file),
        clock=clock,
        business_data=StaticBusinessDataProvider(data_file),
    )
    for entity in load_competitors(data_file, clock):
        app.market_watch.add_entity(entity)
    for profile in load_review_profiles(data_file, clock):
        app.reputation.review_repo.add_profile(profile)
    return app


data_file_option = click.option(
    "--data-file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with competitors, source snapshots and reviews",
)


@click.command()
@data_file_option
def run(data_file: Path) -> None:
    """Run the monitoring loops until interrupted."""
    config = _get_config()
    configure_logging(config.log_level, config.log_format)
    app = _build_from_data_file(config, data_file)

    click.echo(
        f"[INFO] Monitoring {len(app.market_watch.get_competitors())} competitors "
        f"(scan every {config.scan_interval_seconds}s). Press Ctrl+C to stop."
    )
    app.scheduler.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\n[INFO] Stopping...")
    finally:
        app.shutdown()


@click.command()
@data_file_option
@click.option("--user", "user_id", default="cli", help="User whose widget layout to render")
@click.option("--cycles", default=1, type=click.IntRange(min=1), help="Times to run every loop")
def snapshot(data_file: Path, user_id: str, cycles: int) -> None:
    """Run every loop once and print the dashboard overview as JSON."""
    config = _get_config()
    configure_logging(config.log_level, config.log_format)
    app = _build_from_data_file(config, data_file)

    try:
        for _ in range(cycles):
            app.run_once()
        app.dashboard.refresh_widgets(config.organization_id, force=True)
        overview = app.dashboard.get_dashboard_overview(config.organization_id, user_id)
    finally:
        app.shutdown()

    click.echo(overview.model_dump_json(indent=2))


@click.command("check-config")
def check_config() -> None:
    """Validate configuration and print the effective settings."""
    try:
        config = _get_config()
    except ValidationError as exc:
        click.echo(f"[ERROR] Invalid configuration:\n{exc}", err=True)
        raise SystemExit(1) from exc

    settings = config.model_dump()
    if settings.get("anthropic_api_key"):
        settings["anthropic_api_key"] = "***"
    _print_summary("Configuration valid", settings)
