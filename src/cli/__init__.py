"""CLI entry point for the market intelligence core."""

from __future__ import annotations

import click

from src.cli.commands import check_config, run, snapshot


@click.group()
def cli() -> None:
    """Competitive and reputation intelligence monitor."""


cli.add_command(run)
cli.add_command(snapshot)
cli.add_command(check_config)
