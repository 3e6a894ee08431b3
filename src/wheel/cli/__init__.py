"""
Click CLI implementation for the wheel ledger.

This module provides the command-line interface over the ledger engine,
split into ledger commands (trades, cycles, positions) and reporting
commands (safe-strike, analytics, validate).
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click

from src.config import FinnhubConfig
from src.market_data.quotes import FinnhubQuoteSource

from ..config import ConfigurationError, WheelLedgerConfig
from ..engine import WheelEngine

# Import command groups
from .ledger_commands import cycles, positions, trades
from .report_commands import analytics, safe_strike, validate
from .utils import print_error

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class CLIContext:
    """Context object passed to all CLI commands.

    Attributes:
        config: Configuration settings
        engine: WheelEngine over the configured reports directory
        verbose: Verbose output enabled
        json: JSON output enabled
    """
    config: WheelLedgerConfig
    engine: WheelEngine
    verbose: bool
    json: bool


@click.group()
@click.option(
    "--reports-dir",
    type=click.Path(file_okay=False),
    help="Directory of broker export files (overrides config)",
)
@click.option(
    "--config-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--json", "output_json", is_flag=True, help="JSON output")
@click.pass_context
def cli(
    ctx: click.Context,
    reports_dir: Optional[str],
    config_file: Optional[str],
    verbose: bool,
    output_json: bool,
) -> None:
    """
    Wheel Ledger - Reconstruct options wheel cycles from broker exports.

    Reads Interactive Brokers Flex trade confirmations and reports cycles,
    positions, safe strikes and income.
    """
    ctx.ensure_object(dict)

    try:
        config = WheelLedgerConfig.load_from_file(Path(config_file) if config_file else None)
    except ConfigurationError as e:
        print_error(f"Could not load configuration: {e}")
        sys.exit(1)

    # Apply command-line overrides
    if reports_dir:
        config.reports_dir = reports_dir
    if verbose:
        config.verbose = True
    if output_json:
        config.json_output = True

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )

    # Live quotes are optional
    quote_source = None
    try:
        quote_source = FinnhubQuoteSource(FinnhubConfig.from_env())
        if config.verbose:
            click.echo("+ Finnhub quote source configured", err=True)
    except ValueError as e:
        if config.verbose:
            click.echo(f"! Live quotes disabled: {e}", err=True)

    engine = WheelEngine(config=config, quote_source=quote_source)
    if quote_source is not None:
        ctx.call_on_close(quote_source.close)

    cli_ctx = CLIContext(
        config=config,
        engine=engine,
        verbose=config.verbose,
        json=config.json_output,
    )
    ctx.obj = {
        "engine": engine,
        "cli_context": cli_ctx,
    }


# Register ledger commands
cli.add_command(trades)
cli.add_command(cycles)
cli.add_command(positions)

# Register reporting commands
cli.add_command(safe_strike)
cli.add_command(analytics)
cli.add_command(validate)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


__all__ = ["cli", "main"]
