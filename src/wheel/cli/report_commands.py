"""
Reporting commands for the wheel CLI.

This module provides commands for safe strike calculation, income
analytics and cycle integrity validation.
"""

import sys
from datetime import datetime
from typing import Optional

import click

from src.flex.exceptions import SourceAccessError

from ..exceptions import WheelError
from .utils import (
    echo_json,
    get_cli_context,
    get_engine,
    print_analytics,
    print_error,
    print_integrity,
    print_safe_strike,
)

DATE_FORMATS = ["%Y-%m-%d"]


@click.command(name="safe-strike")
@click.argument("symbol")
@click.option("--price", type=float, help="Reference share price (default: live quote)")
@click.pass_context
def safe_strike(ctx: click.Context, symbol: str, price: Optional[float]) -> None:
    """
    Calculate the safe strike for an open wheel position.

    Example: wheel-ledger safe-strike AAPL --price 195.50
    """
    cli_ctx = get_cli_context(ctx)
    engine = get_engine(ctx)
    symbol = symbol.upper()

    try:
        result = engine.calculate_safe_strike(symbol, price)
    except (SourceAccessError, WheelError) as e:
        print_error(str(e))
        sys.exit(1)

    if result is None:
        print_error(f"No open wheel position or usable price for {symbol}")
        sys.exit(1)

    if cli_ctx.json:
        echo_json({"symbol": symbol, **result.to_dict()})
        return

    print_safe_strike(symbol, result)


@click.command()
@click.option("--start", type=click.DateTime(formats=DATE_FORMATS), help="First day (inclusive)")
@click.option("--end", type=click.DateTime(formats=DATE_FORMATS), help="Last day (inclusive)")
@click.pass_context
def analytics(ctx: click.Context, start: Optional[datetime], end: Optional[datetime]) -> None:
    """
    Show weekly and monthly option income.

    Example: wheel-ledger analytics --start 2025-01-01 --end 2025-03-31
    """
    cli_ctx = get_cli_context(ctx)
    engine = get_engine(ctx)

    if start and end and start > end:
        print_error("--start must not be after --end")
        sys.exit(1)

    try:
        result = engine.income_analytics(start, end)
    except (SourceAccessError, WheelError) as e:
        print_error(str(e))
        sys.exit(1)

    if cli_ctx.json:
        echo_json(result.to_dict())
        return

    print_analytics(result, verbose=cli_ctx.verbose)


@click.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """
    Check reconstructed cycles for integrity problems.

    Exits with status 1 if any error-level issue is found.
    """
    cli_ctx = get_cli_context(ctx)
    engine = get_engine(ctx)

    try:
        report = engine.validate_cycle_integrity()
    except (SourceAccessError, WheelError) as e:
        print_error(str(e))
        sys.exit(1)

    if cli_ctx.json:
        echo_json(report.to_dict())
    else:
        print_integrity(report)

    if not report.is_valid:
        sys.exit(1)
