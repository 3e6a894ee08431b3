"""
Ledger commands for the wheel CLI.

This module provides commands for listing ingested trades, reconstructed
wheel cycles and share positions.
"""

import sys
from typing import Optional

import click

from src.flex.exceptions import SourceAccessError

from ..exceptions import WheelError
from .utils import (
    echo_json,
    get_cli_context,
    get_engine,
    print_cycle,
    print_error,
    print_position,
    print_trade,
    print_warning,
)


@click.command()
@click.option("--symbol", help="Only trades on this underlying")
@click.pass_context
def trades(ctx: click.Context, symbol: Optional[str]) -> None:
    """
    List ingested trades in chronological order.

    Example: wheel-ledger trades --symbol AAPL
    """
    cli_ctx = get_cli_context(ctx)
    engine = get_engine(ctx)

    try:
        trade_list = engine.ingest()
    except SourceAccessError as e:
        print_error(str(e))
        sys.exit(1)

    if symbol:
        trade_list = [t for t in trade_list if t.underlying_symbol == symbol.upper()]
    trade_list = sorted(trade_list, key=lambda t: (t.date_time, t.trade_id))

    report = engine.get_report()
    if cli_ctx.json:
        echo_json(
            {
                "ingestion": report.to_dict() if report else None,
                "trades": [t.to_dict() for t in trade_list],
            }
        )
        return

    if not trade_list:
        click.echo("No trades found.")
    for trade in trade_list:
        print_trade(trade)

    if report is not None:
        click.echo()
        click.echo(
            f"{len(report.trades)} trades from {report.documents_read} documents "
            f"({report.duplicates_dropped} duplicates dropped)"
        )
        for error in report.document_errors:
            print_warning(f"document skipped: {error}")
        if report.validation_errors:
            print_warning(f"{len(report.validation_errors)} trade records were rejected")
            if cli_ctx.verbose:
                for error in report.validation_errors:
                    click.echo(f"  {error}")


@click.command()
@click.argument("symbol", required=False)
@click.option("--active", "active_only", is_flag=True, help="Only active cycles")
@click.pass_context
def cycles(ctx: click.Context, symbol: Optional[str], active_only: bool) -> None:
    """
    Show reconstructed wheel cycles.

    Example: wheel-ledger cycles
    Example: wheel-ledger cycles AAPL --active
    """
    cli_ctx = get_cli_context(ctx)
    engine = get_engine(ctx)

    try:
        if symbol:
            cycle_list = engine.get_cycles_for_symbol(symbol)
        else:
            cycle_list = [c for cs in engine.reconstruct_cycles().values() for c in cs]
    except (SourceAccessError, WheelError) as e:
        print_error(str(e))
        sys.exit(1)

    if active_only:
        cycle_list = [c for c in cycle_list if c.is_active]

    if cli_ctx.json:
        echo_json([c.to_dict() for c in cycle_list])
        return

    if not cycle_list:
        click.echo(f"No cycles found{' for ' + symbol.upper() if symbol else ''}.")
        return

    for cycle in cycle_list:
        print_cycle(cycle, verbose=cli_ctx.verbose)


@click.command()
@click.option("--value", "with_value", is_flag=True, help="Value shares at current quotes")
@click.pass_context
def positions(ctx: click.Context, with_value: bool) -> None:
    """
    Show share positions derived from trade history.

    Example: wheel-ledger positions --value
    """
    cli_ctx = get_cli_context(ctx)
    engine = get_engine(ctx)

    try:
        position_map = engine.reconcile_positions()
        valuations = engine.value_portfolio() if with_value else {}
    except (SourceAccessError, WheelError) as e:
        print_error(str(e))
        sys.exit(1)

    if cli_ctx.json:
        echo_json(
            {
                symbol: {
                    **position.to_dict(),
                    "valuation": valuations[symbol].to_dict() if symbol in valuations else None,
                }
                for symbol, position in position_map.items()
            }
        )
        return

    if not position_map:
        click.echo("No positions found.")
        return

    for symbol, position in position_map.items():
        print_position(position, valuations.get(symbol))
