"""
CLI utility functions for the wheel ledger.

This module provides helper functions for formatting output and
accessing the CLI context.
"""

import json
from typing import Any, Optional

import click

from ..analytics import IncomeAnalytics, PeriodBucket
from ..integrity import IntegrityReport, Severity
from ..models import Position, SafeStrikeResult, Trade, WheelCycle
from ..valuation import PositionValuation


def get_cli_context(ctx: click.Context):
    """Get the CLIContext from the click context."""
    return ctx.obj["cli_context"]


def get_engine(ctx: click.Context):
    """Get the WheelEngine from context."""
    return ctx.obj["engine"]


def print_error(message: str) -> None:
    """Print error message to stderr."""
    click.secho(f"Error: {message}", fg="red", err=True)


def print_success(message: str) -> None:
    """Print success message."""
    click.secho(message, fg="green")


def print_warning(message: str) -> None:
    """Print warning message."""
    click.secho(f"Warning: {message}", fg="yellow")


def echo_json(data: Any) -> None:
    """Print a JSON document."""
    click.echo(json.dumps(data, indent=2, default=str))


def print_trade(trade: Trade) -> None:
    """Print one trade as a single line."""
    side = "SELL" if trade.is_sell else "BUY "
    click.echo(
        f"{trade.trade_date.strftime('%Y-%m-%d')}  {trade.trade_id:<12} {side} "
        f"{trade.abs_quantity:>6g} {trade.symbol:<22} @ ${trade.price:,.2f}"
        f"  net ${trade.net_cash:,.2f}"
    )


def print_cycle(cycle: WheelCycle, verbose: bool = False) -> None:
    """Print a wheel cycle in a formatted way."""
    click.echo()
    status = cycle.cycle_type.value if cycle.cycle_type else "pending"
    click.secho(f"=== {cycle.id} ({cycle.status.value}, {status}) ===", bold=True)
    click.echo(f"State:    {cycle.state.value}")
    click.echo(f"Started:  {cycle.start_date.strftime('%Y-%m-%d')}")
    if cycle.end_date:
        click.echo(f"Ended:    {cycle.end_date.strftime('%Y-%m-%d')} ({cycle.duration_days} days)")
    click.echo(f"Premium:  ${cycle.total_premium_collected:,.2f}")
    click.echo(f"Fees:     ${cycle.total_fees:,.2f}")
    color = "green" if cycle.net_profit >= 0 else "red"
    click.secho(f"Net P&L:  ${cycle.net_profit:,.2f}", fg=color)

    if cycle.assignment_price is not None:
        click.echo(f"Assigned: {cycle.shares_assigned:g} shares @ ${cycle.assignment_price:.2f}")
    if cycle.shares_held > 0 and cycle.safe_strike_price is not None:
        click.echo(f"Safe Strike: ${cycle.safe_strike_price:.2f}")

    if verbose:
        click.echo("Trades:")
        for trade in cycle.trades:
            click.echo("  ", nl=False)
            print_trade(trade)


def print_position(position: Position, valuation: Optional[PositionValuation] = None) -> None:
    """Print a position summary."""
    click.echo()
    click.secho(f"=== {position.symbol} ===", bold=True)
    click.echo(f"Shares:        {position.quantity:g}")
    if position.quantity:
        click.echo(f"Average Cost:  ${position.average_cost:.2f}")
    click.echo(f"Realized P&L:  ${position.realized_pnl:,.2f}")
    click.echo(
        f"Cycles:        {len(position.active_cycles)} active, "
        f"{len(position.completed_cycles)} completed"
    )

    if valuation is not None:
        click.echo(f"Price:         ${valuation.current_price:.2f} ({valuation.price_source})")
        click.echo(f"Market Value:  ${valuation.market_value:,.2f}")
        color = "green" if valuation.unrealized_pnl >= 0 else "red"
        click.secho(
            f"Unrealized:    ${valuation.unrealized_pnl:,.2f} "
            f"({valuation.unrealized_pnl_pct:+.1f}%)",
            fg=color,
        )
        if valuation.stale:
            print_warning(f"quote for {position.symbol} is stale")


def print_safe_strike(symbol: str, result: SafeStrikeResult) -> None:
    """Print safe strike metrics."""
    click.echo()
    click.secho(f"=== Safe Strike: {symbol} ===", bold=True)
    click.echo(f"Safe Strike:     ${result.safe_strike:.2f}")
    click.echo(f"Break-even:      ${result.break_even_price:.2f}")
    click.echo(f"Premium Buffer:  ${result.premium_buffer:,.2f}")
    click.echo(f"Risk Amount:     ${result.risk_amount:,.2f}")


def _print_buckets(title: str, buckets: list[PeriodBucket]) -> None:
    click.echo()
    click.secho(title, bold=True)
    if not buckets:
        click.echo("  (none)")
        return
    for bucket in buckets:
        click.echo(
            f"  {bucket.period_start.isoformat()}  premium ${bucket.gross_premium:>10,.2f}"
            f"  buybacks ${bucket.buyback_cost:>9,.2f}  fees ${bucket.fees:>7,.2f}"
            f"  net ${bucket.net_income:>10,.2f}"
        )


def print_analytics(analytics: IncomeAnalytics, verbose: bool = False) -> None:
    """Print income analytics."""
    if verbose:
        _print_buckets("Weekly Income", analytics.weekly)
    _print_buckets("Monthly Income", analytics.monthly)

    click.echo()
    click.secho("By Symbol", bold=True)
    for rollup in analytics.by_symbol.values():
        click.echo(
            f"  {rollup.symbol:<8} net ${rollup.net_income:>10,.2f}  "
            f"win rate {rollup.win_rate * 100:5.1f}%  "
            f"({rollup.completed_cycles} completed, {rollup.active_cycles} active)"
        )

    trends = analytics.trends
    click.echo()
    click.echo(f"Total Income:    ${analytics.total_income:,.2f}")
    click.echo(f"Win Rate:        {analytics.win_rate * 100:.1f}%")
    click.echo(f"Weekly Growth:   {trends.weekly_growth * 100:+.1f}%")
    click.echo(f"Monthly Growth:  {trends.monthly_growth * 100:+.1f}%")
    if trends.best_performing_symbol:
        click.echo(f"Best Symbol:     {trends.best_performing_symbol}")
        click.echo(f"Worst Symbol:    {trends.worst_performing_symbol}")


def print_integrity(report: IntegrityReport) -> None:
    """Print an integrity report."""
    summary = report.summary
    click.echo(
        f"Cycles: {summary.total_cycles} total, {summary.valid_cycles} valid, "
        f"{summary.invalid_cycles} invalid"
    )
    for issue in report.issues:
        where = issue.cycle_id or issue.symbol
        color = "red" if issue.severity == Severity.ERROR else "yellow"
        click.secho(f"  [{issue.severity.value}] {where}: {issue.message}", fg=color)

    if report.is_valid:
        print_success("All cycles passed integrity checks")
