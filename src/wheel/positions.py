"""Share position reconciliation from trade history."""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from .cycles import trade_sort_key
from .models import CashFlow, Position, Trade, WheelCycle

logger = logging.getLogger(__name__)

QUANTITY_EPSILON = 1e-9


class PositionReconciler:
    """
    Derives net share holdings per underlying from the full trade history.

    Cost basis is the weighted average cost of the shares held. Buys move
    the average; sells realize P&L against it and never change it. A sell
    beyond the held quantity opens a short at the sale price.
    """

    def positions_from_trades(
        self,
        trades: Iterable[Trade],
        cycles_by_symbol: Optional[dict[str, list[WheelCycle]]] = None,
    ) -> dict[str, Position]:
        """
        Build a Position for every traded underlying.

        Args:
            trades: Full trade history, in any order
            cycles_by_symbol: Optional reconstructed cycles to attach

        Returns:
            Dict mapping underlying symbol to Position
        """
        by_symbol: dict[str, list[Trade]] = defaultdict(list)
        for trade in trades:
            by_symbol[trade.underlying_symbol].append(trade)

        positions: dict[str, Position] = {}
        for symbol in sorted(by_symbol):
            position = Position(symbol=symbol)
            stock_trades = [t for t in by_symbol[symbol] if t.is_stock]
            for trade in sorted(stock_trades, key=trade_sort_key):
                if trade.is_buy:
                    self._apply_buy(position, trade.abs_quantity, trade.price)
                else:
                    self._apply_sell(position, trade.abs_quantity, trade.price)

            for cycle in (cycles_by_symbol or {}).get(symbol, []):
                if cycle.is_active:
                    position.active_cycles.append(cycle)
                else:
                    position.completed_cycles.append(cycle)

            positions[symbol] = position

        logger.debug(f"Reconciled positions for {len(positions)} symbols")
        return positions

    def cash_flow(self, trades: Iterable[Trade]) -> CashFlow:
        """Sum cash movements over a trade history."""
        flow = CashFlow()
        for trade in trades:
            flow.total_cash_flow += trade.net_cash
            flow.commissions_fees += trade.fees
            amount = abs(trade.net_cash)
            if trade.is_stock:
                if trade.is_buy:
                    flow.stock_purchases += amount
                else:
                    flow.stock_sales += amount
            elif trade.is_sell:
                flow.option_premiums_received += amount
            else:
                flow.option_premiums_paid += amount
        return flow

    # Private helper methods

    def _apply_buy(self, position: Position, quantity: float, price: float) -> None:
        if quantity <= QUANTITY_EPSILON:
            return
        if position.quantity < 0:
            # Cover a short first
            covered = min(quantity, -position.quantity)
            position.realized_pnl += (position.average_cost - price) * covered
            position.quantity += covered
            quantity -= covered
            self._reset_if_flat(position)
            if quantity <= QUANTITY_EPSILON:
                return

        total = position.quantity + quantity
        position.average_cost = (
            position.quantity * position.average_cost + quantity * price
        ) / total
        position.quantity = total

    def _apply_sell(self, position: Position, quantity: float, price: float) -> None:
        if quantity <= QUANTITY_EPSILON:
            return
        if position.quantity > 0:
            sold = min(quantity, position.quantity)
            position.realized_pnl += (price - position.average_cost) * sold
            position.quantity -= sold
            quantity -= sold
            self._reset_if_flat(position)
            if quantity <= QUANTITY_EPSILON:
                return

        short = -position.quantity
        position.average_cost = (short * position.average_cost + quantity * price) / (
            short + quantity
        )
        position.quantity = -(short + quantity)
        logger.warning(
            f"{position.symbol}: sell exceeds holdings, short {abs(position.quantity)} shares"
        )

    def _reset_if_flat(self, position: Position) -> None:
        if abs(position.quantity) <= QUANTITY_EPSILON:
            position.quantity = 0.0
            position.average_cost = 0.0
