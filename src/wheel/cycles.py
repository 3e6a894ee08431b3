"""
Wheel cycle reconstruction.

Groups trades by underlying symbol and replays them in chronological
order through the cycle state machine. Every put sale opens an
independent cycle; later trades are attributed to the oldest active cycle
they can belong to. Option expiry is resolved before each trade
against its date, and once more against an as-of instant when the trade stream is exhausted.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from .models import PutCall, Trade, WheelCycle
from .state import (
    CLOSING_CYCLE_TYPES,
    CycleEvent,
    CycleState,
    CycleStatus,
    get_next_state,
)

logger = logging.getLogger(__name__)

PRICE_TOLERANCE = 1e-6


def trade_sort_key(trade: Trade) -> tuple[datetime, str]:
    """Chronological order, ties broken by trade id."""
    return (trade.date_time, trade.trade_id)


@dataclass
class ReconstructionResult:
    """Cycles per symbol plus trades that fit no cycle."""

    cycles_by_symbol: dict[str, list[WheelCycle]] = field(default_factory=dict)
    unattributed: list[Trade] = field(default_factory=list)
    total_premium: float = 0.0
    total_fees: float = 0.0
    total_net_profit: float = 0.0

    @property
    def all_cycles(self) -> list[WheelCycle]:
        return [c for cycles in self.cycles_by_symbol.values() for c in cycles]

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycles_by_symbol": {
                symbol: [c.to_dict() for c in cycles]
                for symbol, cycles in self.cycles_by_symbol.items()
            },
            "unattributed": [t.to_dict() for t in self.unattributed],
            "total_premium": self.total_premium,
            "total_fees": self.total_fees,
            "total_net_profit": self.total_net_profit,
        }


@dataclass
class _CycleLedger:
    """Working state for one cycle while its trades are replayed."""

    cycle: WheelCycle
    open_contracts: dict[str, float] = field(default_factory=dict)
    contract_legs: dict[str, Trade] = field(default_factory=dict)
    buyback_cost: float = 0.0
    share_pnl: float = 0.0

    def open_legs(self, right: PutCall) -> list[Trade]:
        return [
            leg
            for symbol, leg in self.contract_legs.items()
            if leg.put_call == right and self.open_contracts.get(symbol, 0) > 0
        ]

    def holds_contract(self, symbol: str) -> bool:
        return self.open_contracts.get(symbol, 0) > 0

    def close_contracts(self, right: PutCall) -> None:
        for leg in self.open_legs(right):
            self.open_contracts[leg.symbol] = 0

    def latest_expiry(self, right: PutCall) -> Optional[datetime]:
        expiries = [leg.expiry for leg in self.open_legs(right) if leg.expiry]
        return max(expiries) if expiries else None

    def has_strike(self, right: PutCall, price: float) -> bool:
        return any(
            leg.strike is not None and abs(leg.strike - price) < PRICE_TOLERANCE
            for leg in self.open_legs(right)
        )


class CycleReconstructor:
    """
    Rebuilds wheel cycles from a trade history.

    Args:
        as_of: Instant against which open options are checked for expiry.
            Defaults to the current time at each reconstruction.
    """

    def __init__(self, as_of: Optional[datetime] = None):
        self.as_of = as_of

    def reconstruct(
        self, trades: Iterable[Trade], as_of: Optional[datetime] = None
    ) -> ReconstructionResult:
        """
        Rebuild every cycle from scratch.

        Args:
            trades: Full trade history, in any order
            as_of: Overrides the instance as-of instant

        Returns:
            ReconstructionResult with cycles in start order per symbol
        """
        as_of = as_of or self.as_of or datetime.now()

        by_symbol: dict[str, list[Trade]] = defaultdict(list)
        for trade in trades:
            by_symbol[trade.underlying_symbol].append(trade)

        result = ReconstructionResult()
        for symbol in sorted(by_symbol):
            ordered = sorted(by_symbol[symbol], key=trade_sort_key)
            ledgers: list[_CycleLedger] = []
            for trade in ordered:
                # Options that lapsed before this trade close first
                for ledger in ledgers:
                    if ledger.cycle.is_active:
                        self._resolve_expiry(ledger, trade.date_time)
                if not self._apply(symbol, trade, ledgers):
                    logger.debug(
                        f"Trade {trade.trade_id} ({trade.symbol}) matches no {symbol} cycle"
                    )
                    result.unattributed.append(trade)

            for ledger in ledgers:
                self._resolve_expiry(ledger, as_of)

            if ledgers:
                result.cycles_by_symbol[symbol] = [ledger.cycle for ledger in ledgers]

        for cycle in result.all_cycles:
            result.total_premium += cycle.total_premium_collected
            result.total_fees += cycle.total_fees
            result.total_net_profit += cycle.net_profit

        logger.info(
            f"Reconstructed {len(result.all_cycles)} cycles across "
            f"{len(result.cycles_by_symbol)} symbols "
            f"({len(result.unattributed)} unattributed trades)"
        )
        return result

    # Private helper methods

    def _apply(self, symbol: str, trade: Trade, ledgers: list[_CycleLedger]) -> bool:
        """Attribute one trade. Returns False if no cycle takes it."""
        active = [ledger for ledger in ledgers if ledger.cycle.is_active]

        if trade.is_option:
            if trade.put_call is None:
                return False
            if trade.is_sell and trade.is_put:
                ledgers.append(self._open_cycle(symbol, trade))
                return True
            if trade.is_sell:
                ledger = self._first(active, CycleState.SHARES_HELD) or self._first(
                    active, CycleState.CALL_OPEN
                )
                if ledger is None:
                    return False
                self._sell_call(ledger, trade)
                return True
            ledger = next((lg for lg in active if lg.holds_contract(trade.symbol)), None)
            if ledger is None:
                return False
            self._buy_back(ledger, trade)
            return True

        if trade.is_buy:
            candidates = [lg for lg in active if lg.cycle.state == CycleState.PUT_OPEN]
            ledger = next(
                (lg for lg in candidates if lg.has_strike(PutCall.PUT, trade.price)),
                candidates[0] if candidates else None,
            )
            if ledger is None:
                return False
            self._assign_put(ledger, trade)
            return True

        candidates = [
            lg
            for lg in active
            if lg.cycle.state in (CycleState.CALL_OPEN, CycleState.SHARES_HELD)
        ]
        # Called-away strike first, then other open calls, then bare shares
        candidates.sort(
            key=lambda lg: (
                lg.cycle.state != CycleState.CALL_OPEN,
                not lg.has_strike(PutCall.CALL, trade.price),
            )
        )

        allocations: list[tuple[_CycleLedger, float]] = []
        remaining = trade.abs_quantity
        for ledger in candidates:
            if remaining <= 0:
                break
            portion = min(remaining, ledger.cycle.shares_held)
            if portion > 0:
                allocations.append((ledger, portion))
                remaining -= portion
        if not allocations:
            return False
        if remaining > 0:
            logger.warning(
                f"Trade {trade.trade_id} sells {remaining:g} more {symbol} shares "
                f"than its cycles hold"
            )

        allocated = sum(portion for _, portion in allocations)
        for ledger, portion in allocations:
            self._sell_shares(ledger, trade, portion, portion / allocated)
        return True

    def _first(
        self, ledgers: list[_CycleLedger], state: CycleState
    ) -> Optional[_CycleLedger]:
        return next((lg for lg in ledgers if lg.cycle.state == state), None)

    def _open_cycle(self, symbol: str, trade: Trade) -> _CycleLedger:
        cycle = WheelCycle(
            id=f"{symbol}-{trade.trade_id}",
            symbol=symbol,
            start_date=trade.date_time,
        )
        ledger = _CycleLedger(cycle=cycle)
        self._transition(ledger, CycleEvent.SELL_PUT, trade.date_time)
        self._record(ledger, trade)
        self._open_contract(ledger, trade)
        logger.debug(f"Opened cycle {cycle.id}")
        return ledger

    def _sell_call(self, ledger: _CycleLedger, trade: Trade) -> None:
        self._transition(ledger, CycleEvent.SELL_CALL, trade.date_time)
        self._record(ledger, trade)
        self._open_contract(ledger, trade)

    def _buy_back(self, ledger: _CycleLedger, trade: Trade) -> None:
        ledger.buyback_cost += trade.premium
        self._record(ledger, trade)
        remaining = ledger.open_contracts[trade.symbol] - trade.abs_quantity
        ledger.open_contracts[trade.symbol] = max(0.0, remaining)

        right = trade.put_call
        if ledger.open_legs(right):
            return
        state = ledger.cycle.state
        if right == PutCall.PUT and state == CycleState.PUT_OPEN:
            self._transition(ledger, CycleEvent.PUT_CLOSED, trade.date_time)
        elif right == PutCall.CALL and state == CycleState.CALL_OPEN:
            self._transition(ledger, CycleEvent.CALL_CLOSED, trade.date_time)

    def _assign_put(self, ledger: _CycleLedger, trade: Trade) -> None:
        cycle = ledger.cycle
        self._transition(ledger, CycleEvent.PUT_ASSIGNED, trade.date_time)
        ledger.close_contracts(PutCall.PUT)
        cycle.assignment_price = trade.price
        cycle.shares_assigned = trade.abs_quantity
        cycle.shares_held = trade.abs_quantity
        self._record(ledger, trade)

    def _sell_shares(
        self, ledger: _CycleLedger, trade: Trade, quantity: float, fee_share: float
    ) -> None:
        """Sell quantity of the cycle's shares; fee_share is its part of the trade fees."""
        cycle = ledger.cycle
        total = trade.abs_quantity
        per_share = trade.proceeds / total if total else trade.price
        ledger.share_pnl += quantity * (per_share - (cycle.assignment_price or 0.0))
        cycle.shares_held = max(0.0, cycle.shares_held - quantity)
        self._record(ledger, trade, fee_share)

        if cycle.shares_held > 0:
            return
        if cycle.state == CycleState.CALL_OPEN:
            event = CycleEvent.CALL_ASSIGNED
        else:
            event = CycleEvent.SHARES_SOLD
        ledger.close_contracts(PutCall.CALL)
        self._transition(ledger, event, trade.date_time)
        self._refresh(ledger)

    def _resolve_expiry(self, ledger: _CycleLedger, as_of: datetime) -> None:
        state = ledger.cycle.state
        if state == CycleState.PUT_OPEN:
            right, event = PutCall.PUT, CycleEvent.PUT_EXPIRED
        elif state == CycleState.CALL_OPEN:
            right, event = PutCall.CALL, CycleEvent.CALL_EXPIRED
        else:
            return

        expiry = ledger.latest_expiry(right)
        if expiry is None or expiry.date() >= as_of.date():
            return
        ledger.close_contracts(right)
        self._transition(ledger, event, expiry)
        logger.debug(f"Cycle {ledger.cycle.id} closed by expiry on {expiry.date()}")

    def _transition(self, ledger: _CycleLedger, event: CycleEvent, when: datetime) -> None:
        cycle = ledger.cycle
        cycle.state = get_next_state(cycle.state, event)
        if cycle.state == CycleState.CLOSED:
            cycle.status = CycleStatus.COMPLETED
            cycle.end_date = when
            cycle.cycle_type = CLOSING_CYCLE_TYPES[event]

    def _open_contract(self, ledger: _CycleLedger, trade: Trade) -> None:
        ledger.open_contracts[trade.symbol] = (
            ledger.open_contracts.get(trade.symbol, 0) + trade.abs_quantity
        )
        ledger.contract_legs[trade.symbol] = trade

    def _record(self, ledger: _CycleLedger, trade: Trade, fee_share: float = 1.0) -> None:
        cycle = ledger.cycle
        cycle.trades.append(trade)
        cycle.total_fees += trade.fees * fee_share
        if trade.is_option and trade.is_sell:
            cycle.total_premium_collected += trade.premium
        self._refresh(ledger)

    def _refresh(self, ledger: _CycleLedger) -> None:
        cycle = ledger.cycle
        cycle.net_profit = (
            cycle.total_premium_collected
            - ledger.buyback_cost
            - cycle.total_fees
            + ledger.share_pnl
        )
        if cycle.shares_held > 0 and cycle.shares_assigned and cycle.assignment_price:
            cycle.safe_strike_price = cycle.assignment_price - (
                (cycle.total_premium_collected - cycle.total_fees) / cycle.shares_assigned
            )
