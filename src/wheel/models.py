"""Data models for trades, wheel cycles and positions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from src.utils.date_utils import isoformat_or_none

from .state import CycleState, CycleStatus, CycleType


class AssetCategory(Enum):
    """Instrument class as reported by the broker."""

    STOCK = "STK"
    OPTION = "OPT"
    FUTURE_OPTION = "FOP"


class BuySell(Enum):
    """Trade direction."""

    BUY = "BUY"
    SELL = "SELL"


class PutCall(Enum):
    """Option right."""

    PUT = "P"
    CALL = "C"


@dataclass(frozen=True)
class Trade:
    """
    A single executed trade confirmation.

    Immutable once built by the normalizer. Quantity is signed
    (negative for sells); proceeds and commission are magnitudes.
    """

    trade_id: str
    symbol: str  # Raw instrument code, e.g. "AAPL  250417P00190000"
    underlying_symbol: str
    asset_category: AssetCategory
    quantity: float
    price: float
    buy_sell: BuySell
    trade_date: datetime
    date_time: datetime  # Ordering instant: order time, else trade date
    order_time: Optional[datetime] = None
    report_date: Optional[datetime] = None
    proceeds: float = 0.0
    commission_and_tax: float = 0.0
    net_cash: float = 0.0
    currency: str = "USD"
    put_call: Optional[PutCall] = None
    strike: Optional[float] = None
    expiry: Optional[datetime] = None
    multiplier: int = 1
    transaction_id: str = ""
    order_reference: str = ""
    exchange: str = ""
    notes: str = ""
    source_document: str = ""
    date_fallbacks: tuple[str, ...] = ()

    @property
    def id(self) -> str:
        """Alias for trade_id."""
        return self.trade_id

    @property
    def is_option(self) -> bool:
        return self.asset_category in (AssetCategory.OPTION, AssetCategory.FUTURE_OPTION)

    @property
    def is_stock(self) -> bool:
        return self.asset_category == AssetCategory.STOCK

    @property
    def is_buy(self) -> bool:
        return self.buy_sell == BuySell.BUY

    @property
    def is_sell(self) -> bool:
        return self.buy_sell == BuySell.SELL

    @property
    def is_put(self) -> bool:
        return self.is_option and self.put_call == PutCall.PUT

    @property
    def is_call(self) -> bool:
        return self.is_option and self.put_call == PutCall.CALL

    @property
    def abs_quantity(self) -> float:
        """Unsigned quantity (contracts for options, shares for stock)."""
        return abs(self.quantity)

    @property
    def premium(self) -> float:
        """Cash value of an option leg, always non-negative."""
        return abs(self.proceeds) if self.is_option else 0.0

    @property
    def fees(self) -> float:
        """Commission and tax as a non-negative magnitude."""
        return abs(self.commission_and_tax)

    @property
    def has_date_fallback(self) -> bool:
        """True if any date on this trade was substituted with the parse time."""
        return bool(self.date_fallbacks)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation."""
        return {
            "id": self.trade_id,
            "trade_id": self.trade_id,
            "symbol": self.symbol,
            "underlying_symbol": self.underlying_symbol,
            "asset_category": self.asset_category.value,
            "currency": self.currency,
            "quantity": self.quantity,
            "price": self.price,
            "proceeds": self.proceeds,
            "commission_and_tax": self.commission_and_tax,
            "net_cash": self.net_cash,
            "buy_sell": self.buy_sell.value,
            "put_call": self.put_call.value if self.put_call else None,
            "strike": self.strike,
            "expiry": isoformat_or_none(self.expiry),
            "multiplier": self.multiplier,
            "trade_date": isoformat_or_none(self.trade_date),
            "order_time": isoformat_or_none(self.order_time),
            "date_time": isoformat_or_none(self.date_time),
            "report_date": isoformat_or_none(self.report_date),
            "transaction_id": self.transaction_id,
            "order_reference": self.order_reference,
            "exchange": self.exchange,
            "notes": self.notes,
            "source_document": self.source_document,
            "date_fallbacks": list(self.date_fallbacks),
        }


@dataclass
class WheelCycle:
    """
    One round of the wheel on a single symbol.

    Opened by a put sale and driven through the cycle state machine by
    later trades on the same underlying. Totals are running values; once
    the status is COMPLETED the cycle is no longer modified.
    """

    id: str
    symbol: str
    start_date: datetime
    end_date: Optional[datetime] = None
    status: CycleStatus = CycleStatus.ACTIVE
    state: CycleState = CycleState.NO_POSITION
    trades: list[Trade] = field(default_factory=list)
    total_premium_collected: float = 0.0
    total_fees: float = 0.0
    net_profit: float = 0.0
    assignment_price: Optional[float] = None
    shares_assigned: Optional[float] = None
    shares_held: float = 0.0
    safe_strike_price: Optional[float] = None
    cycle_type: Optional[CycleType] = None

    @property
    def is_active(self) -> bool:
        return self.status == CycleStatus.ACTIVE

    @property
    def is_completed(self) -> bool:
        return self.status == CycleStatus.COMPLETED

    @property
    def premium_legs(self) -> list[Trade]:
        """Option sales attributed to this cycle."""
        return [t for t in self.trades if t.is_option and t.is_sell]

    @property
    def duration_days(self) -> Optional[int]:
        """Days from put sale to completion (None while active)."""
        if self.end_date is None:
            return None
        return (self.end_date - self.start_date).days

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "start_date": isoformat_or_none(self.start_date),
            "end_date": isoformat_or_none(self.end_date),
            "status": self.status.value,
            "state": self.state.value,
            "cycle_type": self.cycle_type.value if self.cycle_type else None,
            "trades": [t.to_dict() for t in self.trades],
            "total_premium_collected": self.total_premium_collected,
            "total_fees": self.total_fees,
            "net_profit": self.net_profit,
            "assignment_price": self.assignment_price,
            "shares_assigned": self.shares_assigned,
            "shares_held": self.shares_held,
            "safe_strike_price": self.safe_strike_price,
        }


@dataclass
class Position:
    """
    Current holdings for one underlying symbol.

    Built from the full trade history on every call. The position owns its
    cycle lists; cycles do not point back at the position.
    """

    symbol: str
    quantity: float = 0.0
    average_cost: float = 0.0
    realized_pnl: float = 0.0
    active_cycles: list[WheelCycle] = field(default_factory=list)
    completed_cycles: list[WheelCycle] = field(default_factory=list)
    current_price: Optional[float] = None
    unrealized_pnl: Optional[float] = None

    @property
    def has_shares(self) -> bool:
        return self.quantity > 0

    @property
    def total_cost(self) -> float:
        """Cost basis of the shares currently held."""
        return self.quantity * self.average_cost

    @property
    def active_premium(self) -> float:
        """Premium collected by cycles that are still open."""
        return sum(c.total_premium_collected for c in self.active_cycles)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation."""
        return {
            "symbol": self.symbol,
            "quantity": self.quantity,
            "average_cost": self.average_cost,
            "realized_pnl": self.realized_pnl,
            "current_price": self.current_price,
            "unrealized_pnl": self.unrealized_pnl,
            "active_cycles": [c.to_dict() for c in self.active_cycles],
            "completed_cycles": [c.to_dict() for c in self.completed_cycles],
        }


@dataclass
class CashFlow:
    """Cash movements summed over a trade history."""

    total_cash_flow: float = 0.0
    stock_purchases: float = 0.0
    stock_sales: float = 0.0
    option_premiums_received: float = 0.0
    option_premiums_paid: float = 0.0
    commissions_fees: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_cash_flow": self.total_cash_flow,
            "stock_purchases": self.stock_purchases,
            "stock_sales": self.stock_sales,
            "option_premiums_received": self.option_premiums_received,
            "option_premiums_paid": self.option_premiums_paid,
            "commissions_fees": self.commissions_fees,
        }


@dataclass(frozen=True)
class SafeStrikeResult:
    """Breakeven levels for an open wheel position."""

    safe_strike: float
    break_even_price: float
    premium_buffer: float
    risk_amount: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "safe_strike": self.safe_strike,
            "break_even_price": self.break_even_price,
            "premium_buffer": self.premium_buffer,
            "risk_amount": self.risk_amount,
        }
