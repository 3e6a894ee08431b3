"""
Income analytics for wheel trading.

Buckets option income into Monday-start weeks and calendar months, rolls
it up per symbol and derives simple trends. Everything is recomputed from
the trade set and reconstructed cycles on each call.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Optional, Union

from src.utils.date_utils import start_of_month, start_of_week, to_date

from .models import Trade, WheelCycle

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]


@dataclass
class PeriodBucket:
    """Income for one week or month."""

    period_start: date
    gross_premium: float = 0.0
    buyback_cost: float = 0.0
    fees: float = 0.0
    trade_count: int = 0
    cycles_opened: int = 0
    cycles_completed: int = 0
    realized_cycle_profit: float = 0.0

    @property
    def net_income(self) -> float:
        return self.gross_premium - self.buyback_cost - self.fees

    def to_dict(self) -> dict[str, Any]:
        return {
            "period_start": self.period_start.isoformat(),
            "gross_premium": self.gross_premium,
            "buyback_cost": self.buyback_cost,
            "fees": self.fees,
            "net_income": self.net_income,
            "trade_count": self.trade_count,
            "cycles_opened": self.cycles_opened,
            "cycles_completed": self.cycles_completed,
            "realized_cycle_profit": self.realized_cycle_profit,
        }


@dataclass
class SymbolAnalytics:
    """Income rollup for one underlying."""

    symbol: str
    total_premium: float = 0.0
    buyback_cost: float = 0.0
    total_fees: float = 0.0
    option_sales: int = 0
    active_cycles: int = 0
    completed_cycles: int = 0
    winning_cycles: int = 0

    @property
    def net_income(self) -> float:
        return self.total_premium - self.buyback_cost - self.total_fees

    @property
    def win_rate(self) -> float:
        """Fraction of completed cycles with positive net profit (0.0 if none)."""
        if self.completed_cycles == 0:
            return 0.0
        return self.winning_cycles / self.completed_cycles

    @property
    def average_premium(self) -> float:
        if self.option_sales == 0:
            return 0.0
        return self.total_premium / self.option_sales

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "total_premium": self.total_premium,
            "buyback_cost": self.buyback_cost,
            "total_fees": self.total_fees,
            "net_income": self.net_income,
            "win_rate": self.win_rate,
            "average_premium": self.average_premium,
            "active_cycles": self.active_cycles,
            "completed_cycles": self.completed_cycles,
        }


@dataclass
class TrendSummary:
    """Growth over the last two periods and best/worst symbols."""

    weekly_growth: float = 0.0
    monthly_growth: float = 0.0
    best_performing_symbol: Optional[str] = None
    worst_performing_symbol: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "weekly_growth": self.weekly_growth,
            "monthly_growth": self.monthly_growth,
            "best_performing_symbol": self.best_performing_symbol,
            "worst_performing_symbol": self.worst_performing_symbol,
        }


@dataclass
class IncomeAnalytics:
    """Weekly, monthly and per-symbol income with trends."""

    weekly: list[PeriodBucket] = field(default_factory=list)
    monthly: list[PeriodBucket] = field(default_factory=list)
    by_symbol: dict[str, SymbolAnalytics] = field(default_factory=dict)
    trends: TrendSummary = field(default_factory=TrendSummary)

    @property
    def total_income(self) -> float:
        return sum(s.net_income for s in self.by_symbol.values())

    @property
    def win_rate(self) -> float:
        """Portfolio-wide fraction of winning completed cycles."""
        completed = sum(s.completed_cycles for s in self.by_symbol.values())
        if completed == 0:
            return 0.0
        return sum(s.winning_cycles for s in self.by_symbol.values()) / completed

    def to_dict(self) -> dict[str, Any]:
        return {
            "weekly": [b.to_dict() for b in self.weekly],
            "monthly": [b.to_dict() for b in self.monthly],
            "by_symbol": {k: v.to_dict() for k, v in self.by_symbol.items()},
            "trends": self.trends.to_dict(),
            "total_income": self.total_income,
            "win_rate": self.win_rate,
        }


class AnalyticsAggregator:
    """Aggregates option income and cycle outcomes over time."""

    def aggregate(
        self,
        trades: Iterable[Trade],
        cycles: Iterable[WheelCycle],
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
    ) -> IncomeAnalytics:
        """
        Build income analytics.

        Option trades are bucketed by trade date. Completed cycles count in
        the period of their end date, active cycles in the period of their
        start date.

        Args:
            trades: Trade set (stock trades are ignored)
            cycles: Reconstructed cycles
            start: Inclusive lower date bound
            end: Inclusive upper date bound

        Returns:
            IncomeAnalytics
        """
        start_day = to_date(start) if start else None
        end_day = to_date(end) if end else None

        def in_range(day: date) -> bool:
            if start_day and day < start_day:
                return False
            if end_day and day > end_day:
                return False
            return True

        weekly: dict[date, PeriodBucket] = {}
        monthly: dict[date, PeriodBucket] = {}
        by_symbol: dict[str, SymbolAnalytics] = {}

        def buckets_for(day: date) -> list[PeriodBucket]:
            return [
                self._bucket(weekly, start_of_week(day)),
                self._bucket(monthly, start_of_month(day)),
            ]

        for trade in trades:
            if not trade.is_option:
                continue
            day = to_date(trade.trade_date)
            if not in_range(day):
                continue

            rollup = self._rollup(by_symbol, trade.underlying_symbol)
            rollup.total_fees += trade.fees
            if trade.is_sell:
                rollup.total_premium += trade.premium
                rollup.option_sales += 1
            else:
                rollup.buyback_cost += trade.premium

            for bucket in buckets_for(day):
                bucket.trade_count += 1
                bucket.fees += trade.fees
                if trade.is_sell:
                    bucket.gross_premium += trade.premium
                else:
                    bucket.buyback_cost += trade.premium

        for cycle in cycles:
            anchor = cycle.end_date if cycle.is_completed and cycle.end_date else cycle.start_date
            day = to_date(anchor)
            if not in_range(day):
                continue

            rollup = self._rollup(by_symbol, cycle.symbol)
            if cycle.is_completed:
                rollup.completed_cycles += 1
                if cycle.net_profit > 0:
                    rollup.winning_cycles += 1
            else:
                rollup.active_cycles += 1

            for bucket in buckets_for(day):
                if cycle.is_completed:
                    bucket.cycles_completed += 1
                    bucket.realized_cycle_profit += cycle.net_profit
                else:
                    bucket.cycles_opened += 1

        analytics = IncomeAnalytics(
            weekly=[weekly[k] for k in sorted(weekly)],
            monthly=[monthly[k] for k in sorted(monthly)],
            by_symbol={k: by_symbol[k] for k in sorted(by_symbol)},
        )
        analytics.trends = self._trends(analytics)

        logger.debug(
            f"Aggregated {len(analytics.weekly)} weeks, {len(analytics.monthly)} months, "
            f"{len(analytics.by_symbol)} symbols"
        )
        return analytics

    # Private helper methods

    def _bucket(self, buckets: dict[date, PeriodBucket], key: date) -> PeriodBucket:
        if key not in buckets:
            buckets[key] = PeriodBucket(period_start=key)
        return buckets[key]

    def _rollup(self, rollups: dict[str, SymbolAnalytics], symbol: str) -> SymbolAnalytics:
        if symbol not in rollups:
            rollups[symbol] = SymbolAnalytics(symbol=symbol)
        return rollups[symbol]

    def _trends(self, analytics: IncomeAnalytics) -> TrendSummary:
        trends = TrendSummary(
            weekly_growth=self._growth(analytics.weekly),
            monthly_growth=self._growth(analytics.monthly),
        )
        if analytics.by_symbol:
            ranked = sorted(analytics.by_symbol.values(), key=lambda s: s.net_income)
            trends.worst_performing_symbol = ranked[0].symbol
            trends.best_performing_symbol = ranked[-1].symbol
        return trends

    def _growth(self, buckets: list[PeriodBucket]) -> float:
        """Relative change in net income between the last two periods."""
        if len(buckets) < 2:
            return 0.0
        previous = buckets[-2].net_income
        current = buckets[-1].net_income
        if previous == 0:
            return 0.0
        return (current - previous) / abs(previous)
