"""
Wheel ledger engine.

WheelEngine is the service object behind every ledger operation. It owns
one TradeIngestor and recomputes cycles, positions, analytics and
integrity reports from the full trade history on each call. Cycle
reconstruction is memoized by the ingestion report's version, so repeated
queries against an unchanged trade set do not replay it.
"""

import logging
from datetime import date, datetime
from typing import Any, Iterable, Optional, Union

from src.flex.ingestor import IngestionReport, TradeIngestor
from src.market_data.quotes import QuoteLookupError, QuoteSource

from .analytics import AnalyticsAggregator, IncomeAnalytics
from .config import WheelLedgerConfig
from .cycles import CycleReconstructor, ReconstructionResult
from .integrity import IntegrityReport, IntegrityValidator
from .models import CashFlow, Position, SafeStrikeResult, Trade, WheelCycle
from .positions import PositionReconciler
from .safe_strike import calculate_safe_strike
from .valuation import PortfolioValuer, PositionValuation

logger = logging.getLogger(__name__)


class WheelEngine:
    """
    Orchestrates ingestion, reconstruction and reporting.

    Args:
        config: Ledger configuration (defaults when omitted)
        ingestor: Trade ingestor (built from config when omitted)
        quote_source: Optional source of live prices
        as_of: Fixed instant for expiry resolution (current time when None)
    """

    def __init__(
        self,
        config: Optional[WheelLedgerConfig] = None,
        ingestor: Optional[TradeIngestor] = None,
        quote_source: Optional[QuoteSource] = None,
        as_of: Optional[datetime] = None,
    ):
        self.config = config or WheelLedgerConfig()
        self.ingestor = ingestor or TradeIngestor(
            suffix=self.config.file_suffix,
            max_workers=self.config.max_workers,
        )
        self.quote_source = quote_source
        self.as_of = as_of
        self.reconstructor = CycleReconstructor(as_of=as_of)
        self.reconciler = PositionReconciler()
        self.aggregator = AnalyticsAggregator()
        self.validator = IntegrityValidator()
        self.valuer = PortfolioValuer(
            quote_source,
            timeout=self.config.quote_timeout,
            max_age_seconds=self.config.max_quote_age,
        )
        self.source_location = str(self.config.reports_path)
        self._memo: Optional[tuple[tuple[str, int, date], ReconstructionResult]] = None

    # Ingestion

    def ingest(self, source_location=None) -> list[Trade]:
        """
        Load the trade set, from cache when available.

        Args:
            source_location: Export directory; becomes the engine's current
                source. Defaults to the configured reports directory.

        Raises:
            SourceAccessError: If the location cannot be listed
        """
        if source_location is not None:
            self.source_location = str(source_location)
        return self.ingestor.ingest(self.source_location)

    def clear_cache(self) -> None:
        """Forget cached trades and derived results."""
        self.ingestor.clear_cache()
        self._memo = None

    def get_report(self) -> Optional[IngestionReport]:
        """Ingestion report of the current source, if it has been ingested."""
        return self.ingestor.get_report(self.source_location)

    # Reconstruction

    def reconstruct(self, trades: Optional[Iterable[Trade]] = None) -> ReconstructionResult:
        """
        Rebuild cycles for the given trades, or for the ingested trade set.

        Results for the ingested set are memoized per report version and
        as-of date.
        """
        if trades is not None:
            return self.reconstructor.reconstruct(trades)

        current = self.ingest()
        report = self.get_report()
        as_of = self.as_of or datetime.now()
        key = (self.source_location, report.version if report else -1, as_of.date())
        if self._memo is not None and self._memo[0] == key:
            return self._memo[1]

        result = self.reconstructor.reconstruct(current, as_of=as_of)
        self._memo = (key, result)
        return result

    def reconstruct_cycles(
        self, trades: Optional[Iterable[Trade]] = None
    ) -> dict[str, list[WheelCycle]]:
        """Cycles keyed by underlying symbol."""
        return self.reconstruct(trades).cycles_by_symbol

    def get_cycles_for_symbol(self, symbol: str) -> list[WheelCycle]:
        """Cycles of one symbol in start order; empty for unknown symbols."""
        return list(self.reconstruct_cycles().get(symbol.upper().strip(), []))

    # Positions

    def reconcile_positions(
        self, trades: Optional[Iterable[Trade]] = None
    ) -> dict[str, Position]:
        """Positions keyed by underlying symbol, with their cycles attached."""
        trade_list = list(trades) if trades is not None else self.ingest()
        cycles = self.reconstruct(trade_list if trades is not None else None)
        return self.reconciler.positions_from_trades(trade_list, cycles.cycles_by_symbol)

    def cash_flow(self) -> CashFlow:
        """Cash movements over the ingested trade set."""
        return self.reconciler.cash_flow(self.ingest())

    def calculate_safe_strike(
        self, symbol: str, price: Optional[float] = None
    ) -> Optional[SafeStrikeResult]:
        """
        Safe strike for a symbol's open wheel position.

        Uses the premium collected by the symbol's active cycles. Without
        an explicit price the quote source is asked, falling back to the
        position's average cost.

        Args:
            symbol: Underlying symbol
            price: Reference share price

        Returns:
            SafeStrikeResult, or None if the symbol has no active cycles and
            no shares, or no usable price exists
        """
        symbol = symbol.upper().strip()
        position = self.reconcile_positions().get(symbol)
        if position is None or (not position.active_cycles and not position.has_shares):
            logger.debug(f"No open wheel position for {symbol}")
            return None

        if price is None:
            price = self._reference_price(position)
            if price is None:
                logger.warning(f"No usable price for {symbol}, cannot compute safe strike")
                return None

        return calculate_safe_strike(price, position.active_premium)

    # Reporting

    def income_analytics(
        self,
        start: Optional[Union[date, datetime]] = None,
        end: Optional[Union[date, datetime]] = None,
    ) -> IncomeAnalytics:
        """Weekly, monthly and per-symbol income between optional inclusive dates."""
        trades = self.ingest()
        return self.aggregator.aggregate(trades, self.reconstruct().all_cycles, start, end)

    def validate_cycle_integrity(self) -> IntegrityReport:
        """Check every reconstructed cycle and cross-check share counts."""
        trades = self.ingest()
        positions = self.reconcile_positions()
        return self.validator.validate(self.reconstruct_cycles(), positions, trades)

    def value_portfolio(self) -> dict[str, PositionValuation]:
        """Market value of every share position."""
        return self.valuer.value(self.reconcile_positions())

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready bundle of trades, cycles and positions."""
        trades = self.ingest()
        result = self.reconstruct()
        positions = self.reconcile_positions()
        report = self.get_report()
        return {
            "source": self.source_location,
            "generated_at": datetime.now().isoformat(),
            "ingestion": report.to_dict() if report else None,
            "trades": [t.to_dict() for t in trades],
            "cycles": result.to_dict(),
            "positions": {symbol: p.to_dict() for symbol, p in positions.items()},
            "cash_flow": self.reconciler.cash_flow(trades).to_dict(),
        }

    # Private helper methods

    def _reference_price(self, position: Position) -> Optional[float]:
        if self.quote_source is not None:
            try:
                return self.quote_source.get_quote(position.symbol).price
            except QuoteLookupError as e:
                logger.warning(f"Quote lookup for {position.symbol} failed ({e}), using average cost")
            except Exception as e:
                logger.warning(
                    f"Unexpected error looking up {position.symbol} ({e!r}), using average cost"
                )
        if position.average_cost > 0:
            return position.average_cost
        return None
