"""
Portfolio valuation against a quote source.

Quotes are fetched concurrently, one lookup per symbol with a timeout. A
failed, timed out or missing lookup falls back to the position's average
cost, so valuation always completes.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from src.market_data.quotes import Quote, QuoteLookupError, QuoteSource
from src.utils.date_utils import isoformat_or_none

from .models import Position

logger = logging.getLogger(__name__)

PRICE_SOURCE_QUOTE = "quote"
PRICE_SOURCE_AVERAGE_COST = "average_cost"


@dataclass
class PositionValuation:
    """Market value of one share position."""

    symbol: str
    quantity: float
    average_cost: float
    current_price: float
    market_value: float
    unrealized_pnl: float
    unrealized_pnl_pct: float
    realized_pnl: float
    price_source: str = PRICE_SOURCE_AVERAGE_COST
    quote_timestamp: Optional[datetime] = None
    stale: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "quantity": self.quantity,
            "average_cost": self.average_cost,
            "current_price": self.current_price,
            "market_value": self.market_value,
            "unrealized_pnl": self.unrealized_pnl,
            "unrealized_pnl_pct": self.unrealized_pnl_pct,
            "realized_pnl": self.realized_pnl,
            "price_source": self.price_source,
            "quote_timestamp": isoformat_or_none(self.quote_timestamp),
            "stale": self.stale,
        }


class PortfolioValuer:
    """
    Values share positions using live quotes with average-cost fallback.

    Args:
        quote_source: Where prices come from (None values at average cost)
        timeout: Seconds to wait for each symbol's quote
        max_age_seconds: Quotes older than this are flagged stale
        max_workers: Concurrent quote lookups
    """

    def __init__(
        self,
        quote_source: Optional[QuoteSource] = None,
        timeout: float = 5.0,
        max_age_seconds: float = 900.0,
        max_workers: int = 8,
    ):
        self.quote_source = quote_source
        self.timeout = timeout
        self.max_age_seconds = max_age_seconds
        self.max_workers = max_workers

    def fetch_quotes(self, symbols: list[str]) -> dict[str, Optional[Quote]]:
        """
        Look up quotes concurrently.

        Returns:
            Dict of symbol to Quote, or None where the lookup failed
        """
        results: dict[str, Optional[Quote]] = {symbol: None for symbol in symbols}
        if self.quote_source is None or not symbols:
            return results

        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(symbols)))
        try:
            futures = {
                symbol: executor.submit(self.quote_source.get_quote, symbol)
                for symbol in symbols
            }
            for symbol, future in futures.items():
                try:
                    results[symbol] = future.result(timeout=self.timeout)
                except FutureTimeoutError:
                    logger.warning(
                        f"Quote lookup for {symbol} timed out after {self.timeout}s, "
                        f"using average cost"
                    )
                except QuoteLookupError as e:
                    logger.warning(f"Quote lookup for {symbol} failed ({e}), using average cost")
                except Exception as e:
                    logger.warning(
                        f"Unexpected error looking up {symbol} ({e!r}), using average cost"
                    )
        finally:
            # Do not wait on lookups that already timed out
            executor.shutdown(wait=False, cancel_futures=True)

        return results

    def value(
        self, positions: dict[str, Position], now: Optional[datetime] = None
    ) -> dict[str, PositionValuation]:
        """
        Value every position that holds shares.

        Positions with zero quantity are skipped. current_price and
        unrealized_pnl are also written back onto each valued Position.

        Args:
            positions: Reconciled positions keyed by symbol
            now: Reference instant for staleness (defaults to now)

        Returns:
            Dict of symbol to PositionValuation
        """
        held = {s: p for s, p in positions.items() if p.quantity != 0}
        quotes = self.fetch_quotes(sorted(held))

        valuations: dict[str, PositionValuation] = {}
        for symbol in sorted(held):
            position = held[symbol]
            quote = quotes.get(symbol)
            valuation = self._value_position(position, quote, now)
            position.current_price = valuation.current_price
            position.unrealized_pnl = valuation.unrealized_pnl
            valuations[symbol] = valuation

        fallbacks = sum(1 for v in valuations.values() if v.price_source != PRICE_SOURCE_QUOTE)
        logger.info(
            f"Valued {len(valuations)} positions ({fallbacks} at average cost)"
        )
        return valuations

    # Private helper methods

    def _value_position(
        self, position: Position, quote: Optional[Quote], now: Optional[datetime]
    ) -> PositionValuation:
        if quote is not None:
            price = quote.price
            source = PRICE_SOURCE_QUOTE
            stale = quote.is_stale(self.max_age_seconds, now)
            if stale:
                logger.warning(
                    f"Quote for {position.symbol} is {quote.age_seconds(now):.0f}s old"
                )
        else:
            price = position.average_cost
            source = PRICE_SOURCE_AVERAGE_COST
            stale = False

        unrealized = (price - position.average_cost) * position.quantity
        basis = position.average_cost * abs(position.quantity)
        pct = (unrealized / basis) * 100 if basis > 0 else 0.0

        return PositionValuation(
            symbol=position.symbol,
            quantity=position.quantity,
            average_cost=position.average_cost,
            current_price=price,
            market_value=position.quantity * price,
            unrealized_pnl=unrealized,
            unrealized_pnl_pct=pct,
            realized_pnl=position.realized_pnl,
            price_source=source,
            quote_timestamp=quote.timestamp if quote else None,
            stale=stale,
        )
