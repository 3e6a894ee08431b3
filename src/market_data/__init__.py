"""
Market data package.

Quote retrieval used to value share positions:
- quotes: Quote value, QuoteSource interface, Finnhub source, polling stream
"""

from src.market_data.quotes import (
    FinnhubQuoteSource,
    Quote,
    QuoteLookupError,
    QuoteSource,
    QuoteStream,
)

__all__ = [
    "FinnhubQuoteSource",
    "Quote",
    "QuoteLookupError",
    "QuoteSource",
    "QuoteStream",
]
