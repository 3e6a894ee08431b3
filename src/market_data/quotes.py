"""
Quote sources for portfolio valuation.

Defines the Quote value and the QuoteSource interface consumed by the
valuation layer, a Finnhub HTTP implementation, and a polling QuoteStream
for callers that want periodic updates.

API Documentation: https://finnhub.io/docs/api/quote
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Protocol, Tuple

import requests

from src.config import FinnhubConfig

logger = logging.getLogger(__name__)


class QuoteLookupError(Exception):
    """A quote could not be retrieved for a symbol."""

    pass


@dataclass(frozen=True)
class Quote:
    """Last traded price of a symbol at a point in time."""

    symbol: str
    price: float
    timestamp: datetime

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        return ((now or datetime.now()) - self.timestamp).total_seconds()

    def is_stale(self, max_age_seconds: float, now: Optional[datetime] = None) -> bool:
        return self.age_seconds(now) > max_age_seconds


class QuoteSource(Protocol):
    """Anything that can price a symbol."""

    def get_quote(self, symbol: str) -> Quote:
        """Return the latest quote. Raises QuoteLookupError."""
        ...


class FinnhubQuoteSource:
    """
    Quote source backed by the Finnhub /quote endpoint.

    This client handles:
    - Retry with exponential backoff on timeouts and connection errors
    - Per-symbol caching for config.cache_ttl seconds
    - Mapping every failure to QuoteLookupError
    """

    def __init__(self, config: FinnhubConfig):
        """
        Initialize the quote source.

        Args:
            config: FinnhubConfig instance with API credentials and settings
        """
        self.config = config
        self.session = requests.Session()
        self.session.headers.update(
            {"Accept": "application/json", "User-Agent": "WheelLedger/1.0"}
        )
        self._cache: Dict[str, Tuple[Quote, datetime]] = {}  # symbol -> (quote, fetched_at)
        self._lock = threading.Lock()

    def get_quote(self, symbol: str) -> Quote:
        """
        Fetch the current price of a symbol.

        Args:
            symbol: Stock ticker symbol (e.g., "AAPL")

        Returns:
            Quote with the current price and the exchange timestamp

        Raises:
            QuoteLookupError: If the request fails or returns no price
        """
        symbol = symbol.upper().strip()
        if not symbol:
            raise QuoteLookupError("Symbol cannot be empty")

        with self._lock:
            cached = self._cache.get(symbol)
        if cached:
            quote, fetched_at = cached
            if (datetime.now() - fetched_at).total_seconds() < self.config.cache_ttl:
                logger.debug(f"Using cached quote for {symbol}: ${quote.price:.2f}")
                return quote

        url = f"{self.config.base_url}/quote"
        params = {"symbol": symbol, "token": self.config.api_key}

        try:
            response = self._make_request_with_retry(url, params)

            if response.status_code == 401:
                raise QuoteLookupError("Authentication failed. Check your API key.")
            elif response.status_code == 429:
                raise QuoteLookupError(
                    "Rate limit exceeded. Finnhub free tier allows 60 calls/minute."
                )
            elif response.status_code >= 500:
                raise QuoteLookupError(
                    f"Finnhub server error (HTTP {response.status_code}). Try again later."
                )

            response.raise_for_status()
            data = response.json()

        except requests.exceptions.Timeout as e:
            raise QuoteLookupError(
                f"Request timeout after {self.config.timeout}s for symbol {symbol}"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise QuoteLookupError("Connection error. Check your internet connection.") from e
        except requests.exceptions.RequestException as e:
            raise QuoteLookupError(f"Quote request failed: {str(e)}") from e
        except ValueError as e:
            raise QuoteLookupError(f"Invalid JSON response from API: {str(e)}") from e

        # Finnhub answers unknown symbols with zeros instead of an error
        price = data.get("c") if isinstance(data, dict) else None
        if not price:
            raise QuoteLookupError(f"No quote available for {symbol}")

        try:
            stamp = data.get("t")
            timestamp = datetime.fromtimestamp(stamp) if stamp else datetime.now()
            quote = Quote(symbol=symbol, price=float(price), timestamp=timestamp)
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise QuoteLookupError(f"Malformed quote payload for {symbol}: {data}") from e

        with self._lock:
            self._cache[symbol] = (quote, datetime.now())
        logger.debug(f"Fetched quote for {symbol}: ${quote.price:.2f}")
        return quote

    def _make_request_with_retry(
        self, url: str, params: Dict[str, str], attempt: int = 1
    ) -> requests.Response:
        """
        Make HTTP request with exponential backoff retry.

        Args:
            url: Request URL
            params: Query parameters
            attempt: Current attempt number (used for recursion)

        Returns:
            HTTP response object
        """
        try:
            return self.session.get(url, params=params, timeout=self.config.timeout)

        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            if attempt >= self.config.max_retries:
                logger.error(f"All {self.config.max_retries} attempts failed for {url}")
                raise

            delay = self.config.retry_delay * (2 ** (attempt - 1))
            logger.warning(
                f"Quote request failed (attempt {attempt}/{self.config.max_retries}). "
                f"Retrying in {delay:.1f}s... Error: {str(e)}"
            )
            time.sleep(delay)
            return self._make_request_with_retry(url, params, attempt + 1)

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()


QuoteListener = Callable[[Quote], None]


class QuoteStream:
    """
    Polls a quote source on a background thread and notifies listeners.

    The consumer owns the stream's lifetime: close() stops the polling
    thread and drops every listener. Usable as a context manager.

    Args:
        source: Quote source to poll
        symbols: Symbols to poll each round
        interval: Seconds between polling rounds
    """

    def __init__(self, source: QuoteSource, symbols: list[str], interval: float = 5.0):
        if interval <= 0:
            raise ValueError("Polling interval must be positive")
        self.source = source
        self.symbols = [s.upper() for s in symbols]
        self.interval = interval
        self._listeners: list[QuoteListener] = []
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def subscribe(self, listener: QuoteListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener again
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the polling thread (no-op if already running)."""
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="quote-stream", daemon=True)
        self._thread.start()
        logger.debug(f"Quote stream started for {len(self.symbols)} symbols")

    def poll_once(self) -> list[Quote]:
        """Fetch every symbol once and notify listeners. Lookup failures are skipped."""
        quotes: list[Quote] = []
        for symbol in self.symbols:
            if self._stop.is_set():
                break
            try:
                quote = self.source.get_quote(symbol)
            except QuoteLookupError as e:
                logger.warning(f"Quote stream lookup failed for {symbol}: {e}")
                continue
            quotes.append(quote)
            self._notify(quote)
        return quotes

    def close(self) -> None:
        """Stop polling and drop all listeners."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1)
            self._thread = None
        with self._lock:
            self._listeners.clear()
        logger.debug("Quote stream closed")

    def __enter__(self) -> "QuoteStream":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Private helper methods

    def _run(self) -> None:
        while not self._stop.is_set():
            self.poll_once()
            self._stop.wait(self.interval)

    def _notify(self, quote: Quote) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(quote)
            except Exception:
                logger.exception(f"Quote listener failed for {quote.symbol}")
