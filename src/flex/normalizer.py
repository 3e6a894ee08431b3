"""
Trade record normalization.

Validates the flat attribute records produced by the parser and builds
canonical Trade objects. Every record yields a tagged result: Ok(trade)
when it is usable, Err(error) when it must be skipped. Rejections are
logged and never abort the batch.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union

from src.utils.date_utils import parse_flex_date
from src.utils.validation import is_blank, to_finite_float
from src.wheel.models import AssetCategory, BuySell, PutCall, Trade

from .exceptions import DateParseError, RecordValidationError, ValidationErrorKind

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = (
    "tradeID",
    "symbol",
    "assetCategory",
    "quantity",
    "price",
    "buySell",
    "tradeDate",
)

OPTION_MULTIPLIER = 100
STOCK_MULTIPLIER = 1

# OCC-style option symbol: root, yymmdd, P|C, strike * 1000 in 8 digits
# e.g. "AAPL  250417P00190000" -> AAPL, 2025-04-17, put, 190.0
OPTION_SYMBOL_PATTERN = re.compile(
    r"^(?P<root>.+?)\s*(?P<expiry>\d{6})(?P<right>[PC])(?P<strike>\d{8})$"
)


@dataclass(frozen=True)
class Ok:
    """A record that produced a trade."""

    trade: Trade


@dataclass(frozen=True)
class Err:
    """A record that was rejected."""

    error: RecordValidationError

    @property
    def kind(self) -> ValidationErrorKind:
        return self.error.kind


NormalizationResult = Union[Ok, Err]


@dataclass(frozen=True)
class OptionSymbol:
    """Contract terms decoded from an option symbol."""

    underlying: str
    expiry: datetime
    put_call: PutCall
    strike: float


def parse_option_symbol(symbol: str) -> Optional[OptionSymbol]:
    """
    Decode an OCC-style option symbol.

    Args:
        symbol: Raw symbol, e.g. "AAPL  250417P00190000"

    Returns:
        OptionSymbol, or None if the symbol does not use the encoding
    """
    match = OPTION_SYMBOL_PATTERN.match(symbol.strip())
    if not match:
        return None

    try:
        expiry = datetime.strptime(match.group("expiry"), "%y%m%d")
    except ValueError:
        return None

    return OptionSymbol(
        underlying=match.group("root").strip(),
        expiry=expiry,
        put_call=PutCall(match.group("right")),
        strike=int(match.group("strike")) / 1000.0,
    )


class TradeNormalizer:
    """
    Builds Trade objects from raw attribute records.

    Args:
        clock: Source of the current instant, used when a date cannot be
            parsed. Injected for tests.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock

    def normalize_all(
        self, records: list[dict[str, str]], document: str = ""
    ) -> list[NormalizationResult]:
        """Normalize every record of one document, preserving order."""
        return [self.normalize(record, document) for record in records]

    def normalize(self, attrs: dict[str, str], document: str = "") -> NormalizationResult:
        """
        Validate one record and build a Trade.

        Args:
            attrs: Attribute dictionary from the parser
            document: Name of the source document

        Returns:
            Ok with the trade, or Err with the validation failure
        """
        trade_id = (attrs.get("tradeID") or "").strip() or None

        try:
            trade = self._build(attrs, document)
        except RecordValidationError as e:
            e.trade_id = trade_id
            e.document = document or None
            logger.warning(f"Skipping trade record: {e}")
            return Err(e)

        return Ok(trade)

    # Private helper methods

    def _build(self, attrs: dict[str, str], document: str) -> Trade:
        for name in REQUIRED_FIELDS:
            if is_blank(attrs.get(name)):
                raise RecordValidationError(
                    ValidationErrorKind.MISSING_FIELD, name, "required field is missing"
                )

        trade_id = attrs["tradeID"].strip()
        symbol = attrs["symbol"].strip()
        asset_category = self._asset_category(attrs["assetCategory"])
        buy_sell = self._buy_sell(attrs["buySell"])

        quantity = self._number(attrs, "quantity")
        price = self._number(attrs, "price")
        amount = self._optional_number(attrs, "amount")
        commission = self._optional_number(attrs, "commission") or 0.0
        net_cash = self._optional_number(attrs, "netCash")

        # Quantity sign follows the trade direction
        quantity = -abs(quantity) if buy_sell == BuySell.SELL else abs(quantity)

        fallbacks: list[str] = []
        trade_date = self._date(attrs.get("tradeDate"), "tradeDate", fallbacks)
        order_time = None
        if not is_blank(attrs.get("orderTime")):
            order_time = self._date(attrs.get("orderTime"), "orderTime", fallbacks)
        report_date = trade_date
        if not is_blank(attrs.get("reportDate")):
            report_date = self._date(attrs.get("reportDate"), "reportDate", fallbacks)

        put_call = None
        strike = None
        expiry = None
        underlying = (attrs.get("underlyingSymbol") or "").strip()

        if asset_category == AssetCategory.STOCK:
            underlying = underlying or symbol
            multiplier = self._multiplier(attrs, STOCK_MULTIPLIER)
        else:
            encoded = parse_option_symbol(symbol)
            if not underlying:
                underlying = encoded.underlying if encoded else symbol.split()[0]
            put_call = self._put_call(attrs.get("putCall"))
            if put_call is None and encoded:
                put_call = encoded.put_call
            strike = self._optional_number(attrs, "strike")
            if strike is None and encoded:
                strike = encoded.strike
            expiry = self._expiry(attrs.get("expiry"), encoded, fallbacks)
            multiplier = self._multiplier(attrs, OPTION_MULTIPLIER)
            if put_call is None:
                logger.warning(f"Option trade {trade_id} ({symbol}) has no put/call right")

        proceeds = abs(amount) if amount is not None else abs(quantity) * price * multiplier
        fees = abs(commission)
        if net_cash is None:
            net_cash = proceeds - fees if buy_sell == BuySell.SELL else -(proceeds + fees)

        return Trade(
            trade_id=trade_id,
            symbol=symbol,
            underlying_symbol=underlying,
            asset_category=asset_category,
            quantity=quantity,
            price=price,
            buy_sell=buy_sell,
            trade_date=trade_date,
            date_time=order_time or trade_date,
            order_time=order_time,
            report_date=report_date,
            proceeds=proceeds,
            commission_and_tax=fees,
            net_cash=net_cash,
            currency=(attrs.get("currency") or "USD").strip(),
            put_call=put_call,
            strike=strike,
            expiry=expiry,
            multiplier=multiplier,
            transaction_id=(attrs.get("transactionID") or trade_id).strip(),
            order_reference=(attrs.get("orderReference") or "").strip(),
            exchange=(attrs.get("exchange") or "").strip(),
            notes=(attrs.get("notes") or "").strip(),
            source_document=document,
            date_fallbacks=tuple(fallbacks),
        )

    def _number(self, attrs: dict[str, str], name: str) -> float:
        try:
            return to_finite_float(attrs.get(name))
        except ValueError as e:
            raise RecordValidationError(
                ValidationErrorKind.INVALID_NUMBER, name, str(e)
            ) from e

    def _optional_number(self, attrs: dict[str, str], name: str) -> Optional[float]:
        if is_blank(attrs.get(name)):
            return None
        return self._number(attrs, name)

    def _multiplier(self, attrs: dict[str, str], default: int) -> int:
        value = self._optional_number(attrs, "multiplier")
        if value is None or value <= 0:
            return default
        return int(round(value))

    def _asset_category(self, value: str) -> AssetCategory:
        try:
            return AssetCategory(value.strip().upper())
        except ValueError as e:
            raise RecordValidationError(
                ValidationErrorKind.UNSUPPORTED_VALUE,
                "assetCategory",
                f"unsupported asset category {value!r}",
            ) from e

    def _buy_sell(self, value: str) -> BuySell:
        # Cancellations arrive as e.g. "SELL (Ca.)"
        text = value.strip().upper()
        if text.startswith("BUY"):
            return BuySell.BUY
        if text.startswith("SELL"):
            return BuySell.SELL
        raise RecordValidationError(
            ValidationErrorKind.UNSUPPORTED_VALUE,
            "buySell",
            f"unsupported trade direction {value!r}",
        )

    def _put_call(self, value: Optional[str]) -> Optional[PutCall]:
        if is_blank(value):
            return None
        text = value.strip().upper()
        if text in ("P", "PUT"):
            return PutCall.PUT
        if text in ("C", "CALL"):
            return PutCall.CALL
        raise RecordValidationError(
            ValidationErrorKind.UNSUPPORTED_VALUE,
            "putCall",
            f"unsupported option right {value!r}",
        )

    def _date(self, value: Optional[str], name: str, fallbacks: list[str]) -> datetime:
        try:
            return parse_flex_date(value)
        except ValueError:
            error = DateParseError(name, value)
            logger.warning(f"{error}; falling back to current time")
            fallbacks.append(name)
            return self._clock()

    def _expiry(
        self,
        value: Optional[str],
        encoded: Optional[OptionSymbol],
        fallbacks: list[str],
    ) -> Optional[datetime]:
        if is_blank(value):
            return encoded.expiry if encoded else None
        try:
            return parse_flex_date(value)
        except ValueError:
            if encoded:
                logger.warning(
                    f"{DateParseError('expiry', value)}; using expiry from option symbol"
                )
                return encoded.expiry
            return self._date(value, "expiry", fallbacks)
