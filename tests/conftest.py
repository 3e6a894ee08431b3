"""Shared fixtures for ledger tests.

Provides builders for Trade objects and for Flex export documents so
individual tests only spell out the fields they care about.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional
from xml.sax.saxutils import quoteattr

import pytest

from src.wheel.models import AssetCategory, BuySell, PutCall, Trade


def build_trade(
    trade_id: str,
    underlying: str = "AAPL",
    *,
    kind: str = "put",
    side: str = "SELL",
    quantity: float = 1,
    price: float = 5.50,
    when: str = "2025-01-15",
    strike: Optional[float] = 190.0,
    expiry: Optional[str] = "2025-02-21",
    proceeds: Optional[float] = None,
    commission: float = 0.0,
    date_fallbacks: tuple = (),
) -> Trade:
    """Build a Trade. kind is "put", "call" or "stock"."""
    is_stock = kind == "stock"
    buy_sell = BuySell(side)
    multiplier = 1 if is_stock else 100
    if proceeds is None:
        proceeds = abs(quantity) * price * multiplier
    signed = -abs(quantity) if buy_sell == BuySell.SELL else abs(quantity)
    net_cash = proceeds - commission if buy_sell == BuySell.SELL else -(proceeds + commission)
    moment = datetime.fromisoformat(when)

    put_call = None
    symbol = underlying
    expiry_dt = None
    if not is_stock:
        put_call = PutCall.PUT if kind == "put" else PutCall.CALL
        expiry_dt = datetime.fromisoformat(expiry) if expiry else None
        stamp = expiry_dt.strftime("%y%m%d") if expiry_dt else "000000"
        symbol = f"{underlying:<6}{stamp}{put_call.value}{int(round((strike or 0) * 1000)):08d}"

    return Trade(
        trade_id=trade_id,
        symbol=symbol,
        underlying_symbol=underlying,
        asset_category=AssetCategory.STOCK if is_stock else AssetCategory.OPTION,
        quantity=signed,
        price=price,
        buy_sell=buy_sell,
        trade_date=moment,
        date_time=moment,
        report_date=moment,
        proceeds=proceeds,
        commission_and_tax=commission,
        net_cash=net_cash,
        put_call=put_call,
        strike=None if is_stock else strike,
        expiry=expiry_dt,
        multiplier=multiplier,
        transaction_id=trade_id,
        date_fallbacks=date_fallbacks,
    )


def flex_document(*rows: dict, container: str = "TradeConfirms", row: str = "TradeConfirm") -> str:
    """Render attribute dicts as a Flex query response."""
    lines = []
    for attrs in rows:
        rendered = " ".join(f"{k}={quoteattr(str(v))}" for k, v in attrs.items())
        lines.append(f"        <{row} {rendered} />")
    body = "\n".join(lines)
    return (
        '<FlexQueryResponse queryName="trades" type="TCF">\n'
        "  <FlexStatements count=\"1\">\n"
        '    <FlexStatement accountId="U1234567">\n'
        f"      <{container}>\n{body}\n      </{container}>\n"
        "    </FlexStatement>\n"
        "  </FlexStatements>\n"
        "</FlexQueryResponse>\n"
    )


def put_sale_row(**overrides) -> dict:
    """Attributes of the AAPL put sale used across tests (premium 550)."""
    attrs = {
        "tradeID": "1001",
        "symbol": "AAPL  250221P00190000",
        "assetCategory": "OPT",
        "currency": "USD",
        "quantity": "-1",
        "price": "5.50",
        "amount": "550",
        "commission": "-1.05",
        "netCash": "548.95",
        "tradeDate": "20250115",
        "orderTime": "20250115;093512",
        "buySell": "SELL",
        "putCall": "P",
        "strike": "190",
        "expiry": "20250221",
        "multiplier": "100",
        "transactionID": "5001",
        "orderReference": "wheel-aapl",
        "exchange": "CBOE",
    }
    attrs.update(overrides)
    return attrs


@pytest.fixture
def make_trade() -> Callable[..., Trade]:
    """Trade builder (see build_trade)."""
    return build_trade


@pytest.fixture
def reports_dir(tmp_path: Path) -> Path:
    """Empty directory for export documents."""
    path = tmp_path / "reports"
    path.mkdir()
    return path


@pytest.fixture
def write_export(reports_dir: Path) -> Callable[..., Path]:
    """Write an export document with the given rows into reports_dir."""

    def _write(name: str, *rows: dict) -> Path:
        path = reports_dir / name
        path.write_text(flex_document(*rows), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def put_row() -> Callable[..., dict]:
    """Put sale attribute builder (see put_sale_row)."""
    return put_sale_row


@pytest.fixture
def render_flex() -> Callable[..., str]:
    """Flex document renderer (see flex_document)."""
    return flex_document
