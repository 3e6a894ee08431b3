"""Tests for cycle integrity validation."""

from datetime import datetime

import pytest

from src.wheel.cycles import CycleReconstructor
from src.wheel.integrity import IntegrityValidator, Severity
from src.wheel.models import Position, WheelCycle
from src.wheel.state import CycleState, CycleStatus, CycleType


@pytest.fixture
def validator() -> IntegrityValidator:
    return IntegrityValidator()


def open_cycle(make_trade, **overrides) -> WheelCycle:
    """An active cycle holding one put sale."""
    trade = make_trade("1")
    fields = {
        "id": "AAPL-1",
        "symbol": "AAPL",
        "start_date": trade.date_time,
        "state": CycleState.PUT_OPEN,
        "trades": [trade],
        "total_premium_collected": 550.0,
    }
    fields.update(overrides)
    return WheelCycle(**fields)


class TestCycleChecks:
    def test_reconstructed_cycles_are_valid(self, validator, make_trade) -> None:
        trades = [
            make_trade("1", when="2025-01-15"),
            make_trade("2", side="BUY", price=1.0, when="2025-01-17"),
            make_trade("3", when="2025-01-20", strike=185.0),
        ]
        cycles = CycleReconstructor(as_of=datetime(2025, 1, 25)).reconstruct(trades).cycles_by_symbol

        report = validator.validate(cycles)

        assert report.is_valid
        assert report.issues == []
        assert report.summary.total_cycles == 2
        assert report.summary.valid_cycles == 2

    def test_completed_cycle_needs_end_date_and_type(self, validator, make_trade) -> None:
        cycle = open_cycle(make_trade, status=CycleStatus.COMPLETED, state=CycleState.CLOSED)

        report = validator.validate({"AAPL": [cycle]})

        assert not report.is_valid
        messages = [i.message for i in report.errors]
        assert "Completed cycle has no end date" in messages
        assert "Completed cycle has no cycle type" in messages
        assert report.summary.invalid_cycles == 1

    def test_active_cycle_with_end_date(self, validator, make_trade) -> None:
        cycle = open_cycle(make_trade, end_date=datetime(2025, 2, 1))

        report = validator.validate({"AAPL": [cycle]})

        assert [i.message for i in report.errors] == ["Active cycle has an end date"]

    def test_end_before_start(self, validator, make_trade) -> None:
        cycle = open_cycle(
            make_trade,
            status=CycleStatus.COMPLETED,
            state=CycleState.CLOSED,
            cycle_type=CycleType.PUT_EXPIRED,
            end_date=datetime(2025, 1, 1),
        )

        report = validator.validate({"AAPL": [cycle]})

        assert len(report.errors) == 1
        assert "before start date" in report.errors[0].message

    def test_premium_mismatch(self, validator, make_trade) -> None:
        cycle = open_cycle(make_trade, total_premium_collected=100.0)

        report = validator.validate({"AAPL": [cycle]})

        assert len(report.errors) == 1
        assert "does not match" in report.errors[0].message
        assert report.errors[0].cycle_id == "AAPL-1"

    def test_trades_out_of_order(self, validator, make_trade) -> None:
        later = make_trade("1", when="2025-01-20")
        earlier = make_trade("2", side="BUY", price=1.0, when="2025-01-16")
        cycle = open_cycle(make_trade, trades=[later, earlier])

        report = validator.validate({"AAPL": [cycle]})

        assert "Trades are not in chronological order" in [i.message for i in report.errors]

    def test_trade_in_two_cycles(self, validator, make_trade) -> None:
        first = open_cycle(make_trade)
        second = open_cycle(make_trade, id="AAPL-9")

        report = validator.validate({"AAPL": [first, second]})

        assert len(report.errors) == 1
        assert report.errors[0].cycle_id == "AAPL-9"
        assert "AAPL-1" in report.errors[0].message


class TestWarnings:
    """Warnings never make a report invalid."""

    def test_share_count_mismatch(self, validator, make_trade) -> None:
        cycle = open_cycle(
            make_trade,
            state=CycleState.SHARES_HELD,
            shares_held=100,
            shares_assigned=100,
            assignment_price=190.0,
        )

        report = validator.validate({"AAPL": [cycle]}, positions={"AAPL": Position("AAPL")})

        assert report.is_valid
        assert len(report.warnings) == 1
        assert report.warnings[0].severity == Severity.WARNING
        assert "hold 100 shares" in report.warnings[0].message

    def test_date_fallback_surfaces(self, validator, make_trade) -> None:
        trade = make_trade("7", date_fallbacks=("tradeDate",))

        report = validator.validate({}, trades=[trade])

        assert report.is_valid
        assert len(report.warnings) == 1
        assert "tradeDate" in report.warnings[0].message

    def test_to_dict(self, validator, make_trade) -> None:
        data = validator.validate({"AAPL": [open_cycle(make_trade)]}).to_dict()

        assert data["is_valid"] is True
        assert data["summary"]["total_cycles"] == 1


class TestSplitShareSale:
    def test_sale_shared_by_two_cycles_is_valid(self, validator, make_trade) -> None:
        trades = [
            make_trade("1", when="2025-01-15", strike=190.0),
            make_trade("2", when="2025-01-16", strike=185.0),
            make_trade("3", kind="stock", side="BUY", quantity=100, price=190.0,
                       when="2025-02-21"),
            make_trade("4", kind="stock", side="BUY", quantity=100, price=185.0,
                       when="2025-02-21"),
            make_trade("5", kind="stock", side="SELL", quantity=200, price=200.0,
                       when="2025-03-03"),
        ]
        cycles = CycleReconstructor(as_of=datetime(2025, 3, 5)).reconstruct(trades).cycles_by_symbol

        report = validator.validate(cycles)

        assert report.is_valid
