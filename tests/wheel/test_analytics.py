"""Tests for income analytics aggregation."""

from datetime import date, datetime

import pytest

from src.wheel.analytics import AnalyticsAggregator
from src.wheel.cycles import CycleReconstructor


@pytest.fixture
def history(make_trade) -> list:
    """Two AAPL puts (one bought back) and one MSFT put across three weeks."""
    return [
        make_trade("1", when="2025-01-15", commission=1.0),
        make_trade("2", side="BUY", price=1.00, when="2025-01-17", commission=1.0),
        make_trade("3", price=3.00, strike=185.0, when="2025-01-22"),
        make_trade("4", underlying="MSFT", price=2.00, strike=400.0, when="2025-02-03"),
    ]


def aggregate(trades, start=None, end=None):
    cycles = CycleReconstructor(as_of=datetime(2025, 2, 5)).reconstruct(trades).all_cycles
    return AnalyticsAggregator().aggregate(trades, cycles, start, end)


class TestPeriodBuckets:
    """Tests for weekly and monthly bucketing."""

    def test_weeks_start_on_monday(self, history) -> None:
        analytics = aggregate(history)

        assert [b.period_start for b in analytics.weekly] == [
            date(2025, 1, 13),
            date(2025, 1, 20),
            date(2025, 2, 3),
        ]

    def test_weekly_totals(self, history) -> None:
        first = aggregate(history).weekly[0]

        assert first.gross_premium == pytest.approx(550.0)
        assert first.buyback_cost == pytest.approx(100.0)
        assert first.fees == pytest.approx(2.0)
        assert first.net_income == pytest.approx(448.0)
        assert first.trade_count == 2
        assert first.cycles_completed == 1
        assert first.realized_cycle_profit == pytest.approx(448.0)

    def test_active_cycles_count_in_start_period(self, history) -> None:
        weekly = aggregate(history).weekly

        assert weekly[1].cycles_opened == 1
        assert weekly[2].cycles_opened == 1
        assert weekly[0].cycles_opened == 0

    def test_monthly_totals(self, history) -> None:
        monthly = aggregate(history).monthly

        assert [b.period_start for b in monthly] == [date(2025, 1, 1), date(2025, 2, 1)]
        assert monthly[0].gross_premium == pytest.approx(850.0)
        assert monthly[0].trade_count == 3
        assert monthly[1].gross_premium == pytest.approx(200.0)

    def test_stock_trades_are_ignored(self, make_trade) -> None:
        trades = [make_trade("1", kind="stock", side="BUY", quantity=100, price=190.0)]

        analytics = AnalyticsAggregator().aggregate(trades, [])

        assert analytics.weekly == []
        assert analytics.by_symbol == {}
        assert analytics.total_income == 0.0


class TestSymbolRollups:
    def test_per_symbol_income(self, history) -> None:
        aapl = aggregate(history).by_symbol["AAPL"]

        assert aapl.total_premium == pytest.approx(850.0)
        assert aapl.buyback_cost == pytest.approx(100.0)
        assert aapl.net_income == pytest.approx(748.0)
        assert aapl.average_premium == pytest.approx(425.0)
        assert aapl.completed_cycles == 1
        assert aapl.active_cycles == 1
        assert aapl.win_rate == 1.0

    def test_win_rate_without_completed_cycles(self, make_trade) -> None:
        """No completed cycles means a win rate of 0, not a division error."""
        analytics = aggregate([make_trade("1")])

        assert analytics.by_symbol["AAPL"].completed_cycles == 0
        assert analytics.by_symbol["AAPL"].win_rate == 0.0
        assert analytics.win_rate == 0.0

    def test_portfolio_totals(self, history) -> None:
        analytics = aggregate(history)

        assert analytics.total_income == pytest.approx(948.0)
        assert analytics.win_rate == 1.0


class TestTrends:
    def test_growth_between_last_periods(self, history) -> None:
        trends = aggregate(history).trends

        assert trends.weekly_growth == pytest.approx((200.0 - 300.0) / 300.0)
        assert trends.monthly_growth == pytest.approx((200.0 - 748.0) / 748.0)
        assert trends.best_performing_symbol == "AAPL"
        assert trends.worst_performing_symbol == "MSFT"

    def test_single_period_has_no_growth(self, make_trade) -> None:
        trends = aggregate([make_trade("1")]).trends

        assert trends.weekly_growth == 0.0
        assert trends.monthly_growth == 0.0


class TestDateRange:
    def test_start_bound_is_inclusive(self, history) -> None:
        analytics = aggregate(history, start=date(2025, 1, 22))

        assert [b.period_start for b in analytics.weekly] == [
            date(2025, 1, 20),
            date(2025, 2, 3),
        ]
        assert analytics.by_symbol["AAPL"].completed_cycles == 0
        assert analytics.by_symbol["AAPL"].total_premium == pytest.approx(300.0)

    def test_end_bound_accepts_datetimes(self, history) -> None:
        analytics = aggregate(history, end=datetime(2025, 1, 31, 23, 59))

        assert "MSFT" not in analytics.by_symbol
        assert len(analytics.monthly) == 1

    def test_to_dict_is_json_ready(self, history) -> None:
        data = aggregate(history).to_dict()

        assert data["weekly"][0]["period_start"] == "2025-01-13"
        assert data["by_symbol"]["MSFT"]["total_premium"] == pytest.approx(200.0)
