"""Tests for wheel ledger CLI commands."""

import json

import pytest
from click.testing import CliRunner

from src.wheel.cli import cli


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """No user config file, no live quotes, no env overrides."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("FINNHUB_API_KEY", raising=False)
    for name in ("WHEEL_REPORTS_DIR", "WHEEL_VERBOSE", "WHEEL_JSON_OUTPUT", "WHEEL_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def assigned_history(write_export, put_row, reports_dir):
    """An AAPL put sale followed by assignment at the strike."""
    stock = {
        "tradeID": "1002",
        "symbol": "AAPL",
        "assetCategory": "STK",
        "quantity": "100",
        "price": "190",
        "amount": "-19000",
        "commission": "-1",
        "tradeDate": "20250221",
        "buySell": "BUY",
    }
    write_export("trades.xml", put_row(), stock)
    return reports_dir


def invoke(runner: CliRunner, reports_dir, *args: str):
    return runner.invoke(cli, ["--reports-dir", str(reports_dir), *args])


class TestTradesCommand:
    def test_lists_trades(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "trades")

        assert result.exit_code == 0
        assert "1001" in result.output
        assert "1002" in result.output
        assert "2 trades from 1 documents" in result.output

    def test_symbol_filter(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "trades", "--symbol", "msft")

        assert result.exit_code == 0
        assert "No trades found." in result.output

    def test_json(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "--json", "trades")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["ingestion"]["trade_count"] == 2
        assert [t["trade_id"] for t in data["trades"]] == ["1001", "1002"]

    def test_missing_reports_dir(self, runner, tmp_path) -> None:
        result = invoke(runner, tmp_path / "nope", "trades")

        assert result.exit_code == 1
        assert "Error" in result.output


class TestCyclesCommand:
    def test_shows_cycles(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "cycles")

        assert result.exit_code == 0
        assert "=== AAPL-1001 (active, pending) ===" in result.output
        assert "Safe Strike: $184.52" in result.output

    def test_unknown_symbol(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "cycles", "tsla")

        assert result.exit_code == 0
        assert "No cycles found for TSLA." in result.output

    def test_active_filter_and_json(self, runner, write_export, put_row, reports_dir) -> None:
        """A put that expired long ago is completed, so --active hides it."""
        write_export("trades.xml", put_row())

        everything = json.loads(invoke(runner, reports_dir, "--json", "cycles").output)
        active = json.loads(invoke(runner, reports_dir, "--json", "cycles", "--active").output)

        assert [c["cycle_type"] for c in everything] == ["put-expired"]
        assert active == []


class TestPositionsCommand:
    def test_shows_shares(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "positions")

        assert result.exit_code == 0
        assert "=== AAPL ===" in result.output
        assert "Shares:        100" in result.output
        assert "Average Cost:  $190.00" in result.output

    def test_value_without_quotes(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "positions", "--value")

        assert result.exit_code == 0
        assert "(average_cost)" in result.output


class TestSafeStrikeCommand:
    def test_with_price(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "safe-strike", "aapl", "--price", "195.50")

        assert result.exit_code == 0
        assert "Safe Strike:     $190.00" in result.output
        assert "Risk Amount:     $550.00" in result.output

    def test_json(self, runner, assigned_history) -> None:
        result = invoke(
            runner, assigned_history, "--json", "safe-strike", "AAPL", "--price", "195.50"
        )

        data = json.loads(result.output)
        assert data["symbol"] == "AAPL"
        assert data["safe_strike"] == pytest.approx(190.0)

    def test_no_position(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "safe-strike", "TSLA", "--price", "100")

        assert result.exit_code == 1
        assert "No open wheel position" in result.output


class TestAnalyticsCommand:
    def test_summary(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "analytics")

        assert result.exit_code == 0
        assert "Monthly Income" in result.output
        assert "Total Income:    $548.95" in result.output

    def test_start_after_end(self, runner, assigned_history) -> None:
        result = invoke(
            runner, assigned_history, "analytics", "--start", "2025-03-01", "--end", "2025-01-01"
        )

        assert result.exit_code == 1

    def test_json_with_range(self, runner, assigned_history) -> None:
        result = invoke(
            runner, assigned_history, "--json", "analytics", "--start", "2025-02-01"
        )

        assert result.exit_code == 0
        assert json.loads(result.output)["monthly"] == []


class TestValidateCommand:
    def test_clean_history(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "validate")

        assert result.exit_code == 0
        assert "All cycles passed integrity checks" in result.output

    def test_json(self, runner, assigned_history) -> None:
        result = invoke(runner, assigned_history, "--json", "validate")

        assert json.loads(result.output)["is_valid"] is True


class TestGlobalOptions:
    def test_bad_config_file(self, runner, tmp_path) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("- not a mapping\n")

        result = runner.invoke(cli, ["--config-file", str(config), "trades"])

        assert result.exit_code == 1
        assert "Could not load configuration" in result.output
