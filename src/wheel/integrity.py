"""
Cycle integrity validation.

Checks reconstructed cycles against their invariants and cross-checks
share counts with the position reconciler. Problems are reported, never
raised, so a caller can surface data quality issues next to results.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from .cycles import trade_sort_key
from .models import Position, Trade, WheelCycle

logger = logging.getLogger(__name__)

AMOUNT_TOLERANCE = 0.01
SHARE_TOLERANCE = 1e-6


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class IntegrityIssue:
    """One problem found on a cycle or trade."""

    cycle_id: Optional[str]
    symbol: str
    severity: Severity
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle_id": self.cycle_id,
            "symbol": self.symbol,
            "severity": self.severity.value,
            "message": self.message,
        }


@dataclass
class IntegritySummary:
    total_cycles: int = 0
    valid_cycles: int = 0
    invalid_cycles: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_cycles": self.total_cycles,
            "valid_cycles": self.valid_cycles,
            "invalid_cycles": self.invalid_cycles,
        }


@dataclass
class IntegrityReport:
    """Result of validating a set of cycles."""

    issues: list[IntegrityIssue] = field(default_factory=list)
    summary: IntegritySummary = field(default_factory=IntegritySummary)

    @property
    def is_valid(self) -> bool:
        """True when no error-severity issue was found. Warnings do not count."""
        return not any(i.severity == Severity.ERROR for i in self.issues)

    @property
    def errors(self) -> list[IntegrityIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[IntegrityIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "issues": [i.to_dict() for i in self.issues],
            "summary": self.summary.to_dict(),
        }


class IntegrityValidator:
    """Validates reconstructed cycles."""

    def validate(
        self,
        cycles_by_symbol: dict[str, list[WheelCycle]],
        positions: Optional[dict[str, Position]] = None,
        trades: Iterable[Trade] = (),
    ) -> IntegrityReport:
        """
        Run every check over the given cycles.

        Args:
            cycles_by_symbol: Reconstructed cycles
            positions: Reconciled positions for the share cross-check
            trades: Full trade set, scanned for date fallbacks

        Returns:
            IntegrityReport
        """
        report = IntegrityReport()
        seen_trades: dict[str, str] = {}

        for symbol in sorted(cycles_by_symbol):
            for cycle in cycles_by_symbol[symbol]:
                problems = self._check_cycle(cycle, seen_trades)
                report.issues.extend(problems)
                report.summary.total_cycles += 1
                if any(p.severity == Severity.ERROR for p in problems):
                    report.summary.invalid_cycles += 1
                else:
                    report.summary.valid_cycles += 1

        if positions is not None:
            report.issues.extend(self._check_shares(cycles_by_symbol, positions))

        for trade in trades:
            if trade.has_date_fallback:
                report.issues.append(
                    IntegrityIssue(
                        cycle_id=None,
                        symbol=trade.underlying_symbol,
                        severity=Severity.WARNING,
                        message=(
                            f"Trade {trade.trade_id} has unparseable "
                            f"{', '.join(trade.date_fallbacks)}; current time was used"
                        ),
                    )
                )

        if not report.is_valid:
            logger.warning(
                f"Cycle integrity check found {len(report.errors)} errors "
                f"in {report.summary.invalid_cycles} cycles"
            )
        return report

    # Private helper methods

    def _check_cycle(
        self, cycle: WheelCycle, seen_trades: dict[str, str]
    ) -> list[IntegrityIssue]:
        issues: list[IntegrityIssue] = []

        def error(message: str) -> None:
            issues.append(IntegrityIssue(cycle.id, cycle.symbol, Severity.ERROR, message))

        if cycle.is_completed:
            if cycle.end_date is None:
                error("Completed cycle has no end date")
            if cycle.cycle_type is None:
                error("Completed cycle has no cycle type")
        elif cycle.end_date is not None:
            error("Active cycle has an end date")

        if cycle.end_date is not None and cycle.end_date < cycle.start_date:
            error(f"End date {cycle.end_date} is before start date {cycle.start_date}")

        leg_premium = sum(t.premium for t in cycle.premium_legs)
        if abs(leg_premium - cycle.total_premium_collected) > AMOUNT_TOLERANCE:
            error(
                f"Premium collected {cycle.total_premium_collected:.2f} does not match "
                f"option sale legs {leg_premium:.2f}"
            )

        if cycle.trades != sorted(cycle.trades, key=trade_sort_key):
            error("Trades are not in chronological order")

        for trade in cycle.trades:
            if trade.is_stock and trade.is_sell:
                # A share sale may be split across the cycles holding the shares
                continue
            owner = seen_trades.setdefault(trade.trade_id, cycle.id)
            if owner != cycle.id:
                error(f"Trade {trade.trade_id} is also attributed to cycle {owner}")

        return issues

    def _check_shares(
        self,
        cycles_by_symbol: dict[str, list[WheelCycle]],
        positions: dict[str, Position],
    ) -> list[IntegrityIssue]:
        issues: list[IntegrityIssue] = []
        for symbol, cycles in sorted(cycles_by_symbol.items()):
            held_by_cycles = sum(c.shares_held for c in cycles if c.is_active)
            position = positions.get(symbol)
            held = position.quantity if position else 0.0
            if held_by_cycles > held + SHARE_TOLERANCE:
                issues.append(
                    IntegrityIssue(
                        cycle_id=None,
                        symbol=symbol,
                        severity=Severity.WARNING,
                        message=(
                            f"Active cycles hold {held_by_cycles:g} shares but the "
                            f"position holds {held:g}"
                        ),
                    )
                )
        return issues
