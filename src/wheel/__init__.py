"""
Wheel Ledger - Reconstruct options wheel cycles from broker trade history.

This package replays ingested trade confirmations through the wheel cycle
state machine and derives positions, safe strikes, income analytics and
integrity reports from them.

Public API:
    WheelEngine: Main orchestrator for ledger operations
    Trade: A single executed trade confirmation
    WheelCycle: One round of the wheel on a symbol
    Position: Share holdings and cycles for a symbol
    CycleState: State machine states
    CycleEvent: Events that drive the state machine
"""

from .exceptions import InvalidTransitionError, WheelError
from .models import (
    AssetCategory,
    BuySell,
    CashFlow,
    Position,
    PutCall,
    SafeStrikeResult,
    Trade,
    WheelCycle,
)
from .state import (
    VALID_TRANSITIONS,
    CycleEvent,
    CycleState,
    CycleStatus,
    CycleType,
    can_transition,
    get_next_state,
    get_valid_events,
)

__all__ = [
    # Core classes
    "Trade",
    "WheelCycle",
    "Position",
    "CashFlow",
    "SafeStrikeResult",
    "AssetCategory",
    "BuySell",
    "PutCall",
    # State machine
    "CycleState",
    "CycleEvent",
    "CycleStatus",
    "CycleType",
    "VALID_TRANSITIONS",
    "can_transition",
    "get_next_state",
    "get_valid_events",
    # Exceptions
    "WheelError",
    "InvalidTransitionError",
]


# Deferred imports: the engine depends on src.flex, which imports .models
def __getattr__(name: str):
    """Lazy import for the engine and its collaborators."""
    if name == "WheelEngine":
        from .engine import WheelEngine
        return WheelEngine
    if name == "CycleReconstructor":
        from .cycles import CycleReconstructor
        return CycleReconstructor
    if name == "PositionReconciler":
        from .positions import PositionReconciler
        return PositionReconciler
    if name == "calculate_safe_strike":
        from .safe_strike import calculate_safe_strike
        return calculate_safe_strike
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
