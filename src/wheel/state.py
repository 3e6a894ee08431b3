"""State machine enums for wheel cycles."""

from enum import Enum


class CycleState(Enum):
    """
    State machine for a single wheel cycle.

    A cycle opens on a put sale and walks through share ownership and
    covered calls until the shares are called away or an option lapses:
    - NO_POSITION: Nothing sold yet (initial)
    - PUT_OPEN: Sold put, awaiting expiration or assignment
    - SHARES_HELD: Put assigned, holding shares, can sell calls
    - CALL_OPEN: Sold covered call, awaiting expiration or assignment
    - CLOSED: Terminal, cycle outcome resolved
    """

    NO_POSITION = "no_position"
    PUT_OPEN = "put_open"
    SHARES_HELD = "shares_held"
    CALL_OPEN = "call_open"
    CLOSED = "closed"


class CycleEvent(Enum):
    """Events that drive a cycle between states."""

    SELL_PUT = "sell_put"
    PUT_EXPIRED = "put_expired"
    PUT_CLOSED = "put_closed"  # Bought back before expiration
    PUT_ASSIGNED = "put_assigned"  # Shares bought at the strike
    SELL_CALL = "sell_call"
    CALL_CLOSED = "call_closed"  # Bought back before expiration
    CALL_EXPIRED = "call_expired"
    CALL_ASSIGNED = "call_assigned"  # Shares sold at the strike
    SHARES_SOLD = "shares_sold"  # Shares sold without an open call


class CycleStatus(Enum):
    """Lifecycle status exposed on a cycle."""

    ACTIVE = "active"
    COMPLETED = "completed"


class CycleType(Enum):
    """How a completed cycle resolved."""

    PUT_EXPIRED = "put-expired"
    PUT_ASSIGNED_CALL_EXPIRED = "put-assigned-call-expired"
    PUT_ASSIGNED_CALL_ASSIGNED = "put-assigned-call-assigned"


# Valid state transitions for the wheel cycle state machine
VALID_TRANSITIONS: dict[CycleState, dict[CycleEvent, CycleState]] = {
    CycleState.NO_POSITION: {
        CycleEvent.SELL_PUT: CycleState.PUT_OPEN,
    },
    CycleState.PUT_OPEN: {
        CycleEvent.PUT_EXPIRED: CycleState.CLOSED,
        CycleEvent.PUT_CLOSED: CycleState.CLOSED,
        CycleEvent.PUT_ASSIGNED: CycleState.SHARES_HELD,
    },
    CycleState.SHARES_HELD: {
        CycleEvent.SELL_CALL: CycleState.CALL_OPEN,
        CycleEvent.SHARES_SOLD: CycleState.CLOSED,
    },
    CycleState.CALL_OPEN: {
        CycleEvent.SELL_CALL: CycleState.CALL_OPEN,  # Roll to a new contract
        CycleEvent.CALL_CLOSED: CycleState.SHARES_HELD,
        CycleEvent.CALL_EXPIRED: CycleState.CLOSED,
        CycleEvent.CALL_ASSIGNED: CycleState.CLOSED,
    },
    CycleState.CLOSED: {},
}

# Cycle type recorded when a transition lands in CLOSED
CLOSING_CYCLE_TYPES: dict[CycleEvent, CycleType] = {
    CycleEvent.PUT_EXPIRED: CycleType.PUT_EXPIRED,
    CycleEvent.PUT_CLOSED: CycleType.PUT_EXPIRED,
    CycleEvent.CALL_EXPIRED: CycleType.PUT_ASSIGNED_CALL_EXPIRED,
    CycleEvent.CALL_ASSIGNED: CycleType.PUT_ASSIGNED_CALL_ASSIGNED,
    CycleEvent.SHARES_SOLD: CycleType.PUT_ASSIGNED_CALL_ASSIGNED,
}


def get_valid_events(state: CycleState) -> list[CycleEvent]:
    """Get list of valid events from a given state."""
    return list(VALID_TRANSITIONS.get(state, {}).keys())


def can_transition(from_state: CycleState, event: CycleEvent) -> bool:
    """Check if a transition is valid from the current state."""
    return event in VALID_TRANSITIONS.get(from_state, {})


def get_next_state(from_state: CycleState, event: CycleEvent) -> CycleState:
    """
    Get the next state after an event.

    Raises:
        InvalidTransitionError: If the transition is not valid.
    """
    from .exceptions import InvalidTransitionError

    transitions = VALID_TRANSITIONS.get(from_state, {})
    if event not in transitions:
        valid = [e.value for e in get_valid_events(from_state)]
        raise InvalidTransitionError(
            f"Invalid event '{event.value}' from state '{from_state.value}'. "
            f"Valid events: {valid}"
        )
    return transitions[event]
