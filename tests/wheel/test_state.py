"""Tests for the wheel cycle state machine."""

import pytest

from src.wheel.exceptions import InvalidTransitionError, WheelError
from src.wheel.state import (
    CLOSING_CYCLE_TYPES,
    VALID_TRANSITIONS,
    CycleEvent,
    CycleState,
    CycleType,
    can_transition,
    get_next_state,
    get_valid_events,
)


class TestCycleStateEnums:
    """Tests for state machine enums."""

    def test_states_exist(self) -> None:
        """All expected states should exist."""
        assert CycleState.NO_POSITION.value == "no_position"
        assert CycleState.PUT_OPEN.value == "put_open"
        assert CycleState.SHARES_HELD.value == "shares_held"
        assert CycleState.CALL_OPEN.value == "call_open"
        assert CycleState.CLOSED.value == "closed"

    def test_cycle_types(self) -> None:
        assert CycleType.PUT_EXPIRED.value == "put-expired"
        assert CycleType.PUT_ASSIGNED_CALL_EXPIRED.value == "put-assigned-call-expired"
        assert CycleType.PUT_ASSIGNED_CALL_ASSIGNED.value == "put-assigned-call-assigned"

    def test_every_state_has_transition_entry(self) -> None:
        assert set(VALID_TRANSITIONS) == set(CycleState)


class TestStateTransitions:
    """Tests for state transition logic."""

    def test_no_position_only_allows_put_sale(self) -> None:
        assert get_valid_events(CycleState.NO_POSITION) == [CycleEvent.SELL_PUT]

    def test_put_open_events(self) -> None:
        events = get_valid_events(CycleState.PUT_OPEN)
        assert CycleEvent.PUT_EXPIRED in events
        assert CycleEvent.PUT_CLOSED in events
        assert CycleEvent.PUT_ASSIGNED in events

    def test_closed_is_terminal(self) -> None:
        """CLOSED should accept no events."""
        assert get_valid_events(CycleState.CLOSED) == []
        for event in CycleEvent:
            assert not can_transition(CycleState.CLOSED, event)

    @pytest.mark.parametrize(
        "state,event,expected",
        [
            (CycleState.NO_POSITION, CycleEvent.SELL_PUT, CycleState.PUT_OPEN),
            (CycleState.PUT_OPEN, CycleEvent.PUT_EXPIRED, CycleState.CLOSED),
            (CycleState.PUT_OPEN, CycleEvent.PUT_CLOSED, CycleState.CLOSED),
            (CycleState.PUT_OPEN, CycleEvent.PUT_ASSIGNED, CycleState.SHARES_HELD),
            (CycleState.SHARES_HELD, CycleEvent.SELL_CALL, CycleState.CALL_OPEN),
            (CycleState.SHARES_HELD, CycleEvent.SHARES_SOLD, CycleState.CLOSED),
            (CycleState.CALL_OPEN, CycleEvent.SELL_CALL, CycleState.CALL_OPEN),
            (CycleState.CALL_OPEN, CycleEvent.CALL_CLOSED, CycleState.SHARES_HELD),
            (CycleState.CALL_OPEN, CycleEvent.CALL_EXPIRED, CycleState.CLOSED),
            (CycleState.CALL_OPEN, CycleEvent.CALL_ASSIGNED, CycleState.CLOSED),
        ],
    )
    def test_valid_transitions(
        self, state: CycleState, event: CycleEvent, expected: CycleState
    ) -> None:
        assert can_transition(state, event)
        assert get_next_state(state, event) == expected

    def test_invalid_transition_raises(self) -> None:
        """Undefined pairs should raise InvalidTransitionError."""
        with pytest.raises(InvalidTransitionError, match="sell_call"):
            get_next_state(CycleState.PUT_OPEN, CycleEvent.SELL_CALL)

    def test_invalid_transition_is_wheel_error(self) -> None:
        with pytest.raises(WheelError):
            get_next_state(CycleState.CLOSED, CycleEvent.SELL_PUT)

    def test_every_closing_transition_has_cycle_type(self) -> None:
        for state, transitions in VALID_TRANSITIONS.items():
            for event, target in transitions.items():
                if target == CycleState.CLOSED:
                    assert event in CLOSING_CYCLE_TYPES
