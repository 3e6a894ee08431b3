"""Custom exceptions for wheel cycle operations."""


class WheelError(Exception):
    """Base exception for wheel operations."""

    pass


class InvalidTransitionError(WheelError):
    """Event not allowed in the cycle's current state."""

    pass

