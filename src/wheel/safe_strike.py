"""Safe strike and breakeven calculation."""

from .models import SafeStrikeResult

SHARES_PER_CONTRACT = 100


def calculate_safe_strike(price: float, total_premium_collected: float) -> SafeStrikeResult:
    """
    Compute the lowest strike at which a position still breaks even.

    Premium collected over the life of the position lowers the effective
    cost of one contract's worth of shares.

    Args:
        price: Reference share price (current or cost basis)
        total_premium_collected: Premium collected, in dollars

    Returns:
        SafeStrikeResult

    Example:
        >>> calculate_safe_strike(195.50, 550).safe_strike
        190.0
    """
    safe_strike = price - total_premium_collected / SHARES_PER_CONTRACT
    return SafeStrikeResult(
        safe_strike=safe_strike,
        break_even_price=safe_strike,
        premium_buffer=total_premium_collected,
        risk_amount=max(0.0, (price - safe_strike) * SHARES_PER_CONTRACT),
    )
