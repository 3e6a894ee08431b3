"""Data validation utilities."""

import logging
import math
from typing import Any

logger = logging.getLogger(__name__)


def to_finite_float(value: Any) -> float:
    """
    Coerce a raw attribute value to a finite float.

    Broker exports carry numbers as strings, sometimes with thousands
    separators ("1,250.00").

    Args:
        value: Raw value (string or number)

    Returns:
        The parsed float

    Raises:
        ValueError: If the value is empty, not numeric, NaN or infinite
    """
    if value is None:
        raise ValueError("value is missing")

    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            raise ValueError("value is empty")
    else:
        text = value

    try:
        number = float(text)
    except (TypeError, ValueError) as e:
        raise ValueError(f"not a number: {value!r}") from e

    if math.isnan(number) or math.isinf(number):
        raise ValueError(f"not a finite number: {value!r}")

    return number


def is_blank(value: Any) -> bool:
    """True when an attribute is absent or whitespace only."""
    return value is None or (isinstance(value, str) and not value.strip())
