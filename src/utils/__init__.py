"""Shared utility functions."""

from .date_utils import parse_flex_date, start_of_month, start_of_week
from .validation import is_blank, to_finite_float

__all__ = [
    "parse_flex_date",
    "start_of_month",
    "start_of_week",
    "is_blank",
    "to_finite_float",
]
