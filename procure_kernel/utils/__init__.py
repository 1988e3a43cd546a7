"""Utility modules for the procurement kernel."""

from procure_kernel.utils.numeric import (
    to_decimal,
    to_non_negative_decimal,
    to_non_negative_int,
    to_positive_decimal,
)

__all__ = [
    "to_decimal",
    "to_non_negative_decimal",
    "to_positive_decimal",
    "to_non_negative_int",
]
