"""
Numeric coercion and validation for monetary and percentage inputs.

Every amount that reaches an engine passes through ``to_decimal`` so the
engines only ever see finite ``Decimal`` values.  Floats are accepted at
the boundary and converted through ``str`` to avoid binary artefacts
(``0.1`` becomes ``Decimal("0.1")``, not ``Decimal("0.1000000000000000055...")``).
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from procure_kernel.exceptions import ValidationError


def to_decimal(field: str, value: Any) -> Decimal:
    """
    Convert ``value`` to a finite Decimal.

    Raises:
        ValidationError: bool, unsupported type, unparseable string,
            NaN or infinity.
    """
    if isinstance(value, bool):
        raise ValidationError(field, value, "boolean is not a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValidationError(field, value, "not a number") from exc
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise ValidationError(field, value, f"unsupported type {type(value).__name__}")

    if not result.is_finite():
        raise ValidationError(field, value, "must be finite")
    return result


def to_non_negative_decimal(field: str, value: Any) -> Decimal:
    """Convert ``value`` to a finite Decimal that is >= 0."""
    result = to_decimal(field, value)
    if result < 0:
        raise ValidationError(field, value, "must not be negative")
    return result


def to_positive_decimal(field: str, value: Any) -> Decimal:
    """Convert ``value`` to a finite Decimal that is > 0."""
    result = to_decimal(field, value)
    if result <= 0:
        raise ValidationError(field, value, "must be greater than zero")
    return result


def to_non_negative_int(field: str, value: Any) -> int:
    """Validate a count: a plain int (not bool) that is >= 0."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, value, "must be an integer")
    if value < 0:
        raise ValidationError(field, value, "must not be negative")
    return value
