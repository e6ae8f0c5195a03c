"""
core/money.py - Decimal helpers for money and quantity fields.

Every money and quantity value in the engine is a Decimal. Values arrive
as int, float, str or Decimal and are normalized here; floats are routed
through str() so 2.5 becomes Decimal("2.5") rather than its binary
approximation.
"""

from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from ..errors.taxonomy import ErrorCode, ValidationError
from .constants import MONEY_PLACES, QUANTITY_PLACES

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any, field_name: str = "value") -> Decimal:
    """
    Convert a numeric input to Decimal.

    Raises:
        ValidationError: if the value is None, a bool, or not numeric.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise ValidationError(
            f"{field_name} must be a number",
            field=field_name,
            actual=value,
        )
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation:
            raise ValidationError(
                f"{field_name} is not a valid number: {value!r}",
                field=field_name,
                actual=value,
            )
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise ValidationError(
            f"{field_name} must be a number",
            field=field_name,
            actual=value,
        )

    if not result.is_finite():
        raise ValidationError(
            f"{field_name} must be finite",
            field=field_name,
            actual=value,
        )
    return result


def optional_decimal(value: Any, field_name: str = "value") -> Optional[Decimal]:
    """to_decimal() that passes None through."""
    if value is None:
        return None
    return to_decimal(value, field_name)


def quantize(value: Decimal, places: int) -> Decimal:
    """
    Round half-up to a fixed number of decimal places.

    Raises:
        ValidationError: if the rounded value does not fit the Decimal
            context precision.
    """
    exponent = Decimal(1).scaleb(-places)
    try:
        return value.quantize(exponent, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(
            f"Value {value} is too large to round to {places} places",
            code=ErrorCode.VAL_OUT_OF_RANGE,
            actual=value,
        )


def money(value: Decimal, places: int = MONEY_PLACES) -> Decimal:
    """Round a money amount (cents by default)."""
    return quantize(value, places)


def quantity(value: Decimal, places: int = QUANTITY_PLACES) -> Decimal:
    """Round a quantity or derived dimension."""
    return quantize(value, places)


def decimal_str(value: Optional[Decimal]) -> Optional[str]:
    """Serialize a Decimal for JSON output."""
    if value is None:
        return None
    return str(value)
