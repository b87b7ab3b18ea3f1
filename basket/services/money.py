"""
Money Utilities - exact arithmetic for cart prices.

Prices enter the cart as decimals (whatever the price source returns), are
converted once to scaled integers (minor units) and are only ever added and
multiplied as integers afterwards. Conversion back to Decimal happens at the
read boundary.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Number = Union[str, int, float, Decimal]


def to_decimal(value: Number) -> Decimal:
    """
    Convert a price to Decimal.

    Args:
        value: Value to convert (str, int, float or Decimal)

    Returns:
        Decimal representation of the value

    Raises:
        ValueError: value is None, of another type, unparseable or not finite
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError(f"price must be a number, got {type(value).__name__}")
    else:
        try:
            # Floats go through str to avoid binary precision noise
            result = Decimal(value.strip() if isinstance(value, str) else str(value))
        except InvalidOperation:
            raise ValueError(f"price is not a number: {value!r}")

    if not result.is_finite():
        raise ValueError(f"price must be finite, got {value!r}")
    return result


def to_minor_units(value: Number, scale: int) -> int:
    """
    Convert a decimal amount to scaled-integer minor units.

    Args:
        value: Amount in major units (e.g., 100.50)
        scale: Minor units per major unit (e.g., 100 for cents)

    Returns:
        round(value * scale) as int, rounding half up (e.g., 10050)
    """
    decimal_value = to_decimal(value)
    return int((decimal_value * scale).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(minor: int, scale: int) -> Decimal:
    """
    Convert minor units back to a decimal amount.

    Args:
        minor: Amount in minor units (e.g., 10050)
        scale: Minor units per major unit

    Returns:
        Amount in major units as Decimal (e.g., 100.50)
    """
    return Decimal(minor) / Decimal(scale)


def multiply_minor(unit_minor: int, count: int) -> int:
    """Line total for ``count`` units, kept in the integer domain."""
    return unit_minor * count
