"""
Currency helpers. All money is Decimal with two minor-unit places.
"""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """
    Rounds a number to cents using round-half-up.
    Floats are converted through str() to avoid binary artefacts.
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def floor_points(value: Decimal) -> int:
    """
    Floors a (non-negative) Decimal to a whole number of points.
    """
    return int(value.to_integral_value(rounding=ROUND_FLOOR))
