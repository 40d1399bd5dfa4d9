"""Currency helpers: every amount is a Decimal with two places."""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

CENT = Decimal("0.01")
DEFAULT_TOLERANCE = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Coerce DB/JSON values (None, str, int, float, Decimal) to Decimal."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so floats keep their printed value (0.1 -> '0.1')
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid amount: {value!r}")


def quantize(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def amounts_match(expected, submitted, tolerance=DEFAULT_TOLERANCE) -> bool:
    """True when the two amounts differ by at most ``tolerance``."""
    return abs(to_decimal(expected) - to_decimal(submitted)) <= to_decimal(tolerance)


def as_float(value):
    """JSON-friendly float for responses; None stays None."""
    if value is None:
        return None
    return float(to_decimal(value))
