"""
bom_quantity.py

Exact decimal arithmetic for BOM quantities and costs.

Every quantity-per-unit, requested quantity and cost flows through
``decimal.Decimal`` in a dedicated context that traps ``Inexact``: a result
that would need rounding fails instead of silently losing precision.
"""

from decimal import Context, Decimal, Inexact, InvalidOperation, Overflow, DivisionByZero
from typing import Union

from bom_errors import InvalidNumber, InvalidQuantity


QuantityLike = Union[str, int, Decimal]

# 200 significant digits comfortably covers deep multiplicative rollups.
QUANTITY_CONTEXT = Context(
    prec=200,
    traps=[Inexact, InvalidOperation, Overflow, DivisionByZero],
)

ZERO = Decimal(0)
ONE = Decimal(1)


# ---------- Parsing / Formatting ----------

def parse_quantity(value: QuantityLike, field: str = "quantity") -> Decimal:
    """
    Parse a textual (or integral) decimal into an exact ``Decimal``.

    Binary floats are refused: they are already rounded. Commas are refused
    too; "1,000" and "2,5" are ambiguous, so files with a decimal comma are
    converted where they are read.

    Raises:
        InvalidNumber: when the value is not a well-formed finite decimal.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidNumber(value, field)

    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text or "," in text:
            raise InvalidNumber(value, field)
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            raise InvalidNumber(value, field) from None
    else:
        raise InvalidNumber(value, field)

    if not parsed.is_finite():
        raise InvalidNumber(value, field)
    return parsed


def format_quantity(value: Decimal) -> str:
    """Canonical text: no exponent, no trailing fractional zeros, "0" for zero."""
    if value == 0:
        return "0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def positive_quantity(value: QuantityLike, field: str = "quantity") -> Decimal:
    """Parse and require a value strictly greater than zero."""
    parsed = parse_quantity(value, field)
    if parsed <= 0:
        raise InvalidQuantity(f"{field} must be positive, got {format_quantity(parsed)}", field, parsed)
    return parsed


def non_negative_quantity(value: QuantityLike, field: str = "cost") -> Decimal:
    """Parse and require a value greater than or equal to zero."""
    parsed = parse_quantity(value, field)
    if parsed < 0:
        raise InvalidQuantity(f"{field} must not be negative, got {format_quantity(parsed)}", field, parsed)
    return parsed


# ---------- Arithmetic ----------

def _exact(operation, *args) -> Decimal:
    try:
        return operation(*args)
    except (Inexact, Overflow) as exc:
        raise InvalidQuantity(
            f"result cannot be represented exactly ({type(exc).__name__})",
            "quantity",
            None,
        ) from exc


def add(a: Decimal, b: Decimal) -> Decimal:
    return _exact(QUANTITY_CONTEXT.add, a, b)


def multiply(a: Decimal, b: Decimal) -> Decimal:
    return _exact(QUANTITY_CONTEXT.multiply, a, b)


def total(values) -> Decimal:
    """Exact sum of an iterable of decimals (``ZERO`` when empty)."""
    result = ZERO
    for value in values:
        result = add(result, value)
    return result
