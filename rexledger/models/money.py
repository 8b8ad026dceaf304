"""
Money Conversion

Amounts cross the API as Decimal with two fractional digits and are
stored and propagated as integer cents. Conversions happen only here,
so no float ever touches a balance.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

CENT = Decimal("0.01")

# Largest single amount; keeps cent counts well inside a 64-bit INTEGER
MAX_AMOUNT = Decimal("1000000000000.00")


def parse_amount(value: Union[str, int, Decimal]) -> Decimal:
    """
    Parse user input into a Decimal.

    Raises ValueError for anything that is not a finite number.
    Floats are refused: they cannot represent most cent values exactly.
    """
    if isinstance(value, float):
        raise ValueError("Amounts must be given as str, int or Decimal, not float")
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value).strip()) if not isinstance(value, Decimal) else value
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


def has_cent_precision(amount: Decimal) -> bool:
    """True when the amount has no digits beyond the second decimal place."""
    return amount == amount.quantize(CENT)


def to_cents(amount: Decimal) -> int:
    """Convert a two-place Decimal to integer cents (exact)."""
    if not has_cent_precision(amount):
        raise ValueError(f"Amount {amount} has more than two decimal places")
    return int(amount.quantize(CENT).scaleb(2))


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a two-place Decimal."""
    return Decimal(int(cents)).scaleb(-2).quantize(CENT)


def format_amount(amount: Decimal) -> str:
    """Format for display, e.g. Decimal('-159') -> '-159.00'."""
    return f"{amount.quantize(CENT):.2f}"
