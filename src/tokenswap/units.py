"""Conversion between human-readable amounts and base units.

Used only at the system boundary (CLI, API, service facade). Core math never
touches ``Decimal`` or ``float``.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Union

HumanAmount = Union[str, int, Decimal]

# uint256 has 78 digits
_PRECISION = 80


def to_base_units(value: HumanAmount, decimals: int) -> int:
    """Parse a human amount into base units.

    Raises:
        ValueError: unparseable, negative, non-finite, or more fractional
            digits than the token supports.
    """
    if isinstance(value, float):
        raise ValueError("floats are not accepted; pass a string or Decimal")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}") from None

    if not amount.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    if amount < 0:
        raise ValueError(f"Amount must not be negative: {value!r}")

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{value!r} has more than {decimals} decimal places")
    return int(scaled)


def from_base_units(amount: int, decimals: int) -> Decimal:
    """Exact inverse of ``to_base_units``."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(amount).scaleb(-decimals)


def format_units(amount: int, decimals: int) -> str:
    """Exact decimal string, always with at least one fractional digit."""
    text = f"{from_base_units(amount, decimals):f}"
    if "." not in text:
        return text + ".0"
    text = text.rstrip("0")
    return text + "0" if text.endswith(".") else text


def display_amount(amount: int, decimals: int, places: int = 6) -> str:
    """Rounded (down) rendering for display. Never feed this back into math."""
    quantum = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        rounded = from_base_units(amount, decimals).quantize(quantum, rounding=ROUND_DOWN)
    return f"{rounded:f}"
