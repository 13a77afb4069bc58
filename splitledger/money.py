"""
Money Utilities

All monetary amounts are fixed-point Decimal with two fractional digits.
Remote payloads deliver amounts as numbers or strings; they are converted
through str() so binary float noise never enters the ledger.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyLike = Union[Decimal, int, float, str, None]


def to_money(value: MoneyLike) -> Decimal:
    """
    Convert a raw amount to a two-place Decimal.

    None and empty strings become zero. Anything else that cannot be
    parsed raises ValueError.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(amounts: Iterable[MoneyLike]) -> Decimal:
    """Exact sum of amounts, quantized to cents."""
    total = ZERO
    for amount in amounts:
        total += to_money(amount)
    return total.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount: MoneyLike, symbol: str = "$") -> str:
    """Format an amount for display, e.g. ``$1,234.50`` or ``-$5.00``."""
    value = to_money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"
