"""Fixed-point arithmetic across decimal bases — pure functions, no I/O.

Amounts that the user must *supply* are rounded up; amounts that the user may
*take* are truncated, so that advertised figures never beat the ledger.
"""
from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_FLOOR, Context, Decimal, InvalidOperation

from .errors import InvalidBase
from .models import Quantity

WAD = 10**18
BPS_DENOMINATOR = 10_000
ADAPTER_DECIMALS = 8

# ERC-20 "infinite" approval: the maximum uint256.
UNLIMITED_ALLOWANCE = 2**256 - 1

# Wide enough for any uint256 so Decimal never rounds silently.
DECIMAL_CONTEXT = Context(prec=100)


def ceil_div(numerator: int, denominator: int) -> int:
    """Integer division rounding towards positive infinity.

    Only defined for a non-negative numerator and a positive denominator.
    """
    if denominator <= 0:
        raise ValueError(f"denominator must be positive, got {denominator}")
    if numerator < 0:
        raise ValueError(f"numerator must be non-negative, got {numerator}")
    return (numerator + denominator - 1) // denominator


def rebase(quantity: Quantity, target_decimals: int, round_up: bool) -> Quantity:
    """Express ``quantity`` in ``target_decimals`` fractional digits.

    Scaling up is exact. Scaling down either truncates or, with ``round_up``,
    rounds towards positive infinity.
    """
    source = quantity.decimals
    if source < 0 or target_decimals < 0:
        raise InvalidBase(
            f"decimal bases must be non-negative (got {source} -> {target_decimals})"
        )

    if target_decimals >= source:
        return Quantity(quantity.amount * 10 ** (target_decimals - source), target_decimals)

    divisor = 10 ** (source - target_decimals)
    if round_up:
        amount = ceil_div(quantity.amount, divisor)
    else:
        amount = quantity.amount // divisor
    return Quantity(amount, target_decimals)


def scale_float(value: float, decimals: int) -> int:
    """Return ``floor(value * 10**decimals)`` without binary float error.

    ``145.67 * 1e8`` evaluates to ``14566999999.999998`` in binary floating
    point; going through the shortest decimal repr gives ``14567000000``.
    """
    if decimals < 0:
        raise InvalidBase(f"decimal base must be non-negative, got {decimals}")
    scaled = Decimal(repr(value)).scaleb(decimals, context=DECIMAL_CONTEXT)
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def to_float(raw: int, decimals: int) -> float:
    """Render a fixed-point integer as a float (display/logging only)."""
    return raw / (10**decimals)


def to_decimal(raw: int, decimals: int) -> Decimal:
    """Exact decimal value of a fixed-point integer."""
    return Decimal(raw).scaleb(-decimals, context=DECIMAL_CONTEXT)


def parse_units(text: str | None, decimals: int) -> int:
    """Parse a human amount (``"12.5"``) into integer units.

    Empty input or zero parses to ``0``. Fractional digits beyond ``decimals``
    are truncated.
    """
    if text is None or not text.strip():
        return 0
    try:
        value = Decimal(text.strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {text!r}") from None
    if not value.is_finite():
        raise ValueError(f"Not a finite number: {text!r}")
    if value < 0:
        raise ValueError(f"Amount must be non-negative: {text!r}")
    if value == 0:
        return 0
    scaled = value.scaleb(decimals, context=DECIMAL_CONTEXT)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))
