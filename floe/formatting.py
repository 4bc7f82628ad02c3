"""Display formatting for fixed-point ledger values."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from .fixedpoint import DECIMAL_CONTEXT, WAD, to_decimal

INFINITY = "∞"
PLACEHOLDER = "--"

# Health factors at or above this are shown as infinite.
HF_INFINITY_THRESHOLD = 1_000_000 * WAD


def _quantize(value: Decimal, precision: int) -> Decimal:
    return value.quantize(
        Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP, context=DECIMAL_CONTEXT
    )


def format_money(value: int, decimals: int = 6, precision: int = 2) -> str:
    """``1234560000`` (6 dp) → ``"$1,234.56"``."""
    amount = _quantize(to_decimal(value, decimals), precision)
    return f"${amount:,.{precision}f}"


def format_token(value: int, decimals: int, precision: int = 4) -> str:
    """Grouped token amount with at most ``precision`` fractional digits."""
    amount = _quantize(to_decimal(value, decimals), precision)
    text = f"{amount:,.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_percent(value_wad: int, precision: int = 2) -> str:
    """WAD ratio → percentage, e.g. ``5 * 10**16`` → ``"5.00%"``."""
    pct = _quantize(DECIMAL_CONTEXT.multiply(to_decimal(value_wad, 18), 100), precision)
    return f"{pct:.{precision}f}%"


def format_utilization(value_wad: int) -> str:
    return format_percent(value_wad, precision=2)


def format_health_factor(value: int | None) -> str:
    """Render a WAD health factor; zero debt or huge values are infinite."""
    if value is None:
        return PLACEHOLDER
    if value == 0 or value >= HF_INFINITY_THRESHOLD:
        return INFINITY
    hf = to_decimal(value, 18)
    precision = 1 if hf >= 10 else 2
    return f"{_quantize(hf, precision):.{precision}f}"


def format_price(value: float | None) -> str:
    if value is None:
        return PLACEHOLDER
    return f"${value:,.2f}"
