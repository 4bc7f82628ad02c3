"""Allowance gate — does a pending spend need a fresh approval?"""
from __future__ import annotations

from ..models import Quantity


def _amount(value: Quantity | int) -> int:
    return value.amount if isinstance(value, Quantity) else value


def needs_approval(spend: Quantity | int, granted: Quantity | int) -> bool:
    """True iff something is being spent and the granted ceiling is below it.

    Both operands are in the same asset's base, so no rebasing happens here.
    """
    if (
        isinstance(spend, Quantity)
        and isinstance(granted, Quantity)
        and spend.decimals != granted.decimals
    ):
        raise ValueError("spend and allowance must share a decimal base")
    spend_amount = _amount(spend)
    return spend_amount > 0 and _amount(granted) < spend_amount
