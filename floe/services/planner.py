"""Collateral planner — how much collateral a desired borrow needs."""
from __future__ import annotations

from ..config import MarketConfig
from ..errors import InvalidConfig
from ..fixedpoint import BPS_DENOMINATOR, ceil_div, rebase
from ..models import (
    BorrowPlan,
    CollateralRequirement,
    PriceQuote,
    Quantity,
    RawReads,
)

SECONDS_PER_DAY = 24 * 60 * 60


def plan_collateral(
    desired_borrow: Quantity,
    ltv_bps: int,
    price: PriceQuote | None,
    collateral_decimals: int,
) -> CollateralRequirement:
    """Collateral value and token amount needed to borrow ``desired_borrow``.

    Every step rounds up, so the requirement is never below what the ledger
    will demand. Without a usable price the token amount is zero (planning is
    suspended) while the value is still reported.

    Raises:
        InvalidConfig: ``ltv_bps`` is not positive.
    """
    if ltv_bps <= 0:
        raise InvalidConfig(f"Loan-to-value must be positive, got {ltv_bps} bps")

    stable_decimals = desired_borrow.decimals
    zero_amount = Quantity(0, collateral_decimals)
    if desired_borrow.is_zero:
        return CollateralRequirement(value=Quantity(0, stable_decimals), amount=zero_amount)

    value = Quantity(
        ceil_div(desired_borrow.amount * BPS_DENOMINATOR, ltv_bps), stable_decimals
    )
    if price is None or price.raw <= 0:
        return CollateralRequirement(value=value, amount=zero_amount)

    value_in_oracle_base = rebase(value, price.decimals, round_up=True)
    amount = ceil_div(value_in_oracle_base.amount * 10**collateral_decimals, price.raw)
    return CollateralRequirement(value=value, amount=Quantity(amount, collateral_decimals))


def build_borrow_plan(
    desired_borrow: int,
    duration_days: int,
    reads: RawReads,
    market: MarketConfig,
) -> BorrowPlan:
    """Borrow plan for the current reads; unknown reads give ``None`` fields."""
    collateral_decimals = market.collateral.decimals
    desired = Quantity(desired_borrow, market.stable.decimals)
    requirement = plan_collateral(desired, market.ltv_bps, reads.price, collateral_decimals)

    price_known = reads.price is not None and reads.price.raw > 0
    missing: Quantity | None
    if reads.snapshot is None or (not desired.is_zero and not price_known):
        missing = None
    else:
        shortfall = requirement.amount.amount - reads.snapshot.collateral_amount
        missing = Quantity(max(0, shortfall), collateral_decimals)

    exceeds_user_cap = (
        None if reads.borrower is None else desired_borrow > reads.borrower.max_borrow
    )
    exceeds_pool_cap = None if reads.pool is None else desired_borrow > reads.pool.liquidity

    return BorrowPlan(
        desired_borrow=desired,
        duration_seconds=duration_days * SECONDS_PER_DAY,
        required_collateral=requirement.amount,
        required_collateral_value=requirement.value,
        missing_collateral=missing,
        exceeds_user_cap=exceeds_user_cap,
        exceeds_pool_cap=exceeds_pool_cap,
    )
