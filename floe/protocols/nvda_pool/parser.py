"""Pure decoding of lending-pool call results into named records — no I/O.

Each contract read returns a positional tuple; these helpers name the fields
right at the boundary so nothing downstream indexes into tuples.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Sequence

from ...fixedpoint import to_float
from ...models import (
    AdapterPrice,
    BorrowerPosition,
    LenderPosition,
    PoolStats,
    PriceQuote,
    RateCurve,
    UserSnapshot,
)

# Function signatures and their ABI output types.
GET_RATES = ("getRates()", ["uint256", "uint256", "uint256"])
GET_USER_SNAPSHOT = (
    "getUserSnapshot(address)",
    ["uint256", "uint256", "uint256", "uint256", "uint256", "uint40", "uint40"],
)
GET_BORROWER_POSITION = (
    "getBorrowerPosition(address)",
    ["uint256", "uint256", "uint256", "uint256", "uint256"],
)
GET_LENDER_POSITION = ("getLenderPosition(address)", ["uint256", "uint256", "uint256"])
GET_POOL_STATS = ("getPoolStats()", ["uint256", "uint256", "uint256"])
LATEST_ANSWER = ("latestAnswer()", ["int256"])
DECIMALS = ("decimals()", ["uint8"])
ALLOWANCE = ("allowance(address,address)", ["uint256"])
ADAPTER_PRICES = ("prices(bytes32)", ["uint256", "uint256", "bool"])


def _expect(values: Sequence[Any], size: int, name: str) -> None:
    if len(values) != size:
        raise ValueError(f"{name}: expected {size} fields, got {len(values)}")


def decode_rates(values: Sequence[Any]) -> RateCurve:
    _expect(values, 3, "getRates")
    utilization, borrow_apr, supply_apr = values
    return RateCurve(
        utilization=int(utilization),
        borrow_apr=int(borrow_apr),
        supply_apr=int(supply_apr),
    )


def decode_snapshot(values: Sequence[Any]) -> UserSnapshot:
    _expect(values, 7, "getUserSnapshot")
    (
        collateral_amount,
        collateral_value,
        debt,
        max_borrow,
        health_factor,
        last_borrow_timestamp,
        duration_seconds,
    ) = values
    return UserSnapshot(
        collateral_amount=int(collateral_amount),
        collateral_value=int(collateral_value),
        debt=int(debt),
        max_borrow=int(max_borrow),
        health_factor=int(health_factor),
        last_borrow_timestamp=int(last_borrow_timestamp),
        duration_seconds=int(duration_seconds),
    )


def decode_borrower(values: Sequence[Any]) -> BorrowerPosition:
    _expect(values, 5, "getBorrowerPosition")
    debt, principal, interest, max_borrow, health_factor = values
    return BorrowerPosition(
        debt=int(debt),
        principal=int(principal),
        interest=int(interest),
        max_borrow=int(max_borrow),
        health_factor=int(health_factor),
    )


def decode_lender(values: Sequence[Any]) -> LenderPosition:
    _expect(values, 3, "getLenderPosition")
    balance, principal, interest = values
    return LenderPosition(balance=int(balance), principal=int(principal), interest=int(interest))


def decode_pool_stats(values: Sequence[Any]) -> PoolStats:
    _expect(values, 3, "getPoolStats")
    deposits, debt, liquidity = values
    return PoolStats(deposits=int(deposits), debt=int(debt), liquidity=int(liquidity))


def decode_price_quote(answer: int, decimals: int) -> PriceQuote | None:
    """Oracle ``latestAnswer`` + ``decimals``; a non-positive answer is no price."""
    if answer <= 0:
        return None
    return PriceQuote(raw=int(answer), decimals=int(decimals))


def decode_adapter_price(values: Sequence[Any], decimals: int) -> AdapterPrice | None:
    """Adapter ``prices(feedId)`` → record, or ``None`` when never set."""
    _expect(values, 3, "prices")
    raw, timestamp, exists = values
    if not exists:
        return None
    return AdapterPrice(
        price=to_float(int(raw), decimals),
        raw=int(raw),
        last_updated=datetime.fromtimestamp(int(timestamp), tz=timezone.utc),
    )
