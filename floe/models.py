"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Quantity:
    """An unsigned integer magnitude in a given decimal base."""

    amount: int
    decimals: int

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Quantity amount must be non-negative, got {self.amount}")

    @property
    def is_zero(self) -> bool:
        return self.amount == 0


@dataclass(frozen=True)
class PriceQuote:
    """A price read from a feed or adapter, in its own fixed-point base."""

    raw: int
    decimals: int

    @property
    def value(self) -> float:
        """Float rendering for display and logging only."""
        return self.raw / (10**self.decimals)


@dataclass(frozen=True)
class RateCurve:
    """Pool rates, all WAD-scaled."""

    utilization: int
    borrow_apr: int
    supply_apr: int


@dataclass(frozen=True)
class UserSnapshot:
    """Per-user ledger snapshot (``getUserSnapshot``)."""

    collateral_amount: int
    collateral_value: int
    debt: int
    max_borrow: int
    health_factor: int
    last_borrow_timestamp: int
    duration_seconds: int


@dataclass(frozen=True)
class BorrowerPosition:
    """Borrower side of a user's position, stable-asset base except the HF."""

    debt: int
    principal: int
    interest: int
    max_borrow: int
    health_factor: int


@dataclass(frozen=True)
class LenderPosition:
    balance: int
    principal: int
    interest: int


@dataclass(frozen=True)
class PoolStats:
    deposits: int
    debt: int
    liquidity: int


@dataclass(frozen=True)
class Allowances:
    """Spending ceilings granted to the pool, ``None`` when not loaded."""

    collateral: int | None = None
    stable: int | None = None


@dataclass(frozen=True)
class AdapterPrice:
    """Last price recorded on-chain by the price adapter."""

    price: float
    raw: int
    last_updated: datetime


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    block_number: int
    gas_used: int
    status: int


@dataclass(frozen=True)
class CollateralRequirement:
    """Collateral needed to back a borrow, as value and as token amount."""

    value: Quantity
    amount: Quantity


@dataclass(frozen=True)
class BorrowPlan:
    """Derived, ephemeral borrow plan. ``None`` fields are unknown."""

    desired_borrow: Quantity
    duration_seconds: int
    required_collateral: Quantity
    required_collateral_value: Quantity
    missing_collateral: Quantity | None
    exceeds_user_cap: bool | None
    exceeds_pool_cap: bool | None


@dataclass(frozen=True)
class ActionGate:
    """Whether a ledger write may be submitted, and why not."""

    enabled: bool
    reason: str | None = None


@dataclass(frozen=True)
class ActionIntent:
    """Pending user input, in each asset's native integer units."""

    borrow_amount: int = 0
    duration_days: int = 30
    repay_amount: int = 0
    supply_amount: int = 0
    withdraw_collateral_amount: int = 0
    withdraw_supply_amount: int = 0


@dataclass(frozen=True)
class RawReads:
    """Ledger reads for one refresh. ``None`` means unknown / not loaded."""

    rates: RateCurve | None = None
    snapshot: UserSnapshot | None = None
    borrower: BorrowerPosition | None = None
    lender: LenderPosition | None = None
    pool: PoolStats | None = None
    price: PriceQuote | None = None
    allowances: Allowances = field(default_factory=Allowances)


@dataclass(frozen=True)
class PositionView:
    """Single consistent view of a user's market position plus gating flags."""

    account: str
    reads: RawReads
    plan: BorrowPlan
    has_outstanding_debt: bool | None
    collateral_shortfall: Quantity | None
    exceeds_user_cap: bool | None
    exceeds_pool_cap: bool | None
    gates: dict[str, ActionGate] = field(default_factory=dict)
