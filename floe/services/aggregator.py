"""Position aggregator — merges ledger reads into one gated view.

Pure: no network, no mutation. A read that has not loaded is unknown, and
unknown inputs keep the affected action disabled.
"""
from __future__ import annotations

from ..config import MarketConfig
from ..models import ActionGate, ActionIntent, BorrowPlan, PositionView, RawReads
from .allowance import needs_approval
from .planner import build_borrow_plan

DEPOSIT_COLLATERAL = "deposit_collateral"
WITHDRAW_COLLATERAL = "withdraw_collateral"
BORROW = "borrow"
REPAY = "repay"
SUPPLY = "supply"
WITHDRAW_SUPPLY = "withdraw_supply"

ACTIONS = (
    DEPOSIT_COLLATERAL,
    WITHDRAW_COLLATERAL,
    BORROW,
    REPAY,
    SUPPLY,
    WITHDRAW_SUPPLY,
)

ENTER_AMOUNT = "Enter an amount greater than zero."


def _enabled() -> ActionGate:
    return ActionGate(enabled=True)


def _blocked(reason: str) -> ActionGate:
    return ActionGate(enabled=False, reason=reason)


def _waiting(what: str) -> ActionGate:
    return _blocked(f"Waiting for {what} to load.")


def _deposit_collateral_gate(
    plan: BorrowPlan, reads: RawReads, market: MarketConfig
) -> ActionGate:
    symbol = market.collateral.symbol
    if plan.desired_borrow.is_zero:
        return _blocked("Enter the borrow amount above to see collateral needs.")
    if plan.missing_collateral is None:
        return _waiting("price and position data")
    if plan.missing_collateral.is_zero:
        return _blocked(f"You already have enough {symbol} posted for this borrow plan.")
    if reads.allowances.collateral is None:
        return _waiting(f"{symbol} allowance")
    if needs_approval(plan.missing_collateral.amount, reads.allowances.collateral):
        return _blocked(f"Approve {symbol} spending cap before depositing.")
    return _enabled()


def _withdraw_collateral_gate(
    amount: int, has_debt: bool | None, reads: RawReads, market: MarketConfig
) -> ActionGate:
    if amount == 0:
        return _blocked(ENTER_AMOUNT)
    if has_debt is None or reads.snapshot is None:
        return _waiting("position data")
    if has_debt:
        return _blocked(
            f"Repay outstanding {market.stable.symbol} before withdrawing "
            f"{market.collateral.symbol}."
        )
    if amount > reads.snapshot.collateral_amount:
        return _blocked(f"Above your posted {market.collateral.symbol}.")
    return _enabled()


def _borrow_gate(plan: BorrowPlan, market: MarketConfig) -> ActionGate:
    if plan.desired_borrow.is_zero:
        return _blocked("Enter a borrow amount.")
    if plan.duration_seconds <= 0:
        return _blocked("Choose a borrow duration.")
    if plan.missing_collateral is None:
        return _waiting("price and position data")
    if not plan.missing_collateral.is_zero:
        return _blocked(f"Stake the required {market.collateral.symbol} before borrowing.")
    if plan.exceeds_user_cap is None or plan.exceeds_pool_cap is None:
        return _waiting("borrow limits")
    if plan.exceeds_user_cap:
        return _blocked("Above your collateral limit.")
    if plan.exceeds_pool_cap:
        return _blocked("Above pool liquidity.")
    return _enabled()


def _stable_spend_gate(
    amount: int, granted: int | None, verb: str, market: MarketConfig
) -> ActionGate:
    symbol = market.stable.symbol
    if amount == 0:
        return _blocked(ENTER_AMOUNT)
    if granted is None:
        return _waiting(f"{symbol} allowance")
    if needs_approval(amount, granted):
        return _blocked(f"Approve {symbol} spending cap before {verb}.")
    return _enabled()


def _withdraw_supply_gate(amount: int, reads: RawReads, market: MarketConfig) -> ActionGate:
    if amount == 0:
        return _blocked(ENTER_AMOUNT)
    if reads.lender is None:
        return _waiting("lender position")
    if amount > reads.lender.balance:
        return _blocked(f"Above your supplied {market.stable.symbol} balance.")
    return _enabled()


def aggregate(
    reads: RawReads,
    intent: ActionIntent,
    market: MarketConfig,
    account: str = "",
) -> PositionView:
    """Merge raw reads and pending input into a ``PositionView``."""
    plan = build_borrow_plan(intent.borrow_amount, intent.duration_days, reads, market)
    has_debt = None if reads.borrower is None else reads.borrower.debt > 0

    gates = {
        DEPOSIT_COLLATERAL: _deposit_collateral_gate(plan, reads, market),
        WITHDRAW_COLLATERAL: _withdraw_collateral_gate(
            intent.withdraw_collateral_amount, has_debt, reads, market
        ),
        BORROW: _borrow_gate(plan, market),
        REPAY: _stable_spend_gate(
            intent.repay_amount, reads.allowances.stable, "repaying", market
        ),
        SUPPLY: _stable_spend_gate(
            intent.supply_amount, reads.allowances.stable, "depositing", market
        ),
        WITHDRAW_SUPPLY: _withdraw_supply_gate(
            intent.withdraw_supply_amount, reads, market
        ),
    }

    return PositionView(
        account=account,
        reads=reads,
        plan=plan,
        has_outstanding_debt=has_debt,
        collateral_shortfall=plan.missing_collateral,
        exceeds_user_cap=plan.exceeds_user_cap,
        exceeds_pool_cap=plan.exceeds_pool_cap,
        gates=gates,
    )
