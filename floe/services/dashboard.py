"""Text rendering of a position view for the CLI."""
from __future__ import annotations

from datetime import datetime, timezone

from ..config import MarketConfig
from ..formatting import (
    PLACEHOLDER,
    format_health_factor,
    format_money,
    format_percent,
    format_price,
    format_token,
    format_utilization,
)
from ..models import PositionView
from .aggregator import ACTIONS

_ACTION_LABELS = {
    "deposit_collateral": "Deposit required collateral",
    "withdraw_collateral": "Withdraw collateral",
    "borrow": "Borrow",
    "repay": "Repay",
    "supply": "Supply",
    "withdraw_supply": "Withdraw supply",
}


def _money(value: int | None, market: MarketConfig, precision: int = 2) -> str:
    if value is None:
        return PLACEHOLDER
    return format_money(value, market.stable.decimals, precision)


def _short(address: str) -> str:
    if len(address) > 16:
        return f"{address[:6]}…{address[-4:]}"
    return address or "(no account)"


def metric_lines(view: PositionView, market: MarketConfig) -> list[str]:
    """Market and position metrics, one per line."""
    reads = view.reads
    coll = market.collateral
    price = reads.price.value if reads.price else None

    lines = [
        f"{coll.symbol} spot:       {format_price(price)}",
        f"Borrow APR:      {format_percent(reads.rates.borrow_apr) if reads.rates else PLACEHOLDER}",
        f"Supply APR:      {format_percent(reads.rates.supply_apr) if reads.rates else PLACEHOLDER}",
        f"Utilization:     {format_utilization(reads.rates.utilization) if reads.rates else PLACEHOLDER}",
        f"Pool liquidity:  {_money(reads.pool.liquidity if reads.pool else None, market)}",
        f"Pool debt:       {_money(reads.pool.debt if reads.pool else None, market)}",
        f"Pool deposits:   {_money(reads.pool.deposits if reads.pool else None, market)}",
    ]

    if reads.snapshot:
        lines.append(
            f"Your collateral: {format_token(reads.snapshot.collateral_amount, coll.decimals)} "
            f"{coll.symbol} ({_money(reads.snapshot.collateral_value, market)})"
        )
    else:
        lines.append(f"Your collateral: {PLACEHOLDER}")

    borrower = reads.borrower
    lines += [
        f"Borrow cap:      {_money(borrower.max_borrow if borrower else None, market)}",
        f"Repay now:       {_money(borrower.debt if borrower else None, market)}"
        f" (interest {_money(borrower.interest if borrower else None, market, 4)})",
        f"Health factor:   {format_health_factor(borrower.health_factor if borrower else None)}",
    ]

    lender = reads.lender
    lines += [
        f"Lender balance:  {_money(lender.balance if lender else None, market)}"
        f" (principal {_money(lender.principal if lender else None, market)})",
        f"Lender interest: {_money(lender.interest if lender else None, market, 4)}",
    ]
    return lines


def plan_lines(view: PositionView, market: MarketConfig) -> list[str]:
    plan = view.plan
    coll = market.collateral
    if plan.desired_borrow.is_zero:
        return ["Enter the borrow amount to see collateral needs."]

    required = (
        f"{format_token(plan.required_collateral.amount, coll.decimals)} {coll.symbol}"
        if not plan.required_collateral.is_zero
        else PLACEHOLDER
    )
    missing = (
        f"{format_token(plan.missing_collateral.amount, coll.decimals)} {coll.symbol}"
        if plan.missing_collateral is not None
        else PLACEHOLDER
    )
    return [
        f"Desired borrow:  {_money(plan.desired_borrow.amount, market)} "
        f"for {plan.duration_seconds // 86400} days",
        f"Required {coll.symbol}:   {required}",
        f"Collateral USD:  {_money(plan.required_collateral_value.amount, market)}",
        f"Still needed:    {missing}",
        f"LTV:             {market.ltv_bps / 100:.0f}%",
    ]


def gate_lines(view: PositionView) -> list[str]:
    lines = []
    for action in ACTIONS:
        gate = view.gates.get(action)
        if gate is None:
            continue
        status = "ready" if gate.enabled else f"blocked: {gate.reason}"
        lines.append(f"{_ACTION_LABELS[action]}: {status}")
    return lines


def render(view: PositionView, market: MarketConfig) -> str:
    """Full dashboard for one account."""
    now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    sections = [
        f"📊 Floe Markets · {_short(view.account)}",
        "\n".join(metric_lines(view, market)),
        "━━ Borrow plan ━━\n" + "\n".join(plan_lines(view, market)),
        "━━ Actions ━━\n" + "\n".join(gate_lines(view)),
        f"{now} UTC",
    ]
    return "\n\n".join(sections)
