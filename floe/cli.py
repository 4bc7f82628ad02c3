"""Command-line interface for the Floe NVDA market client and price feeder."""
from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from typing import Callable

from .config import (
    AppConfig,
    load_config,
    validate_feeder,
    validate_market,
    validate_signer,
)
from .errors import ChainReadFailure, ChainWriteFailure, InvalidConfig
from .fixedpoint import parse_units
from .logging_setup import configure_logging
from .models import ActionIntent
from .services import MarketService, Reconciler
from .services import aggregator
from .services.dashboard import render

logger = logging.getLogger(__name__)

FEEDER_COMMANDS = ("feeder", "update")
READ_COMMANDS = ("position", "plan", "watch")

# Write subcommand -> aggregator action.
ACTION_COMMANDS = {
    "deposit-collateral": aggregator.DEPOSIT_COLLATERAL,
    "withdraw-collateral": aggregator.WITHDRAW_COLLATERAL,
    "supply": aggregator.SUPPLY,
    "withdraw": aggregator.WITHDRAW_SUPPLY,
    "borrow": aggregator.BORROW,
    "repay": aggregator.REPAY,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="floe",
        description="NVDA-collateral lending client and price feeder",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    feeder = sub.add_parser("feeder", help="Run the price feeder service")
    feeder.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Update interval in seconds (overrides config)",
    )
    sub.add_parser("update", help="Run a single price update cycle")

    position = sub.add_parser("position", help="Show market and position dashboard")
    position.add_argument("--account", default=None, help="Address to inspect")

    plan = sub.add_parser("plan", help="Show collateral needed for a borrow")
    plan.add_argument("amount", help="Desired borrow in stable units, e.g. 1000")
    plan.add_argument("--days", type=int, default=30, help="Borrow duration in days")
    plan.add_argument("--account", default=None, help="Address to inspect")

    watch = sub.add_parser("watch", help="Refresh the dashboard continuously")
    watch.add_argument("--account", default=None, help="Address to inspect")
    watch.add_argument("--borrow", default=None, help="Desired borrow to plan for")
    watch.add_argument("--days", type=int, default=30, help="Borrow duration in days")

    approve = sub.add_parser("approve", help="Grant the pool an unlimited allowance")
    approve.add_argument("asset", choices=["collateral", "stable"])

    deposit = sub.add_parser(
        "deposit-collateral", help="Deposit the collateral missing for a borrow plan"
    )
    deposit.add_argument("--borrow", required=True, help="Desired borrow in stable units")
    deposit.add_argument("--days", type=int, default=30, help="Borrow duration in days")
    sub.add_parser("withdraw-collateral", help="Withdraw posted collateral").add_argument(
        "amount", help="Collateral amount, e.g. 2.5"
    )
    sub.add_parser("supply", help="Supply stablecoin to the pool").add_argument(
        "amount", help="Stable amount"
    )
    sub.add_parser("withdraw", help="Withdraw supplied stablecoin").add_argument(
        "amount", help="Stable amount"
    )
    borrow = sub.add_parser("borrow", help="Borrow stablecoin against collateral")
    borrow.add_argument("amount", help="Stable amount")
    borrow.add_argument("--days", type=int, default=30, help="Borrow duration in days")
    sub.add_parser("repay", help="Repay outstanding debt").add_argument(
        "amount", help="Stable amount"
    )

    return parser


def _validate(args: argparse.Namespace, config: AppConfig) -> None:
    if args.command in FEEDER_COMMANDS:
        validate_feeder(config)
        return
    validate_market(config)
    if args.command not in READ_COMMANDS:
        validate_signer(config)


def build_intent(args: argparse.Namespace, config: AppConfig) -> ActionIntent:
    """Turn command arguments into integer amounts in each asset's base."""
    stable = config.market.stable.decimals
    collateral = config.market.collateral.decimals
    days = getattr(args, "days", 30)
    command = args.command

    if command in ("plan", "borrow"):
        return ActionIntent(borrow_amount=parse_units(args.amount, stable), duration_days=days)
    if command in ("watch", "deposit-collateral"):
        return ActionIntent(borrow_amount=parse_units(args.borrow, stable), duration_days=days)
    if command == "withdraw-collateral":
        return ActionIntent(withdraw_collateral_amount=parse_units(args.amount, collateral))
    if command == "supply":
        return ActionIntent(supply_amount=parse_units(args.amount, stable))
    if command == "withdraw":
        return ActionIntent(withdraw_supply_amount=parse_units(args.amount, stable))
    if command == "repay":
        return ActionIntent(repay_amount=parse_units(args.amount, stable))
    return ActionIntent()


def _install_signal_handlers(stop: Callable[[], None]) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows event loops.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop)


async def _run_feeder(args: argparse.Namespace, config: AppConfig) -> int:
    reconciler = Reconciler(config)
    await reconciler.log_startup()

    if args.command == "update":
        result = await reconciler.run_cycle()
        return 0 if result is not None and result.succeeded else 1

    _install_signal_handlers(reconciler.stop)
    await reconciler.run_forever(args.interval)
    return 0


async def _run_market(args: argparse.Namespace, config: AppConfig) -> int:
    service = MarketService(config)
    market = config.market
    intent = build_intent(args, config)
    account = getattr(args, "account", None)

    if args.command in ("position", "plan"):
        view = await service.snapshot(account, intent)
        print(render(view, market))
        return 0

    if args.command == "watch":
        _install_signal_handlers(service.stop)
        await service.watch(lambda view: print(render(view, market)), account, intent)
        return 0

    if args.command == "approve":
        receipt, _ = await service.approve(args.asset)
        print(f"Approved in block {receipt.block_number} (tx {receipt.tx_hash})")
        return 0

    result = await service.execute(ACTION_COMMANDS[args.command], intent)
    if not result.submitted:
        print(f"Not submitted: {result.reason}")
        return 1
    print(f"Confirmed in block {result.receipt.block_number} (tx {result.receipt.tx_hash})")
    print(render(result.view, market))
    return 0


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command and return the process exit code."""
    configure_logging(args.log_level)
    try:
        config = load_config(args.config)
        _validate(args, config)
    except (FileNotFoundError, InvalidConfig) as e:
        logger.error("Configuration error: %s", e)
        return 1

    try:
        if args.command in FEEDER_COMMANDS:
            return await _run_feeder(args, config)
        return await _run_market(args, config)
    except ValueError as e:
        logger.error("Invalid input: %s", e)
    except ChainWriteFailure as e:
        logger.error("Transaction failed: %s", e)
    except ChainReadFailure as e:
        logger.error("Chain read failed: %s", e)
    return 1


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))
