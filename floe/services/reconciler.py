"""Price reconciliation loop — keeps the on-chain adapter in step with the market.

Each cycle fetches the market price, reads the adapter's last price for drift
logging, and pushes the new price. Cycles are single-flight: a tick that
fires while a cycle is still running is dropped.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum

from ..chains.evm import EvmClient, LocalSigner
from ..config import AppConfig
from ..errors import ChainReadFailure, ChainWriteFailure, FeedError
from ..fixedpoint import ADAPTER_DECIMALS, scale_float
from ..interfaces.notifier import Notifier
from ..interfaces.price_feed import PriceFeed
from ..models import AdapterPrice, TxReceipt
from ..notifications import TelegramNotifier
from ..oracles import PriceAdapter, YahooFinanceFeed

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CycleState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    COMPARING = "comparing"
    PUSHING = "pushing"
    FAILED = "failed"


@dataclass
class ReconciliationStats:
    """Process-lifetime counters, owned by a single ``Reconciler``."""

    start_time: datetime = field(default_factory=_utcnow)
    successful_updates: int = 0
    failed_updates: int = 0
    skipped_ticks: int = 0
    skipped_pushes: int = 0
    last_price: float | None = None
    last_update_time: datetime | None = None

    def record_success(self, price: float, when: datetime | None = None) -> None:
        self.successful_updates += 1
        self.last_price = price
        self.last_update_time = when or _utcnow()

    def record_failure(self) -> None:
        self.failed_updates += 1

    def uptime(self, now: datetime | None = None) -> timedelta:
        return (now or _utcnow()) - self.start_time

    def format_uptime(self, now: datetime | None = None) -> str:
        total = int(self.uptime(now).total_seconds())
        hours, rest = divmod(total, 3600)
        minutes, seconds = divmod(rest, 60)
        return f"{hours}h {minutes}m {seconds}s"

    def summary_lines(self, now: datetime | None = None) -> list[str]:
        last_price = f"${self.last_price:.2f}" if self.last_price is not None else "N/A"
        last_update = (
            self.last_update_time.strftime("%Y-%m-%d %H:%M:%S UTC")
            if self.last_update_time
            else "N/A"
        )
        return [
            f"Successful updates: {self.successful_updates}",
            f"Failed updates: {self.failed_updates}",
            f"Skipped ticks: {self.skipped_ticks}",
            f"Skipped pushes: {self.skipped_pushes}",
            f"Last price: {last_price}",
            f"Last update: {last_update}",
            f"Uptime: {self.format_uptime(now)}",
        ]


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one reconciliation cycle."""

    market_price: float | None = None
    on_chain: AdapterPrice | None = None
    drift: float | None = None
    scaled_price: int | None = None
    receipt: TxReceipt | None = None
    pushed: bool = False
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def compute_drift(market_price: float, on_chain_price: float) -> float | None:
    """Relative difference ``|market - on_chain| / on_chain``; None if undefined."""
    if on_chain_price <= 0:
        return None
    return abs(market_price - on_chain_price) / on_chain_price


class Reconciler:
    """Drives feed fetch → adapter read → push on a fixed cadence."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._feeder = config.feeder

        self._chain = EvmClient(config.chain)
        self._signer = LocalSigner(
            self._chain, config.wallet.private_key, config.chain.chain_id
        )
        self._feed: PriceFeed = YahooFinanceFeed(config.feeder)
        self._adapter = PriceAdapter(self._chain, self._signer, config.feeder)

        self._notifiers: list[Notifier] = []
        if config.notifications.telegram.enabled:
            self._notifiers.append(TelegramNotifier(config.notifications.telegram))

        self.stats = ReconciliationStats()
        self.state = CycleState.IDLE
        self._busy = False
        self._in_flight: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    # ------------------------------------------------------------------
    # Logging helpers
    # ------------------------------------------------------------------

    def log_stats(self) -> None:
        logger.info("─" * 80)
        logger.info("STATISTICS")
        logger.info("─" * 80)
        for line in self.stats.summary_lines():
            logger.info("   %s", line)
        logger.info("─" * 80)

    async def log_startup(self) -> None:
        """Log configuration and the signer's balance. Never fatal."""
        logger.info("█" * 80)
        logger.info("  NVDA PRICE ORACLE SERVICE")
        logger.info("█" * 80)
        logger.info("Configuration:")
        logger.info("  RPC endpoints: %s", ", ".join(self._config.chain.rpc_endpoints))
        logger.info("  Price adapter: %s", self._feeder.adapter_address)
        logger.info("  Feed ID: %s", self._feeder.feed_id)
        logger.info(
            "  Update interval: %d seconds", self._feeder.update_interval_seconds
        )
        logger.info("  Wallet address: %s", self._signer.address)

        try:
            balance = await self._chain.get_balance(self._signer.address)
        except ChainReadFailure as e:
            logger.error("Could not check wallet balance: %s", e)
            return

        logger.info("  Wallet balance: %.6f ETH", balance / 10**18)
        if balance == 0:
            logger.warning("Wallet has zero balance. Please add ETH to continue.")

    async def _notify(self, message: str, alert: bool) -> None:
        for notifier in self._notifiers:
            try:
                if alert:
                    await notifier.send_alert(message, subject="NVDA price feeder")
                else:
                    await notifier.send_log(message, silent=True)
            except Exception as e:
                logger.error("Notifier delivery failed: %s", e)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def _read_on_chain(self) -> tuple[AdapterPrice | None, bool]:
        """Best-effort adapter read: (price, readable)."""
        try:
            return await self._adapter.read_price(), True
        except ChainReadFailure as e:
            logger.error("Error reading on-chain price: %s", e)
            return None, False

    def _should_push(self, drift: float | None) -> bool:
        threshold = self._feeder.min_drift_percent
        if threshold <= 0 or drift is None:
            return True
        return drift * 100 >= threshold

    async def _fail(self, message: str, partial: CycleResult | None = None) -> CycleResult:
        self.state = CycleState.FAILED
        self.stats.record_failure()
        logger.error("Update cycle failed: %s", message)
        self.log_stats()
        await self._notify(f"⚠️ Price update failed\n\n{message}", alert=True)
        return replace(partial or CycleResult(), error=message)

    async def _cycle(self) -> CycleResult:
        logger.info("=" * 80)
        logger.info("Update Cycle - %s", _utcnow().strftime("%Y-%m-%d %H:%M:%S UTC"))
        logger.info("=" * 80)

        self.state = CycleState.FETCHING
        logger.info("Fetching NVIDIA price from market data source...")
        try:
            market_price = await self._feed.fetch_reference_price()
        except FeedError as e:
            return await self._fail(str(e))

        self.state = CycleState.COMPARING
        logger.info("Checking current on-chain price...")
        on_chain, readable = await self._read_on_chain()
        drift = None
        if on_chain is not None:
            logger.info("   On-chain price: $%.2f", on_chain.price)
            logger.info(
                "   Last update: %s",
                on_chain.last_updated.strftime("%Y-%m-%d %H:%M:%S UTC"),
            )
            drift = compute_drift(market_price, on_chain.price)
            if drift is not None:
                logger.info(
                    "   Difference: $%.2f (%.2f%%)",
                    abs(market_price - on_chain.price),
                    drift * 100,
                )
        elif readable:
            logger.info("   No price set on-chain yet (first update)")

        if not self._should_push(drift):
            self.stats.skipped_pushes += 1
            logger.info(
                "Drift below %.4f%%; not pushing this cycle",
                self._feeder.min_drift_percent,
            )
            return CycleResult(market_price=market_price, on_chain=on_chain, drift=drift)

        self.state = CycleState.PUSHING
        scaled = scale_float(market_price, ADAPTER_DECIMALS)
        logger.info("Updating price on-chain...")
        try:
            receipt = await self._adapter.push_price(market_price)
        except ChainWriteFailure as e:
            message = f"Error updating price on-chain: {e}"
            if e.reason:
                logger.error("   Reason: %s", e.reason)
            return await self._fail(
                message,
                CycleResult(
                    market_price=market_price,
                    on_chain=on_chain,
                    drift=drift,
                    scaled_price=scaled,
                ),
            )

        logger.info("Price updated successfully!")
        logger.info("   Block: %d", receipt.block_number)
        logger.info("   Gas used: %d", receipt.gas_used)

        self.stats.record_success(market_price)
        self.log_stats()
        await self._notify(
            f"✅ Price updated to ${market_price:.2f} in block {receipt.block_number}",
            alert=False,
        )
        return CycleResult(
            market_price=market_price,
            on_chain=on_chain,
            drift=drift,
            scaled_price=scaled,
            receipt=receipt,
            pushed=True,
        )

    async def run_cycle(self) -> CycleResult | None:
        """Run one cycle, or return ``None`` if one is already running."""
        if self._busy:
            self.stats.skipped_ticks += 1
            logger.warning("Previous update cycle still running; skipping this tick")
            return None

        self._busy = True
        try:
            return await self._cycle()
        except Exception as e:
            logger.exception("Unexpected error in update cycle")
            return await self._fail(f"Unexpected error: {e}")
        finally:
            self._busy = False
            self.state = CycleState.IDLE

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """Stop scheduling new cycles. An in-flight cycle is not cancelled."""
        self._stop_event.set()

    async def run_forever(self, interval_seconds: float | None = None) -> None:
        """Run a cycle now, then one per fixed wall-clock interval until stopped."""
        interval = interval_seconds or self._feeder.update_interval_seconds
        loop = asyncio.get_running_loop()
        logger.info(
            "First update will run immediately, then every %s seconds.", interval
        )

        next_tick = loop.time()
        while not self._stop_event.is_set():
            if self._in_flight is not None and not self._in_flight.done():
                self.stats.skipped_ticks += 1
                logger.warning("Previous update cycle still running; skipping this tick")
            else:
                self._in_flight = asyncio.create_task(self.run_cycle())

            next_tick += interval
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=max(0.0, next_tick - loop.time())
                )
            except asyncio.TimeoutError:
                pass

        logger.info("Shutting down oracle service...")
        self.log_stats()
