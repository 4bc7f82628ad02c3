"""Lending market orchestration — reads, gates and submits pool actions."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable

from ..chains.evm import EvmClient, LocalSigner
from ..config import AppConfig
from ..errors import InvalidConfig
from ..fixedpoint import UNLIMITED_ALLOWANCE
from ..models import ActionIntent, Allowances, PositionView, TxReceipt
from ..protocols.nvda_pool import NvdaPoolAdapter
from .aggregator import (
    ACTIONS,
    BORROW,
    DEPOSIT_COLLATERAL,
    REPAY,
    SUPPLY,
    WITHDRAW_COLLATERAL,
    WITHDRAW_SUPPLY,
    aggregate,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    """Outcome of ``MarketService.execute``.

    ``receipt`` is ``None`` when the action was refused; ``reason`` then
    carries the gate's explanation. ``view`` is the position after the call.
    """

    action: str
    view: PositionView
    receipt: TxReceipt | None = None
    reason: str | None = None

    @property
    def submitted(self) -> bool:
        return self.receipt is not None


class MarketService:
    """Single-account view of the NVDA pool plus gated writes."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._market = config.market
        self._chain = EvmClient(config.chain)

        self._signer: LocalSigner | None = None
        if config.wallet.private_key:
            self._signer = LocalSigner(
                self._chain, config.wallet.private_key, config.chain.chain_id
            )

        self._adapter = NvdaPoolAdapter(self._chain, self._market, self._signer)
        self._stop_event = asyncio.Event()

        # (account, allowances, loop time of the read)
        self._allowance_cache: tuple[str, Allowances, float] | None = None

    @property
    def account(self) -> str:
        """Address of the configured signer, or ``""`` when read-only."""
        return self._signer.address if self._signer else ""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _cached_allowances(self, account: str) -> Allowances | None:
        if self._allowance_cache is None:
            return None
        cached_account, allowances, fetched_at = self._allowance_cache
        age = asyncio.get_running_loop().time() - fetched_at
        if cached_account != account or age >= self._market.allowance_refresh_interval_seconds:
            return None
        return allowances

    async def _fetch_allowances(self, account: str) -> Allowances:
        allowances = await self._adapter.fetch_allowances(account)
        if allowances.collateral is not None and allowances.stable is not None:
            self._allowance_cache = (
                account,
                allowances,
                asyncio.get_running_loop().time(),
            )
        return allowances

    async def snapshot(
        self,
        account: str | None = None,
        intent: ActionIntent | None = None,
        force: bool = True,
    ) -> PositionView:
        """Read ledger state and allowances concurrently and aggregate them.

        With ``force`` false, allowances younger than the allowance refresh
        interval are reused instead of re-read.
        """
        user = account if account is not None else self.account
        intent = intent or ActionIntent()

        cached = None if force else self._cached_allowances(user)
        if cached is not None:
            reads = await self._adapter.fetch_reads(user)
            allowances = cached
        else:
            reads, allowances = await asyncio.gather(
                self._adapter.fetch_reads(user),
                self._fetch_allowances(user),
            )

        return aggregate(replace(reads, allowances=allowances), intent, self._market, user)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _require_signer(self) -> LocalSigner:
        if self._signer is None:
            raise InvalidConfig("wallet.private_key is required to submit transactions")
        return self._signer

    async def _submit(self, action: str, view: PositionView, intent: ActionIntent) -> TxReceipt:
        if action == DEPOSIT_COLLATERAL:
            # Gate guarantees a known, non-zero shortfall here.
            return await self._adapter.deposit_collateral(view.plan.missing_collateral.amount)
        if action == WITHDRAW_COLLATERAL:
            return await self._adapter.withdraw_collateral(intent.withdraw_collateral_amount)
        if action == BORROW:
            return await self._adapter.borrow(
                intent.borrow_amount, view.plan.duration_seconds
            )
        if action == REPAY:
            return await self._adapter.repay(intent.repay_amount)
        if action == SUPPLY:
            return await self._adapter.deposit_stable(intent.supply_amount)
        if action == WITHDRAW_SUPPLY:
            return await self._adapter.withdraw_stable(intent.withdraw_supply_amount)
        raise ValueError(f"Unknown action '{action}'")

    async def execute(self, action: str, intent: ActionIntent) -> ActionResult:
        """Submit ``action`` if its gate is open; re-read state afterwards.

        A disabled gate is not an error: the result carries its reason and
        nothing is sent.
        """
        if action not in ACTIONS:
            raise ValueError(f"Unknown action '{action}'")
        signer = self._require_signer()

        view = await self.snapshot(signer.address, intent)
        gate = view.gates[action]
        if not gate.enabled:
            logger.warning("Action %s refused: %s", action, gate.reason)
            return ActionResult(action=action, view=view, reason=gate.reason)

        receipt = await self._submit(action, view, intent)
        logger.info(
            "Action %s confirmed in block %d (tx %s)",
            action,
            receipt.block_number,
            receipt.tx_hash,
        )

        refreshed = await self.snapshot(signer.address, intent)
        return ActionResult(action=action, view=refreshed, receipt=receipt)

    async def approve(self, asset: str) -> tuple[TxReceipt, Allowances]:
        """Grant the pool an unlimited allowance over ``asset`` and re-read."""
        signer = self._require_signer()
        receipt = await self._adapter.approve(asset, UNLIMITED_ALLOWANCE)
        logger.info("Approved %s spending in block %d", asset, receipt.block_number)
        allowances = await self._fetch_allowances(signer.address)
        return receipt, allowances

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def stop(self) -> None:
        self._stop_event.set()

    async def watch(
        self,
        on_view: Callable[[PositionView], None],
        account: str | None = None,
        intent: ActionIntent | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        """Re-read and hand a fresh view to ``on_view`` until stopped."""
        interval = interval_seconds or self._market.refresh_interval_seconds
        logger.info("Refreshing market data every %s seconds", interval)

        force = True
        while not self._stop_event.is_set():
            on_view(await self.snapshot(account, intent, force=force))
            force = False
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
