"""NVDA lending pool adapter — reads ledger state and submits ledger writes."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, TypeVar

from ...chains.evm.abi import decode_result, encode_call
from ...config import MarketConfig
from ...errors import InvalidConfig
from ...fixedpoint import UNLIMITED_ALLOWANCE
from ...interfaces.chain import ChainClient
from ...interfaces.signer import TransactionSigner
from ...models import Allowances, RawReads, TxReceipt
from . import parser

logger = logging.getLogger(__name__)

T = TypeVar("T")

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class NvdaPoolAdapter:
    """Talks to the NVDA lending pool, its price oracle and both ERC-20s."""

    def __init__(
        self,
        chain_client: ChainClient,
        config: MarketConfig,
        signer: TransactionSigner | None = None,
    ) -> None:
        self._client = chain_client
        self._config = config
        self._signer = signer

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _read(
        self, to: str, call: tuple[str, list[str]], *args: Any
    ) -> tuple[Any, ...]:
        signature, output_types = call
        data = await self._client.call(to, encode_call(signature, *args))
        return decode_result(output_types, data)

    @staticmethod
    def _settle(name: str, result: Any, decoder: Callable[[Any], T]) -> T | None:
        """Decode a gathered result, or log the failure and mark it unknown."""
        if isinstance(result, BaseException):
            logger.warning("Ledger read %s failed: %s", name, result)
            return None
        try:
            return decoder(result)
        except (ValueError, TypeError) as e:
            logger.warning("Ledger read %s returned malformed data: %s", name, e)
            return None

    async def fetch_reads(self, account: str | None) -> RawReads:
        """Issue every ledger read concurrently; failures become ``None``."""
        user = account or ZERO_ADDRESS
        pool = self._config.pool_address
        oracle = self._config.oracle_address

        (
            rates,
            snapshot,
            borrower,
            lender,
            stats,
            answer,
            decimals,
        ) = await asyncio.gather(
            self._read(pool, parser.GET_RATES),
            self._read(pool, parser.GET_USER_SNAPSHOT, user),
            self._read(pool, parser.GET_BORROWER_POSITION, user),
            self._read(pool, parser.GET_LENDER_POSITION, user),
            self._read(pool, parser.GET_POOL_STATS),
            self._read(oracle, parser.LATEST_ANSWER),
            self._read(oracle, parser.DECIMALS),
            return_exceptions=True,
        )

        price = None
        if isinstance(answer, BaseException) or isinstance(decimals, BaseException):
            failure = answer if isinstance(answer, BaseException) else decimals
            logger.warning("Ledger read price failed: %s", failure)
        else:
            price = parser.decode_price_quote(answer[0], decimals[0])

        return RawReads(
            rates=self._settle("getRates", rates, parser.decode_rates),
            snapshot=self._settle("getUserSnapshot", snapshot, parser.decode_snapshot),
            borrower=self._settle(
                "getBorrowerPosition", borrower, parser.decode_borrower
            ),
            lender=self._settle("getLenderPosition", lender, parser.decode_lender),
            pool=self._settle("getPoolStats", stats, parser.decode_pool_stats),
            price=price,
        )

    async def fetch_allowances(self, account: str | None) -> Allowances:
        """Allowances granted by ``account`` to the pool for both assets."""
        if not account or account == ZERO_ADDRESS:
            return Allowances(collateral=0, stable=0)

        pool = self._config.pool_address
        collateral, stable = await asyncio.gather(
            self._read(self._config.collateral.address, parser.ALLOWANCE, account, pool),
            self._read(self._config.stable.address, parser.ALLOWANCE, account, pool),
            return_exceptions=True,
        )
        return Allowances(
            collateral=self._settle("allowance(collateral)", collateral, lambda v: int(v[0])),
            stable=self._settle("allowance(stable)", stable, lambda v: int(v[0])),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _write(self, to: str, signature: str, *args: Any) -> TxReceipt:
        if self._signer is None:
            raise InvalidConfig("A signing key is required to submit transactions")
        logger.info("Submitting %s to %s", signature.split("(")[0], to)
        return await self._signer.send_transaction(to, encode_call(signature, *args))

    async def deposit_collateral(self, amount: int) -> TxReceipt:
        return await self._write(
            self._config.pool_address, "depositCollateral(uint256)", amount
        )

    async def withdraw_collateral(self, amount: int) -> TxReceipt:
        return await self._write(
            self._config.pool_address, "withdrawCollateral(uint256)", amount
        )

    async def deposit_stable(self, amount: int) -> TxReceipt:
        return await self._write(self._config.pool_address, "depositUSDC(uint256)", amount)

    async def withdraw_stable(self, amount: int) -> TxReceipt:
        return await self._write(self._config.pool_address, "withdrawUSDC(uint256)", amount)

    async def borrow(self, amount: int, duration_seconds: int) -> TxReceipt:
        return await self._write(
            self._config.pool_address,
            "borrow(uint256,uint256)",
            amount,
            duration_seconds,
        )

    async def repay(self, amount: int) -> TxReceipt:
        return await self._write(self._config.pool_address, "repay(uint256)", amount)

    async def approve(self, asset: str, amount: int = UNLIMITED_ALLOWANCE) -> TxReceipt:
        """Grant the pool a spending ceiling over ``asset`` ("collateral" or "stable")."""
        tokens = {"collateral": self._config.collateral, "stable": self._config.stable}
        if asset not in tokens:
            raise ValueError(f"Unknown asset '{asset}'")
        return await self._write(
            tokens[asset].address,
            "approve(address,uint256)",
            self._config.pool_address,
            amount,
        )

