"""EVM JSON-RPC client with fallback support."""
from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...errors import ChainReadFailure, ChainWriteFailure
from ...models import TxReceipt

logger = logging.getLogger(__name__)


def _to_int(value: str | int | None) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16)


class EvmClient:
    """EVM RPC client with automatic endpoint fallback."""

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.confirmation_timeout = config.confirmation_timeout
        self.poll_interval = config.receipt_poll_interval
        self.current_rpc_index = 0
        self._request_id = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints.

        Raises:
            ChainReadFailure: every endpoint failed.
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json(content_type=None)
                        if "error" in result:
                            error = result["error"]
                            message = (
                                error.get("message", error)
                                if isinstance(error, dict)
                                else error
                            )
                            raise RuntimeError(f"RPC Error: {message}")

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result")
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed (%s): %s", rpc_url, method, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise ChainReadFailure(f"All RPC endpoints failed. Last error: {last_error}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def call(self, to: str, data: str) -> str:
        """``eth_call`` against the latest block; returns the hex result."""
        result = await self.rpc_call("eth_call", [{"to": to, "data": data}, "latest"])
        if not isinstance(result, str):
            raise ChainReadFailure(f"eth_call to {to} returned {result!r}")
        return result

    async def get_balance(self, address: str) -> int:
        return _to_int(await self.rpc_call("eth_getBalance", [address, "latest"]))

    async def chain_id(self) -> int:
        return _to_int(await self.rpc_call("eth_chainId", []))

    async def get_transaction_count(self, address: str) -> int:
        return _to_int(
            await self.rpc_call("eth_getTransactionCount", [address, "pending"])
        )

    async def gas_price(self) -> int:
        return _to_int(await self.rpc_call("eth_gasPrice", []))

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        return _to_int(await self.rpc_call("eth_estimateGas", [tx]))

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        return await self.rpc_call("eth_getTransactionReceipt", [tx_hash])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def send_raw_transaction(self, raw_tx: str) -> str:
        """Broadcast a signed transaction and return its hash."""
        try:
            return await self.rpc_call("eth_sendRawTransaction", [raw_tx])
        except ChainReadFailure as e:
            raise ChainWriteFailure("Transaction submission failed", reason=str(e)) from e

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """Poll for a receipt until ``confirmation_timeout`` elapses.

        Raises:
            ChainWriteFailure: the transaction reverted or was not mined in time.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirmation_timeout

        while True:
            try:
                receipt = await self.get_transaction_receipt(tx_hash)
            except ChainReadFailure as e:
                logger.warning("Receipt lookup for %s failed: %s", tx_hash, e)
                receipt = None

            if receipt:
                parsed = TxReceipt(
                    tx_hash=receipt.get("transactionHash", tx_hash),
                    block_number=_to_int(receipt.get("blockNumber")),
                    gas_used=_to_int(receipt.get("gasUsed")),
                    status=_to_int(receipt.get("status")),
                )
                if parsed.status != 1:
                    raise ChainWriteFailure(
                        f"Transaction {tx_hash} reverted in block {parsed.block_number}",
                        reason="reverted",
                    )
                return parsed

            if loop.time() >= deadline:
                raise ChainWriteFailure(
                    f"Transaction {tx_hash} not confirmed within "
                    f"{self.confirmation_timeout}s",
                    reason="confirmation timeout",
                )
            await asyncio.sleep(self.poll_interval)
