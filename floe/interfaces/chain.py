"""Chain client protocol — EVM JSON-RPC abstraction."""
from __future__ import annotations

from typing import Any, Protocol

from ..models import TxReceipt


class ChainClient(Protocol):
    """Abstract interface for blockchain RPC interactions."""

    async def call(self, to: str, data: str) -> str: ...

    async def get_balance(self, address: str) -> int: ...

    async def chain_id(self) -> int: ...

    async def get_transaction_count(self, address: str) -> int: ...

    async def gas_price(self) -> int: ...

    async def estimate_gas(self, tx: dict[str, Any]) -> int: ...

    async def send_raw_transaction(self, raw_tx: str) -> str: ...

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt: ...
