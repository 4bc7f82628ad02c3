"""Transaction signer protocol — signing and broadcast abstraction."""
from __future__ import annotations

from typing import Protocol

from ..models import TxReceipt


class TransactionSigner(Protocol):
    """Signs, submits and confirms contract calls for one account."""

    @property
    def address(self) -> str: ...

    async def send_transaction(self, to: str, data: str) -> TxReceipt: ...
