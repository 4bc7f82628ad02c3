"""Local-key transaction signer."""
from __future__ import annotations

import logging

from eth_account import Account
from eth_utils import to_checksum_address

from ...errors import ChainReadFailure, ChainWriteFailure
from ...interfaces.chain import ChainClient
from ...models import TxReceipt

logger = logging.getLogger(__name__)

# Headroom over the node's gas estimate, in percent.
GAS_BUFFER_PERCENT = 20


class LocalSigner:
    """Sign transactions with a private key and submit them over RPC."""

    def __init__(
        self, client: ChainClient, private_key: str, chain_id: int | None = None
    ) -> None:
        self._client = client
        self._account = Account.from_key(private_key)
        self._chain_id = chain_id

    @property
    def address(self) -> str:
        return self._account.address

    async def _resolve_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self._client.chain_id()
        return self._chain_id

    async def send_transaction(self, to: str, data: str) -> TxReceipt:
        """Build, sign, broadcast and confirm a zero-value contract call.

        Raises:
            ChainWriteFailure: estimation reverted, submission was rejected,
                the transaction reverted or confirmation timed out.
        """
        to = to_checksum_address(to)
        try:
            chain_id = await self._resolve_chain_id()
            nonce = await self._client.get_transaction_count(self.address)
            gas_price = await self._client.gas_price()
            gas_estimate = await self._client.estimate_gas(
                {"from": self.address, "to": to, "data": data}
            )
        except ChainReadFailure as e:
            # A revert during estimation surfaces here with the node's reason.
            raise ChainWriteFailure(
                f"Could not prepare transaction to {to}", reason=str(e)
            ) from e

        tx = {
            "to": to,
            "data": data,
            "value": 0,
            "nonce": nonce,
            "gas": gas_estimate * (100 + GAS_BUFFER_PERCENT) // 100,
            "gasPrice": gas_price,
            "chainId": chain_id,
        }
        signed = self._account.sign_transaction(tx)
        raw_tx = "0x" + bytes(signed.raw_transaction).hex()

        tx_hash = await self._client.send_raw_transaction(raw_tx)
        logger.info("Transaction sent: %s", tx_hash)
        logger.info("   Waiting for confirmation...")

        receipt = await self._client.wait_for_receipt(tx_hash)
        logger.info(
            "Transaction confirmed in block %d (gas used %d)",
            receipt.block_number,
            receipt.gas_used,
        )
        return receipt
