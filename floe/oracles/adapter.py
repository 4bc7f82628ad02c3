"""On-chain price adapter — reads and writes the last pushed price."""
from __future__ import annotations

import logging

from ..chains.evm.abi import decode_result, encode_call
from ..config import FeederConfig
from ..errors import ChainReadFailure
from ..fixedpoint import ADAPTER_DECIMALS, scale_float
from ..interfaces.chain import ChainClient
from ..interfaces.signer import TransactionSigner
from ..models import AdapterPrice, TxReceipt
from ..protocols.nvda_pool import parser

logger = logging.getLogger(__name__)


class PriceAdapter:
    """ManualPriceAdapter contract for one feed id."""

    def __init__(
        self,
        chain_client: ChainClient,
        signer: TransactionSigner,
        config: FeederConfig,
    ) -> None:
        self._client = chain_client
        self._signer = signer
        self.address = config.adapter_address
        self.feed_id = config.feed_id

    async def read_price(self) -> AdapterPrice | None:
        """Return the stored price, or ``None`` if none was ever pushed.

        Raises:
            ChainReadFailure: the adapter could not be read.
        """
        signature, output_types = parser.ADAPTER_PRICES
        data = await self._client.call(self.address, encode_call(signature, self.feed_id))
        try:
            return parser.decode_adapter_price(
                decode_result(output_types, data), ADAPTER_DECIMALS
            )
        except (ValueError, OverflowError, OSError) as e:
            raise ChainReadFailure(f"Unreadable adapter price: {e}") from e

    async def push_price(self, price: float) -> TxReceipt:
        """Scale ``price`` to the adapter base and submit ``updatePrice``.

        Raises:
            ChainWriteFailure: submission rejected, reverted, or timed out.
        """
        scaled = scale_float(price, ADAPTER_DECIMALS)
        logger.info(
            "Sending transaction to update price to $%.2f (%d)...", price, scaled
        )
        return await self._signer.send_transaction(
            self.address,
            encode_call("updatePrice(bytes32,uint256)", self.feed_id, scaled),
        )
