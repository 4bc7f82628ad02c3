"""Integration tests for the lending-pool adapter with a scripted chain."""
from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector

from floe.config import FeederConfig, MarketConfig
from floe.errors import ChainReadFailure, InvalidConfig
from floe.fixedpoint import UNLIMITED_ALLOWANCE
from floe.models import TxReceipt
from floe.oracles.adapter import PriceAdapter
from floe.protocols.nvda_pool import NvdaPoolAdapter
from floe.protocols.nvda_pool.adapter import ZERO_ADDRESS

WAD = 10**18
ACCOUNT = "0x" + "66" * 20


def _selector(signature: str) -> str:
    return "0x" + function_signature_to_4byte_selector(signature).hex()


def _result(types: list[str], values: list) -> str:
    return "0x" + encode(types, values).hex()


# Canned return data per function selector.
RESPONSES = {
    _selector("getRates()"): _result(
        ["uint256"] * 3, [4 * 10**17, 8 * 10**16, 3 * 10**16]
    ),
    _selector("getUserSnapshot(address)"): _result(
        ["uint256"] * 5 + ["uint40"] * 2,
        [10 * WAD, 1_456_700_000, 0, 874_020_000, 0, 0, 0],
    ),
    _selector("getBorrowerPosition(address)"): _result(
        ["uint256"] * 5, [0, 0, 0, 874_020_000, 0]
    ),
    _selector("getLenderPosition(address)"): _result(
        ["uint256"] * 3, [500_000_000, 490_000_000, 10_000_000]
    ),
    _selector("getPoolStats()"): _result(
        ["uint256"] * 3, [100_000_000_000, 40_000_000_000, 60_000_000_000]
    ),
    _selector("latestAnswer()"): _result(["int256"], [14_567_000_000]),
    _selector("decimals()"): _result(["uint8"], [8]),
    _selector("allowance(address,address)"): _result(["uint256"], [UNLIMITED_ALLOWANCE]),
    _selector("prices(bytes32)"): _result(
        ["uint256", "uint256", "bool"], [14_500_000_000, 1_704_067_200, True]
    ),
}


def _scripted_chain(failing: set[str] | None = None) -> AsyncMock:
    failing = failing or set()

    async def call(to: str, data: str) -> str:
        selector = data[:10]
        if selector in failing:
            raise ChainReadFailure("All RPC endpoints failed")
        return RESPONSES[selector]

    chain = AsyncMock()
    chain.call = AsyncMock(side_effect=call)
    return chain


@pytest.fixture()
def signer(sample_receipt: TxReceipt) -> AsyncMock:
    signer = AsyncMock()
    signer.address = ACCOUNT
    signer.send_transaction.return_value = sample_receipt
    return signer


class TestFetchReads:
    @pytest.mark.asyncio
    async def test_all_reads_decoded(self, sample_market_config: MarketConfig) -> None:
        adapter = NvdaPoolAdapter(_scripted_chain(), sample_market_config)

        reads = await adapter.fetch_reads(ACCOUNT)

        assert reads.rates.borrow_apr == 8 * 10**16
        assert reads.snapshot.collateral_amount == 10 * WAD
        assert reads.borrower.max_borrow == 874_020_000
        assert reads.lender.interest == 10_000_000
        assert reads.pool.liquidity == 60_000_000_000
        assert reads.price.raw == 14_567_000_000
        assert reads.price.decimals == 8

    @pytest.mark.asyncio
    async def test_failed_read_is_unknown(self, sample_market_config: MarketConfig) -> None:
        chain = _scripted_chain({_selector("getPoolStats()")})
        adapter = NvdaPoolAdapter(chain, sample_market_config)

        reads = await adapter.fetch_reads(ACCOUNT)

        assert reads.pool is None
        assert reads.rates is not None

    @pytest.mark.asyncio
    async def test_failed_oracle_decimals_hides_price(
        self, sample_market_config: MarketConfig
    ) -> None:
        chain = _scripted_chain({_selector("decimals()")})
        adapter = NvdaPoolAdapter(chain, sample_market_config)

        reads = await adapter.fetch_reads(ACCOUNT)

        assert reads.price is None

    @pytest.mark.asyncio
    async def test_no_account_reads_zero_address(
        self, sample_market_config: MarketConfig
    ) -> None:
        chain = _scripted_chain()
        adapter = NvdaPoolAdapter(chain, sample_market_config)

        await adapter.fetch_reads(None)

        snapshot_calls = [
            c.args[1]
            for c in chain.call.call_args_list
            if c.args[1].startswith(_selector("getUserSnapshot(address)"))
        ]
        (user,) = decode(["address"], bytes.fromhex(snapshot_calls[0][10:]))
        assert user == ZERO_ADDRESS


class TestFetchAllowances:
    @pytest.mark.asyncio
    async def test_reads_both_tokens(self, sample_market_config: MarketConfig) -> None:
        chain = _scripted_chain()
        adapter = NvdaPoolAdapter(chain, sample_market_config)

        allowances = await adapter.fetch_allowances(ACCOUNT)

        assert allowances.collateral == UNLIMITED_ALLOWANCE
        assert allowances.stable == UNLIMITED_ALLOWANCE
        targets = {c.args[0] for c in chain.call.call_args_list}
        assert targets == {
            sample_market_config.collateral.address,
            sample_market_config.stable.address,
        }

    @pytest.mark.asyncio
    async def test_no_account_is_zero(self, sample_market_config: MarketConfig) -> None:
        chain = _scripted_chain()
        adapter = NvdaPoolAdapter(chain, sample_market_config)

        allowances = await adapter.fetch_allowances(None)

        assert (allowances.collateral, allowances.stable) == (0, 0)
        chain.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_allowance_is_unknown(
        self, sample_market_config: MarketConfig
    ) -> None:
        chain = _scripted_chain({_selector("allowance(address,address)")})
        adapter = NvdaPoolAdapter(chain, sample_market_config)

        allowances = await adapter.fetch_allowances(ACCOUNT)

        assert allowances.collateral is None
        assert allowances.stable is None


class TestWrites:
    @pytest.mark.asyncio
    async def test_borrow_encodes_amount_and_duration(
        self, sample_market_config: MarketConfig, signer: AsyncMock
    ) -> None:
        adapter = NvdaPoolAdapter(_scripted_chain(), sample_market_config, signer)

        await adapter.borrow(500_000_000, 30 * 86_400)

        to, data = signer.send_transaction.call_args[0]
        assert to == sample_market_config.pool_address
        assert data.startswith(_selector("borrow(uint256,uint256)"))
        assert decode(["uint256", "uint256"], bytes.fromhex(data[10:])) == (
            500_000_000,
            2_592_000,
        )

    @pytest.mark.asyncio
    async def test_approve_targets_token(
        self, sample_market_config: MarketConfig, signer: AsyncMock
    ) -> None:
        adapter = NvdaPoolAdapter(_scripted_chain(), sample_market_config, signer)

        await adapter.approve("stable")

        to, data = signer.send_transaction.call_args[0]
        assert to == sample_market_config.stable.address
        spender, amount = decode(["address", "uint256"], bytes.fromhex(data[10:]))
        assert spender.lower() == sample_market_config.pool_address.lower()
        assert amount == UNLIMITED_ALLOWANCE

    @pytest.mark.asyncio
    async def test_approve_unknown_asset(
        self, sample_market_config: MarketConfig, signer: AsyncMock
    ) -> None:
        adapter = NvdaPoolAdapter(_scripted_chain(), sample_market_config, signer)
        with pytest.raises(ValueError):
            await adapter.approve("eth")

    @pytest.mark.asyncio
    async def test_write_without_signer(self, sample_market_config: MarketConfig) -> None:
        adapter = NvdaPoolAdapter(_scripted_chain(), sample_market_config)
        with pytest.raises(InvalidConfig):
            await adapter.repay(1)


class TestPriceAdapter:
    @pytest.mark.asyncio
    async def test_read_price(
        self, sample_feeder_config: FeederConfig, signer: AsyncMock
    ) -> None:
        adapter = PriceAdapter(_scripted_chain(), signer, sample_feeder_config)

        price = await adapter.read_price()

        assert price.price == pytest.approx(145.0)
        assert price.last_updated == datetime(2024, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_push_price_scales_without_float_error(
        self, sample_feeder_config: FeederConfig, signer: AsyncMock
    ) -> None:
        adapter = PriceAdapter(_scripted_chain(), signer, sample_feeder_config)

        await adapter.push_price(145.67)

        to, data = signer.send_transaction.call_args[0]
        assert to == sample_feeder_config.adapter_address
        assert data.startswith(_selector("updatePrice(bytes32,uint256)"))
        feed_id, scaled = decode(["bytes32", "uint256"], bytes.fromhex(data[10:]))
        assert "0x" + feed_id.hex() == sample_feeder_config.feed_id
        assert scaled == 14_567_000_000

    @pytest.mark.asyncio
    async def test_out_of_range_timestamp_is_read_failure(
        self, sample_feeder_config: FeederConfig, signer: AsyncMock
    ) -> None:
        chain = AsyncMock()
        chain.call.return_value = _result(
            ["uint256", "uint256", "bool"], [14_500_000_000, 2**255, True]
        )
        adapter = PriceAdapter(chain, signer, sample_feeder_config)

        with pytest.raises(ChainReadFailure, match="Unreadable adapter price"):
            await adapter.read_price()
