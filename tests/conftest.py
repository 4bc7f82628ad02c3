"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from floe.config import (
    AppConfig,
    ChainConfig,
    FeederConfig,
    MarketConfig,
    NotificationsConfig,
    TelegramConfig,
    TokenConfig,
    WalletConfig,
)
from floe.models import (
    Allowances,
    BorrowerPosition,
    LenderPosition,
    PoolStats,
    PriceQuote,
    RateCurve,
    RawReads,
    TxReceipt,
    UserSnapshot,
)

# Throwaway key, never funded anywhere.
PRIVATE_KEY = "0x" + "4c" * 32

POOL = "0x" + "11" * 20
ORACLE = "0x" + "22" * 20
NVDA = "0x" + "33" * 20
USDC = "0x" + "44" * 20
ADAPTER = "0x" + "55" * 20
ACCOUNT = "0x" + "66" * 20
FEED_ID = "0x" + "ab" * 32

WAD = 10**18


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
        chain_id=84532,
        confirmation_timeout=5,
        receipt_poll_interval=0.01,
    )


@pytest.fixture()
def sample_feeder_config() -> FeederConfig:
    return FeederConfig(
        adapter_address=ADAPTER,
        feed_id=FEED_ID,
        update_interval_seconds=300,
        market_data_url="https://quotes.example.com/v8/finance/chart/NVDA",
        request_timeout=5,
    )


@pytest.fixture()
def sample_market_config() -> MarketConfig:
    return MarketConfig(
        pool_address=POOL,
        oracle_address=ORACLE,
        collateral=TokenConfig(symbol="NVDA", address=NVDA, decimals=18),
        stable=TokenConfig(symbol="mUSDC", address=USDC, decimals=6),
        ltv_bps=6_000,
        refresh_interval_seconds=15,
        allowance_refresh_interval_seconds=15,
    )


@pytest.fixture()
def sample_app_config(
    sample_chain_config: ChainConfig,
    sample_feeder_config: FeederConfig,
    sample_market_config: MarketConfig,
) -> AppConfig:
    return AppConfig(
        chain=sample_chain_config,
        wallet=WalletConfig(private_key=PRIVATE_KEY),
        feeder=sample_feeder_config,
        market=sample_market_config,
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                alert_bot_token="fake-alert-token",
                log_bot_token="fake-log-token",
                chat_id="12345",
            ),
        ),
    )


# ---------------------------------------------------------------------------
# Ledger read fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_price() -> PriceQuote:
    """$145.67 with 8 oracle decimals."""
    return PriceQuote(raw=14_567_000_000, decimals=8)


@pytest.fixture()
def sample_reads(sample_price: PriceQuote) -> RawReads:
    """A borrower with 10 NVDA posted, no debt, and a liquid pool."""
    return RawReads(
        rates=RateCurve(
            utilization=40 * 10**16, borrow_apr=8 * 10**16, supply_apr=3 * 10**16
        ),
        snapshot=UserSnapshot(
            collateral_amount=10 * WAD,
            collateral_value=1_456_700_000,
            debt=0,
            max_borrow=874_020_000,
            health_factor=0,
            last_borrow_timestamp=0,
            duration_seconds=0,
        ),
        borrower=BorrowerPosition(
            debt=0, principal=0, interest=0, max_borrow=874_020_000, health_factor=0
        ),
        lender=LenderPosition(balance=500_000_000, principal=490_000_000, interest=10_000_000),
        pool=PoolStats(
            deposits=100_000_000_000, debt=40_000_000_000, liquidity=60_000_000_000
        ),
        price=sample_price,
        allowances=Allowances(collateral=0, stable=0),
    )


@pytest.fixture()
def sample_receipt() -> TxReceipt:
    return TxReceipt(tx_hash="0x" + "aa" * 32, block_number=123456, gas_used=45000, status=1)


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
      chain_id: 84532
    wallet:
      private_key: "{PRIVATE_KEY}"
    feeder:
      adapter_address: "{ADAPTER}"
      feed_id: "{FEED_ID}"
      update_interval_seconds: 60
      market_data_url: "https://quotes.example.com/chart/NVDA"
    market:
      pool_address: "{POOL}"
      oracle_address: "{ORACLE}"
      ltv_bps: 6000
      collateral:
        symbol: NVDA
        address: "{NVDA}"
        decimals: 18
      stable:
        symbol: mUSDC
        address: "{USDC}"
        decimals: 6
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
