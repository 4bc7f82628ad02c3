"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import InvalidConfig
from .fixedpoint import BPS_DENOMINATOR

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://sepolia.base.org"
DEFAULT_ADAPTER_ADDRESS = "0xbBD700ca8Fc326c90BA90A028fC1C7b36b0e9D7B"
DEFAULT_FEED_ID = "0xd7f402a699378a97cf4b1f46fb772a465535d2fead1457bcb27b58312638e264"
DEFAULT_MARKET_DATA_URL = "https://query1.finance.yahoo.com/v8/finance/chart/NVDA"

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_BYTES32_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_PRIVATE_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = (DEFAULT_RPC_URL,)
    rpc_timeout: int = 30
    chain_id: int | None = None
    confirmation_timeout: int = 120
    receipt_poll_interval: float = 2.0


@dataclass(frozen=True)
class WalletConfig:
    private_key: str = ""


@dataclass(frozen=True)
class FeederConfig:
    adapter_address: str = DEFAULT_ADAPTER_ADDRESS
    feed_id: str = DEFAULT_FEED_ID
    update_interval_seconds: int = 300
    market_data_url: str = DEFAULT_MARKET_DATA_URL
    request_timeout: int = 15
    # 0.0 pushes on every successful fetch.
    min_drift_percent: float = 0.0


@dataclass(frozen=True)
class TokenConfig:
    symbol: str = ""
    address: str = ""
    decimals: int = 18


@dataclass(frozen=True)
class MarketConfig:
    pool_address: str = ""
    oracle_address: str = ""
    collateral: TokenConfig = field(
        default_factory=lambda: TokenConfig(symbol="NVDA", decimals=18)
    )
    stable: TokenConfig = field(
        default_factory=lambda: TokenConfig(symbol="mUSDC", decimals=6)
    )
    ltv_bps: int = 6_000
    refresh_interval_seconds: int = 15
    allowance_refresh_interval_seconds: int = 15


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    chain: ChainConfig = field(default_factory=ChainConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    feeder: FeederConfig = field(default_factory=FeederConfig)
    market: MarketConfig = field(default_factory=MarketConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _or_default(raw: dict[str, Any], key: str, default: Any) -> Any:
    """Like ``dict.get`` but treats empty strings (unset env vars) as missing."""
    value = raw.get(key)
    if value is None or value == "":
        return default
    return value


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    endpoints = tuple(e for e in raw.get("rpc_endpoints", [DEFAULT_RPC_URL]) if e)
    chain_id = _or_default(raw, "chain_id", None)
    return ChainConfig(
        rpc_endpoints=endpoints,
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        chain_id=int(chain_id) if chain_id is not None else None,
        confirmation_timeout=int(raw.get("confirmation_timeout", 120)),
        receipt_poll_interval=float(raw.get("receipt_poll_interval", 2.0)),
    )


def _build_wallet(raw: dict[str, Any]) -> WalletConfig:
    return WalletConfig(private_key=raw.get("private_key", "") or "")


def _build_feeder(raw: dict[str, Any]) -> FeederConfig:
    return FeederConfig(
        adapter_address=_or_default(raw, "adapter_address", DEFAULT_ADAPTER_ADDRESS),
        feed_id=_or_default(raw, "feed_id", DEFAULT_FEED_ID),
        update_interval_seconds=int(
            _or_default(raw, "update_interval_seconds", 300)
        ),
        market_data_url=_or_default(raw, "market_data_url", DEFAULT_MARKET_DATA_URL),
        request_timeout=int(raw.get("request_timeout", 15)),
        min_drift_percent=float(raw.get("min_drift_percent", 0.0)),
    )


def _build_token(raw: dict[str, Any], default: TokenConfig) -> TokenConfig:
    return TokenConfig(
        symbol=raw.get("symbol", default.symbol),
        address=raw.get("address", "") or "",
        decimals=int(raw.get("decimals", default.decimals)),
    )


def _build_market(raw: dict[str, Any]) -> MarketConfig:
    defaults = MarketConfig()
    return MarketConfig(
        pool_address=raw.get("pool_address", "") or "",
        oracle_address=raw.get("oracle_address", "") or "",
        collateral=_build_token(raw.get("collateral", {}), defaults.collateral),
        stable=_build_token(raw.get("stable", {}), defaults.stable),
        ltv_bps=int(raw.get("ltv_bps", 6_000)),
        refresh_interval_seconds=int(raw.get("refresh_interval_seconds", 15)),
        allowance_refresh_interval_seconds=int(
            raw.get("allowance_refresh_interval_seconds", 15)
        ),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    try:
        cfg = AppConfig(
            chain=_build_chain(raw.get("chain", {})),
            wallet=_build_wallet(raw.get("wallet", {})),
            feeder=_build_feeder(raw.get("feeder", {})),
            market=_build_market(raw.get("market", {})),
            notifications=_build_notifications(raw.get("notifications", {})),
        )
    except (TypeError, ValueError) as e:
        raise InvalidConfig(f"Malformed configuration in {config_path}: {e}") from e

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on structurally invalid configuration."""
    if not cfg.chain.rpc_endpoints:
        raise InvalidConfig("At least one RPC endpoint must be configured")
    if cfg.chain.rpc_timeout <= 0 or cfg.chain.confirmation_timeout <= 0:
        raise InvalidConfig("RPC and confirmation timeouts must be positive")
    if cfg.feeder.update_interval_seconds <= 0:
        raise InvalidConfig("feeder.update_interval_seconds must be positive")
    if cfg.feeder.request_timeout <= 0:
        raise InvalidConfig("feeder.request_timeout must be positive")
    if cfg.feeder.min_drift_percent < 0:
        raise InvalidConfig("feeder.min_drift_percent must not be negative")
    if not 0 < cfg.market.ltv_bps <= BPS_DENOMINATOR:
        raise InvalidConfig(
            f"market.ltv_bps must be in (0, {BPS_DENOMINATOR}], got {cfg.market.ltv_bps}"
        )
    for token in (cfg.market.collateral, cfg.market.stable):
        if token.decimals < 0:
            raise InvalidConfig(f"Token '{token.symbol}' has negative decimals")
    if cfg.market.refresh_interval_seconds <= 0:
        raise InvalidConfig("market.refresh_interval_seconds must be positive")


def validate_signer(cfg: AppConfig) -> None:
    """Commands that submit transactions need a signing key."""
    if not cfg.wallet.private_key:
        raise InvalidConfig("wallet.private_key is not set (PRIVATE_KEY)")
    if not _PRIVATE_KEY_RE.match(cfg.wallet.private_key):
        raise InvalidConfig("wallet.private_key is not a 32-byte hex key")


def validate_feeder(cfg: AppConfig) -> None:
    """Requirements of the price feeder service."""
    validate_signer(cfg)
    if not _ADDRESS_RE.match(cfg.feeder.adapter_address):
        raise InvalidConfig(
            f"feeder.adapter_address is not an address: '{cfg.feeder.adapter_address}'"
        )
    if not _BYTES32_RE.match(cfg.feeder.feed_id):
        raise InvalidConfig(f"feeder.feed_id is not bytes32: '{cfg.feeder.feed_id}'")
    if not cfg.feeder.market_data_url:
        raise InvalidConfig("feeder.market_data_url is not set")


def validate_market(cfg: AppConfig) -> None:
    """Requirements of the lending-market commands."""
    market = cfg.market
    for name, address in (
        ("market.pool_address", market.pool_address),
        ("market.oracle_address", market.oracle_address),
        ("market.collateral.address", market.collateral.address),
        ("market.stable.address", market.stable.address),
    ):
        if not _ADDRESS_RE.match(address):
            raise InvalidConfig(f"{name} is not an address: '{address}'")
