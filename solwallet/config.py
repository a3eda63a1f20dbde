"""Wallet configuration.

Values are loaded once from ``config.json`` in the wallet directory and then
passed into each component at construction time.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from solwallet.shared.network import RetryConfig, TimeoutConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"

NETWORKS = ("localnet", "devnet", "testnet", "mainnet-beta")

DEFAULT_ENDPOINTS: dict[str, str] = {
    "localnet": "http://127.0.0.1:8899",
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
}

HELIUS_MAINNET_URL = "https://mainnet.helius-rpc.com/?api-key="

DEFAULT_AGGREGATOR_URL = "https://lite-api.jup.ag"
DEFAULT_TOKEN_API_URL = "https://lite-api.jup.ag/tokens/v1/token"
DEFAULT_EXPLORER = "Solana Explorer"


def resolve_wallet_dir(storage_dir: str | Path | None = None) -> Path:
    if storage_dir:
        return Path(storage_dir).expanduser()

    env_dir = os.getenv("SOL_WALLET_DIR")
    if env_dir:
        return Path(env_dir).expanduser()

    return Path.home() / ".config" / "sol-quick-wallet"


@dataclass
class WalletConfig:
    network: str = "devnet"
    endpoints: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ENDPOINTS))
    helius_api_key: str = ""
    explorer: str = DEFAULT_EXPLORER
    aggregator_url: str = DEFAULT_AGGREGATOR_URL
    aggregator_api_key: str = ""
    token_api_url: str = DEFAULT_TOKEN_API_URL
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    commitment: str = "confirmed"
    balance_refresh_seconds: float = 30.0
    quote_refresh_seconds: float = 10.0
    quote_ttl_seconds: float = 30.0
    default_slippage_bps: int = 50
    confirm_poll_interval: float = 2.0
    confirm_timeout_seconds: float = 90.0
    max_submit_attempts: int = 3
    default_priority_fee: int = 10_000

    def __post_init__(self):
        if self.network not in NETWORKS:
            raise ValueError(
                f"Unknown network '{self.network}'. Expected one of: {', '.join(NETWORKS)}"
            )
        if self.max_submit_attempts < 1:
            raise ValueError("max_submit_attempts must be at least 1")
        if not 0 <= self.default_slippage_bps <= 10_000:
            raise ValueError("default_slippage_bps must be between 0 and 10000")

    def rpc_url(self, network: str | None = None) -> str:
        name = network or self.network
        if name == "mainnet-beta" and self.helius_api_key:
            return HELIUS_MAINNET_URL + self.helius_api_key
        try:
            return self.endpoints[name]
        except KeyError:
            raise ValueError(f"No RPC endpoint configured for network '{name}'")

    def to_dict(self) -> dict[str, Any]:
        return {
            "network": self.network,
            "endpoints": dict(self.endpoints),
            "helius_api_key": self.helius_api_key,
            "explorer": self.explorer,
            "aggregator_url": self.aggregator_url,
            "aggregator_api_key": self.aggregator_api_key,
            "token_api_url": self.token_api_url,
            "timeout": self.timeout.to_dict(),
            "retry": self.retry.to_dict(),
            "commitment": self.commitment,
            "balance_refresh_seconds": self.balance_refresh_seconds,
            "quote_refresh_seconds": self.quote_refresh_seconds,
            "quote_ttl_seconds": self.quote_ttl_seconds,
            "default_slippage_bps": self.default_slippage_bps,
            "confirm_poll_interval": self.confirm_poll_interval,
            "confirm_timeout_seconds": self.confirm_timeout_seconds,
            "max_submit_attempts": self.max_submit_attempts,
            "default_priority_fee": self.default_priority_fee,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WalletConfig":
        defaults = cls()
        endpoints = dict(DEFAULT_ENDPOINTS)
        endpoints.update(data.get("endpoints", {}))
        return cls(
            network=data.get("network", defaults.network),
            endpoints=endpoints,
            helius_api_key=data.get("helius_api_key", defaults.helius_api_key),
            explorer=data.get("explorer", defaults.explorer),
            aggregator_url=data.get("aggregator_url", defaults.aggregator_url),
            aggregator_api_key=data.get(
                "aggregator_api_key", defaults.aggregator_api_key
            ),
            token_api_url=data.get("token_api_url", defaults.token_api_url),
            timeout=TimeoutConfig.from_dict(data.get("timeout", {})),
            retry=RetryConfig.from_dict(data.get("retry", {})),
            commitment=data.get("commitment", defaults.commitment),
            balance_refresh_seconds=float(
                data.get("balance_refresh_seconds", defaults.balance_refresh_seconds)
            ),
            quote_refresh_seconds=float(
                data.get("quote_refresh_seconds", defaults.quote_refresh_seconds)
            ),
            quote_ttl_seconds=float(
                data.get("quote_ttl_seconds", defaults.quote_ttl_seconds)
            ),
            default_slippage_bps=int(
                data.get("default_slippage_bps", defaults.default_slippage_bps)
            ),
            confirm_poll_interval=float(
                data.get("confirm_poll_interval", defaults.confirm_poll_interval)
            ),
            confirm_timeout_seconds=float(
                data.get("confirm_timeout_seconds", defaults.confirm_timeout_seconds)
            ),
            max_submit_attempts=int(
                data.get("max_submit_attempts", defaults.max_submit_attempts)
            ),
            default_priority_fee=int(
                data.get("default_priority_fee", defaults.default_priority_fee)
            ),
        )


def load_config(wallet_dir: str | Path | None = None) -> WalletConfig:
    config_file = resolve_wallet_dir(wallet_dir) / CONFIG_FILENAME
    if config_file.exists():
        with open(config_file, "r") as f:
            config = WalletConfig.from_dict(json.load(f))
        logger.info("Loaded config from %s (network=%s)", config_file, config.network)
        return config

    config = WalletConfig()
    save_config(config, wallet_dir)
    return config


def save_config(config: WalletConfig, wallet_dir: str | Path | None = None) -> Path:
    directory = resolve_wallet_dir(wallet_dir)
    directory.mkdir(parents=True, exist_ok=True)
    config_file = directory / CONFIG_FILENAME
    with open(config_file, "w") as f:
        json.dump(config.to_dict(), f, indent=2)
    return config_file
