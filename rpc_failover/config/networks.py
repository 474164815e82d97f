"""Network models and YAML loader.

Provides typed Pydantic models for the chains the client can talk to and a
loader that merges a YAML file over the built-in BSC mainnet/testnet
definitions. The endpoint list of the active network is resolved once, at
startup, from settings.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from rpc_failover.config.settings import RpcSettings
from rpc_failover.middleware.error_handler import ConfigurationError

logger = logging.getLogger(__name__)


class NativeCurrency(BaseModel):
    """Gas token of a chain."""

    name: str
    symbol: str
    decimals: int = Field(default=18, ge=0)


class NetworkConfig(BaseModel):
    """Static description of one chain and its ordered public endpoints."""

    chain_id: int = Field(ge=1)
    name: str
    rpc_urls: list[str] = Field(min_length=1)
    block_explorer_urls: list[str] = []
    native_currency: NativeCurrency


BUILTIN_NETWORKS: dict[str, NetworkConfig] = {
    "mainnet": NetworkConfig(
        chain_id=56,
        name="BSC Mainnet",
        rpc_urls=[
            "https://bsc-dataseed.bnbchain.org",
            "https://bsc-dataseed1-defi.binance.org",
            "https://bsc-dataseed2-defi.binance.org",
            "https://bsc.drpc.org",
            "https://rpc.ankr.com/bsc",
        ],
        block_explorer_urls=["https://bscscan.com"],
        native_currency=NativeCurrency(name="BNB", symbol="BNB"),
    ),
    "testnet": NetworkConfig(
        chain_id=97,
        name="BSC Testnet",
        rpc_urls=[
            "https://data-seed-prebsc-1-s1.binance.org:8545",
            "https://data-seed-prebsc-2-s1.binance.org:8545",
            "https://bsc-testnet-dataseed.bnbchain.org",
            "https://bsc-testnet.bnbchain.org",
            "https://rpc.ankr.com/bsc_testnet_chapel",
        ],
        block_explorer_urls=["https://testnet.bscscan.com"],
        native_currency=NativeCurrency(name="tBNB", symbol="tBNB"),
    ),
}


def load_networks(yaml_path: str) -> dict[str, NetworkConfig]:
    """Parse a networks YAML file and merge it over the built-in networks.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        A dict mapping network names to NetworkConfig instances. If the file is
        missing or malformed, returns the built-in networks only.
    """
    networks = dict(BUILTIN_NETWORKS)
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Networks file not found at %s; using built-in networks", yaml_path)
        return networks

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse networks YAML at %s: %s", yaml_path, exc)
        return networks

    if not isinstance(raw, dict) or not isinstance(raw.get("networks"), dict):
        logger.warning("Networks YAML missing 'networks' key; using built-in networks")
        return networks

    for name, config in raw["networks"].items():
        try:
            networks[name] = NetworkConfig.model_validate(config)
        except ValidationError as exc:
            logger.error("Invalid config for network '%s': %s; skipping", name, exc)

    return networks


def resolve_network(settings: RpcSettings) -> NetworkConfig:
    """Pick the configured network, applying the ``endpoints`` override.

    Raises:
        ConfigurationError: If the network name is unknown.
    """
    networks = load_networks(settings.networks_path)
    network = networks.get(settings.network)
    if network is None:
        raise ConfigurationError(
            f"Unknown network '{settings.network}'",
            available=sorted(networks),
        )

    if settings.endpoints:
        network = network.model_copy(update={"rpc_urls": list(settings.endpoints)})

    logger.info(
        "Resolved network %s (chain %d) with %d endpoints",
        network.name,
        network.chain_id,
        len(network.rpc_urls),
    )
    return network
