"""Unit tests for settings and the network registry loader."""

from pathlib import Path

import pytest
from pydantic import ValidationError

import rpc_failover.config
from rpc_failover.config.networks import BUILTIN_NETWORKS, load_networks, resolve_network
from rpc_failover.config.settings import RpcSettings
from rpc_failover.middleware.error_handler import ConfigurationError


class TestRpcSettings:
    def test_defaults(self):
        settings = RpcSettings()
        assert settings.network == "testnet"
        assert settings.default_timeout_ms == 5000
        assert settings.failure_threshold == 3
        assert settings.max_cascade_attempts == 3
        assert settings.backoff_base_ms == 500
        assert settings.rate_limit_cooldown_ms == 1000
        assert settings.cascade_timeout_fraction == 0.7
        assert settings.denylist == ["drpc.org"]
        assert settings.max_concurrent_requests is None
        assert settings.health_check_enabled is False

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("RPC_NETWORK", "mainnet")
        monkeypatch.setenv("RPC_DEFAULT_TIMEOUT_MS", "8000")
        monkeypatch.setenv("RPC_ENDPOINTS", '["https://a.example", "https://b.example"]')
        settings = RpcSettings()
        assert settings.network == "mainnet"
        assert settings.default_timeout_ms == 8000
        assert settings.endpoints == ["https://a.example", "https://b.example"]

    @pytest.mark.parametrize(
        "field, value",
        [
            ("failure_threshold", 0),
            ("default_timeout_ms", 0),
            ("cascade_timeout_fraction", 0.0),
            ("cascade_timeout_fraction", 1.5),
            ("backoff_base_ms", -1),
            ("max_concurrent_requests", 0),
        ],
    )
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            RpcSettings(**{field: value})


class TestLoadNetworks:
    def test_missing_file_returns_builtins(self):
        networks = load_networks("does/not/exist.yaml")
        assert set(networks) == set(BUILTIN_NETWORKS)

    def test_malformed_yaml_returns_builtins(self, tmp_path):
        path = tmp_path / "networks.yaml"
        path.write_text("networks: [unclosed", encoding="utf-8")
        assert set(load_networks(str(path))) == set(BUILTIN_NETWORKS)

    def test_missing_networks_key(self, tmp_path):
        path = tmp_path / "networks.yaml"
        path.write_text("chains: {}\n", encoding="utf-8")
        assert set(load_networks(str(path))) == set(BUILTIN_NETWORKS)

    def test_yaml_overrides_and_extends(self, tmp_path):
        path = tmp_path / "networks.yaml"
        path.write_text(
            """
networks:
  testnet:
    chain_id: 97
    name: Local Testnet
    rpc_urls: ["https://local.example"]
    native_currency: {name: tBNB, symbol: tBNB}
  opbnb:
    chain_id: 204
    name: opBNB
    rpc_urls: ["https://opbnb.example"]
    native_currency: {name: BNB, symbol: BNB}
""",
            encoding="utf-8",
        )
        networks = load_networks(str(path))
        assert networks["testnet"].rpc_urls == ["https://local.example"]
        assert networks["opbnb"].chain_id == 204
        assert networks["mainnet"] == BUILTIN_NETWORKS["mainnet"]

    def test_invalid_entry_skipped(self, tmp_path):
        path = tmp_path / "networks.yaml"
        path.write_text(
            """
networks:
  broken:
    chain_id: 1
    name: Broken
    rpc_urls: []
    native_currency: {name: ETH, symbol: ETH}
""",
            encoding="utf-8",
        )
        assert "broken" not in load_networks(str(path))

    def test_shipped_file_is_valid(self):
        networks = load_networks(str(Path(rpc_failover.config.__file__).parent / "networks.yaml"))
        assert networks["testnet"].chain_id == 97
        assert networks["mainnet"].chain_id == 56
        assert networks["testnet"].rpc_urls[0] == "https://bsc-testnet-rpc.publicnode.com"


class TestResolveNetwork:
    def test_resolves_configured_network(self, settings: RpcSettings):
        network = resolve_network(settings)
        assert network.chain_id == 97
        assert network.rpc_urls == BUILTIN_NETWORKS["testnet"].rpc_urls

    def test_endpoints_override(self, settings: RpcSettings):
        settings = settings.model_copy(update={"endpoints": ["https://mine.example"]})
        network = resolve_network(settings)
        assert network.rpc_urls == ["https://mine.example"]
        assert network.chain_id == 97

    def test_unknown_network(self, settings: RpcSettings):
        settings = settings.model_copy(update={"network": "ropsten"})
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_network(settings)
        assert "mainnet" in exc_info.value.details["available"]
