import logging

import pytest

from nft_market_listener import config
from nft_market_listener.config import NETWORKS, load_settings, select_network
from nft_market_listener.errors import ConfigError

ENV_VARS = (
    "NETWORK",
    "RPC_URL",
    "RPC_WS_URL",
    "MARKET_CONTRACT_ADDRESS",
    "NFT_CONTRACT_ADDRESS",
    "TOKEN_CONTRACT_ADDRESS",
    "POLL_INTERVAL_SECONDS",
    "EMIT_MISSED_BLOCKS",
    "HEARTBEAT_INTERVAL_SECONDS",
    "RPC_TIMEOUT_SECONDS",
    "RPC_RETRIES",
    "OUTPUT_FORMAT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda: False)


def test_defaults_select_local_network() -> None:
    settings = load_settings()
    assert settings.network_key == "local"
    assert settings.network.chain_id == 31337
    assert settings.network.rpc_url == "http://localhost:8545"
    assert settings.contracts.market_address is None
    assert settings.poll_interval_seconds == 4.0
    assert settings.emit_missed_blocks is False
    assert settings.heartbeat_interval_seconds == 300
    assert settings.output_format == "text"


def test_sepolia_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NETWORK", "sepolia")
    settings = load_settings()
    assert settings.network == NETWORKS["sepolia"]
    assert settings.network.chain_id == 11155111


def test_unknown_network_falls_back_to_local(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        key, network = select_network("mainnet")
    assert key == "local"
    assert network.chain_id == 31337
    assert "Unknown network: mainnet" in caplog.text


def test_rpc_url_override_keeps_profile_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NETWORK", "sepolia")
    monkeypatch.setenv("RPC_URL", "https://rpc.example.org")
    settings = load_settings()
    assert settings.network.rpc_url == "https://rpc.example.org"
    assert settings.network.chain_id == 11155111


def test_contract_addresses_and_options(monkeypatch: pytest.MonkeyPatch) -> None:
    market = "0x" + "a" * 40
    monkeypatch.setenv("MARKET_CONTRACT_ADDRESS", market)
    monkeypatch.setenv("EMIT_MISSED_BLOCKS", "yes")
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "1.5")
    monkeypatch.setenv("OUTPUT_FORMAT", "JSON")
    settings = load_settings()
    assert settings.contracts.market_address == market
    assert settings.emit_missed_blocks is True
    assert settings.poll_interval_seconds == 1.5
    assert settings.output_format == "json"


@pytest.mark.parametrize(
    "name,value",
    [
        ("MARKET_CONTRACT_ADDRESS", "0x1234"),
        ("POLL_INTERVAL_SECONDS", "soon"),
        ("EMIT_MISSED_BLOCKS", "maybe"),
        ("OUTPUT_FORMAT", "xml"),
        ("RPC_RETRIES", "three"),
    ],
)
def test_malformed_values_raise_config_error(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        load_settings()
