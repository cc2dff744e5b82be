from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass

from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "local"
OUTPUT_FORMATS = ("text", "json", "both")

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    chain_id: int
    rpc_url: str


@dataclass(frozen=True)
class ContractAddresses:
    market_address: str | None = None
    nft_address: str | None = None
    token_address: str | None = None


NETWORKS: dict[str, NetworkConfig] = {
    "local": NetworkConfig(name="Anvil Local", chain_id=31337, rpc_url="http://localhost:8545"),
    "sepolia": NetworkConfig(
        name="Sepolia Testnet",
        chain_id=11155111,
        rpc_url="https://sepolia.infura.io/v3/YOUR_INFURA_KEY",
    ),
}


@dataclass(frozen=True)
class Settings:
    network_key: str
    network: NetworkConfig
    contracts: ContractAddresses
    rpc_ws_url: str | None
    poll_interval_seconds: float
    emit_missed_blocks: bool
    heartbeat_interval_seconds: int
    rpc_timeout_seconds: float
    rpc_retries: int
    output_format: str
    log_level: str


def select_network(key: str | None) -> tuple[str, NetworkConfig]:
    name = (key or DEFAULT_NETWORK).strip().lower() or DEFAULT_NETWORK
    if name not in NETWORKS:
        logger.warning("Unknown network: %s, falling back to %s", name, DEFAULT_NETWORK)
        name = DEFAULT_NETWORK
    return name, NETWORKS[name]


def _optional_str(name: str) -> str | None:
    return os.getenv(name, "").strip() or None


def _optional_address(name: str) -> str | None:
    value = _optional_str(name)
    if value is not None and not _ADDRESS_RE.match(value):
        raise ConfigError(f"{name} is not a valid 20-byte hex address: {value}")
    return value


def _optional_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _optional_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def _optional_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    text = raw.strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _output_format() -> str:
    value = os.getenv("OUTPUT_FORMAT", "text").strip().lower()
    if value not in OUTPUT_FORMATS:
        raise ConfigError(f"OUTPUT_FORMAT must be one of {', '.join(OUTPUT_FORMATS)}, got {value!r}")
    return value


def load_settings() -> Settings:
    load_dotenv()
    network_key, network = select_network(os.getenv("NETWORK"))
    rpc_override = _optional_str("RPC_URL")
    if rpc_override:
        network = NetworkConfig(name=network.name, chain_id=network.chain_id, rpc_url=rpc_override)

    return Settings(
        network_key=network_key,
        network=network,
        contracts=ContractAddresses(
            market_address=_optional_address("MARKET_CONTRACT_ADDRESS"),
            nft_address=_optional_address("NFT_CONTRACT_ADDRESS"),
            token_address=_optional_address("TOKEN_CONTRACT_ADDRESS"),
        ),
        rpc_ws_url=_optional_str("RPC_WS_URL"),
        poll_interval_seconds=_optional_float("POLL_INTERVAL_SECONDS", 4.0),
        emit_missed_blocks=_optional_bool("EMIT_MISSED_BLOCKS", False),
        heartbeat_interval_seconds=_optional_int("HEARTBEAT_INTERVAL_SECONDS", 300),
        rpc_timeout_seconds=_optional_float("RPC_TIMEOUT_SECONDS", 15.0),
        rpc_retries=_optional_int("RPC_RETRIES", 3),
        output_format=_output_format(),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
