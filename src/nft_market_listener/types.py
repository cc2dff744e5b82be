from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EventKind(str, Enum):
    LIST_NFT = "ListNFT"
    BUY_NFT = "BuyNFT"


@dataclass(frozen=True)
class BlockHeader:
    number: int
    hash: str | None


@dataclass(frozen=True)
class RawLog:
    address: str
    topics: tuple[str, ...]
    data: str
    block_number: int
    transaction_hash: str
    log_index: int


@dataclass(frozen=True)
class LogRecord:
    kind: EventKind
    nft_address: str
    nft_id: int
    price: int
    erc20_address: str
    block_number: int
    transaction_hash: str
    log_index: int


@dataclass
class ListenerState:
    is_listening: bool = False
    connected: bool = False


@dataclass(frozen=True)
class ListenerStatus:
    is_listening: bool
    connected: bool
    network: str
    chain_id: int
    market_address: str | None
