"""Classification and decoding of marketplace event logs.

Both events share one shape::

    event ListNFT(address indexed nftAddress, uint256 indexed nftId, uint256 price, address erc20Address)
    event BuyNFT(address indexed nftAddress, uint256 indexed nftId, uint256 price, address erc20Address)

The two indexed fields arrive as ``topics[1]`` and ``topics[2]``; ``price`` and
``erc20Address`` are ABI-encoded as two 32-byte words in ``data``.
"""
from __future__ import annotations

from eth_hash.auto import keccak

from .errors import DecodeError
from .types import EventKind, LogRecord, RawLog

WORD_SIZE = 32
ADDRESS_SIZE = 20

EVENT_DECLARATIONS: dict[EventKind, str] = {
    EventKind.LIST_NFT: "ListNFT(address,uint256,uint256,address)",
    EventKind.BUY_NFT: "BuyNFT(address,uint256,uint256,address)",
}


def event_signature(declaration: str) -> str:
    return "0x" + keccak(declaration.encode("ascii")).hex()


EVENT_SIGNATURES: dict[EventKind, str] = {
    kind: event_signature(declaration) for kind, declaration in EVENT_DECLARATIONS.items()
}

_KIND_BY_SIGNATURE: dict[str, EventKind] = {sig: kind for kind, sig in EVENT_SIGNATURES.items()}


def classify(log: RawLog) -> EventKind | None:
    if not log.topics:
        return None
    return _KIND_BY_SIGNATURE.get(log.topics[0].lower())


def decode(log: RawLog, kind: EventKind) -> LogRecord:
    if len(log.topics) < 3:
        raise DecodeError(f"{kind.value} log needs 3 topics, got {len(log.topics)}")

    nft_address = _address_from_word(_hex_bytes(log.topics[1], "topics[1]"), "topics[1]")
    nft_id = int.from_bytes(_word(_hex_bytes(log.topics[2], "topics[2]"), "topics[2]"), "big")

    data = _hex_bytes(log.data, "data")
    if len(data) < 2 * WORD_SIZE:
        raise DecodeError(f"{kind.value} data needs {2 * WORD_SIZE} bytes, got {len(data)}")
    price = int.from_bytes(data[:WORD_SIZE], "big")
    erc20_address = _address_from_word(data[WORD_SIZE : 2 * WORD_SIZE], "data[1]")

    return LogRecord(
        kind=kind,
        nft_address=nft_address,
        nft_id=nft_id,
        price=price,
        erc20_address=erc20_address,
        block_number=log.block_number,
        transaction_hash=log.transaction_hash,
        log_index=log.log_index,
    )


def _hex_bytes(value: str, field: str) -> bytes:
    text = value[2:] if value[:2] in ("0x", "0X") else value
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise DecodeError(f"{field} is not valid hex: {value!r}") from exc


def _word(raw: bytes, field: str) -> bytes:
    if len(raw) != WORD_SIZE:
        raise DecodeError(f"{field} must be {WORD_SIZE} bytes, got {len(raw)}")
    return raw


def _address_from_word(raw: bytes, field: str) -> str:
    # Addresses are left-padded to a full word; only the trailing 20 bytes count.
    return "0x" + _word(raw, field)[-ADDRESS_SIZE:].hex()
