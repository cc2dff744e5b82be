from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .config import NetworkConfig
from .types import EventKind, ListenerStatus, LogRecord

BORDER = "=" * 60

_HEADLINES = {
    EventKind.LIST_NFT: ("LIST NFT EVENT DETECTED", "Price", "SUCCESS: An NFT has been listed for sale!"),
    EventKind.BUY_NFT: ("BUY NFT EVENT DETECTED", "Price Paid", "SUCCESS: An NFT has been purchased!"),
}


def now_iso(now: datetime | None = None) -> str:
    dt = now or datetime.now(tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_event_report(record: LogRecord, network: NetworkConfig, now: datetime | None = None) -> str:
    headline, price_label, footer = _HEADLINES[record.kind]
    return "\n".join(
        [
            "",
            BORDER,
            f"[{now_iso(now)}] [{network.name.upper()}] {headline}",
            BORDER,
            "Event Details:",
            f"  Network: {network.name} (Chain ID: {network.chain_id})",
            f"  NFT Contract: {record.nft_address}",
            f"  NFT ID: {record.nft_id}",
            f"  {price_label}: {record.price} wei",
            f"  ERC20 Token: {record.erc20_address}",
            f"  Block Number: {record.block_number}",
            f"  Transaction Hash: {record.transaction_hash}",
            f"  Log Index: {record.log_index}",
            footer,
            BORDER,
            "",
        ]
    )


def record_to_dict(record: LogRecord, network: NetworkConfig) -> dict[str, Any]:
    # uint256 values can exceed what JSON consumers parse losslessly.
    return {
        "event": record.kind.value,
        "network": network.name,
        "chainId": network.chain_id,
        "nftAddress": record.nft_address,
        "nftId": str(record.nft_id),
        "price": str(record.price),
        "erc20Address": record.erc20_address,
        "blockNumber": record.block_number,
        "transactionHash": record.transaction_hash,
        "logIndex": record.log_index,
    }


def format_status(status: ListenerStatus) -> str:
    return "\n".join(
        [
            "Event Listener Status:",
            f"  Listening: {'Yes' if status.is_listening else 'No'}",
            f"  Network: {status.network}",
            f"  Chain ID: {status.chain_id}",
            f"  Market Contract: {status.market_address or 'Not configured'}",
        ]
    )
