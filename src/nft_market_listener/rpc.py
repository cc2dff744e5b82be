from __future__ import annotations

import itertools
from typing import Any

import httpx

from .errors import DecodeError, RpcError
from .types import BlockHeader, RawLog


class JsonRpcClient:
    def __init__(
        self,
        rpc_url: str,
        timeout: float = 15.0,
        retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport or httpx.AsyncHTTPTransport(retries=retries),
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        resp = await self._client.post(self.rpc_url, json=payload)
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as exc:
            raise RpcError(method, f"invalid JSON response: {exc}") from exc

        if not isinstance(data, dict):
            raise RpcError(method, f"unexpected response shape: {data!r}")
        error = data.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(method, str(error.get("message", error)), error.get("code"))
            raise RpcError(method, str(error))
        if "result" not in data:
            raise RpcError(method, "response carries neither result nor error")
        return data["result"]

    async def chain_id(self) -> int:
        return _quantity("eth_chainId", await self.call("eth_chainId"))

    async def block_number(self) -> int:
        return _quantity("eth_blockNumber", await self.call("eth_blockNumber"))

    async def get_block_header(self, number: int) -> BlockHeader:
        block = await self.call("eth_getBlockByNumber", [hex(number), False])
        if block is None:
            # Node advertised the number but has not indexed the block yet.
            return BlockHeader(number=number, hash=None)
        return parse_block_header(block)

    async def get_logs(self, address: str, from_block: int, to_block: int) -> list[Any]:
        """Raw log entries; callers parse each one with ``parse_log``."""
        result = await self.call(
            "eth_getLogs",
            [{"address": address, "fromBlock": hex(from_block), "toBlock": hex(to_block)}],
        )
        if not isinstance(result, list):
            raise RpcError("eth_getLogs", f"expected a list of logs, got {type(result).__name__}")
        return result


def _quantity(method: str, value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16)
        except ValueError:
            pass
    raise RpcError(method, f"expected a hex quantity, got {value!r}")


def parse_block_header(block: dict[str, Any]) -> BlockHeader:
    number = _quantity("block", block.get("number"))
    block_hash = block.get("hash")
    return BlockHeader(number=number, hash=str(block_hash) if block_hash else None)


def parse_log(entry: Any) -> RawLog:
    if not isinstance(entry, dict):
        raise DecodeError(f"log entry is not an object: {entry!r}")
    topics = entry.get("topics") or []
    if not isinstance(topics, list):
        raise DecodeError(f"log topics must be a list, got {topics!r}")
    try:
        block_number = _quantity("log.blockNumber", entry.get("blockNumber"))
        log_index = _quantity("log.logIndex", entry.get("logIndex"))
    except RpcError as exc:
        raise DecodeError(str(exc)) from exc
    return RawLog(
        address=str(entry.get("address", "")),
        topics=tuple(str(t) for t in topics),
        data=str(entry.get("data") or "0x"),
        block_number=block_number,
        transaction_hash=str(entry.get("transactionHash", "")),
        log_index=log_index,
    )
