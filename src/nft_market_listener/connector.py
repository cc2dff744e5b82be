from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx
import websockets

from .config import NetworkConfig
from .errors import ChainIdMismatch, ConnectError, RpcError
from .rpc import JsonRpcClient, parse_block_header
from .types import BlockHeader

logger = logging.getLogger(__name__)

BlockCallback = Callable[[BlockHeader], Awaitable[None]]
ErrorCallback = Callable[[Exception], None]


@dataclass(frozen=True)
class ConnectionHandle:
    network: NetworkConfig
    client: JsonRpcClient
    remote_chain_id: int

    @property
    def chain_id_matches(self) -> bool:
        return self.remote_chain_id == self.network.chain_id


class Subscription:
    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    async def cancel(self) -> None:
        if self._task.done():
            return
        self._task.cancel()
        if self._task is asyncio.current_task():
            return
        await asyncio.gather(self._task, return_exceptions=True)


class ChainConnector:
    def __init__(
        self,
        network: NetworkConfig,
        ws_url: str | None = None,
        poll_interval: float = 4.0,
        emit_missed_blocks: bool = False,
        timeout: float = 15.0,
        retries: int = 3,
        client_factory: Callable[[], JsonRpcClient] | None = None,
    ) -> None:
        self.network = network
        self.ws_url = ws_url
        self.poll_interval = poll_interval
        self.emit_missed_blocks = emit_missed_blocks
        self._client_factory = client_factory or (
            lambda: JsonRpcClient(network.rpc_url, timeout=timeout, retries=retries)
        )

    async def connect(self) -> ConnectionHandle:
        client = self._client_factory()
        try:
            remote_chain_id = await client.chain_id()
        except (httpx.HTTPError, RpcError, OSError) as exc:
            await client.close()
            raise ConnectError(f"Failed to connect to {self.network.name} at {self.network.rpc_url}: {exc}") from exc
        except BaseException:
            # Cancellation (shutdown signal) or an unexpected error mid-handshake.
            await client.close()
            raise

        logger.info("Connected to %s (Chain ID: %d)", self.network.name, remote_chain_id)
        handle = ConnectionHandle(network=self.network, client=client, remote_chain_id=remote_chain_id)
        if not handle.chain_id_matches:
            logger.warning("%s", ChainIdMismatch(self.network.chain_id, remote_chain_id))
        return handle

    def subscribe_blocks(
        self,
        handle: ConnectionHandle,
        on_block: BlockCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        if self.ws_url:
            watch = self._watch_ws(on_block, on_error)
        else:
            watch = self._watch_http(handle.client, on_block, on_error)
        return Subscription(asyncio.create_task(watch, name="block-watch"))

    @staticmethod
    async def unsubscribe(subscription: Subscription | None) -> None:
        if subscription is None:
            return
        await subscription.cancel()

    async def _watch_http(
        self,
        client: JsonRpcClient,
        on_block: BlockCallback,
        on_error: ErrorCallback,
    ) -> None:
        last_seen: int | None = None
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                current = await client.block_number()
                if last_seen is not None and current <= last_seen:
                    continue
                if self.emit_missed_blocks and last_seen is not None:
                    numbers = range(last_seen + 1, current + 1)
                else:
                    numbers = range(current, current + 1)
                for number in numbers:
                    header = await client.get_block_header(number)
                    await on_block(header)
                    last_seen = number
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                on_error(exc)

    async def _watch_ws(self, on_block: BlockCallback, on_error: ErrorCallback) -> None:
        backoff = 1.0
        while True:
            try:
                async with websockets.connect(self.ws_url, ping_interval=20, ping_timeout=20) as ws:
                    await ws.send(json.dumps(NEW_HEADS_REQUEST))
                    logger.info("Subscribed to newHeads on %s", self.ws_url)
                    backoff = 1.0

                    async for raw in ws:
                        header = parse_new_heads_message(raw)
                        if header is not None:
                            await on_block(header)
                logger.warning("newHeads stream closed. Reconnecting in %.1fs", backoff)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                on_error(exc)
                logger.warning("newHeads stream failed (%s). Reconnecting in %.1fs", exc, backoff)
            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, 30.0)


NEW_HEADS_REQUEST: dict[str, Any] = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "eth_subscribe",
    "params": ["newHeads"],
}


def parse_new_heads_message(raw: str | bytes) -> BlockHeader | None:
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if error:
        message = error.get("message", error) if isinstance(error, dict) else error
        raise RpcError("eth_subscribe", str(message))
    if payload.get("method") != "eth_subscription":
        return None
    result = (payload.get("params") or {}).get("result")
    if not isinstance(result, dict):
        return None
    return parse_block_header(result)
