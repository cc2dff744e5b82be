from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from .config import Settings
from .connector import ChainConnector, ConnectionHandle, Subscription
from .decoder import classify, decode
from .errors import ConfigError, ConnectError, DecodeError, FetchError
from .formatting import format_status
from .rpc import parse_log
from .sinks import OutputSink, build_sink
from .types import BlockHeader, ListenerState, ListenerStatus, LogRecord, RawLog

logger = logging.getLogger(__name__)


@dataclass
class Metrics:
    blocks_seen: int = 0
    logs_seen: int = 0
    unknown_logs: int = 0
    events_emitted: int = 0
    fetch_errors: int = 0
    decode_errors: int = 0
    sink_errors: int = 0
    watch_errors: int = 0


class EventListenerService:
    def __init__(
        self,
        settings: Settings,
        sink: OutputSink | None = None,
        connector: ChainConnector | None = None,
    ) -> None:
        self.settings = settings
        self.network = settings.network
        self.contracts = settings.contracts
        self.state = ListenerState()
        self.metrics = Metrics()
        self.sink = sink or build_sink(settings.output_format)
        self.connector = connector or ChainConnector(
            settings.network,
            ws_url=settings.rpc_ws_url,
            poll_interval=settings.poll_interval_seconds,
            emit_missed_blocks=settings.emit_missed_blocks,
            timeout=settings.rpc_timeout_seconds,
            retries=settings.rpc_retries,
        )
        self._handle: ConnectionHandle | None = None
        self._subscription: Subscription | None = None

    async def run(self) -> None:
        await self.connect()
        try:
            await self.start()
        except ConfigError as exc:
            logger.error("%s. Please set MARKET_CONTRACT_ADDRESS environment variable", exc)

        logger.info("%s", format_status(self.status()))
        try:
            await self._heartbeat_loop()
        finally:
            await self.stop()
            await self.close()

    async def connect(self) -> ConnectionHandle:
        if self._handle is not None:
            return self._handle
        self._handle = await self.connector.connect()
        self.state.connected = True
        return self._handle

    async def start(self) -> None:
        if self.state.is_listening:
            logger.warning("Already listening for events")
            return
        market = self.contracts.market_address
        if not market:
            raise ConfigError("Market contract address not configured")
        if self._handle is None:
            raise ConnectError("start() requires a successful connect()")

        logger.info("Starting to listen for events on %s...", self.network.name)
        logger.info("Market Contract: %s", market)
        self._subscription = self.connector.subscribe_blocks(
            self._handle, self.on_block, self._on_watch_error
        )
        self.state.is_listening = True
        logger.info("Event listener started successfully")

    async def stop(self) -> None:
        subscription, self._subscription = self._subscription, None
        await self.connector.unsubscribe(subscription)
        if self.state.is_listening:
            logger.info("Event listener stopped")
        self.state.is_listening = False

    async def close(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            await handle.client.close()
        self.state.connected = False

    def status(self) -> ListenerStatus:
        return ListenerStatus(
            is_listening=self.state.is_listening,
            connected=self.state.connected,
            network=self.network.name,
            chain_id=self.network.chain_id,
            market_address=self.contracts.market_address,
        )

    async def on_block(self, header: BlockHeader) -> None:
        self.metrics.blocks_seen += 1
        market = self.contracts.market_address
        if self._handle is None or not market:
            return

        try:
            logs = await self._handle.client.get_logs(market, header.number, header.number)
        except Exception as exc:
            self.metrics.fetch_errors += 1
            logger.error(
                "Error processing block on %s (market %s): %s",
                self.network.name,
                market,
                FetchError(header.number, exc),
            )
            return

        for entry in logs:
            self.process_entry(entry)

    def process_entry(self, entry: Any) -> LogRecord | None:
        try:
            log = parse_log(entry)
        except DecodeError as exc:
            self.metrics.logs_seen += 1
            self.metrics.decode_errors += 1
            logger.error(
                "Skipping malformed log on %s (market %s): %s",
                self.network.name,
                self.contracts.market_address,
                exc,
            )
            return None
        return self.process_log(log)

    def process_log(self, log: RawLog) -> LogRecord | None:
        self.metrics.logs_seen += 1
        kind = classify(log)
        if kind is None:
            self.metrics.unknown_logs += 1
            return None

        try:
            record = decode(log, kind)
        except DecodeError as exc:
            self.metrics.decode_errors += 1
            logger.error(
                "Error parsing %s event on %s (tx %s, log %d): %s",
                kind.value,
                self.network.name,
                log.transaction_hash,
                log.log_index,
                exc,
            )
            return None

        try:
            self.sink.emit(record, self.network)
        except Exception as exc:
            self.metrics.sink_errors += 1
            logger.exception("Failed to emit %s event %s: %s", kind.value, record.transaction_hash, exc)
            return None

        self.metrics.events_emitted += 1
        return record

    def _on_watch_error(self, exc: Exception) -> None:
        self.metrics.watch_errors += 1
        logger.error("Block watching error on %s: %s", self.network.name, exc)

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.heartbeat_interval_seconds)
            logger.info(
                (
                    "Event listener is still running listening=%s blocks=%d logs=%d events=%d "
                    "unknown=%d fetch_errors=%d decode_errors=%d watch_errors=%d"
                ),
                self.state.is_listening,
                self.metrics.blocks_seen,
                self.metrics.logs_seen,
                self.metrics.events_emitted,
                self.metrics.unknown_logs,
                self.metrics.fetch_errors,
                self.metrics.decode_errors,
                self.metrics.watch_errors,
            )
