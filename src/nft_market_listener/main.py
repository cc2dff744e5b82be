from __future__ import annotations

import asyncio
import logging
import signal
import sys

from .config import Settings, load_settings
from .errors import ConfigError, ConnectError
from .service import EventListenerService

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def log_banner(settings: Settings) -> None:
    contracts = settings.contracts
    logger.info("NFT Market Event Listener Starting...")
    logger.info("Network: %s (%s)", settings.network_key, settings.network.name)
    logger.info("RPC URL: %s", settings.network.rpc_url)
    if settings.rpc_ws_url:
        logger.info("WS URL: %s", settings.rpc_ws_url)
    if contracts.market_address:
        logger.info("Market Contract: %s", contracts.market_address)
    else:
        logger.warning("MARKET_CONTRACT_ADDRESS not set")
    if contracts.nft_address:
        logger.info("NFT Contract: %s", contracts.nft_address)
    if contracts.token_address:
        logger.info("Token Contract: %s", contracts.token_address)


async def _main() -> int:
    try:
        settings = load_settings()
    except ConfigError as exc:
        configure_logging("INFO")
        logger.error("Invalid configuration: %s", exc)
        return 1

    configure_logging(settings.log_level)
    log_banner(settings)

    service = EventListenerService(settings)
    run_task = asyncio.create_task(service.run())
    received: list[signal.Signals] = []

    def _shutdown(sig: signal.Signals) -> None:
        logger.info("Received %s. Shutting down gracefully...", sig.name)
        received.append(sig)
        run_task.cancel()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _shutdown, sig)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass

    try:
        await run_task
    except asyncio.CancelledError:
        if not received:
            raise
        logger.info("Shutdown complete")
        return 0
    except ConnectError as exc:
        logger.error("Failed to initialize event listener: %s", exc)
        return 1
    except Exception:
        logger.exception("Fatal error, shutting down")
        return 1
    return 0


def main() -> None:
    try:
        code = asyncio.run(_main())
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
