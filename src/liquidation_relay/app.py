"""Application entry point: relay, health endpoint and signal handling."""

import asyncio
import contextlib
import logging
import os
import signal

from liquidation_relay.config import Config
from liquidation_relay.core.health import HealthMonitor, HealthServer, create_app
from liquidation_relay.errors import ConfigError
from liquidation_relay.logging import setup_logging
from liquidation_relay.relay import LiquidationRelay


async def main_async() -> None:
    """Async main entry point. Runs until SIGINT/SIGTERM."""
    logger = setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_to_file=os.getenv("LOG_TO_FILE", "true").lower() in ("true", "1", "yes"),
    )
    config = Config.from_env()

    try:
        config.telegram.require()
    except ConfigError as e:
        # Liveness must still be served without delivery.
        logger.error(f"{e}; chat delivery disabled")

    relay = LiquidationRelay(config)
    monitor = HealthMonitor(relay, interval_seconds=config.server.health_log_interval)
    server = HealthServer(create_app(monitor), config.server.host, config.server.port)

    # Handle shutdown gracefully
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def shutdown_handler() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, shutdown_handler)

    try:
        await server.start()
        await monitor.start()
        await relay.start()
        await stop_event.wait()
    finally:
        await relay.stop()
        await monitor.stop()
        await server.stop()


def main() -> None:
    """Application entry point."""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main_async())


if __name__ == "__main__":
    main()
