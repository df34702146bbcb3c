"""Headless worker that runs the refresh scheduler until SIGINT or SIGTERM."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

from tokenkeeper.core.config import AppSettings, get_settings
from tokenkeeper.core.logging import configure_logging
from tokenkeeper.dependencies import ServiceContainer, build_container
from tokenkeeper.services.scheduler import SETUP_GUIDANCE

logger = logging.getLogger(__name__)


class TokenKeeperWorker:
    """Run the scheduler for the lifetime of the process."""

    def __init__(self, container: ServiceContainer) -> None:
        self._container = container

    async def run_until(self, stop_event: asyncio.Event) -> None:
        scheduler = self._container.scheduler
        logger.info("Starting token keeper worker")

        if await self._container.lifecycle.status() is None:
            logger.warning(
                "No tokens configured; the service keeps running and checks periodically"
            )
            for line in SETUP_GUIDANCE:
                logger.info(line)
        else:
            await scheduler.run_health_check_once()

        scheduler.start_all()
        logger.info(
            "Token keeper worker running (refresh every %ss, health check every %ss)",
            self._container.settings.scheduler.refresh_interval_seconds,
            self._container.settings.scheduler.health_check_interval_seconds,
        )
        await stop_event.wait()

        logger.info("Shutting down token keeper worker")
        await scheduler.shutdown()


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:  # pragma: no cover - platform without signal support
            logger.debug("Signal handler for %s unavailable on this platform", sig)


async def main(settings: Optional[AppSettings] = None) -> None:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    settings.validate_runtime()

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)
    worker = TokenKeeperWorker(build_container(settings))
    await worker.run_until(stop_event)


if __name__ == "__main__":  # pragma: no cover - manual execution path
    asyncio.run(main())
