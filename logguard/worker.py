# logguard/worker.py
"""
Headless monitor: polls Graylog, analyses entries and dispatches alerts
without serving the HTTP API. Stops cleanly on SIGINT or SIGTERM.
"""

import asyncio
import logging
import signal

from logguard.core.container import ServiceContainer
from logguard.core.database import init_db
from logguard.core.exceptions import LogGuardError
from logguard.core.config import configure_logging

logger = logging.getLogger(__name__)


async def run_monitor(container: ServiceContainer, stop_event: asyncio.Event) -> None:
    """Run monitoring until stop_event is set, then wait for the poller to finish its step."""
    await container.start_monitoring()
    logger.info("Worker running, waiting for stop signal")
    try:
        await stop_event.wait()
    finally:
        await container.stop_monitoring(wait=True)
        logger.info("Worker stopped")


async def _main() -> int:
    init_db()
    container = ServiceContainer()
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))

    try:
        await run_monitor(container, stop_event)
    except LogGuardError as e:
        logger.error(f"Monitoring could not start: {e}")
        return 1
    return 0


def main() -> int:
    configure_logging()
    return asyncio.run(_main())


if __name__ == "__main__":
    raise SystemExit(main())
