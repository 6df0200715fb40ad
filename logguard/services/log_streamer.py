"""
Continuous delivery of new log entries on top of discrete Graylog searches.

The poller keeps a watermark timestamp. Every iteration searches a short
relative window, keeps entries strictly newer than the watermark, hands them
to the callback in the order Graylog returned them (newest first), then moves
the watermark to the newest timestamp seen. Delivery is at-least-once:
entries sharing the watermark's exact timestamp may be seen again.
"""

import asyncio
import inspect
import logging
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from logguard.core.exceptions import AuthenticationError, PollerStateError
from logguard.schemas.log import LogEntry
from logguard.services.graylog_client import GraylogClient

logger = logging.getLogger(__name__)

EntryCallback = Callable[[LogEntry], Union[None, Awaitable[None]]]


class PollerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class CancellationToken:
    """Cooperative stop signal shared between the poller loop and its owner."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, seconds: float) -> bool:
        """Wait for ``seconds`` or until cancelled, whichever comes first. Returns True if cancelled."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        return self.cancelled


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogStreamPoller:

    def __init__(
        self,
        client: GraylogClient,
        query: str = "*",
        poll_interval: float = 30.0,
        error_interval: float = 60.0,
        window_seconds: int = 60,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.query = query
        self.poll_interval = poll_interval
        self.error_interval = error_interval
        self.window_seconds = window_seconds
        self._clock = clock

        self.watermark: Optional[datetime] = None
        self.last_poll_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self._last_check: Optional[datetime] = None
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> PollerState:
        if self._task is None or self._task.done():
            return PollerState.IDLE
        if self._token is not None and self._token.cancelled:
            return PollerState.STOPPING
        return PollerState.RUNNING

    def start(self, callback: EntryCallback, since: Optional[datetime] = None) -> CancellationToken:
        """Begin polling with a fresh watermark. Must be called from a running event loop."""
        if self.state != PollerState.IDLE:
            raise PollerStateError(f"Poller is {self.state.value}, stop it before starting again")

        token = CancellationToken()
        self._token = token
        self.watermark = since or self._clock()
        self._last_check = self._clock()
        self.last_error = None
        self._task = asyncio.create_task(self._run(callback, token))
        logger.info(f"Starting message streaming from watermark {self.watermark.isoformat()}")
        return token

    def stop(self) -> None:
        """Request a stop. Takes effect at the loop's next checkpoint."""
        if self._token is not None and not self._token.cancelled:
            logger.info("Stopping message streaming...")
            self._token.cancel()

    async def wait_stopped(self) -> None:
        if self._task is not None:
            await self._task

    def _search_window(self, now: datetime) -> int:
        # Cover the whole gap since the last successful check, never less than the base window
        since_last = math.ceil((now - self._last_check).total_seconds()) + 1 if self._last_check else 0
        return max(self.window_seconds, since_last)

    async def poll_once(self, callback: EntryCallback, token: CancellationToken) -> int:
        """
        Run a single iteration: search, filter by watermark, deliver.

        Search failures propagate to the caller. Returns the number of entries
        handed to the callback.
        """
        now = self._clock()
        window = self._search_window(now)
        entries = await asyncio.to_thread(self.client.search, self.query, window)
        self._last_check = now
        self.last_poll_at = now

        batch: List[Tuple[datetime, LogEntry]] = []
        for entry in entries:
            ts = entry.parsed_timestamp
            if ts is None:
                logger.warning(f"Skipping log entry {entry.id} with unparseable timestamp '{entry.timestamp}'")
                continue
            if self.watermark is None or ts > self.watermark:
                batch.append((ts, entry))

        delivered = 0
        for _, entry in batch:
            if token.cancelled:
                break
            try:
                result = callback(entry)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"Error delivering log entry {entry.id}: {e}", exc_info=True)

        if batch:
            newest = max(ts for ts, _ in batch)
            if self.watermark is None or newest > self.watermark:
                self.watermark = newest
        return delivered

    async def _run(self, callback: EntryCallback, token: CancellationToken) -> None:
        try:
            while not token.cancelled:
                try:
                    count = await self.poll_once(callback, token)
                    self.last_error = None
                    if count:
                        logger.info(f"Delivered {count} new log entries (watermark {self.watermark.isoformat()})")
                    delay = self.poll_interval
                except AuthenticationError as e:
                    logger.error(f"Graylog rejected our credentials, retrying in {self.error_interval}s: {e}")
                    self.last_error = str(e)
                    delay = self.error_interval
                except Exception as e:
                    logger.error(f"Error in streaming, retrying in {self.error_interval}s: {e}")
                    self.last_error = str(e)
                    delay = self.error_interval

                if await token.sleep(delay):
                    break
        finally:
            logger.info("Message streaming stopped")
