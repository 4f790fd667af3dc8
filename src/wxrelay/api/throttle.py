"""Request throttle for provider calls across locations."""

import asyncio
import time
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class RequestThrottle:
    """Enforces a minimum gap between consecutive requests."""

    def __init__(self, min_interval: float = 0.25) -> None:
        """Initialize the throttle.

        Args:
            min_interval: Minimum seconds between the end of one slot and the
                start of the next.
        """
        self._min_interval = min_interval
        self._last_release: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until the minimum interval since the last release has passed."""
        await self._lock.acquire()
        if self._last_release is None:
            return
        wait = self._min_interval - (time.monotonic() - self._last_release)
        if wait > 0:
            logger.debug("Throttling request", wait_seconds=round(wait, 3))
            try:
                await asyncio.sleep(wait)
            except BaseException:
                self._lock.release()
                raise

    async def release(self) -> None:
        self._last_release = time.monotonic()
        self._lock.release()

    async def __aenter__(self) -> "RequestThrottle":
        """Context manager entry."""
        await self.acquire()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Context manager exit."""
        await self.release()

    @property
    def min_interval(self) -> float:
        return self._min_interval
