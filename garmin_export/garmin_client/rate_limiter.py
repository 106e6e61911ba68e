"""Minimum-spacing rate limiter shared by all Garmin requests of one client."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from ..config import RATE_LIMIT_INTERVAL_SECONDS

__all__ = ["RateLimiter"]

LOGGER = logging.getLogger(__name__)


class RateLimiter:
    """Keep at least ``interval`` seconds between the starts of governed calls.

    The first ``wait()`` returns immediately. Later calls sleep for whatever is
    left of the interval since the previous start; time already spent inside
    the previous request counts, so no backlog builds up.
    """

    def __init__(
        self,
        interval: float = RATE_LIMIT_INTERVAL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self._interval = interval
        self._clock = clock
        self._sleep = sleep
        # Held across the sleep so concurrent callers are spaced one by one.
        self._lock = threading.Lock()
        self._last_start: Optional[float] = None

    @property
    def interval(self) -> float:
        return self._interval

    def wait(self) -> None:
        with self._lock:
            if self._last_start is not None:
                elapsed = self._clock() - self._last_start
                delay = max(0.0, self._interval - elapsed)
                if delay > 0:
                    LOGGER.debug("Sleeping %.0f ms before next request", delay * 1000)
                    self._sleep(delay)
            self._last_start = self._clock()

    def snapshot(self) -> dict[str, float | None]:  # pragma: no cover - debug helper
        """Return current limiter state (used in diagnostics)."""

        with self._lock:
            return {"interval": self._interval, "last_start": self._last_start}
