from __future__ import annotations

import logging

from analytics_sync.domain.ports import Clock

logger = logging.getLogger(__name__)


class WriteRateLimiter:
    """Keeps a minimum spacing between consecutive sink writes.

    One instance is shared by every component that writes, so the spacing holds
    across destinations and across retries of the same write.
    """

    def __init__(self, clock: Clock, min_interval_seconds: float = 2.0) -> None:
        self._clock = clock
        self._min_interval_seconds = min_interval_seconds
        self._last_write_at: float | None = None

    @property
    def last_write_at(self) -> float | None:
        return self._last_write_at

    def wait(self) -> float:
        now = self._clock.monotonic()
        waited = 0.0
        if self._last_write_at is not None:
            remaining = self._last_write_at + self._min_interval_seconds - now
            if remaining > 0:
                logger.debug("Throttling sink write for %.3fs", remaining)
                self._clock.sleep(remaining)
                waited = remaining
                now = self._clock.monotonic()
        self._last_write_at = now
        return waited
