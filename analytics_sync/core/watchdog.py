from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class RunWatchdog:
    """Warns once a run outlives its threshold. It never stops the process."""

    def __init__(
        self,
        threshold_seconds: float,
        *,
        label: str = "analytics_sync",
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._threshold_seconds = threshold_seconds
        self._label = label
        self._timer_factory = timer_factory
        self._timer: threading.Timer | None = None
        self.fired = False

    def start(self) -> None:
        if self._threshold_seconds <= 0 or self._timer is not None:
            return
        timer = self._timer_factory(self._threshold_seconds, self._on_timeout)
        timer.daemon = True
        timer.start()
        self._timer = timer

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timeout(self) -> None:
        self.fired = True
        logger.warning(
            "Run %s still in progress after %.0f minutes",
            self._label,
            self._threshold_seconds / 60,
        )

    def __enter__(self) -> "RunWatchdog":
        self.start()
        return self

    def __exit__(self, exc_type: object, exc: object, exc_tb: object) -> None:
        self.cancel()
        return None
