from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import Callable, TypeVar

from analytics_sync.core.metrics import API_CALLS, API_EXHAUSTED, API_RETRIES, MetricsRegistry, metrics_registry
from analytics_sync.domain.errors import FailureKind, UpstreamError
from analytics_sync.domain.models import RetryState
from analytics_sync.domain.ports import Clock
from analytics_sync.domain.results import FetchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

BACKOFF_MULTIPLIERS: dict[FailureKind, float] = {
    FailureKind.RATE_LIMIT_OR_QUOTA: 2.2,
    FailureKind.AUTH: 2.0,
    FailureKind.SERVER: 1.8,
    FailureKind.CAPACITY: 1.5,
    FailureKind.OTHER: 1.5,
}
BACKOFF_CAP_MS = 10 * 60 * 1000
BACKOFF_FLOOR_MS = 750
BACKOFF_JITTER = 0.25


@dataclass(frozen=True)
class BackoffSettings:
    base_ms: float
    max_attempts: int = 8
    auth_max_attempts: int = 3
    cap_ms: float = BACKOFF_CAP_MS
    floor_ms: float = BACKOFF_FLOOR_MS
    jitter: float = BACKOFF_JITTER

    def ceiling_for(self, kind: FailureKind) -> int:
        if kind == FailureKind.AUTH:
            return min(self.auth_max_attempts, self.max_attempts)
        return self.max_attempts


def compute_backoff_ms(
    kind: FailureKind,
    attempt: int,
    base_ms: float,
    *,
    rng: Callable[[], float] = random.random,
    retry_after_seconds: float | None = None,
    cap_ms: float = BACKOFF_CAP_MS,
    floor_ms: float = BACKOFF_FLOOR_MS,
    jitter: float = BACKOFF_JITTER,
) -> float:
    """Delay before retry number ``attempt`` (1-based) of a failure of class ``kind``."""
    multiplier = BACKOFF_MULTIPLIERS.get(kind, BACKOFF_MULTIPLIERS[FailureKind.OTHER])
    delay = base_ms * multiplier ** max(attempt - 1, 0)
    delay *= 1 + (rng() * 2 - 1) * jitter
    delay = max(min(delay, cap_ms), floor_ms)
    if retry_after_seconds:
        delay = max(delay, retry_after_seconds * 1000)
    return delay


BeforeAttempt = Callable[[RetryState], None]
BeforeRetry = Callable[[UpstreamError, RetryState], None]


class RetryPolicy:
    """Runs one logical operation until it succeeds or its attempt ceiling is hit.

    Only ``UpstreamError`` is retried. Anything else is a programming error and
    propagates untouched.
    """

    def __init__(
        self,
        settings: BackoffSettings,
        clock: Clock,
        *,
        rng: Callable[[], float] = random.random,
        metrics: MetricsRegistry = metrics_registry,
    ) -> None:
        self.settings = settings
        self._clock = clock
        self._rng = rng
        self._metrics = metrics

    def run(
        self,
        operation_name: str,
        operation: Callable[[], T],
        *,
        before_attempt: BeforeAttempt | None = None,
        on_before_retry: BeforeRetry | None = None,
    ) -> FetchResult[T]:
        state = RetryState()
        while True:
            state.attempt += 1
            if before_attempt is not None:
                before_attempt(state)
            self._metrics.increment(API_CALLS)
            try:
                value = operation()
            except UpstreamError as exc:
                ceiling = self.settings.ceiling_for(exc.kind)
                if state.attempt >= ceiling:
                    self._metrics.increment(API_EXHAUSTED)
                    logger.error(
                        "%s failed after %s attempts (%s): %s",
                        operation_name,
                        state.attempt,
                        exc.kind.value,
                        exc,
                    )
                    return FetchResult.failure(exc, attempts=state.attempt)
                state.backoff_ms = compute_backoff_ms(
                    exc.kind,
                    state.attempt,
                    self.settings.base_ms,
                    rng=self._rng,
                    retry_after_seconds=exc.retry_after_seconds,
                    cap_ms=self.settings.cap_ms,
                    floor_ms=self.settings.floor_ms,
                    jitter=self.settings.jitter,
                )
                self._metrics.increment(API_RETRIES)
                logger.warning(
                    "%s failed (%s). attempt=%s/%s backoff=%.0fms",
                    operation_name,
                    exc.kind.value,
                    state.attempt,
                    ceiling,
                    state.backoff_ms,
                )
                if on_before_retry is not None:
                    on_before_retry(exc, state)
                self._clock.sleep(state.backoff_ms / 1000)
                continue
            return FetchResult.success(value, attempts=state.attempt)
