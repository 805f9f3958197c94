from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from analytics_sync.application.rate_limiter import WriteRateLimiter
from analytics_sync.application.retry_policy import BackoffSettings, RetryPolicy
from analytics_sync.core.metrics import MetricsRegistry
from tests.fakes import FakeClock, InMemorySpreadsheetStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def metrics() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def store() -> InMemorySpreadsheetStore:
    return InMemorySpreadsheetStore()


@pytest.fixture
def policy(clock: FakeClock, metrics: MetricsRegistry) -> RetryPolicy:
    return RetryPolicy(BackoffSettings(base_ms=1000), clock, rng=lambda: 0.5, metrics=metrics)


@pytest.fixture
def limiter(clock: FakeClock) -> WriteRateLimiter:
    return WriteRateLimiter(clock, min_interval_seconds=2.0)


@pytest.fixture
def isolated_logging():
    """Restores root handlers replaced by ``configure_logging``."""
    root_logger = logging.getLogger()
    previous_handlers = list(root_logger.handlers)
    previous_level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if handler not in previous_handlers:
            handler.close()
    for handler in previous_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(previous_level)
