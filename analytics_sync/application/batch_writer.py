from __future__ import annotations

import logging
import re
from typing import Any, Sequence

from analytics_sync.application.rate_limiter import WriteRateLimiter
from analytics_sync.application.retry_policy import RetryPolicy
from analytics_sync.core.metrics import SHEET_ROWS_WRITTEN, SHEET_WRITES, MetricsRegistry, metrics_registry
from analytics_sync.domain.dates import format_date_by_pattern, infer_date_pattern
from analytics_sync.domain.errors import FailureKind, UpstreamError
from analytics_sync.domain.models import Destination, RetryState
from analytics_sync.domain.ports import SpreadsheetStore
from analytics_sync.domain.results import FetchResult

logger = logging.getLogger(__name__)

DATE_COLUMN = 1
PATTERN_SAMPLE_ROWS = 50
CAPACITY_STEP_ROWS = 1000
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def next_data_row(column_values: Sequence[Any]) -> int:
    """First free row after the last non-empty date cell; never the header row."""
    last = 0
    for index, value in enumerate(column_values, start=1):
        if value not in (None, ""):
            last = index
    return max(last + 1, 2)


def apply_date_pattern(rows: Sequence[Sequence[Any]], pattern: str | None) -> list[list[Any]]:
    rendered: list[list[Any]] = []
    for row in rows:
        cells = list(row)
        if cells and isinstance(cells[0], str) and _ISO_DATE_RE.match(cells[0]):
            cells[0] = format_date_by_pattern(cells[0], pattern)
        rendered.append(cells)
    return rendered


class BatchWriter:
    """Appends rows below the existing data of a destination tab.

    Every sink call is spaced by the shared rate limiter and retried through the
    retry policy. Grid-limit failures grow the tab before the next attempt.
    """

    def __init__(
        self,
        store: SpreadsheetStore,
        policy: RetryPolicy,
        limiter: WriteRateLimiter,
        *,
        safety_margin_rows: int = 2000,
        min_columns: int = 30,
        metrics: MetricsRegistry = metrics_registry,
    ) -> None:
        self._store = store
        self._policy = policy
        self._limiter = limiter
        self._safety_margin_rows = safety_margin_rows
        self._min_columns = min_columns
        self._metrics = metrics

    def ensure_header(self, destination: Destination, headers: Sequence[str]) -> None:
        current = self._policy.run(
            f"read_header({destination.tab_name})",
            lambda: self._store.read_header(destination),
        ).unwrap()
        if list(current or []) == list(headers):
            return
        logger.info("Writing header row on %s (%s columns)", destination.tab_name, len(headers))
        self._policy.run(
            f"write_header({destination.tab_name})",
            lambda: self._store.write_header(destination, headers),
            before_attempt=self._throttle,
        ).unwrap()

    def write(self, destination: Destination, rows: Sequence[Sequence[Any]]) -> bool:
        return self.write_result(destination, rows).ok

    def write_result(self, destination: Destination, rows: Sequence[Sequence[Any]]) -> FetchResult[int]:
        if not rows:
            return FetchResult.success(0, attempts=0)

        column = self._policy.run(
            f"read_column({destination.tab_name})",
            lambda: self._store.read_column(destination, DATE_COLUMN),
        )
        if not column.ok:
            return FetchResult(error=column.error, attempts=column.attempts, exception=column.exception)
        start_row = next_data_row(column.value or [])

        pattern = self._detect_pattern(destination)
        payload = apply_date_pattern(rows, pattern)

        min_rows = start_row - 1 + len(payload) + self._safety_margin_rows
        min_cols = max(self._min_columns, max(len(row) for row in payload))
        self._grow(destination, min_rows, min_cols)

        def before_retry(exc: UpstreamError, state: RetryState) -> None:
            if exc.kind == FailureKind.CAPACITY:
                self._grow(destination, min_rows + state.attempt * CAPACITY_STEP_ROWS, min_cols)

        result = self._policy.run(
            f"write_rows({destination.tab_name})",
            lambda: self._store.write_rows(destination, start_row, payload),
            before_attempt=self._throttle,
            on_before_retry=before_retry,
        )
        if not result.ok:
            logger.error("Could not write %s row(s) to %s", len(payload), destination.tab_name)
            return FetchResult(error=result.error, attempts=result.attempts, exception=result.exception)

        self._metrics.increment(SHEET_WRITES)
        self._metrics.increment(SHEET_ROWS_WRITTEN, len(payload))
        logger.info("Wrote %s row(s) to %s starting at row %s", len(payload), destination.tab_name, start_row)
        return FetchResult.success(len(payload), attempts=result.attempts)

    def _detect_pattern(self, destination: Destination) -> str | None:
        display = self._policy.run(
            f"read_column_display({destination.tab_name})",
            lambda: self._store.read_column_display(destination, DATE_COLUMN, PATTERN_SAMPLE_ROWS),
        )
        if not display.ok:
            logger.warning("Could not sample date format of %s; writing ISO dates", destination.tab_name)
            return None
        return infer_date_pattern((display.value or [])[1:])

    def _grow(self, destination: Destination, min_rows: int, min_cols: int) -> None:
        result = self._policy.run(
            f"ensure_capacity({destination.tab_name})",
            lambda: self._store.ensure_capacity(destination, min_rows, min_cols),
            before_attempt=self._throttle,
        )
        if not result.ok:
            logger.warning(
                "Capacity check failed for %s (rows=%s cols=%s): %s",
                destination.tab_name,
                min_rows,
                min_cols,
                result.error.message if result.error else "unknown",
            )

    def _throttle(self, _state: RetryState) -> None:
        self._limiter.wait()
