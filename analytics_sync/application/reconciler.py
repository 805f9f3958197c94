from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Iterable, Sequence

from analytics_sync.application.rate_limiter import WriteRateLimiter
from analytics_sync.application.retry_policy import RetryPolicy
from analytics_sync.core.metrics import SHEET_ROWS_CLEARED, SHEET_ROWS_DELETED, MetricsRegistry, metrics_registry
from analytics_sync.domain.dates import normalize_sheet_date
from analytics_sync.domain.models import Destination, RetryState, WriteWindow
from analytics_sync.domain.ports import RowRange, SpreadsheetStore

logger = logging.getLogger(__name__)

DATE_COLUMN = 1
HEADER_ROWS = 1

METHOD_NONE = "none"
METHOD_DELETE = "delete"
METHOD_CLEAR = "clear"


def find_rows_in_window(column_values: Sequence[Any], window: WriteWindow) -> list[int]:
    """1-indexed sheet rows whose date cell falls inside ``window``. Row 1 is the header."""
    matches: list[int] = []
    for row_number, value in enumerate(column_values[HEADER_ROWS:], start=HEADER_ROWS + 1):
        if window.contains(normalize_sheet_date(value)):
            matches.append(row_number)
    return matches


def coalesce_row_ranges(row_numbers: Iterable[int]) -> list[RowRange]:
    ranges: list[RowRange] = []
    for row in sorted(set(row_numbers)):
        if ranges and row == ranges[-1][1] + 1:
            ranges[-1] = (ranges[-1][0], row)
        else:
            ranges.append((row, row))
    return ranges


def order_for_deletion(ranges: Iterable[RowRange]) -> list[RowRange]:
    # Bottom-up so earlier deletions never shift rows still pending.
    return sorted(ranges, key=lambda item: item[0], reverse=True)


@dataclass(frozen=True)
class ReconcileOutcome:
    method: str = METHOD_NONE
    ranges: list[RowRange] = field(default_factory=list)

    @property
    def rows_removed(self) -> int:
        return sum(end - start + 1 for start, end in self.ranges)


class OverlapReconciler:
    """Removes the rows of a write window from a destination before new rows land.

    Reads go through the retry policy; a read or removal that still fails after
    retries raises the mapped upstream error so the caller can skip the write.
    """

    def __init__(
        self,
        store: SpreadsheetStore,
        policy: RetryPolicy,
        *,
        limiter: WriteRateLimiter | None = None,
        metrics: MetricsRegistry = metrics_registry,
    ) -> None:
        self._store = store
        self._policy = policy
        self._limiter = limiter
        self._metrics = metrics

    def reconcile(self, destination: Destination, window: WriteWindow) -> ReconcileOutcome:
        column = self._policy.run(
            f"read_column({destination.tab_name})",
            lambda: self._store.read_column(destination, DATE_COLUMN),
        ).unwrap()
        rows = find_rows_in_window(column or [], window)
        if not rows:
            logger.info("No existing rows in %s for %s", destination.tab_name, window.label())
            return ReconcileOutcome()

        ranges = coalesce_row_ranges(rows)
        if destination.sheet_id is None:
            logger.warning(
                "Tab %s has no sheet id; clearing %s row(s) in place instead of deleting",
                destination.tab_name,
                len(rows),
            )
            self._policy.run(
                f"clear_ranges({destination.tab_name})",
                lambda: self._store.clear_ranges(destination, ranges),
                before_attempt=self._throttle,
            ).unwrap()
            outcome = ReconcileOutcome(METHOD_CLEAR, ranges)
            self._metrics.increment(SHEET_ROWS_CLEARED, outcome.rows_removed)
        else:
            ordered = order_for_deletion(ranges)
            self._policy.run(
                f"delete_rows({destination.tab_name})",
                lambda: self._store.delete_rows(destination, ordered),
                before_attempt=self._throttle,
            ).unwrap()
            outcome = ReconcileOutcome(METHOD_DELETE, ordered)
            self._metrics.increment(SHEET_ROWS_DELETED, outcome.rows_removed)

        logger.info(
            "Removed %s row(s) in %s range(s) from %s for %s",
            outcome.rows_removed,
            len(ranges),
            destination.tab_name,
            window.label(),
        )
        return outcome

    def _throttle(self, _state: RetryState) -> None:
        if self._limiter is not None:
            self._limiter.wait()
