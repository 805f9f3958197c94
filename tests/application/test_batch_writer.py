from __future__ import annotations

import pytest

from analytics_sync.application.batch_writer import BatchWriter, apply_date_pattern, next_data_row
from analytics_sync.application.rate_limiter import WriteRateLimiter
from analytics_sync.application.reconciler import OverlapReconciler
from analytics_sync.application.retry_policy import BackoffSettings, RetryPolicy
from analytics_sync.core.metrics import SHEET_ROWS_WRITTEN, SHEET_WRITES
from analytics_sync.domain.dates import PATTERN_DAY_FIRST
from analytics_sync.domain.errors import AuthFailureError, FailureKind
from analytics_sync.domain.models import WriteWindow
from tests.fakes import InMemorySpreadsheetStore

HEADER = ["Date", "Profile", "Likes"]
WINDOW = WriteWindow("2025-04-01", "2025-04-01")


def _writer(store, policy, limiter, metrics, **kwargs) -> BatchWriter:
    return BatchWriter(store, policy, limiter, metrics=metrics, **kwargs)


def test_next_data_row_follows_last_non_empty_date() -> None:
    assert next_data_row([]) == 2
    assert next_data_row(["Date"]) == 2
    assert next_data_row(["Date", "2025-04-01", "", "2025-04-02", ""]) == 5


def test_apply_date_pattern_only_rewrites_iso_first_cells() -> None:
    rows = apply_date_pattern([["2025-04-09", 1], ["n/a", 2], [45748, 3]], PATTERN_DAY_FIRST)

    assert rows == [["09/04/2025", 1], ["n/a", 2], [45748, 3]]


def test_write_appends_after_header_on_fresh_tab(store: InMemorySpreadsheetStore, policy, limiter, metrics) -> None:
    destination = store.seed("Acme", "Facebook", [HEADER])

    result = _writer(store, policy, limiter, metrics).write_result(destination, [["2025-04-01", "Acme", 13]])

    assert result.ok and result.value == 1
    assert store.rows("Acme", "Facebook") == [HEADER, ["2025-04-01", "Acme", 13]]
    assert metrics.counter(SHEET_WRITES) == 1
    assert metrics.counter(SHEET_ROWS_WRITTEN) == 1


def test_write_matches_existing_display_format(policy, limiter, metrics) -> None:
    store = InMemorySpreadsheetStore(display_values={"Facebook": ["Date", "31/03/2025", "30/03/2025"]})
    destination = store.seed("Acme", "Facebook", [HEADER, ["2025-03-31", "Acme", 1], ["2025-03-30", "Acme", 1]])

    _writer(store, policy, limiter, metrics).write(destination, [["2025-04-01", "Acme", 2]])

    assert store.rows("Acme", "Facebook")[3] == ["01/04/2025", "Acme", 2]


def test_write_grows_grid_before_writing(store: InMemorySpreadsheetStore, policy, limiter, metrics) -> None:
    destination = store.seed("Acme", "Facebook", [HEADER])

    _writer(store, policy, limiter, metrics, safety_margin_rows=2000, min_columns=30).write(
        destination, [["2025-04-01", "Acme", 1]] * 3
    )

    assert ("ensure_capacity", ("Facebook", 1 + 3 + 2000, 30)) in store.calls


def test_capacity_failure_grows_tab_and_retries(policy, limiter, metrics) -> None:
    store = InMemorySpreadsheetStore(grid_rows=3)
    destination = store.seed("Acme", "Facebook", [HEADER])
    writer = _writer(store, policy, limiter, metrics, safety_margin_rows=0, min_columns=3)
    real_ensure = store.ensure_capacity
    grows: list[int] = []

    def ensure_capacity_once(dest, min_rows, min_cols) -> None:
        grows.append(min_rows)
        # The first resize silently does nothing, like a stale grid size would.
        if len(grows) > 1:
            real_ensure(dest, min_rows, min_cols)

    store.ensure_capacity = ensure_capacity_once  # type: ignore[method-assign]

    rows = [["2025-04-01", "Acme", index] for index in range(5)]
    assert writer.write(destination, rows)

    assert grows == [6, 6 + 1000]
    assert store.call_names().count("write_rows") == 2
    assert len(store.rows("Acme", "Facebook")) == 6


def test_write_failure_is_reported_not_raised(clock, limiter, metrics) -> None:
    store = InMemorySpreadsheetStore(failures={"write_rows": [AuthFailureError("denied", status_code=403)] * 3})
    destination = store.seed("Acme", "Facebook", [HEADER])
    policy = RetryPolicy(BackoffSettings(base_ms=30000), clock, rng=lambda: 0.5, metrics=metrics)

    result = _writer(store, policy, limiter, metrics).write_result(destination, [["2025-04-01", "Acme", 1]])

    assert not result.ok
    assert result.error is not None and result.error.kind == FailureKind.AUTH
    assert store.rows("Acme", "Facebook") == [HEADER]


def test_ensure_header_rewrites_only_when_different(store: InMemorySpreadsheetStore, policy, limiter, metrics) -> None:
    destination = store.seed("Acme", "Facebook", [])
    writer = _writer(store, policy, limiter, metrics)

    writer.ensure_header(destination, HEADER)
    writer.ensure_header(destination, HEADER)

    assert store.call_names().count("write_header") == 1
    assert store.rows("Acme", "Facebook") == [HEADER]


def test_sink_writes_are_spaced_by_the_shared_limiter(store: InMemorySpreadsheetStore, policy, clock, metrics) -> None:
    limiter = WriteRateLimiter(clock, min_interval_seconds=2.0)
    destination = store.seed("Acme", "Facebook", [HEADER])
    writer = _writer(store, policy, limiter, metrics)

    writer.write(destination, [["2025-04-01", "Acme", 1]])
    writer.write(destination, [["2025-04-02", "Acme", 1]])

    # ensure_capacity + write_rows per call: the three calls after the first all wait.
    assert clock.sleeps == [pytest.approx(2.0)] * 3


def test_reconcile_then_write_twice_is_idempotent(store: InMemorySpreadsheetStore, policy, limiter, metrics) -> None:
    destination = store.seed(
        "Acme",
        "Facebook",
        [HEADER, ["2025-03-31", "Acme", 4], ["2025-04-01", "Acme", 999]],
    )
    reconciler = OverlapReconciler(store, policy, limiter=limiter, metrics=metrics)
    writer = _writer(store, policy, limiter, metrics)
    fetched = [["2025-04-01", "Acme", 13]]

    reconciler.reconcile(destination, WINDOW)
    writer.write(destination, fetched)
    after_first = [list(row) for row in store.rows("Acme", "Facebook")]
    reconciler.reconcile(destination, WINDOW)
    writer.write(destination, fetched)

    assert after_first == [HEADER, ["2025-03-31", "Acme", 4], ["2025-04-01", "Acme", 13]]
    assert store.rows("Acme", "Facebook") == after_first
