from __future__ import annotations

from analytics_sync.application.reporting import EXIT_GROUP_ERRORS, EXIT_OK, exit_code, summary_lines
from analytics_sync.domain.sync_models import (
    STATUS_COMPLETED,
    STATUS_NO_DATA,
    GroupResult,
    NetworkOutcome,
    RunSummary,
    error_status,
)


def _summary() -> RunSummary:
    completed = GroupResult(
        "g1",
        "Acme",
        STATUS_COMPLETED,
        [NetworkOutcome("facebook", "Facebook", STATUS_COMPLETED, rows_written=2, rows_removed=1, records_dropped=1)],
        spreadsheet_url="https://docs.google.com/spreadsheets/d/abc/edit",
    )
    empty = GroupResult("g2", "Globex", STATUS_NO_DATA, [NetworkOutcome("twitter", "Twitter")])
    return RunSummary("2025-04-01..2025-04-01", groups=[completed, empty], metrics={"counters": {"api.calls": 4}})


def test_exit_code_reflects_group_errors() -> None:
    summary = _summary()
    assert exit_code(summary) == EXIT_OK

    summary.groups[1].status = error_status("twitter: denied")
    assert exit_code(summary) == EXIT_GROUP_ERRORS


def test_summary_lines_list_groups_networks_and_totals() -> None:
    summary = _summary()
    summary.watchdog_fired = True

    lines = summary_lines(summary)

    assert lines[0] == "Sync summary for 2025-04-01..2025-04-01"
    assert "- Acme: Completed" in lines
    assert "    https://docs.google.com/spreadsheets/d/abc/edit" in lines
    assert any("facebook" in line and "written=2 removed=1 dropped=1" in line for line in lines)
    assert "Groups: 2 total, 0 with errors. Rows written: 2, rows removed: 1." in lines
    assert "Warning: run exceeded the watchdog threshold." in lines
    assert lines[-1] == "Metrics: api.calls=4"


def test_summary_lines_show_fatal_error() -> None:
    lines = summary_lines(RunSummary("2025-04-01..2025-04-01", fatal_error="directory unavailable"))

    assert lines[1] == "  FATAL: directory unavailable"
