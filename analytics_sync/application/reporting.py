from __future__ import annotations

from analytics_sync.domain.sync_models import RunSummary

EXIT_OK = 0
EXIT_GROUP_ERRORS = 1
EXIT_CONFIG_ERROR = 2


def exit_code(summary: RunSummary) -> int:
    return EXIT_GROUP_ERRORS if summary.has_errors else EXIT_OK


def summary_lines(summary: RunSummary) -> list[str]:
    lines = [f"Sync summary for {summary.window_label}"]
    if summary.fatal_error:
        lines.append(f"  FATAL: {summary.fatal_error}")
    for group in summary.groups:
        lines.append(f"- {group.group_name}: {group.status}")
        if group.spreadsheet_url:
            lines.append(f"    {group.spreadsheet_url}")
        for outcome in group.networks:
            detail = f"written={outcome.rows_written} removed={outcome.rows_removed}"
            if outcome.records_dropped:
                detail += f" dropped={outcome.records_dropped}"
            lines.append(f"    {outcome.network:<16} {outcome.status} ({detail})")
    failed = sum(1 for group in summary.groups if group.failed)
    lines.append(
        f"Groups: {len(summary.groups)} total, {failed} with errors. "
        f"Rows written: {summary.rows_written}, rows removed: {summary.rows_removed}."
    )
    if summary.watchdog_fired:
        lines.append("Warning: run exceeded the watchdog threshold.")
    counters = summary.metrics.get("counters", {}) if summary.metrics else {}
    if counters:
        lines.append("Metrics: " + ", ".join(f"{name}={value}" for name, value in sorted(counters.items())))
    return lines
