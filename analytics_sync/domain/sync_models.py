from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

STATUS_COMPLETED = "Completed"
STATUS_NO_DATA = "No data"
STATUS_ERROR_PREFIX = "Error: "


def error_status(message: str) -> str:
    return f"{STATUS_ERROR_PREFIX}{message}"


@dataclass
class NetworkOutcome:
    network: str
    tab_name: str
    status: str = STATUS_NO_DATA
    rows_written: int = 0
    rows_removed: int = 0
    records_dropped: int = 0
    spreadsheet_url: str | None = None

    @property
    def failed(self) -> bool:
        return self.status.startswith(STATUS_ERROR_PREFIX)

    @property
    def written(self) -> bool:
        return self.status == STATUS_COMPLETED and self.rows_written > 0


@dataclass
class GroupResult:
    group_id: str
    group_name: str
    status: str = STATUS_NO_DATA
    networks: list[NetworkOutcome] = field(default_factory=list)
    spreadsheet_url: str | None = None
    duration_ms: float = 0.0

    @property
    def failed(self) -> bool:
        return self.status.startswith(STATUS_ERROR_PREFIX)

    def settle_status(self) -> str:
        """Derives the group status from its network outcomes."""
        failures = [outcome for outcome in self.networks if outcome.failed]
        if failures:
            detail = "; ".join(f"{item.network}: {item.status[len(STATUS_ERROR_PREFIX):]}" for item in failures)
            self.status = error_status(detail)
        elif any(outcome.status == STATUS_COMPLETED for outcome in self.networks):
            self.status = STATUS_COMPLETED
        else:
            self.status = STATUS_NO_DATA
        return self.status

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RunSummary:
    window_label: str
    groups: list[GroupResult] = field(default_factory=list)
    fatal_error: str | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    watchdog_fired: bool = False

    @property
    def has_errors(self) -> bool:
        return self.fatal_error is not None or any(group.failed for group in self.groups)

    @property
    def rows_written(self) -> int:
        return sum(outcome.rows_written for group in self.groups for outcome in group.networks)

    @property
    def rows_removed(self) -> int:
        return sum(outcome.rows_removed for group in self.groups for outcome in group.networks)
