from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Protocol, Sequence

from analytics_sync.domain.models import Destination, Group, ProfileMeta, WriteWindow

RawDataPoint = dict[str, Any]
CellValue = Any
RowRange = tuple[int, int]


class Clock(Protocol):
    def now(self) -> datetime:
        ...

    def monotonic(self) -> float:
        ...

    def sleep(self, seconds: float) -> None:
        ...


class AnalyticsSource(Protocol):
    def query(
        self,
        profile_ids: Sequence[str],
        window: WriteWindow,
        metric_keys: Sequence[str] | None = None,
    ) -> list[RawDataPoint]:
        ...

    def query_posts(
        self,
        profile_id: str,
        window: WriteWindow,
        filter_field: str,
        metric_keys: Sequence[str] | None = None,
    ) -> list[RawDataPoint]:
        ...


class ProfileDirectory(Protocol):
    def list_groups(self) -> list[Group]:
        ...

    def list_profiles(self) -> list[ProfileMeta]:
        ...


class SpreadsheetStore(Protocol):
    def resolve_or_create_destination(self, group_key: str, tab_key: str) -> Destination:
        ...

    def read_column(self, destination: Destination, column_index: int) -> list[CellValue]:
        """Unformatted values of one column, row 1 first."""
        ...

    def read_column_display(
        self, destination: Destination, column_index: int, max_rows: int
    ) -> list[str]:
        ...

    def read_header(self, destination: Destination) -> list[str]:
        ...

    def write_header(self, destination: Destination, headers: Sequence[str]) -> None:
        ...

    def delete_rows(self, destination: Destination, ranges: Iterable[RowRange]) -> None:
        """Deletes 1-indexed inclusive row ranges in the order given."""
        ...

    def clear_ranges(self, destination: Destination, ranges: Iterable[RowRange]) -> None:
        ...

    def ensure_capacity(self, destination: Destination, min_rows: int, min_cols: int) -> None:
        ...

    def write_rows(self, destination: Destination, start_row: int, rows: Sequence[Sequence[CellValue]]) -> None:
        ...
