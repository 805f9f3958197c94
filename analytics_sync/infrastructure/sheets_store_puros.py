from __future__ import annotations

from typing import Any, Iterable

from analytics_sync.domain.ports import RowRange


def column_letter(index: int) -> str:
    """1-based column index to A1 letters (1 -> A, 27 -> AA)."""
    if index < 1:
        raise ValueError(f"Column index must be >= 1, got {index}")
    letters = ""
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def build_delete_requests(sheet_id: int, ranges: Iterable[RowRange]) -> list[dict[str, Any]]:
    """deleteDimension requests for 1-indexed inclusive row ranges, order preserved."""
    return [
        {
            "deleteDimension": {
                "range": {
                    "sheetId": sheet_id,
                    "dimension": "ROWS",
                    "startIndex": start - 1,
                    "endIndex": end,
                }
            }
        }
        for start, end in ranges
    ]


def build_clear_ranges(ranges: Iterable[RowRange], last_column: int) -> list[str]:
    last = column_letter(max(last_column, 1))
    return [f"A{start}:{last}{end}" for start, end in ranges]


def flatten_column(values: Any) -> list[Any]:
    """``worksheet.get`` result for a single column into a flat list."""
    if not isinstance(values, list):
        return []
    return [row[0] if isinstance(row, list) and row else "" for row in values]
