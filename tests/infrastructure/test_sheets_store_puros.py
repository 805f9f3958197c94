from __future__ import annotations

import pytest

from analytics_sync.infrastructure.sheets_store_puros import (
    build_clear_ranges,
    build_delete_requests,
    column_letter,
    flatten_column,
)


@pytest.mark.parametrize("index, letters", [(1, "A"), (26, "Z"), (27, "AA"), (45, "AS"), (702, "ZZ"), (703, "AAA")])
def test_column_letter(index: int, letters: str) -> None:
    assert column_letter(index) == letters


def test_column_letter_rejects_zero() -> None:
    with pytest.raises(ValueError):
        column_letter(0)


def test_delete_requests_use_zero_based_exclusive_indexes_in_given_order() -> None:
    requests_body = build_delete_requests(7, [(9, 10), (3, 5)])

    assert [item["deleteDimension"]["range"] for item in requests_body] == [
        {"sheetId": 7, "dimension": "ROWS", "startIndex": 8, "endIndex": 10},
        {"sheetId": 7, "dimension": "ROWS", "startIndex": 2, "endIndex": 5},
    ]


def test_clear_ranges_cover_full_rows() -> None:
    assert build_clear_ranges([(3, 5), (9, 9)], 45) == ["A3:AS5", "A9:AS9"]


def test_flatten_column() -> None:
    assert flatten_column([["Date"], [], ["2025-04-01"]]) == ["Date", "", "2025-04-01"]
    assert flatten_column(None) == []
