from __future__ import annotations

from datetime import date, datetime

import pytest

from analytics_sync.domain.dates import (
    PATTERN_DAY_FIRST,
    PATTERN_DAY_MONTH_NAME,
    PATTERN_ISO,
    PATTERN_MONTH_FIRST,
    add_months,
    date_to_serial,
    format_date_by_pattern,
    infer_date_pattern,
    normalize_sheet_date,
    serial_to_date,
    to_iso_date,
)

REPRESENTATIVE_DATES = [
    date(2024, 2, 29),
    date(2024, 12, 31),
    date(2025, 1, 1),
    date(2025, 4, 1),
]


@pytest.mark.parametrize("day", REPRESENTATIVE_DATES)
def test_iso_string_normalizes_to_itself(day: date) -> None:
    assert normalize_sheet_date(day.isoformat()) == day.isoformat()


@pytest.mark.parametrize("day", REPRESENTATIVE_DATES)
def test_serial_number_normalizes_to_same_day(day: date) -> None:
    serial = date_to_serial(day)

    assert normalize_sheet_date(serial) == day.isoformat()
    assert normalize_sheet_date(float(serial)) == day.isoformat()
    assert normalize_sheet_date(str(serial)) == day.isoformat()


@pytest.mark.parametrize("day", REPRESENTATIVE_DATES)
@pytest.mark.parametrize(
    "pattern",
    [PATTERN_ISO, PATTERN_MONTH_FIRST, PATTERN_DAY_MONTH_NAME],
)
def test_locale_rendering_normalizes_to_same_day(day: date, pattern: str) -> None:
    rendered = format_date_by_pattern(day.isoformat(), pattern)

    assert normalize_sheet_date(rendered) == day.isoformat()


def test_serial_epoch_and_fraction_is_floored() -> None:
    assert serial_to_date(0) == date(1899, 12, 30)
    assert date_to_serial(date(2025, 4, 1)) == 45748
    # 45748.75 is 18:00 on 2025-04-01; time of day never moves the date forward.
    assert serial_to_date(45748.75) == date(2025, 4, 1)


def test_day_first_slash_dates_are_detected_when_unambiguous() -> None:
    assert normalize_sheet_date("31/12/2024") == "2024-12-31"
    assert normalize_sheet_date("04/01/2025") == "2025-04-01"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Apr 1, 2025", "2025-04-01"),
        ("1 Apr. 2025", "2025-04-01"),
        ("2025-04-01T23:30:00Z", "2025-04-01"),
        ("2025-04-01T20:30:00.000-05:00", "2025-04-01"),
        (datetime(2025, 4, 1, 9, 0), "2025-04-01"),
        (date(2025, 4, 1), "2025-04-01"),
    ],
)
def test_other_encodings(value, expected: str) -> None:
    assert normalize_sheet_date(value) == expected


@pytest.mark.parametrize(
    "value",
    [None, "", "Date", "not a date", True, float("nan"), "2025-02-30", 99999999, -99999999, "99999999", 1e300],
)
def test_non_dates_normalize_to_none(value) -> None:
    assert normalize_sheet_date(value) is None


def test_to_iso_date_accepts_reporting_period_timestamps() -> None:
    assert to_iso_date("2025-04-01") == "2025-04-01"
    assert to_iso_date("2025-04-01T00:00:00Z") == "2025-04-01"
    assert to_iso_date(None) is None
    assert to_iso_date("garbage") is None


@pytest.mark.parametrize(
    "samples, expected",
    [
        (["2025-04-01", "2025-04-02"], PATTERN_ISO),
        (["04/01/2025", "04/13/2025"], PATTERN_MONTH_FIRST),
        (["13/04/2025", "01/04/2025"], PATTERN_DAY_FIRST),
        (["1 Apr 2025", "2 Apr 2025", ""], PATTERN_DAY_MONTH_NAME),
        (["", None], None),
    ],
)
def test_infer_date_pattern(samples, expected) -> None:
    assert infer_date_pattern(samples) == expected


def test_format_date_by_pattern() -> None:
    assert format_date_by_pattern("2025-04-09", PATTERN_DAY_FIRST) == "09/04/2025"
    assert format_date_by_pattern("2025-04-09", PATTERN_MONTH_FIRST) == "04/09/2025"
    assert format_date_by_pattern("2025-04-09", PATTERN_DAY_MONTH_NAME) == "9 Apr 2025"
    assert format_date_by_pattern("2025-04-09", None) == "2025-04-09"


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
    assert add_months(date(2023, 11, 29), 3) == date(2024, 2, 29)
