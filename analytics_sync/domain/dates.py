from __future__ import annotations

import math
import re
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable

SERIAL_EPOCH = date(1899, 12, 30)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_NUMERIC_RE = re.compile(r"^-?\d+(\.\d+)?$")
_SLASH_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DAY_MONTH_NAME_RE = re.compile(r"^\d{1,2}\s+[A-Za-z]{3,}\.?\s+\d{4}$")
_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_TEXT_FORMATS = (
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%d.%m.%Y",
)

PATTERN_ISO = "yyyy-mm-dd"
PATTERN_MONTH_FIRST = "mm/dd/yyyy"
PATTERN_DAY_FIRST = "dd/mm/yyyy"
PATTERN_DAY_MONTH_NAME = "d mmm yyyy"


def serial_to_date(serial: float) -> date | None:
    """Spreadsheet serial day count (epoch 1899-12-30) to a calendar date; time of day is dropped.

    Serials outside the range ``date`` can hold (pasted ids, stray totals) give ``None``.
    """
    if not math.isfinite(serial):
        return None
    try:
        return SERIAL_EPOCH + timedelta(days=math.floor(serial))
    except OverflowError:
        return None


def date_to_serial(value: date) -> int:
    return (value - SERIAL_EPOCH).days


def parse_iso_datetime(value: str, *, to_utc: bool = True) -> datetime | None:
    """ISO timestamp parser; ``to_utc=False`` keeps the wall time as written."""
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if to_utc and parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed


def to_iso_date(value: Any) -> str | None:
    """Reporting-period or timestamp value from the API to ``YYYY-MM-DD``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if _ISO_DATE_RE.match(text):
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            return None
    parsed = parse_iso_datetime(text)
    return parsed.date().isoformat() if parsed else None


def _parse_slash_date(first: int, second: int, year: int) -> date | None:
    # Month-first unless the first component can only be a day.
    month, day = (second, first) if first > 12 else (first, second)
    try:
        return date(year, month, day)
    except ValueError:
        return None


def normalize_sheet_date(value: Any) -> str | None:
    """Normalizes one on-sheet date cell to ISO, or ``None`` when it is not a date."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)):
        serial_day = serial_to_date(value)
        return serial_day.isoformat() if serial_day else None

    text = str(value).strip()
    if not text:
        return None
    if _ISO_DATE_RE.match(text):
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            return None
    if _NUMERIC_RE.match(text):
        serial_day = serial_to_date(float(text))
        return serial_day.isoformat() if serial_day else None

    slash = _SLASH_DATE_RE.match(text)
    if slash:
        parsed_slash = _parse_slash_date(int(slash.group(1)), int(slash.group(2)), int(slash.group(3)))
        return parsed_slash.isoformat() if parsed_slash else None

    # Post timestamps are written in the timezone the posts were queried in.
    timestamp = parse_iso_datetime(text, to_utc=False)
    if timestamp is not None:
        return timestamp.date().isoformat()

    cleaned = text.replace(".", "") if _DAY_MONTH_NAME_RE.match(text) else text
    for fmt in _TEXT_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date().isoformat()
        except ValueError:
            continue
    return None


def infer_date_pattern(samples: Iterable[Any]) -> str | None:
    """Guesses the display pattern of a date column from a handful of rendered cells."""
    votes: Counter[str] = Counter()
    day_first_seen = False
    month_first_seen = False
    for sample in samples:
        text = str(sample).strip() if sample is not None else ""
        if not text:
            continue
        if _ISO_DATE_RE.match(text):
            votes[PATTERN_ISO] += 1
            continue
        slash = _SLASH_DATE_RE.match(text)
        if slash:
            first, second = int(slash.group(1)), int(slash.group(2))
            if first > 12:
                day_first_seen = True
            elif second > 12:
                month_first_seen = True
            votes["slash"] += 1
            continue
        if _DAY_MONTH_NAME_RE.match(text):
            votes[PATTERN_DAY_MONTH_NAME] += 1
    if not votes:
        return None
    winner = votes.most_common(1)[0][0]
    if winner == "slash":
        return PATTERN_DAY_FIRST if day_first_seen and not month_first_seen else PATTERN_MONTH_FIRST
    return winner


def format_date_by_pattern(iso_date: str, pattern: str | None) -> str:
    if not pattern or not _ISO_DATE_RE.match(iso_date):
        return iso_date
    year, month, day = iso_date.split("-")
    if pattern == PATTERN_DAY_FIRST:
        return f"{day}/{month}/{year}"
    if pattern == PATTERN_MONTH_FIRST:
        return f"{month}/{day}/{year}"
    if pattern == PATTERN_DAY_MONTH_NAME:
        return f"{int(day)} {_MONTH_ABBR[int(month) - 1]} {year}"
    return iso_date


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    for day in range(value.day, 27, -1):
        try:
            return date(year, month, day)
        except ValueError:
            continue
    return date(year, month, min(value.day, 28))
