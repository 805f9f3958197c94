from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping
from zoneinfo import ZoneInfo

from analytics_sync.core.metrics import RECORDS_DROPPED, metrics_registry
from analytics_sync.domain.dates import parse_iso_datetime, to_iso_date
from analytics_sync.domain.models import CanonicalRecord, PostRecord
from analytics_sync.domain.ports import RawDataPoint

logger = logging.getLogger(__name__)

PROFILE_ID_KEY = "customer_profile_id"
REPORTING_PERIOD_KEYS = ("reporting_period.by(day)", "reporting_period")
CREATED_TIME_KEY = "created_time"


def _dimensions(point: Mapping[str, Any]) -> Mapping[str, Any]:
    dimensions = point.get("dimensions")
    return dimensions if isinstance(dimensions, Mapping) else {}


def _metrics(point: Mapping[str, Any]) -> Mapping[str, Any]:
    metrics = point.get("metrics")
    return metrics if isinstance(metrics, Mapping) else {}


def _first_present(source: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = source.get(key)
        if value not in (None, ""):
            return value
    return None


def normalize(raw_page: Iterable[RawDataPoint]) -> list[CanonicalRecord]:
    """Collapses raw profile analytics into one record per (profile, day).

    The first point seen for a key wins and output keeps first-seen order.
    """
    records: dict[str, CanonicalRecord] = {}
    skipped = 0
    for point in raw_page:
        if not isinstance(point, Mapping):
            skipped += 1
            continue
        dimensions = _dimensions(point)
        profile_id = dimensions.get(PROFILE_ID_KEY)
        iso_date = to_iso_date(_first_present(dimensions, REPORTING_PERIOD_KEYS))
        if profile_id in (None, "") or iso_date is None:
            skipped += 1
            logger.warning("Skipping data point without profile id or reporting period: %s", dict(dimensions))
            continue
        record = CanonicalRecord(profile_id=str(profile_id), iso_date=iso_date, raw_metrics=dict(_metrics(point)))
        records.setdefault(record.key, record)
    if skipped:
        metrics_registry.increment(RECORDS_DROPPED, skipped)
    return list(records.values())


def normalize_posts(
    raw_posts: Iterable[RawDataPoint],
    profile_id: str,
    timezone_name: str = "UTC",
) -> list[PostRecord]:
    """Post records stamped in ``timezone_name``, the zone the posts were queried in.

    Column A and the reconciler both read the calendar day of that stamp, so a
    post always lands in, and is cleared from, the day the upstream filter used.
    """
    zone = ZoneInfo(timezone_name)
    records: dict[str, PostRecord] = {}
    skipped = 0
    for point in raw_posts:
        if not isinstance(point, Mapping):
            skipped += 1
            continue
        dimensions = _dimensions(point)
        created_raw = _first_present(point, (CREATED_TIME_KEY,)) or _first_present(
            dimensions, (CREATED_TIME_KEY, *REPORTING_PERIOD_KEYS)
        )
        created = parse_iso_datetime(str(created_raw)) if created_raw is not None else None
        if created is None:
            skipped += 1
            logger.warning("Skipping post without a usable created_time for profile %s", profile_id)
            continue
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        local = created.astimezone(zone)
        owner = point.get(PROFILE_ID_KEY) or dimensions.get(PROFILE_ID_KEY) or profile_id
        text = _first_present(point, ("text",)) or _first_present(dimensions, ("message", "caption")) or point.get("message") or ""
        record = PostRecord(
            profile_id=str(owner),
            created_time=_timestamp(local),
            iso_date=local.date().isoformat(),
            perma_link=str(point.get("perma_link") or dimensions.get("post_url") or point.get("post_url") or ""),
            text=str(text),
            raw_metrics=dict(_metrics(point)),
        )
        records.setdefault(record.key, record)
    if skipped:
        metrics_registry.increment(RECORDS_DROPPED, skipped)
    return list(records.values())


def _timestamp(value: datetime) -> str:
    stamp = value.isoformat(timespec="milliseconds")
    if stamp.endswith("+00:00"):
        return stamp[: -len("+00:00")] + "Z"
    return stamp
