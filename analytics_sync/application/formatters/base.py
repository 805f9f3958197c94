from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import json
import logging
import math
from typing import Any, Callable, ClassVar, Mapping, Sequence

from analytics_sync.core.metrics import RECORDS_DROPPED, metrics_registry
from analytics_sync.domain.errors import MalformedRecordError
from analytics_sync.domain.models import CanonicalRecord, NetworkKind, ProfileMeta

logger = logging.getLogger(__name__)

Metrics = Mapping[str, Any]
Row = list[Any]

IDENTITY_HEADERS = ("Date", "Network Type", "Profile Name", "Network ID", "Profile ID")


def safe_number(value: Any) -> int | float:
    """Numeric cell value; anything missing, non-numeric or non-finite becomes 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return 0
        if not math.isfinite(parsed):
            return 0
        return int(parsed) if parsed.is_integer() else parsed
    return 0


def rate(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0
    return round(numerator / denominator * 100, 2)


def serialize_composite(value: Any) -> str:
    if value is None or value == "":
        return ""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def first_number(metrics: Metrics, *keys: str) -> int | float:
    for key in keys:
        if metrics.get(key) is not None:
            return safe_number(metrics[key])
    return 0


def total(metrics: Metrics, *keys: str) -> int | float:
    return sum(safe_number(metrics.get(key)) for key in keys)


@dataclass(frozen=True)
class Column:
    """One output column computed from the record's metrics."""

    header: str
    extract: Callable[[Metrics], Any]
    request_keys: tuple[str, ...] = ()


def metric(header: str, *keys: str) -> Column:
    return Column(header, lambda metrics: first_number(metrics, *keys), keys[:1])


def composite(header: str, key: str) -> Column:
    return Column(header, lambda metrics: serialize_composite(metrics.get(key)), (key,))


def derived(header: str, func: Callable[[Metrics], Any], *inputs: str) -> Column:
    return Column(header, func, inputs)


class NetworkFormatter(ABC):
    """Turns one canonical record into a row for a network's fixed header list."""

    kind: ClassVar[NetworkKind]
    identity_headers: ClassVar[tuple[str, ...]] = IDENTITY_HEADERS

    @property
    @abstractmethod
    def columns(self) -> tuple[Column, ...]:
        ...

    @property
    def headers(self) -> list[str]:
        return [*self.identity_headers, *(column.header for column in self.columns)]

    @property
    def metric_keys(self) -> list[str]:
        keys: list[str] = []
        for column in self.columns:
            for key in column.request_keys:
                if key not in keys:
                    keys.append(key)
        return keys

    def identity_values(self, record: CanonicalRecord, profile: ProfileMeta) -> Row:
        return [record.iso_date, profile.network_type, profile.name, profile.network_id, record.profile_id]

    def build_row(self, record: CanonicalRecord, profile: ProfileMeta) -> Row:
        metrics = record.raw_metrics
        return [*self.identity_values(record, profile), *(column.extract(metrics) for column in self.columns)]

    def format(
        self,
        record: CanonicalRecord,
        profile: ProfileMeta,
        headers: Sequence[str] | None = None,
    ) -> Row | None:
        expected = len(headers) if headers is not None else len(self.headers)
        try:
            row = self.build_row(record, profile)
            if len(row) != expected:
                raise MalformedRecordError(f"row has {len(row)} cells, headers have {expected}")
        except (MalformedRecordError, TypeError, ValueError, KeyError) as exc:
            logger.warning("Dropping %s record %s: %s", self.kind.value, record.key, exc)
            metrics_registry.increment(RECORDS_DROPPED)
            return None
        return row
