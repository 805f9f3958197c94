from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Sequence

from analytics_sync.application.retry_policy import RetryPolicy
from analytics_sync.domain.models import WriteWindow
from analytics_sync.domain.ports import AnalyticsSource, RawDataPoint
from analytics_sync.domain.results import FetchResult

logger = logging.getLogger(__name__)

CHUNK_MONTHS = 3


@dataclass(frozen=True)
class QueryVariant:
    filter_field: str
    with_metrics: bool

    @property
    def label(self) -> str:
        return f"{self.filter_field} + metrics" if self.with_metrics else f"{self.filter_field} (no metrics)"


POST_QUERY_VARIANTS: tuple[QueryVariant, ...] = (
    QueryVariant("created_time", True),
    QueryVariant("created_time", False),
    QueryVariant("reporting_period", True),
    QueryVariant("reporting_period", False),
)


class ResilientFetchClient:
    """Retried reads against the analytics source.

    Every method returns a ``FetchResult``; exhausted retries become a failed
    result so callers can skip one profile and keep going.
    """

    def __init__(self, source: AnalyticsSource, policy: RetryPolicy, *, chunk_months: int = CHUNK_MONTHS) -> None:
        self._source = source
        self._policy = policy
        self._chunk_months = chunk_months

    def fetch(self, operation_name: str, request: Callable[[], list[RawDataPoint]]) -> FetchResult[list[RawDataPoint]]:
        return self._policy.run(operation_name, request)

    def fetch_profile_analytics(
        self,
        profile_ids: Sequence[str],
        window: WriteWindow,
        metric_keys: Sequence[str] | None = None,
    ) -> FetchResult[list[RawDataPoint]]:
        points: list[RawDataPoint] = []
        attempts = 0
        for chunk in window.split(self._chunk_months):
            result = self.fetch(
                f"analytics.profiles({','.join(profile_ids)} {chunk.label()})",
                lambda chunk=chunk: self._source.query(profile_ids, chunk, metric_keys),
            )
            attempts += result.attempts
            if not result.ok:
                return FetchResult(error=result.error, attempts=attempts, exception=result.exception)
            points.extend(result.value or [])
        return FetchResult.success(points, attempts=attempts)

    def fetch_posts(
        self,
        profile_id: str,
        window: WriteWindow,
        metric_keys: Sequence[str] | None = None,
        variants: Sequence[QueryVariant] = POST_QUERY_VARIANTS,
    ) -> FetchResult[list[RawDataPoint]]:
        attempts = 0
        answered = False
        last_failure: FetchResult[list[RawDataPoint]] | None = None
        for variant in variants:
            keys = metric_keys if variant.with_metrics else None
            result = self.fetch(
                f"analytics.posts({profile_id} {variant.label})",
                lambda variant=variant, keys=keys: self._source.query_posts(
                    profile_id, window, variant.filter_field, keys
                ),
            )
            attempts += result.attempts
            if not result.ok:
                last_failure = result
                continue
            answered = True
            count = len(result.value or [])
            logger.info("Posts profile=%s variant=%r count=%s", profile_id, variant.label, count)
            if count:
                return FetchResult.success(list(result.value or []), attempts=attempts)

        if answered or last_failure is None:
            logger.warning("Posts profile=%s returned no data for any variant in %s", profile_id, window.label())
            return FetchResult.success([], attempts=attempts)
        return FetchResult(error=last_failure.error, attempts=attempts, exception=last_failure.exception)
