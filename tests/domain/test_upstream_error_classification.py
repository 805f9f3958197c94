from __future__ import annotations

import pytest

from analytics_sync.core.errors import (
    ExternalServiceError,
    InfraError,
    PersistenceError,
    TransientExternalError,
    ValidationError,
)
from analytics_sync.domain.errors import (
    AuthFailureError,
    CapacityExceededError,
    DestinationResolutionError,
    FailureKind,
    MalformedRecordError,
    RateLimitError,
    SyncConfigError,
    TransientUpstreamError,
    UpstreamError,
    classify_upstream_error,
)
from analytics_sync.domain.results import FetchResult


@pytest.mark.parametrize(
    "text, status, expected_type, expected_kind",
    [
        ("too many requests", 429, RateLimitError, FailureKind.RATE_LIMIT_OR_QUOTA),
        ('{"error": {"status": "RESOURCE_EXHAUSTED"}}', 403, RateLimitError, FailureKind.RATE_LIMIT_OR_QUOTA),
        ("quota exceeded for quota metric 'write requests'", 400, RateLimitError, FailureKind.RATE_LIMIT_OR_QUOTA),
        ("range ('facebook'!a1001) exceeds grid limits", 400, CapacityExceededError, FailureKind.CAPACITY),
        ("the caller does not have permission", 403, AuthFailureError, FailureKind.AUTH),
        ("invalid credentials", 401, AuthFailureError, FailureKind.AUTH),
        ("backend error", 503, TransientUpstreamError, FailureKind.SERVER),
        ("connection reset", None, TransientUpstreamError, FailureKind.SERVER),
        ("bad filter", 400, UpstreamError, FailureKind.OTHER),
    ],
)
def test_classify_upstream_error(text, status, expected_type, expected_kind) -> None:
    error = classify_upstream_error(text, status)

    assert type(error) is expected_type
    assert error.kind == expected_kind
    assert error.status_code == status


def test_classify_keeps_retry_after_and_truncates_message() -> None:
    error = classify_upstream_error("x" * 1000, 429, 12.0)

    assert error.retry_after_seconds == 12.0
    assert len(str(error)) == 300


def test_classify_empty_body_uses_status_in_message() -> None:
    assert str(classify_upstream_error("", 500)) == "HTTP 500"


def test_fetch_result_success_and_empty_are_distinct_from_failure() -> None:
    empty = FetchResult.success([])
    failed = FetchResult.failure(RateLimitError("quota", status_code=429), attempts=8)

    assert empty.ok and empty.value == [] and empty.unwrap() == []
    assert not failed.ok
    assert failed.value is None
    assert failed.attempts == 8
    assert failed.error is not None
    assert failed.error.kind == FailureKind.RATE_LIMIT_OR_QUOTA
    assert failed.error.status_code == 429


def test_fetch_result_unwrap_reraises_original_error() -> None:
    original = AuthFailureError("denied", status_code=403)

    with pytest.raises(AuthFailureError) as exc_info:
        FetchResult.failure(original, attempts=3).unwrap()

    assert exc_info.value is original


def test_error_hierarchy_routes_through_core_bases() -> None:
    assert issubclass(RateLimitError, TransientExternalError)
    assert issubclass(UpstreamError, ExternalServiceError)
    assert not issubclass(AuthFailureError, TransientExternalError)
    assert issubclass(MalformedRecordError, ValidationError)
    assert issubclass(DestinationResolutionError, InfraError)
    assert issubclass(SyncConfigError, InfraError)
    assert issubclass(PersistenceError, InfraError)
    assert not issubclass(PersistenceError, ExternalServiceError)
