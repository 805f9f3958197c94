from __future__ import annotations

from enum import Enum

from analytics_sync.core.errors import (
    ExternalServiceError,
    InfraError,
    TransientExternalError,
    ValidationError,
)


class FailureKind(str, Enum):
    RATE_LIMIT_OR_QUOTA = "rate_limit_or_quota"
    AUTH = "auth"
    SERVER = "server"
    CAPACITY = "capacity"
    OTHER = "other"


class UpstreamError(ExternalServiceError):
    kind = FailureKind.OTHER

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retry_after_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after_seconds = retry_after_seconds


class TransientUpstreamError(UpstreamError, TransientExternalError):
    kind = FailureKind.SERVER


class RateLimitError(TransientUpstreamError):
    kind = FailureKind.RATE_LIMIT_OR_QUOTA


class AuthFailureError(UpstreamError):
    kind = FailureKind.AUTH


class CapacityExceededError(UpstreamError):
    kind = FailureKind.CAPACITY


class MalformedRecordError(ValidationError):
    pass


class DestinationResolutionError(InfraError):
    pass


class SyncConfigError(InfraError):
    pass


_RATE_LIMIT_TOKENS = (
    "rate limit",
    "rate_limit",
    "ratelimitexceeded",
    "userratelimitexceeded",
    "quota",
    "resource_exhausted",
    "too many requests",
)
_CAPACITY_TOKENS = ("exceeds grid limits", "grid limits")


def classify_upstream_error(
    text_lower: str,
    status_code: int | None,
    retry_after_seconds: float | None = None,
) -> UpstreamError:
    """Maps an HTTP status plus response body onto the retry taxonomy.

    Quota signals win over everything else because the sheets API reports some
    quota failures as 403. Grid-capacity failures arrive as 400 and are checked
    before the generic buckets so the writer can grow the tab and retry.
    """
    text = text_lower.strip().lower()
    message = text[:300] or f"HTTP {status_code}"
    kwargs = {"status_code": status_code, "retry_after_seconds": retry_after_seconds}
    if status_code == 429 or any(token in text for token in _RATE_LIMIT_TOKENS):
        return RateLimitError(message, **kwargs)
    if any(token in text for token in _CAPACITY_TOKENS):
        return CapacityExceededError(message, **kwargs)
    if status_code in (401, 403):
        return AuthFailureError(message, **kwargs)
    if status_code is None or status_code >= 500:
        return TransientUpstreamError(message, **kwargs)
    return UpstreamError(message, **kwargs)
