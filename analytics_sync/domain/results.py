from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from analytics_sync.domain.errors import FailureKind, UpstreamError

T = TypeVar("T")


@dataclass(frozen=True)
class FetchError:
    kind: FailureKind
    message: str
    status_code: int | None = None

    @classmethod
    def from_exception(cls, exc: UpstreamError) -> "FetchError":
        return cls(kind=exc.kind, message=str(exc), status_code=exc.status_code)


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of one retried operation.

    ``ok`` with an empty value means the upstream answered with no data; a set
    ``error`` means every attempt failed and the value was never obtained.
    """

    value: T | None = None
    error: FetchError | None = None
    attempts: int = 0
    exception: UpstreamError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T, *, attempts: int = 1) -> "FetchResult[T]":
        return cls(value=value, attempts=attempts)

    @classmethod
    def failure(cls, exc: UpstreamError, *, attempts: int) -> "FetchResult[T]":
        return cls(error=FetchError.from_exception(exc), attempts=attempts, exception=exc)

    def unwrap(self) -> T:
        if self.exception is not None:
            raise self.exception
        if self.error is not None:
            raise UpstreamError(self.error.message, status_code=self.error.status_code)
        return self.value  # type: ignore[return-value]
