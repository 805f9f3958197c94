from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager
from contextvars import ContextVar, Token
from datetime import datetime, timezone
import uuid
from typing import Any, Iterator

_CORRELATION_ID: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_GROUP_NAME: ContextVar[str | None] = ContextVar("group_name", default=None)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def get_correlation_id() -> str | None:
    return _CORRELATION_ID.get()


def get_group_name() -> str | None:
    return _GROUP_NAME.get()


def set_correlation_id(correlation_id: str | None) -> Token[str | None]:
    return _CORRELATION_ID.set(correlation_id)


def reset_correlation_id(token: Token[str | None]) -> None:
    _CORRELATION_ID.reset(token)


@contextmanager
def group_scope(group_name: str) -> Iterator[None]:
    """Tags every log record emitted inside the block with the group being synced."""
    token = _GROUP_NAME.set(group_name)
    try:
        yield
    finally:
        _GROUP_NAME.reset(token)


class OperationContext(AbstractContextManager["OperationContext"]):
    def __init__(self, operation_name: str) -> None:
        self.operation_name = operation_name
        self.correlation_id = generate_correlation_id()
        self._correlation_token: Token[str | None] | None = None

    def __enter__(self) -> "OperationContext":
        self._correlation_token = set_correlation_id(self.correlation_id)
        return self

    def __exit__(self, exc_type: object, exc: object, exc_tb: object) -> None:
        if self._correlation_token is not None:
            reset_correlation_id(self._correlation_token)
        return None


def log_event(logger: Any, event_name: str, payload: dict[str, Any], correlation_id: str | None) -> dict[str, Any]:
    event = {
        "event": event_name,
        "correlation_id": correlation_id,
        "group": get_group_name(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "payload": payload,
    }
    logger.info(
        event_name,
        extra={
            "correlation_id": correlation_id,
            "extra": event,
        },
    )
    return event
