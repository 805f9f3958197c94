from __future__ import annotations

import logging
from typing import Any

from analytics_sync.core.observability import get_correlation_id, get_group_name


def log_operational_error(
    logger: logging.Logger,
    message: str,
    *,
    exc: BaseException | None = None,
    extra: dict[str, Any] | None = None,
) -> None:
    """Logs a failure that was handled at a boundary so it still reaches the error log."""
    metadata = dict(extra or {})
    correlation_id = metadata.get("correlation_id") or get_correlation_id()
    if correlation_id:
        metadata["correlation_id"] = correlation_id
    group_name = get_group_name()
    if group_name and "group" not in metadata:
        metadata["group"] = group_name

    exc_info: Any = False
    if exc is not None:
        exc_info = (type(exc), exc, exc.__traceback__)
    logger.error(
        message,
        exc_info=exc_info,
        extra={"correlation_id": correlation_id, "extra": metadata},
    )
