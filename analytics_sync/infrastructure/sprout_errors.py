from __future__ import annotations

from typing import Any

import requests

from analytics_sync.domain.errors import TransientUpstreamError, UpstreamError, classify_upstream_error


def parse_retry_after(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        return max(float(value), 0.0)
    except (TypeError, ValueError):
        return None


def map_response_error(response: requests.Response) -> UpstreamError:
    return classify_upstream_error(
        (response.text or "")[:2000].lower(),
        response.status_code,
        parse_retry_after(response.headers.get("Retry-After")),
    )


def map_request_exception(exc: requests.RequestException) -> UpstreamError:
    response = getattr(exc, "response", None)
    if response is not None:
        return map_response_error(response)
    return TransientUpstreamError(f"Sprout API unreachable: {type(exc).__name__}: {exc}")
