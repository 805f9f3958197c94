from __future__ import annotations

import json

import gspread
import requests
from google.auth.exceptions import DefaultCredentialsError, TransportError

from analytics_sync.domain.errors import (
    SyncConfigError,
    TransientUpstreamError,
    UpstreamError,
    classify_upstream_error,
)


def extract_response_status_code(ex: Exception) -> int | None:
    response = getattr(ex, "response", None)
    return getattr(response, "status_code", None)


def extract_retry_after_seconds(ex: Exception) -> float | None:
    response = getattr(ex, "response", None)
    headers = getattr(response, "headers", None) or {}
    raw = headers.get("Retry-After") if hasattr(headers, "get") else None
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except (TypeError, ValueError):
        return None


def _extract_api_error_text(ex: gspread.exceptions.APIError) -> str:
    response = getattr(ex, "response", None)
    if response is not None:
        text = getattr(response, "text", "")
        if text:
            return text
    return str(ex)


def normalize_error_text(text: str) -> str:
    return text.strip().lower()


def _credentials_message(path: str | None) -> str:
    if path:
        return f"Service-account credentials not found at {path}."
    return "Service-account credentials not found."


def map_gspread_exception(ex: Exception) -> Exception:
    """Maps gspread / google-auth failures onto the sync error taxonomy."""
    if isinstance(ex, (UpstreamError, SyncConfigError)):
        return ex
    if isinstance(ex, gspread.exceptions.APIError):
        return classify_upstream_error(
            normalize_error_text(_extract_api_error_text(ex)),
            extract_response_status_code(ex),
            extract_retry_after_seconds(ex),
        )
    if isinstance(ex, (requests.RequestException, TransportError)):
        return TransientUpstreamError(f"Google API unreachable: {ex}")
    if isinstance(ex, FileNotFoundError):
        return SyncConfigError(_credentials_message(getattr(ex, "filename", None)))
    if isinstance(ex, (json.JSONDecodeError, DefaultCredentialsError, ValueError)):
        return SyncConfigError("Service-account credentials file is not valid.")
    return UpstreamError(str(ex))
