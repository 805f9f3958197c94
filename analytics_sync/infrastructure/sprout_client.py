from __future__ import annotations

import logging
from typing import Any, Sequence

import requests

from analytics_sync.domain.errors import UpstreamError
from analytics_sync.domain.models import Group, ProfileMeta, WriteWindow
from analytics_sync.domain.ports import RawDataPoint
from analytics_sync.infrastructure.sprout_errors import map_request_exception, map_response_error

logger = logging.getLogger(__name__)

POST_FIELDS = (
    "created_time",
    "perma_link",
    "text",
    "internal.tags.id",
    "internal.sent_by.id",
    "internal.sent_by.email",
    "internal.sent_by.first_name",
    "internal.sent_by.last_name",
)
MAX_PAGES = 50


def profile_filters(profile_ids: Sequence[str], window: WriteWindow, period_field: str = "reporting_period") -> list[str]:
    return [
        f"customer_profile_id.eq({', '.join(str(item) for item in profile_ids)})",
        f"{period_field}.in({window.start_date}...{window.end_date})",
    ]


def profile_from_payload(payload: dict[str, Any]) -> ProfileMeta:
    groups = payload.get("groups") or []
    return ProfileMeta(
        profile_id=str(payload.get("customer_profile_id", "")),
        name=str(payload.get("name") or ""),
        network_type=str(payload.get("network_type") or ""),
        network_id=str(payload.get("native_id") or ""),
        native_name=str(payload.get("native_name") or ""),
        link=str(payload.get("link") or ""),
        group_ids=tuple(str(group) for group in groups if group is not None),
    )


class SproutAnalyticsClient:
    """Sprout Social REST client: AnalyticsSource and ProfileDirectory.

    One HTTP attempt per call. Failures surface as ``UpstreamError`` subclasses
    and the caller's retry policy decides what happens next.
    """

    def __init__(
        self,
        *,
        customer_id: str,
        api_token: str,
        base_url: str = "https://api.sproutsocial.com/v1",
        timezone: str = "America/Chicago",
        timeout_seconds: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self._root = f"{base_url.rstrip('/')}/{customer_id}"
        self._timezone = timezone
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    def list_groups(self) -> list[Group]:
        payload = self._request("GET", "/metadata/customer/groups")
        return [
            Group(group_id=str(item.get("group_id")), name=str(item.get("name") or item.get("group_id")))
            for item in _data(payload)
            if item.get("group_id") is not None
        ]

    def list_profiles(self) -> list[ProfileMeta]:
        payload = self._request("GET", "/metadata/customer")
        return [profile_from_payload(item) for item in _data(payload) if item.get("customer_profile_id") is not None]

    def query(
        self,
        profile_ids: Sequence[str],
        window: WriteWindow,
        metric_keys: Sequence[str] | None = None,
    ) -> list[RawDataPoint]:
        body: dict[str, Any] = {"filters": profile_filters(profile_ids, window)}
        if metric_keys:
            body["metrics"] = list(metric_keys)
        return self._paged("/analytics/profiles", body)

    def query_posts(
        self,
        profile_id: str,
        window: WriteWindow,
        filter_field: str,
        metric_keys: Sequence[str] | None = None,
    ) -> list[RawDataPoint]:
        body: dict[str, Any] = {
            "filters": profile_filters([profile_id], window, filter_field),
            "fields": list(POST_FIELDS),
            "timezone": self._timezone,
        }
        if metric_keys:
            body["metrics"] = list(metric_keys)
        return self._paged("/analytics/posts", body)

    def _paged(self, path: str, body: dict[str, Any]) -> list[RawDataPoint]:
        points: list[RawDataPoint] = []
        page = 1
        while True:
            payload = self._request("POST", path, json={**body, "page": page})
            points.extend(_data(payload))
            total_pages = _total_pages(payload)
            if total_pages is None or page >= total_pages or page >= MAX_PAGES:
                break
            page += 1
        logger.debug("%s returned %s point(s) over %s page(s)", path, len(points), page)
        return points

    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self._root}{path}"
        try:
            response = self._session.request(method, url, json=json, timeout=self._timeout)
        except requests.RequestException as exc:
            raise map_request_exception(exc) from exc
        if response.status_code >= 400:
            error = map_response_error(response)
            logger.warning("Sprout %s %s -> HTTP %s", method, path, response.status_code)
            raise error
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(f"Sprout {path} returned invalid JSON", status_code=response.status_code) from exc
        return payload if isinstance(payload, dict) else {}


def _data(payload: dict[str, Any]) -> list[dict[str, Any]]:
    data = payload.get("data")
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def _total_pages(payload: dict[str, Any]) -> int | None:
    paging = payload.get("paging")
    if not isinstance(paging, dict):
        return None
    try:
        return int(paging.get("total_pages"))
    except (TypeError, ValueError):
        return None
