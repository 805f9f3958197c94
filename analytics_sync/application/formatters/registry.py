from __future__ import annotations

from analytics_sync.application.formatters.base import NetworkFormatter
from analytics_sync.application.formatters.facebook import FacebookFormatter
from analytics_sync.application.formatters.instagram import InstagramFormatter
from analytics_sync.application.formatters.linkedin import LinkedInFormatter
from analytics_sync.application.formatters.posts import (
    FACEBOOK_POST_METRICS,
    INSTAGRAM_POST_METRICS,
    TWITTER_POST_METRICS,
    YOUTUBE_POST_METRICS,
    PostFormatter,
)
from analytics_sync.application.formatters.twitter import TwitterFormatter
from analytics_sync.application.formatters.youtube import YouTubeFormatter
from analytics_sync.domain.models import NetworkKind


def _build_registry() -> dict[NetworkKind, NetworkFormatter]:
    formatters: list[NetworkFormatter] = [
        InstagramFormatter(),
        FacebookFormatter(),
        LinkedInFormatter(),
        TwitterFormatter(),
        YouTubeFormatter(),
    ]
    registry = {formatter.kind: formatter for formatter in formatters}
    missing = [kind.value for kind in NetworkKind if kind not in registry]
    if missing:
        raise RuntimeError(f"No formatter registered for: {', '.join(missing)}")
    return registry


FORMATTERS: dict[NetworkKind, NetworkFormatter] = _build_registry()

# LinkedIn has no post-level export.
POST_FORMATTERS: dict[NetworkKind, PostFormatter] = {
    NetworkKind.INSTAGRAM: PostFormatter(NetworkKind.INSTAGRAM, INSTAGRAM_POST_METRICS),
    NetworkKind.FACEBOOK: PostFormatter(NetworkKind.FACEBOOK, FACEBOOK_POST_METRICS),
    NetworkKind.TWITTER: PostFormatter(NetworkKind.TWITTER, TWITTER_POST_METRICS),
    NetworkKind.YOUTUBE: PostFormatter(NetworkKind.YOUTUBE, YOUTUBE_POST_METRICS),
}


def formatter_for(kind: NetworkKind) -> NetworkFormatter:
    return FORMATTERS[kind]


def post_formatter_for(kind: NetworkKind) -> PostFormatter | None:
    return POST_FORMATTERS.get(kind)
