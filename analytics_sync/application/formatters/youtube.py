from __future__ import annotations

from analytics_sync.application.formatters.base import (
    Metrics,
    NetworkFormatter,
    derived,
    metric,
    safe_number,
    total,
)
from analytics_sync.domain.models import NetworkKind


def video_engagements(metrics: Metrics) -> int | float:
    return total(
        metrics,
        "comments_count",
        "likes",
        "dislikes",
        "shares_count",
        "followers_gained",
        "annotation_clicks",
        "card_clicks",
    )


class YouTubeFormatter(NetworkFormatter):
    kind = NetworkKind.YOUTUBE
    identity_headers = ("Date", "Network", "Profile Name", "Network ID", "Profile ID")
    columns = (
        metric("Followers Count", "lifetime_snapshot.followers_count"),
        metric("Net Follower Growth", "net_follower_growth"),
        metric("Followers Gained", "followers_gained"),
        metric("Followers Lost", "followers_lost"),
        metric("Posts Sent Count", "posts_sent_count"),
        derived(
            "netFollowerGrowths",
            lambda metrics: safe_number(metrics.get("followers_gained")) - safe_number(metrics.get("followers_lost")),
        ),
        derived(
            "videoEngagements",
            video_engagements,
            "comments_count",
            "likes",
            "dislikes",
            "shares_count",
            "annotation_clicks",
            "card_clicks",
        ),
        metric("videoViews", "video_views"),
    )
