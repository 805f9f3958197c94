from __future__ import annotations

from datetime import datetime
from typing import Callable

from analytics_sync.application.formatters.base import (
    IDENTITY_HEADERS,
    Metrics,
    NetworkFormatter,
    Row,
    derived,
    first_number,
    metric,
    rate,
    total,
)
from analytics_sync.domain.models import CanonicalRecord, NetworkKind, ProfileMeta


def engagements(metrics: Metrics) -> int | float:
    return (
        first_number(metrics, "post_likes", "likes")
        + first_number(metrics, "post_saves", "saves")
        + total(metrics, "comments_count", "shares_count", "story_replies")
    )


class InstagramFormatter(NetworkFormatter):
    """Instagram business accounts.

    Sprout renamed several Instagram metrics over time, so most columns accept
    the older key as a fallback.
    """

    kind = NetworkKind.INSTAGRAM
    identity_headers = (*IDENTITY_HEADERS, "Added On")
    columns = (
        metric("Total Impressions", "impressions", "post_impressions"),
        metric("Unique Impressions", "impressions_unique", "impressions_unique_users"),
        metric("Total Video Views", "video_views", "video_views_organic", "video_views_total"),
        metric("Total Reactions", "reactions", "post_engagements", "post_reactions"),
        metric("Total Post Likes", "post_likes", "likes", "reactions"),
        metric("Total Comments", "comments_count", "comments"),
        metric("Total Post Saves", "post_saves", "saves"),
        metric("Total Shares", "shares_count", "shares"),
        metric("Total Story Replies", "story_replies"),
        metric("Posts Published Count", "posts_sent_count", "posts_published_count"),
        metric("Net Follower Growth", "net_follower_growth"),
        metric("New Followers Gained", "followers_gained", "followers_gained_organic"),
        metric("Followers Lost", "followers_lost"),
        metric("Lifetime Following Count", "lifetime_snapshot.following_count", "following_count"),
        metric("Total Content Views", "views", "post_views", "post_impressions"),
        metric("Lifetime Followers Count", "lifetime_snapshot.followers_count", "followers_count"),
        metric("Net Following Growth", "net_following_growth"),
        derived("Total Engagement Actions", engagements),
        derived(
            "Engagement Rate % (per Impression)",
            lambda metrics: rate(engagements(metrics), first_number(metrics, "impressions", "post_impressions")),
        ),
        derived(
            "Engagement Rate % (per Follower)",
            lambda metrics: rate(
                engagements(metrics), first_number(metrics, "lifetime_snapshot.followers_count", "followers_count")
            ),
        ),
    )

    def __init__(self, now: Callable[[], datetime] = datetime.now) -> None:
        self._now = now

    def identity_values(self, record: CanonicalRecord, profile: ProfileMeta) -> Row:
        added_on = self._now().strftime("%m/%d/%Y, %I:%M:%S %p")
        return [*super().identity_values(record, profile), added_on]
