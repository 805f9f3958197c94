from __future__ import annotations

from analytics_sync.application.formatters.base import (
    Metrics,
    NetworkFormatter,
    derived,
    metric,
    rate,
    safe_number,
    total,
)
from analytics_sync.domain.models import NetworkKind


def clicks(metrics: Metrics) -> int | float:
    return total(metrics, "post_link_clicks", "post_content_clicks")


def engagements(metrics: Metrics) -> int | float:
    return total(metrics, "reactions", "comments_count", "shares_count") + clicks(metrics)


class LinkedInFormatter(NetworkFormatter):
    kind = NetworkKind.LINKEDIN
    identity_headers = ("Date", "Network", "Profile Name", "Network ID", "Profile ID")
    columns = (
        metric("Net Follower Growth", "net_follower_growth"),
        metric("Followers Gained", "followers_gained"),
        metric("Followers Lost", "followers_lost"),
        metric("Impressions Organic", "impressions_organic"),
        metric("Impressions Paid", "impressions_paid"),
        metric("Reactions", "reactions"),
        metric("Comments", "comments_count"),
        metric("Shares", "shares_count"),
        metric("Post Link Clicks", "post_link_clicks"),
        metric("Post Content Clicks", "post_content_clicks"),
        metric("Posts Sent Count", "posts_sent_count"),
        derived("Clicks", clicks),
        metric("Impressions", "impressions"),
        metric("Followers Count", "lifetime_snapshot.followers_count"),
        derived("Engagements", engagements),
        derived(
            "Engagement Rate (per Impression)",
            lambda metrics: rate(engagements(metrics), safe_number(metrics.get("impressions"))),
        ),
        derived(
            "Engagement Rate (per Follower)",
            lambda metrics: rate(engagements(metrics), safe_number(metrics.get("lifetime_snapshot.followers_count"))),
        ),
        derived(
            "Click-Through Rate",
            lambda metrics: rate(clicks(metrics), safe_number(metrics.get("impressions"))),
        ),
    )
