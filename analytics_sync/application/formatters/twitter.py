from __future__ import annotations

from analytics_sync.application.formatters.base import (
    Metrics,
    NetworkFormatter,
    Row,
    composite,
    derived,
    metric,
    rate,
    safe_number,
    total,
)
from analytics_sync.domain.models import CanonicalRecord, NetworkKind, ProfileMeta


def engagements(metrics: Metrics) -> int | float:
    return total(
        metrics,
        "likes",
        "comments_count",
        "shares_count",
        "post_link_clicks",
        "post_content_clicks_other",
        "engagements_other",
    )


class TwitterFormatter(NetworkFormatter):
    kind = NetworkKind.TWITTER
    identity_headers = ("Date", "Network Type", "Profile Name")
    columns = (
        metric("Lifetime Followers Count", "lifetime_snapshot.followers_count"),
        metric("Net Follower Growth", "net_follower_growth"),
        metric("Total Impressions", "impressions"),
        metric("Total Media Views", "post_media_views"),
        metric("Total Video Views", "video_views"),
        metric("Total Reactions", "reactions"),
        metric("Total Likes", "likes"),
        metric("Total Comments/Replies", "comments_count"),
        metric("Total Shares/Reposts", "shares_count"),
        metric("Total Content Clicks", "post_content_clicks"),
        metric("Total Link Clicks", "post_link_clicks"),
        metric("Total Other Content Clicks", "post_content_clicks_other"),
        metric("Total Media Clicks", "post_media_clicks"),
        metric("Total Hashtag Clicks", "post_hashtag_clicks"),
        metric("Total Expand Clicks", "post_detail_expand_clicks"),
        metric("Total Profile Clicks", "post_profile_clicks"),
        metric("Other Engagement Actions", "engagements_other"),
        metric("Total App Engagements", "post_app_engagements"),
        metric("Total App Installs", "post_app_installs"),
        metric("Total App Opens", "post_app_opens"),
        metric("Posts Published Count", "posts_sent_count"),
        composite("Posts by Post Type", "posts_sent_by_post_type"),
        composite("Posts by Content Type", "posts_sent_by_content_type"),
        derived("Total Engagement Actions", engagements),
        derived(
            "Engagement Rate % (per Impression)",
            lambda metrics: rate(engagements(metrics), safe_number(metrics.get("impressions"))),
        ),
        derived(
            "Engagement Rate % (per Follower)",
            lambda metrics: rate(engagements(metrics), safe_number(metrics.get("lifetime_snapshot.followers_count"))),
        ),
        derived(
            "Click-Through Rate %",
            lambda metrics: rate(safe_number(metrics.get("post_link_clicks")), safe_number(metrics.get("impressions"))),
        ),
    )

    def identity_values(self, record: CanonicalRecord, profile: ProfileMeta) -> Row:
        return [record.iso_date, profile.network_type, profile.name]
