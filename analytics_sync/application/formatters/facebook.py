from __future__ import annotations

from analytics_sync.application.formatters.base import (
    Metrics,
    NetworkFormatter,
    composite,
    derived,
    first_number,
    metric,
    rate,
    safe_number,
    total,
)
from analytics_sync.domain.models import NetworkKind


def engagements(metrics: Metrics) -> int | float:
    # Reactions fall back to likes for pages that only report likes.
    return first_number(metrics, "reactions", "likes") + total(
        metrics, "comments_count", "shares_count", "post_link_clicks", "post_content_clicks_other"
    )


class FacebookFormatter(NetworkFormatter):
    kind = NetworkKind.FACEBOOK
    columns = (
        metric("Lifetime Followers Count", "lifetime_snapshot.followers_count"),
        metric("Net Follower Growth", "net_follower_growth"),
        metric("New Followers Gained", "followers_gained"),
        metric("New Followers Gained (Organic)", "followers_gained_organic"),
        metric("New Followers Gained (Paid)", "followers_gained_paid"),
        metric("Followers Lost", "followers_lost"),
        metric("Lifetime Fans Count", "lifetime_snapshot.fans_count"),
        metric("New Fans Gained", "fans_gained"),
        metric("New Fans Gained (Organic)", "fans_gained_organic"),
        metric("New Fans Gained (Paid)", "fans_gained_paid"),
        metric("Fans Lost", "fans_lost"),
        metric("Total Impressions", "impressions"),
        metric("Organic Impressions", "impressions_organic"),
        metric("Viral Impressions", "impressions_viral"),
        metric("Non-Viral Impressions", "impressions_nonviral"),
        metric("Paid Impressions", "impressions_paid"),
        metric("Total Tab Views", "tab_views"),
        metric("Tab Views (Logged In)", "tab_views_login"),
        metric("Tab Views (Logged Out)", "tab_views_logout"),
        metric("Total Post Impressions", "post_impressions"),
        metric("Post Impressions (Organic)", "post_impressions_organic"),
        metric("Post Impressions (Viral)", "post_impressions_viral"),
        metric("Post Impressions (Non-Viral)", "post_impressions_nonviral"),
        metric("Post Impressions (Paid)", "post_impressions_paid"),
        metric("Unique Impressions", "impressions_unique"),
        metric("Unique Organic Impressions", "impressions_organic_unique"),
        metric("Unique Viral Impressions", "impressions_viral_unique"),
        metric("Unique Non-Viral Impressions", "impressions_nonviral_unique"),
        metric("Unique Paid Impressions", "impressions_paid_unique"),
        metric("Total Reactions", "reactions"),
        metric("Total Comments", "comments_count"),
        metric("Total Shares", "shares_count"),
        metric("Total Link Clicks", "post_link_clicks"),
        metric("Total Other Content Clicks", "post_content_clicks_other"),
        metric("Total Profile Actions", "profile_actions"),
        metric("Total Post Engagements", "post_engagements"),
        metric("Total Video Views", "video_views"),
        metric("Video Views (Organic)", "video_views_organic"),
        metric("Video Views (Paid)", "video_views_paid"),
        metric("Video Views (Autoplay)", "video_views_autoplay"),
        metric("Video Views (Click-to-Play)", "video_views_click_to_play"),
        metric("Video Views (Repeat)", "video_views_repeat"),
        metric("Total Video View Time", "video_view_time"),
        metric("Unique Video Views", "video_views_unique"),
        metric("Posts Published Count", "posts_sent_count"),
        composite("Posts by Post Type", "posts_sent_by_post_type"),
        composite("Posts by Content Type", "posts_sent_by_content_type"),
        derived("Total Engagement Actions", engagements, "likes"),
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
