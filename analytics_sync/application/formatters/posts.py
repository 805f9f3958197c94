from __future__ import annotations

import logging
from typing import Any, Sequence

from analytics_sync.application.formatters.base import Row, safe_number
from analytics_sync.core.metrics import RECORDS_DROPPED, metrics_registry
from analytics_sync.domain.models import NetworkKind, PostRecord, ProfileMeta

logger = logging.getLogger(__name__)

POST_BASE_HEADERS = ("Created Time (UTC)", "Network Type", "Profile Name", "Profile ID", "Perma Link", "Text")
TEXT_LIMIT = 500

_SENTIMENT = (
    ("Positive Comments", "lifetime.sentiment_comments_positive_count"),
    ("Negative Comments", "lifetime.sentiment_comments_negative_count"),
    ("Neutral Comments", "lifetime.sentiment_comments_neutral_count"),
    ("Unclassified Comments", "lifetime.sentiment_comments_unclassified_count"),
    ("Net Sentiment Score", "lifetime.net_sentiment_score"),
)

INSTAGRAM_POST_METRICS = (
    ("Comments", "lifetime.comments_count"),
    ("Impressions", "lifetime.impressions"),
    ("Likes", "lifetime.likes"),
    ("Reach", "lifetime.impressions_unique"),
    ("Reactions", "lifetime.reactions"),
    ("Reels Unique Session Plays", "lifetime.reels_unique_session_plays"),
    ("Saves", "lifetime.saves"),
    ("Shares", "lifetime.shares_count"),
    ("SproutLink Clicks", "lifetime.link_in_bio_clicks"),
    ("Story Exits", "lifetime.story_exits"),
    ("Story Replies", "lifetime.comments_count"),
    ("Story Taps Back", "lifetime.story_taps_back"),
    ("Story Taps Forward", "lifetime.story_taps_forward"),
    ("Video Views", "lifetime.video_views"),
    ("Views", "lifetime.views"),
    *_SENTIMENT,
)

FACEBOOK_POST_METRICS = (
    ("Impressions", "lifetime.impressions"),
    ("Organic Impressions", "lifetime.impressions_organic"),
    ("Viral Impressions", "lifetime.impressions_viral"),
    ("Non-viral Impressions", "lifetime.impressions_nonviral"),
    ("Paid Impressions", "lifetime.impressions_paid"),
    ("Fan Impressions", "lifetime.impressions_follower"),
    ("Non-fan Impressions", "lifetime.impressions_nonfollower"),
    ("Reach", "lifetime.impressions_unique"),
    ("Organic Reach", "lifetime.impressions_organic_unique"),
    ("Viral Reach", "lifetime.impressions_viral_unique"),
    ("Non-viral Reach", "lifetime.impressions_nonviral_unique"),
    ("Paid Reach", "lifetime.impressions_paid_unique"),
    ("Fan Reach", "lifetime.impressions_follower_unique"),
    ("Reactions", "lifetime.reactions"),
    ("Likes", "lifetime.likes"),
    ("Love Reactions", "lifetime.reactions_love"),
    ("Haha Reactions", "lifetime.reactions_haha"),
    ("Wow Reactions", "lifetime.reactions_wow"),
    ("Sad Reactions", "lifetime.reactions_sad"),
    ("Angry Reactions", "lifetime.reactions_angry"),
    ("Comments", "lifetime.comments_count"),
    ("Shares", "lifetime.shares_count"),
    ("Answers", "lifetime.question_answers"),
    ("Post Clicks (All)", "lifetime.post_content_clicks"),
    ("Post Link Clicks", "lifetime.post_link_clicks"),
    ("Post Photo View Clicks", "lifetime.post_photo_view_clicks"),
    ("Post Video Play Clicks", "lifetime.post_video_play_clicks"),
    ("Other Post Clicks", "lifetime.post_content_clicks_other"),
    ("Video Length", "video_length"),
    ("Video Views", "lifetime.video_views"),
    ("Organic Video Views", "lifetime.video_views_organic"),
    ("Paid Video Views", "lifetime.video_views_paid"),
    ("Autoplay Video Views", "lifetime.video_views_autoplay"),
    ("Click to Play Video Views", "lifetime.video_views_click_to_play"),
    ("Sound on Video Views", "lifetime.video_views_sound_on"),
    ("Sound off Video Views", "lifetime.video_views_sound_off"),
    ("Partial Video Views", "lifetime.video_views_partial"),
    ("Organic Partial Video Views", "lifetime.video_views_partial_organic"),
    ("Paid Partial Video Views", "lifetime.video_views_partial_paid"),
    ("Autoplay Partial Video Views", "lifetime.video_views_partial_autoplay"),
    ("Click to Play Partial Video Views", "lifetime.video_views_partial_click_to_play"),
    ("Full Video Views", "lifetime.video_views_30s_complete"),
    ("Organic Full Video Views", "lifetime.video_views_30s_complete_organic"),
    ("Paid Full Video Views", "lifetime.video_views_30s_complete_paid"),
    ("Autoplay Full Video Views", "lifetime.video_views_30s_complete_autoplay"),
    ("Click to Play Full Video Views", "lifetime.video_views_30s_complete_click_to_play"),
    ("95% Video Views", "lifetime.video_views_p95"),
    ("Organic 95% Video Views", "lifetime.video_views_p95_organic"),
    ("Paid 95% Video Views", "lifetime.video_views_p95_paid"),
    ("Reels Unique Session Plays", "lifetime.reels_unique_session_plays"),
    ("Unique Video Views", "lifetime.video_views_unique"),
    ("Unique Organic Video Views", "lifetime.video_views_organic_unique"),
    ("Unique Paid Video Views", "lifetime.video_views_paid_unique"),
    ("Unique Full Video Views", "lifetime.video_views_30s_complete_unique"),
    ("Unique Organic 95% Video Views", "lifetime.video_views_p95_organic_unique"),
    ("Unique Paid 95% Video Views", "lifetime.video_views_p95_paid_unique"),
    ("Average Video Time Watched", "lifetime.video_view_time_per_view"),
    ("Video View Time", "lifetime.video_view_time"),
    ("Organic Video View Time", "lifetime.video_view_time_organic"),
    ("Paid Video View Time", "lifetime.video_view_time_paid"),
    ("Video Ad Break Ad Impressions", "lifetime.video_ad_break_impressions"),
    ("Video Ad Break Ad Earnings", "lifetime.video_ad_break_earnings"),
    ("Video Ad Break Ad Cost per Impression (CPM)", "lifetime.video_ad_break_cost_per_impression"),
    *_SENTIMENT,
)

TWITTER_POST_METRICS = (
    ("Impressions", "lifetime.impressions"),
    ("Media Views", "lifetime.post_media_views"),
    ("Video Views", "lifetime.video_views"),
    ("Reactions", "lifetime.reactions"),
    ("Likes", "lifetime.likes"),
    ("@Replies", "lifetime.comments_count"),
    ("Reposts", "lifetime.shares_count"),
    ("Post Clicks (All)", "lifetime.post_content_clicks"),
    ("Post Link Clicks", "lifetime.post_link_clicks"),
    ("Other Post Clicks", "lifetime.post_content_clicks_other"),
    ("Post Media Clicks", "lifetime.post_media_clicks"),
    ("Post Hashtag Clicks", "lifetime.post_hashtag_clicks"),
    ("Post Detail Expand Clicks", "lifetime.post_detail_expand_clicks"),
    ("Profile Clicks", "lifetime.post_profile_clicks"),
    ("Other Engagements", "lifetime.engagements_other"),
    ("Follows from Posts", "lifetime.post_followers_gained"),
    ("Unfollows from Posts", "lifetime.post_followers_lost"),
    ("App Engagements", "lifetime.post_app_engagements"),
    ("App Install Attempts", "lifetime.post_app_installs"),
    ("App Opens", "lifetime.post_app_opens"),
    *_SENTIMENT,
)

YOUTUBE_POST_METRICS = (
    ("Annotation Clicks", "lifetime.annotation_clicks"),
    ("Annotation Click Rate", "lifetime.annotation_click_through_rate"),
    ("Clickable Annotation Impressions", "lifetime.annotation_clickable_impressions"),
    ("Closable Annotation Impressions", "lifetime.annotation_closable_impressions"),
    ("Annotation Closes", "lifetime.annotation_closes"),
    ("Annotation Close Rate", "lifetime.annotation_close_rate"),
    ("Annotation Impressions", "lifetime.annotation_impressions"),
    ("Card Clicks", "lifetime.card_clicks"),
    ("Card Impressions", "lifetime.card_impressions"),
    ("Card Click Rate", "lifetime.card_click_rate"),
    ("Card Teaser Clicks", "lifetime.card_teaser_clicks"),
    ("Card Teaser Impressions", "lifetime.card_teaser_impressions"),
    ("Card Teaser Click Rate", "lifetime.card_teaser_click_rate"),
    ("Estimated Minutes Watched", "lifetime.estimated_minutes_watched"),
    ("Estimated YT Red Minutes Watched", "lifetime.estimated_red_minutes_watched"),
    ("Content Click Other", "lifetime.post_content_clicks_other"),
    ("Shares", "lifetime.shares_count"),
    ("Subscribers Gained", "lifetime.subscribers_gained"),
    ("Subscribers Lost", "lifetime.subscribers_lost"),
    ("YT Red Video Views", "lifetime.red_video_views"),
    ("Video Views", "lifetime.video_views"),
    ("Video Likes", "lifetime.likes"),
    ("Video Dislikes", "lifetime.dislikes"),
    ("Video Reactions", "lifetime.reactions"),
    ("Video Comments", "lifetime.comments_count"),
    ("Video Added to Playlist", "lifetime.videos_added_to_playlist"),
    ("Video From to Playlist", "lifetime.videos_removed_from_playlist"),
    *_SENTIMENT,
)


def truncate(text: str, limit: int = TEXT_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


class PostFormatter:
    """Post-level rows: six fixed columns followed by one column per lifetime metric."""

    def __init__(self, kind: NetworkKind, metrics: Sequence[tuple[str, str]]) -> None:
        self.kind = kind
        self._metrics = tuple(metrics)

    @property
    def headers(self) -> list[str]:
        return [*POST_BASE_HEADERS, *(title for title, _ in self._metrics)]

    @property
    def metric_keys(self) -> list[str]:
        return list(dict.fromkeys(key for _, key in self._metrics))

    def build_row(self, record: PostRecord, profile: ProfileMeta) -> Row:
        metrics: dict[str, Any] = dict(record.raw_metrics)
        row: Row = [
            record.created_time,
            profile.network_type or self.kind.value,
            profile.name,
            profile.profile_id or record.profile_id,
            record.perma_link,
            truncate(record.text),
        ]
        row.extend(safe_number(metrics.get(key)) for _, key in self._metrics)
        return row

    def format(self, record: PostRecord, profile: ProfileMeta, headers: Sequence[str] | None = None) -> Row | None:
        expected = len(headers) if headers is not None else len(self.headers)
        row = self.build_row(record, profile)
        if len(row) != expected:
            logger.warning(
                "Dropping %s post %s: row has %s cells, headers have %s",
                self.kind.value,
                record.key,
                len(row),
                expected,
            )
            metrics_registry.increment(RECORDS_DROPPED)
            return None
        return row
