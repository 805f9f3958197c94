from __future__ import annotations

from analytics_sync.application.formatters.posts import POST_BASE_HEADERS, TEXT_LIMIT, truncate
from analytics_sync.application.formatters.registry import post_formatter_for
from analytics_sync.domain.models import NetworkKind, PostRecord, ProfileMeta

PROFILE = ProfileMeta("42", "Acme", "fb_instagram_account")


def _post(**metrics) -> PostRecord:
    return PostRecord(
        profile_id="42",
        created_time="2025-04-01T15:15:00.000Z",
        iso_date="2025-04-01",
        perma_link="https://example.com/p/1",
        text="Hello",
        raw_metrics=metrics,
    )


def test_post_row_starts_with_fixed_columns_then_lifetime_metrics() -> None:
    formatter = post_formatter_for(NetworkKind.INSTAGRAM)
    assert formatter is not None

    row = formatter.format(_post(**{"lifetime.likes": 12, "lifetime.saves": "3"}), PROFILE)

    assert formatter.headers[:6] == list(POST_BASE_HEADERS)
    assert row is not None
    assert row[:6] == [
        "2025-04-01T15:15:00.000Z",
        "fb_instagram_account",
        "Acme",
        "42",
        "https://example.com/p/1",
        "Hello",
    ]
    assert row[formatter.headers.index("Likes")] == 12
    assert row[formatter.headers.index("Saves")] == 3
    assert row[formatter.headers.index("Reach")] == 0
    assert len(row) == len(formatter.headers)


def test_post_row_is_dropped_when_headers_disagree() -> None:
    formatter = post_formatter_for(NetworkKind.TWITTER)
    assert formatter is not None

    assert formatter.format(_post(), PROFILE, headers=formatter.headers[:-1]) is None


def test_long_post_text_is_truncated_with_ellipsis() -> None:
    text = "x" * (TEXT_LIMIT + 20)

    clipped = truncate(text)

    assert len(clipped) == TEXT_LIMIT
    assert clipped.endswith("…")
    assert truncate("short") == "short"


def test_post_metric_keys_are_deduplicated() -> None:
    formatter = post_formatter_for(NetworkKind.INSTAGRAM)
    assert formatter is not None

    keys = formatter.metric_keys

    # Comments and Story Replies read the same lifetime metric.
    assert keys.count("lifetime.comments_count") == 1
    assert len(formatter.headers) == len(POST_BASE_HEADERS) + 20
