from __future__ import annotations

from analytics_sync.application.normalizer import normalize, normalize_posts
from analytics_sync.core.metrics import RECORDS_DROPPED, metrics_registry
from tests.fakes import data_point


def test_points_sharing_profile_and_day_collapse_to_first_seen() -> None:
    records = normalize(
        [
            data_point("42", "2025-04-01", likes=10),
            data_point("42", "2025-04-01", likes=99),
            data_point("42", "2025-04-02", likes=5),
        ]
    )

    assert [record.key for record in records] == ["42_2025-04-01", "42_2025-04-02"]
    assert records[0].raw_metrics == {"likes": 10}


def test_reporting_period_timestamps_become_iso_dates() -> None:
    point = {
        "dimensions": {"customer_profile_id": 42, "reporting_period": "2025-04-01T00:00:00Z"},
        "metrics": {"impressions": 3},
    }

    (record,) = normalize([point])

    assert record.profile_id == "42"
    assert record.iso_date == "2025-04-01"


def test_points_without_profile_or_period_are_dropped_and_counted() -> None:
    before = metrics_registry.counter(RECORDS_DROPPED)

    records = normalize(
        [
            {"dimensions": {"reporting_period.by(day)": "2025-04-01"}, "metrics": {}},
            {"dimensions": {"customer_profile_id": "42"}, "metrics": {}},
            "not a mapping",
            data_point("42", "2025-04-01"),
        ]
    )

    assert len(records) == 1
    assert metrics_registry.counter(RECORDS_DROPPED) - before == 3


def test_normalize_posts_builds_utc_timestamps_and_dedupes_by_link() -> None:
    raw = [
        {
            "created_time": "2025-04-01T10:15:00-05:00",
            "perma_link": "https://example.com/p/1",
            "text": "Hello",
            "metrics": {"lifetime.likes": 4},
        },
        {
            "created_time": "2025-04-01T10:15:00-05:00",
            "perma_link": "https://example.com/p/1",
            "text": "Duplicate",
            "metrics": {"lifetime.likes": 8},
        },
        {
            "dimensions": {"created_time": "2025-04-02T08:00:00Z", "post_url": "https://example.com/p/2"},
            "message": "From message",
        },
        {"text": "no timestamp"},
    ]

    records = normalize_posts(raw, "42")

    assert [record.created_time for record in records] == ["2025-04-01T15:15:00.000Z", "2025-04-02T08:00:00.000Z"]
    assert records[0].text == "Hello"
    assert records[0].raw_metrics == {"lifetime.likes": 4}
    assert records[1].perma_link == "https://example.com/p/2"
    assert records[1].text == "From message"
    assert all(record.profile_id == "42" for record in records)


def test_normalize_posts_stamps_posts_in_the_query_timezone() -> None:
    raw = [
        {"created_time": "2025-04-02T01:30:00Z", "perma_link": "https://example.com/p/evening"},
        {"created_time": "2025-04-01T08:00:00", "perma_link": "https://example.com/p/naive"},
    ]

    evening, naive = normalize_posts(raw, "42", "America/Chicago")

    assert evening.created_time == "2025-04-01T20:30:00.000-05:00"
    assert evening.iso_date == "2025-04-01"
    assert naive.created_time == "2025-04-01T03:00:00.000-05:00"
    assert naive.iso_date == "2025-04-01"
