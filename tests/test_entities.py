"""
Tests for submission data models and helpers.

Covers:
- Category text parsing (trimming, empty segments, duplicates)
- UserSubmittedFeed validation and wire format
- Timestamp normalization used for ordering
"""

import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from podcast_feeds.exceptions import SubmissionValidationError
from podcast_feeds.models.entities import (
    PendingSubmission,
    UserSubmittedFeed,
    format_timestamp,
    parse_categories,
    to_utc,
)


class TestParseCategories:
    """Tests for parse_categories()."""

    def test_drops_empty_segments(self):
        assert parse_categories("news,tech,,comedy") == ["news", "tech", "comedy"]

    def test_trims_whitespace(self):
        assert parse_categories(" news , tech ") == ["news", "tech"]

    def test_keeps_first_of_duplicates(self):
        assert parse_categories("tech,news,tech") == ["tech", "news"]

    def test_empty_text(self):
        assert parse_categories("") == []
        assert parse_categories(" , ,") == []


class TestUserSubmittedFeed:
    """Tests for the intake payload model."""

    def test_accepts_wire_alias(self):
        feed = UserSubmittedFeed.model_validate(
            {
                "url": "https://example.com/rss",
                "categories": "news",
                "submittedAt": "2024-03-01T10:00:00Z",
            }
        )
        assert feed.submitted_at == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_rejects_empty_url(self):
        with pytest.raises(ValidationError):
            UserSubmittedFeed(url="   ", categories="news")

    def test_defaults_timestamp_to_now_utc(self):
        before = datetime.now(timezone.utc)
        feed = UserSubmittedFeed(url="https://example.com/rss")
        assert feed.submitted_at.tzinfo is not None
        assert feed.submitted_at >= before

    def test_naive_timestamp_is_utc(self):
        feed = UserSubmittedFeed(url="https://example.com/rss", submitted_at=datetime(2024, 1, 1, 8, 0))
        assert feed.submitted_at.utcoffset() == timedelta(0)

    def test_message_carries_exactly_three_fields(self):
        feed = UserSubmittedFeed(
            url="https://example.com/rss",
            categories="news, tech",
            submitted_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        body = json.loads(feed.to_message())
        assert set(body) == {"url", "categories", "submittedAt"}
        assert body["categories"] == "news, tech"


class TestTimestamps:
    """Tests for the fixed-width timestamp format."""

    def test_lexical_order_matches_time_order(self):
        # 03:00Z, half an hour before later
        earlier = datetime(2024, 1, 1, 22, 0, tzinfo=timezone(timedelta(hours=-5)))
        later = datetime(2024, 1, 2, 3, 30, tzinfo=timezone.utc)
        assert earlier < later
        assert format_timestamp(earlier) < format_timestamp(later)

    def test_years_before_1000_are_zero_padded(self):
        early = datetime(999, 1, 1, tzinfo=timezone.utc)
        modern = datetime(2024, 1, 1, tzinfo=timezone.utc)

        stamp = format_timestamp(early)

        assert stamp == "0999-01-01T00:00:00.000000+00:00"
        assert len(stamp) == len(format_timestamp(modern))
        assert stamp < format_timestamp(modern)
        assert datetime.fromisoformat(stamp) == early

    def test_out_of_range_instant_is_validation_error(self):
        with pytest.raises(ValidationError):
            UserSubmittedFeed.model_validate(
                {"url": "https://example.com/rss", "submittedAt": "9999-12-31T23:30:00-01:00"}
            )

    def test_to_utc_overflow_raises_submission_error(self):
        late = datetime(9999, 12, 31, 23, 30, tzinfo=timezone(timedelta(hours=-1)))
        with pytest.raises(SubmissionValidationError):
            to_utc(late)

    def test_pending_submission_category_labels(self):
        submission = PendingSubmission(
            id="6b0b8a39-3f5a-4a55-9a0e-3b5d1a0f6c11",
            url="https://example.com/rss",
            categories="news,tech,,comedy",
            submitted_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        assert submission.categories == "news,tech,,comedy"
        assert submission.category_labels == ["news", "tech", "comedy"]
