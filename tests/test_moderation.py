"""
Tests for the moderation workflow.

Covers:
- Listing order (newest first, deterministic ties)
- Approve: ingest then remove, NotFound for unknown ids
- Approve failures leave catalog and pending row untouched
- Concurrent approvals: exactly one wins
- Reject then approve yields NotFound
- Re-ingesting the same URL from two submissions never duplicates
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
import requests

from podcast_feeds.exceptions import FeedTimeoutError, UpstreamFetchError
from podcast_feeds.submissions.moderation import Accepted, Deleted, NotFound

from tests.conftest import SAMPLE_FEED_URL, make_response


def _count(db, table):
    with db.get_connection() as conn:
        return db.count_rows(conn, table)


class TestListPending:

    def test_newest_first(self, moderation, add_pending):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        old = add_pending(url="https://a.example.com/rss", submitted_at=base)
        new = add_pending(url="https://b.example.com/rss", submitted_at=base + timedelta(hours=1))
        mid = add_pending(url="https://c.example.com/rss", submitted_at=base + timedelta(minutes=5))

        pending = moderation.list_pending()

        assert [str(p.id) for p in pending] == [new, mid, old]

    def test_equal_timestamps_ordered_by_id(self, moderation, add_pending):
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        ids = [
            add_pending(submission_id=str(uuid4()), submitted_at=stamp) for _ in range(4)
        ]

        first = [str(p.id) for p in moderation.list_pending()]
        second = [str(p.id) for p in moderation.list_pending()]

        assert first == sorted(ids, reverse=True)
        assert first == second

    def test_early_year_row_lists_and_sorts_last(self, moderation, add_pending):
        recent = add_pending(submitted_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        ancient = add_pending(submitted_at=datetime(999, 1, 1, tzinfo=timezone.utc))

        pending = moderation.list_pending()

        assert [str(p.id) for p in pending] == [recent, ancient]
        assert pending[1].submitted_at == datetime(999, 1, 1, tzinfo=timezone.utc)

    def test_categories_preserved_verbatim(self, moderation, add_pending):
        add_pending(categories=" news ,tech,,")

        (submission,) = moderation.list_pending()

        assert submission.categories == " news ,tech,,"


class TestApprove:

    def test_unknown_id_is_not_found_without_fetch(self, moderation, fake_session):
        missing = uuid4()

        result = moderation.approve(missing)

        assert result == NotFound(missing)
        fake_session.get.assert_not_called()
        assert _count(moderation.db, "shows") == 0

    def test_approve_ingests_and_removes(self, moderation, add_pending, test_db):
        submission_id = add_pending(categories="news,tech,,comedy")

        result = moderation.approve(UUID(submission_id))

        assert isinstance(result, Accepted)
        assert result.location == f"/feeds/{submission_id}"
        assert moderation.list_pending() == []
        with test_db.get_connection() as conn:
            assert test_db.get_show_categories(conn, result.show_id) == ["comedy", "news", "tech"]
            assert len(test_db.get_episodes_by_show(conn, result.show_id)) == 2

    def test_fetch_failure_keeps_row_and_catalog(self, moderation, add_pending, fake_session):
        submission_id = add_pending()
        fake_session.get.side_effect = requests.exceptions.ConnectTimeout("no route")

        with pytest.raises(FeedTimeoutError):
            moderation.approve(UUID(submission_id))

        assert [str(p.id) for p in moderation.list_pending()] == [submission_id]
        assert _count(moderation.db, "shows") == 0

    def test_malformed_feed_keeps_row(self, moderation, add_pending, fake_session):
        submission_id = add_pending()
        fake_session.get.return_value = make_response(b"not a feed at all")

        with pytest.raises(UpstreamFetchError):
            moderation.approve(UUID(submission_id))

        assert moderation.get_pending(UUID(submission_id)) is not None
        assert _count(moderation.db, "shows") == 0

    def test_same_url_twice_never_duplicates(self, moderation, add_pending):
        first = add_pending(categories="news")
        second = add_pending(categories="tech")

        r1 = moderation.approve(UUID(first))
        r2 = moderation.approve(UUID(second))

        assert isinstance(r1, Accepted) and isinstance(r2, Accepted)
        assert r1.show_id == r2.show_id
        assert _count(moderation.db, "shows") == 1
        assert _count(moderation.db, "episodes") == 2

    def test_loser_of_race_sees_not_found(self, moderation, add_pending, fake_session):
        submission_id = UUID(add_pending())
        outcomes = []

        def get_while_other_moderator_approves(*args, **kwargs):
            # A second approval runs to completion while the first is downloading
            if not outcomes:
                outcomes.append("inner")
                outcomes.append(moderation.approve(submission_id))
            return make_response()

        fake_session.get.side_effect = get_while_other_moderator_approves

        outer = moderation.approve(submission_id)

        assert isinstance(outcomes[1], Accepted)
        assert outer == NotFound(submission_id)
        assert _count(moderation.db, "shows") == 1
        assert _count(moderation.db, "episodes") == 2
        assert _count(moderation.db, "pending_feeds") == 0

    def test_concurrent_approvals_exactly_one_wins(self, moderation, add_pending):
        submission_id = UUID(add_pending())

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(lambda _: moderation.approve(submission_id), range(2)))

        assert sum(isinstance(r, Accepted) for r in results) == 1
        assert sum(isinstance(r, NotFound) for r in results) == 1
        assert _count(moderation.db, "shows") == 1


class TestReject:

    def test_reject_removes_row(self, moderation, add_pending):
        submission_id = UUID(add_pending())

        result = moderation.reject(submission_id)

        assert result == Deleted(message=f"Feed {submission_id} was successfully deleted.")
        assert moderation.list_pending() == []

    def test_reject_then_approve_is_not_found(self, moderation, add_pending, fake_session):
        submission_id = UUID(add_pending())
        moderation.reject(submission_id)

        assert moderation.approve(submission_id) == NotFound(submission_id)
        assert moderation.reject(submission_id) == NotFound(submission_id)
        fake_session.get.assert_not_called()
        assert _count(moderation.db, "shows") == 0
