"""
Shared test fixtures.

Provides pytest fixtures for common test resources including:
- Test configuration with temporary paths
- Initialized temporary database
- Submission queue
- Sample RSS documents and fake HTTP responses
"""

import tempfile
from pathlib import Path
from typing import Callable, Dict, Optional
from unittest.mock import MagicMock

import pytest
import requests

from podcast_feeds.config import Config
from podcast_feeds.ingestion.feed_client import FeedClient
from podcast_feeds.messaging.feed_queue import FeedQueue
from podcast_feeds.models.database import Database
from podcast_feeds.submissions.moderation import ModerationService


SAMPLE_FEED_URL = "https://feeds.example.com/dev-talk.xml"

SAMPLE_RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>Dev Talk</title>
    <link>https://example.com/dev-talk</link>
    <description>Conversations about software.</description>
    <language>en-us</language>
    <itunes:author>Dev Talk Crew</itunes:author>
    <itunes:image href="https://example.com/dev-talk.png"/>
    <category>Technology</category>
    <item>
      <guid>devtalk-002</guid>
      <title>Episode 2 - Queues</title>
      <description>All about message queues.</description>
      <pubDate>Tue, 09 Jan 2024 08:00:00 GMT</pubDate>
      <enclosure url="https://cdn.example.com/ep2.mp3" type="audio/mpeg" length="2048"/>
      <itunes:duration>45:30</itunes:duration>
    </item>
    <item>
      <guid>devtalk-001</guid>
      <title>Episode 1 - Pilot</title>
      <description>Welcome to the show.</description>
      <pubDate>Tue, 02 Jan 2024 08:00:00 GMT</pubDate>
      <enclosure url="https://cdn.example.com/ep1.mp3" type="audio/mpeg" length="1024"/>
      <itunes:duration>01:05:00</itunes:duration>
    </item>
  </channel>
</rss>
"""


@pytest.fixture
def temp_dir():
    """
    Create temporary directory for test files.

    Yields:
        Path: Temporary directory path
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """
    Create test configuration with temporary paths.

    Args:
        temp_dir: Temporary directory fixture

    Returns:
        Config: Test configuration
    """
    return Config(
        db_path=temp_dir / "db" / "test.db",
        queue_path=temp_dir / "queue" / "queue.db",
        moderator_token=None,
    )


@pytest.fixture
def test_db(test_config: Config) -> Database:
    """
    Create test database with schema.

    Returns:
        Database: Initialized test database
    """
    db = Database(test_config.db_path)
    db.initialize()
    return db


@pytest.fixture
def feed_queue(test_config: Config) -> FeedQueue:
    """Submission queue in the temporary directory (not yet created)."""
    return FeedQueue(test_config.queue_path, test_config.queue_name)


def make_response(
    content: bytes = SAMPLE_RSS,
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
) -> requests.Response:
    """Build a real requests.Response carrying ``content``."""
    response = requests.Response()
    response.status_code = status_code
    response._content = content
    response.headers.update(headers or {"Content-Type": "application/rss+xml; charset=utf-8"})
    response.url = SAMPLE_FEED_URL
    return response


@pytest.fixture
def fake_session() -> MagicMock:
    """requests.Session double that serves SAMPLE_RSS."""
    session = MagicMock(spec=requests.Session)
    session.get.return_value = make_response()
    return session


@pytest.fixture
def feed_client(test_db: Database, fake_session: MagicMock) -> FeedClient:
    return FeedClient(test_db, session=fake_session, timeout=(1.0, 2.0))


@pytest.fixture
def moderation(test_db: Database, feed_client: FeedClient) -> ModerationService:
    return ModerationService(test_db, feed_client)


@pytest.fixture
def add_pending(test_db: Database) -> Callable:
    """Insert a pending submission directly, as the consumer would."""
    from datetime import datetime, timezone
    import uuid

    def _add(
        url: str = SAMPLE_FEED_URL,
        categories: str = "news,tech,,comedy",
        submitted_at: Optional[datetime] = None,
        submission_id: Optional[str] = None,
    ) -> str:
        submission_id = submission_id or str(uuid.uuid4())
        with test_db.transaction() as conn:
            test_db.insert_pending_feed(
                conn,
                submission_id,
                url,
                categories,
                submitted_at or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
            )
        return submission_id

    return _add
