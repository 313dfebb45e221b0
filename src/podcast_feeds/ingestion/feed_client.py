"""
Feed client: download, parse and upsert a podcast feed into the catalog.

The download happens outside any database transaction. The upsert of the
show, its categories and its episodes runs on a connection supplied by
the caller, so the caller decides what else commits in the same unit.

Example:
    >>> client = FeedClient(db, timeout=(10, 30))
    >>> with db.transaction() as conn:
    ...     show_id = client.add_feed(conn, "https://example.com/rss", ["news"])
"""

import logging
import sqlite3
from typing import List, Optional, Sequence, Tuple, Union

import requests

from podcast_feeds.exceptions import FeedFetchError, FeedTimeoutError
from podcast_feeds.ingestion.rss_parser import ParsedFeed, parse_feed_document
from podcast_feeds.models.database import Database

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = (10.0, 30.0)  # (connect, read) seconds
DEFAULT_USER_AGENT = "podcast-feeds/0.1"
ACCEPT_HEADER = (
    "application/rss+xml, application/atom+xml, application/xml;q=0.9, "
    "text/xml;q=0.9, */*;q=0.8"
)

Timeout = Union[float, Tuple[float, float]]


class FeedClient:
    """
    Retrieves remote feeds and writes them into the catalog.

    Attributes:
        db: Catalog database
        session: requests session used for downloads
        timeout: Default (connect, read) timeout
        user_agent: User-Agent header value
    """

    def __init__(
        self,
        db: Database,
        session: Optional[requests.Session] = None,
        timeout: Timeout = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.db = db
        self.session = session or requests.Session()
        self.timeout = timeout
        self.user_agent = user_agent

    def fetch_feed(self, url: str, timeout: Optional[Timeout] = None) -> ParsedFeed:
        """
        Download and parse the feed at ``url``.

        Args:
            url: Feed URL
            timeout: Overrides the client's default timeout for this call

        Returns:
            ParsedFeed

        Raises:
            FeedTimeoutError: The download timed out
            FeedFetchError: Connection failure or non-success status
            FeedParseError: The document is not a feed
            EmptyFeedError: The feed has no usable entries
        """
        effective_timeout = timeout if timeout is not None else self.timeout
        logger.info("Fetching feed %s", url)
        try:
            response = self.session.get(
                url,
                timeout=effective_timeout,
                headers={"User-Agent": self.user_agent, "Accept": ACCEPT_HEADER},
            )
            response.raise_for_status()
        except requests.exceptions.Timeout as exc:
            raise FeedTimeoutError(url, f"Timed out after {effective_timeout}s") from exc
        except requests.exceptions.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise FeedFetchError(url, f"HTTP {status}", status_code=status) from exc
        except requests.exceptions.RequestException as exc:
            raise FeedFetchError(url, f"Request failed: {exc}") from exc

        return parse_feed_document(response.content, url, response.headers)

    def upsert_feed(
        self,
        conn: sqlite3.Connection,
        url: str,
        category_labels: Sequence[str],
        feed: ParsedFeed,
    ) -> int:
        """
        Write a parsed feed into the catalog on ``conn``.

        The show is keyed by ``url``. ``category_labels`` become the show's
        complete category set; categories declared inside the feed are not
        linked.

        Returns:
            int: Show ID
        """
        show_id = self.db.upsert_show(
            conn,
            feed_url=url,
            title=feed.title,
            author=feed.author,
            description=feed.description,
            image_url=feed.image_url,
            link=feed.link,
            language=feed.language,
        )

        category_ids: List[int] = [
            self.db.get_or_create_category(conn, label) for label in category_labels
        ]
        self.db.replace_show_categories(conn, show_id, category_ids)

        unlinked = [label for label in feed.feed_categories if label not in category_labels]
        if unlinked:
            logger.info(
                "Feed %s declares categories not linked to show %d: %s",
                url, show_id, ", ".join(unlinked),
            )

        for episode in feed.episodes:
            self.db.upsert_episode(
                conn,
                show_id=show_id,
                guid=episode.guid,
                title=episode.title,
                description=episode.description,
                published=episode.published,
                audio_url=episode.audio_url,
                duration_seconds=episode.duration_seconds,
            )

        logger.info(
            "Upserted show %d (%s) with %d episode(s) and categories %s",
            show_id,
            url,
            len(feed.episodes),
            list(category_labels),
        )
        return show_id

    def add_feed(
        self,
        conn: sqlite3.Connection,
        url: str,
        category_labels: Sequence[str],
        timeout: Optional[Timeout] = None,
    ) -> int:
        """Fetch the feed at ``url`` and upsert it on ``conn``."""
        feed = self.fetch_feed(url, timeout=timeout)
        return self.upsert_feed(conn, url, category_labels, feed)
