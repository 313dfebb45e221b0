"""
Database management and data access layer.

Provides a Database class for managing SQLite connections and helper methods
for the pending submission store and the podcast catalog. Write paths that
must be atomic run inside ``Database.transaction()``.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from .entities import format_timestamp
from .schema import create_all_tables

# Seconds a connection waits on a locked database before giving up
BUSY_TIMEOUT = 30.0


class Database:
    """
    Database connection and query management.

    Example:
        >>> db = Database(Path("data/db/podcast_feeds.db"))
        >>> db.initialize()
        >>> with db.transaction() as conn:
        ...     db.delete_pending_feed_if_exists(conn, submission_id)
    """

    def __init__(self, db_path: Path):
        """
        Initialize database manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def initialize(self) -> None:
        """
        Initialize database schema.

        Creates all tables and indexes if they don't exist.
        Safe to call multiple times (idempotent).
        """
        create_all_tables(self.db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=BUSY_TIMEOUT,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def get_connection(self):
        """
        Context manager for read connections.

        Yields:
            sqlite3.Connection: Autocommit connection with row factory set
        """
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self, immediate: bool = True):
        """
        Context manager for a single write transaction.

        ``BEGIN IMMEDIATE`` takes the write lock up front so that two
        moderators acting on the same row serialize instead of both
        reading it and one failing late. Everything done on the yielded
        connection commits together or not at all.

        Yields:
            sqlite3.Connection: Connection inside an open transaction
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        finally:
            conn.close()

    # ------------------------------------------------------------------
    #  Pending submissions
    # ------------------------------------------------------------------

    def insert_pending_feed(
        self,
        conn: sqlite3.Connection,
        submission_id: str,
        url: str,
        categories: str,
        submitted_at: datetime,
    ) -> bool:
        """
        Insert a pending submission unless the id is already present.

        Args:
            conn: Database connection
            submission_id: Submission UUID as string
            url: Feed URL
            categories: Raw categories text, stored verbatim
            submitted_at: Producer-assigned timestamp

        Returns:
            True if a row was inserted, False if the id already existed
        """
        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO pending_feeds (id, url, categories, submitted_at)
            VALUES (?, ?, ?, ?)
            """,
            (submission_id, url, categories, format_timestamp(submitted_at)),
        )
        return cursor.rowcount == 1

    def get_pending_feed(
        self, conn: sqlite3.Connection, submission_id: str
    ) -> Optional[sqlite3.Row]:
        """
        Retrieve a pending submission by id.

        Returns:
            Row or None if not found
        """
        cursor = conn.execute(
            "SELECT * FROM pending_feeds WHERE id = ?", (submission_id,)
        )
        return cursor.fetchone()

    def list_pending_feeds(self, conn: sqlite3.Connection) -> List[sqlite3.Row]:
        """
        Retrieve all pending submissions, newest first.

        Equal timestamps are ordered by id so the listing is deterministic.
        """
        cursor = conn.execute(
            "SELECT * FROM pending_feeds ORDER BY submitted_at DESC, id DESC"
        )
        return cursor.fetchall()

    def delete_pending_feed_if_exists(
        self, conn: sqlite3.Connection, submission_id: str
    ) -> bool:
        """
        Compare-and-delete a pending submission.

        Returns:
            True if this call removed the row, False if it was already gone
        """
        cursor = conn.execute(
            "DELETE FROM pending_feeds WHERE id = ?", (submission_id,)
        )
        return cursor.rowcount == 1

    # ------------------------------------------------------------------
    #  Catalog
    # ------------------------------------------------------------------

    def upsert_show(
        self,
        conn: sqlite3.Connection,
        feed_url: str,
        title: str,
        author: Optional[str] = None,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
        link: Optional[str] = None,
        language: Optional[str] = None,
    ) -> int:
        """
        Insert or update a show keyed by its feed URL.

        Returns:
            int: ID of the show (existing or newly inserted)
        """
        conn.execute(
            """
            INSERT INTO shows (feed_url, title, author, description, image_url, link, language)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(feed_url) DO UPDATE SET
                title = excluded.title,
                author = excluded.author,
                description = excluded.description,
                image_url = excluded.image_url,
                link = excluded.link,
                language = excluded.language,
                updated_at = datetime('now')
            """,
            (feed_url, title, author, description, image_url, link, language),
        )
        row = conn.execute(
            "SELECT id FROM shows WHERE feed_url = ?", (feed_url,)
        ).fetchone()
        return row[0]

    def upsert_episode(
        self,
        conn: sqlite3.Connection,
        show_id: int,
        guid: str,
        title: str,
        description: Optional[str] = None,
        published: Optional[str] = None,
        audio_url: Optional[str] = None,
        duration_seconds: Optional[int] = None,
    ) -> int:
        """
        Insert or update an episode keyed by (show_id, guid).

        Returns:
            int: ID of the episode (existing or newly inserted)
        """
        conn.execute(
            """
            INSERT INTO episodes (
                show_id, guid, title, description, published, audio_url, duration_seconds
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(show_id, guid) DO UPDATE SET
                title = excluded.title,
                description = excluded.description,
                published = excluded.published,
                audio_url = excluded.audio_url,
                duration_seconds = excluded.duration_seconds,
                updated_at = datetime('now')
            """,
            (show_id, guid, title, description, published, audio_url, duration_seconds),
        )
        row = conn.execute(
            "SELECT id FROM episodes WHERE show_id = ? AND guid = ?", (show_id, guid)
        ).fetchone()
        return row[0]

    def get_or_create_category(self, conn: sqlite3.Connection, genre: str) -> int:
        """
        Insert or get a category record.

        Returns:
            int: ID of category (existing or newly inserted)
        """
        cursor = conn.execute("SELECT id FROM categories WHERE genre = ?", (genre,))
        row = cursor.fetchone()
        if row:
            return row[0]

        cursor = conn.execute("INSERT INTO categories (genre) VALUES (?)", (genre,))
        return cursor.lastrowid

    def replace_show_categories(
        self, conn: sqlite3.Connection, show_id: int, category_ids: Iterable[int]
    ) -> None:
        """Make ``category_ids`` the complete category set of a show."""
        conn.execute("DELETE FROM show_categories WHERE show_id = ?", (show_id,))
        conn.executemany(
            "INSERT OR IGNORE INTO show_categories (show_id, category_id) VALUES (?, ?)",
            [(show_id, category_id) for category_id in category_ids],
        )

    def get_show_by_feed_url(
        self, conn: sqlite3.Connection, feed_url: str
    ) -> Optional[sqlite3.Row]:
        cursor = conn.execute("SELECT * FROM shows WHERE feed_url = ?", (feed_url,))
        return cursor.fetchone()

    def get_episodes_by_show(
        self, conn: sqlite3.Connection, show_id: int
    ) -> List[sqlite3.Row]:
        """Retrieve all episodes of a show, newest first."""
        cursor = conn.execute(
            "SELECT * FROM episodes WHERE show_id = ? ORDER BY published DESC, id",
            (show_id,),
        )
        return cursor.fetchall()

    def get_show_categories(self, conn: sqlite3.Connection, show_id: int) -> List[str]:
        """Category labels linked to a show, alphabetically."""
        cursor = conn.execute(
            """
            SELECT c.genre FROM categories c
            JOIN show_categories sc ON sc.category_id = c.id
            WHERE sc.show_id = ?
            ORDER BY c.genre
            """,
            (show_id,),
        )
        return [row[0] for row in cursor.fetchall()]

    def count_rows(self, conn: sqlite3.Connection, table: str) -> int:
        """Row count of one of the known tables."""
        if table not in ("pending_feeds", "shows", "episodes", "categories", "show_categories"):
            raise ValueError(f"Unknown table: {table}")
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
