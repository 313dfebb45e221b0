"""
Durable submission queue backed by SQLite.

Models a storage-queue style broker: the queue is created lazily with
create-if-not-exists semantics, messages are JSON text bodies with a
UUID id assigned at publish time, and delivery is at-least-once. A
received message is hidden for a visibility timeout and reappears unless
it is deleted with the pop receipt from that delivery.

Example:
    >>> queue = FeedQueue(Path("data/queue/feed_queue.db"), "feed-queue")
    >>> queue.create_if_not_exists()
    >>> queue.send_message('{"url": "https://example.com/rss"}')
    >>> for message in queue.receive_messages(max_messages=10):
    ...     handle(message.body)
    ...     queue.delete_message(message.id, message.pop_receipt)
"""

import logging
import sqlite3
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from podcast_feeds.exceptions import QueuePublishError
from podcast_feeds.models.entities import format_timestamp, utc_now

logger = logging.getLogger(__name__)

# Largest message body the queue accepts, in UTF-8 bytes
MAX_MESSAGE_BYTES = 64 * 1024

QUEUE_SCHEMA_SQL = """
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS queues (
    name            TEXT    PRIMARY KEY,
    created_at      TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS queue_messages (
    seq             INTEGER PRIMARY KEY AUTOINCREMENT,
    message_id      TEXT    NOT NULL UNIQUE,
    queue_name      TEXT    NOT NULL REFERENCES queues(name) ON DELETE CASCADE,
    body            TEXT    NOT NULL,
    inserted_at     TEXT    NOT NULL,
    visible_at      REAL    NOT NULL,  -- epoch seconds
    dequeue_count   INTEGER NOT NULL DEFAULT 0,
    pop_receipt     TEXT
);

CREATE INDEX IF NOT EXISTS idx_queue_messages_visible ON queue_messages(queue_name, visible_at, seq);
"""


@dataclass
class QueueMessage:
    """
    A message as stored in or delivered from the queue.

    Attributes:
        id: UUID assigned when the message was sent
        body: Message text (JSON for submissions)
        inserted_at: UTC ISO-8601 time the message was sent
        dequeue_count: Number of times the message has been delivered
        pop_receipt: Receipt from the latest delivery, required to delete
    """

    id: str
    body: str
    inserted_at: str
    dequeue_count: int = 0
    pop_receipt: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FeedQueue:
    """
    Named queue stored in a SQLite file.

    Several named queues can share one file; the poison queue for
    ``feed-queue`` is ``feed-queue-poison`` in the same file.
    """

    def __init__(
        self,
        path: Path,
        name: str = "feed-queue",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = path
        self.name = name
        self._clock = clock

    @contextmanager
    def _connect(self, write: bool = False):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            if write:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            if write:
                conn.execute("COMMIT")
        except BaseException:
            if write and conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def sibling(self, name: str) -> "FeedQueue":
        """Another named queue in the same storage file."""
        return FeedQueue(self.path, name, clock=self._clock)

    def exists(self) -> bool:
        with self._connect() as conn:
            has_table = conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type='table' AND name='queues'"
            ).fetchone()
            if not has_table:
                return False
            row = conn.execute(
                "SELECT 1 FROM queues WHERE name = ?", (self.name,)
            ).fetchone()
            return row is not None

    def create_if_not_exists(self) -> bool:
        """
        Create the queue unless it already exists.

        Returns:
            True if the queue was created by this call

        Raises:
            QueuePublishError: If the queue storage is unavailable
        """
        try:
            with self._connect() as conn:
                conn.executescript(QUEUE_SCHEMA_SQL)
            with self._connect(write=True) as conn:
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO queues (name, created_at) VALUES (?, ?)",
                    (self.name, format_timestamp(utc_now())),
                )
                created = cursor.rowcount == 1
        except sqlite3.Error as exc:
            raise QueuePublishError(f"Could not create queue '{self.name}': {exc}") from exc

        if created:
            logger.info("Created queue '%s' in %s", self.name, self.path)
        return created

    def send_message(self, body: str) -> QueueMessage:
        """
        Append a message to the queue.

        Raises:
            QueuePublishError: If the queue does not exist or storage fails
        """
        message = QueueMessage(
            id=str(uuid.uuid4()),
            body=body,
            inserted_at=format_timestamp(utc_now()),
        )
        try:
            with self._connect(write=True) as conn:
                known = conn.execute(
                    "SELECT 1 FROM queues WHERE name = ?", (self.name,)
                ).fetchone()
                if known is None:
                    raise QueuePublishError(f"Queue '{self.name}' does not exist")
                conn.execute(
                    """
                    INSERT INTO queue_messages (message_id, queue_name, body, inserted_at, visible_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (message.id, self.name, body, message.inserted_at, self._clock()),
                )
        except sqlite3.Error as exc:
            raise QueuePublishError(f"Could not publish to queue '{self.name}': {exc}") from exc

        logger.debug("Sent message %s to queue '%s'", message.id, self.name)
        return message

    def receive_messages(
        self, max_messages: int = 1, visibility_timeout: float = 30.0
    ) -> List[QueueMessage]:
        """
        Receive up to ``max_messages`` visible messages, oldest first.

        Each returned message is hidden for ``visibility_timeout`` seconds
        and carries a fresh pop receipt.
        """
        now = self._clock()
        messages: List[QueueMessage] = []
        with self._connect(write=True) as conn:
            rows = conn.execute(
                """
                SELECT * FROM queue_messages
                WHERE queue_name = ? AND visible_at <= ?
                ORDER BY seq
                LIMIT ?
                """,
                (self.name, now, max_messages),
            ).fetchall()
            for row in rows:
                receipt = uuid.uuid4().hex
                conn.execute(
                    """
                    UPDATE queue_messages
                    SET visible_at = ?, dequeue_count = dequeue_count + 1, pop_receipt = ?
                    WHERE seq = ?
                    """,
                    (now + visibility_timeout, receipt, row["seq"]),
                )
                messages.append(
                    QueueMessage(
                        id=row["message_id"],
                        body=row["body"],
                        inserted_at=row["inserted_at"],
                        dequeue_count=row["dequeue_count"] + 1,
                        pop_receipt=receipt,
                    )
                )
        return messages

    def peek_messages(self, max_messages: int = 32) -> List[QueueMessage]:
        """Visible messages without changing their visibility."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM queue_messages
                WHERE queue_name = ? AND visible_at <= ?
                ORDER BY seq
                LIMIT ?
                """,
                (self.name, self._clock(), max_messages),
            ).fetchall()
        return [
            QueueMessage(
                id=row["message_id"],
                body=row["body"],
                inserted_at=row["inserted_at"],
                dequeue_count=row["dequeue_count"],
            )
            for row in rows
        ]

    def delete_message(self, message_id: str, pop_receipt: str) -> bool:
        """
        Delete a delivered message.

        Returns:
            False if the receipt is stale (the message was redelivered) or
            the message is already gone
        """
        with self._connect(write=True) as conn:
            cursor = conn.execute(
                "DELETE FROM queue_messages WHERE message_id = ? AND pop_receipt = ?",
                (message_id, pop_receipt),
            )
            return cursor.rowcount == 1

    def approximate_message_count(self) -> int:
        if not self.exists():
            return 0
        with self._connect() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM queue_messages WHERE queue_name = ?", (self.name,)
            ).fetchone()[0]
