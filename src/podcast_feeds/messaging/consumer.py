"""
Queue consumer that turns submission messages into pending rows.

This is the only writer of the ``pending_feeds`` table. It runs out of
band from the HTTP service (``podcast-feeds consume`` from cron or a
worker loop), so a submission becomes visible to moderators only after
the next drain.

The message id becomes the pending submission id, which makes a
redelivered message land on the row it already created.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import ValidationError

from podcast_feeds.messaging.feed_queue import FeedQueue, QueueMessage
from podcast_feeds.models.database import Database
from podcast_feeds.models.entities import PendingSubmission, UserSubmittedFeed

logger = logging.getLogger(__name__)

POISON_SUFFIX = "-poison"


def materialize(message: QueueMessage) -> PendingSubmission:
    """
    Map a queue message onto the pending submission it represents.

    Args:
        message: Delivered queue message with a JSON submission body

    Returns:
        PendingSubmission with the message id as its id

    Raises:
        pydantic.ValidationError: If the body is not a valid submission
    """
    feed = UserSubmittedFeed.model_validate_json(message.body)
    return PendingSubmission(
        id=UUID(message.id),
        url=feed.url,
        categories=feed.categories,
        submitted_at=feed.submitted_at,
    )


@dataclass
class DrainResult:
    """
    Outcome of one drain pass over the queue.

    Attributes:
        received: Messages delivered during the pass
        stored: New pending rows written
        duplicates: Redeliveries whose row already existed
        poisoned: Messages moved to the poison queue
        errors: Messages left on the queue for a later retry
    """

    received: int = 0
    stored: int = 0
    duplicates: int = 0
    poisoned: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "received": self.received,
            "stored": self.stored,
            "duplicates": self.duplicates,
            "poisoned": self.poisoned,
            "errors": self.errors,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


class SubmissionConsumer:
    """
    Drains the submission queue into the pending submission store.

    Example:
        >>> consumer = SubmissionConsumer(queue, db, max_dequeue_count=5)
        >>> result = consumer.drain()
        >>> print(f"stored {result.stored} new submissions")
    """

    def __init__(
        self,
        queue: FeedQueue,
        db: Database,
        max_dequeue_count: int = 5,
        poison_queue: Optional[FeedQueue] = None,
    ) -> None:
        self.queue = queue
        self.db = db
        self.max_dequeue_count = max_dequeue_count
        self.poison_queue = poison_queue or queue.sibling(queue.name + POISON_SUFFIX)

    def store(self, submission: PendingSubmission) -> bool:
        """Write a pending row; False when the id is already stored."""
        with self.db.transaction() as conn:
            return self.db.insert_pending_feed(
                conn,
                str(submission.id),
                submission.url,
                submission.categories,
                submission.submitted_at,
            )

    def _poison(self, message: QueueMessage, reason: str) -> None:
        logger.error("Moving message %s to poison queue: %s", message.id, reason)
        self.poison_queue.create_if_not_exists()
        self.poison_queue.send_message(message.body)
        self.queue.delete_message(message.id, message.pop_receipt)

    def process_message(self, message: QueueMessage, result: DrainResult) -> None:
        if message.dequeue_count > self.max_dequeue_count:
            self._poison(message, f"dequeued {message.dequeue_count} times")
            result.poisoned += 1
            return

        try:
            submission = materialize(message)
        except (ValidationError, ValueError) as exc:
            self._poison(message, f"invalid body: {exc}")
            result.poisoned += 1
            return

        if self.store(submission):
            result.stored += 1
            logger.info("Stored pending submission %s for %s", submission.id, submission.url)
        else:
            result.duplicates += 1
            logger.debug("Submission %s already stored (redelivery)", submission.id)

        self.queue.delete_message(message.id, message.pop_receipt)

    def drain(self, max_messages: int = 32, visibility_timeout: float = 30.0) -> DrainResult:
        """
        Receive and process messages until the queue has none visible.

        Args:
            max_messages: Upper bound on messages handled in this pass
            visibility_timeout: Seconds a message stays hidden while handled

        Returns:
            DrainResult summarizing the pass
        """
        result = DrainResult()
        if not self.queue.exists():
            logger.debug("Queue '%s' has not been created yet", self.queue.name)
            return result

        seen = set()
        while result.received < max_messages:
            requested = min(32, max_messages - result.received)
            batch = self.queue.receive_messages(
                max_messages=requested,
                visibility_timeout=visibility_timeout,
            )
            fresh = [message for message in batch if message.id not in seen]
            if not fresh:
                break
            for message in fresh:
                seen.add(message.id)
                result.received += 1
                try:
                    self.process_message(message, result)
                except Exception as exc:
                    # left on the queue; redelivered after the visibility timeout
                    logger.exception("Failed to process message %s", message.id)
                    result.errors.append(f"{message.id}: {exc}")
            if len(batch) < requested:
                break

        return result
