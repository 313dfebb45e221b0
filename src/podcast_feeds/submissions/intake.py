"""
Submission intake: accept a feed URL and publish it to the queue.

Intake never touches the pending submission store. A submission is
*accepted* once it is on the queue and becomes *visible* to moderators
only after the consumer has materialized it, so callers must not expect
to read back what they just submitted.
"""

import logging
from abc import ABC, abstractmethod

from podcast_feeds.exceptions import SubmissionValidationError
from podcast_feeds.messaging.feed_queue import MAX_MESSAGE_BYTES, FeedQueue
from podcast_feeds.models.entities import UserSubmittedFeed

logger = logging.getLogger(__name__)


class SubmissionPublisher(ABC):
    """
    Port through which intake hands submissions to durable storage.

    Its counterpart on the consuming side is
    ``podcast_feeds.messaging.consumer.materialize``, which turns a
    published message into a pending submission row.
    """

    @abstractmethod
    def publish(self, feed: UserSubmittedFeed) -> str:
        """
        Durably publish a submission.

        Returns:
            Message id assigned by the broker

        Raises:
            SubmissionValidationError: If the submission cannot be carried
                by the broker
            QueuePublishError: If the submission could not be published
        """


class QueueSubmissionPublisher(SubmissionPublisher):
    """Publishes submissions as JSON messages on a FeedQueue."""

    def __init__(self, queue: FeedQueue) -> None:
        self.queue = queue

    def publish(self, feed: UserSubmittedFeed) -> str:
        body = feed.to_message()
        size = len(body.encode("utf-8"))
        if size > MAX_MESSAGE_BYTES:
            raise SubmissionValidationError(
                f"Submission is {size} bytes, the queue accepts at most {MAX_MESSAGE_BYTES}"
            )
        self.queue.create_if_not_exists()
        message = self.queue.send_message(body)
        return message.id


class SubmissionIntake:
    """
    Entry point for user feed submissions.

    Example:
        >>> intake = SubmissionIntake(QueueSubmissionPublisher(queue))
        >>> intake.submit(UserSubmittedFeed(url="https://example.com/rss", categories="news"))
    """

    def __init__(self, publisher: SubmissionPublisher) -> None:
        self.publisher = publisher

    def submit(self, feed: UserSubmittedFeed) -> UserSubmittedFeed:
        """
        Publish a submission and echo it back.

        Args:
            feed: Validated submission payload

        Returns:
            The same payload

        Raises:
            SubmissionValidationError: If the submission is too large to queue
            QueuePublishError: If the queue is unavailable
        """
        message_id = self.publisher.publish(feed)
        logger.info("Queued submission %s for %s", message_id, feed.url)
        return feed
