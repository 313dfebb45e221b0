"""
Messaging module for the durable submission queue and its consumer.

The queue decouples feed intake from the pending submission store; the
consumer materializes queue messages into pending rows.
"""

from podcast_feeds.messaging.feed_queue import FeedQueue, QueueMessage
from podcast_feeds.messaging.consumer import SubmissionConsumer, materialize

__all__ = ["FeedQueue", "QueueMessage", "SubmissionConsumer", "materialize"]
