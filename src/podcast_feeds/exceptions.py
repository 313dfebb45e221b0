"""
Exception hierarchy for feed submission and ingestion.

Expected conditions (an id that is no longer pending) are returned as
typed results by the moderation service; the classes here cover
infrastructure and upstream failures that must reach the caller.
"""

from typing import Optional


class FeedSubmissionError(Exception):
    """Base class for all errors raised by podcast_feeds."""


class SubmissionValidationError(FeedSubmissionError, ValueError):
    """Input rejected before any side effect took place."""


class QueuePublishError(FeedSubmissionError):
    """The submission queue could not be created or written to."""


class UpstreamFetchError(FeedSubmissionError):
    """
    Ingestion of a remote feed failed.

    Attributes:
        url: Feed URL being ingested
        reason: Short human-readable reason
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"{reason} ({url})")


class FeedFetchError(UpstreamFetchError):
    """Network error or non-success HTTP status while downloading a feed."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(url, reason)


class FeedTimeoutError(FeedFetchError):
    """The feed download did not complete within the allotted timeout."""


class FeedParseError(UpstreamFetchError):
    """The downloaded document is not a parseable syndication feed."""


class EmptyFeedError(UpstreamFetchError):
    """The feed parsed but contains no usable episode entries."""
