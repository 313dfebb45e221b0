"""
Moderation workflow for pending feed submissions.

A moderator lists pending submissions and approves or rejects one by id.
Approval fetches the feed first, then upserts the catalog and deletes
the pending row inside a single transaction. The row delete is a
compare-and-delete: when two approvals race, the one that finds the row
already gone rolls back its catalog writes and reports NotFound.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union
from uuid import UUID

from podcast_feeds.ingestion.feed_client import FeedClient, Timeout
from podcast_feeds.models.database import Database
from podcast_feeds.models.entities import PendingSubmission

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Accepted:
    """Approval succeeded; ``location`` references the processed submission."""

    location: str
    show_id: int


@dataclass(frozen=True)
class Deleted:
    """Rejection succeeded."""

    message: str


@dataclass(frozen=True)
class NotFound:
    """No pending submission with this id (never existed or already decided)."""

    id: UUID


class _AlreadyDecided(Exception):
    """Internal signal: the row vanished between lookup and delete."""


ApproveResult = Union[Accepted, NotFound]
RejectResult = Union[Deleted, NotFound]


class ModerationService:
    """
    Approve, reject and list pending submissions.

    Attributes:
        db: Database holding pending submissions and the catalog
        feed_client: Client used to ingest approved feeds
    """

    def __init__(self, db: Database, feed_client: FeedClient) -> None:
        self.db = db
        self.feed_client = feed_client

    def list_pending(self) -> List[PendingSubmission]:
        """All pending submissions, newest first, ties broken by id."""
        with self.db.get_connection() as conn:
            rows = self.db.list_pending_feeds(conn)
        return [PendingSubmission.from_row(row) for row in rows]

    def get_pending(self, submission_id: UUID) -> Optional[PendingSubmission]:
        with self.db.get_connection() as conn:
            row = self.db.get_pending_feed(conn, str(submission_id))
        return PendingSubmission.from_row(row) if row else None

    def approve(
        self, submission_id: UUID, timeout: Optional[Timeout] = None
    ) -> ApproveResult:
        """
        Ingest a pending submission into the catalog and remove it.

        Args:
            submission_id: Pending submission id
            timeout: Feed download timeout for this approval

        Returns:
            Accepted, or NotFound if the submission is not pending

        Raises:
            UpstreamFetchError: Fetching or parsing the feed failed; the
                catalog and the pending row are unchanged
        """
        submission = self.get_pending(submission_id)
        if submission is None:
            logger.info("Approve: submission %s not found", submission_id)
            return NotFound(submission_id)

        labels = submission.category_labels
        feed = self.feed_client.fetch_feed(submission.url, timeout=timeout)

        try:
            with self.db.transaction() as conn:
                show_id = self.feed_client.upsert_feed(conn, submission.url, labels, feed)
                if not self.db.delete_pending_feed_if_exists(conn, str(submission_id)):
                    raise _AlreadyDecided()
        except _AlreadyDecided:
            logger.info("Approve: submission %s was decided concurrently", submission_id)
            return NotFound(submission_id)

        logger.info(
            "Approved submission %s: %s ingested as show %d", submission_id, submission.url, show_id
        )
        return Accepted(location=f"/feeds/{submission_id}", show_id=show_id)

    def reject(self, submission_id: UUID) -> RejectResult:
        """
        Remove a pending submission without ingesting it.

        Returns:
            Deleted, or NotFound if the submission is not pending
        """
        with self.db.transaction() as conn:
            removed = self.db.delete_pending_feed_if_exists(conn, str(submission_id))

        if not removed:
            logger.info("Reject: submission %s not found", submission_id)
            return NotFound(submission_id)

        logger.info("Rejected submission %s", submission_id)
        return Deleted(message=f"Feed {submission_id} was successfully deleted.")
