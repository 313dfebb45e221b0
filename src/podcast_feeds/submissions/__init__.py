"""
Submission intake and moderation workflow.
"""

from podcast_feeds.submissions.intake import (
    QueueSubmissionPublisher,
    SubmissionIntake,
    SubmissionPublisher,
)
from podcast_feeds.submissions.moderation import (
    Accepted,
    Deleted,
    ModerationService,
    NotFound,
)

__all__ = [
    "Accepted",
    "Deleted",
    "ModerationService",
    "NotFound",
    "QueueSubmissionPublisher",
    "SubmissionIntake",
    "SubmissionPublisher",
]
