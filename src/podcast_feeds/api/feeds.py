"""
Feed submission and moderation endpoints.

    POST   /feeds        submit a feed (rate limited)
    GET    /feeds        list pending submissions, newest first
    PUT    /feeds/{id}   approve: ingest and remove (modify_feeds)
    DELETE /feeds/{id}   reject: remove (modify_feeds)
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from podcast_feeds.api.dependencies import (
    enforce_feed_rate_limit,
    get_intake,
    get_moderation,
    require_modify_feeds,
)
from podcast_feeds.models.entities import PendingSubmission, UserSubmittedFeed
from podcast_feeds.submissions.intake import SubmissionIntake
from podcast_feeds.submissions.moderation import ModerationService, NotFound

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=UserSubmittedFeed,
    name="CreateFeed",
    dependencies=[Depends(enforce_feed_rate_limit)],
)
def create_feed(
    feed: UserSubmittedFeed,
    intake: SubmissionIntake = Depends(get_intake),
) -> UserSubmittedFeed:
    """Queue a feed for moderation and echo the submission."""
    return intake.submit(feed)


@router.get("", response_model=List[PendingSubmission], name="GetFeeds")
def get_all_feeds(
    moderation: ModerationService = Depends(get_moderation),
) -> List[PendingSubmission]:
    """List pending submissions, newest first."""
    return moderation.list_pending()


@router.put(
    "/{feed_id}",
    status_code=status.HTTP_202_ACCEPTED,
    name="UpdateFeedById",
    dependencies=[Depends(require_modify_feeds)],
    responses={404: {"description": "No pending submission with this id"}},
)
def update_feed(
    feed_id: UUID,
    moderation: ModerationService = Depends(get_moderation),
) -> Response:
    """Approve a submission: ingest its feed into the catalog and remove it."""
    result = moderation.approve(feed_id)
    if isinstance(result, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return Response(status_code=status.HTTP_202_ACCEPTED, headers={"Location": result.location})


@router.delete(
    "/{feed_id}",
    response_model=str,
    name="DeleteFeedById",
    dependencies=[Depends(require_modify_feeds)],
    responses={404: {"description": "No pending submission with this id"}},
)
def delete_feed(
    feed_id: UUID,
    moderation: ModerationService = Depends(get_moderation),
) -> str:
    """Reject a submission without ingesting it."""
    result = moderation.reject(feed_id)
    if isinstance(result, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return result.message
