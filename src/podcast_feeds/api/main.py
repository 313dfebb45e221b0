"""
FastAPI application factory for the feed submission service.

Run with any ASGI server, e.g.:

    uvicorn --factory podcast_feeds.api.main:create_app
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from podcast_feeds import __version__
from podcast_feeds.api.feeds import router as feeds_router
from podcast_feeds.api.rate_limit import FixedWindowRateLimiter
from podcast_feeds.config import Config, get_config
from podcast_feeds.exceptions import (
    QueuePublishError,
    SubmissionValidationError,
    UpstreamFetchError,
)
from podcast_feeds.ingestion.feed_client import FeedClient
from podcast_feeds.logging_setup import configure_logging
from podcast_feeds.messaging.feed_queue import FeedQueue
from podcast_feeds.models.database import Database
from podcast_feeds.submissions.intake import QueueSubmissionPublisher, SubmissionIntake
from podcast_feeds.submissions.moderation import ModerationService

logger = logging.getLogger(__name__)

SUPPORTED_API_VERSIONS = "1.0, 2.0"


async def queue_publish_error_handler(request: Request, exc: QueuePublishError) -> JSONResponse:
    logger.error("Queue publish failed for %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Submission queue unavailable, retry later"},
    )


async def submission_validation_error_handler(
    request: Request, exc: SubmissionValidationError
) -> JSONResponse:
    logger.info("Rejected submission on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )


async def upstream_fetch_error_handler(request: Request, exc: UpstreamFetchError) -> JSONResponse:
    logger.warning("Feed ingestion failed for %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": exc.reason, "error": type(exc).__name__, "url": exc.url},
    )


def create_app(config: Optional[Config] = None) -> FastAPI:
    """
    Build the application and its services.

    Args:
        config: Application config (optional, loaded from env/feeds.yaml if None)

    Returns:
        Configured FastAPI app
    """
    if config is None:
        config = get_config()
        configure_logging(config.log_level)

    db = Database(config.db_path)
    db.initialize()
    queue = FeedQueue(config.queue_path, config.queue_name)
    feed_client = FeedClient(db, timeout=config.fetch_timeout, user_agent=config.user_agent)

    app = FastAPI(
        title="Podcast Feeds API",
        version=__version__,
        description="User feed submissions and moderation for the podcast catalog",
    )
    app.state.config = config
    app.state.db = db
    app.state.queue = queue
    app.state.intake = SubmissionIntake(QueueSubmissionPublisher(queue))
    app.state.moderation = ModerationService(db, feed_client)
    app.state.rate_limiter = FixedWindowRateLimiter(
        permit_limit=config.rate_limit_permits,
        window_seconds=config.rate_limit_window_seconds,
        auto_replenishment=False,
    )

    app.add_exception_handler(QueuePublishError, queue_publish_error_handler)
    app.add_exception_handler(SubmissionValidationError, submission_validation_error_handler)
    app.add_exception_handler(UpstreamFetchError, upstream_fetch_error_handler)

    @app.middleware("http")
    async def report_api_versions(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith("/feeds"):
            response.headers["api-supported-versions"] = SUPPORTED_API_VERSIONS
        return response

    if config.feed_ingestion_enabled:
        app.include_router(feeds_router, prefix="/feeds", tags=["feeds"])
    else:
        logger.info("Feed ingestion disabled; /feeds routes not mounted")

    return app
