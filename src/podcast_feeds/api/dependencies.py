"""
FastAPI dependencies for the feeds routes.

Services live on ``app.state`` and are created once by ``create_app``.
"""

import hmac
import math
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from podcast_feeds.api.rate_limit import FixedWindowRateLimiter
from podcast_feeds.config import Config
from podcast_feeds.submissions.intake import SubmissionIntake
from podcast_feeds.submissions.moderation import ModerationService

MODIFY_FEEDS_SCOPE = "modify_feeds"

bearer_scheme = HTTPBearer(auto_error=False)


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_intake(request: Request) -> SubmissionIntake:
    return request.app.state.intake


def get_moderation(request: Request) -> ModerationService:
    return request.app.state.moderation


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    return request.app.state.rate_limiter


def enforce_feed_rate_limit(
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
) -> None:
    """Admit the request or reject it with 429."""
    limiter.replenish()
    lease = limiter.try_acquire()
    if not lease.acquired:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many feed submissions, try again shortly",
            headers={"Retry-After": str(max(1, math.ceil(lease.retry_after)))},
        )


def require_modify_feeds(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    config: Config = Depends(get_config),
) -> None:
    """
    Require the ``modify_feeds`` scope.

    The scope is granted by presenting the configured moderator token as
    a bearer token. Without a configured token the check is disabled.
    """
    expected = config.moderator_token
    if not expected:
        return

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not hmac.compare_digest(credentials.credentials.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Token lacks the {MODIFY_FEEDS_SCOPE} scope",
        )
