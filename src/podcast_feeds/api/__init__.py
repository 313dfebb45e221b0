"""
HTTP API for feed submissions and moderation.
"""

from podcast_feeds.api.main import create_app

__all__ = ["create_app"]
