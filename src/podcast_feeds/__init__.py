"""
Podcast Feed Submissions

Accepts user-submitted podcast feed URLs, queues them for moderation,
and ingests approved feeds into the podcast catalog.
"""

__version__ = "0.1.0"
__author__ = "Podcast Feeds Team"

from podcast_feeds.config import Config

__all__ = ["Config", "__version__"]
