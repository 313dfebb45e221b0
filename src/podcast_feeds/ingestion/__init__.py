"""
Ingestion module for remote feed retrieval, parsing and catalog upsert.
"""

from podcast_feeds.ingestion.rss_parser import ParsedEpisode, ParsedFeed, parse_feed_document
from podcast_feeds.ingestion.feed_client import FeedClient

__all__ = ["FeedClient", "ParsedEpisode", "ParsedFeed", "parse_feed_document"]
