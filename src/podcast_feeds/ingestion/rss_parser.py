"""
RSS/Atom feed parsing and catalog metadata extraction.

Parses a downloaded feed document with feedparser and maps it onto the
show and episode fields the catalog stores. Episodes are identified by
a stable key taken from the feed (GUID, then link, then a hash of the
publish date and title) so that re-ingesting a feed updates rows
instead of duplicating them.
"""

import hashlib
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping, Optional

import feedparser
from dateutil import parser as date_parser

from podcast_feeds.exceptions import EmptyFeedError, FeedParseError

logger = logging.getLogger(__name__)


@dataclass
class ParsedEpisode:
    """
    Episode fields extracted from one feed entry.

    Attributes:
        guid: Stable per-feed identifier
        title: Episode title
        description: Summary or description text
        published: Publication date as ISO-8601 string, if parseable
        audio_url: Audio enclosure URL, if any
        duration_seconds: Duration from the iTunes tag, if any
    """

    guid: str
    title: str
    description: str = ""
    published: Optional[str] = None
    audio_url: Optional[str] = None
    duration_seconds: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ParsedFeed:
    """Show-level metadata plus the usable episodes of a feed."""

    title: str
    author: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    link: Optional[str] = None
    language: Optional[str] = None
    feed_categories: List[str] = field(default_factory=list)
    episodes: List[ParsedEpisode] = field(default_factory=list)


def parse_duration(duration_str: str) -> Optional[int]:
    """
    Parse iTunes duration string to total seconds.

    Supports HH:MM:SS, MM:SS and plain seconds.

    Example:
        >>> parse_duration("01:23:45")
        5025
        >>> parse_duration("45:30")
        2730
        >>> parse_duration("90")
        90
    """
    if not duration_str:
        return None

    parts = str(duration_str).strip().split(":")

    try:
        if len(parts) == 3:
            hours, minutes, seconds = (int(p) for p in parts)
            return hours * 3600 + minutes * 60 + seconds
        elif len(parts) == 2:
            minutes, seconds = (int(p) for p in parts)
            return minutes * 60 + seconds
        elif len(parts) == 1:
            return int(float(parts[0]))
    except ValueError:
        pass

    logger.warning("Unexpected duration format: %r", duration_str)
    return None


def normalize_date(raw_date: Optional[str]) -> Optional[str]:
    """Parse a feed date string into ISO-8601, or None when unparseable."""
    if not raw_date:
        return None
    try:
        return date_parser.parse(raw_date).isoformat()
    except (ValueError, OverflowError):
        logger.warning("Failed to parse date %r", raw_date)
        return None


def episode_key(entry: Any) -> str:
    """
    Derive the stable identifier of a feed entry.

    Uses the entry GUID, else its link, else a SHA-1 of the raw publish
    date and title. Never depends on the entry's position in the feed.
    """
    guid = entry.get("id") or entry.get("guid") or entry.get("link")
    if guid:
        return str(guid)
    seed = f"{entry.get('published') or ''}|{entry.get('title') or ''}"
    return "sha1:" + hashlib.sha1(seed.encode("utf-8")).hexdigest()


def _extract_audio_url(entry: Any) -> Optional[str]:
    """Audio URL from enclosures, falling back to typed links."""
    for enclosure in entry.get("enclosures") or []:
        if enclosure.get("type", "").startswith("audio/"):
            url = enclosure.get("href") or enclosure.get("url")
            if url:
                return url

    for link in entry.get("links") or []:
        if link.get("type", "").startswith("audio/") and link.get("href"):
            return link.get("href")

    return None


def extract_episode(entry: Any) -> Optional[ParsedEpisode]:
    """
    Extract catalog fields from a feed entry.

    Returns:
        ParsedEpisode, or None if the entry has no title
    """
    title = (entry.get("title") or "").strip()
    if not title:
        logger.warning("Skipping feed entry without a title (id=%s)", entry.get("id"))
        return None

    return ParsedEpisode(
        guid=episode_key(entry),
        title=title,
        description=entry.get("summary") or entry.get("description") or "",
        published=normalize_date(entry.get("published") or entry.get("updated")),
        audio_url=_extract_audio_url(entry),
        duration_seconds=parse_duration(entry.get("itunes_duration") or ""),
    )


def _feed_categories(meta: Mapping[str, Any]) -> List[str]:
    labels: List[str] = []
    for tag in meta.get("tags") or []:
        term = (tag.get("term") or "").strip()
        if term and term not in labels:
            labels.append(term)
    return labels


def parse_feed_document(
    content: bytes,
    url: str,
    response_headers: Optional[Mapping[str, str]] = None,
) -> ParsedFeed:
    """
    Parse a downloaded feed document.

    Args:
        content: Raw document bytes
        url: Feed URL, used as the title fallback and in errors
        response_headers: HTTP headers, used by feedparser for encoding

    Returns:
        ParsedFeed with at least one episode

    Raises:
        FeedParseError: If the document is not a syndication feed
        EmptyFeedError: If the feed has no usable entries
    """
    headers = {key.lower(): value for key, value in (response_headers or {}).items()}
    parsed = feedparser.parse(content, response_headers=headers)
    meta = parsed.feed if hasattr(parsed, "feed") else {}

    if not parsed.entries and (parsed.bozo or not meta.get("title")):
        raise FeedParseError(
            url, f"Document is not a valid feed: {getattr(parsed, 'bozo_exception', None)}"
        )

    if parsed.bozo:
        logger.warning("Feed %s parsed with errors: %s", url, parsed.bozo_exception)

    episodes: List[ParsedEpisode] = []
    seen = set()
    for entry in parsed.entries:
        episode = extract_episode(entry)
        if episode is None or episode.guid in seen:
            continue
        seen.add(episode.guid)
        episodes.append(episode)

    if not episodes:
        raise EmptyFeedError(url, "Feed contains no usable episodes")

    image = meta.get("image") or {}
    feed = ParsedFeed(
        title=(meta.get("title") or "").strip() or url,
        author=meta.get("author") or meta.get("itunes_author"),
        description=meta.get("subtitle") or meta.get("summary"),
        image_url=image.get("href") if hasattr(image, "get") else None,
        link=meta.get("link"),
        language=meta.get("language"),
        feed_categories=_feed_categories(meta),
        episodes=episodes,
    )
    logger.info("Parsed feed '%s' with %d episode(s)", feed.title, len(episodes))
    return feed
