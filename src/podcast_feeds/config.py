"""
Configuration management for the feed submission service.

Provides centralized configuration using Pydantic for validation and
environment variable support. Supports feeds.yaml for per-deployment settings.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Default data paths relative to project root
DB_PATH = PROJECT_ROOT / "data" / "db" / "podcast_feeds.db"
QUEUE_PATH = PROJECT_ROOT / "data" / "queue" / "feed_queue.db"


def load_feeds_yaml(search_dir: Optional[Path] = None) -> dict:
    """
    Load feeds.yaml configuration file.

    Searches for feeds.yaml starting from search_dir (or PROJECT_ROOT)
    and walking up to 3 parent directories.

    Args:
        search_dir: Directory to start searching from

    Returns:
        Dictionary with feeds.yaml contents, or empty dict if not found
    """
    start = search_dir or PROJECT_ROOT
    for parent in [start] + list(start.parents)[:3]:
        candidate = parent / "feeds.yaml"
        if candidate.exists():
            with open(candidate, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
    return {}


class Config(BaseSettings):
    """
    Application configuration with environment variable support.

    Configuration can be provided via:
    1. feeds.yaml (passed as explicit values by get_config)
    2. Environment variables (prefixed with PODCAST_FEEDS_)
    3. .env file
    4. Default values

    Example:
        export PODCAST_FEEDS_DB_PATH="/custom/path/db.sqlite"
        export PODCAST_FEEDS_MODERATOR_TOKEN="s3cret"
    """

    model_config = SettingsConfigDict(
        env_prefix="PODCAST_FEEDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    db_path: Path = Field(
        default=DB_PATH,
        description="Path to SQLite database holding pending submissions and the catalog"
    )

    # Queue
    queue_path: Path = Field(
        default=QUEUE_PATH,
        description="Path to the SQLite file backing the submission queue"
    )
    queue_name: str = Field(
        default="feed-queue",
        description="Name of the submission queue"
    )
    queue_visibility_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds a received message stays hidden before redelivery"
    )
    queue_max_dequeue_count: int = Field(
        default=5,
        ge=1,
        description="Deliveries before a message is moved to the poison queue"
    )

    # Features
    feed_ingestion_enabled: bool = Field(
        default=True,
        description="Expose the /feeds submission and moderation routes"
    )

    # Admission control for POST /feeds
    rate_limit_permits: int = Field(
        default=5,
        ge=1,
        description="Accepted submissions per window"
    )
    rate_limit_window_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Fixed window length in seconds"
    )

    # Feed fetching
    fetch_connect_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Connect timeout for feed downloads (seconds)"
    )
    fetch_read_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Read timeout for feed downloads (seconds)"
    )
    user_agent: str = Field(
        default="podcast-feeds/0.1 (+https://example.com/podcast-feeds)",
        description="User-Agent header sent when fetching feeds"
    )

    # Moderation
    moderator_token: Optional[str] = Field(
        default=None,
        description="Bearer token granting the modify_feeds scope; open when unset"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level for the CLI and API"
    )

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.queue_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def fetch_timeout(self) -> tuple:
        """(connect, read) timeout tuple for requests."""
        return (self.fetch_connect_timeout, self.fetch_read_timeout)


def get_config() -> Config:
    """
    Get the application configuration instance.

    Merges settings from feeds.yaml (if present), environment variables
    and the .env file.

    Returns:
        Config: Application configuration
    """
    yaml_values = load_feeds_yaml()
    config = Config(**yaml_values.get("feeds", yaml_values))
    config.ensure_directories()
    return config
