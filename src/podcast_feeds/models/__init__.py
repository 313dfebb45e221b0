"""
Data models and database management.

Provides SQLite schema management, Pydantic data models, and the
database access layer for pending submissions and the catalog.
"""

from podcast_feeds.models.database import Database
from podcast_feeds.models.schema import create_all_tables, get_table_names, SCHEMA_SQL
from podcast_feeds.models.entities import (
    PendingSubmission,
    UserSubmittedFeed,
    parse_categories,
)

__all__ = [
    "Database",
    "create_all_tables",
    "get_table_names",
    "SCHEMA_SQL",
    "PendingSubmission",
    "UserSubmittedFeed",
    "parse_categories",
]
