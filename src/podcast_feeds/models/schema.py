"""
SQLite schema and database initialization.

Defines the tables for pending feed submissions and the podcast catalog
(shows, episodes, categories). Provides functions to create the database
with all tables and indexes and to inspect it.
"""

import sqlite3
from pathlib import Path


SCHEMA_SQL = """
-- ============================================================
-- PENDING_FEEDS: User submissions awaiting moderation
-- ============================================================
CREATE TABLE IF NOT EXISTS pending_feeds (
    id              TEXT    PRIMARY KEY,       -- UUID assigned at publish time
    url             TEXT    NOT NULL,
    categories      TEXT    NOT NULL DEFAULT '',  -- raw comma-separated text
    submitted_at    TEXT    NOT NULL,          -- fixed-width UTC ISO-8601
    created_at      TEXT    DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_pending_feeds_submitted ON pending_feeds(submitted_at DESC, id DESC);

-- ============================================================
-- SHOWS: Catalog shows, one per feed URL
-- ============================================================
CREATE TABLE IF NOT EXISTS shows (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    feed_url        TEXT    NOT NULL UNIQUE,
    title           TEXT    NOT NULL,
    author          TEXT,
    description     TEXT,
    image_url       TEXT,
    link            TEXT,
    language        TEXT,
    created_at      TEXT    DEFAULT (datetime('now')),
    updated_at      TEXT    DEFAULT (datetime('now'))
);

-- ============================================================
-- EPISODES: Catalog episodes keyed by a stable per-feed identifier
-- ============================================================
CREATE TABLE IF NOT EXISTS episodes (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    show_id         INTEGER NOT NULL REFERENCES shows(id) ON DELETE CASCADE,
    guid            TEXT    NOT NULL,
    title           TEXT    NOT NULL,
    description     TEXT,
    published       TEXT,              -- ISO-8601 format
    audio_url       TEXT,
    duration_seconds INTEGER,
    created_at      TEXT    DEFAULT (datetime('now')),
    updated_at      TEXT    DEFAULT (datetime('now')),
    UNIQUE (show_id, guid)
);

CREATE INDEX IF NOT EXISTS idx_episodes_show ON episodes(show_id);
CREATE INDEX IF NOT EXISTS idx_episodes_published ON episodes(published);

-- ============================================================
-- CATEGORIES: Category labels and show links
-- ============================================================
CREATE TABLE IF NOT EXISTS categories (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    genre           TEXT    NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS show_categories (
    show_id         INTEGER NOT NULL REFERENCES shows(id) ON DELETE CASCADE,
    category_id     INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    PRIMARY KEY (show_id, category_id)
);
"""


def create_all_tables(db_path: Path) -> None:
    """
    Create database and all tables with indexes.

    This function is idempotent - safe to call multiple times.

    Args:
        db_path: Path to the SQLite database file to create/initialize

    Example:
        >>> create_all_tables(Path("data/db/podcast_feeds.db"))
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA encoding = 'UTF-8'")
    conn.execute("PRAGMA foreign_keys = ON")
    # WAL lets readers proceed while a moderator transaction is writing
    conn.execute("PRAGMA journal_mode = WAL")

    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    finally:
        conn.close()


def get_table_names(db_path: Path) -> list[str]:
    """
    Get list of all tables in the database.

    Args:
        db_path: Path to the SQLite database file

    Returns:
        List of table names
    """
    conn = sqlite3.connect(str(db_path))
    try:
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        return [row[0] for row in cursor.fetchall()]
    finally:
        conn.close()
