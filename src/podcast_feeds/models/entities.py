"""
Pydantic data models for feed submissions.

Defines the intake payload that travels through the submission queue
and the pending submission row that moderators act on, together with
the helpers that normalize timestamps and category text.
"""

from datetime import datetime, timezone
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from podcast_feeds.exceptions import SubmissionValidationError


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to UTC; naive values are taken as UTC.

    Raises:
        SubmissionValidationError: If the UTC instant falls outside the
            range datetime can represent
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError as exc:
        raise SubmissionValidationError(f"timestamp out of range: {value.isoformat()}") from exc


def format_timestamp(value: datetime) -> str:
    """
    Format a datetime as a fixed-width UTC ISO-8601 string.

    Fixed width keeps lexical ordering in SQLite identical to
    chronological ordering. Years are zero-padded to four digits.

    Example:
        >>> format_timestamp(datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
        '2024-01-02T03:04:05.000000+00:00'
        >>> format_timestamp(datetime(999, 1, 1, tzinfo=timezone.utc))
        '0999-01-01T00:00:00.000000+00:00'
    """
    return to_utc(value).isoformat(timespec="microseconds")


def parse_categories(text: str) -> List[str]:
    """
    Split a comma-separated category string into labels.

    Whitespace around each label is trimmed, empty segments are dropped
    and repeated labels keep their first position.

    Args:
        text: Raw categories text as submitted

    Returns:
        Ordered list of category labels

    Example:
        >>> parse_categories("news,tech,,comedy")
        ['news', 'tech', 'comedy']
    """
    labels: List[str] = []
    for segment in (text or "").split(","):
        label = segment.strip()
        if label and label not in labels:
            labels.append(label)
    return labels


class UserSubmittedFeed(BaseModel):
    """
    Feed submission payload.

    This is both the POST /feeds request body and the queue message
    body. On the wire the timestamp is ``submittedAt``.
    """

    model_config = ConfigDict(populate_by_name=True)

    url: str
    categories: str = ""
    submitted_at: datetime = Field(default_factory=utc_now, alias="submittedAt")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Reject empty URLs."""
        v = v.strip()
        if not v:
            raise ValueError("url must not be empty")
        return v

    @field_validator("submitted_at")
    @classmethod
    def validate_submitted_at(cls, v: datetime) -> datetime:
        return to_utc(v)

    @property
    def category_labels(self) -> List[str]:
        return parse_categories(self.categories)

    def to_message(self) -> str:
        """Serialize to the JSON queue message body."""
        return self.model_dump_json(by_alias=True)


class PendingSubmission(BaseModel):
    """
    Submission awaiting a moderator decision.

    Rows are written by the queue consumer and deleted on approval or
    rejection. They are never updated in place.
    """

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    url: str
    categories: str = ""
    submitted_at: datetime = Field(alias="submittedAt")

    @field_validator("submitted_at")
    @classmethod
    def validate_submitted_at(cls, v: datetime) -> datetime:
        return to_utc(v)

    @property
    def category_labels(self) -> List[str]:
        """Categories parsed into an ordered list of labels."""
        return parse_categories(self.categories)

    @classmethod
    def from_row(cls, row) -> "PendingSubmission":
        """Build from a ``pending_feeds`` sqlite3.Row."""
        return cls(
            id=UUID(row["id"]),
            url=row["url"],
            categories=row["categories"],
            submitted_at=datetime.fromisoformat(row["submitted_at"]),
        )
