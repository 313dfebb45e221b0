"""
Command-line interface for the feed submission service.

Usage:
    podcast-feeds init-db                          # Create catalog and queue storage
    podcast-feeds submit URL --categories news,tech  # Queue a submission
    podcast-feeds consume                          # Drain the queue into pending submissions
    podcast-feeds consume --output-json            # JSON output for cron/CI
    podcast-feeds pending                          # List pending submissions
    podcast-feeds approve ID                       # Ingest a submission into the catalog
    podcast-feeds reject ID                        # Delete a submission
    podcast-feeds serve-info                       # Show how to run the HTTP API
"""

import argparse
import json
import sys
from uuid import UUID

from pydantic import ValidationError

from podcast_feeds.config import get_config
from podcast_feeds.exceptions import (
    QueuePublishError,
    SubmissionValidationError,
    UpstreamFetchError,
)
from podcast_feeds.logging_setup import configure_logging


def _services(config):
    from podcast_feeds.ingestion.feed_client import FeedClient
    from podcast_feeds.messaging.feed_queue import FeedQueue
    from podcast_feeds.models.database import Database
    from podcast_feeds.submissions.moderation import ModerationService

    db = Database(config.db_path)
    db.initialize()
    queue = FeedQueue(config.queue_path, config.queue_name)
    client = FeedClient(db, timeout=config.fetch_timeout, user_agent=config.user_agent)
    return db, queue, ModerationService(db, client)


def _parse_id(raw: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError:
        print(f"ERROR: '{raw}' is not a valid submission id")
        sys.exit(2)


def cmd_init_db(args):
    """Create the catalog schema and the submission queue."""
    config = get_config()
    db, queue, _ = _services(config)
    created = queue.create_if_not_exists()
    print(f"Database ready: {config.db_path}")
    print(f"Queue '{queue.name}' {'created' if created else 'already exists'}: {config.queue_path}")


def cmd_submit(args):
    """Queue a feed submission."""
    from podcast_feeds.models.entities import UserSubmittedFeed
    from podcast_feeds.messaging.feed_queue import FeedQueue
    from podcast_feeds.submissions.intake import QueueSubmissionPublisher, SubmissionIntake

    config = get_config()
    try:
        feed = UserSubmittedFeed(url=args.url, categories=args.categories)
    except ValidationError as exc:
        print(f"ERROR: invalid submission: {exc.errors()[0]['msg']}")
        sys.exit(2)

    intake = SubmissionIntake(QueueSubmissionPublisher(FeedQueue(config.queue_path, config.queue_name)))
    try:
        intake.submit(feed)
    except SubmissionValidationError as exc:
        print(f"ERROR: invalid submission: {exc}")
        sys.exit(2)
    except QueuePublishError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)
    print(feed.to_message())


def cmd_consume(args):
    """Drain queued submissions into the pending submission store."""
    from podcast_feeds.messaging.consumer import SubmissionConsumer

    config = get_config()
    db, queue, _ = _services(config)
    consumer = SubmissionConsumer(queue, db, max_dequeue_count=config.queue_max_dequeue_count)
    result = consumer.drain(
        max_messages=args.max,
        visibility_timeout=config.queue_visibility_timeout,
    )

    if args.output_json:
        print(result.to_json())
    else:
        print(
            f"Received {result.received}, stored {result.stored}, "
            f"duplicates {result.duplicates}, poisoned {result.poisoned}"
        )
        for err in result.errors:
            print(f"ERROR: {err}")
    sys.exit(1 if result.errors else 0)


def cmd_pending(args):
    """List pending submissions, newest first."""
    config = get_config()
    _, _, moderation = _services(config)
    pending = moderation.list_pending()

    if args.output_json:
        print(json.dumps([p.model_dump(mode="json", by_alias=True) for p in pending], indent=2))
        return

    if not pending:
        print("No pending submissions.")
        return
    print(f"{len(pending)} pending submission(s):")
    for submission in pending:
        print(f"  - {submission.id}  {submission.submitted_at.isoformat()}  {submission.url}")
        if submission.category_labels:
            print(f"      categories: {', '.join(submission.category_labels)}")


def cmd_approve(args):
    """Approve a pending submission."""
    from podcast_feeds.submissions.moderation import NotFound

    config = get_config()
    _, _, moderation = _services(config)
    submission_id = _parse_id(args.id)
    try:
        result = moderation.approve(submission_id)
    except UpstreamFetchError as exc:
        print(f"ERROR: ingestion failed ({type(exc).__name__}): {exc}")
        sys.exit(1)

    if isinstance(result, NotFound):
        print(f"Submission {submission_id} not found.")
        sys.exit(1)
    print(f"Accepted: {result.location} (show {result.show_id})")


def cmd_reject(args):
    """Reject a pending submission."""
    from podcast_feeds.submissions.moderation import NotFound

    config = get_config()
    _, _, moderation = _services(config)
    submission_id = _parse_id(args.id)
    result = moderation.reject(submission_id)
    if isinstance(result, NotFound):
        print(f"Submission {submission_id} not found.")
        sys.exit(1)
    print(result.message)


def cmd_serve_info(args):
    """Print how to serve the HTTP API."""
    print("ASGI application factory: podcast_feeds.api.main:create_app")
    print("Example: uvicorn --factory podcast_feeds.api.main:create_app --port 8000")


def main():
    parser = argparse.ArgumentParser(
        prog="podcast-feeds",
        description="Podcast feed submissions -- queue, moderate and ingest user-submitted feeds",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    sub_init = subparsers.add_parser("init-db", help="Create catalog and queue storage")
    sub_init.set_defaults(func=cmd_init_db)

    sub_submit = subparsers.add_parser("submit", help="Queue a feed submission")
    sub_submit.add_argument("url", help="Feed URL")
    sub_submit.add_argument(
        "--categories",
        default="",
        help="Comma-separated category labels",
    )
    sub_submit.set_defaults(func=cmd_submit)

    sub_consume = subparsers.add_parser("consume", help="Drain the queue into pending submissions")
    sub_consume.add_argument(
        "--max",
        type=int,
        default=100,
        help="Maximum messages to handle in this run",
    )
    sub_consume.add_argument(
        "--output-json",
        action="store_true",
        default=False,
        help="Output result as JSON (for cron/CI)",
    )
    sub_consume.set_defaults(func=cmd_consume)

    sub_pending = subparsers.add_parser("pending", help="List pending submissions")
    sub_pending.add_argument(
        "--output-json",
        action="store_true",
        default=False,
        help="Output result as JSON",
    )
    sub_pending.set_defaults(func=cmd_pending)

    sub_approve = subparsers.add_parser("approve", help="Ingest a submission into the catalog")
    sub_approve.add_argument("id", help="Submission id")
    sub_approve.set_defaults(func=cmd_approve)

    sub_reject = subparsers.add_parser("reject", help="Delete a submission")
    sub_reject.add_argument("id", help="Submission id")
    sub_reject.set_defaults(func=cmd_reject)

    sub_serve = subparsers.add_parser("serve-info", help="Show how to run the HTTP API")
    sub_serve.set_defaults(func=cmd_serve_info)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    configure_logging(get_config().log_level)
    args.func(args)


if __name__ == "__main__":
    main()
