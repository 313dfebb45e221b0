"""
Tests for the podcast-feeds command-line interface.
"""

import json
import sys
from uuid import uuid4

import pytest

from podcast_feeds import cli


@pytest.fixture
def run_cli(test_config, monkeypatch, capsys):
    monkeypatch.setattr(cli, "get_config", lambda: test_config)

    def _run(*argv):
        monkeypatch.setattr(sys, "argv", ["podcast-feeds", *argv])
        code = 0
        try:
            cli.main()
        except SystemExit as exc:
            code = exc.code or 0
        return code, capsys.readouterr().out

    return _run


def test_init_db_creates_queue(run_cli):
    code, out = run_cli("init-db")

    assert code == 0
    assert "created" in out

    _, out = run_cli("init-db")
    assert "already exists" in out


def test_submit_consume_pending(run_cli):
    code, out = run_cli("submit", "https://feeds.example.com/a.xml", "--categories", "news,tech")
    assert code == 0
    assert json.loads(out)["categories"] == "news,tech"

    code, out = run_cli("consume", "--output-json")
    assert code == 0
    assert json.loads(out)["stored"] == 1

    code, out = run_cli("pending", "--output-json")
    (pending,) = json.loads(out)
    assert pending["url"] == "https://feeds.example.com/a.xml"
    assert "submittedAt" in pending


def test_submit_rejects_empty_url(run_cli):
    code, out = run_cli("submit", "  ")

    assert code == 2
    assert "invalid submission" in out


def test_reject_unknown_id(run_cli):
    code, out = run_cli("reject", str(uuid4()))

    assert code == 1
    assert "not found" in out


def test_approve_invalid_id(run_cli):
    code, out = run_cli("approve", "not-a-uuid")

    assert code == 2
    assert "not a valid submission id" in out


def test_pending_empty(run_cli):
    _, out = run_cli("pending")

    assert "No pending submissions." in out


def test_submit_rejects_oversized_payload(run_cli):
    from podcast_feeds.messaging.feed_queue import MAX_MESSAGE_BYTES

    code, out = run_cli(
        "submit", "https://feeds.example.com/a.xml", "--categories", "x" * (MAX_MESSAGE_BYTES + 1)
    )

    assert code == 2
    assert "at most" in out
