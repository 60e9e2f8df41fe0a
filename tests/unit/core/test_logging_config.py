"""Unit tests for structured logging output."""

from __future__ import annotations

import json

from core.logging_config import get_logger


def test_logger_writes_json_events_to_stderr(capsys) -> None:
    """Events should be JSON on stderr and leave stdout untouched."""
    get_logger("tests.logging").info("stage_completed", entity="order", admitted_count=4)

    captured = capsys.readouterr()
    event = json.loads(captured.err.strip().splitlines()[-1])

    assert captured.out == ""
    assert event["event"] == "stage_completed" and event["admitted_count"] == 4
    assert event["level"] == "info"
