"""
Tests for log rendering.
"""
import json
import logging
import sys

import pytest

from app.logging_config import build_formatter

pytestmark = pytest.mark.unit


def _record(**extra):
    record = logging.makeLogRecord({
        "name": "app.services.schedule_merge",
        "levelno": logging.INFO,
        "levelname": "INFO",
        "msg": "Merged %s schedule",
        "args": ("milling",),
    })
    record.__dict__.update(extra)
    return record


class TestJSONRendering:

    def test_extra_context_becomes_top_level_keys(self):
        line = build_formatter("json").format(_record(department="milling", added=3))

        payload = json.loads(line)
        assert payload["event"] == "Merged milling schedule"
        assert payload["level"] == "info"
        assert payload["logger"] == "app.services.schedule_merge"
        assert payload["department"] == "milling"
        assert payload["added"] == 3
        assert "timestamp" in payload

    def test_exception_is_rendered(self):
        try:
            raise RuntimeError("connection lost")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()

        payload = json.loads(build_formatter("json").format(record))

        assert "RuntimeError: connection lost" in payload["exception"]


class TestTextRendering:

    def test_console_line_carries_message_and_context(self):
        line = build_formatter("text").format(_record(department="turning"))

        assert "Merged milling schedule" in line
        assert "department=turning" in line
        assert not line.lstrip().startswith("{")
