from __future__ import annotations

import json
import logging

from hackernews.utils.logging import JsonFormatter, KeyValueFormatter, configure_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("hackernews.connectors.items", logging.WARNING, __file__, 1, "item.fetch_failed", None, None)
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_event_context():
    payload = json.loads(JsonFormatter().format(_record(item_id=8863, attempt=2)))

    assert payload["event"] == "item.fetch_failed"
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "hackernews.connectors.items"
    assert payload["item_id"] == 8863
    assert payload["attempt"] == 2
    assert "msg" not in payload


def test_key_value_formatter_appends_sorted_context():
    line = KeyValueFormatter().format(_record(item_id=1, attempt=3))

    assert line.endswith("item.fetch_failed attempt=3 item_id=1")


def test_key_value_formatter_without_context():
    line = KeyValueFormatter().format(_record())

    assert line.endswith("WARNING hackernews.connectors.items item.fetch_failed")


def test_configure_logging_quiets_http_client_loggers():
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        configure_logging("INFO", json_enabled=True)

        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING

        configure_logging("debug")

        assert isinstance(root.handlers[0].formatter, KeyValueFormatter)
        assert logging.getLogger("httpx").level == logging.DEBUG
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
