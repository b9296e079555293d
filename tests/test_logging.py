from __future__ import annotations

import json
import logging

import pytest

from cardoctor.logging import (
    TRACE_LEVEL,
    JsonFormatter,
    PrettyFormatter,
    TraceIdFilter,
    get_trace_id,
    parse_log_level,
    setup_logging,
    trace_context,
)


def _record(msg: str = "Read DTCs", **extra) -> logging.LogRecord:
    record = logging.LogRecord("cardoctor.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, logging.INFO),
        ("", logging.INFO),
        ("error", logging.ERROR),
        ("WARN", logging.WARNING),
        ("debug", logging.DEBUG),
        ("trace", TRACE_LEVEL),
    ],
)
def test_parse_log_level(value, expected):
    assert parse_log_level(value) == expected


def test_parse_log_level_invalid():
    with pytest.raises(ValueError):
        parse_log_level("loud")


def test_trace_context():
    assert get_trace_id() is None
    with trace_context("abc123"):
        assert get_trace_id() == "abc123"
        record = _record()
        TraceIdFilter().filter(record)
        assert record.trace_id == "abc123"
    assert get_trace_id() is None


def test_pretty_formatter_includes_sorted_extras():
    record = _record(device_id="1", dtc_count=3, trace_id="t1")
    line = PrettyFormatter(use_color=False).format(record)
    assert " INFO cardoctor.test Read DTCs trace_id=t1 device_id=1 dtc_count=3" in line
    assert "\x1b[" not in line


def test_pretty_formatter_color():
    line = PrettyFormatter(use_color=True).format(_record())
    assert line.startswith("\x1b[32m") and line.endswith("\x1b[0m")


def test_json_formatter():
    payload = json.loads(JsonFormatter().format(_record(raw_hex="4301")))
    assert payload["level"] == "info"
    assert payload["logger"] == "cardoctor.test"
    assert payload["msg"] == "Read DTCs"
    assert payload["raw_hex"] == "4301"


def test_setup_logging_writes_file(tmp_path, restore_root_logging):
    path = tmp_path / "logs" / "cardoctor.log"
    setup_logging(level=logging.DEBUG, log_format="json", log_file=str(path), no_color=True)
    logging.getLogger("cardoctor.test").debug("hello", extra={"device_id": "2"})
    for handler in logging.getLogger().handlers:
        handler.flush()
    payload = json.loads(path.read_text(encoding="utf-8").splitlines()[-1])
    assert payload["msg"] == "hello"
    assert payload["device_id"] == "2"


def test_setup_logging_rejects_unknown_format():
    with pytest.raises(ValueError):
        setup_logging(log_format="xml")
