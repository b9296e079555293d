from __future__ import annotations

import contextlib
import contextvars
import datetime as _dt
import json
import logging
import os
import sys
import traceback
from typing import Any, Iterator

# More verbose than DEBUG (per-code detail).
TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE_LEVEL,
}

_trace_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("cardoctor_trace_id", default=None)

# Attributes every LogRecord has; anything else came in through `extra=`.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


@contextlib.contextmanager
def trace_context(trace_id: str) -> Iterator[None]:
    token = _trace_id_var.set(str(trace_id))
    try:
        yield
    finally:
        _trace_id_var.reset(token)


def get_trace_id() -> str | None:
    return _trace_id_var.get()


class TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        if getattr(record, "trace_id", None) is None:
            record.trace_id = get_trace_id()  # type: ignore[attr-defined]
        return True


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS and not k.startswith("_")}


def _timestamp(record: logging.LogRecord) -> str:
    when = _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc).astimezone()
    return when.isoformat(timespec="milliseconds")


class PrettyFormatter(logging.Formatter):
    _COLORS = (
        (logging.ERROR, "31"),
        (logging.WARNING, "33"),
        (logging.INFO, "32"),
        (logging.DEBUG, "36"),
    )

    def __init__(self, *, use_color: bool = False) -> None:
        super().__init__()
        self._use_color = bool(use_color)

    def format(self, record: logging.LogRecord) -> str:
        extras = record_extras(record)
        parts = [_timestamp(record), record.levelname, record.name, record.getMessage()]
        trace_id = extras.pop("trace_id", None)
        if trace_id:
            parts.append(f"trace_id={trace_id}")
        parts.extend(f"{k}={extras[k]}" for k in sorted(extras))
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        if not self._use_color:
            return line
        color = next((c for level, c in self._COLORS if record.levelno >= level), "90")
        return f"\x1b[{color}m{line}\x1b[0m"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": _timestamp(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(record_extras(record))
        if record.exc_info:
            payload["exc"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str)


def parse_log_level(value: str | None) -> int:
    raw = (value or "").strip().lower() or "info"
    try:
        return _LEVELS[raw]
    except KeyError:
        raise ValueError(f"invalid log level: {value!r}") from None


def setup_logging(
    *,
    level: int = logging.INFO,
    log_format: str = "pretty",
    log_file: str | None = None,
    no_color: bool = False,
) -> None:
    """Configure root logging.

    Logs go to stderr (and optionally a file); stdout carries command results.
    """

    fmt = (log_format or "pretty").strip().lower()
    if fmt not in {"pretty", "json"}:
        raise ValueError("invalid log format")

    def _formatter(color: bool) -> logging.Formatter:
        if fmt == "json":
            return JsonFormatter()
        return PrettyFormatter(use_color=color)

    use_color = not no_color and bool(getattr(sys.stderr, "isatty", lambda: False)())

    handlers: list[logging.Handler] = [logging.StreamHandler(stream=sys.stderr)]
    handlers[0].setFormatter(_formatter(use_color))

    if log_file:
        path = os.path.expanduser(str(log_file))
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setFormatter(_formatter(False))
        handlers.append(fh)

    for handler in handlers:
        handler.addFilter(TraceIdFilter())

    logging.basicConfig(level=int(level), handlers=handlers, force=True)
