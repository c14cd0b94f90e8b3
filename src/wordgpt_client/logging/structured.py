"""Structured JSON logging for the API client.

Log records go to stdout as JSON lines, with optional file output via
the LOG_FILE env var. Every module logs through a child of the
``wordgpt`` logger so one call to ``setup_logging`` configures them all.

Fields attached through ``extra={"audit_data": {...}}`` are merged into
the JSON line. Credential-bearing field names are masked before output,
so a stray ``api_key`` in audit data never reaches a log sink.
"""

import json
import logging
import sys
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone

from wordgpt_client.config.settings import get_settings

ROOT_LOGGER = "wordgpt"
REDACTED = "[REDACTED]"
SECRET_FIELDS = frozenset({"api_key", "api-key", "apikey", "authorization", "key", "keys"})

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def redact(data: dict) -> dict:
    """Copy of ``data`` with credential-bearing values masked."""
    return {
        k: REDACTED if str(k).lower() in SECRET_FIELDS else v
        for k, v in data.items()
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, audit data merged in and redacted."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = request_id_var.get()
        if request_id:
            entry["request_id"] = request_id

        audit_data = getattr(record, "audit_data", None)
        if isinstance(audit_data, dict):
            # Reserved fields win over audit data
            entry = {**redact(audit_data), **entry}

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging() -> None:
    settings = get_settings()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))

    formatter = JSONFormatter()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # Handlers above already write every record
    logger.propagate = False


def get_logger(name: str = "") -> logging.Logger:
    """Return the client logger, or a named child of it."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def request_scope(request_id: str | None = None) -> Iterator[str]:
    """Bind a request id for the block, keeping one that is already bound.

    The previous value is restored on exit.
    """
    rid = request_id or request_id_var.get() or generate_request_id()
    token = request_id_var.set(rid)
    try:
        yield rid
    finally:
        request_id_var.reset(token)


class RequestTimer:
    """Measures a block in milliseconds. ``elapsed_ms`` is live while running."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._clock = clock
        self._start: float | None = None
        self._end: float | None = None

    def __enter__(self) -> "RequestTimer":
        self._start = self._clock()
        self._end = None
        return self

    def __exit__(self, *exc) -> None:
        self._end = self._clock()

    @property
    def elapsed_ms(self) -> float:
        if self._start is None:
            return 0.0
        end = self._end if self._end is not None else self._clock()
        return round((end - self._start) * 1000, 2)
