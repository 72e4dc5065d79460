"""Structured JSON logging for command-line runs."""

from __future__ import annotations

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from queue import Full, Queue
from typing import override
from uuid import uuid4

LOGGER = logging.getLogger(__name__)

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_KEYS: frozenset[str] = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def __init__(self, *, default_trace_id: str | None = None) -> None:
        super().__init__()
        self._default_trace_id = default_trace_id

    @override
    def format(self, record: logging.LogRecord) -> str:
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_KEYS and key != "trace_id"
        }
        payload: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "trace_id": getattr(record, "trace_id", None) or self._default_trace_id,
            "context": context,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            payload["exception"] = record.exc_text
        return json.dumps(payload, default=str)


class BoundedQueueHandler(logging.handlers.QueueHandler):
    """Queue handler that drops records instead of blocking when full."""

    @override
    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except Full:
            return


def resolve_level(level: int | str) -> int:
    """Translate a level name such as ``"debug"`` into its numeric value.

    Unknown names fall back to ``logging.INFO``.
    """

    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def configure_structured_logging(
    logger: logging.Logger,
    *,
    trace_id: str | None = None,
    level: int | str = logging.INFO,
    max_queue: int = 1024,
) -> logging.handlers.QueueListener:
    """Attach a queue-backed JSON handler to ``logger``.

    Args:
        logger: Target logger, typically the ``interdependence`` package logger.
        trace_id: Correlation identifier stamped on every record that does not
            carry its own. A random one is generated when omitted.
        level: Logging level or level name.
        max_queue: Records buffered before new ones are dropped.

    Returns:
        The started queue listener. Stop it with :func:`shutdown_listener`.
    """

    logger.setLevel(resolve_level(level))

    record_queue: Queue[logging.LogRecord] = Queue(maxsize=max_queue)
    logger.addHandler(BoundedQueueHandler(record_queue))

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(JsonFormatter(default_trace_id=trace_id or str(uuid4())))

    listener = logging.handlers.QueueListener(record_queue, stream_handler)
    listener.start()
    return listener


def shutdown_listener(
    logger: logging.Logger, listener: logging.handlers.QueueListener
) -> None:
    """Flush ``listener`` and detach its queue handler from ``logger``."""

    try:
        listener.stop()
    except Exception as exc:  # pragma: no cover - logging cleanup
        LOGGER.warning("Failed to stop logging listener", exc_info=exc)
    for handler in list(logger.handlers):
        if isinstance(handler, BoundedQueueHandler):
            logger.removeHandler(handler)
