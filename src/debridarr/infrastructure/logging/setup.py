"""structlog + stdlib logging for the server process.

Every record, ours or uvicorn's, is rendered by one structlog
``ProcessorFormatter`` and emitted from a background ``QueueListener``
thread.  Debrid credentials are scrubbed on the way through: known secret
keys are masked and ``key=...``-style query parameters are cut out of
free-text messages such as uvicorn's access log line.
"""

from __future__ import annotations

import atexit
import copy
import logging
import logging.config
import queue
import re
import sys
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Any

import structlog

from debridarr.infrastructure.config.schema import AppConfig

log = structlog.get_logger(__name__)

# Event keys that may carry a debrid credential.
SECRET_KEYS = frozenset({"apikey", "api_key", "key", "credential", "token"})

_SECRET_QUERY_RE = re.compile(r"(?i)([?&](?:key|ad|rd|apikey)=)[^&\s\"']+")

_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

EventDict = dict[str, Any]


def _drop_color_message(_: Any, __: Any, event_dict: EventDict) -> EventDict:
    # uvicorn attaches a duplicate "color_message"
    event_dict.pop("color_message", None)
    return event_dict


def _redact_secrets(_: Any, __: Any, event_dict: EventDict) -> EventDict:
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    event = event_dict.get("event")
    if isinstance(event, str) and "=" in event:
        event_dict["event"] = _SECRET_QUERY_RE.sub(r"\1***", event)
    return event_dict


def _stamp_foreign_record(_: Any, __: Any, event_dict: EventDict) -> EventDict:
    """Use the stdlib record's creation time, not the time the listener
    thread gets around to formatting it."""
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        event_dict["timestamp"] = created.isoformat().replace("+00:00", "Z")
    return event_dict


def _foreign_pre_chain() -> list[structlog.typing.Processor]:
    """Processors for records that did not come through structlog."""
    return [
        _drop_color_message,
        _redact_secrets,
        structlog.contextvars.merge_contextvars,
        _stamp_foreign_record,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]


def _make_formatter(config: AppConfig) -> structlog.stdlib.ProcessorFormatter:
    renderer: structlog.typing.Processor = (
        structlog.processors.JSONRenderer()
        if config.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_foreign_pre_chain(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def uvicorn_log_config(config: AppConfig) -> dict[str, Any]:
    """dictConfig handed to ``uvicorn.run(log_config=...)``.

    uvicorn's own loggers stop propagating and write through the structlog
    formatter at the configured level.  Handler wiring is replaced by the
    queue once ``configure_logging`` has run.
    """
    handler = {
        "class": "logging.StreamHandler",
        "formatter": "structlog",
        "stream": "ext://sys.stderr",
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"structlog": {"()": lambda: _make_formatter(config)}},
        "handlers": {"default": handler},
        "loggers": {
            name: {"handlers": ["default"], "level": config.log_level, "propagate": False}
            for name in _UVICORN_LOGGERS
        },
        "root": {"handlers": ["default"], "level": config.log_level},
    }


class _LevelRangeFilter(logging.Filter):
    """Pass records whose level lies in ``[min_level, max_level]``."""

    def __init__(self, min_level: int = logging.NOTSET, max_level: int = logging.CRITICAL) -> None:
        super().__init__()
        self._min = min_level
        self._max = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return self._min <= record.levelno <= self._max


class _DictPreservingQueueHandler(QueueHandler):
    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # The stock prepare() formats record.msg to a string, which would
        # destroy structlog's event dict before the listener renders it.
        return copy.copy(record)


class _BackgroundEmitter:
    """Owns the queue listener that performs the actual stream writes."""

    def __init__(self) -> None:
        self._listener: QueueListener | None = None

    @property
    def running(self) -> bool:
        return self._listener is not None

    def start(self, config: AppConfig) -> None:
        self.stop()
        formatter = _make_formatter(config)

        # INFO/WARNING to stdout, ERROR and above to stderr
        out = logging.StreamHandler(stream=sys.stdout)
        out.setFormatter(formatter)
        out.addFilter(_LevelRangeFilter(max_level=logging.WARNING))
        err = logging.StreamHandler(stream=sys.stderr)
        err.setFormatter(formatter)
        err.addFilter(_LevelRangeFilter(min_level=logging.ERROR))

        records: queue.Queue[logging.LogRecord] = queue.Queue()
        root = logging.getLogger()
        root.handlers.clear()
        root.addHandler(_DictPreservingQueueHandler(records))
        root.setLevel(config.log_level)

        # uvicorn (and any library logger) now reaches the queue via root
        for name in list(logging.root.manager.loggerDict):
            existing = logging.getLogger(name)
            existing.handlers.clear()
            existing.propagate = True
            existing.setLevel(config.log_level)

        self._listener = QueueListener(records, out, err, respect_handler_level=True)
        self._listener.start()

    def stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.stop()


_emitter = _BackgroundEmitter()
atexit.register(_emitter.stop)


def configure_logging(config: AppConfig) -> dict[str, Any]:
    """Configure structlog and stdlib logging; return uvicorn's log config."""
    structlog.configure(
        processors=[
            _drop_color_message,
            _redact_secrets,
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    log_config = uvicorn_log_config(config)
    logging.config.dictConfig(log_config)
    _emitter.start(config)

    log.info("logging_configured", log_format=config.log_format, log_level=config.log_level)
    return log_config
