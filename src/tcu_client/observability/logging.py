"""Opt-in JSON-lines logging for the TCU client, queue-backed and credential-redacting.

Library modules only call ``logging.getLogger(__name__)``. Applications that want
structured files call :func:`setup_structured_logging` (or :func:`setup_logging`
with the ``[observability]`` config section) once at start-up. Records are handed
to a bounded queue on the calling thread and written by a listener thread, so a
slow disk never stalls a dispatch; a full queue drops the record and counts it.
"""

from __future__ import annotations

import atexit
import contextvars
import json
import logging
import logging.handlers
import math
import queue
import threading
import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Final, cast

from tcu_client.security.redaction import RedactionConfig, redact_structure

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
LogRedactor = Callable[[JSONValue], JSONValue]

DEFAULT_LOGGER_NAME: Final[str] = "tcu_client"
DEFAULT_LOG_FILENAME: Final[str] = "tcu_client.jsonl"

# Promoted to top-level keys of every JSON line.
CORRELATION_KEYS: Final[tuple[str, ...]] = ("call_id", "operation", "attempt")

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "correlation"}

_CORRELATION: contextvars.ContextVar[tuple[tuple[str, str], ...]] = contextvars.ContextVar(
    "tcu_client_log_correlation", default=()
)

_active_lock = threading.Lock()
_active: StructuredLoggingHandle | None = None


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Where and how the JSON-lines file is written."""

    log_dir: Path | str = Path("logs")
    logger_name: str = DEFAULT_LOGGER_NAME
    level: int | str = "INFO"
    log_filename: str = DEFAULT_LOG_FILENAME
    log_to_stdout: bool = False
    queue_size: int = 4096
    max_bytes: int = 10_000_000
    backup_count: int = 5
    known_secrets: tuple[str, ...] = ()
    redactor: LogRedactor | None = None


def setup_logging(
    observability_config: Mapping[str, object] | None = None,
    *,
    known_secrets: Sequence[str] = (),
    logger_name: str = DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """Configure structured logging from an ``[observability]`` section."""

    section = observability_config or {}
    level = section.get("log_level", "INFO")
    log_dir = section.get("log_dir", "logs")
    handle = setup_structured_logging(
        LoggingConfig(
            log_dir=log_dir if isinstance(log_dir, (str, Path)) else "logs",
            logger_name=logger_name,
            level=level if isinstance(level, (int, str)) else "INFO",
            log_to_stdout=section.get("log_to_stdout") is True,
            known_secrets=tuple(known_secrets),
            redactor=None if section.get("redact_secrets", True) else _passthrough,
        )
    )
    return handle.logger


class _DroppingQueueHandler(logging.handlers.QueueHandler):
    """Snapshots correlation on the caller thread and drops instead of blocking."""

    def __init__(self, log_queue: queue.Queue[logging.LogRecord]) -> None:
        super().__init__(log_queue)
        self.dropped = 0

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        correlation = _CORRELATION.get()
        if correlation:
            record.correlation = dict(correlation)
        return cast("logging.LogRecord", super().prepare(record))

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            # emit() runs under the handler lock.
            self.dropped += 1


class _JsonLineFormatter(logging.Formatter):
    def __init__(self, redactor: LogRedactor) -> None:
        super().__init__()
        self._redact = redactor

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, JSONValue] = {
            "timestamp": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": _text(self._redact(record.getMessage())),
        }
        line.update(_correlation_of(record))
        extras = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and key not in CORRELATION_KEYS
            and not key.startswith("_")
        }
        if extras:
            line["fields"] = self._redact(extras)
        if record.exc_info:
            line["exception"] = _text(self._redact(self.formatException(record.exc_info)))
        return json.dumps(line, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@dataclass(slots=True, eq=False)
class StructuredLoggingHandle:
    """One installed logging setup: its queue, listener thread and output handlers."""

    logger: logging.Logger
    log_path: Path
    _queue: queue.Queue[logging.LogRecord] = field(repr=False)
    _queue_handler: _DroppingQueueHandler = field(repr=False)
    _outputs: tuple[logging.Handler, ...] = field(repr=False)
    _listener: logging.handlers.QueueListener = field(repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _closed: bool = False

    @property
    def dropped_records(self) -> int:
        return self._queue_handler.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def flush(self, *, timeout_seconds: float = 2.0) -> None:
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        while self._queue.unfinished_tasks and time.monotonic() < deadline:
            time.sleep(0.01)
        for handler in self._outputs:
            handler.flush()

    def shutdown(self, *, timeout_seconds: float = 2.0) -> None:
        with self._lock:
            if self._closed:
                return
            self.flush(timeout_seconds=timeout_seconds)
            self._listener.stop()
            self.logger.removeHandler(self._queue_handler)
            self._queue_handler.close()
            for handler in self._outputs:
                handler.close()
            self._closed = True


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Install the queue handler on ``config.logger_name``; replaces any earlier setup."""

    level = _log_level(config.level)
    if config.queue_size <= 0:
        raise ValueError("queue_size must be > 0")
    filename = config.log_filename.strip()
    if not filename or Path(filename).name != filename:
        raise ValueError("log_filename must be a bare file name")

    shutdown_logging()

    log_path = Path(config.log_dir) / filename
    log_path.parent.mkdir(parents=True, exist_ok=True)
    formatter = _JsonLineFormatter(_redactor_for(config))
    outputs: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max(1, config.max_bytes),
            backupCount=max(1, config.backup_count),
            encoding="utf-8",
        )
    ]
    if config.log_to_stdout:
        outputs.append(logging.StreamHandler())
    for handler in outputs:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logger = logging.getLogger(config.logger_name)
    for previous in list(logger.handlers):
        logger.removeHandler(previous)
        previous.close()
    logger.setLevel(level)
    logger.propagate = False

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=config.queue_size)
    queue_handler = _DroppingQueueHandler(log_queue)
    queue_handler.setLevel(level)
    listener = logging.handlers.QueueListener(log_queue, *outputs, respect_handler_level=True)
    listener.start()
    logger.addHandler(queue_handler)

    handle = StructuredLoggingHandle(
        logger=logger,
        log_path=log_path,
        _queue=log_queue,
        _queue_handler=queue_handler,
        _outputs=tuple(outputs),
        _listener=listener,
    )
    global _active
    with _active_lock:
        _active = handle
    return handle


def shutdown_logging(handle: StructuredLoggingHandle | None = None) -> None:
    """Stop ``handle`` (default: the active setup) after draining its queue."""

    global _active
    with _active_lock:
        target = _active if handle is None else handle
        if target is _active:
            _active = None
    if target is not None:
        target.shutdown()


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _active_lock:
        return _active


def get_correlation_context() -> dict[str, str]:
    return dict(_CORRELATION.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation fields (for example ``call_id``) to records logged in scope.

    Passing None unbinds a field inherited from an enclosing scope.
    """

    bound = get_correlation_context()
    for key, value in fields.items():
        text = "" if value is None else str(value).strip()
        if text:
            bound[key] = text
        else:
            bound.pop(key, None)
    token = _CORRELATION.set(tuple(bound.items()))
    try:
        yield
    finally:
        _CORRELATION.reset(token)


def default_log_redactor(value: JSONValue) -> JSONValue:
    """Mask credential-like keys and inline credentials, including ``<SessionToken>`` text."""

    return cast("JSONValue", redact_structure(value))


def _redactor_for(config: LoggingConfig) -> LogRedactor:
    if config.redactor is not None:
        return config.redactor
    if not config.known_secrets:
        return default_log_redactor
    redaction = RedactionConfig(known_secrets=config.known_secrets)
    return lambda value: cast("JSONValue", redact_structure(value, config=redaction))


def _passthrough(value: JSONValue) -> JSONValue:
    return value


def _log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unsupported logging level {value!r}")
    return level


def _utc_timestamp(epoch_seconds: float) -> str:
    moment = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _text(value: JSONValue) -> str:
    return value if isinstance(value, str) else json.dumps(value, sort_keys=True)


def _correlation_of(record: logging.LogRecord) -> dict[str, str]:
    found = dict(getattr(record, "correlation", None) or {})
    for key in CORRELATION_KEYS:
        value = getattr(record, key, None)
        if value is not None and str(value).strip():
            found[key] = str(value).strip()
    return found


def _jsonable(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


atexit.register(shutdown_logging)


__all__ = [
    "CORRELATION_KEYS",
    "DEFAULT_LOGGER_NAME",
    "DEFAULT_LOG_FILENAME",
    "JSONScalar",
    "JSONValue",
    "LogRedactor",
    "LoggingConfig",
    "StructuredLoggingHandle",
    "correlation_scope",
    "default_log_redactor",
    "get_active_logging_handle",
    "get_correlation_context",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
