"""
tcu-client — observability sinks

File: src/tcu_client/observability/sink.py
Last updated: 2026-10-18

Purpose
- Receive exactly one CallRecord per dispatched operation.

What should be included in this file
- The sink protocol and null, logging, metrics, call-log and fan-out implementations.
- A guarded emit helper so a broken sink never changes a call's outcome.

Functional requirements
- Fan-out continues past a failing sink and keeps a bounded record of the failure.
- Records reaching a sink already have credentials masked.

Non-functional requirements
- Sinks are thread-safe; one client may dispatch from several threads.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final, Protocol, runtime_checkable

from tcu_client.domain.models import CallRecord
from tcu_client.observability.metrics import MetricsRegistry
from tcu_client.persistence.call_log import CallLogStore
from tcu_client.security.redaction import redact_text

logger = logging.getLogger(__name__)

CALLS_TOTAL: Final[str] = "tcu_calls_total"
CALL_DURATION_MS: Final[str] = "tcu_call_duration_ms"
REQUEST_BYTES: Final[str] = "tcu_request_bytes"
RESPONSE_BYTES: Final[str] = "tcu_response_bytes"

_DEFAULT_ERROR_BUFFER: Final[int] = 256


@runtime_checkable
class ObservabilitySink(Protocol):
    def record(self, call: CallRecord) -> None: ...


@dataclass(frozen=True, slots=True)
class SinkError:
    """Sink failure captured without interrupting the dispatch."""

    sink: str
    call_id: str
    operation: str
    error_type: str
    message: str


class NullSink:
    """Discards every record."""

    def record(self, call: CallRecord) -> None:
        return None


class LoggingSink:
    """One structured log line per call; failures log at WARNING."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log if log is not None else logger

    def record(self, call: CallRecord) -> None:
        level = logging.INFO if call.succeeded else logging.WARNING
        self._logger.log(
            level,
            "tcu call %s outcome=%s status_code=%s duration_ms=%.1f",
            call.operation,
            call.outcome,
            call.status_code,
            call.duration_ms,
            extra={"tcu_call": call.to_dict()},
        )


class MetricsSink:
    """Counters per operation and outcome plus duration and byte distributions."""

    def __init__(self, registry: MetricsRegistry | None = None) -> None:
        self._registry = registry if registry is not None else MetricsRegistry()

    @property
    def registry(self) -> MetricsRegistry:
        return self._registry

    def record(self, call: CallRecord) -> None:
        labels = {"operation": call.operation, "outcome": call.outcome}
        self._registry.inc(CALLS_TOTAL, labels=labels)
        per_operation = {"operation": call.operation}
        self._registry.observe(CALL_DURATION_MS, call.duration_ms, labels=per_operation)
        self._registry.observe(REQUEST_BYTES, float(call.request_size), labels=per_operation)
        self._registry.observe(RESPONSE_BYTES, float(call.response_size), labels=per_operation)


class CallLogSink:
    """Persists each record through a CallLogStore, migrating it on first use."""

    def __init__(self, store: CallLogStore) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._migrated = False

    @property
    def store(self) -> CallLogStore:
        return self._store

    def record(self, call: CallRecord) -> None:
        if not self._migrated:
            with self._lock:
                if not self._migrated:
                    self._store.migrate()
                    self._migrated = True
        self._store.record(call)


class CompositeSink:
    """Fans a record out to every child sink. One failure never stops the others."""

    def __init__(
        self,
        sinks: Sequence[ObservabilitySink],
        *,
        error_buffer_size: int = _DEFAULT_ERROR_BUFFER,
    ) -> None:
        if error_buffer_size <= 0:
            raise ValueError("error_buffer_size must be > 0")
        self._sinks = tuple(sinks)
        self._lock = threading.Lock()
        self._errors: deque[SinkError] = deque(maxlen=error_buffer_size)

    @property
    def sinks(self) -> tuple[ObservabilitySink, ...]:
        return self._sinks

    @property
    def errors(self) -> tuple[SinkError, ...]:
        with self._lock:
            return tuple(self._errors)

    def record(self, call: CallRecord) -> None:
        for sink in self._sinks:
            try:
                sink.record(call)
            except Exception as exc:  # noqa: BLE001
                error = _sink_error(sink, call, exc)
                with self._lock:
                    self._errors.append(error)
                logger.warning(
                    "observability sink %s failed: %s",
                    error.sink,
                    error.message,
                    extra={"sink_error": error.error_type},
                )


def emit_safely(sink: ObservabilitySink, call: CallRecord) -> bool:
    """Deliver ``call``; log and swallow sink exceptions. Returns False on failure."""

    try:
        sink.record(call)
    except Exception as exc:  # noqa: BLE001
        error = _sink_error(sink, call, exc)
        logger.warning(
            "observability sink %s failed: %s",
            error.sink,
            error.message,
            extra={"sink_error": error.error_type},
        )
        return False
    return True


def _sink_error(sink: object, call: CallRecord, exc: Exception) -> SinkError:
    return SinkError(
        sink=type(sink).__name__,
        call_id=call.call_id,
        operation=call.operation,
        error_type=type(exc).__name__,
        message=redact_text(str(exc)) or type(exc).__name__,
    )


__all__ = [
    "CALLS_TOTAL",
    "CALL_DURATION_MS",
    "CallLogSink",
    "CompositeSink",
    "LoggingSink",
    "MetricsSink",
    "NullSink",
    "ObservabilitySink",
    "REQUEST_BYTES",
    "RESPONSE_BYTES",
    "SinkError",
    "emit_safely",
]
