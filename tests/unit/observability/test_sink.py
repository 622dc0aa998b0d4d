"""
tcu-client — unit tests for observability sinks

File: tests/unit/observability/test_sink.py
Last updated: 2026-10-18

Purpose
- Validate that each sink consumes CallRecords and that sink failures stay contained.

What this test file should cover
- Logging levels by outcome.
- Metric series recorded per operation and outcome.
- Call-log persistence with a single migration.
- Fan-out past failing sinks and the guarded emit helper.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from tcu_client.domain.models import CallRecord, OutcomeCategory
from tcu_client.observability.sink import (
    CALL_DURATION_MS,
    CALLS_TOTAL,
    REQUEST_BYTES,
    RESPONSE_BYTES,
    CallLogSink,
    CompositeSink,
    LoggingSink,
    MetricsSink,
    NullSink,
    ObservabilitySink,
    emit_safely,
)
from tcu_client.persistence.call_log import CallLogStore


def _record(outcome: str = OutcomeCategory.SUCCESS.value, **overrides: object) -> CallRecord:
    values: dict[str, object] = {
        "operation": "applicants.check_status",
        "outcome": outcome,
        "status_code": 200,
        "duration_ms": 42.0,
        "request_size": 310,
        "response_size": 512,
        "call_id": "call-1",
        "path": "/applicants/checkStatus",
        "attempts": 1,
    }
    values.update(overrides)
    return CallRecord(**values)  # type: ignore[arg-type]


@dataclass(slots=True)
class _RecordingSink:
    records: list[CallRecord] = field(default_factory=list)

    def record(self, call: CallRecord) -> None:
        self.records.append(call)


class _ExplodingSink:
    def record(self, call: CallRecord) -> None:
        raise RuntimeError("sink down, session_token=tok-leak-77")


@dataclass(slots=True)
class _CountingStore:
    migrations: int = 0
    rows: list[CallRecord] = field(default_factory=list)

    def migrate(self) -> int:
        self.migrations += 1
        return 1

    def record(self, call: CallRecord) -> int:
        self.rows.append(call)
        return len(self.rows)


def test_sinks_satisfy_protocol() -> None:
    for sink in (NullSink(), MetricsSink(), _RecordingSink(), CompositeSink([])):
        assert isinstance(sink, ObservabilitySink)


def test_logging_sink_levels_follow_outcome(caplog: pytest.LogCaptureFixture) -> None:
    log = logging.getLogger("tcu_client.tests.sink")
    sink = LoggingSink(log)

    with caplog.at_level(logging.INFO, logger="tcu_client.tests.sink"):
        sink.record(_record())
        sink.record(_record(OutcomeCategory.BUSINESS_CONDITION.value, status_code=208))
        sink.record(_record(OutcomeCategory.AUTHENTICATION_FAILURE.value, status_code=None))

    assert [entry.levelno for entry in caplog.records] == [
        logging.INFO,
        logging.INFO,
        logging.WARNING,
    ]
    assert "applicants.check_status" in caplog.records[0].getMessage()
    payload = caplog.records[2].__dict__["tcu_call"]
    assert payload["outcome"] == "authentication_failure"
    assert payload["call_id"] == "call-1"


def test_metrics_sink_records_series() -> None:
    sink = MetricsSink()

    sink.record(_record())
    sink.record(_record(duration_ms=58.0))
    sink.record(_record("response_invalid", status_code=None))

    registry = sink.registry
    operation = {"operation": "applicants.check_status"}
    assert registry.get_counter(CALLS_TOTAL, labels={**operation, "outcome": "success"}) == 2.0
    assert (
        registry.get_counter(CALLS_TOTAL, labels={**operation, "outcome": "response_invalid"})
        == 1.0
    )
    durations = registry.get_distribution(CALL_DURATION_MS, labels=operation)
    assert durations is not None
    assert durations["count"] == 3
    assert durations["max"] == 58.0
    sent = registry.get_distribution(REQUEST_BYTES, labels=operation)
    received = registry.get_distribution(RESPONSE_BYTES, labels=operation)
    assert sent is not None and sent["sum"] == 930.0
    assert received is not None and received["sum"] == 1536.0


def test_call_log_sink_migrates_once() -> None:
    store = _CountingStore()
    sink = CallLogSink(store)  # type: ignore[arg-type]

    sink.record(_record(call_id="call-1"))
    sink.record(_record(call_id="call-2"))

    assert store.migrations == 1
    assert [row.call_id for row in store.rows] == ["call-1", "call-2"]


def test_call_log_sink_persists_to_sqlite(tmp_path: Path) -> None:
    store = CallLogStore(tmp_path / "state" / "calls.sqlite")
    sink = CallLogSink(store)

    sink.record(_record(call_id="call-1"))
    sink.record(_record(OutcomeCategory.UNCLASSIFIED_REMOTE_ERROR.value, call_id="call-2"))

    assert sink.store is store
    assert [row.call_id for row in store.recent_calls()] == ["call-2", "call-1"]


def test_composite_sink_continues_past_failures(caplog: pytest.LogCaptureFixture) -> None:
    before = _RecordingSink()
    after = _RecordingSink()
    composite = CompositeSink([before, _ExplodingSink(), after])

    with caplog.at_level(logging.WARNING, logger="tcu_client.observability.sink"):
        composite.record(_record())

    assert len(before.records) == 1
    assert len(after.records) == 1
    assert len(composite.errors) == 1
    error = composite.errors[0]
    assert error.sink == "_ExplodingSink"
    assert error.call_id == "call-1"
    assert error.error_type == "RuntimeError"
    assert "tok-leak-77" not in error.message
    assert "tok-leak-77" not in caplog.text


def test_composite_error_buffer_is_bounded() -> None:
    composite = CompositeSink([_ExplodingSink()], error_buffer_size=2)

    for index in range(5):
        composite.record(_record(call_id=f"call-{index}"))

    assert [error.call_id for error in composite.errors] == ["call-3", "call-4"]


def test_composite_rejects_empty_error_buffer() -> None:
    with pytest.raises(ValueError, match="error_buffer_size"):
        CompositeSink([], error_buffer_size=0)


def test_emit_safely_reports_failure() -> None:
    recording = _RecordingSink()

    assert emit_safely(recording, _record()) is True
    assert emit_safely(_ExplodingSink(), _record()) is False
    assert len(recording.records) == 1
