"""
tcu-client — unit tests for structured logging

File: tests/unit/observability/test_logging.py
Last updated: 2026-10-18

Purpose
- Validate JSON-lines output, credential redaction and correlation fields.

What this test file should cover
- Secrets in messages, extras and known literal tokens never reach disk.
- Correlation scope fields are promoted to top-level keys.
- The config-section wrapper honors level and redaction settings.
- Queue handler is non-blocking and shutdown flushes.

Functional requirements
- Logs are written under tmp_path only.

Non-functional requirements
- Deterministic and non-flaky.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import threading
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from tcu_client.observability.logging import (
    LoggingConfig,
    correlation_scope,
    get_active_logging_handle,
    get_correlation_context,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _cleanup_logging() -> Iterator[None]:
    yield
    shutdown_logging()


def _logger_name() -> str:
    return f"tcu_client.tests.logging.{uuid4().hex}"


def _read_json_lines(path: Path) -> list[dict[str, object]]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


def test_json_logging_redacts_secrets_and_keeps_correlation(tmp_path: Path) -> None:
    logger_name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(log_dir=tmp_path, logger_name=logger_name, known_secrets=("tok-LITERAL",))
    )
    logger = logging.getLogger(logger_name)

    with correlation_scope(call_id="call-42", operation="admissions.confirm"):
        logger.info(
            "sent <SessionToken>tok-XML</SessionToken> and session_token=tok-ASSIGN",
            extra={"nested": {"SessionToken": "tok-KEY", "safe": "ok"}, "note": "tok-LITERAL"},
        )

    shutdown_logging(handle)

    parsed = _read_json_lines(handle.log_path)
    assert len(parsed) == 1
    first = parsed[0]
    assert first["call_id"] == "call-42"
    assert first["operation"] == "admissions.confirm"
    assert first["level"] == "INFO"
    assert first["logger"] == logger_name

    line = handle.log_path.read_text(encoding="utf-8")
    for secret in ("tok-XML", "tok-ASSIGN", "tok-KEY", "tok-LITERAL"):
        assert secret not in line
    assert "***REDACTED***" in line
    assert '"safe":"ok"' in line


def test_setup_logging_wrapper_uses_observability_section(tmp_path: Path) -> None:
    logger_name = _logger_name()
    logger = setup_logging(
        {"log_level": "WARNING", "log_dir": str(tmp_path), "redact_secrets": True},
        known_secrets=("tok-abc-123",),
        logger_name=logger_name,
    )

    logger.info("dropped by level")
    logger.warning("failed with tok-abc-123", extra={"token": "t-123"})
    handle = get_active_logging_handle()
    assert handle is not None
    shutdown_logging()

    content = handle.log_path.read_text(encoding="utf-8")
    assert "dropped by level" not in content
    assert "tok-abc-123" not in content
    assert "t-123" not in content
    assert handle.log_path.name == "tcu_client.jsonl"


def test_redaction_can_be_disabled(tmp_path: Path) -> None:
    logger_name = _logger_name()
    logger = setup_logging(
        {"log_dir": str(tmp_path), "redact_secrets": False}, logger_name=logger_name
    )

    logger.info("password=visible1")
    handle = get_active_logging_handle()
    assert handle is not None
    shutdown_logging()

    assert "visible1" in handle.log_path.read_text(encoding="utf-8")


def test_correlation_scope_nests_and_restores() -> None:
    assert get_correlation_context() == {}

    with correlation_scope(call_id="outer", operation="a.b"):
        with correlation_scope(call_id="inner", operation=None):
            assert get_correlation_context() == {"call_id": "inner"}
        assert get_correlation_context() == {"call_id": "outer", "operation": "a.b"}

    assert get_correlation_context() == {}


def test_multithreaded_logging_produces_valid_json_lines(tmp_path: Path) -> None:
    logger_name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(log_dir=tmp_path, logger_name=logger_name, queue_size=4096)
    )
    logger = logging.getLogger(logger_name)

    total_threads = 8
    per_thread = 40

    def worker(thread_idx: int) -> None:
        for i in range(per_thread):
            with correlation_scope(call_id=f"call-{thread_idx}-{i}"):
                logger.info(
                    "thread=%s index=%s session_token=tok-secret-%s-%s",
                    thread_idx,
                    i,
                    thread_idx,
                    i,
                )

    threads = [threading.Thread(target=worker, args=(idx,)) for idx in range(total_threads)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    shutdown_logging(handle)

    lines = handle.log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == total_threads * per_thread
    for line in lines:
        parsed = json.loads(line)
        assert str(parsed["call_id"]).startswith("call-")
        assert "tok-secret" not in line


def test_queue_handler_non_blocking_and_shutdown_flushes(tmp_path: Path) -> None:
    logger_name = _logger_name()
    handle = setup_structured_logging(
        LoggingConfig(log_dir=tmp_path, logger_name=logger_name, queue_size=10_000)
    )
    logger = logging.getLogger(logger_name)

    queue_handlers = [h for h in logger.handlers if isinstance(h, logging.handlers.QueueHandler)]
    assert queue_handlers

    expected = 300
    for i in range(expected):
        logger.info("message %s", i)

    shutdown_logging(handle)

    lines = handle.log_path.read_text(encoding="utf-8").splitlines()
    assert handle.dropped_records == 0
    assert len(lines) == expected
    assert handle.is_shutdown


@pytest.mark.parametrize(
    ("config", "fragment"),
    [
        ({"level": "LOUD"}, "unsupported logging level"),
        ({"queue_size": 0}, "queue_size"),
        ({"log_filename": "nested/file.jsonl"}, "bare file name"),
    ],
)
def test_invalid_logging_config(tmp_path: Path, config: dict[str, object], fragment: str) -> None:
    with pytest.raises(ValueError, match=fragment):
        setup_structured_logging(
            LoggingConfig(
                log_dir=tmp_path,
                logger_name=_logger_name(),
                **config,  # type: ignore[arg-type]
            )
        )
