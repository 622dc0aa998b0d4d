"""Public observability primitives: structured logging, metrics and call sinks."""

from tcu_client.observability.logging import (
    LoggingConfig,
    LogRedactor,
    StructuredLoggingHandle,
    correlation_scope,
    default_log_redactor,
    get_active_logging_handle,
    get_correlation_context,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)
from tcu_client.observability.metrics import MetricsRegistry
from tcu_client.observability.sink import (
    CallLogSink,
    CompositeSink,
    LoggingSink,
    MetricsSink,
    NullSink,
    ObservabilitySink,
    SinkError,
    emit_safely,
)

__all__ = [
    "CallLogSink",
    "CompositeSink",
    "LogRedactor",
    "LoggingConfig",
    "LoggingSink",
    "MetricsRegistry",
    "MetricsSink",
    "NullSink",
    "ObservabilitySink",
    "SinkError",
    "StructuredLoggingHandle",
    "correlation_scope",
    "default_log_redactor",
    "emit_safely",
    "get_active_logging_handle",
    "get_correlation_context",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
