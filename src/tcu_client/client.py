"""
tcu-client — client facade

File: src/tcu_client/client.py
Last updated: 2026-10-18

Purpose
- Wire the static tables, dispatcher, transport and sinks into one client object
  exposing the resource groups.

What should be included in this file
- Construction from explicit collaborators, from ClientSettings, or from config files.
- Default sink composition: structured logging, in-memory metrics and the optional
  SQLite call log.

Functional requirements
- Rule registry, operation catalog and status taxonomy are built once per client
  and can be replaced for tests.

Non-functional requirements
- ``requests`` is imported only when the default HTTP transport is built.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from pathlib import Path
from types import TracebackType

from tcu_client.config.loader import ClientSettings, load_settings
from tcu_client.constants import DEFAULT_TIMEOUT_SECONDS
from tcu_client.dispatch.dispatcher import ClockFn, IdFactory, ResourceDispatcher
from tcu_client.dispatch.operations import OperationCatalog, load_operation_catalog
from tcu_client.dispatch.resources import (
    Admissions,
    Applicants,
    Dashboard,
    Enrollment,
    ForeignApplicants,
    Graduates,
    NonDegree,
    Postgraduate,
    Staff,
    Transfers,
    Verification,
)
from tcu_client.dispatch.retry import RetryPolicy, SleepFn
from tcu_client.domain.models import Identity, Record, RequestPayload, TypedResult
from tcu_client.observability.logging import setup_logging
from tcu_client.observability.metrics import MetricsRegistry
from tcu_client.observability.sink import (
    CallLogSink,
    CompositeSink,
    LoggingSink,
    MetricsSink,
    ObservabilitySink,
)
from tcu_client.persistence.call_log import CallLogStore
from tcu_client.transport.base import Transport
from tcu_client.validation.rules import FieldRuleRegistry, load_field_rules
from tcu_client.validation.validator import Validator
from tcu_client.wire.status import DEFAULT_STATUS_TAXONOMY, StatusCodeTaxonomy


class TCUClient:
    """Entry point: ``client.applicants.check_status("S1001/0012/2018")``."""

    def __init__(
        self,
        *,
        identity: Identity,
        transport: Transport,
        registry: FieldRuleRegistry | None = None,
        catalog: OperationCatalog | None = None,
        taxonomy: StatusCodeTaxonomy = DEFAULT_STATUS_TAXONOMY,
        sink: ObservabilitySink | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        sleep: SleepFn = time.sleep,
        clock: ClockFn = time.perf_counter,
        id_factory: IdFactory | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        resolved_registry = registry if registry is not None else load_field_rules()
        resolved_catalog = (
            catalog if catalog is not None else load_operation_catalog(resolved_registry)
        )
        self._transport = transport
        self._metrics = metrics
        self._dispatcher = ResourceDispatcher(
            identity=identity,
            validator=Validator(resolved_registry, resolved_catalog),
            catalog=resolved_catalog,
            transport=transport,
            taxonomy=taxonomy,
            sink=sink,
            retry_policy=retry_policy,
            sleep=sleep,
            clock=clock,
            id_factory=id_factory,
            timeout_seconds=timeout_seconds,
        )

        self.applicants = Applicants(self._dispatcher)
        self.admissions = Admissions(self._dispatcher)
        self.dashboard = Dashboard(self._dispatcher)
        self.transfers = Transfers(self._dispatcher)
        self.verification = Verification(self._dispatcher)
        self.enrollment = Enrollment(self._dispatcher)
        self.graduates = Graduates(self._dispatcher)
        self.staff = Staff(self._dispatcher)
        self.non_degree = NonDegree(self._dispatcher)
        self.postgraduate = Postgraduate(self._dispatcher)
        self.foreign_applicants = ForeignApplicants(self._dispatcher)

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        *,
        transport: Transport | None = None,
        sink: ObservabilitySink | None = None,
        sleep: SleepFn = time.sleep,
    ) -> TCUClient:
        """Build a client with the default HTTP transport and sinks unless supplied."""

        metrics: MetricsRegistry | None = None
        if sink is None:
            metrics = MetricsRegistry()
            sink = default_sink(settings, metrics=metrics)
        if transport is None:
            from tcu_client.transport.http import RequestsTransport

            transport = RequestsTransport(
                settings.base_url,
                user_agent=settings.user_agent,
                verify_tls=settings.verify_tls,
            )
        return cls(
            identity=settings.identity(),
            transport=transport,
            sink=sink,
            retry_policy=RetryPolicy(
                attempts=settings.retry_attempts, delay_seconds=settings.retry_delay_seconds
            ),
            timeout_seconds=settings.timeout_seconds,
            sleep=sleep,
            metrics=metrics,
        )

    @classmethod
    def from_config(
        cls,
        config_path: str | Path | None = None,
        *,
        overrides: Mapping[str, object] | None = None,
        environ: Mapping[str, str] | None = None,
        transport: Transport | None = None,
        configure_logging: bool = False,
    ) -> TCUClient:
        """Load ``tcu_client.toml`` plus ``TCU_`` env overrides and build a client."""

        settings = load_settings(config_path, overrides=overrides, environ=environ)
        if configure_logging:
            setup_logging(
                settings.observability_section(), known_secrets=(settings.session_token,)
            )
        return cls.from_settings(settings, transport=transport)

    @property
    def dispatcher(self) -> ResourceDispatcher:
        return self._dispatcher

    @property
    def metrics(self) -> MetricsRegistry | None:
        """Registry fed by the default sink, or None when a custom sink was supplied."""

        return self._metrics

    def operations(self) -> tuple[str, ...]:
        return self._dispatcher.catalog.names()

    def invoke(self, operation: str, payload: RequestPayload) -> TypedResult:
        return self._dispatcher.invoke(operation, payload)

    def call(self, operation: str, data: Record | Sequence[Record]) -> TypedResult:
        return self._dispatcher.call(operation, data)

    def close(self) -> None:
        close = getattr(self._transport, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> TCUClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def default_sink(
    settings: ClientSettings,
    *,
    metrics: MetricsRegistry | None = None,
) -> ObservabilitySink:
    sinks: list[ObservabilitySink] = [LoggingSink(), MetricsSink(metrics)]
    if settings.call_log_path is not None:
        sinks.append(CallLogSink(CallLogStore(settings.call_log_path)))
    return CompositeSink(sinks)


__all__ = ["TCUClient", "default_sink"]
