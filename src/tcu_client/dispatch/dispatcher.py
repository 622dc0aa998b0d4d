"""
tcu-client — resource dispatcher

File: src/tcu_client/dispatch/dispatcher.py
Last updated: 2026-10-18

Purpose
- One generic execution path for every catalogued operation:
  validate, build, send with retries, parse, classify and wrap.

What should be included in this file
- ResourceDispatcher with injectable tables, transport, sink, sleep and clock.
- HTTP status and remote status code mapping onto the error taxonomy.
- Exactly one observability record per dispatch.

Functional requirements
- Validation failures never reach the transport.
- Only transport failures are retried, with a fixed delay and a bounded attempt count.
- Business conditions and remote validation codes return normally; remote
  authentication codes raise.
- The session token is masked in every log line and sink record.

Non-functional requirements
- Synchronous and call-scoped; no state is shared between calls except the
  read-only tables built at construction.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final

from tcu_client.constants import DEFAULT_TIMEOUT_SECONDS
from tcu_client.dispatch.operations import OperationCatalog, OperationDescriptor
from tcu_client.dispatch.retry import RetryPolicy, SleepFn, run_with_retries
from tcu_client.domain.models import (
    Acknowledgement,
    CallRecord,
    FieldRuleKind,
    Identity,
    OutcomeCategory,
    Record,
    RequestPayload,
    ResponseEnvelope,
    TypedResult,
)
from tcu_client.errors import (
    AuthenticationFailure,
    RemoteServiceError,
    TCUError,
    TransientNetworkFailure,
    ValidationFailure,
)
from tcu_client.observability.logging import correlation_scope
from tcu_client.observability.sink import NullSink, ObservabilitySink, emit_safely
from tcu_client.security.redaction import mask_known_secrets
from tcu_client.transport.base import Transport, TransportError, TransportResponse
from tcu_client.validation.validator import Validator
from tcu_client.wire.builder import EnvelopeBuilder
from tcu_client.wire.parser import parse, shape_payload
from tcu_client.wire.status import DEFAULT_STATUS_TAXONOMY, StatusCodeTaxonomy

logger = logging.getLogger(__name__)

_AUTH_HTTP_STATUSES: Final[frozenset[int]] = frozenset({401, 403})
# Outcome label for failures that are neither a TCUError nor categorized.
_CLIENT_ERROR_OUTCOME: Final[str] = "client_error"

ClockFn = Callable[[], float]
IdFactory = Callable[[], str]


@dataclass(slots=True)
class _CallState:
    path: str = ""
    request_size: int = 0
    response_size: int = 0
    attempts: int = 0
    http_status: int | None = None
    status_code: int | None = None


class ResourceDispatcher:
    """Runs catalogued operations against one transport under one identity."""

    def __init__(
        self,
        *,
        identity: Identity,
        validator: Validator,
        catalog: OperationCatalog,
        transport: Transport,
        builder: EnvelopeBuilder | None = None,
        taxonomy: StatusCodeTaxonomy = DEFAULT_STATUS_TAXONOMY,
        sink: ObservabilitySink | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        sleep: SleepFn = time.sleep,
        clock: ClockFn = time.perf_counter,
        id_factory: IdFactory | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._identity = identity
        self._validator = validator
        self._catalog = catalog
        self._transport = transport
        self._builder = builder if builder is not None else EnvelopeBuilder()
        self._taxonomy = taxonomy
        self._sink: ObservabilitySink = sink if sink is not None else NullSink()
        self._retry_policy = retry_policy if retry_policy is not None else RetryPolicy()
        self._timeout_seconds = float(timeout_seconds)
        self._sleep = sleep
        self._clock = clock
        self._id_factory = id_factory if id_factory is not None else _new_call_id
        self._joiners = MappingProxyType(
            {descriptor.name: self._joiners_for(descriptor) for descriptor in catalog}
        )
        self._integer_fields = MappingProxyType(
            {descriptor.name: self._integer_fields_for(descriptor) for descriptor in catalog}
        )

    @property
    def catalog(self) -> OperationCatalog:
        return self._catalog

    @property
    def taxonomy(self) -> StatusCodeTaxonomy:
        return self._taxonomy

    @property
    def identity(self) -> Identity:
        return self._identity

    def call(self, operation: str, data: Record | Sequence[Record]) -> TypedResult:
        """Tag ``data`` for ``operation`` (one mapping, or a sequence for batches) and invoke.

        Lookup and tagging failures are recorded like any other failed dispatch.
        """

        return self._run(operation, lambda: self._tag(operation, data))

    def invoke(self, operation: str, payload: RequestPayload) -> TypedResult:
        return self._run(operation, lambda: payload)

    def _tag(self, operation: str, data: Record | Sequence[Record]) -> RequestPayload:
        descriptor = self._catalog.get(operation)
        if not descriptor.batch:
            if not isinstance(data, Mapping):
                raise TypeError(f"{operation} takes a single mapping of fields")
            return RequestPayload.single(operation, data)
        if isinstance(data, Mapping):
            return RequestPayload.batch(operation, [data])
        return RequestPayload.batch(operation, data)

    def _run(self, operation: str, prepare: Callable[[], RequestPayload]) -> TypedResult:
        call_id = self._id_factory()
        state = _CallState()
        started = self._clock()
        with correlation_scope(call_id=call_id, operation=operation):
            try:
                result = self._dispatch(operation, prepare(), state)
            except Exception as exc:
                if isinstance(exc, TransientNetworkFailure):
                    state.attempts = exc.attempts
                self._emit(
                    call_id,
                    operation,
                    state,
                    started=started,
                    outcome=_outcome_label(exc),
                    error_detail=str(exc) or type(exc).__name__,
                )
                raise
            self._emit(call_id, operation, state, started=started, outcome=result.category.value)
            return result

    def _dispatch(
        self, operation: str, payload: RequestPayload, state: _CallState
    ) -> TypedResult:
        descriptor = self._catalog.get(operation)
        state.path = descriptor.path

        validation = self._validator.validate(operation, payload)
        if not validation.is_valid:
            raise ValidationFailure(validation.violations, operation=operation)

        envelope = self._builder.build(
            self._identity,
            operation,
            payload,
            field_order=descriptor.field_order,
            joiners=self._joiners[operation],
            integer_fields=self._integer_fields[operation],
        )
        body = self._builder.serialize(envelope)
        state.request_size = len(body)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "tcu request %s %s",
                descriptor.method,
                descriptor.path,
                extra={"envelope": self._mask(self._builder.render_redacted(envelope))},
            )

        outcome = run_with_retries(
            lambda: self._transport.send(
                descriptor.path, descriptor.method, body, self._timeout_seconds
            ),
            operation=operation,
            policy=self._retry_policy,
            sleep=self._sleep,
            on_retry=self._log_retry,
        )
        response = outcome.value
        state.attempts = outcome.attempts
        state.http_status = response.status
        state.response_size = len(response.body)
        self._check_http_status(descriptor, response)

        decoded = parse(response.body, operation=operation)
        state.status_code = decoded.status_code
        category = self._taxonomy.classify(decoded.status_code)
        if category is OutcomeCategory.AUTHENTICATION_FAILURE:
            raise AuthenticationFailure(
                self._mask(decoded.status_description or self._taxonomy.describe(204)),
                operation=operation,
                status_code=decoded.status_code,
            )
        return self._wrap(descriptor, decoded, category)

    def _wrap(
        self,
        descriptor: OperationDescriptor,
        decoded: ResponseEnvelope,
        category: OutcomeCategory,
    ) -> TypedResult:
        acknowledgements = tuple(
            Acknowledgement(
                index=index,
                status_code=block.status_code,
                status_description=block.status_description,
                category=(
                    None if block.status_code is None
                    else self._taxonomy.classify(block.status_code)
                ),
                fields=block.fields,
            )
            for index, block in enumerate(decoded.blocks)
        )
        return TypedResult(
            operation=descriptor.name,
            category=category,
            status_code=decoded.status_code,
            status_description=decoded.status_description,
            status_message=self._taxonomy.describe(decoded.status_code),
            payload=shape_payload(
                decoded, shape=descriptor.response, record_tag=descriptor.record_tag
            ),
            acknowledgements=acknowledgements,
        )

    def _check_http_status(
        self, descriptor: OperationDescriptor, response: TransportResponse
    ) -> None:
        if response.status in _AUTH_HTTP_STATUSES:
            raise AuthenticationFailure(
                f"HTTP {response.status} from {descriptor.path}",
                operation=descriptor.name,
                http_status=response.status,
            )
        if response.status >= 400:
            raise RemoteServiceError(
                f"HTTP {response.status} from {descriptor.path}",
                operation=descriptor.name,
                http_status=response.status,
            )

    def _joiners_for(self, descriptor: OperationDescriptor) -> Mapping[str, str]:
        joiners: dict[str, str] = {}
        for name in descriptor.validated_fields:
            rule = self._validator.registry.rule_for(name)
            if rule is not None and rule.kind is FieldRuleKind.LIST_OF:
                joiners[name] = rule.separator
        return MappingProxyType(joiners)

    def _integer_fields_for(self, descriptor: OperationDescriptor) -> frozenset[str]:
        names: set[str] = set()
        for name in descriptor.validated_fields:
            rule = self._validator.registry.rule_for(name)
            if rule is not None and rule.kind is FieldRuleKind.INTEGER_RANGE:
                names.add(name)
        return frozenset(names)

    def _log_retry(self, attempt: int, error: TransportError, delay_seconds: float) -> None:
        logger.warning(
            "tcu transport attempt %d/%d failed, retrying in %.2fs: %s",
            attempt,
            self._retry_policy.attempts,
            delay_seconds,
            self._mask(str(error)),
            extra={"attempt": attempt, "error_type": type(error).__name__},
        )

    def _emit(
        self,
        call_id: str,
        operation: str,
        state: _CallState,
        *,
        started: float,
        outcome: str,
        error_detail: str | None = None,
    ) -> None:
        duration_ms = max(0.0, (self._clock() - started) * 1000.0)
        record = CallRecord(
            call_id=call_id,
            operation=operation,
            path=state.path,
            outcome=outcome,
            status_code=state.status_code,
            http_status=state.http_status,
            duration_ms=duration_ms,
            request_size=state.request_size,
            response_size=state.response_size,
            attempts=state.attempts,
            error_detail=None if error_detail is None else self._mask(error_detail),
        )
        emit_safely(self._sink, record)

    def _mask(self, text: str) -> str:
        return mask_known_secrets(text, (self._identity.session_token,))


def _outcome_label(error: BaseException) -> str:
    if isinstance(error, TCUError):
        if error.category is not None:
            return error.category.value
        return error.code
    return _CLIENT_ERROR_OUTCOME


def _new_call_id() -> str:
    return uuid.uuid4().hex


__all__ = ["ClockFn", "IdFactory", "ResourceDispatcher"]
