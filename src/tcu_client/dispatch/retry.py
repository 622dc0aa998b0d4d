"""Fixed-delay retry loop for transport calls."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from tcu_client.constants import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_DELAY_SECONDS
from tcu_client.errors import TransientNetworkFailure
from tcu_client.transport.base import TransportError

_ResultT = TypeVar("_ResultT")

SleepFn = Callable[[float], None]
RetryCallback = Callable[[int, TransportError, float], None]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """``attempts`` counts every try, the first included."""

    attempts: int = DEFAULT_RETRY_ATTEMPTS
    delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS

    def __post_init__(self) -> None:
        if isinstance(self.attempts, bool) or self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")


@dataclass(frozen=True, slots=True)
class RetryOutcome(Generic[_ResultT]):
    value: _ResultT
    attempts: int


def run_with_retries(
    operation_fn: Callable[[], _ResultT],
    *,
    operation: str,
    policy: RetryPolicy,
    sleep: SleepFn = time.sleep,
    on_retry: RetryCallback | None = None,
) -> RetryOutcome[_ResultT]:
    """Run ``operation_fn`` until it returns or the attempt budget is spent.

    Only TransportError is retried. Anything else propagates on the first raise.
    Exhausting the budget raises TransientNetworkFailure chained to the last error.
    """

    attempt = 0
    while True:
        attempt += 1
        try:
            return RetryOutcome(value=operation_fn(), attempts=attempt)
        except TransportError as exc:
            if attempt >= policy.attempts:
                raise TransientNetworkFailure(
                    str(exc) or type(exc).__name__, operation=operation, attempts=attempt
                ) from exc
            if on_retry is not None:
                on_retry(attempt, exc, policy.delay_seconds)
            sleep(policy.delay_seconds)


__all__ = ["RetryCallback", "RetryOutcome", "RetryPolicy", "SleepFn", "run_with_retries"]
