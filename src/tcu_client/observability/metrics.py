"""Thread-safe in-process metrics for TCU API calls, with a deterministic snapshot."""

from __future__ import annotations

import json
import math
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_Labels = tuple[tuple[str, str], ...]

_NAME_MAX_LEN: Final[int] = 128
_LABEL_VALUE_MAX_LEN: Final[int] = 256
# Samples kept per distribution for percentile estimates.
DEFAULT_SAMPLE_WINDOW: Final[int] = 1024


@dataclass(frozen=True, order=True, slots=True)
class _Key:
    name: str
    labels: _Labels


@dataclass(slots=True)
class _Distribution:
    window: int
    count: int = 0
    total: float = 0.0
    minimum: float | None = None
    maximum: float | None = None
    samples: deque[float] = field(default_factory=deque)

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        if self.minimum is None or value < self.minimum:
            self.minimum = value
        if self.maximum is None or value > self.maximum:
            self.maximum = value
        self.samples.append(value)
        if len(self.samples) > self.window:
            self.samples.popleft()

    def as_dict(self) -> dict[str, JSONValue]:
        ordered = sorted(self.samples)
        return {
            "count": self.count,
            "sum": self.total,
            "min": self.minimum,
            "max": self.maximum,
            "avg": self.total / self.count if self.count else 0.0,
            "p50": _percentile(ordered, 0.50),
            "p95": _percentile(ordered, 0.95),
        }


class MetricsRegistry:
    """Counters and sample distributions keyed by name plus sorted labels."""

    def __init__(self, *, sample_window: int = DEFAULT_SAMPLE_WINDOW) -> None:
        if sample_window <= 0:
            raise ValueError("sample_window must be > 0")
        self._lock = threading.RLock()
        self._window = sample_window
        self._created_at = datetime.now(tz=UTC)
        self._counters: dict[_Key, float] = {}
        self._distributions: dict[_Key, _Distribution] = {}

    def inc(
        self,
        name: str,
        amount: float = 1.0,
        *,
        labels: Mapping[str, str] | None = None,
    ) -> None:
        delta = _finite(amount, path="amount")
        if delta < 0:
            raise ValueError("counter increment amount must be >= 0")
        key = _key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0.0) + delta

    def observe(
        self,
        name: str,
        value: float,
        *,
        labels: Mapping[str, str] | None = None,
    ) -> None:
        key = _key(name, labels)
        sample = _finite(value, path="value")
        with self._lock:
            state = self._distributions.get(key)
            if state is None:
                state = _Distribution(window=self._window)
                self._distributions[key] = state
            state.observe(sample)

    def get_counter(self, name: str, *, labels: Mapping[str, str] | None = None) -> float:
        key = _key(name, labels)
        with self._lock:
            return self._counters.get(key, 0.0)

    def get_distribution(
        self,
        name: str,
        *,
        labels: Mapping[str, str] | None = None,
    ) -> dict[str, JSONValue] | None:
        key = _key(name, labels)
        with self._lock:
            state = self._distributions.get(key)
            return None if state is None else state.as_dict()

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._distributions.clear()
            self._created_at = datetime.now(tz=UTC)

    def snapshot(self) -> dict[str, JSONValue]:
        """Stable-ordered view of every series."""

        with self._lock:
            created_at = self._created_at
            counters = sorted(self._counters.items())
            distributions = [
                (key, state.as_dict()) for key, state in sorted(self._distributions.items())
            ]

        return {
            "metadata": {
                "created_at": _iso(created_at),
                "snapshot_at": _iso(datetime.now(tz=UTC)),
            },
            "counters": {_identifier(key): value for key, value in counters},
            "distributions": {_identifier(key): value for key, value in distributions},
        }

    def to_json(self, *, indent: int | None = None) -> str:
        payload = self.snapshot()
        if indent is None:
            return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        return json.dumps(payload, sort_keys=True, indent=indent, ensure_ascii=False)


def _key(name: str, labels: Mapping[str, str] | None) -> _Key:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("metric name must be a non-empty string")
    normalized = name.strip()
    if len(normalized) > _NAME_MAX_LEN:
        raise ValueError(f"metric name must be <= {_NAME_MAX_LEN} characters")
    return _Key(name=normalized, labels=_labels(labels))


def _labels(labels: Mapping[str, str] | None) -> _Labels:
    if not labels:
        return ()
    out: list[tuple[str, str]] = []
    for key, value in labels.items():
        if not isinstance(key, str) or not key.strip():
            raise ValueError("label keys must be non-empty strings")
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"label value for {key!r} must be a non-empty string")
        if len(value) > _LABEL_VALUE_MAX_LEN:
            raise ValueError(f"label value for {key!r} exceeds {_LABEL_VALUE_MAX_LEN} characters")
        out.append((key.strip(), value.strip()))
    return tuple(sorted(out))


def _identifier(key: _Key) -> str:
    if not key.labels:
        return key.name
    rendered = ",".join(f"{name}={value}" for name, value in key.labels)
    return f"{key.name}{{{rendered}}}"


def _finite(value: float, *, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{path} must be numeric, got {type(value).__name__}")
    parsed = float(value)
    if not math.isfinite(parsed):
        raise ValueError(f"{path} must be finite")
    return parsed


def _percentile(ordered: list[float], fraction: float) -> float | None:
    if not ordered:
        return None
    # Nearest-rank on the retained window.
    rank = max(1, math.ceil(fraction * len(ordered)))
    return ordered[rank - 1]


def _iso(moment: datetime) -> str:
    return moment.isoformat(timespec="seconds").replace("+00:00", "Z")


__all__ = ["DEFAULT_SAMPLE_WINDOW", "JSONScalar", "JSONValue", "MetricsRegistry"]
