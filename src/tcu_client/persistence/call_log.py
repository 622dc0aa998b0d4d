"""
tcu-client — SQLite call log

File: src/tcu_client/persistence/call_log.py
Last updated: 2026-10-18

Purpose
- Durable per-call log of TCU API dispatches with daily per-operation statistics.

What should be included in this file
- Checksummed, idempotent schema migrations.
- Short-lived WAL connections with a busy timeout and bounded busy retries.
- Insert, recent-call inspection and daily rollup queries.

Functional requirements
- Only redacted error text is stored; request and response bodies never are.
- Migration checksums guard against silently edited history.

Non-functional requirements
- Writers from several threads or processes do not block each other for long.
"""

from __future__ import annotations

import hashlib
import sqlite3
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Final

from tcu_client.constants import CALL_LOG_SCHEMA_VERSION
from tcu_client.domain.models import CallRecord, OutcomeCategory

SQLValue = str | int | float | bytes | None

DEFAULT_BUSY_TIMEOUT_MS: Final[int] = 5_000
DEFAULT_BUSY_RETRY_LIMIT: Final[int] = 4
DEFAULT_BUSY_RETRY_BACKOFF_MS: Final[int] = 25

_SCHEMA_VERSIONS_TABLE_SQL: Final[str] = """
CREATE TABLE IF NOT EXISTS schema_versions (
    version INTEGER PRIMARY KEY CHECK (version > 0),
    name TEXT NOT NULL,
    checksum TEXT NOT NULL CHECK (length(checksum) = 64),
    applied_at TEXT NOT NULL
)
"""

_MIGRATION_0001_STATEMENTS: Final[tuple[str, ...]] = (
    _SCHEMA_VERSIONS_TABLE_SQL,
    """
    CREATE TABLE IF NOT EXISTS tcu_api_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        call_id TEXT NOT NULL,
        operation TEXT NOT NULL,
        path TEXT NOT NULL DEFAULT '',
        outcome TEXT NOT NULL,
        status_code INTEGER,
        http_status INTEGER,
        duration_ms REAL NOT NULL CHECK (duration_ms >= 0),
        request_size INTEGER NOT NULL CHECK (request_size >= 0),
        response_size INTEGER NOT NULL CHECK (response_size >= 0),
        attempts INTEGER NOT NULL DEFAULT 0 CHECK (attempts >= 0),
        error_detail TEXT,
        recorded_at TEXT NOT NULL,
        recorded_day TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tcu_api_logs_day_op ON tcu_api_logs (recorded_day, operation)",
    "CREATE INDEX IF NOT EXISTS idx_tcu_api_logs_outcome ON tcu_api_logs (outcome, recorded_day)",
    "CREATE INDEX IF NOT EXISTS idx_tcu_api_logs_status "
    "ON tcu_api_logs (status_code, recorded_day)",
)

_SUCCESS_OUTCOMES: Final[tuple[str, ...]] = (
    OutcomeCategory.SUCCESS.value,
    OutcomeCategory.BUSINESS_CONDITION.value,
)
_TIMEOUT_OUTCOME: Final[str] = OutcomeCategory.TRANSIENT_NETWORK_FAILURE.value

_BUSY_SUBSTRINGS: Final[tuple[str, ...]] = (
    "database is locked",
    "database table is locked",
    "database schema is locked",
)


class CallLogError(RuntimeError):
    """Base class for call log storage errors."""


class CallLogMigrationError(CallLogError):
    """Schema history does not match the migrations shipped with this package."""


@dataclass(frozen=True, slots=True)
class _Migration:
    version: int
    name: str
    statements: tuple[str, ...]

    @property
    def checksum(self) -> str:
        digest = hashlib.sha256()
        digest.update(f"{self.version}:{self.name}\n".encode())
        for statement in self.statements:
            normalized = "\n".join(line.rstrip() for line in statement.strip().splitlines())
            digest.update(normalized.encode("utf-8"))
            digest.update(b"\n--\n")
        return digest.hexdigest()


_MIGRATIONS: Final[tuple[_Migration, ...]] = (
    _Migration(version=1, name="tcu_api_logs", statements=_MIGRATION_0001_STATEMENTS),
)


@dataclass(frozen=True, slots=True)
class DailyOperationStats:
    """Per-operation totals for one UTC day."""

    day: str
    operation: str
    total_calls: int
    successful_calls: int
    failed_calls: int
    timeout_calls: int
    avg_duration_ms: float | None
    min_duration_ms: float | None
    max_duration_ms: float | None
    total_bytes_sent: int
    total_bytes_received: int


class CallLogStore:
    """SQLite store for CallRecords. Each operation opens its own connection."""

    def __init__(
        self,
        path: str | Path,
        *,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
        busy_retry_limit: int = DEFAULT_BUSY_RETRY_LIMIT,
        busy_retry_backoff_ms: int = DEFAULT_BUSY_RETRY_BACKOFF_MS,
    ) -> None:
        if busy_timeout_ms < 0 or busy_retry_limit < 0 or busy_retry_backoff_ms < 0:
            raise ValueError("busy settings must be >= 0")
        self._path = Path(path).expanduser()
        self._busy_timeout_ms = busy_timeout_ms
        self._busy_retry_limit = busy_retry_limit
        self._busy_retry_backoff_ms = busy_retry_backoff_ms

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, timeout=self._busy_timeout_ms / 1000.0)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute(f"PRAGMA busy_timeout={self._busy_timeout_ms}")
            conn.execute("PRAGMA journal_mode=WAL")
            yield conn
        finally:
            conn.close()

    def migrate(self) -> int:
        """Apply pending migrations idempotently and return the schema version."""

        with self.connection() as conn:
            self._execute(conn, _SCHEMA_VERSIONS_TABLE_SQL, (), operation="create schema_versions")
            applied = {
                int(row["version"]): str(row["checksum"])
                for row in self._execute(
                    conn,
                    "SELECT version, checksum FROM schema_versions ORDER BY version",
                    (),
                    operation="load schema_versions",
                ).fetchall()
            }
            current = max(applied, default=0)
            if current > CALL_LOG_SCHEMA_VERSION:
                raise CallLogMigrationError(
                    "call log schema is newer than this package supports "
                    f"(db={current}, code={CALL_LOG_SCHEMA_VERSION})"
                )

            for migration in _MIGRATIONS:
                if migration.version > CALL_LOG_SCHEMA_VERSION:
                    continue
                recorded = applied.get(migration.version)
                if recorded is not None:
                    if recorded != migration.checksum:
                        raise CallLogMigrationError(
                            f"migration checksum mismatch for version {migration.version}"
                        )
                    continue
                with conn:
                    for statement in migration.statements:
                        self._execute(
                            conn, statement, (), operation=f"apply migration {migration.version}"
                        )
                    self._execute(
                        conn,
                        "INSERT INTO schema_versions (version, name, checksum, applied_at) "
                        "VALUES (?, ?, ?, ?)",
                        (migration.version, migration.name, migration.checksum, _utc_now_iso()),
                        operation=f"record migration {migration.version}",
                    )
                applied[migration.version] = migration.checksum
            return max(applied, default=0)

    def record(self, call: CallRecord) -> int:
        """Insert one call row and return its id."""

        recorded_at = _as_utc(call.recorded_at)
        with self.connection() as conn, conn:
            cursor = self._execute(
                conn,
                """
                INSERT INTO tcu_api_logs (
                    call_id, operation, path, outcome, status_code, http_status,
                    duration_ms, request_size, response_size, attempts, error_detail,
                    recorded_at, recorded_day
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    call.call_id,
                    call.operation,
                    call.path,
                    call.outcome,
                    call.status_code,
                    call.http_status,
                    float(call.duration_ms),
                    int(call.request_size),
                    int(call.response_size),
                    int(call.attempts),
                    call.error_detail,
                    recorded_at.isoformat(timespec="microseconds").replace("+00:00", "Z"),
                    recorded_at.date().isoformat(),
                ),
                operation="insert call",
            )
            return int(cursor.lastrowid or 0)

    def recent_calls(self, limit: int = 50) -> tuple[CallRecord, ...]:
        if limit <= 0:
            raise ValueError("limit must be > 0")
        with self.connection() as conn:
            rows = self._execute(
                conn,
                """
                SELECT call_id, operation, path, outcome, status_code, http_status,
                       duration_ms, request_size, response_size, attempts, error_detail,
                       recorded_at
                FROM tcu_api_logs
                ORDER BY id DESC
                LIMIT ?
                """,
                (limit,),
                operation="load recent calls",
            ).fetchall()
        return tuple(_row_to_call(row) for row in rows)

    def daily_stats(self, day: date | str) -> tuple[DailyOperationStats, ...]:
        """Aggregate one UTC day's calls per operation, ordered by operation name."""

        day_text = day.isoformat() if isinstance(day, date) else date.fromisoformat(day).isoformat()
        success_marks = ", ".join("?" for _ in _SUCCESS_OUTCOMES)
        with self.connection() as conn:
            rows = self._execute(
                conn,
                f"""
                SELECT operation,
                       COUNT(*) AS total_calls,
                       SUM(CASE WHEN outcome IN ({success_marks}) THEN 1 ELSE 0 END)
                           AS successful_calls,
                       SUM(CASE WHEN outcome = ? THEN 1 ELSE 0 END) AS timeout_calls,
                       AVG(duration_ms) AS avg_duration_ms,
                       MIN(duration_ms) AS min_duration_ms,
                       MAX(duration_ms) AS max_duration_ms,
                       SUM(request_size) AS total_bytes_sent,
                       SUM(response_size) AS total_bytes_received
                FROM tcu_api_logs
                WHERE recorded_day = ?
                GROUP BY operation
                ORDER BY operation
                """,
                (*_SUCCESS_OUTCOMES, _TIMEOUT_OUTCOME, day_text),
                operation="aggregate daily stats",
            ).fetchall()

        stats: list[DailyOperationStats] = []
        for row in rows:
            total = int(row["total_calls"])
            successful = int(row["successful_calls"] or 0)
            stats.append(
                DailyOperationStats(
                    day=day_text,
                    operation=str(row["operation"]),
                    total_calls=total,
                    successful_calls=successful,
                    failed_calls=total - successful,
                    timeout_calls=int(row["timeout_calls"] or 0),
                    avg_duration_ms=_optional_float(row["avg_duration_ms"]),
                    min_duration_ms=_optional_float(row["min_duration_ms"]),
                    max_duration_ms=_optional_float(row["max_duration_ms"]),
                    total_bytes_sent=int(row["total_bytes_sent"] or 0),
                    total_bytes_received=int(row["total_bytes_received"] or 0),
                )
            )
        return tuple(stats)

    def _execute(
        self,
        conn: sqlite3.Connection,
        sql: str,
        params: Sequence[SQLValue],
        *,
        operation: str,
    ) -> sqlite3.Cursor:
        for attempt in range(self._busy_retry_limit + 1):
            try:
                return conn.execute(sql, tuple(params))
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as exc:
                busy = any(fragment in str(exc).lower() for fragment in _BUSY_SUBSTRINGS)
                if busy and attempt < self._busy_retry_limit:
                    time.sleep((self._busy_retry_backoff_ms / 1000.0) * float(2**attempt))
                    continue
                raise CallLogError(f"{operation} failed for {self._path}: {exc}") from exc
        raise CallLogError(f"{operation} exhausted busy retries for {self._path}")


def _row_to_call(row: sqlite3.Row) -> CallRecord:
    return CallRecord(
        call_id=str(row["call_id"]),
        operation=str(row["operation"]),
        path=str(row["path"]),
        outcome=str(row["outcome"]),
        status_code=None if row["status_code"] is None else int(row["status_code"]),
        http_status=None if row["http_status"] is None else int(row["http_status"]),
        duration_ms=float(row["duration_ms"]),
        request_size=int(row["request_size"]),
        response_size=int(row["response_size"]),
        attempts=int(row["attempts"]),
        error_detail=None if row["error_detail"] is None else str(row["error_detail"]),
        recorded_at=datetime.fromisoformat(str(row["recorded_at"]).replace("Z", "+00:00")),
    )


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None or moment.utcoffset() is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def _optional_float(value: object) -> float | None:
    return None if value is None else float(value)  # type: ignore[arg-type]


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


__all__ = [
    "CallLogError",
    "CallLogMigrationError",
    "CallLogStore",
    "DEFAULT_BUSY_RETRY_BACKOFF_MS",
    "DEFAULT_BUSY_RETRY_LIMIT",
    "DEFAULT_BUSY_TIMEOUT_MS",
    "DailyOperationStats",
]
