"""SQLite persistence for the per-call log."""

from tcu_client.persistence.call_log import (
    CallLogError,
    CallLogMigrationError,
    CallLogStore,
    DailyOperationStats,
)

__all__ = ["CallLogError", "CallLogMigrationError", "CallLogStore", "DailyOperationStats"]
