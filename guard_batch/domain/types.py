"""
guard_batch.domain.types -- Pure frozen dataclasses for the batch system.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


# =============================================================================
# Status enums
# =============================================================================


class BatchJobStatus(str, Enum):
    """Run-level outcome."""

    COMPLETED = "completed"  # All items processed successfully (or no items)
    FAILED = "failed"  # No item succeeded
    PARTIALLY_COMPLETED = "partially_completed"  # Some items failed


class BatchItemStatus(str, Enum):
    """Per-item outcome within a batch run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # Intentionally skipped; savepoint rolled back


# =============================================================================
# Result DTOs
# =============================================================================


@dataclass(frozen=True)
class BatchItemResult:
    """Immutable result of processing a single batch item.

    Each item runs in its own SAVEPOINT, so the failure of one item does not
    abort the batch.
    """

    item_index: int  # 0-indexed position in the batch
    item_key: str  # Business identifier (e.g. guard_id)
    status: BatchItemStatus
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None
    duration_ms: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class BatchRunResult:
    """Immutable result of one ``BatchExecutor.run()`` call."""

    run_id: UUID
    task_type: str
    status: BatchJobStatus
    total_items: int
    succeeded: int
    failed: int
    skipped: int
    item_results: tuple[BatchItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    def failures(self) -> tuple[BatchItemResult, ...]:
        return tuple(r for r in self.item_results if r.status is BatchItemStatus.FAILED)


@dataclass(frozen=True)
class BulkSyncError:
    guard_id: str
    error: str


@dataclass(frozen=True)
class BulkSyncResult:
    """Outcome of a month-wide consistency sweep."""

    year: int
    month: int
    processed: int
    successful: int
    failed: int
    errors: tuple[BulkSyncError, ...] = ()

    @classmethod
    def from_run(cls, year: int, month: int, run: BatchRunResult) -> BulkSyncResult:
        return cls(
            year=year,
            month=month,
            processed=run.total_items,
            successful=run.succeeded + run.skipped,
            failed=run.failed,
            errors=tuple(
                BulkSyncError(guard_id=r.item_key, error=r.error_message or "")
                for r in run.failures()
            ),
        )

    def to_contract(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
            "errors": [{"guardId": e.guard_id, "error": e.error} for e in self.errors],
        }
