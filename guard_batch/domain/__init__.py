"""Batch domain types (pure, frozen)."""

from guard_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchJobStatus,
    BatchRunResult,
    BulkSyncError,
    BulkSyncResult,
)

__all__ = [
    "BatchItemResult",
    "BatchItemStatus",
    "BatchJobStatus",
    "BatchRunResult",
    "BulkSyncError",
    "BulkSyncResult",
]
