"""Batch services."""

from guard_batch.services.executor import BatchExecutor

__all__ = ["BatchExecutor"]
