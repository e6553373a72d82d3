"""Batch task implementations and the task registry."""

from guard_batch.tasks.base import (
    BatchItemInput,
    BatchTask,
    BatchTaskResult,
    TaskRegistry,
    default_task_registry,
)
from guard_batch.tasks.consistency_tasks import ConsistencySweepTask

__all__ = [
    "BatchItemInput",
    "BatchTask",
    "BatchTaskResult",
    "ConsistencySweepTask",
    "TaskRegistry",
    "default_task_registry",
]
