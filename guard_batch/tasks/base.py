"""
Batch task contract and registry.

A batch task turns run parameters into a tuple of items, then processes
those items one at a time. ``BatchExecutor`` calls ``execute_item`` inside
its own savepoint, so a task never commits or rolls back.

``TaskRegistry`` maps a ``task_type`` string to exactly one task;
``default_task_registry()`` holds the tasks shipped with the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from guard_batch.domain.types import BatchItemStatus


@dataclass(frozen=True)
class BatchItemInput:
    """One unit of work produced by ``prepare_items``."""

    item_index: int
    item_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchTaskResult:
    """Outcome of one item.

    ``keep_writes`` lets a FAILED item keep what it already wrote; the task
    must then have isolated its own failed writes (nested savepoints).
    """

    status: BatchItemStatus
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None
    keep_writes: bool = False


@runtime_checkable
class BatchTask(Protocol):
    """Anything the executor can run.

    ``prepare_items`` reads the eligible records for a run.
    ``execute_item`` handles a single item and reports how it went; raising
    is also allowed and is recorded as an UNHANDLED_EXCEPTION failure.
    """

    @property
    def task_type(self) -> str: ...

    @property
    def description(self) -> str: ...

    async def prepare_items(
        self,
        parameters: dict[str, Any],
        session: AsyncSession,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]: ...

    async def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: AsyncSession,
        as_of: datetime,
    ) -> BatchTaskResult: ...


class TaskRegistry:
    """task_type -> task. Registering the same type twice is a ValueError."""

    def __init__(self) -> None:
        self._tasks: dict[str, BatchTask] = {}

    def register(self, task: BatchTask) -> None:
        existing = self._tasks.setdefault(task.task_type, task)
        if existing is not task:
            raise ValueError(f"Task type '{task.task_type}' is already registered")

    def get(self, task_type: str) -> BatchTask:
        """Look up a task; KeyError lists the registered types when missing."""
        task = self._tasks.get(task_type)
        if task is None:
            raise KeyError(
                f"No task registered for type '{task_type}'; "
                f"registered: {', '.join(self.list_tasks()) or 'none'}"
            )
        return task

    def list_tasks(self) -> tuple[str, ...]:
        return tuple(sorted(self._tasks))

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_type: str) -> bool:
        return task_type in self._tasks


def default_task_registry(**task_options: Any) -> TaskRegistry:
    """Registry with the consistency sweep, built from ``task_options``."""
    from guard_batch.tasks.consistency_tasks import ConsistencySweepTask

    registry = TaskRegistry()
    registry.register(ConsistencySweepTask(**task_options))
    return registry
