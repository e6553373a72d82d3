"""
BatchExecutor -- runs a registered task item by item.

Contract:
    ``run(task_type, parameters)`` asks the task for its items, then
    executes each one inside its own SAVEPOINT and returns a
    ``BatchRunResult``.

Invariants enforced:
    - An item's writes survive only if the item reports SUCCEEDED, or
      FAILED with ``keep_writes``; other FAILED, SKIPPED and raising items
      roll their savepoint back.
    - A failing item never stops the items after it.
    - Timestamps come from the injected Clock; durations from
      ``time.monotonic``.
    - Errors raised by ``prepare_items`` propagate, since no item has run.
"""

from __future__ import annotations

import time
from collections import Counter
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from guard_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchJobStatus,
    BatchRunResult,
)
from guard_batch.tasks.base import BatchItemInput, BatchTask, TaskRegistry
from guard_kernel.domain.clock import Clock, SystemClock
from guard_kernel.exceptions import TaskNotRegisteredError
from guard_kernel.logging_config import LogContext, get_logger

logger = get_logger("batch.executor")


def _elapsed_ms(since: float) -> int:
    return int((time.monotonic() - since) * 1000)


def _run_status(counts: Counter) -> BatchJobStatus:
    if not counts[BatchItemStatus.FAILED]:
        return BatchJobStatus.COMPLETED
    if counts[BatchItemStatus.SUCCEEDED] or counts[BatchItemStatus.SKIPPED]:
        return BatchJobStatus.PARTIALLY_COMPLETED
    return BatchJobStatus.FAILED


class BatchExecutor:
    """Executes batch tasks against one session.

    The session is flushed through savepoints only; committing the outer
    transaction is left to the caller. Failed items are not retried.
    """

    def __init__(
        self,
        session: AsyncSession,
        task_registry: TaskRegistry,
        clock: Clock | None = None,
    ):
        self._session = session
        self._task_registry = task_registry
        self._clock = clock or SystemClock()

    async def run(
        self,
        task_type: str,
        parameters: dict[str, Any] | None = None,
    ) -> BatchRunResult:
        """
        Raises:
            TaskNotRegisteredError: ``task_type`` is unknown to the registry.
        """
        if task_type not in self._task_registry:
            raise TaskNotRegisteredError(task_type, self._task_registry.list_tasks())
        task = self._task_registry.get(task_type)
        parameters = dict(parameters or {})

        run_id = uuid4()
        run_start = time.monotonic()
        started_at = self._clock.now()

        with LogContext.bind(batch_id=str(run_id)):
            items = await task.prepare_items(
                parameters=parameters, session=self._session, as_of=started_at,
            )
            logger.info("batch_run_started", extra={
                "task_type": task_type,
                "total_items": len(items),
                "parameters": parameters,
            })

            results = [
                await self._run_item(task, item, parameters, started_at)
                for item in items
            ]
            counts = Counter(r.status for r in results)
            status = _run_status(counts)
            duration_ms = _elapsed_ms(run_start)

            logger.info("batch_run_completed", extra={
                "task_type": task_type,
                "status": status.value,
                "succeeded": counts[BatchItemStatus.SUCCEEDED],
                "failed": counts[BatchItemStatus.FAILED],
                "skipped": counts[BatchItemStatus.SKIPPED],
                "duration_ms": duration_ms,
            })

        return BatchRunResult(
            run_id=run_id,
            task_type=task_type,
            status=status,
            total_items=len(items),
            succeeded=counts[BatchItemStatus.SUCCEEDED],
            failed=counts[BatchItemStatus.FAILED],
            skipped=counts[BatchItemStatus.SKIPPED],
            item_results=tuple(results),
            started_at=started_at,
            completed_at=self._clock.now(),
            duration_ms=duration_ms,
        )

    async def _run_item(
        self,
        task: BatchTask,
        item: BatchItemInput,
        parameters: dict[str, Any],
        as_of: datetime,
    ) -> BatchItemResult:
        item_start = time.monotonic()
        item_started_at = self._clock.now()
        result_data = None

        savepoint = await self._session.begin_nested()
        try:
            outcome = await task.execute_item(
                item=item, parameters=parameters, session=self._session, as_of=as_of,
            )
        except Exception as exc:
            await savepoint.rollback()
            status = BatchItemStatus.FAILED
            error_code, error_message = "UNHANDLED_EXCEPTION", str(exc)
        else:
            if outcome.status is BatchItemStatus.SUCCEEDED or (
                outcome.status is BatchItemStatus.FAILED and outcome.keep_writes
            ):
                await savepoint.commit()
            else:
                await savepoint.rollback()
            status = outcome.status
            error_code, error_message = outcome.error_code, outcome.error_message
            result_data = outcome.result_data

        if status is BatchItemStatus.FAILED:
            logger.warning("batch_item_failed", extra={
                "item_key": item.item_key,
                "error_code": error_code or "UNKNOWN",
                "error_message": error_message or "",
            })

        return BatchItemResult(
            item_index=item.item_index,
            item_key=item.item_key,
            status=status,
            error_code=error_code,
            error_message=error_message,
            result_data=result_data,
            duration_ms=_elapsed_ms(item_start),
            started_at=item_started_at,
            completed_at=self._clock.now(),
        )
