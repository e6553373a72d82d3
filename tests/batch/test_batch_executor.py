"""
Tests for guard_batch.services.executor -- BatchExecutor.

Validates run(): SAVEPOINT-per-item isolation, run-level status,
unhandled exceptions recorded per item, unknown task types, and the
TaskRegistry contract.

Uses a per-test SQLite file database (see tests/conftest.py).
"""

from datetime import datetime
from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from guard_batch.domain.types import (
    BatchItemStatus,
    BatchJobStatus,
    BulkSyncResult,
)
from guard_batch.services.executor import BatchExecutor
from guard_batch.tasks.base import (
    BatchItemInput,
    BatchTask,
    BatchTaskResult,
    TaskRegistry,
    default_task_registry,
)
from guard_batch.tasks.consistency_tasks import ConsistencySweepTask
from guard_kernel.exceptions import TaskNotRegisteredError
from guard_modules.payroll.service import LedgerSynchronizer


# =============================================================================
# Test tasks
# =============================================================================


class SuccessTask:
    """Task where all items succeed."""

    @property
    def task_type(self) -> str:
        return "test.success"

    @property
    def description(self) -> str:
        return "All items succeed"

    async def prepare_items(
        self, parameters: dict[str, Any], session: AsyncSession, as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        count = parameters.get("item_count", 3)
        return tuple(
            BatchItemInput(item_index=i, item_key=f"item-{i:03d}")
            for i in range(count)
        )

    async def execute_item(
        self, item: BatchItemInput, parameters: dict[str, Any],
        session: AsyncSession, as_of: datetime,
    ) -> BatchTaskResult:
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED,
            result_data={"processed": item.item_key},
        )


class PartialFailTask:
    """Task where even-indexed items fail."""

    @property
    def task_type(self) -> str:
        return "test.partial_fail"

    @property
    def description(self) -> str:
        return "Even items fail"

    async def prepare_items(
        self, parameters: dict[str, Any], session: AsyncSession, as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        return tuple(BatchItemInput(item_index=i, item_key=f"item-{i:03d}") for i in range(3))

    async def execute_item(
        self, item: BatchItemInput, parameters: dict[str, Any],
        session: AsyncSession, as_of: datetime,
    ) -> BatchTaskResult:
        if item.item_index % 2 == 0:
            return BatchTaskResult(
                status=BatchItemStatus.FAILED,
                error_code="EVEN_INDEX",
                error_message=f"Item {item.item_key} has even index",
            )
        return BatchTaskResult(status=BatchItemStatus.SUCCEEDED)


class WritingTask:
    """Writes one monthly-hours record per item; item 1 raises after writing."""

    @property
    def task_type(self) -> str:
        return "test.writing"

    @property
    def description(self) -> str:
        return "Writes then maybe raises"

    def __init__(self) -> None:
        self.guards = [uuid4(), uuid4(), uuid4()]

    async def prepare_items(
        self, parameters: dict[str, Any], session: AsyncSession, as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        return tuple(
            BatchItemInput(item_index=i, item_key=str(g), payload={"guard_id": g})
            for i, g in enumerate(self.guards)
        )

    async def execute_item(
        self, item: BatchItemInput, parameters: dict[str, Any],
        session: AsyncSession, as_of: datetime,
    ) -> BatchTaskResult:
        await LedgerSynchronizer(session).record_monthly_hours(
            item.payload["guard_id"], 2024, 3, 10,
        )
        if item.item_index == 1:
            raise RuntimeError("boom")
        if item.item_index == 2:
            return BatchTaskResult(status=BatchItemStatus.SKIPPED)
        return BatchTaskResult(status=BatchItemStatus.SUCCEEDED)


class KeepWritesTask(WritingTask):
    """Every item writes and fails; only item 0 asks to keep its writes."""

    @property
    def task_type(self) -> str:
        return "test.keep_writes"

    async def execute_item(
        self, item: BatchItemInput, parameters: dict[str, Any],
        session: AsyncSession, as_of: datetime,
    ) -> BatchTaskResult:
        await LedgerSynchronizer(session).record_monthly_hours(
            item.payload["guard_id"], 2024, 3, 10,
        )
        return BatchTaskResult(
            status=BatchItemStatus.FAILED,
            error_code="PARTIAL",
            keep_writes=item.item_index == 0,
        )


class BrokenPrepareTask(SuccessTask):

    @property
    def task_type(self) -> str:
        return "test.broken_prepare"

    async def prepare_items(self, parameters, session, as_of):
        raise RuntimeError("cannot list items")


def _registry(*tasks) -> TaskRegistry:
    registry = TaskRegistry()
    for task in tasks:
        registry.register(task)
    return registry


# =============================================================================
# Executor
# =============================================================================


class TestBatchExecutor:

    @pytest.mark.asyncio
    async def test_all_items_succeed(self, session, clock):
        executor = BatchExecutor(session, _registry(SuccessTask()), clock=clock)
        result = await executor.run("test.success", {"item_count": 4})

        assert result.status is BatchJobStatus.COMPLETED
        assert result.total_items == 4
        assert result.succeeded == 4
        assert result.failed == 0
        assert [r.item_key for r in result.item_results] == [
            "item-000", "item-001", "item-002", "item-003",
        ]
        assert result.item_results[0].result_data == {"processed": "item-000"}
        assert result.started_at == clock.now()

    @pytest.mark.asyncio
    async def test_no_items_is_completed(self, session, clock):
        executor = BatchExecutor(session, _registry(SuccessTask()), clock=clock)
        result = await executor.run("test.success", {"item_count": 0})
        assert result.status is BatchJobStatus.COMPLETED
        assert result.total_items == 0

    @pytest.mark.asyncio
    async def test_partial_failure(self, session, clock):
        executor = BatchExecutor(session, _registry(PartialFailTask()), clock=clock)
        result = await executor.run("test.partial_fail")

        assert result.status is BatchJobStatus.PARTIALLY_COMPLETED
        assert (result.succeeded, result.failed) == (1, 2)
        assert [r.item_key for r in result.failures()] == ["item-000", "item-002"]
        assert result.failures()[0].error_code == "EVEN_INDEX"

    @pytest.mark.asyncio
    async def test_savepoint_per_item(self, session, clock, ledger):
        task = WritingTask()
        executor = BatchExecutor(session, _registry(task), clock=clock)
        result = await executor.run("test.writing")

        assert (result.succeeded, result.failed, result.skipped) == (1, 1, 1)
        failure = result.failures()[0]
        assert failure.error_code == "UNHANDLED_EXCEPTION"
        assert failure.error_message == "boom"

        # Only the succeeded item's write survives
        kept = await ledger.list_monthly_hours(2024, 3)
        assert [r.guard_id for r in kept] == [task.guards[0]]

    @pytest.mark.asyncio
    async def test_failed_item_can_keep_its_writes(self, session, clock, ledger):
        task = KeepWritesTask()
        executor = BatchExecutor(session, _registry(task), clock=clock)
        result = await executor.run("test.keep_writes")

        assert result.status is BatchJobStatus.FAILED
        assert result.failed == 3
        kept = await ledger.list_monthly_hours(2024, 3)
        assert [r.guard_id for r in kept] == [task.guards[0]]

    @pytest.mark.asyncio
    async def test_unknown_task_type(self, session):
        executor = BatchExecutor(session, TaskRegistry())
        with pytest.raises(TaskNotRegisteredError) as exc_info:
            await executor.run("nope")
        assert exc_info.value.code == "TASK_NOT_REGISTERED"

    @pytest.mark.asyncio
    async def test_prepare_failure_propagates(self, session):
        executor = BatchExecutor(session, _registry(BrokenPrepareTask()))
        with pytest.raises(RuntimeError, match="cannot list items"):
            await executor.run("test.broken_prepare")

    @pytest.mark.asyncio
    async def test_batch_id_in_logs(self, session, clock, captured_logs):
        executor = BatchExecutor(session, _registry(PartialFailTask()), clock=clock)
        result = await executor.run("test.partial_fail")

        logs = captured_logs()
        completed = [r for r in logs if r["message"] == "batch_run_completed"]
        assert completed[0]["batch_id"] == str(result.run_id)
        assert completed[0]["status"] == "partially_completed"
        assert sum(1 for r in logs if r["message"] == "batch_item_failed") == 2


# =============================================================================
# Registry
# =============================================================================


class TestTaskRegistry:

    def test_register_and_get(self):
        task = SuccessTask()
        registry = _registry(task)
        assert registry.get("test.success") is task
        assert "test.success" in registry
        assert len(registry) == 1

    def test_duplicate_rejected(self):
        registry = _registry(SuccessTask())
        with pytest.raises(ValueError, match="already registered"):
            registry.register(SuccessTask())

    def test_missing_raises_key_error(self):
        with pytest.raises(KeyError):
            TaskRegistry().get("missing")

    def test_default_registry_holds_consistency_sweep(self):
        registry = default_task_registry()
        assert registry.list_tasks() == (ConsistencySweepTask.TASK_TYPE,)
        assert isinstance(registry.get(ConsistencySweepTask.TASK_TYPE), BatchTask)


# =============================================================================
# Consistency sweep task
# =============================================================================


class TestConsistencySweepTask:

    @pytest.mark.asyncio
    async def test_sweep_alerts_inconsistent_guards(self, session, clock, ledger, alerts):
        consistent, mismatched = uuid4(), uuid4()
        await ledger.record_monthly_hours(consistent, 2024, 3, 40)
        await ledger.record_payroll(consistent, 2024, 3, total_hours=40)
        await ledger.record_monthly_hours(mismatched, 2024, 3, 80)

        executor = BatchExecutor(session, default_task_registry(clock=clock), clock=clock)
        run = await executor.run(ConsistencySweepTask.TASK_TYPE, {"year": 2024, "month": 3})

        assert run.status is BatchJobStatus.COMPLETED
        assert run.total_items == 2
        by_key = {r.item_key: r for r in run.item_results}
        assert by_key[str(consistent)].result_data["alerts_created"] == 0
        assert by_key[str(mismatched)].result_data["alerts_created"] == 2
        assert len(await alerts.list_alerts(guard_id=mismatched)) == 2
        assert await alerts.list_alerts(guard_id=consistent) == []

        summary = BulkSyncResult.from_run(2024, 3, run)
        assert summary.to_contract() == {
            "processed": 2, "successful": 2, "failed": 0, "errors": [],
        }
