"""
BaseService -- abstract base for all ledger services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service.  All concrete services inherit from BaseService,
    receiving an ``AsyncSession`` that they use via ``await session.flush()``
    -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Module services
    (roster, payroll, alerts) extend this class.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's transaction
      and never commit.  Where a unit of work must be isolated (a single
      sync, one alert of a fan-out, one batch item) the service opens a
      SAVEPOINT with ``session.begin_nested()`` and lets it commit or roll
      back; the outer transaction still belongs to the caller.

Failure modes:
    - If a subclass calls ``session.commit()``, the atomicity of multi-step
      reconciliation (save monthly hours, sync, alert) is broken.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from guard_kernel.db.base import Base
from guard_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all ledger services.

    Contract:
        Accepts an ``AsyncSession`` from the caller and uses
        ``await session.flush()`` to persist changes within the active
        transaction.

    Guarantees:
        - The service never calls ``session.commit()``.
        - ``self.clock`` is always set (SystemClock by default).

    Non-goals:
        - Does NOT manage the outer transaction lifecycle.
    """

    def __init__(self, session: AsyncSession, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
