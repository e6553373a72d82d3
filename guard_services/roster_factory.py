"""
guard_services.roster_factory -- Build roster services from configuration.

The roster module takes its overflow policy as a constructed engine; this
is where the configured policy name is resolved.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from guard_config.schema import LedgerConfig
from guard_engines.allocation import RosterAllocationEngine, overflow_policy_for
from guard_kernel.domain.clock import Clock
from guard_modules.roster.service import RosterService


def build_roster_service(
    session: AsyncSession,
    config: LedgerConfig,
    clock: Clock | None = None,
) -> RosterService:
    """``RosterService`` whose allocation engine uses the configured overflow policy.

    Raises:
        ValueError: If the configured policy name is unknown.
    """
    engine = RosterAllocationEngine(overflow_policy_for(config.roster.overflow_policy))
    return RosterService(session, clock=clock, engine=engine)
