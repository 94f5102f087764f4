"""Session Maintenance — periodic expiry sweep and purge of dead credentials.

Invariants:
    - Never touches consumed sessions or sessions referenced by a transaction
    - Each scheduled pass runs in its own DB session
    - "now" comes from the store clock, same as verification
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.core.repository_protocols import Clock
from aurum.services import session_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    expired: int
    purged: int


class SessionMaintenance:
    def __init__(self, clock: Clock, retention: timedelta):
        self.clock = clock
        self.retention = retention

    async def run_once(self, db: AsyncSession) -> SweepResult:
        """ExpireStale(now) then PurgeExpired(now - retention)."""
        now = await self.clock.now(db)
        expired = await session_store.expire_stale(db, now)
        purged = await session_store.purge_expired(db, now - self.retention)
        return SweepResult(expired=expired, purged=purged)

    async def sweep(self, session_factory: Callable[[], AsyncSession]) -> SweepResult | None:
        """One scheduled pass in its own DB session. Failures are logged; the
        next interval tries again."""
        try:
            async with session_factory() as db:
                result = await self.run_once(db)
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                f"Session sweep failed: {e.__class__.__name__}",
                extra={"reason": "sweep_failed"},
            )
            return None
        if result.expired or result.purged:
            logger.info(f"Session sweep: expired={result.expired} purged={result.purged}")
        return result
