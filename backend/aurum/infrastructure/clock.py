"""Store Clock — the authoritative 'now' for every expiry decision.

Invariants:
    - Expiry is judged against the database clock, never the client's or the
      host's, so both services agree on 'now'
    - Returned datetimes are always timezone-aware UTC
"""

from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.core.verification import as_utc


class StoreClock:
    """Reads CURRENT_TIMESTAMP from the database in the caller's session."""

    async def now(self, db: AsyncSession) -> datetime:
        result = await db.execute(select(func.now()))
        return as_utc(result.scalar_one())


class FrozenClock:
    """Fixed clock for tests and maintenance scripts. advance() moves it forward."""

    def __init__(self, moment: datetime):
        self.moment = as_utc(moment)

    async def now(self, db: AsyncSession | None = None) -> datetime:
        return self.moment

    def advance(self, **delta) -> datetime:
        self.moment = self.moment + timedelta(**delta)
        return self.moment
