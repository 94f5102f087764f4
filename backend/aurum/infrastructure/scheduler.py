"""Maintenance Scheduler — APScheduler job that runs the session sweep.

Invariants:
    - One sweep job per process, never overlapping itself (max_instances=1)
    - Missed runs are coalesced into one
    - Started and shut down by the settlement app lifespan only
"""

from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.services.session_maintenance import SessionMaintenance

SWEEP_JOB_ID = "session_sweep"


def build_sweep_scheduler(
    maintenance: SessionMaintenance,
    session_factory: Callable[[], AsyncSession],
    interval_seconds: int,
) -> AsyncIOScheduler:
    """Scheduler with the sweep job registered. Caller starts it."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        maintenance.sweep,
        IntervalTrigger(seconds=interval_seconds),
        args=[session_factory],
        id=SWEEP_JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    return scheduler
