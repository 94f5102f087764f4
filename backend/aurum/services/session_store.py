"""Session Store — persistence of credential rows and their lifecycle transitions.

Invariants:
    - Rows are looked up by token (unique) with populate_existing, so a caller
      holding an older copy in its identity map always sees committed state
    - bind_user and consume are guarded (compare-and-swap) UPDATEs; callers learn
      from the rowcount whether the transition happened
    - Neither ever overwrites a user_id bound to someone else
    - consume sets is_active=false and consumed_at in one statement; it never
      commits (the Transaction Processor owns the atomic unit)
    - expire_stale / purge_expired are maintenance operations, not part of the
      purchase protocol

Design Decisions:
    - Functions over a repository class: each takes the caller's AsyncSession so
      the caller decides the unit of work
    - synchronize_session=False on bulk UPDATEs: callers re-read rows they need
"""

import logging
from datetime import datetime

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.models.purchase_session import PurchaseSession
from aurum.models.transaction import Transaction

logger = logging.getLogger(__name__)


async def create_session(
    db: AsyncSession,
    token: str,
    created_at: datetime,
    expires_at: datetime,
    user_id: int | None = None,
    user_message: str | None = None,
) -> PurchaseSession:
    """Stage a new active session row. Caller commits."""
    record = PurchaseSession(
        token=token,
        user_id=user_id,
        intent_confirmed=True,
        user_message=user_message,
        created_at=created_at,
        expires_at=expires_at,
        is_active=True,
    )
    db.add(record)
    await db.flush()
    return record


async def find_by_token(db: AsyncSession, token: str) -> PurchaseSession | None:
    result = await db.execute(
        select(PurchaseSession)
        .where(PurchaseSession.token == token)
        .execution_options(populate_existing=True),
    )
    return result.scalar_one_or_none()


async def get_session(db: AsyncSession, session_id: int) -> PurchaseSession | None:
    result = await db.execute(
        select(PurchaseSession)
        .where(PurchaseSession.id == session_id)
        .execution_options(populate_existing=True),
    )
    return result.scalar_one_or_none()


async def bind_user(
    db: AsyncSession, session_id: int, user_id: int, now: datetime,
) -> bool:
    """Attach a user to a live session unless it is bound to someone else.

    Returns True when the session is (now) bound to user_id. Caller commits.
    """
    result = await db.execute(
        update(PurchaseSession)
        .where(
            PurchaseSession.id == session_id,
            PurchaseSession.is_active.is_(True),
            PurchaseSession.expires_at > now,
            or_(
                PurchaseSession.user_id.is_(None),
                PurchaseSession.user_id == user_id,
            ),
        )
        .values(user_id=user_id)
        .execution_options(synchronize_session=False),
    )
    return result.rowcount == 1


async def consume(
    db: AsyncSession, session_id: int, user_id: int, now: datetime,
) -> bool:
    """Flip a live session to inactive for user_id.

    Returns False if another caller won or the row is bound to someone else.
    """
    result = await db.execute(
        update(PurchaseSession)
        .where(
            PurchaseSession.id == session_id,
            PurchaseSession.is_active.is_(True),
            PurchaseSession.expires_at > now,
            or_(
                PurchaseSession.user_id.is_(None),
                PurchaseSession.user_id == user_id,
            ),
        )
        .values(is_active=False, consumed_at=now, user_id=user_id)
        .execution_options(synchronize_session=False),
    )
    return result.rowcount == 1


async def count_active(db: AsyncSession, now: datetime) -> int:
    result = await db.execute(
        select(func.count()).select_from(PurchaseSession).where(
            PurchaseSession.is_active.is_(True),
            PurchaseSession.expires_at > now,
        ),
    )
    return result.scalar_one()


async def expire_stale(db: AsyncSession, now: datetime) -> int:
    """Deactivate every active session whose expiry has passed. Commits."""
    result = await db.execute(
        update(PurchaseSession)
        .where(
            PurchaseSession.is_active.is_(True),
            PurchaseSession.expires_at <= now,
        )
        .values(is_active=False)
        .execution_options(synchronize_session=False),
    )
    await db.commit()
    if result.rowcount:
        logger.info(f"Expired {result.rowcount} stale sessions")
    return result.rowcount


async def purge_expired(db: AsyncSession, before: datetime) -> int:
    """Delete expired, never-consumed sessions older than `before`. Commits.

    Sessions referenced by a transaction are kept as the purchase audit trail.
    """
    referenced = select(Transaction.session_id)
    result = await db.execute(
        delete(PurchaseSession)
        .where(
            and_(
                PurchaseSession.expires_at < before,
                PurchaseSession.consumed_at.is_(None),
                PurchaseSession.id.not_in(referenced),
            ),
        )
        .execution_options(synchronize_session=False),
    )
    await db.commit()
    if result.rowcount:
        logger.info(f"Purged {result.rowcount} expired sessions")
    return result.rowcount
