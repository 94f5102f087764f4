"""Session Issuer — mints a signed credential and persists its store row.

Invariants:
    - The token is returned only after its row is committed; a failed write
      raises PersistenceError and the token is discarded
    - iat comes from the store clock; expires_at on the row equals the exp claim
    - Never consults the intent classifier
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.core.errors import PersistenceError
from aurum.core.repository_protocols import Clock
from aurum.core.session_token import TokenSigner
from aurum.services import session_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    token: str
    session_id: int
    user_id: int | None
    expires_at: datetime


class SessionIssuer:
    """Issue(userId?, originatingMessage) -> token backed by a stored session."""

    def __init__(self, signer: TokenSigner, clock: Clock):
        self.signer = signer
        self.clock = clock

    async def issue(
        self,
        db: AsyncSession,
        user_id: int | None = None,
        originating_message: str | None = None,
    ) -> IssuedSession:
        try:
            now = await self.clock.now(db)
            token, claims = self.signer.sign(now, user_id=user_id)
            record = await session_store.create_session(
                db,
                token=token,
                created_at=claims.issued_at,
                expires_at=claims.expires_at,
                user_id=user_id,
                user_message=originating_message,
            )
            session_id = record.id
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Session issuance failed: {e.__class__.__name__}",
                extra={"user_id": user_id},
            )
            raise PersistenceError("session could not be stored", "insert")

        logger.info(
            "Session issued",
            extra={"session_id": session_id, "user_id": user_id},
        )
        return IssuedSession(
            token=token,
            session_id=session_id,
            user_id=user_id,
            expires_at=claims.expires_at,
        )
