"""Session Verifier — two-layer credential check (signature, then store).

Invariants:
    - Read-only: verification never writes, so repeated calls agree
    - 'now' read once from the store clock per verification
    - Any signature-level rejection, a token past its exp claim included, is
      InvalidSignature and never reaches the store
    - Tokens never appear in log records; only session ids and reasons

Design Decisions:
    - verify() returns a tagged result; require_valid() is the raising variant
      used by purchase initiation and the transaction processor
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from aurum.core.domain_types import VerificationFailure
from aurum.core.repository_protocols import Clock
from aurum.core.session_token import TokenRejected, TokenSigner
from aurum.core.verification import (
    InvalidSignature,
    NotFoundOrExpired,
    Valid,
    VerificationResult,
    evaluate_stored_session,
    raise_for_result,
)
from aurum.models.user import User
from aurum.services import session_store

logger = logging.getLogger(__name__)


class SessionVerifier:
    def __init__(self, signer: TokenSigner, clock: Clock):
        self.signer = signer
        self.clock = clock

    async def verify(self, db: AsyncSession, token: str) -> VerificationResult:
        now = await self.clock.now(db)

        try:
            self.signer.decode(token, now)
        except TokenRejected as e:
            logger.info("Token rejected", extra={"reason": e.reason.value})
            return InvalidSignature(e.reason, e.detail)

        record = await session_store.find_by_token(db, token)
        if record is None:
            logger.info(
                "Token not in session store",
                extra={"reason": VerificationFailure.UNKNOWN.value},
            )
            return NotFoundOrExpired(VerificationFailure.UNKNOWN, "session not found")

        failure = evaluate_stored_session(
            record.is_active, record.expires_at, now, record.consumed_at,
        )
        if failure is not None:
            logger.info(
                "Stored session unusable",
                extra={"session_id": record.id, "reason": failure.value},
            )
            return NotFoundOrExpired(failure, f"session {failure.value}")

        bound_user = None
        if record.user_id is not None:
            bound_user = await db.get(User, record.user_id, populate_existing=True)
        return Valid(session=record, bound_user=bound_user, checked_at=now)

    async def require_valid(self, db: AsyncSession, token: str) -> Valid:
        """Verify and raise the mapped AurumError on any failure."""
        return raise_for_result(await self.verify(db, token))
