"""Purchase Initiation — verify the credential, register the buyer, bind, quote.

Invariants:
    - Credential checked with require_valid before any write
    - The session is bound to at most one user; binding to a second user is a
      SessionBindingConflictError and leaves the row untouched
    - The quote is priced from a single oracle read
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.core.domain_types import VerificationFailure
from aurum.core.errors import (
    PersistenceError,
    SessionBindingConflictError,
    SessionExpiredError,
)
from aurum.core.purchase_options import custom_option, priced_options
from aurum.core.repository_protocols import Clock, PriceOracle
from aurum.core.verification import (
    NotFoundOrExpired,
    as_utc,
    evaluate_stored_session,
    raise_for_result,
)
from aurum.services import session_store
from aurum.services.session_verifier import SessionVerifier
from aurum.services.user_registry import get_or_create

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseQuote:
    user_id: int
    name: str
    email: str
    phone: str | None
    price_per_gram: Decimal
    currency: str
    session_valid_until: datetime

    def to_dict(self) -> dict:
        return {
            "user": {
                "id": self.user_id,
                "name": self.name,
                "email": self.email,
                "phone": self.phone,
            },
            "purchase_options": priced_options(self.price_per_gram, self.currency),
            "custom_option": custom_option(self.price_per_gram, self.currency),
            "price_per_gram": str(self.price_per_gram),
            "currency": self.currency,
            "session_valid_until": self.session_valid_until.isoformat(),
        }


class PurchaseInitiation:
    def __init__(
        self,
        verifier: SessionVerifier,
        price_oracle: PriceOracle,
        clock: Clock,
        currency: str = "INR",
    ):
        self.verifier = verifier
        self.price_oracle = price_oracle
        self.clock = clock
        self.currency = currency

    async def initiate(
        self,
        db: AsyncSession,
        session_token: str,
        email: str,
        name: str | None = None,
        phone: str | None = None,
    ) -> PurchaseQuote:
        verified = await self.verifier.require_valid(db, session_token)
        session_id = verified.session.id
        bound_user_id = verified.session.user_id
        valid_until = as_utc(verified.session.expires_at)

        user = await get_or_create(db, email, name, phone)
        user_id = user.id
        if bound_user_id is not None and bound_user_id != user_id:
            logger.warning(
                "Session bound to another user",
                extra={"session_id": session_id, "user_id": user_id},
            )
            raise SessionBindingConflictError()

        await self._bind(db, session_id, user_id)
        price = await self.price_oracle.current_price(self.currency)
        logger.info(
            "Purchase initiated",
            extra={"session_id": session_id, "user_id": user_id},
        )
        return PurchaseQuote(
            user_id=user_id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            price_per_gram=price,
            currency=self.currency,
            session_valid_until=valid_until,
        )

    async def _bind(self, db: AsyncSession, session_id: int, user_id: int) -> None:
        try:
            now = await self.clock.now(db)
            bound = await session_store.bind_user(db, session_id, user_id, now)
            if bound:
                await db.commit()
                return
            await db.rollback()
            record = await session_store.get_session(db, session_id)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Session binding failed: {e.__class__.__name__}",
                extra={"session_id": session_id},
            )
            raise PersistenceError("session could not be bound", "update")

        if record is None:
            raise SessionExpiredError()
        if record.user_id is not None and record.user_id != user_id:
            raise SessionBindingConflictError()
        failure = evaluate_stored_session(
            record.is_active, record.expires_at, now, record.consumed_at,
        )
        raise_for_result(NotFoundOrExpired(failure or VerificationFailure.EXPIRED))
