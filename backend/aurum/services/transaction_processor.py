"""Transaction Processor — commits a purchase and consumes its credential atomically.

Invariants:
    - total is always quantity * unit_price (core/pricing.py), never caller input
    - The price is read exactly once, before any write; the same value is stored
      and returned on the receipt
    - Consume-session, insert-transaction and insert-analytics-event share ONE
      commit; any failure rolls all three back
    - The consume UPDATE is guarded on is_active, expires_at > now and the row
      being unbound or bound to the buyer; a zero rowcount means another purchase
      or a rebinding won the race
    - transactions.session_id is unique: a second Transaction for the same
      credential is impossible even if the guard were bypassed
    - No silent retries

Design Decisions:
    - A caller-supplied Valid result is reused only for the same token; it is
      never trusted on its own, since the guarded UPDATE re-checks the store
    - ORM objects are not read after a rollback (they are expired); ids are
      captured before the atomic unit starts
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.core.domain_types import AnalyticsEventType, TransactionStatus, VerificationFailure
from aurum.core.errors import (
    AurumError,
    PersistenceError,
    SessionAlreadyConsumedError,
    SessionBindingConflictError,
    SessionExpiredError,
)
from aurum.core.pricing import (
    compute_total,
    new_transaction_ref,
    validate_payment_method,
    validate_quantity,
)
from aurum.core.receipts import PurchaseReceipt
from aurum.core.repository_protocols import Clock, PriceOracle
from aurum.core.verification import Valid, evaluate_stored_session
from aurum.models.analytics_event import AnalyticsEvent
from aurum.models.transaction import Transaction
from aurum.services import session_store
from aurum.services.session_verifier import SessionVerifier
from aurum.services.user_registry import get_user

logger = logging.getLogger(__name__)


class TransactionProcessor:
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

    async def purchase(
        self,
        db: AsyncSession,
        user_id: int,
        quantity: object,
        session_token: str,
        payment_method: str | None = None,
        verified: Valid | None = None,
    ) -> PurchaseReceipt:
        """Purchase(userId, quantity, sessionToken, paymentMethod) -> receipt."""
        grams = validate_quantity(quantity)
        method = validate_payment_method(payment_method)

        if verified is None or verified.token != session_token:
            verified = await self.verifier.require_valid(db, session_token)
        session_id = verified.session.id
        bound_user_id = verified.session.user_id
        if bound_user_id is not None and bound_user_id != user_id:
            logger.warning(
                "Session bound to another user",
                extra={"session_id": session_id, "user_id": user_id},
            )
            raise SessionBindingConflictError()

        await get_user(db, user_id)
        unit_price = await self.price_oracle.current_price(self.currency)
        total = compute_total(grams, unit_price)

        receipt = await self._commit_purchase(
            db, session_id, user_id, grams, unit_price, total, method,
        )
        logger.info(
            "Purchase committed",
            extra={
                "user_id": user_id,
                "session_id": session_id,
                "transaction_ref": receipt.transaction_ref,
            },
        )
        return receipt

    async def _commit_purchase(
        self,
        db: AsyncSession,
        session_id: int,
        user_id: int,
        grams: Decimal,
        unit_price: Decimal,
        total: Decimal,
        method: str,
    ) -> PurchaseReceipt:
        try:
            now = await self.clock.now(db)
            if not await session_store.consume(db, session_id, user_id, now):
                await db.rollback()
                raise await self._consume_failure(db, session_id, user_id, now)

            reference = new_transaction_ref(now)
            txn = Transaction(
                reference=reference,
                user_id=user_id,
                session_id=session_id,
                quantity=grams,
                unit_price=unit_price,
                total=total,
                currency=self.currency,
                status=TransactionStatus.COMPLETED.value,
                payment_method=method,
                created_at=now,
                updated_at=now,
            )
            db.add(txn)
            db.add(AnalyticsEvent(
                event_type=AnalyticsEventType.PURCHASE_COMPLETED.value,
                user_id=user_id,
                session_id=session_id,
                event_metadata={
                    "transaction_ref": reference,
                    "gold_amount": str(grams),
                    "price_per_gram": str(unit_price),
                    "total_amount": str(total),
                    "currency": self.currency,
                    "payment_method": method,
                },
                created_at=now,
            ))
            await db.flush()
            transaction_id = txn.id
            await db.commit()
        except AurumError:
            raise
        except IntegrityError:
            await db.rollback()
            logger.warning(
                "Duplicate transaction for session",
                extra={"session_id": session_id, "user_id": user_id},
            )
            raise SessionAlreadyConsumedError()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Purchase rolled back: {e.__class__.__name__}",
                extra={"session_id": session_id, "user_id": user_id},
            )
            raise PersistenceError("purchase could not be committed", "commit")

        return PurchaseReceipt(
            transaction_id=transaction_id,
            transaction_ref=reference,
            user_id=user_id,
            quantity=grams,
            unit_price=unit_price,
            total=total,
            currency=self.currency,
            status=TransactionStatus.COMPLETED.value,
            payment_method=method,
            created_at=now,
        )

    async def _consume_failure(
        self, db: AsyncSession, session_id: int, user_id: int, now: datetime,
    ) -> AurumError:
        """Explain why the guarded consume matched no row."""
        record = await session_store.get_session(db, session_id)
        if record is None:
            return SessionExpiredError()
        failure = evaluate_stored_session(
            record.is_active, record.expires_at, now, record.consumed_at,
        )
        logger.warning(
            "Session consume lost",
            extra={"session_id": session_id, "reason": failure.value if failure else None},
        )
        if failure is VerificationFailure.CONSUMED:
            return SessionAlreadyConsumedError()
        if failure is None and record.user_id not in (None, user_id):
            return SessionBindingConflictError()
        return SessionExpiredError()
