"""Advisory Flow — chat orchestration on the advisory service.

Invariants:
    - Unknown user_id is a UserNotFoundError, checked before the classifier runs
    - A credential is issued only for relevant messages, and only through
      SessionIssuer (the classifier never issues)
    - Every exchange is stored in conversations, linked to the issued session
    - History handed to the classifier is the last N exchanges, oldest first

Design Decisions:
    - Conversation + analytics rows are written after issuance in a separate
      unit: losing the log row must not revoke a committed credential, but the
      failure still surfaces as PersistenceError
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.core.advisory_content import (
    NEXT_STEP,
    SUGGESTIONS,
    pick_gold_fact,
    purchase_nudge,
)
from aurum.core.classification import Classification
from aurum.core.domain_types import AnalyticsEventType
from aurum.core.errors import InputValidationError, PersistenceError
from aurum.core.purchase_options import format_money, priced_options
from aurum.core.repository_protocols import Clock, IntentClassifier, PriceOracle
from aurum.core.verification import as_utc
from aurum.models.analytics_event import AnalyticsEvent
from aurum.models.conversation import Conversation
from aurum.models.purchase_session import PurchaseSession
from aurum.services import session_store
from aurum.services.session_issuer import IssuedSession, SessionIssuer
from aurum.services.user_registry import get_user

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000


@dataclass
class ChatReply:
    classification: Classification
    price: Decimal
    currency: str
    checked_at: datetime
    issued: IssuedSession | None = None
    gold_fact: str = ""
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        c = self.classification
        body = {
            "is_gold_related": c.is_relevant,
            "confidence": c.confidence,
            "intent_summary": c.summary,
            "response": c.reply_text,
            "degraded": c.degraded,
        }
        if self.issued is None:
            body["educational_info"] = {
                "did_you_know": self.gold_fact,
                "current_gold_price": f"{format_money(self.currency, self.price)} per gram",
            }
            body["suggestions"] = self.suggestions
            return body
        body.update({
            "gold_fact": self.gold_fact,
            "purchase_nudge": c.recommendation or purchase_nudge(self.currency),
            "session_token": self.issued.token,
            "session_expires_at": self.issued.expires_at.isoformat(),
            "current_price": {
                "amount": str(self.price),
                "currency": self.currency,
                "per_unit": "gram",
                "last_updated": self.checked_at.isoformat(),
            },
            "investment_options": priced_options(self.price, self.currency),
            "next_step": NEXT_STEP,
        })
        return body


class AdvisoryFlow:
    def __init__(
        self,
        classifier: IntentClassifier,
        issuer: SessionIssuer,
        price_oracle: PriceOracle,
        clock: Clock,
        currency: str = "INR",
        history_limit: int = 5,
        model_name: str | None = None,
        rng: random.Random | None = None,
    ):
        self.classifier = classifier
        self.issuer = issuer
        self.price_oracle = price_oracle
        self.clock = clock
        self.currency = currency
        self.history_limit = history_limit
        self.model_name = model_name
        self.rng = rng

    async def handle_message(
        self, db: AsyncSession, message: str, user_id: int | None = None,
    ) -> ChatReply:
        text = (message or "").strip()
        if not text or len(text) > MAX_MESSAGE_LENGTH:
            raise InputValidationError(
                f"Message must be 1-{MAX_MESSAGE_LENGTH} characters", field="message",
            )
        if user_id is not None:
            await get_user(db, user_id)

        history = await self.classifier_history(db, user_id)
        classification = await self.classifier.classify(text, history)
        price = await self.price_oracle.current_price(self.currency)

        issued = None
        if classification.is_relevant:
            issued = await self.issuer.issue(db, user_id, text)

        checked_at = await self.clock.now(db)
        await self._record_exchange(db, text, classification, user_id, issued, checked_at)
        return ChatReply(
            classification=classification,
            price=price,
            currency=self.currency,
            checked_at=checked_at,
            issued=issued,
            gold_fact=pick_gold_fact(self.rng),
            suggestions=[] if issued else list(SUGGESTIONS),
        )

    async def classifier_history(
        self, db: AsyncSession, user_id: int | None,
    ) -> list[dict[str, str]]:
        if user_id is None:
            return []
        result = await db.execute(
            select(Conversation.user_message, Conversation.ai_response)
            .where(Conversation.user_id == user_id)
            .order_by(Conversation.created_at.desc(), Conversation.id.desc())
            .limit(self.history_limit),
        )
        turns = []
        for user_message, ai_response in reversed(result.all()):
            turns.append({"role": "user", "content": user_message})
            turns.append({"role": "assistant", "content": ai_response})
        return turns

    async def history(self, db: AsyncSession, user_id: int, limit: int = 10) -> list[dict]:
        await get_user(db, user_id)
        result = await db.execute(
            select(Conversation)
            .where(Conversation.user_id == user_id)
            .order_by(Conversation.created_at.desc(), Conversation.id.desc())
            .limit(limit),
        )
        return [
            {
                "user_message": row.user_message,
                "ai_response": row.ai_response,
                "is_gold_related": row.is_relevant,
                "confidence": row.confidence,
                "created_at": as_utc(row.created_at).isoformat(),
            }
            for row in result.scalars()
        ]

    async def analytics(self, db: AsyncSession) -> dict:
        """Last-24-hour conversation stats plus live session count."""
        now = await self.clock.now(db)
        since = now - timedelta(hours=24)
        recent = Conversation.created_at >= since
        relevant_flag = Conversation.is_relevant.is_(True)
        result = await db.execute(
            select(
                func.count(Conversation.id),
                func.coalesce(func.sum(case((relevant_flag, 1), else_=0)), 0),
                func.count(func.distinct(Conversation.user_id)),
                func.count(func.distinct(case((relevant_flag, Conversation.user_id)))),
            ).where(recent),
        )
        total, relevant, unique_users, interested_users = result.one()
        issued = await db.execute(
            select(func.count(PurchaseSession.id)).where(PurchaseSession.created_at >= since),
        )
        active = await session_store.count_active(db, now)
        rate = (Decimal(relevant) * 100 / Decimal(total)) if total else Decimal(0)
        return {
            "last_24_hours": {
                "total_conversations": total,
                "gold_related_conversations": relevant,
                "unique_users": unique_users,
                "interested_users": interested_users,
                "sessions_issued": issued.scalar_one(),
            },
            "active_sessions": active,
            "conversion_rate": f"{rate:.2f}%",
        }

    async def _record_exchange(
        self,
        db: AsyncSession,
        text: str,
        classification: Classification,
        user_id: int | None,
        issued: IssuedSession | None,
        created_at: datetime,
    ) -> None:
        session_id = issued.session_id if issued else None
        event_type = (
            AnalyticsEventType.PURCHASE_INTENT if issued else AnalyticsEventType.QUERY
        )
        db.add(Conversation(
            user_id=user_id,
            session_id=session_id,
            user_message=text,
            ai_response=classification.reply_text,
            is_relevant=classification.is_relevant,
            confidence=classification.confidence,
            model=None if classification.degraded else self.model_name,
            created_at=created_at,
        ))
        db.add(AnalyticsEvent(
            event_type=event_type.value,
            user_id=user_id,
            session_id=session_id,
            event_metadata={
                "confidence": str(classification.confidence),
                "degraded": classification.degraded,
            },
            created_at=created_at,
        ))
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                f"Conversation log failed: {e.__class__.__name__}",
                extra={"user_id": user_id, "session_id": session_id},
            )
            raise PersistenceError("conversation could not be stored", "insert")
