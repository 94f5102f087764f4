"""PurchaseSession ORM — the stored half of a session credential.

Invariants:
    - token is unique; it is the signed string handed to the client
    - usable only while now < expires_at AND is_active
    - user_id is bound at most once (issuance or purchase initiation)
    - is_active flips to false once: purchase (consumed_at set) or expiry sweep
    - rows are never deleted by the protocol itself

Design Decisions:
    - consumed_at distinguishes "spent by a purchase" from "swept as expired"
      without a separate status column
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from aurum.db.base import Base


class PurchaseSession(Base):
    """Credential row — single source of truth for credential validity."""
    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True,
    )
    intent_confirmed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    user_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    consumed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    __table_args__ = (
        Index("ix_sessions_expires_at", "expires_at"),
    )
