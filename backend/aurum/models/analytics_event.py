"""AnalyticsEvent ORM — append-only audit trail.

Invariants:
    - Never updated or deleted by the application
    - purchase_completed events are written in the same atomic unit as their Transaction
    - Decimal values in metadata are stored as strings (exact)

Design Decisions:
    - Attribute named event_metadata: `metadata` is reserved on declarative classes
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from aurum.db.base import Base


class AnalyticsEvent(Base):
    """Audit/analytics event."""
    __tablename__ = "analytics_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True,
    )
    session_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True,
    )
    event_metadata: Mapped[dict | None] = mapped_column(
        "metadata", JSON, nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_analytics_events_event_type", "event_type"),
    )
