"""User ORM — identity keyed by a unique contact email.

Invariants:
    - email is unique and stored normalized (stripped, lower-cased)
    - name is non-nullable; phone optional
    - Only the User Registry writes this table

Design Decisions:
    - Integer surrogate key: user ids travel through the purchase API as plain ints
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from aurum.db.base import Base


class User(Base):
    """User entity — created lazily on first purchase initiation."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
