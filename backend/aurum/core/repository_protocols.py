"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - Price, clock and classification are reached only through these Protocols,
      so each can be swapped for a deterministic fake in tests

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: implementations do IO; core functions that consume their
      results stay synchronous
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

from aurum.core.classification import Classification

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class SessionRecordLike(Protocol):
    """Structural contract for a stored credential row."""
    id: int
    token: str
    user_id: int | None
    expires_at: datetime
    is_active: bool


class PriceOracle(Protocol):
    """Latest price per gram. Never raises; degrades to a configured default."""
    async def current_price(self, currency: str | None = None) -> Decimal: ...


class Clock(Protocol):
    """Authoritative 'now' for expiry decisions (the store's clock in production)."""
    async def now(self, db: "AsyncSession") -> datetime: ...


class IntentClassifier(Protocol):
    """Opaque text classification oracle consumed by the advisory flow."""
    async def classify(
        self, message: str, history: list[dict[str, str]],
    ) -> Classification: ...
