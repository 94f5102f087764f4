"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId, SessionId wrap integer surrogate keys
    - Grams and money are Decimal, never float
    - All valid states encoded as Enums, no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to DB check constraints without custom encoders
"""

from decimal import Decimal
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", int)
SessionId = NewType("SessionId", int)
SessionToken = NewType("SessionToken", str)
TransactionRef = NewType("TransactionRef", str)


# ─── Value Types ─────────────────────────────────────────────────

Grams = NewType("Grams", Decimal)          # 0.1–1000, 4 decimal places
Money = NewType("Money", Decimal)          # 2 decimal places, configured currency


# ─── Enums ───────────────────────────────────────────────────────

class TransactionStatus(str, Enum):
    """Transaction states — maps to DB `status` check constraint."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AnalyticsEventType(str, Enum):
    """Audit event tags written to analytics_events."""
    QUERY = "query"
    PURCHASE_INTENT = "purchase_intent"
    PURCHASE_COMPLETED = "purchase_completed"


class VerificationFailure(str, Enum):
    """Why a credential failed verification — drives error mapping and logging."""
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    TOKEN_EXPIRED = "token_expired"
    UNKNOWN = "unknown"
    EXPIRED = "expired"
    CONSUMED = "consumed"


class AnalyticsPeriod(str, Enum):
    """Look-back windows accepted by purchase analytics."""
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"

    @property
    def hours(self) -> int:
        return {"24h": 24, "7d": 24 * 7, "30d": 24 * 30}[self.value]
