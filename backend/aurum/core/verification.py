"""Session Verification Results — tagged outcome of the two-layer credential check.

Invariants:
    - A stored session is usable only while now < expires_at AND is_active
    - At exactly expires_at the session is expired
    - Results are tagged (Valid | InvalidSignature | NotFoundOrExpired), never bare bools
    - evaluate_stored_session and raise_for_result are PURE

Design Decisions:
    - Signature-level expiry is tagged InvalidSignature(TOKEN_EXPIRED) and maps to
      AUTH_INVALID; store-level expiry (expires_at, sweep) maps to AUTH_EXPIRED
    - CONSUMED maps to a Conflict error so a replayed confirmation is reported as
      "already used" rather than as a generic auth failure
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Union

from aurum.core.domain_types import VerificationFailure
from aurum.core.errors import (
    InvalidTokenError,
    SessionAlreadyConsumedError,
    SessionExpiredError,
)


@dataclass(frozen=True)
class Valid:
    session: Any
    bound_user: Any | None
    checked_at: datetime

    @property
    def token(self) -> str:
        return self.session.token


@dataclass(frozen=True)
class InvalidSignature:
    reason: VerificationFailure
    detail: str = ""


@dataclass(frozen=True)
class NotFoundOrExpired:
    reason: VerificationFailure
    detail: str = ""


VerificationResult = Union[Valid, InvalidSignature, NotFoundOrExpired]


def as_utc(moment: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite returns them naive)."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def evaluate_stored_session(
    is_active: bool, expires_at: datetime, now: datetime,
    consumed_at: datetime | None = None,
) -> VerificationFailure | None:
    """Store-layer check. Returns the failure reason, or None if usable.

    An inactive row with consumed_at set was spent by a purchase; one without it
    was deactivated by the expiry sweep.
    """
    if not is_active:
        if consumed_at is not None:
            return VerificationFailure.CONSUMED
        return VerificationFailure.EXPIRED
    if as_utc(expires_at) <= as_utc(now):
        return VerificationFailure.EXPIRED
    return None


def raise_for_result(result: VerificationResult) -> Valid:
    """Map a tagged result to the error taxonomy. Returns the Valid result unchanged."""
    if isinstance(result, Valid):
        return result
    if isinstance(result, InvalidSignature):
        raise InvalidTokenError()
    if result.reason is VerificationFailure.CONSUMED:
        raise SessionAlreadyConsumedError()
    raise SessionExpiredError()
