"""Session Verifier — verifies the two-layer check and its tagged results.

Invariants:
    - Freshly issued token → Valid; repeat verification identical
    - Token past its exp claim → InvalidSignature(TOKEN_EXPIRED)
    - Row past expires_at with a fresh signature → NotFoundOrExpired(EXPIRED)
    - Forged/unknown/consumed tokens tagged with the right reason
    - Verification never mutates the row
"""

from datetime import timedelta

import pytest
from sqlalchemy import update

from aurum.core.domain_types import VerificationFailure
from aurum.core.errors import (
    InvalidTokenError,
    SessionAlreadyConsumedError,
    SessionExpiredError,
)
from aurum.core.session_token import TokenSigner
from aurum.core.verification import InvalidSignature, NotFoundOrExpired, Valid
from aurum.models.purchase_session import PurchaseSession
from aurum.services import session_store

from tests.services.constants import NOW


async def test_fresh_token_is_valid(test_db, issuer, verifier):
    issued = await issuer.issue(test_db, None, "gold price?")
    result = await verifier.verify(test_db, issued.token)
    assert isinstance(result, Valid)
    assert result.session.id == issued.session_id
    assert result.bound_user is None
    assert result.checked_at == NOW


async def test_repeat_verification_is_identical(test_db, issuer, verifier):
    issued = await issuer.issue(test_db, None, "gold?")
    first = await verifier.verify(test_db, issued.token)
    second = await verifier.verify(test_db, issued.token)
    assert type(first) is type(second)
    assert first.session.id == second.session.id
    assert first.session.is_active and second.session.is_active


async def test_bound_user_is_joined(test_db, issuer, verifier, seed_user):
    issued = await issuer.issue(test_db, seed_user.id, "gold?")
    result = await verifier.verify(test_db, issued.token)
    assert result.bound_user.email == "asha@example.com"


async def test_expired_exactly_at_expiry(test_db, issuer, verifier, clock):
    issued = await issuer.issue(test_db, None, "gold?")
    clock.advance(seconds=3599)
    assert isinstance(await verifier.verify(test_db, issued.token), Valid)

    clock.advance(seconds=1)
    result = await verifier.verify(test_db, issued.token)
    assert isinstance(result, InvalidSignature)
    assert result.reason is VerificationFailure.TOKEN_EXPIRED

    clock.advance(days=2)
    assert isinstance(await verifier.verify(test_db, issued.token), InvalidSignature)


async def test_store_expiry_checked_even_if_signature_is_fresh(test_db, issuer, verifier):
    issued = await issuer.issue(test_db, None, "gold?")
    await test_db.execute(
        update(PurchaseSession)
        .where(PurchaseSession.id == issued.session_id)
        .values(expires_at=NOW),
    )
    await test_db.commit()

    result = await verifier.verify(test_db, issued.token)
    assert isinstance(result, NotFoundOrExpired)
    assert result.reason is VerificationFailure.EXPIRED


async def test_forged_token_is_invalid_signature(test_db, verifier):
    forged, _ = TokenSigner("attacker-secret").sign(NOW)
    result = await verifier.verify(test_db, forged)
    assert isinstance(result, InvalidSignature)
    assert result.reason is VerificationFailure.BAD_SIGNATURE


async def test_garbage_token_is_invalid_signature(test_db, verifier):
    result = await verifier.verify(test_db, "not-a-token")
    assert isinstance(result, InvalidSignature)
    assert result.reason is VerificationFailure.MALFORMED


async def test_signed_but_unknown_token(test_db, signer, verifier):
    token, _ = signer.sign(NOW)
    result = await verifier.verify(test_db, token)
    assert isinstance(result, NotFoundOrExpired)
    assert result.reason is VerificationFailure.UNKNOWN


async def test_consumed_session_reported(test_db, issuer, verifier, seed_user):
    issued = await issuer.issue(test_db, None, "gold?")
    assert await session_store.consume(test_db, issued.session_id, seed_user.id, NOW)
    await test_db.commit()

    result = await verifier.verify(test_db, issued.token)
    assert isinstance(result, NotFoundOrExpired)
    assert result.reason is VerificationFailure.CONSUMED


async def test_verify_does_not_mutate(test_db, issuer, verifier):
    issued = await issuer.issue(test_db, None, "gold?")
    await verifier.verify(test_db, issued.token)
    record = await session_store.get_session(test_db, issued.session_id)
    assert record.is_active is True
    assert record.consumed_at is None
    assert record.user_id is None


@pytest.mark.parametrize("mutate, error", [
    (lambda token: "x" + token, InvalidTokenError),
    (lambda token: token[:-2], InvalidTokenError),
])
async def test_require_valid_raises_auth_invalid(test_db, issuer, verifier, mutate, error):
    issued = await issuer.issue(test_db, None, "gold?")
    with pytest.raises(error):
        await verifier.require_valid(test_db, mutate(issued.token))


async def test_require_valid_raises_expired_and_consumed(
    test_db, issuer, verifier, clock, seed_user,
):
    consumed = await issuer.issue(test_db, None, "gold?")
    await session_store.consume(test_db, consumed.session_id, seed_user.id, NOW)
    await test_db.commit()
    with pytest.raises(SessionAlreadyConsumedError):
        await verifier.require_valid(test_db, consumed.token)

    expiring = await issuer.issue(test_db, None, "gold?")
    await test_db.execute(
        update(PurchaseSession)
        .where(PurchaseSession.id == expiring.session_id)
        .values(expires_at=NOW),
    )
    await test_db.commit()
    with pytest.raises(SessionExpiredError):
        await verifier.require_valid(test_db, expiring.token)


async def test_require_valid_rejects_token_past_exp_as_invalid(
    test_db, issuer, verifier, clock,
):
    issued = await issuer.issue(test_db, None, "gold?")
    clock.advance(hours=1)
    with pytest.raises(InvalidTokenError):
        await verifier.require_valid(test_db, issued.token)


async def test_token_one_second_before_expiry_still_valid(test_db, issuer, verifier, clock):
    issued = await issuer.issue(test_db, None, "gold?")
    clock.advance(seconds=3599)
    assert (await verifier.require_valid(test_db, issued.token)).checked_at == NOW + timedelta(seconds=3599)
