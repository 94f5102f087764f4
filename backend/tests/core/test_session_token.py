"""Session Token — verifies HS256 compact-token signing and decoding.

Invariants:
    - A freshly signed token decodes to the same claims
    - exp = iat + ttl; decoding at exactly exp is TOKEN_EXPIRED
    - Any byte changed in header, payload or signature is rejected
    - Previous secrets verify; unknown secrets do not
"""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest

from aurum.core.domain_types import VerificationFailure
from aurum.core.session_token import TokenRejected, TokenSigner, create_canonical_json

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def _segment(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _reason(signer, token, now=NOW):
    with pytest.raises(TokenRejected) as exc:
        signer.decode(token, now)
    return exc.value.reason


def test_sign_then_decode_returns_claims():
    signer = TokenSigner("secret", ttl_seconds=3600)
    token, claims = signer.sign(NOW, user_id=7)
    decoded = signer.decode(token, NOW)
    assert decoded == claims
    assert decoded.user_id == 7
    assert decoded.expires_at - decoded.issued_at == timedelta(hours=1)


def test_token_has_three_base64url_segments_without_padding():
    token, _ = TokenSigner("secret").sign(NOW)
    parts = token.split(".")
    assert len(parts) == 3
    assert all("=" not in p for p in parts)


def test_iat_truncated_to_whole_seconds():
    signer = TokenSigner("secret", ttl_seconds=60)
    _, claims = signer.sign(NOW.replace(microsecond=750_000))
    assert claims.issued_at == NOW
    assert claims.expires_at == NOW + timedelta(seconds=60)


def test_each_token_gets_a_distinct_session_key():
    signer = TokenSigner("secret")
    first, _ = signer.sign(NOW)
    second, _ = signer.sign(NOW)
    assert first != second


def test_expired_exactly_at_exp():
    signer = TokenSigner("secret", ttl_seconds=3600)
    token, claims = signer.sign(NOW)
    assert signer.decode(token, claims.expires_at - timedelta(seconds=1))
    assert _reason(signer, token, claims.expires_at) is VerificationFailure.TOKEN_EXPIRED
    assert _reason(signer, token, claims.expires_at + timedelta(days=1)) is VerificationFailure.TOKEN_EXPIRED


def test_tampered_payload_is_bad_signature():
    signer = TokenSigner("secret")
    token, _ = signer.sign(NOW, user_id=1)
    header, _, signature = token.split(".")
    forged = _segment({"sid": "x", "uid": 2, "iat": 0, "exp": 10**10})
    assert _reason(signer, f"{header}.{forged}.{signature}") is VerificationFailure.BAD_SIGNATURE


def test_wrong_secret_is_bad_signature():
    token, _ = TokenSigner("secret").sign(NOW)
    assert _reason(TokenSigner("other"), token) is VerificationFailure.BAD_SIGNATURE


def test_previous_secret_still_verifies():
    token, claims = TokenSigner("old").sign(NOW, user_id=3)
    rotated = TokenSigner("new", previous_secrets=["old"])
    assert rotated.decode(token, NOW) == claims


@pytest.mark.parametrize("token", [
    "", "abc", "a.b", "a.b.c.d", "a..c", "ünïcode.x.y", None, 42,
])
def test_malformed_tokens(token):
    assert _reason(TokenSigner("secret"), token) in {
        VerificationFailure.MALFORMED, VerificationFailure.BAD_SIGNATURE,
    }


def test_structurally_broken_token_is_malformed():
    assert _reason(TokenSigner("secret"), "only-one-segment") is VerificationFailure.MALFORMED


def test_signed_token_with_wrong_algorithm_is_malformed():
    signer = TokenSigner("secret")
    header = _segment({"alg": "none", "typ": "JWT"})
    payload = _segment({"sid": "abc", "uid": None, "iat": 1, "exp": 2})
    signing_input = f"{header}.{payload}"
    signature = base64.urlsafe_b64encode(
        signer._digest("secret", signing_input),
    ).rstrip(b"=").decode()
    assert _reason(signer, f"{signing_input}.{signature}") is VerificationFailure.MALFORMED


def test_rejects_empty_secret_and_bad_ttl():
    with pytest.raises(ValueError):
        TokenSigner("")
    with pytest.raises(ValueError):
        TokenSigner("secret", ttl_seconds=0)


def test_canonical_json_is_sorted_and_compact():
    assert create_canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'
