"""Session Token Signing — HMAC-SHA256 compact tokens relayed between the two services.

Invariants:
    - Token shape is header.payload.signature, each part base64url without padding
    - Payload is canonical JSON (sorted keys, no whitespace) so signing is deterministic
    - exp = iat + ttl, both whole seconds; a token is expired at exactly exp
    - Verification uses constant-time comparison and tries the current secret first,
      then each previous secret (key rotation)
    - Pure: callers pass issued_at/now; nothing here reads a clock

Design Decisions:
    - JWT-compatible HS256 layout: any JWT tooling can inspect an issued token,
      but the protocol never depends on a third-party decoder
    - Secret injected through TokenSigner, not read from settings, so tests and
      environments can run with isolated keys
"""

import base64
import binascii
import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from aurum.core.domain_types import VerificationFailure

ALGORITHM = "HS256"
_HEADER = {"alg": ALGORITHM, "typ": "JWT"}


class TokenRejected(Exception):
    """Token failed the signature layer. `reason` says why."""

    def __init__(self, reason: VerificationFailure, detail: str):
        super().__init__(detail)
        self.reason = reason
        self.detail = detail


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, signature-checked payload."""
    session_key: str
    user_id: int | None
    issued_at: datetime
    expires_at: datetime


def create_canonical_json(data: dict[str, Any]) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _to_epoch(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def _from_epoch(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class TokenSigner:
    """Signs and decodes session tokens with an injected shared secret."""

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 3600,
        previous_secrets: tuple[str, ...] | list[str] = (),
    ):
        if not secret:
            raise ValueError("session signing secret must not be empty")
        if ttl_seconds <= 0:
            raise ValueError("session ttl must be positive")
        self._secret = secret
        self._previous = tuple(s for s in previous_secrets if s)
        self.ttl = timedelta(seconds=ttl_seconds)

    def sign(
        self, issued_at: datetime, user_id: int | None = None,
        session_key: str | None = None,
    ) -> tuple[str, TokenClaims]:
        """Mint a token. Returns (token, claims) with expires_at = issued_at + ttl."""
        iat = _to_epoch(issued_at)
        exp = iat + int(self.ttl.total_seconds())
        payload = {
            "sid": session_key or secrets.token_urlsafe(12),
            "uid": user_id,
            "iat": iat,
            "exp": exp,
        }
        signing_input = (
            f"{_b64encode(create_canonical_json(_HEADER).encode())}."
            f"{_b64encode(create_canonical_json(payload).encode())}"
        )
        signature = _b64encode(self._digest(self._secret, signing_input))
        claims = TokenClaims(
            session_key=payload["sid"],
            user_id=user_id,
            issued_at=_from_epoch(iat),
            expires_at=_from_epoch(exp),
        )
        return f"{signing_input}.{signature}", claims

    def decode(self, token: str, now: datetime) -> TokenClaims:
        """Check structure, signature and exp claim. Raises TokenRejected."""
        parts = token.split(".") if isinstance(token, str) and token.isascii() else []
        if len(parts) != 3 or not all(parts):
            raise TokenRejected(VerificationFailure.MALFORMED, "token must have 3 segments")
        header_seg, payload_seg, signature_seg = parts

        try:
            signature = _b64decode(signature_seg)
        except (binascii.Error, ValueError):
            raise TokenRejected(VerificationFailure.MALFORMED, "signature is not base64url")

        signing_input = f"{header_seg}.{payload_seg}"
        if not self._matches_any_secret(signing_input, signature):
            raise TokenRejected(VerificationFailure.BAD_SIGNATURE, "signature mismatch")

        header = self._load_segment(header_seg)
        if header.get("alg") != ALGORITHM:
            raise TokenRejected(VerificationFailure.MALFORMED, "unsupported algorithm")
        payload = self._load_segment(payload_seg)
        claims = self._claims_from_payload(payload)

        if _to_epoch(now) >= _to_epoch(claims.expires_at):
            raise TokenRejected(VerificationFailure.TOKEN_EXPIRED, "token expired")
        return claims

    def _matches_any_secret(self, signing_input: str, signature: bytes) -> bool:
        for secret in (self._secret, *self._previous):
            if hmac.compare_digest(self._digest(secret, signing_input), signature):
                return True
        return False

    @staticmethod
    def _digest(secret: str, signing_input: str) -> bytes:
        return hmac.new(
            secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256,
        ).digest()

    @staticmethod
    def _load_segment(segment: str) -> dict:
        try:
            data = json.loads(_b64decode(segment))
        except (binascii.Error, ValueError, UnicodeDecodeError):
            raise TokenRejected(VerificationFailure.MALFORMED, "segment is not JSON")
        if not isinstance(data, dict):
            raise TokenRejected(VerificationFailure.MALFORMED, "segment is not an object")
        return data

    @staticmethod
    def _claims_from_payload(payload: dict) -> TokenClaims:
        sid, uid = payload.get("sid"), payload.get("uid")
        iat, exp = payload.get("iat"), payload.get("exp")
        if not isinstance(sid, str) or not sid:
            raise TokenRejected(VerificationFailure.MALFORMED, "missing sid claim")
        if uid is not None and (not isinstance(uid, int) or isinstance(uid, bool)):
            raise TokenRejected(VerificationFailure.MALFORMED, "uid claim must be an integer")
        for name, value in (("iat", iat), ("exp", exp)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise TokenRejected(VerificationFailure.MALFORMED, f"missing {name} claim")
        if exp <= iat:
            raise TokenRejected(VerificationFailure.MALFORMED, "exp must follow iat")
        return TokenClaims(
            session_key=sid,
            user_id=uid,
            issued_at=_from_epoch(iat),
            expires_at=_from_epoch(exp),
        )
