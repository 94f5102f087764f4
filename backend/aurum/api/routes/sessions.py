"""Session Routes — read-only credential inspection on the settlement service.

Invariants:
    - Never mutates the session row
    - Always answers with the tagged result; the token itself is never echoed
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.api.dependencies import get_verifier
from aurum.core.verification import InvalidSignature, Valid, as_utc
from aurum.infrastructure.database import get_db
from aurum.schemas.purchase import SessionTokenBody
from aurum.services.session_verifier import SessionVerifier

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


@router.post("/verify")
async def verify_session(
    body: SessionTokenBody,
    db: AsyncSession = Depends(get_db),
    verifier: SessionVerifier = Depends(get_verifier),
):
    """Report whether a credential is currently usable, and why not."""
    result = await verifier.verify(db, body.session_token)
    if isinstance(result, Valid):
        session = result.session
        user = result.bound_user
        return {
            "valid": True,
            "result": "valid",
            "session": {
                "id": session.id,
                "user_id": session.user_id,
                "is_active": session.is_active,
                "created_at": as_utc(session.created_at).isoformat(),
                "expires_at": as_utc(session.expires_at).isoformat(),
            },
            "bound_user": (
                {"id": user.id, "name": user.name, "email": user.email}
                if user else None
            ),
        }
    tag = "invalid_signature" if isinstance(result, InvalidSignature) else "not_found_or_expired"
    return {"valid": False, "result": tag, "reason": result.reason.value}
