"""Purchase Schemas — request bodies accepted by the settlement service.

Invariants:
    - session_token is an opaque, non-empty string relayed unmodified
    - gold_amount range is enforced by core/pricing.py (INVALID_QUANTITY),
      not here, so direct service calls and HTTP calls fail the same way
    - email shape is checked by the User Registry (contact key normalization)
"""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class SessionTokenBody(BaseModel):
    session_token: str = Field(min_length=1, max_length=500)

    @field_validator("session_token")
    @classmethod
    def strip_token(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("session_token cannot be empty")
        return v


class UserDetails(BaseModel):
    name: str | None = Field(None, max_length=100)
    email: str = Field(min_length=3, max_length=100)
    phone: str | None = Field(None, max_length=20)


class PurchaseInitiateRequest(SessionTokenBody):
    user_details: UserDetails


class PurchaseConfirmRequest(SessionTokenBody):
    user_id: int = Field(gt=0)
    gold_amount: Decimal
    payment_method: str | None = Field(None, max_length=50)
