"""Purchase Routes — options, initiation and confirmation on the settlement service.

Invariants:
    - Confirmation is the only route that moves money; it delegates entirely to
      TransactionProcessor (verification, binding check, atomic commit)
    - Credential failures → 401 AUTH_INVALID / AUTH_EXPIRED; replays → 409
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.api.dependencies import (
    get_price_oracle,
    get_purchase_initiation,
    get_transaction_processor,
)
from aurum.config import get_settings
from aurum.core.purchase_options import custom_option, priced_options
from aurum.core.repository_protocols import PriceOracle
from aurum.infrastructure.database import get_db
from aurum.schemas.purchase import PurchaseConfirmRequest, PurchaseInitiateRequest
from aurum.services.purchase_initiation import PurchaseInitiation
from aurum.services.transaction_processor import TransactionProcessor

router = APIRouter(prefix="/api/v1/purchase", tags=["purchase"])


@router.get("/options")
async def purchase_options(price_oracle: PriceOracle = Depends(get_price_oracle)):
    currency = get_settings().currency
    price = await price_oracle.current_price(currency)
    return {
        "current_price": {
            "amount": str(price),
            "currency": currency,
            "per_unit": "gram",
        },
        "options": priced_options(price, currency),
        "custom_option": custom_option(price, currency),
    }


@router.post("/initiate")
async def initiate_purchase(
    body: PurchaseInitiateRequest,
    db: AsyncSession = Depends(get_db),
    initiation: PurchaseInitiation = Depends(get_purchase_initiation),
):
    """Verify the credential, register the buyer and bind the session."""
    details = body.user_details
    quote = await initiation.initiate(
        db, body.session_token, details.email, details.name, details.phone,
    )
    return {"message": "Purchase initiated", **quote.to_dict()}


@router.post("/confirm", status_code=status.HTTP_201_CREATED)
async def confirm_purchase(
    body: PurchaseConfirmRequest,
    db: AsyncSession = Depends(get_db),
    processor: TransactionProcessor = Depends(get_transaction_processor),
):
    """Commit the purchase and consume the credential."""
    receipt = await processor.purchase(
        db,
        user_id=body.user_id,
        quantity=body.gold_amount,
        session_token=body.session_token,
        payment_method=body.payment_method,
    )
    return {
        "success": True,
        "message": receipt.message,
        "transaction": receipt.to_dict(),
    }
