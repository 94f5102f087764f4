"""Advisory Routes — chat, conversation history and conversation analytics.

Invariants:
    - Classifier failures never surface here (degraded replies are 200)
    - Unknown user_id → 404 RESOURCE_NOT_FOUND
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.api.dependencies import get_advisory_flow
from aurum.infrastructure.database import get_db
from aurum.schemas.advisory import ChatRequest
from aurum.services.advisory_flow import AdvisoryFlow

router = APIRouter(prefix="/api/v1", tags=["advisory"])


@router.post("/chat")
async def chat(
    body: ChatRequest,
    db: AsyncSession = Depends(get_db),
    flow: AdvisoryFlow = Depends(get_advisory_flow),
):
    """Answer a gold question; issue a purchase credential when relevant."""
    reply = await flow.handle_message(db, body.message, body.user_id)
    return reply.to_dict()


@router.get("/history/{user_id}")
async def conversation_history(
    user_id: int,
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    flow: AdvisoryFlow = Depends(get_advisory_flow),
):
    conversations = await flow.history(db, user_id, limit)
    return {"conversations": conversations, "count": len(conversations)}


@router.get("/analytics")
async def conversation_analytics(
    db: AsyncSession = Depends(get_db),
    flow: AdvisoryFlow = Depends(get_advisory_flow),
):
    return await flow.analytics(db)
