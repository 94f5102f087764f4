"""Portfolio Routes — per-user transaction history and purchase analytics."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.api.dependencies import get_purchase_history
from aurum.core.domain_types import AnalyticsPeriod
from aurum.infrastructure.database import get_db
from aurum.services.purchase_history import MAX_PAGE_SIZE, PurchaseHistory

router = APIRouter(prefix="/api/v1", tags=["portfolio"])


@router.get("/users/{user_id}/transactions")
async def user_transactions(
    user_id: int,
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    history: PurchaseHistory = Depends(get_purchase_history),
):
    return await history.user_transactions(db, user_id, limit, offset)


@router.get("/analytics/purchases")
async def purchase_analytics(
    period: AnalyticsPeriod = Query(AnalyticsPeriod.DAY),
    db: AsyncSession = Depends(get_db),
    history: PurchaseHistory = Depends(get_purchase_history),
):
    return await history.purchase_analytics(db, period)
