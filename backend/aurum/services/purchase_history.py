"""Purchase History — portfolio view per user and purchase analytics.

Invariants:
    - Read-only
    - Portfolio totals count completed transactions only
    - Money is summed in the database and re-quantized as Decimal; current value
      uses one oracle read
"""

from datetime import timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.core.domain_types import AnalyticsPeriod, TransactionStatus
from aurum.core.errors import InputValidationError
from aurum.core.pricing import QUANTITY_SCALE, compute_total, quantize_money
from aurum.core.purchase_options import format_grams, format_money
from aurum.core.repository_protocols import Clock, PriceOracle
from aurum.core.verification import as_utc
from aurum.models.transaction import Transaction
from aurum.models.user import User
from aurum.services.user_registry import get_user

MAX_PAGE_SIZE = 100
TOP_PURCHASES = 5


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _transaction_dict(txn: Transaction, currency: str, user_name: str | None = None) -> dict:
    quantity = _decimal(txn.quantity).quantize(QUANTITY_SCALE)
    total = quantize_money(_decimal(txn.total))
    body = {
        "transaction_id": txn.reference,
        "user_id": txn.user_id,
        "gold_amount": str(quantity),
        "price_per_gram": str(quantize_money(_decimal(txn.unit_price))),
        "total_amount": str(total),
        "currency": txn.currency,
        "status": txn.status,
        "payment_method": txn.payment_method,
        "created_at": as_utc(txn.created_at).isoformat(),
        "formatted_total": format_money(currency, total),
        "formatted_gold": format_grams(quantity),
    }
    if user_name is not None:
        body["user_name"] = user_name
    return body


class PurchaseHistory:
    def __init__(self, price_oracle: PriceOracle, clock: Clock, currency: str = "INR"):
        self.price_oracle = price_oracle
        self.clock = clock
        self.currency = currency

    async def user_transactions(
        self, db: AsyncSession, user_id: int, limit: int = 10, offset: int = 0,
    ) -> dict:
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise InputValidationError(f"limit must be 1-{MAX_PAGE_SIZE}", field="limit")
        if offset < 0:
            raise InputValidationError("offset must not be negative", field="offset")
        user = await get_user(db, user_id)

        rows = await db.execute(
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
            .offset(offset),
        )
        transactions = list(rows.scalars())
        total_count = (await db.execute(
            select(func.count(Transaction.id)).where(Transaction.user_id == user_id),
        )).scalar_one()

        summary = (await db.execute(
            select(
                func.sum(Transaction.quantity),
                func.sum(Transaction.total),
                func.count(Transaction.id),
            ).where(
                Transaction.user_id == user_id,
                Transaction.status == TransactionStatus.COMPLETED.value,
            ),
        )).one()
        total_gold = _decimal(summary[0]).quantize(QUANTITY_SCALE)
        invested = quantize_money(_decimal(summary[1]))
        price = await self.price_oracle.current_price(self.currency)
        current_value = compute_total(total_gold, price)

        return {
            "transactions": [
                _transaction_dict(t, self.currency, user.name) for t in transactions
            ],
            "pagination": {
                "total": total_count,
                "limit": limit,
                "offset": offset,
                "has_more": offset + limit < total_count,
            },
            "portfolio_summary": {
                "total_gold": format_grams(total_gold),
                "total_invested": format_money(self.currency, invested),
                "current_value": format_money(self.currency, current_value),
                "profit_loss": str(current_value - invested),
                "total_transactions": summary[2],
                "current_gold_price": format_money(self.currency, price),
            },
        }

    async def purchase_analytics(
        self, db: AsyncSession, period: AnalyticsPeriod = AnalyticsPeriod.DAY,
    ) -> dict:
        now = await self.clock.now(db)
        since = now - timedelta(hours=period.hours)
        window = (
            Transaction.created_at >= since,
            Transaction.status == TransactionStatus.COMPLETED.value,
        )
        stats = (await db.execute(
            select(
                func.count(Transaction.id),
                func.sum(Transaction.total),
                func.sum(Transaction.quantity),
                func.count(func.distinct(Transaction.user_id)),
            ).where(*window),
        )).one()
        count = stats[0]
        grams = _decimal(stats[2]).quantize(QUANTITY_SCALE)
        average = (grams / count).quantize(QUANTITY_SCALE) if count else Decimal("0.0000")

        top = await db.execute(
            select(Transaction, User.name)
            .join(User, Transaction.user_id == User.id)
            .where(*window)
            .order_by(Transaction.total.desc(), Transaction.id)
            .limit(TOP_PURCHASES),
        )
        return {
            "period": period.value,
            "summary": {
                "total_purchases": count,
                "total_revenue": str(quantize_money(_decimal(stats[1]))),
                "total_gold_sold": str(grams),
                "avg_purchase_size": str(average),
                "unique_buyers": stats[3],
            },
            "top_purchases": [
                _transaction_dict(txn, self.currency, name) for txn, name in top.all()
            ],
            "currency": self.currency,
        }
