"""Price Oracle — latest gold price per gram, with a configured fallback.

Invariants:
    - current_price never raises: no row, or a failed read, yields the default
    - Reads use a dedicated short-lived session so a failure cannot poison the
      caller's unit of work
    - Prices are Decimal quantized to 2 places

Design Decisions:
    - session_factory injected (not db_manager imported) so tests can hand in
      their own sessionmaker
"""

import logging
from decimal import Decimal
from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aurum.core.errors import InputValidationError, PersistenceError
from aurum.core.pricing import quantize_money, to_decimal
from aurum.models.price_record import PriceRecord

logger = logging.getLogger(__name__)


class SqlPriceOracle:
    """Reads the most recent gold_prices row for a currency."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        default_price: Decimal,
        default_currency: str = "INR",
    ):
        self._session_factory = session_factory
        self.default_price = quantize_money(default_price)
        self.default_currency = default_currency

    async def current_price(self, currency: str | None = None) -> Decimal:
        currency = currency or self.default_currency
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(PriceRecord.price_per_gram)
                    .where(PriceRecord.currency == currency)
                    .order_by(PriceRecord.created_at.desc(), PriceRecord.id.desc())
                    .limit(1),
                )
                price = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            logger.warning(
                f"Price lookup failed, using default: {e.__class__.__name__}",
                extra={"reason": "price_read_failed"},
            )
            return self.default_price
        if price is None or Decimal(price) <= 0:
            return self.default_price
        return quantize_money(Decimal(price))

    async def record_price(
        self, price: object, currency: str | None = None, source: str = "manual",
    ) -> PriceRecord:
        """Append a new price row. Raises on invalid price or failed write."""
        try:
            value = quantize_money(to_decimal(price))
        except (ArithmeticError, TypeError, ValueError):
            raise InputValidationError("Price must be a number", field="price_per_gram")
        if not value.is_finite() or value <= 0:
            raise InputValidationError("Price must be positive", field="price_per_gram")
        record = PriceRecord(
            price_per_gram=value,
            currency=currency or self.default_currency,
            source=source,
        )
        try:
            async with self._session_factory() as db:
                db.add(record)
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Price write failed: {e.__class__.__name__}")
            raise PersistenceError("price could not be stored", "insert")
        logger.info(f"Recorded gold price {value} {record.currency} from {source}")
        return record


class StaticPriceOracle:
    """Fixed price for tests."""

    def __init__(self, price: Decimal):
        self.price = quantize_money(price)
        self.calls = 0

    async def current_price(self, currency: str | None = None) -> Decimal:
        self.calls += 1
        return self.price
