"""Price Oracle — latest row wins, default on absence or failure, writes validated."""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from aurum.core.errors import InputValidationError
from aurum.models.price_record import PriceRecord
from aurum.services.price_oracle import SqlPriceOracle, StaticPriceOracle

from tests.services.constants import NOW


class _BrokenSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT price_per_gram", {}, Exception("connection refused"))


@pytest.fixture
def oracle(test_session_factory):
    return SqlPriceOracle(test_session_factory, Decimal("6500"), "INR")


async def test_default_when_table_empty(oracle):
    assert await oracle.current_price() == Decimal("6500.00")


async def test_latest_row_for_currency_wins(oracle, test_db):
    test_db.add_all([
        PriceRecord(price_per_gram=Decimal("6400.00"), currency="INR", created_at=NOW - timedelta(days=1)),
        PriceRecord(price_per_gram=Decimal("6612.50"), currency="INR", created_at=NOW),
        PriceRecord(price_per_gram=Decimal("75.10"), currency="USD", created_at=NOW + timedelta(minutes=5)),
    ])
    await test_db.commit()

    assert await oracle.current_price("INR") == Decimal("6612.50")
    assert await oracle.current_price("USD") == Decimal("75.10")


async def test_non_positive_row_falls_back(oracle, test_db):
    test_db.add(PriceRecord(price_per_gram=Decimal("0"), currency="INR", created_at=NOW))
    await test_db.commit()
    assert await oracle.current_price() == Decimal("6500.00")


async def test_read_failure_falls_back_to_default():
    oracle = SqlPriceOracle(_BrokenSession, Decimal("6500"), "INR")
    assert await oracle.current_price() == Decimal("6500.00")


async def test_record_price_appends_row(oracle, test_db):
    record = await oracle.record_price("6725.456", source="feed")
    assert record.price_per_gram == Decimal("6725.46")
    assert record.currency == "INR"

    rows = (await test_db.execute(select(PriceRecord))).scalars().all()
    assert len(rows) == 1
    assert rows[0].source == "feed"
    assert await oracle.current_price() == Decimal("6725.46")


@pytest.mark.parametrize("bad", ["abc", 0, "-12.5", None])
async def test_record_price_rejects_invalid(oracle, bad):
    with pytest.raises(InputValidationError):
        await oracle.record_price(bad)


async def test_static_oracle_counts_reads():
    oracle = StaticPriceOracle(Decimal("6500"))
    assert await oracle.current_price("INR") == Decimal("6500.00")
    assert await oracle.current_price() == Decimal("6500.00")
    assert oracle.calls == 2
