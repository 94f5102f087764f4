"""Purchase Options & Receipts — verifies priced packs and receipt serialization."""

from datetime import datetime, timezone
from decimal import Decimal

from aurum.core.purchase_options import (
    custom_option,
    format_grams,
    format_money,
    priced_options,
)
from aurum.core.receipts import PurchaseReceipt


def test_three_packs_priced_at_snapshot():
    options = priced_options(Decimal("6500.00"), "INR")
    assert [o["id"] for o in options] == ["starter", "popular", "premium"]
    assert [o["price"] for o in options] == ["6500.00", "32500.00", "65000.00"]
    assert options[1]["popular"] is True
    assert options[2]["formatted_price"] == "INR 65,000.00"


def test_custom_option_carries_range():
    option = custom_option(Decimal("6500.00"), "INR")
    assert option["min_amount"] == "0.1"
    assert option["max_amount"] == "1000"


def test_formatting_helpers():
    assert format_money("INR", Decimal("1234567.5")) == "INR 1,234,567.50"
    assert format_grams(Decimal("5.0000")) == "5g"
    assert format_grams(Decimal("0.2500")) == "0.25g"


def test_receipt_serializes_amounts_as_strings():
    receipt = PurchaseReceipt(
        transaction_id=1,
        transaction_ref="TXN-20261019-ABC123",
        user_id=1,
        quantity=Decimal("5.0000"),
        unit_price=Decimal("6500.00"),
        total=Decimal("32500.00"),
        currency="INR",
        status="completed",
        payment_method="digital",
        created_at=datetime(2026, 10, 19, 12, tzinfo=timezone.utc),
    )
    body = receipt.to_dict()
    assert body["transaction_id"] == "TXN-20261019-ABC123"
    assert body["total_amount"] == "32500.00"
    assert body["gold_amount"] == "5.0000"
    assert body["purchase_date"] == "2026-10-19T12:00:00+00:00"
    assert "5g" in receipt.message
    assert "INR 32,500.00" in receipt.message
