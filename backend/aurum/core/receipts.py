"""Purchase Receipt — the durable confirmation returned after a committed purchase.

Invariants:
    - unit_price and total echo exactly the values written to the transaction row
    - Amounts serialize as strings so JSON clients never see float rounding
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from aurum.core.purchase_options import format_grams, format_money


@dataclass(frozen=True)
class PurchaseReceipt:
    transaction_id: int
    transaction_ref: str
    user_id: int
    quantity: Decimal
    unit_price: Decimal
    total: Decimal
    currency: str
    status: str
    payment_method: str
    created_at: datetime

    @property
    def message(self) -> str:
        return (
            f"Congratulations! You have successfully purchased "
            f"{format_grams(self.quantity)} of digital gold for "
            f"{format_money(self.currency, self.total)}"
        )

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_ref,
            "user_id": self.user_id,
            "gold_amount": str(self.quantity),
            "price_per_gram": str(self.unit_price),
            "total_amount": str(self.total),
            "currency": self.currency,
            "status": self.status,
            "payment_method": self.payment_method,
            "purchase_date": self.created_at.isoformat(),
        }
