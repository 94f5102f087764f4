"""Pricing Rules — quantity validation and exact total computation.

Invariants:
    - Quantity is a finite decimal in [MIN_QUANTITY, MAX_QUANTITY] grams
    - Range checked on the raw value, then normalized to 4 decimal places
      (storage scale) before any arithmetic
    - total = quantity * unit_price, computed in Decimal and quantized to 2 places
      (ROUND_HALF_UP); callers never supply a total
    - float inputs go through str() first so 5.1 stays 5.1, not 5.0999999...

Design Decisions:
    - Validation lives in core rather than only in the request schema so the
      Transaction Processor enforces it when called directly
"""

import secrets
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from aurum.core.errors import InputValidationError, InvalidQuantityError

MIN_QUANTITY = Decimal("0.1")
MAX_QUANTITY = Decimal("1000")
QUANTITY_SCALE = Decimal("0.0001")
MONEY_SCALE = Decimal("0.01")
MAX_PAYMENT_METHOD_LENGTH = 50
DEFAULT_PAYMENT_METHOD = "digital"


def to_decimal(value: object) -> Decimal:
    """Coerce int/float/str/Decimal to Decimal. Raises InvalidOperation/TypeError."""
    if isinstance(value, bool):
        raise TypeError("bool is not a quantity")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        return Decimal(value.strip())
    raise TypeError(f"unsupported type {type(value).__name__}")


def validate_quantity(raw: object) -> Decimal:
    """Parse and range-check a gold quantity in grams."""
    try:
        quantity = to_decimal(raw)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidQuantityError("Gold amount must be a number")
    if not quantity.is_finite():
        raise InvalidQuantityError("Gold amount must be a finite number")
    if quantity < MIN_QUANTITY or quantity > MAX_QUANTITY:
        raise InvalidQuantityError(
            f"Invalid gold amount. Must be between {MIN_QUANTITY} and "
            f"{MAX_QUANTITY} grams",
        )
    return quantity.quantize(QUANTITY_SCALE, rounding=ROUND_HALF_UP)


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(MONEY_SCALE, rounding=ROUND_HALF_UP)


def compute_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    """Exact total for a purchase. Pure."""
    if unit_price <= 0:
        raise ValueError("unit price must be positive")
    return quantize_money(quantity * unit_price)


def validate_payment_method(raw: str | None) -> str:
    method = (raw or DEFAULT_PAYMENT_METHOD).strip()
    if not method or len(method) > MAX_PAYMENT_METHOD_LENGTH:
        raise InputValidationError(
            f"payment_method must be 1-{MAX_PAYMENT_METHOD_LENGTH} characters",
            field="payment_method",
        )
    return method


def new_transaction_ref(created_at: datetime) -> str:
    """Human-readable transaction identifier, e.g. TXN-20261019-4F2A9C."""
    return f"TXN-{created_at:%Y%m%d}-{secrets.token_hex(3).upper()}"
