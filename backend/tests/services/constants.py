"""Shared test constants — the frozen moment, signing secret and gold price."""

from datetime import datetime, timezone
from decimal import Decimal

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
SECRET = "test-signing-secret"
PRICE = Decimal("6500.00")
