"""Purchase Options — fixed gold packs priced at the current oracle snapshot.

Invariants:
    - Option prices are computed with compute_total (same rounding as a real purchase)
    - The custom option carries the purchasable range instead of a price
"""

from dataclasses import dataclass
from decimal import Decimal

from aurum.core.pricing import MAX_QUANTITY, MIN_QUANTITY, compute_total


@dataclass(frozen=True)
class GoldOption:
    id: str
    grams: Decimal
    label: str
    description: str
    popular: bool = False


GOLD_OPTIONS: tuple[GoldOption, ...] = (
    GoldOption("starter", Decimal("1"), "Starter Pack", "Perfect for beginners"),
    GoldOption("popular", Decimal("5"), "Popular Choice", "Most chosen by investors", popular=True),
    GoldOption("premium", Decimal("10"), "Premium Investment", "For serious investors"),
)


def format_money(currency: str, amount: Decimal) -> str:
    return f"{currency} {amount:,.2f}"


def format_grams(grams: Decimal) -> str:
    return f"{grams.normalize():f}g"


def priced_options(price: Decimal, currency: str) -> list[dict]:
    options = []
    for option in GOLD_OPTIONS:
        total = compute_total(option.grams, price)
        options.append({
            "id": option.id,
            "amount": format_grams(option.grams),
            "grams": str(option.grams),
            "price": str(total),
            "formatted_price": format_money(currency, total),
            "label": option.label,
            "description": option.description,
            "popular": option.popular,
        })
    return options


def custom_option(price: Decimal, currency: str) -> dict:
    return {
        "id": "custom",
        "min_amount": str(MIN_QUANTITY),
        "max_amount": str(MAX_QUANTITY),
        "price_per_gram": str(price),
        "currency": currency,
    }
