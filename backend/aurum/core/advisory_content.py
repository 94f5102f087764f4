"""Advisory Content — static copy shown alongside classifier replies.

Invariants:
    - pick_gold_fact is deterministic for a given Random instance (tests seed it)
"""

import random

GOLD_FACTS: tuple[str, ...] = (
    "Gold has been used as a store of value for over 4,000 years.",
    "India is the world's second-largest consumer of gold after China.",
    "Gold prices have increased over 300% in the last 20 years.",
    "Digital gold allows you to invest in gold without physical storage concerns.",
    "Gold is considered a hedge against inflation and economic uncertainty.",
    "1 gram of gold can be beaten into a sheet covering 1 square meter.",
    "Gold is one of the least reactive chemical elements, making it highly durable.",
    "Central banks worldwide hold approximately 35,000 tonnes of gold reserves.",
    "Gold's chemical symbol 'Au' comes from the Latin word 'aurum' meaning 'shining dawn'.",
    "The largest gold nugget ever found weighed 2,520 troy ounces (78 kg).",
)

SUGGESTIONS: tuple[str, ...] = (
    "What is the current gold price?",
    "How do I invest in digital gold?",
    "Is gold a good investment?",
    "What are the benefits of digital gold?",
    "Show me gold investment options",
)

NEXT_STEP = "Interested in purchasing? Say 'yes' or 'I want to buy' to get started!"


def pick_gold_fact(rng: random.Random | None = None) -> str:
    return (rng or random).choice(GOLD_FACTS)


def purchase_nudge(currency: str) -> str:
    return f"Ready to invest in digital gold? Start with as little as {currency} 100!"
