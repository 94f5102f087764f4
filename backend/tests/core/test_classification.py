"""Intent Classification Rules — verifies parsing and the keyword fallback.

Invariants:
    - Well-formed JSON maps field by field; confidence clamped to [0, 1]
    - JSON wrapped in prose is still extracted
    - Unparseable text degrades to a 'gold' keyword guess at confidence 0.5
    - keyword_fallback matches gold/invest/price at confidence 0.3
"""

import json
from decimal import Decimal

import pytest

from aurum.core.classification import (
    build_system_prompt,
    keyword_fallback,
    parse_classification,
)


def _payload(**overrides):
    data = {
        "is_gold_related": True,
        "confidence": 0.92,
        "response": "Gold is INR 6500 per gram.",
        "intent_summary": "price question",
        "purchase_recommendation": "Buy 1g to start.",
    }
    data.update(overrides)
    return json.dumps(data)


def test_parses_well_formed_json():
    result = parse_classification(_payload(), "what is the price?")
    assert result.is_relevant is True
    assert result.confidence == pytest.approx(0.92)
    assert result.reply_text == "Gold is INR 6500 per gram."
    assert result.summary == "price question"
    assert result.recommendation == "Buy 1g to start."
    assert result.degraded is False


def test_extracts_json_embedded_in_prose():
    text = f"Sure! Here you go:\n{_payload(is_gold_related=False)}\nThanks."
    result = parse_classification(text, "hello")
    assert result.is_relevant is False
    assert result.degraded is False


@pytest.mark.parametrize("raw, expected", [(7, 1.0), (-3, 0.0), ("high", 0.5), (None, 0.5)])
def test_confidence_clamped(raw, expected):
    result = parse_classification(_payload(confidence=raw), "gold")
    assert result.confidence == expected


def test_unparseable_output_degrades_to_keyword_guess():
    result = parse_classification("I cannot answer that.", "Tell me about GOLD")
    assert result.is_relevant is True
    assert result.confidence == 0.5
    assert result.degraded is True
    assert result.reply_text == "I cannot answer that."


def test_unparseable_output_without_keyword_is_irrelevant():
    result = parse_classification("???", "weather today")
    assert result.is_relevant is False


def test_json_array_is_not_a_classification():
    assert parse_classification("[1, 2]", "gold").degraded is True


@pytest.mark.parametrize("message, relevant", [
    ("Should I INVEST?", True),
    ("what's the price", True),
    ("gold bars", True),
    ("tell me a joke", False),
])
def test_keyword_fallback(message, relevant):
    result = keyword_fallback(message, Decimal("6500.00"), "INR")
    assert result.is_relevant is relevant
    assert result.confidence == 0.3
    assert result.degraded is True
    if relevant:
        assert "INR 6500.00" in result.reply_text


def test_system_prompt_carries_price_and_currency():
    prompt = build_system_prompt(Decimal("6500.00"), "INR")
    assert "INR 6500.00 per gram" in prompt
    assert '"is_gold_related": boolean' in prompt
