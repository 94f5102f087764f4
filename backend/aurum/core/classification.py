"""Intent Classification Rules — prompt, response parsing and keyword fallback.

Invariants:
    - parse_classification never raises: JSON → embedded {...} block → keyword guess
    - keyword_fallback is used only when the model is unreachable (confidence 0.3);
      unparseable model output gets a keyword guess at confidence 0.5
    - confidence always clamped to [0, 1]

Design Decisions:
    - Degrade-not-fail is confined to this boundary; the session/transaction
      protocol never falls back
"""

import json
import re
from dataclasses import dataclass
from decimal import Decimal

FALLBACK_KEYWORDS = ("gold", "invest", "price")

_SYSTEM_PROMPT = """You are a gold investment expert and digital gold trading assistant. Your role is to:

1. ANALYZE user messages to determine if they're asking about gold, investments, precious metals, or related topics
2. PROVIDE helpful, accurate information about gold investments and digital gold
3. ENCOURAGE users to consider digital gold investment when appropriate
4. RESPOND professionally but in a friendly, conversational tone

Current gold price: {currency} {price} per gram

Return ONLY a JSON object with this exact structure:
{{
  "is_gold_related": boolean,
  "confidence": number (0-1),
  "response": "your main response text",
  "intent_summary": "brief summary of what user is asking",
  "purchase_recommendation": "suggestion about investing in digital gold (only if gold-related)"
}}

Guidelines:
- If the query is about gold/investment: set is_gold_related to true and give helpful gold information
- If the query is not about gold: set is_gold_related to false and politely redirect to gold topics
- Keep responses concise (2-3 sentences max)
- Include current price information when relevant"""


@dataclass(frozen=True)
class Classification:
    is_relevant: bool
    confidence: float
    reply_text: str
    summary: str
    recommendation: str | None = None
    degraded: bool = False


def build_system_prompt(price: Decimal, currency: str) -> str:
    return _SYSTEM_PROMPT.format(price=price, currency=currency)


def _clamp(value: object, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return min(1.0, max(0.0, number))


def _extract_json(text: str) -> dict | None:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", text)
        if not match:
            return None
        try:
            data = json.loads(match.group())
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def parse_classification(raw_text: str, message: str) -> Classification:
    """Turn model output into a Classification. Never raises."""
    text = (raw_text or "").strip()
    data = _extract_json(text)
    if data is None:
        return Classification(
            is_relevant="gold" in message.lower(),
            confidence=0.5,
            reply_text=text[:1000],
            summary="Unable to parse structured response",
            recommendation="Consider investing in digital gold for portfolio diversification",
            degraded=True,
        )
    return Classification(
        is_relevant=bool(data.get("is_gold_related", False)),
        confidence=_clamp(data.get("confidence"), 0.5),
        reply_text=str(data.get("response") or ""),
        summary=str(data.get("intent_summary") or ""),
        recommendation=data.get("purchase_recommendation") or None,
    )


def keyword_fallback(message: str, price: Decimal, currency: str) -> Classification:
    """Classification used when the model cannot be reached."""
    lowered = message.lower()
    relevant = any(word in lowered for word in FALLBACK_KEYWORDS)
    if relevant:
        reply = (
            "I'd be happy to help with gold investment information! "
            f"Current gold price is {currency} {price} per gram."
        )
        recommendation = "Digital gold is a convenient way to invest in gold without storage concerns."
    else:
        reply = (
            "I specialize in gold investment and digital gold trading. "
            "How can I help you with gold investments today?"
        )
        recommendation = None
    return Classification(
        is_relevant=relevant,
        confidence=0.3,
        reply_text=reply,
        summary="Fallback response due to API error",
        recommendation=recommendation,
        degraded=True,
    )
