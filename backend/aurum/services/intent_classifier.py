"""Intent Classifier — Anthropic-backed relevance oracle with keyword degrade.

Invariants:
    - classify() never raises AnthropicAPIError: API failures degrade to the
      keyword fallback (confidence 0.3)
    - Degradation applies ONLY here; the session and purchase protocol never
      falls back
    - History is passed as alternating user/assistant turns, oldest first
"""

import logging

from aurum.core.classification import (
    Classification,
    build_system_prompt,
    keyword_fallback,
    parse_classification,
)
from aurum.core.errors import AnthropicAPIError
from aurum.core.repository_protocols import PriceOracle
from aurum.infrastructure.anthropic_client import ResilientAnthropicClient

logger = logging.getLogger(__name__)


def _response_text(response) -> str:
    return "".join(
        getattr(block, "text", "")
        for block in getattr(response, "content", None) or []
        if getattr(block, "type", None) == "text"
    )


class AnthropicIntentClassifier:
    def __init__(
        self,
        client: ResilientAnthropicClient,
        price_oracle: PriceOracle,
        model: str,
        max_tokens: int = 300,
        currency: str = "INR",
    ):
        self.client = client
        self.price_oracle = price_oracle
        self.model = model
        self.max_tokens = max_tokens
        self.currency = currency

    async def classify(
        self, message: str, history: list[dict[str, str]],
    ) -> Classification:
        price = await self.price_oracle.current_price(self.currency)
        messages = [*history, {"role": "user", "content": message}]
        try:
            response = await self.client.create_message(
                model=self.model,
                max_tokens=self.max_tokens,
                system=build_system_prompt(price, self.currency),
                messages=messages,
            )
        except AnthropicAPIError as e:
            logger.warning(
                f"Classifier unavailable, using keyword fallback: {e.message}",
                extra={"error_code": e.code, "reason": e.api_error_type},
            )
            return keyword_fallback(message, price, self.currency)
        return parse_classification(_response_text(response), message)


class KeywordIntentClassifier:
    """Used when no Anthropic API key is configured."""

    def __init__(self, price_oracle: PriceOracle, currency: str = "INR"):
        self.price_oracle = price_oracle
        self.currency = currency

    async def classify(
        self, message: str, history: list[dict[str, str]],
    ) -> Classification:
        price = await self.price_oracle.current_price(self.currency)
        return keyword_fallback(message, price, self.currency)
