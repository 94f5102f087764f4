"""Resilient Anthropic Client — the intent classifier's only path to the Messages API.

Invariants:
    - 429: retried, honoring Retry-After (capped at max_delay_ms) when present
    - 5xx, 529 overloaded and connection failures: bounded retries with backoff
    - Timeouts and other 4xx: no retry; a chat reply must not stall on them
    - Every failure surfaces as AnthropicAPIError (core/errors.py); callers
      decide whether to degrade

Design Decisions:
    - SDK retries disabled so there is exactly one retry policy
    - ±25% jitter on backoff to spread retries from both services
"""

import asyncio
import random
import logging

import anthropic
from anthropic import (
    APIError,
    APIConnectionError,
    APIStatusError,
    RateLimitError,
    APITimeoutError,
    InternalServerError,
)

from aurum.core.errors import AnthropicAPIError, ErrorContext

logger = logging.getLogger(__name__)

_OVERLOADED_STATUS = 529


def _is_transient(e: APIError) -> bool:
    if isinstance(e, (APIConnectionError, InternalServerError)):
        return True
    return isinstance(e, APIStatusError) and e.status_code == _OVERLOADED_STATUS


class ResilientAnthropicClient:
    def __init__(
        self,
        api_key: str,
        max_retries: int = 2,
        base_delay_ms: int = 500,
        max_delay_ms: int = 8_000,
        timeout_seconds: int = 30,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        self.client = client or anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def create_message(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: list,
        context: ErrorContext | None = None,
    ):
        """messages.create with the retry policy above. Raises AnthropicAPIError."""
        attempt = 0
        while True:
            try:
                response = await self.client.messages.create(
                    model=model,
                    max_tokens=max_tokens,
                    system=system,
                    messages=messages,
                )
            except RateLimitError as e:
                retry_after_ms = self._extract_retry_after(e)
                if attempt >= self.max_retries:
                    raise AnthropicAPIError(
                        "Rate limit exceeded after retries",
                        "rate_limit",
                        retry_after_ms=retry_after_ms,
                        context=context,
                    )
                await self._pause(attempt, "Rate limited", retry_after_ms)
            except APITimeoutError:
                raise AnthropicAPIError("API timeout", "timeout", context=context)
            except APIError as e:
                if not _is_transient(e):
                    raise AnthropicAPIError(str(e), "client_error", context=context)
                if attempt >= self.max_retries:
                    raise AnthropicAPIError(
                        f"Transient failure after {self.max_retries} retries: {e}",
                        "connection_error",
                        context=context,
                    )
                await self._pause(attempt, f"Transient error ({e.__class__.__name__})")
            else:
                self._log_usage(model, response, attempt)
                return response
            attempt += 1

    async def _pause(
        self, attempt: int, reason: str, retry_after_ms: int | None = None,
    ) -> None:
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"{reason}, retrying in {delay}ms",
            extra={"attempt": attempt + 1, "reason": "anthropic_retry"},
        )
        await asyncio.sleep(delay / 1000)

    def _log_usage(self, model: str, response, attempt: int) -> None:
        usage = getattr(response, "usage", None)
        logger.info(
            f"Classifier call to {model} succeeded",
            extra={
                "attempt": attempt + 1,
                "input_tokens": getattr(usage, "input_tokens", None),
                "output_tokens": getattr(usage, "output_tokens", None),
            },
        )

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, error: RateLimitError) -> int | None:
        """Retry-After in milliseconds, capped at max_delay_ms."""
        response = getattr(error, "response", None)
        if response is None:
            return None
        value = response.headers.get("retry-after", "")
        try:
            seconds = float(value)
        except ValueError:
            return None
        if seconds <= 0:
            return None
        return min(int(seconds * 1000), self.max_delay_ms)
