"""API Dependencies — wires services from settings for FastAPI's Depends.

Invariants:
    - Every collaborator a route needs (clock, signer, price oracle, classifier)
      is reachable through one provider here, so tests swap it with
      app.dependency_overrides
    - Issuer and Verifier are built from the same TokenSigner settings on both
      services

Design Decisions:
    - The Anthropic client is cached per process; services themselves are cheap
      and built per request
"""

from functools import lru_cache

from fastapi import Depends

from aurum.config import get_settings
from aurum.core.repository_protocols import Clock, IntentClassifier, PriceOracle
from aurum.core.session_token import TokenSigner
from aurum.infrastructure.anthropic_client import ResilientAnthropicClient
from aurum.infrastructure.clock import StoreClock
from aurum.infrastructure.database import get_db_manager
from aurum.services.advisory_flow import AdvisoryFlow
from aurum.services.intent_classifier import (
    AnthropicIntentClassifier,
    KeywordIntentClassifier,
)
from aurum.services.price_oracle import SqlPriceOracle
from aurum.services.purchase_history import PurchaseHistory
from aurum.services.purchase_initiation import PurchaseInitiation
from aurum.services.session_issuer import SessionIssuer
from aurum.services.session_verifier import SessionVerifier
from aurum.services.transaction_processor import TransactionProcessor


def get_clock() -> Clock:
    return StoreClock()


def get_signer() -> TokenSigner:
    settings = get_settings()
    return TokenSigner(
        settings.session_secret,
        ttl_seconds=settings.session_ttl_seconds,
        previous_secrets=settings.session_previous_secrets,
    )


def get_price_oracle() -> PriceOracle:
    settings = get_settings()
    return SqlPriceOracle(
        get_db_manager().session_factory,
        default_price=settings.default_price_per_gram,
        default_currency=settings.currency,
    )


@lru_cache
def _anthropic_client() -> ResilientAnthropicClient:
    settings = get_settings()
    return ResilientAnthropicClient(
        api_key=settings.anthropic_api_key,
        max_retries=settings.anthropic_max_retries,
        base_delay_ms=settings.anthropic_base_delay_ms,
        max_delay_ms=settings.anthropic_max_delay_ms,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )


def get_classifier(
    price_oracle: PriceOracle = Depends(get_price_oracle),
) -> IntentClassifier:
    settings = get_settings()
    if not settings.anthropic_api_key:
        return KeywordIntentClassifier(price_oracle, settings.currency)
    return AnthropicIntentClassifier(
        _anthropic_client(),
        price_oracle,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        currency=settings.currency,
    )


def get_issuer(
    signer: TokenSigner = Depends(get_signer),
    clock: Clock = Depends(get_clock),
) -> SessionIssuer:
    return SessionIssuer(signer, clock)


def get_verifier(
    signer: TokenSigner = Depends(get_signer),
    clock: Clock = Depends(get_clock),
) -> SessionVerifier:
    return SessionVerifier(signer, clock)


def get_transaction_processor(
    verifier: SessionVerifier = Depends(get_verifier),
    price_oracle: PriceOracle = Depends(get_price_oracle),
    clock: Clock = Depends(get_clock),
) -> TransactionProcessor:
    return TransactionProcessor(verifier, price_oracle, clock, get_settings().currency)


def get_purchase_initiation(
    verifier: SessionVerifier = Depends(get_verifier),
    price_oracle: PriceOracle = Depends(get_price_oracle),
    clock: Clock = Depends(get_clock),
) -> PurchaseInitiation:
    return PurchaseInitiation(verifier, price_oracle, clock, get_settings().currency)


def get_advisory_flow(
    classifier: IntentClassifier = Depends(get_classifier),
    issuer: SessionIssuer = Depends(get_issuer),
    price_oracle: PriceOracle = Depends(get_price_oracle),
    clock: Clock = Depends(get_clock),
) -> AdvisoryFlow:
    settings = get_settings()
    return AdvisoryFlow(
        classifier,
        issuer,
        price_oracle,
        clock,
        currency=settings.currency,
        history_limit=settings.classifier_history_limit,
        model_name=settings.anthropic_model if settings.anthropic_api_key else None,
    )


def get_purchase_history(
    price_oracle: PriceOracle = Depends(get_price_oracle),
    clock: Clock = Depends(get_clock),
) -> PurchaseHistory:
    return PurchaseHistory(price_oracle, clock, get_settings().currency)
