"""Service test fixtures — async DB, deterministic collaborators, FastAPI clients.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - The clock is frozen (FrozenClock) and the price is static: expiry and
      totals are deterministic
    - get_db and every collaborator provider are overridden on both apps
    - db_manager patched for code that reaches it directly (readiness probe,
      price oracle factory)

Design Decisions:
    - SQLite in-memory: fast, no external dependency; PostgreSQL-only behavior
      (row locks under true concurrency) is covered by the guarded UPDATE and
      the unique session_id constraint, both of which SQLite enforces
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from aurum.api import dependencies as deps
from aurum.core.classification import Classification
from aurum.core.session_token import TokenSigner
from aurum.db.base import Base
from aurum.infrastructure.clock import FrozenClock
from aurum.infrastructure.database import get_db, DatabaseSessionManager
import aurum.infrastructure.database as db_module
import aurum.models  # noqa: F401
from aurum.main import advisory_app, settlement_app
from aurum.models.user import User
from aurum.services.price_oracle import StaticPriceOracle
from aurum.services.session_issuer import SessionIssuer
from aurum.services.session_verifier import SessionVerifier
from aurum.services.transaction_processor import TransactionProcessor

from tests.services.constants import NOW, PRICE, SECRET


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def signer():
    return TokenSigner(SECRET, ttl_seconds=3600)


@pytest.fixture
def price_oracle():
    return StaticPriceOracle(PRICE)


@pytest.fixture
def issuer(signer, clock):
    return SessionIssuer(signer, clock)


@pytest.fixture
def verifier(signer, clock):
    return SessionVerifier(signer, clock)


@pytest.fixture
def processor(verifier, price_oracle, clock):
    return TransactionProcessor(verifier, price_oracle, clock, currency="INR")


@pytest.fixture
async def seed_user(test_db):
    """Insert a registered buyer."""
    user = User(
        name="Asha Rao", email="asha@example.com", phone="+91-9800000000",
        created_at=NOW, updated_at=NOW,
    )
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


class FakeClassifier:
    """Scripted IntentClassifier. Records (message, history) per call."""

    def __init__(self, relevant: bool = True, confidence: float = 0.9):
        self.calls: list[tuple[str, list]] = []
        self.result = Classification(
            is_relevant=relevant,
            confidence=confidence,
            reply_text="Gold is trading at INR 6500.00 per gram today.",
            summary="gold price question",
            recommendation="Start with 1 gram of digital gold.",
        )

    async def classify(self, message, history):
        self.calls.append((message, list(history)))
        return self.result


@pytest.fixture
def fake_classifier():
    return FakeClassifier()


@pytest.fixture
async def patched_db_manager(test_engine, test_session_factory):
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager
    yield fake_manager
    db_module.db_manager = original_manager


def _override(app, clock, signer, price_oracle, classifier):
    async def override_get_db():
        async with db_module.db_manager.session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_clock] = lambda: clock
    app.dependency_overrides[deps.get_signer] = lambda: signer
    app.dependency_overrides[deps.get_price_oracle] = lambda: price_oracle
    app.dependency_overrides[deps.get_classifier] = lambda: classifier


@pytest.fixture
async def settlement_client(
    patched_db_manager, clock, signer, price_oracle,
    fake_classifier,
):
    """Settlement API test client with every collaborator overridden."""
    _override(
        settlement_app, clock, signer, price_oracle,
        fake_classifier,
    )
    async with AsyncClient(
        transport=ASGITransport(app=settlement_app), base_url="http://test",
    ) as c:
        yield c
    settlement_app.dependency_overrides.clear()


@pytest.fixture
async def advisory_client(
    patched_db_manager, clock, signer, price_oracle,
    fake_classifier,
):
    """Advisory API test client with every collaborator overridden."""
    _override(
        advisory_app, clock, signer, price_oracle,
        fake_classifier,
    )
    async with AsyncClient(
        transport=ASGITransport(app=advisory_app), base_url="http://test",
    ) as c:
        yield c
    advisory_app.dependency_overrides.clear()
