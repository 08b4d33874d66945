"""
FamHub - Test Configuration
Shared fixtures and test configuration.
"""
import os
import tempfile
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment before famhub.config is imported
_TEST_DIR = tempfile.mkdtemp(prefix="famhub-tests-")
os.environ["APP_ENV"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/famhub_default.db"
os.environ["ENABLE_EXCHANGE_RATE_SCHEDULER"] = "false"
os.environ["CURRENCY_API_KEY"] = ""
os.environ["LOG_DIR"] = os.path.join(_TEST_DIR, "logs")

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from famhub.db.database import Base  # noqa: E402
from famhub.db.models import Currency, CurrencyType, ExchangeRate, User, UserRole  # noqa: E402


# =========================
# Database
# =========================

@pytest.fixture
async def db_engine(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/famhub_test.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """Mock async database session."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.add = MagicMock()
    session.delete = MagicMock()
    return session


# =========================
# Currency / Rate Fixtures
# =========================

SAMPLE_CURRENCIES = [
    ("USD", "US Dollar", "$", CurrencyType.FIAT, 1),
    ("EUR", "Euro", "€", CurrencyType.FIAT, 2),
    ("GBP", "British Pound", "£", CurrencyType.FIAT, 3),
    ("BTC", "Bitcoin", "₿", CurrencyType.CRYPTOCURRENCY, 20),
    ("GOLD", "Gold", "Au", CurrencyType.PRECIOUS_METAL, 50),
]


@pytest.fixture
async def sample_currencies(db_session):
    """USD, EUR, GBP, BTC and GOLD, all active."""
    currencies = []
    for code, name, symbol, currency_type, order in SAMPLE_CURRENCIES:
        currency = Currency(
            code=code,
            name=name,
            symbol=symbol,
            currency_type=currency_type,
            is_active=True,
            display_order=order,
        )
        db_session.add(currency)
        currencies.append(currency)
    await db_session.commit()
    return currencies


async def store_rates(session, rates: dict, updated_at: datetime = None):
    """Insert {(from, to): rate} rows directly."""
    for (source, target), value in rates.items():
        session.add(ExchangeRate(
            from_currency=source,
            to_currency=target,
            rate=Decimal(str(value)),
            updated_at=updated_at or datetime.utcnow(),
        ))
    await session.commit()


# =========================
# Users
# =========================

@pytest.fixture
async def admin_user(db_session):
    user = User(email="admin@famhub.test", username="admin", role=UserRole.ADMIN, is_active=True)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def regular_user(db_session):
    user = User(email="member@famhub.test", username="member", role=UserRole.USER, is_active=True)
    db_session.add(user)
    await db_session.commit()
    return user


# =========================
# Settings Override
# =========================

@pytest.fixture
def test_settings():
    """Test settings override."""
    from famhub.config import Settings
    return Settings(
        APP_ENV="testing",
        DEBUG=True,
        SECRET_KEY="test-secret-key",
        CURRENCY_API_KEY="",
        ENABLE_EXCHANGE_RATE_SCHEDULER=False,
        EXCHANGE_RATE_MIN_REFRESH_MINUTES=30,
        EXCHANGE_RATE_STALE_HOURS=24,
        EXCHANGE_RATE_FORCED_STALE_HOURS=1,
    )


@pytest.fixture
def mock_httpx_client():
    """Mock httpx async client."""
    client = AsyncMock()
    client.get = AsyncMock()
    return client
