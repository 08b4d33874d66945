"""
Unit Tests - Exchange Rate Repository
Tests for the ExchangeRateRepository class.
"""
import pytest
from decimal import Decimal
from datetime import datetime, timedelta
from unittest.mock import MagicMock

from famhub.db.models.exchange_rate import ExchangeRate
from famhub.db.repositories.exchange_rate import ExchangeRateRepository
from tests.conftest import store_rates


class TestExchangeRateRepositoryMocked:
    """Query paths against a mocked session."""

    @pytest.fixture
    def repo(self, mock_db_session):
        return ExchangeRateRepository(mock_db_session)

    @pytest.fixture
    def sample_exchange_rate(self):
        rate = MagicMock(spec=ExchangeRate)
        rate.id = 1
        rate.from_currency = "EUR"
        rate.to_currency = "USD"
        rate.rate = Decimal("1.0850")
        rate.updated_at = datetime.utcnow()
        return rate

    @pytest.mark.asyncio
    async def test_get_rate_value_existing(self, repo, mock_db_session, sample_exchange_rate):
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = sample_exchange_rate
        mock_db_session.execute.return_value = mock_result

        assert await repo.get_rate_value("eur", "usd") == Decimal("1.0850")

    @pytest.mark.asyncio
    async def test_get_rate_value_missing(self, repo, mock_db_session):
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_db_session.execute.return_value = mock_result

        assert await repo.get_rate_value("XYZ", "ABC") is None


class TestExchangeRateRepositorySqlite:
    """Upsert semantics against a real database."""

    @pytest.mark.asyncio
    async def test_upsert_inserts_then_updates_single_row(self, db_session):
        repo = ExchangeRateRepository(db_session)
        first_at = datetime(2025, 12, 1, 8, 0, 0)
        second_at = first_at + timedelta(hours=6)

        await repo.upsert_rate("usd", "eur", Decimal("0.9"), updated_at=first_at)
        await repo.upsert_rate("USD", "EUR", Decimal("0.92"), updated_at=second_at)

        assert await repo.count() == 1
        row = await repo.get_rate("USD", "EUR")
        assert row.rate == Decimal("0.92")
        assert row.updated_at == second_at

    @pytest.mark.asyncio
    async def test_upsert_same_value_is_idempotent(self, db_session):
        repo = ExchangeRateRepository(db_session)

        await repo.upsert_rate("USD", "EUR", Decimal("0.9"))
        await repo.upsert_rate("USD", "EUR", Decimal("0.9"))

        assert await repo.count() == 1
        assert await repo.get_rate_value("USD", "EUR") == Decimal("0.9")

    @pytest.mark.asyncio
    async def test_bulk_upsert(self, db_session):
        repo = ExchangeRateRepository(db_session)
        await store_rates(db_session, {("USD", "EUR"): "0.8"})

        count = await repo.bulk_upsert_rates([
            {"from_currency": "USD", "to_currency": "EUR", "rate": Decimal("0.9")},
            {"from_currency": "USD", "to_currency": "BTC", "rate": Decimal("0.00002")},
        ])

        assert count == 2
        assert await repo.count() == 2
        assert await repo.get_rate_value("USD", "EUR") == Decimal("0.9")
        pairs = {(row.from_currency, row.to_currency) for row in await repo.get_all_rates()}
        assert pairs == {("USD", "EUR"), ("USD", "BTC")}

    @pytest.mark.asyncio
    async def test_get_last_updated_at(self, db_session):
        repo = ExchangeRateRepository(db_session)
        assert await repo.get_last_updated_at() is None

        newest = datetime(2025, 12, 2, 12, 0, 0)
        await store_rates(db_session, {("USD", "EUR"): "0.9"}, updated_at=newest - timedelta(days=1))
        await store_rates(db_session, {("USD", "GBP"): "0.8"}, updated_at=newest)

        assert await repo.get_last_updated_at() == newest

    @pytest.mark.asyncio
    async def test_get_all_rates_ordered(self, db_session):
        await store_rates(db_session, {("USD", "GBP"): "0.8", ("EUR", "USD"): "1.1", ("USD", "EUR"): "0.9"})

        rows = await ExchangeRateRepository(db_session).get_all_rates()

        assert [row.pair for row in rows] == ["EUR/USD", "USD/EUR", "USD/GBP"]

    @pytest.mark.asyncio
    async def test_get_recent_rates(self, db_session):
        now = datetime.utcnow()
        await store_rates(db_session, {("USD", "EUR"): "0.9"}, updated_at=now - timedelta(days=3))
        await store_rates(db_session, {("USD", "GBP"): "0.8"}, updated_at=now)

        recent = await ExchangeRateRepository(db_session).get_recent_rates(now - timedelta(days=1))

        assert [row.pair for row in recent] == ["USD/GBP"]
