"""
Exchange Rate Repository

Database operations for the exchange_rates table (the rate store).
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from loguru import logger

from famhub.db.models.exchange_rate import ExchangeRate


_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class ExchangeRateRepository:
    """
    Repository for ExchangeRate database operations.

    Provides low-level read/upsert operations for exchange rates.
    For conversion logic, use ExchangeRateService instead.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_rate(
        self,
        from_currency: str,
        to_currency: str,
    ) -> Optional[ExchangeRate]:
        """
        Get the stored row for a currency pair.

        Args:
            from_currency: Source currency code (e.g., 'USD')
            to_currency: Target currency code (e.g., 'EUR')

        Returns:
            ExchangeRate or None if not found
        """
        result = await self.db.execute(
            select(ExchangeRate)
            .where(
                ExchangeRate.from_currency == from_currency.upper(),
                ExchangeRate.to_currency == to_currency.upper(),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_rate_value(
        self,
        from_currency: str,
        to_currency: str,
    ) -> Optional[Decimal]:
        """
        Get the stored rate value for a currency pair.

        Returns:
            Decimal rate (1 from = rate to), or None when no row exists
        """
        rate = await self.get_rate(from_currency, to_currency)
        if rate is None:
            return None
        return Decimal(rate.rate)

    async def get_all_rates(self) -> list[ExchangeRate]:
        """Get all exchange rates ordered by pair."""
        result = await self.db.execute(
            select(ExchangeRate)
            .order_by(
                ExchangeRate.from_currency,
                ExchangeRate.to_currency,
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_recent_rates(self, since: datetime) -> list[ExchangeRate]:
        """Get rows written after ``since``, newest first."""
        result = await self.db.execute(
            select(ExchangeRate)
            .where(ExchangeRate.updated_at > since)
            .order_by(ExchangeRate.updated_at.desc())
        )
        return list(result.scalars().all())

    async def get_last_updated_at(self) -> Optional[datetime]:
        """Timestamp of the most recent write to the table."""
        result = await self.db.execute(select(func.max(ExchangeRate.updated_at)))
        return result.scalar()

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(ExchangeRate.id)))
        return result.scalar() or 0

    async def upsert_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: Decimal,
        updated_at: Optional[datetime] = None,
        commit: bool = True,
    ) -> None:
        """
        Insert or update an exchange rate.

        Uses INSERT ... ON CONFLICT on PostgreSQL and SQLite so concurrent
        writers of the same pair never violate the unique constraint.

        Args:
            from_currency: Source currency code
            to_currency: Target currency code
            rate: The exchange rate value
            updated_at: Write timestamp (defaults to now)
            commit: Commit the session after the write
        """
        if updated_at is None:
            updated_at = datetime.utcnow()

        source = from_currency.upper()
        target = to_currency.upper()
        value = Decimal(str(rate))

        insert_fn = _UPSERT_INSERTS.get(self.db.get_bind().dialect.name)

        if insert_fn is not None:
            stmt = insert_fn(ExchangeRate).values(
                from_currency=source,
                to_currency=target,
                rate=value,
                updated_at=updated_at,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["from_currency", "to_currency"],
                set_={
                    "rate": stmt.excluded.rate,
                    "updated_at": stmt.excluded.updated_at,
                },
            )
            await self.db.execute(stmt)
        else:
            existing = await self.get_rate(source, target)
            if existing:
                existing.rate = value
                existing.updated_at = updated_at
            else:
                self.db.add(ExchangeRate(
                    from_currency=source,
                    to_currency=target,
                    rate=value,
                    updated_at=updated_at,
                ))

        if commit:
            await self.db.commit()

        logger.debug(f"Upserted rate: {source}/{target} = {value}")

    async def bulk_upsert_rates(self, rates: list[dict]) -> int:
        """
        Bulk insert or update exchange rates in a single transaction.

        Args:
            rates: List of dicts with keys: from_currency, to_currency, rate

        Returns:
            Number of rates processed

        Example:
            rates = [
                {"from_currency": "USD", "to_currency": "EUR", "rate": 0.92},
                {"from_currency": "USD", "to_currency": "BTC", "rate": 0.0000154},
            ]
        """
        written_at = datetime.utcnow()
        count = 0

        for rate_data in rates:
            await self.upsert_rate(
                from_currency=rate_data["from_currency"],
                to_currency=rate_data["to_currency"],
                rate=rate_data["rate"],
                updated_at=written_at,
                commit=False,
            )
            count += 1

        await self.db.commit()

        logger.info(f"Bulk upserted {count} exchange rates")
        return count
