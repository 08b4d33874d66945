"""
Currency Repository

CRUD operations for the currencies catalogue.
"""
from datetime import datetime
from typing import Optional, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from famhub.db.models.currency import Currency, CurrencyType
from famhub.utils.exceptions import CurrencyAlreadyExistsError, CurrencyNotFoundError


class CurrencyRepository:
    """Repository for Currency CRUD operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, currency_id: int) -> Optional[Currency]:
        result = await self.session.execute(
            select(Currency).where(Currency.id == currency_id)
        )
        return result.scalar_one_or_none()

    async def get_by_code(self, code: str) -> Optional[Currency]:
        result = await self.session.execute(
            select(Currency).where(Currency.code == code.upper())
        )
        return result.scalar_one_or_none()

    async def get_by_id_or_raise(self, currency_id: int) -> Currency:
        """
        Raises:
            CurrencyNotFoundError: no currency with this id
        """
        currency = await self.get_by_id(currency_id)
        if currency is None:
            raise CurrencyNotFoundError(f"Currency {currency_id} not found")
        return currency

    async def list_currencies(
        self,
        currency_type: Optional[CurrencyType] = None,
        active: Optional[bool] = True,
    ) -> List[Currency]:
        """
        List currencies ordered for display.

        Args:
            currency_type: Restrict to one asset class
            active: Filter on is_active; None returns both

        Returns:
            Currencies ordered by display_order, then code
        """
        query = select(Currency)
        if currency_type is not None:
            query = query.where(Currency.currency_type == currency_type)
        if active is not None:
            query = query.where(Currency.is_active == active)
        query = query.order_by(Currency.display_order.asc(), Currency.code.asc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_active_codes_by_type(self, currency_type: CurrencyType) -> List[str]:
        """Codes of active currencies of one type, alphabetical."""
        result = await self.session.execute(
            select(Currency.code)
            .where(Currency.currency_type == currency_type, Currency.is_active.is_(True))
            .order_by(Currency.code)
        )
        return list(result.scalars().all())

    async def get_active_codes(self) -> List[str]:
        """Codes of all active currencies, alphabetical."""
        result = await self.session.execute(
            select(Currency.code)
            .where(Currency.is_active.is_(True))
            .order_by(Currency.code)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(Currency.id)))
        return result.scalar() or 0

    async def next_display_order(self, currency_type: CurrencyType) -> int:
        result = await self.session.execute(
            select(func.max(Currency.display_order)).where(Currency.currency_type == currency_type)
        )
        return (result.scalar() or 0) + 1

    async def create(
        self,
        code: str,
        name: str,
        symbol: str,
        currency_type: CurrencyType,
        is_active: bool = True,
        display_order: int = 0,
    ) -> Currency:
        """
        Create a currency.

        A display_order of 0 places the currency after the last one of its type.

        Raises:
            CurrencyAlreadyExistsError: the code is already in the catalogue
        """
        if await self.get_by_code(code):
            raise CurrencyAlreadyExistsError(code.upper())

        if display_order == 0:
            display_order = await self.next_display_order(currency_type)

        currency = Currency(
            code=code.upper(),
            name=name,
            symbol=symbol,
            currency_type=currency_type,
            is_active=is_active,
            display_order=display_order,
        )
        self.session.add(currency)
        await self.session.commit()
        await self.session.refresh(currency)
        return currency

    async def update(self, currency: Currency, **fields) -> Currency:
        """Apply the given non-None fields to a currency."""
        for field, value in fields.items():
            if value is not None and hasattr(currency, field):
                setattr(currency, field, value)
        currency.updated_at = datetime.utcnow()

        await self.session.commit()
        await self.session.refresh(currency)
        return currency

    async def toggle_active(self, currency: Currency) -> Currency:
        currency.is_active = not currency.is_active
        currency.updated_at = datetime.utcnow()

        await self.session.commit()
        await self.session.refresh(currency)
        return currency
