"""
FamHub - Exchange Rate Model

Latest known rate per directional currency pair. Rows are upserted by the
refresh cycle and by on-demand cross-rate derivation and are never deleted;
age is judged from ``updated_at``.

A->B and B->A are separate rows and are not guaranteed to be reciprocal.

Example data:
- USD/EUR: 0.92 (1 USD = 0.92 EUR)
- USD/BTC: 0.0000154 (1 USD = 0.0000154 BTC)
- USD/GOLD: 2100 (USD price of one troy ounce)
"""
from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, DateTime, UniqueConstraint, Index

from famhub.db.database import Base


class ExchangeRate(Base):
    """Directional exchange rate.

    Attributes:
        from_currency: Source currency code (e.g., 'USD')
        to_currency: Target currency code (e.g., 'EUR')
        rate: 1 from_currency = rate to_currency
        updated_at: Last time the row was written
    """

    __tablename__ = "exchange_rates"

    id = Column(Integer, primary_key=True, index=True)

    # Currency pair (codes up to 10 chars: crypto and metal codes included)
    from_currency = Column(String(10), nullable=False)
    to_currency = Column(String(10), nullable=False)

    # Crypto legs are tiny numbers, keep plenty of scale. Backends without a
    # native decimal (sqlite) hand back floats, so reads stop at 15 places.
    rate = Column(Numeric(38, 20, decimal_return_scale=15), nullable=False, default=Decimal("1.0"))

    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('from_currency', 'to_currency', name='uq_exchange_rates_pair'),
        Index('ix_exchange_rates_pair', 'from_currency', 'to_currency'),
    )

    def __repr__(self):
        return f"<ExchangeRate {self.from_currency}/{self.to_currency}={self.rate}>"

    @property
    def pair(self) -> str:
        """Return the currency pair as a string (e.g., 'USD/EUR')."""
        return f"{self.from_currency}/{self.to_currency}"

    def to_dict(self) -> dict:
        return {
            "from_currency": self.from_currency,
            "to_currency": self.to_currency,
            "rate": Decimal(self.rate),
            "updated_at": self.updated_at,
        }
