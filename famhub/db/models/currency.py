"""
FamHub - Currency Model

Catalogue of currencies a household can book amounts in. The currency type
decides which rate source the exchange-rate refresh uses for it.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum
import enum

from famhub.db.database import Base


class CurrencyType(str, enum.Enum):
    """Asset class of a currency."""
    FIAT = "fiat"
    CRYPTOCURRENCY = "cryptocurrency"
    PRECIOUS_METAL = "precious_metal"


class Currency(Base):
    """Currency catalogue entry."""

    __tablename__ = "currencies"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(10), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    symbol = Column(String(10), nullable=False)
    currency_type = Column(
        SQLEnum(
            CurrencyType,
            name="currency_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=CurrencyType.FIAT,
    )
    is_active = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Currency {self.code} ({self.currency_type.value if self.currency_type else '?'})>"

    @property
    def is_crypto(self) -> bool:
        return self.currency_type == CurrencyType.CRYPTOCURRENCY
