"""
FamHub - Database Models
"""
from famhub.db.models.user import User, UserRole
from famhub.db.models.currency import Currency, CurrencyType
from famhub.db.models.exchange_rate import ExchangeRate

__all__ = [
    "User",
    "UserRole",
    "Currency",
    "CurrencyType",
    "ExchangeRate",
]
