"""
FamHub - Data Repositories

Repository pattern implementations for database operations.
"""
from famhub.db.repositories.user import UserRepository
from famhub.db.repositories.currency import CurrencyRepository
from famhub.db.repositories.exchange_rate import ExchangeRateRepository

__all__ = [
    "UserRepository",
    "CurrencyRepository",
    "ExchangeRateRepository",
]
