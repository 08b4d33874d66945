"""
Currency Seeder

Populates the currencies table with the default catalogue: major fiat
currencies, the most traded cryptocurrencies and four precious metals.
Run once during initial setup, then use the API to manage the catalogue.
"""
from typing import List, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from famhub.db.models.currency import Currency, CurrencyType
from famhub.db.repositories.currency import CurrencyRepository


DEFAULT_CURRENCIES: List[Dict] = [
    # Fiat
    {"code": "USD", "name": "US Dollar", "symbol": "$", "currency_type": CurrencyType.FIAT, "order": 1},
    {"code": "EUR", "name": "Euro", "symbol": "€", "currency_type": CurrencyType.FIAT, "order": 2},
    {"code": "GBP", "name": "British Pound", "symbol": "£", "currency_type": CurrencyType.FIAT, "order": 3},
    {"code": "TRY", "name": "Turkish Lira", "symbol": "₺", "currency_type": CurrencyType.FIAT, "order": 4},
    {"code": "JPY", "name": "Japanese Yen", "symbol": "¥", "currency_type": CurrencyType.FIAT, "order": 5},
    {"code": "CNY", "name": "Chinese Yuan", "symbol": "¥", "currency_type": CurrencyType.FIAT, "order": 6},
    {"code": "CAD", "name": "Canadian Dollar", "symbol": "C$", "currency_type": CurrencyType.FIAT, "order": 7},
    {"code": "AUD", "name": "Australian Dollar", "symbol": "A$", "currency_type": CurrencyType.FIAT, "order": 8},
    {"code": "CHF", "name": "Swiss Franc", "symbol": "Fr", "currency_type": CurrencyType.FIAT, "order": 9},
    {"code": "SEK", "name": "Swedish Krona", "symbol": "kr", "currency_type": CurrencyType.FIAT, "order": 10},
    {"code": "NOK", "name": "Norwegian Krone", "symbol": "kr", "currency_type": CurrencyType.FIAT, "order": 11},
    {"code": "DKK", "name": "Danish Krone", "symbol": "kr", "currency_type": CurrencyType.FIAT, "order": 12},
    {"code": "PLN", "name": "Polish Zloty", "symbol": "zł", "currency_type": CurrencyType.FIAT, "order": 13},
    # Cryptocurrencies
    {"code": "BTC", "name": "Bitcoin", "symbol": "₿", "currency_type": CurrencyType.CRYPTOCURRENCY, "order": 20},
    {"code": "ETH", "name": "Ethereum", "symbol": "Ξ", "currency_type": CurrencyType.CRYPTOCURRENCY, "order": 21},
    {"code": "BNB", "name": "Binance Coin", "symbol": "BNB", "currency_type": CurrencyType.CRYPTOCURRENCY, "order": 22},
    {"code": "XRP", "name": "Ripple", "symbol": "XRP", "currency_type": CurrencyType.CRYPTOCURRENCY, "order": 23},
    {"code": "ADA", "name": "Cardano", "symbol": "ADA", "currency_type": CurrencyType.CRYPTOCURRENCY, "order": 24},
    {"code": "SOL", "name": "Solana", "symbol": "SOL", "currency_type": CurrencyType.CRYPTOCURRENCY, "order": 25},
    {"code": "DOT", "name": "Polkadot", "symbol": "DOT", "currency_type": CurrencyType.CRYPTOCURRENCY, "order": 26},
    {"code": "DOGE", "name": "Dogecoin", "symbol": "DOGE", "currency_type": CurrencyType.CRYPTOCURRENCY, "order": 27},
    {"code": "LTC", "name": "Litecoin", "symbol": "Ł", "currency_type": CurrencyType.CRYPTOCURRENCY, "order": 28},
    {"code": "USDT", "name": "Tether", "symbol": "USDT", "currency_type": CurrencyType.CRYPTOCURRENCY, "order": 29},
    # Precious metals
    {"code": "GOLD", "name": "Gold", "symbol": "Au", "currency_type": CurrencyType.PRECIOUS_METAL, "order": 50},
    {"code": "SILVER", "name": "Silver", "symbol": "Ag", "currency_type": CurrencyType.PRECIOUS_METAL, "order": 51},
    {"code": "PLATINUM", "name": "Platinum", "symbol": "Pt", "currency_type": CurrencyType.PRECIOUS_METAL, "order": 52},
    {"code": "PALLADIUM", "name": "Palladium", "symbol": "Pd", "currency_type": CurrencyType.PRECIOUS_METAL, "order": 53},
]


async def seed_currencies(db: AsyncSession) -> int:
    """
    Insert the default catalogue when the table is empty.

    Returns:
        Number of currencies inserted (0 when already seeded)
    """
    repo = CurrencyRepository(db)

    if await repo.count() > 0:
        logger.info("Currencies already seeded")
        return 0

    logger.info(f"Seeding {len(DEFAULT_CURRENCIES)} currencies...")
    for entry in DEFAULT_CURRENCIES:
        db.add(Currency(
            code=entry["code"],
            name=entry["name"],
            symbol=entry["symbol"],
            currency_type=entry["currency_type"],
            is_active=True,
            display_order=entry["order"],
        ))

    await db.commit()
    logger.info(f"Seeded {len(DEFAULT_CURRENCIES)} currencies")
    return len(DEFAULT_CURRENCIES)
