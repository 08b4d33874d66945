"""
Database seeders
"""
from famhub.db.seeds.currency_seeder import seed_currencies, DEFAULT_CURRENCIES

__all__ = ["seed_currencies", "DEFAULT_CURRENCIES"]
