"""
FamHub - Pydantic Schemas
"""
from famhub.schemas.currency import (
    CurrencyBase,
    CurrencyCreate,
    CurrencyUpdate,
    CurrencyResponse,
)

from famhub.schemas.exchange_rate import (
    ExchangeRateItem,
    ExchangeRateListResponse,
    RateResponse,
    ConvertResponse,
    UpdateResponse,
    UpdateStatusResponse,
)
