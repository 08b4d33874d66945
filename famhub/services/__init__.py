"""
FamHub Services
"""
from famhub.services.exchange_rate_service import (
    ExchangeRateService,
    UpdateResult,
    UpdateStatus,
)
from famhub.services.rate_fallback import FallbackPolicy, RateFreshness

__all__ = [
    "ExchangeRateService",
    "UpdateResult",
    "UpdateStatus",
    "FallbackPolicy",
    "RateFreshness",
]
