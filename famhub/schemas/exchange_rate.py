"""
FamHub - Exchange Rate Schemas
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class ExchangeRateItem(BaseModel):
    """One stored rate: 1 from_currency = rate to_currency."""
    from_currency: str
    to_currency: str
    rate: float
    updated_at: Optional[datetime] = None


class ExchangeRateListResponse(BaseModel):
    rates: List[ExchangeRateItem]
    updated_at: Optional[datetime] = None


class RateResponse(BaseModel):
    from_currency: str
    to_currency: str
    rate: float
    timestamp: datetime


class ConvertResponse(BaseModel):
    """Response schema for currency conversion."""
    from_currency: str
    to_currency: str
    amount: float
    converted_amount: float
    rate: float
    timestamp: datetime


class UpdateResponse(BaseModel):
    """Response for an admin-triggered sync."""
    message: str
    result: Dict[str, Any]
    timestamp: datetime


class UpdateStatusResponse(BaseModel):
    is_updating: bool
    last_updated_at: Optional[datetime] = None
    rate_count: int
    last_result: Optional[Dict[str, Any]] = None
    scheduler: Optional[Dict[str, Any]] = None
