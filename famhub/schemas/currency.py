"""
FamHub - Currency Schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from famhub.db.models.currency import CurrencyType


class CurrencyBase(BaseModel):
    """Base currency schema."""
    code: str = Field(..., min_length=2, max_length=10, description="Currency code, e.g. EUR or BTC")
    name: str = Field(..., min_length=1, max_length=100)
    symbol: str = Field(..., min_length=1, max_length=10)
    currency_type: CurrencyType

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()


class CurrencyCreate(CurrencyBase):
    """Schema for creating a currency."""
    is_active: bool = True
    display_order: int = Field(0, ge=0, description="0 places it after the last of its type")


class CurrencyUpdate(BaseModel):
    """Schema for updating a currency. Code and type are immutable."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    symbol: Optional[str] = Field(None, min_length=1, max_length=10)
    is_active: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)


class CurrencyResponse(CurrencyBase):
    """Response schema for a currency."""
    id: int
    is_active: bool
    display_order: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
