"""
FamHub - Currency Endpoints
Currency catalogue management
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from famhub.db.models.currency import CurrencyType
from famhub.db.models.user import User
from famhub.db.repositories.currency import CurrencyRepository
from famhub.dependencies import (
    get_currency_repository,
    get_current_active_user,
    get_current_admin_user,
)
from famhub.schemas.currency import CurrencyCreate, CurrencyResponse, CurrencyUpdate
from famhub.utils.exceptions import (
    CurrencyAlreadyExistsError,
    CurrencyNotFoundError,
    raise_bad_request,
    raise_conflict,
    raise_not_found,
)

router = APIRouter()


@router.get("", response_model=List[CurrencyResponse])
async def list_currencies(
    currency_type: Optional[CurrencyType] = Query(None, alias="type"),
    active: Optional[bool] = Query(True, description="Filter on is_active"),
    current_user: User = Depends(get_current_active_user),
    repo: CurrencyRepository = Depends(get_currency_repository),
):
    """List currencies, active ones by default."""
    currencies = await repo.list_currencies(currency_type=currency_type, active=active)
    return [CurrencyResponse.model_validate(c) for c in currencies]


@router.get("/active", response_model=List[CurrencyResponse])
async def list_active_currencies(
    repo: CurrencyRepository = Depends(get_currency_repository),
):
    """Active currencies for currency pickers. No authentication required."""
    currencies = await repo.list_currencies(active=True)
    return [CurrencyResponse.model_validate(c) for c in currencies]


@router.get("/{currency_id}", response_model=CurrencyResponse)
async def get_currency(
    currency_id: int,
    current_user: User = Depends(get_current_active_user),
    repo: CurrencyRepository = Depends(get_currency_repository),
):
    try:
        currency = await repo.get_by_id_or_raise(currency_id)
    except CurrencyNotFoundError as e:
        raise_not_found(e.message)
    return CurrencyResponse.model_validate(currency)


@router.post("", response_model=CurrencyResponse, status_code=status.HTTP_201_CREATED)
async def create_currency(
    data: CurrencyCreate,
    current_user: User = Depends(get_current_admin_user),
    repo: CurrencyRepository = Depends(get_currency_repository),
):
    """Add a currency to the catalogue (admin only)."""
    try:
        currency = await repo.create(
            code=data.code,
            name=data.name,
            symbol=data.symbol,
            currency_type=data.currency_type,
            is_active=data.is_active,
            display_order=data.display_order,
        )
    except CurrencyAlreadyExistsError as e:
        raise_conflict(e.message)
    return CurrencyResponse.model_validate(currency)


@router.put("/{currency_id}", response_model=CurrencyResponse)
async def update_currency(
    currency_id: int,
    data: CurrencyUpdate,
    current_user: User = Depends(get_current_admin_user),
    repo: CurrencyRepository = Depends(get_currency_repository),
):
    """Update name, symbol, active flag or display order (admin only)."""
    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise_bad_request("No fields to update")

    try:
        currency = await repo.get_by_id_or_raise(currency_id)
    except CurrencyNotFoundError as e:
        raise_not_found(e.message)

    currency = await repo.update(currency, **fields)
    return CurrencyResponse.model_validate(currency)


@router.patch("/{currency_id}/toggle", response_model=CurrencyResponse)
async def toggle_currency(
    currency_id: int,
    current_user: User = Depends(get_current_admin_user),
    repo: CurrencyRepository = Depends(get_currency_repository),
):
    """Flip is_active (admin only). Inactive currencies drop out of the next refresh."""
    try:
        currency = await repo.get_by_id_or_raise(currency_id)
    except CurrencyNotFoundError as e:
        raise_not_found(e.message)

    currency = await repo.toggle_active(currency)
    return CurrencyResponse.model_validate(currency)
