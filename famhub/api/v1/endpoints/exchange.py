"""
FamHub - Exchange Rate Endpoints

Thin HTTP layer over ExchangeRateService:
- rate list, single-pair lookup and conversion for any signed-in user
- admin-triggered sync and refresh status
"""
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from famhub.db.models.user import User
from famhub.dependencies import (
    get_current_active_user,
    get_current_admin_user,
    get_exchange_rate_scheduler,
    get_exchange_rate_service,
)
from famhub.schemas.exchange_rate import (
    ConvertResponse,
    ExchangeRateItem,
    ExchangeRateListResponse,
    RateResponse,
    UpdateResponse,
    UpdateStatusResponse,
)
from famhub.services.exchange_rate_service import ExchangeRateService, UpdateStatus
from famhub.utils.exceptions import (
    RateNotFoundError,
    TotalFetchFailureError,
    raise_bad_gateway,
    raise_conflict,
    raise_not_found,
)


router = APIRouter()


@router.get("", response_model=ExchangeRateListResponse)
async def list_exchange_rates(
    current_user: User = Depends(get_current_active_user),
    service: ExchangeRateService = Depends(get_exchange_rate_service),
):
    """Get every stored exchange rate."""
    rates = await service.get_all_exchange_rates()
    return ExchangeRateListResponse(
        rates=[ExchangeRateItem(**rate) for rate in rates],
        updated_at=await service.get_last_updated_at(),
    )


@router.get("/convert", response_model=ConvertResponse)
async def convert_amount(
    from_currency: str = Query(..., alias="from", min_length=2, max_length=10),
    to_currency: str = Query(..., alias="to", min_length=2, max_length=10),
    amount: Decimal = Query(..., ge=0),
    current_user: User = Depends(get_current_active_user),
    service: ExchangeRateService = Depends(get_exchange_rate_service),
):
    """
    Convert an amount between two currencies.

    Pairs without a stored rate are derived through USD on the fly.
    """
    source = from_currency.upper()
    target = to_currency.upper()

    try:
        converted = await service.convert_currency(amount, source, target)
        rate = await service.get_exchange_rate(source, target)
    except RateNotFoundError as e:
        raise_not_found(e.message)

    return ConvertResponse(
        from_currency=source,
        to_currency=target,
        amount=float(amount),
        converted_amount=float(converted),
        rate=float(rate),
        timestamp=datetime.utcnow(),
    )


@router.get("/rate/{from_currency}/{to_currency}", response_model=RateResponse)
async def get_rate(
    from_currency: str,
    to_currency: str,
    current_user: User = Depends(get_current_active_user),
    service: ExchangeRateService = Depends(get_exchange_rate_service),
):
    """Get the rate for one currency pair."""
    try:
        rate = await service.get_exchange_rate(from_currency, to_currency)
    except RateNotFoundError as e:
        raise_not_found(e.message)

    return RateResponse(
        from_currency=from_currency.upper(),
        to_currency=to_currency.upper(),
        rate=float(rate),
        timestamp=datetime.utcnow(),
    )


@router.post("/update", response_model=UpdateResponse)
async def trigger_update(
    current_user: User = Depends(get_current_admin_user),
    service: ExchangeRateService = Depends(get_exchange_rate_service),
):
    """
    Sync exchange rates now (admin only).

    Returns 409 when a refresh is already running and 502 when no source
    could be reached and stored rates could not be refreshed.
    """
    logger.info(f"Manual exchange rate update triggered by user {current_user.id}")

    try:
        result = await service.force_update()
    except TotalFetchFailureError as e:
        raise_bad_gateway(e.message)

    if result.status == UpdateStatus.SKIPPED:
        raise_conflict("Exchange rate update already in progress")

    return UpdateResponse(
        message="Exchange rates updated successfully",
        result=result.to_dict(),
        timestamp=datetime.utcnow(),
    )


@router.get("/status", response_model=UpdateStatusResponse, status_code=status.HTTP_200_OK)
async def update_status(
    current_user: User = Depends(get_current_admin_user),
    service: ExchangeRateService = Depends(get_exchange_rate_service),
    scheduler=Depends(get_exchange_rate_scheduler),
):
    """Refresh state, last result and scheduled jobs (admin only)."""
    last_result = service.last_result
    return UpdateStatusResponse(
        is_updating=service.is_updating,
        last_updated_at=await service.get_last_updated_at(),
        rate_count=await service.get_rate_count(),
        last_result=last_result.to_dict() if last_result else None,
        scheduler=scheduler.get_jobs_status() if scheduler else None,
    )
