"""
FamHub - Dependencies
Dependency injection for FastAPI endpoints
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from famhub.core.security import verify_token
from famhub.db.database import get_db
from famhub.db.models.user import User
from famhub.db.repositories.currency import CurrencyRepository
from famhub.db.repositories.user import UserRepository
from famhub.services.exchange_rate_service import ExchangeRateService


bearer_scheme = HTTPBearer(auto_error=False)


async def get_user_repository(
    db: AsyncSession = Depends(get_db)
) -> UserRepository:
    return UserRepository(db)


async def get_currency_repository(
    db: AsyncSession = Depends(get_db)
) -> CurrencyRepository:
    return CurrencyRepository(db)


def get_exchange_rate_service(request: Request) -> ExchangeRateService:
    """The service instance built at startup (app.state.exchange_rate_service)."""
    service: Optional[ExchangeRateService] = getattr(request.app.state, "exchange_rate_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Exchange rate service not initialized"
        )
    return service


def get_exchange_rate_scheduler(request: Request):
    """Scheduler built at startup, or None when disabled."""
    return getattr(request.app.state, "exchange_rate_scheduler", None)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    user_repo: UserRepository = Depends(get_user_repository)
) -> User:
    """
    Get current authenticated user from the bearer JWT.

    Raises:
        HTTPException: If token is invalid or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    user_id = verify_token(credentials.credentials)
    user = await user_repo.get_by_id(user_id) if user_id is not None else None
    if user is None:
        raise credentials_exception

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get current active user.

    Raises:
        HTTPException: If user is inactive
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )
    return current_user


async def get_current_admin_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Get current admin user.

    Raises:
        HTTPException: If user is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The user doesn't have enough privileges"
        )
    return current_user
