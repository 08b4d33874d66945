"""
FamHub - Custom Exceptions
Application-specific exceptions with HTTP error handling
"""
from typing import Optional, Any, Dict
from fastapi import HTTPException, status


class FamHubException(Exception):
    """Base exception for FamHub."""

    def __init__(
        self,
        message: str = "An error occurred",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


# =========================
# Exchange Rate Exceptions
# =========================

class ExchangeRateError(FamHubException):
    """Exchange rate related errors."""
    pass


class RateNotFoundError(ExchangeRateError):
    """No stored or derivable rate for a currency pair."""

    def __init__(self, from_currency: str, to_currency: str):
        super().__init__(
            message=f"Exchange rate not found for {from_currency} to {to_currency}",
            code="RATE_NOT_FOUND",
            details={"from_currency": from_currency, "to_currency": to_currency},
        )
        self.from_currency = from_currency
        self.to_currency = to_currency


class RateFetchError(ExchangeRateError):
    """An external rate source failed or returned garbage."""

    def __init__(self, source: str = "", message: str = "Rate source error", status_code: Optional[int] = None):
        super().__init__(
            message=f"{source}: {message}" if source else message,
            code="RATE_FETCH_ERROR",
            details={"source": source, "status_code": status_code},
        )
        self.status_code = status_code


class TotalFetchFailureError(ExchangeRateError):
    """No rates could be obtained from any source."""

    def __init__(self, message: str = "Failed to sync exchange rates - no rates fetched"):
        super().__init__(message=message, code="TOTAL_FETCH_FAILURE")


# =========================
# Currency Exceptions
# =========================

class CurrencyError(FamHubException):
    """Currency catalogue errors."""
    pass


class CurrencyNotFoundError(CurrencyError):
    """Currency not found."""

    def __init__(self, message: str = "Currency not found"):
        super().__init__(message=message, code="CURRENCY_NOT_FOUND")


class CurrencyAlreadyExistsError(CurrencyError):
    """Currency code already exists."""

    def __init__(self, code: str = ""):
        message = f"Currency code '{code}' already exists" if code else "Currency code already exists"
        super().__init__(message=message, code="CURRENCY_EXISTS")


# =========================
# HTTP Exception Helpers
# =========================

def raise_not_found(message: str = "Resource not found"):
    """Raise 404 Not Found exception."""
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=message
    )


def raise_bad_request(message: str = "Bad request"):
    """Raise 400 Bad Request exception."""
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=message
    )


def raise_conflict(message: str = "Conflict"):
    """Raise 409 Conflict exception."""
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=message
    )


def raise_bad_gateway(message: str = "Upstream service failed"):
    """Raise 502 Bad Gateway exception."""
    raise HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=message
    )
