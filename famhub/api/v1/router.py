"""
FamHub - API v1 Router
"""
from fastapi import APIRouter

from famhub.api.v1.endpoints import currencies, exchange

api_router = APIRouter()


# API v1 root endpoint
@api_router.get("/", tags=["API Info"])
async def api_root():
    """API v1 root - returns version info."""
    return {
        "api": "FamHub Exchange Rates",
        "version": "v1",
        "status": "operational"
    }


api_router.include_router(exchange.router, prefix="/exchange-rates", tags=["Exchange Rates"])
api_router.include_router(currencies.router, prefix="/currencies", tags=["Currencies"])
