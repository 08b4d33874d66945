"""
FamHub - Main Application Entry Point
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from famhub.config import settings
from famhub.api.v1.router import api_router
from famhub.db.database import async_session_maker, engine, init_db
from famhub.db.seeds import seed_currencies
from famhub.scheduler import ExchangeRateScheduler
from famhub.services.exchange_rate_service import ExchangeRateService
from famhub.utils.logger import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events handler."""
    # Startup
    configure_logging()
    logger.info("Starting FamHub exchange rate service...")

    await init_db()
    logger.info("Database initialized")

    async with async_session_maker() as db:
        seeded = await seed_currencies(db)
    if seeded:
        logger.info(f"Seeded {seeded} default currencies")

    service = ExchangeRateService(async_session_maker)
    app.state.exchange_rate_service = service
    app.state.exchange_rate_scheduler = None

    if settings.ENABLE_EXCHANGE_RATE_SCHEDULER:
        scheduler = ExchangeRateScheduler(service)
        scheduler.start()
        app.state.exchange_rate_scheduler = scheduler
    else:
        logger.info("Exchange rate scheduler disabled")

    logger.info("FamHub started successfully")

    yield

    # Shutdown
    logger.info("Shutting down FamHub...")
    scheduler = app.state.exchange_rate_scheduler
    if scheduler is not None:
        scheduler.stop()
    await engine.dispose()
    logger.info("Goodbye!")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        description="Household finance exchange rates: fiat, crypto and precious metals",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for load balancers."""
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": "1.0.0"
        }

    return app


# Create the application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "famhub.main:app",
        host=settings.BACKEND_HOST,
        port=settings.BACKEND_PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
