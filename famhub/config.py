"""
FamHub - Configuration Settings
"""
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
import json


class Settings(BaseSettings):
    """Settings read from the process environment and an optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # =========================
    # Application Settings
    # =========================
    APP_NAME: str = "FamHub"
    APP_ENV: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str = "change-this-in-production"
    API_V1_PREFIX: str = "/api/v1"

    # =========================
    # Server Configuration
    # =========================
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 8000
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",")]
        return v

    # =========================
    # Database
    # =========================
    # A non-empty DATABASE_URL wins over the POSTGRES_* parts
    DATABASE_URL: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "famhub"
    POSTGRES_USER: str = "famhub"
    POSTGRES_PASSWORD: str = "famhub"

    @property
    def database_url(self) -> str:
        """Async URL for the application engine."""
        if not self.DATABASE_URL:
            return (
                f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )
        scheme, sep, rest = self.DATABASE_URL.partition("://")
        if scheme in ("postgres", "postgresql"):
            return f"postgresql+asyncpg{sep}{rest}"
        return self.DATABASE_URL

    @property
    def DATABASE_URL_SYNC(self) -> str:
        """Same database through a blocking driver, for Alembic."""
        scheme, sep, rest = self.database_url.partition("://")
        return f"{scheme.split('+', 1)[0]}{sep}{rest}"

    # =========================
    # JWT Authentication
    # =========================
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # =========================
    # Exchange Rates
    # =========================
    # Empty key means the keyless v4 endpoint is used (daily updates only)
    CURRENCY_API_KEY: str = ""
    EXCHANGE_RATE_API_URL: str = "https://v6.exchangerate-api.com/v6"
    EXCHANGE_RATE_FREE_API_URL: str = "https://api.exchangerate-api.com/v4/latest"
    CRYPTO_PRICE_API_URL: str = "https://query2.finance.yahoo.com/v8/finance/chart"
    CRYPTO_SCRAPE_URL: str = "https://coinmarketcap.com/currencies"
    EXCHANGE_RATE_HTTP_TIMEOUT: float = 15.0
    CRYPTO_HTTP_TIMEOUT: float = 10.0

    # =========================
    # Scheduler Settings
    # =========================
    ENABLE_EXCHANGE_RATE_SCHEDULER: bool = True
    EXCHANGE_RATE_UPDATE_CRON: str = "0 */6 * * *"
    EXCHANGE_RATE_STARTUP_DELAY_SECONDS: int = 5
    EXCHANGE_RATE_MIN_REFRESH_MINUTES: int = 30
    EXCHANGE_RATE_STALE_HOURS: int = 24
    EXCHANGE_RATE_FORCED_STALE_HOURS: int = 1
    TIMEZONE: str = "UTC"

    # =========================
    # Logging
    # =========================
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"


# imported everywhere as famhub.config.settings
settings = Settings()
