"""
Rate Fallback Policy

What happens when a refresh cycle obtains no rates at all:

    FRESH  - newest stored rate is within the threshold, keep serving it
    STALE  - older than the threshold, try a rescrape (keyless endpoint)
    FAILED - rescrape also failed, keep serving the last known values

Thresholds: 24 hours for routine refreshes, 1 hour for a forced sync.
No transition ever deletes a rate.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from loguru import logger

from famhub.config import Settings, settings as default_settings
from famhub.db.repositories.exchange_rate import ExchangeRateRepository


class RateFreshness(str, Enum):
    """State of the stored rate set."""
    FRESH = "fresh"
    STALE = "stale"
    FAILED = "failed"


def staleness_threshold(forced: bool = False, settings: Optional[Settings] = None) -> timedelta:
    """Maximum age of stored rates before a rescrape is attempted."""
    settings = settings or default_settings
    if forced:
        return timedelta(hours=settings.EXCHANGE_RATE_FORCED_STALE_HOURS)
    return timedelta(hours=settings.EXCHANGE_RATE_STALE_HOURS)


def classify_rate_age(
    updated_at: Optional[datetime],
    threshold: timedelta,
    now: Optional[datetime] = None,
) -> RateFreshness:
    """
    FRESH when ``updated_at`` is within ``threshold`` of ``now``, else STALE.

    A missing timestamp (empty store) is STALE.
    """
    if updated_at is None:
        return RateFreshness.STALE
    now = now or datetime.utcnow()
    if now - updated_at <= threshold:
        return RateFreshness.FRESH
    return RateFreshness.STALE


RescrapeFn = Callable[[], Awaitable[List[dict]]]


class FallbackPolicy:
    """Applies the FRESH -> STALE -> FAILED policy after a total fetch failure."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    async def apply(
        self,
        repo: ExchangeRateRepository,
        rescrape: RescrapeFn,
        forced: bool = False,
    ) -> tuple[RateFreshness, int]:
        """
        Decide what to do with the stored rates.

        Args:
            repo: Rate store
            rescrape: Coroutine factory returning raw rate dicts
            forced: Use the short forced-sync threshold

        Returns:
            Tuple of (final state, number of rescraped rates stored)
        """
        threshold = staleness_threshold(forced, self.settings)
        now = datetime.utcnow()
        recent = await repo.get_recent_rates(now - threshold)
        last_updated = recent[0].updated_at if recent else None
        state = classify_rate_age(last_updated, threshold, now)

        if state == RateFreshness.FRESH:
            logger.info(
                f"Live fetch failed; keeping {len(recent)} rates updated within {threshold} "
                f"(newest {last_updated})"
            )
            return RateFreshness.FRESH, 0

        logger.warning(f"No rates updated within {threshold}, attempting rescrape...")

        try:
            rates = await rescrape()
        except Exception as e:
            logger.error(f"Rescrape failed: {e}")
            rates = []

        if rates:
            stored = await repo.bulk_upsert_rates(rates)
            logger.info(f"Rescraped {stored} rates successfully")
            return RateFreshness.FRESH, stored

        logger.warning(
            "All syncing methods failed; continuing on last known exchange rates. "
            "Check network connectivity and CURRENCY_API_KEY."
        )
        return RateFreshness.FAILED, 0
