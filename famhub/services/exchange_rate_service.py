"""
FamHub - Exchange Rate Service

Conversion API and refresh cycle for the rate store.

One instance is built at startup (see famhub.main) and shared by the
scheduler and the HTTP layer. A refresh cycle:

1. Load active currencies grouped by type
2. Collect fiat / crypto / metal rates (RateCollector)
3. Bulk upsert into exchange_rates
4. Derive cross rates for every active pair still missing a row

When step 2 yields nothing at all the fallback policy decides whether the
stored rates are still good enough or a keyless rescrape is needed.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from famhub.config import Settings, settings as default_settings
from famhub.db.models.currency import CurrencyType
from famhub.db.repositories.currency import CurrencyRepository
from famhub.db.repositories.exchange_rate import ExchangeRateRepository
from famhub.services.cross_rates import CrossRateDeriver
from famhub.services.rate_fallback import FallbackPolicy, RateFreshness
from famhub.services.rate_fetchers import (
    CryptoPriceFetcher,
    FiatRateFetcher,
    MetalPriceSource,
    RateCollector,
    StaticMetalPriceSource,
)
from famhub.utils.exceptions import TotalFetchFailureError


# =============================================================================
# Refresh result
# =============================================================================

class UpdateStatus(str, Enum):
    """Outcome of one refresh trigger."""
    SUCCESS = "success"
    PARTIAL = "partial"
    TOTAL_FAILURE = "total_failure"
    SKIPPED = "skipped"


@dataclass
class UpdateResult:
    """What a refresh cycle did; callers pick their own policy from it."""
    status: UpdateStatus
    rates_updated: int = 0
    cross_rates_created: int = 0
    failures: List[str] = field(default_factory=list)
    fallback_state: Optional[RateFreshness] = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
    reason: Optional[str] = None

    @property
    def is_total_failure(self) -> bool:
        return self.status == UpdateStatus.TOTAL_FAILURE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "rates_updated": self.rates_updated,
            "cross_rates_created": self.cross_rates_created,
            "failures": list(self.failures),
            "fallback_state": self.fallback_state.value if self.fallback_state else None,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "reason": self.reason,
        }


# =============================================================================
# Service
# =============================================================================

class ExchangeRateService:
    """
    Exchange rate lookups, conversions and the refresh cycle.

    Usage:
        service = ExchangeRateService(async_session_maker)
        rate = await service.get_exchange_rate("EUR", "BTC")
        result = await service.update_exchange_rates()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        fiat_fetcher: Optional[FiatRateFetcher] = None,
        crypto_fetcher: Optional[CryptoPriceFetcher] = None,
        metal_source: Optional[MetalPriceSource] = None,
        settings: Optional[Settings] = None,
        fallback_policy: Optional[FallbackPolicy] = None,
    ):
        self.session_factory = session_factory
        self.settings = settings or default_settings
        self.fiat_fetcher = fiat_fetcher or FiatRateFetcher()
        self.crypto_fetcher = crypto_fetcher or CryptoPriceFetcher()
        self.metal_source = metal_source or StaticMetalPriceSource()
        self.collector = RateCollector(self.fiat_fetcher, self.crypto_fetcher, self.metal_source)
        self.fallback_policy = fallback_policy or FallbackPolicy(self.settings)

        self._update_lock = asyncio.Lock()
        self._last_success_at: Optional[datetime] = None
        self._last_result: Optional[UpdateResult] = None

    @property
    def is_updating(self) -> bool:
        return self._update_lock.locked()

    @property
    def last_result(self) -> Optional[UpdateResult]:
        return self._last_result

    # ==================== Conversion API ====================

    async def get_exchange_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """
        Rate for 1 unit of ``from_currency`` in ``to_currency``.

        Falls back to deriving the pair through USD (and storing it) when no
        direct row exists.

        Raises:
            RateNotFoundError: no stored row and no USD legs to derive from
        """
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()

        if from_currency == to_currency:
            return Decimal("1")

        async with self.session_factory() as session:
            repo = ExchangeRateRepository(session)
            rate = await repo.get_rate_value(from_currency, to_currency)
            if rate is not None:
                return rate

            logger.debug(f"No stored rate for {from_currency}/{to_currency}, deriving via USD")
            crypto_codes = await CurrencyRepository(session).get_active_codes_by_type(
                CurrencyType.CRYPTOCURRENCY
            )
            deriver = CrossRateDeriver(repo, crypto_codes)
            return await deriver.derive_pair(from_currency, to_currency)

    async def convert_currency(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
    ) -> Decimal:
        """
        Convert an amount between currencies.

        Returns:
            amount * rate, unrounded

        Raises:
            RateNotFoundError: see get_exchange_rate()
        """
        rate = await self.get_exchange_rate(from_currency, to_currency)
        return Decimal(amount) * rate

    async def get_all_exchange_rates(self) -> List[Dict[str, Any]]:
        """Every stored row as {from_currency, to_currency, rate, updated_at}."""
        async with self.session_factory() as session:
            rows = await ExchangeRateRepository(session).get_all_rates()
            return [row.to_dict() for row in rows]

    async def get_last_updated_at(self) -> Optional[datetime]:
        async with self.session_factory() as session:
            return await ExchangeRateRepository(session).get_last_updated_at()

    async def get_rate_count(self) -> int:
        async with self.session_factory() as session:
            return await ExchangeRateRepository(session).count()

    # ==================== Refresh ====================

    def _in_cooldown(self, now: datetime) -> bool:
        if self._last_success_at is None:
            return False
        cooldown = timedelta(minutes=self.settings.EXCHANGE_RATE_MIN_REFRESH_MINUTES)
        return now - self._last_success_at < cooldown

    async def update_exchange_rates(self, forced: bool = False) -> UpdateResult:
        """
        Run one refresh cycle unless another is already running.

        Args:
            forced: Ignore the cooldown and use the short staleness threshold

        Returns:
            UpdateResult; SKIPPED when a cycle is in flight or the cooldown
            has not elapsed
        """
        if self._update_lock.locked():
            logger.info("Exchange rate update already in progress, skipping")
            return UpdateResult(
                status=UpdateStatus.SKIPPED,
                finished_at=datetime.utcnow(),
                reason="update already in progress",
            )

        if not forced and self._in_cooldown(datetime.utcnow()):
            logger.info(
                f"Last successful update at {self._last_success_at}, "
                f"within {self.settings.EXCHANGE_RATE_MIN_REFRESH_MINUTES}min cooldown; skipping"
            )
            return UpdateResult(
                status=UpdateStatus.SKIPPED,
                finished_at=datetime.utcnow(),
                reason="cooldown",
            )

        async with self._update_lock:
            result = await self._run_cycle(forced)

        self._last_result = result
        if result.status in (UpdateStatus.SUCCESS, UpdateStatus.PARTIAL):
            self._last_success_at = result.finished_at
        return result

    async def force_update(self) -> UpdateResult:
        """
        Admin "sync now": refresh immediately, bypassing the cooldown.

        Raises:
            TotalFetchFailureError: nothing could be fetched and the fallback
                rescrape failed as well
        """
        logger.info("Forced exchange rate update requested")
        result = await self.update_exchange_rates(forced=True)

        if result.is_total_failure and result.fallback_state == RateFreshness.FAILED:
            raise TotalFetchFailureError(
                "Failed to fetch exchange rates from every source; serving last known rates"
            )
        return result

    async def _run_cycle(self, forced: bool) -> UpdateResult:
        result = UpdateResult(status=UpdateStatus.SUCCESS)
        logger.info(f"Starting exchange rate update (forced={forced})")

        async with self.session_factory() as session:
            currency_repo = CurrencyRepository(session)
            rate_repo = ExchangeRateRepository(session)

            fiats = await currency_repo.get_active_codes_by_type(CurrencyType.FIAT)
            cryptos = await currency_repo.get_active_codes_by_type(CurrencyType.CRYPTOCURRENCY)
            metals = await currency_repo.get_active_codes_by_type(CurrencyType.PRECIOUS_METAL)

            if not self.fiat_fetcher.has_api_key:
                logger.warning("CURRENCY_API_KEY not set, using the keyless endpoint")

            outcome = await self.collector.collect(fiats, cryptos, metals)
            result.failures = list(outcome.failures)

            if not outcome.rates:
                result.status = UpdateStatus.TOTAL_FAILURE

                async def rescrape() -> List[dict]:
                    retry = await self.collector.collect(fiats, cryptos, metals, use_api_key=False)
                    result.failures.extend(retry.failures)
                    return retry.rates

                state, rescraped = await self.fallback_policy.apply(rate_repo, rescrape, forced=forced)
                result.fallback_state = state
                result.rates_updated = rescraped
            else:
                result.rates_updated = await rate_repo.bulk_upsert_rates(outcome.rates)
                if outcome.failures:
                    result.status = UpdateStatus.PARTIAL

            if result.rates_updated:
                deriver = CrossRateDeriver(rate_repo, cryptos)
                created, _ = await deriver.create_cross_conversions(fiats + cryptos + metals)
                result.cross_rates_created = created

        result.finished_at = datetime.utcnow()
        log = logger.error if result.is_total_failure else logger.info
        log(
            f"Exchange rate update finished: status={result.status.value}, "
            f"rates={result.rates_updated}, cross={result.cross_rates_created}, "
            f"failures={len(result.failures)}"
        )
        return result
