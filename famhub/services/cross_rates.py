"""
Cross-Rate Deriver

Fills in currency pairs without a direct quote by pivoting through USD.

Both the batch pass run after each refresh and the on-demand single-pair
lookup go through resolve_cross_rate(), so identical stored legs always give
identical numbers.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional

from loguru import logger

from famhub.db.repositories.exchange_rate import ExchangeRateRepository
from famhub.services.rate_fetchers import PIVOT_CURRENCY
from famhub.utils.exceptions import RateNotFoundError


def derive_cross_rate(
    a_to_usd: Decimal,
    usd_to_b: Decimal,
    is_a_crypto: bool,
    is_b_crypto: bool,
    from_currency: Optional[str] = None,
    to_currency: Optional[str] = None,
) -> Decimal:
    """
    Cross rate A->B from the stored A->USD and USD->B legs.

    - A is USD: USD->B
    - B is USD: A->USD
    - crypto to non-crypto: (USD->B) / (A->USD)
    - everything else: (A->USD) / (USD->B)

    The crypto row reads A's leg as units of A per USD, which is not how the
    store records A->USD; resolve_cross_rate() only calls this for pairs
    touching USD.
    """
    if from_currency == PIVOT_CURRENCY:
        return usd_to_b
    if to_currency == PIVOT_CURRENCY:
        return a_to_usd
    if is_a_crypto and not is_b_crypto:
        return usd_to_b / a_to_usd
    return a_to_usd / usd_to_b


@dataclass(frozen=True)
class CrossRateLegs:
    """Stored USD legs available for one pair (None when the row is missing)."""
    from_to_usd: Optional[Decimal] = None
    usd_to_to: Optional[Decimal] = None
    usd_to_from: Optional[Decimal] = None


def _usable(value: Optional[Decimal]) -> bool:
    return value is not None and value > 0


def resolve_cross_rate(
    from_currency: str,
    to_currency: str,
    legs: CrossRateLegs,
    crypto_codes: Iterable[str],
) -> Decimal:
    """
    Derive A->B from whichever USD legs exist.

    Every stored row reads "1 FROM = rate TO", crypto and metals included, so
    a stored A->USD leg is USD per A. Pairs touching USD go through
    derive_cross_rate(). Any other pair is the ratio of the two USD quotes,
    (USD->B) / (USD->A); when USD->A is missing it is taken as 1 / (A->USD).

    Raises:
        RateNotFoundError: the legs needed for the pair are missing
    """
    if from_currency == to_currency:
        return Decimal("1")

    crypto = set(crypto_codes)
    is_from_crypto = from_currency in crypto
    is_to_crypto = to_currency in crypto

    if from_currency == PIVOT_CURRENCY:
        if not _usable(legs.usd_to_to):
            raise RateNotFoundError(from_currency, to_currency)
        return derive_cross_rate(
            Decimal("1"), legs.usd_to_to, False, is_to_crypto, from_currency, to_currency,
        )

    if to_currency == PIVOT_CURRENCY:
        if _usable(legs.from_to_usd):
            from_to_usd = legs.from_to_usd
        elif _usable(legs.usd_to_from):
            from_to_usd = Decimal("1") / legs.usd_to_from
        else:
            raise RateNotFoundError(from_currency, to_currency)
        return derive_cross_rate(
            from_to_usd, Decimal("1"), is_from_crypto, False, from_currency, to_currency,
        )

    if _usable(legs.usd_to_from):
        usd_to_from = legs.usd_to_from
    elif _usable(legs.from_to_usd):
        usd_to_from = Decimal("1") / legs.from_to_usd
    else:
        raise RateNotFoundError(from_currency, to_currency)

    if not _usable(legs.usd_to_to):
        raise RateNotFoundError(from_currency, to_currency)
    return legs.usd_to_to / usd_to_from


def legs_from_table(
    table: Dict[tuple[str, str], Decimal],
    from_currency: str,
    to_currency: str,
) -> CrossRateLegs:
    """Pick the USD legs for a pair out of an in-memory (from, to) -> rate table."""
    return CrossRateLegs(
        from_to_usd=table.get((from_currency, PIVOT_CURRENCY)),
        usd_to_to=table.get((PIVOT_CURRENCY, to_currency)),
        usd_to_from=table.get((PIVOT_CURRENCY, from_currency)),
    )


class CrossRateDeriver:
    """
    Derives and persists pivot-through-USD rates.

    Usage:
        deriver = CrossRateDeriver(repo, crypto_codes=["BTC", "ETH"])
        rate = await deriver.derive_pair("EUR", "BTC")
        created, failed = await deriver.create_cross_conversions(active_codes)
    """

    def __init__(self, repo: ExchangeRateRepository, crypto_codes: Iterable[str]):
        self.repo = repo
        self.crypto_codes = set(crypto_codes)

    async def load_legs(self, from_currency: str, to_currency: str) -> CrossRateLegs:
        return CrossRateLegs(
            from_to_usd=await self.repo.get_rate_value(from_currency, PIVOT_CURRENCY),
            usd_to_to=await self.repo.get_rate_value(PIVOT_CURRENCY, to_currency),
            usd_to_from=await self.repo.get_rate_value(PIVOT_CURRENCY, from_currency),
        )

    async def derive_pair(self, from_currency: str, to_currency: str) -> Decimal:
        """
        Derive a single pair and store it.

        Raises:
            RateNotFoundError: the USD legs are missing
        """
        legs = await self.load_legs(from_currency, to_currency)
        rate = resolve_cross_rate(from_currency, to_currency, legs, self.crypto_codes)

        await self.repo.upsert_rate(from_currency, to_currency, rate)
        # hand back what the column kept so later lookups return the same number
        stored = await self.repo.get_rate_value(from_currency, to_currency)
        logger.info(f"Derived cross rate {from_currency}/{to_currency} = {stored}")
        return stored

    async def create_cross_conversions(self, codes: Iterable[str]) -> tuple[int, int]:
        """
        Derive every ordered pair of ``codes`` that has no stored row.

        Legs are read from one snapshot of the table taken before the pass, so
        the outcome does not depend on iteration order.

        Returns:
            Tuple of (pairs created, pairs that could not be derived)
        """
        codes = list(codes)
        rows = await self.repo.get_all_rates()
        table = {(row.from_currency, row.to_currency): Decimal(row.rate) for row in rows}

        logger.info(
            f"Creating cross-conversions for {len(codes)} currencies "
            f"({len(codes) * (len(codes) - 1)} possible pairs)"
        )

        derived = []
        failed = 0
        for from_currency in codes:
            for to_currency in codes:
                if from_currency == to_currency or (from_currency, to_currency) in table:
                    continue
                legs = legs_from_table(table, from_currency, to_currency)
                try:
                    rate = resolve_cross_rate(from_currency, to_currency, legs, self.crypto_codes)
                except RateNotFoundError:
                    logger.warning(f"Cannot derive {from_currency}/{to_currency}: missing USD legs")
                    failed += 1
                    continue
                except ArithmeticError as e:
                    logger.warning(f"Cannot derive {from_currency}/{to_currency}: {e}")
                    failed += 1
                    continue
                derived.append({
                    "from_currency": from_currency,
                    "to_currency": to_currency,
                    "rate": rate,
                })

        if derived:
            await self.repo.bulk_upsert_rates(derived)

        logger.info(f"Created {len(derived)} cross-currency conversions ({failed} not derivable)")
        return len(derived), failed
