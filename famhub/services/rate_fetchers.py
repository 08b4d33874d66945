"""
Rate Fetchers

Per-asset-class clients that turn external market data into raw
(from_currency, to_currency, rate) triples:

1. Fiat - ExchangeRate-API, one call per base currency returns the full table.
   Keyed v6 endpoint when CURRENCY_API_KEY is set, keyless v4 endpoint otherwise
   (updated once a day, no key required).
2. Crypto - market-data chart API, USD price per coin, fetched once per cycle.
   CoinMarketCap currency pages are scraped for coins the API fails on.
3. Precious metals - no live feed; static USD-per-troy-ounce estimates behind a
   pluggable MetalPriceSource.

Example API call:
GET https://api.exchangerate-api.com/v4/latest/EUR
Response: {"base":"EUR","date":"2025-12-18","rates":{"EUR":1,"USD":1.08,"GBP":0.86,...}}
"""
import re
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from famhub.config import settings
from famhub.utils.exceptions import RateFetchError


# Pivot currency for every crypto/metal derivation
PIVOT_CURRENCY = "USD"

# Crypto code -> market-data ticker
CRYPTO_TICKERS: Dict[str, str] = {
    "BTC": "BTC-USD",
    "ETH": "ETH-USD",
    "XRP": "XRP-USD",
    "LTC": "LTC-USD",
    "SOL": "SOL-USD",
    "BNB": "BNB-USD",
    "ADA": "ADA-USD",
    "DOT": "DOT-USD",
    "DOGE": "DOGE-USD",
    "USDT": "USDT-USD",
    "MATIC": "MATIC-USD",
    "AVAX": "AVAX-USD",
    "LINK": "LINK-USD",
    "UNI": "UNI-USD",
}

# Crypto code -> CoinMarketCap page slug, used when the chart API fails
CMC_SLUGS: Dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "XRP": "ripple",
    "LTC": "litecoin",
    "SOL": "solana",
    "BNB": "bnb",
    "ADA": "cardano",
    "DOT": "polkadot",
    "DOGE": "dogecoin",
    "USDT": "tether",
    "MATIC": "polygon",
    "AVAX": "avalanche",
    "LINK": "chainlink",
    "UNI": "uniswap",
}

# Tried in order; the page markup changes between CoinMarketCap releases
CMC_PRICE_SELECTORS = (
    'span[class*="priceValue"]',
    'span.sc-aef7b723-0.bsFTBp',
    ".priceValue",
    '[data-test="text-cdp-price-display"]',
)

# Approximate USD price per troy ounce. Placeholder values, not a live feed.
STATIC_METAL_PRICES_USD: Dict[str, Decimal] = {
    "GOLD": Decimal("2100"),
    "SILVER": Decimal("25"),
    "PLATINUM": Decimal("1100"),
    "PALLADIUM": Decimal("1100"),
}

BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def _to_decimal(value) -> Optional[Decimal]:
    """Parse a provider number; None for missing, non-numeric or non-positive values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite() or parsed <= 0:
        return None
    return parsed


def parse_cmc_price(html: str) -> Optional[Decimal]:
    """First parseable price on a CoinMarketCap currency page, or None."""
    soup = BeautifulSoup(html, "html.parser")
    for selector in CMC_PRICE_SELECTORS:
        for element in soup.select(selector):
            price = _to_decimal(re.sub(r"[$,\s]", "", element.get_text()))
            if price is not None:
                return price
    return None


# =============================================================================
# Fiat
# =============================================================================

class FiatRateFetcher:
    """
    Client for the fiat FX-rate API.

    Usage:
        fetcher = FiatRateFetcher(api_key="...")
        table = await fetcher.fetch_rate_table("EUR")
        table["USD"]  # 1 EUR in USD
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        api_url: Optional[str] = None,
        free_api_url: Optional[str] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.CURRENCY_API_KEY
        self.timeout = timeout or settings.EXCHANGE_RATE_HTTP_TIMEOUT
        self.api_url = (api_url or settings.EXCHANGE_RATE_API_URL).rstrip("/")
        self.free_api_url = (free_api_url or settings.EXCHANGE_RATE_FREE_API_URL).rstrip("/")

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def build_request(self, base: str, use_api_key: bool = True) -> tuple[str, dict]:
        """
        Build URL and query params for a base currency.

        The keyless endpoint is cached aggressively upstream, so it gets
        cache-busting params.
        """
        if use_api_key and self.api_key:
            return f"{self.api_url}/{self.api_key}/latest/{base}", {}

        params = {
            "t": str(int(time.time() * 1000)),
            "r": uuid.uuid4().hex[:6],
        }
        return f"{self.free_api_url}/{base}", params

    async def fetch_rate_table(self, base: str, use_api_key: bool = True) -> Dict[str, Decimal]:
        """
        Fetch the full rate table for one base currency.

        Args:
            base: Base currency code
            use_api_key: Use the keyed endpoint when a key is configured

        Returns:
            Dict mapping currency code -> units per 1 base

        Raises:
            RateFetchError: network error, non-2xx status or malformed body
        """
        base = base.upper()
        url, params = self.build_request(base, use_api_key)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    url,
                    params=params,
                    headers={"Cache-Control": "no-cache", "Pragma": "no-cache"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise RateFetchError(
                "exchangerate-api",
                f"HTTP {e.response.status_code} for base {base}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise RateFetchError("exchangerate-api", f"Request error for base {base}: {e}") from e
        except ValueError as e:
            raise RateFetchError("exchangerate-api", f"Invalid JSON for base {base}") from e

        # v4 uses "rates", v6 uses "conversion_rates"
        raw_rates = None
        if isinstance(data, dict):
            raw_rates = data.get("rates") or data.get("conversion_rates")
        if not isinstance(raw_rates, dict) or not raw_rates:
            raise RateFetchError("exchangerate-api", f"No rates in response for base {base}")

        table = {}
        for code, value in raw_rates.items():
            parsed = _to_decimal(value)
            if parsed is not None:
                table[str(code).upper()] = parsed

        logger.debug(f"Fetched {len(table)} rates for base {base}")
        return table


# =============================================================================
# Crypto
# =============================================================================

class CryptoPriceFetcher:
    """
    Client for crypto USD prices.

    The market-data chart API is asked first; when it fails for a coin the
    CoinMarketCap currency page is scraped instead.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        api_url: Optional[str] = None,
        tickers: Optional[Dict[str, str]] = None,
        scrape_url: Optional[str] = None,
        slugs: Optional[Dict[str, str]] = None,
    ):
        self.timeout = timeout or settings.CRYPTO_HTTP_TIMEOUT
        self.api_url = (api_url or settings.CRYPTO_PRICE_API_URL).rstrip("/")
        self.tickers = tickers if tickers is not None else CRYPTO_TICKERS
        self.scrape_url = (scrape_url or settings.CRYPTO_SCRAPE_URL).rstrip("/")
        self.slugs = slugs if slugs is not None else CMC_SLUGS

    def ticker_for(self, code: str) -> Optional[str]:
        return self.tickers.get(code.upper())

    def slug_for(self, code: str) -> Optional[str]:
        return self.slugs.get(code.upper())

    async def fetch_usd_price(self, code: str) -> Optional[Decimal]:
        """
        Fetch the USD price of one coin.

        Returns:
            Price in USD, or None when the coin has neither a ticker nor a slug

        Raises:
            RateFetchError: both sources failed
        """
        ticker = self.ticker_for(code)
        slug = self.slug_for(code)
        if not ticker and not slug:
            logger.debug(f"No price source for {code}, skipping")
            return None

        if ticker:
            try:
                return await self.fetch_chart_price(ticker)
            except RateFetchError as e:
                if not slug:
                    raise
                logger.warning(f"{e.message}; trying CoinMarketCap for {code}")

        return await self.scrape_usd_price(slug)

    async def fetch_chart_price(self, ticker: str) -> Decimal:
        """
        USD price for a market-data ticker.

        Raises:
            RateFetchError: network error, non-2xx status or missing price
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.api_url}/{ticker}",
                    params={"interval": "1d", "range": "1d"},
                    headers={"User-Agent": BROWSER_USER_AGENT},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise RateFetchError(
                "market-data",
                f"HTTP {e.response.status_code} for {ticker}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise RateFetchError("market-data", f"Request error for {ticker}: {e}") from e
        except ValueError as e:
            raise RateFetchError("market-data", f"Invalid JSON for {ticker}") from e

        try:
            price = data["chart"]["result"][0]["meta"]["regularMarketPrice"]
        except (KeyError, IndexError, TypeError):
            price = None

        parsed = _to_decimal(price)
        if parsed is None:
            raise RateFetchError("market-data", f"No price in response for {ticker}")
        return parsed

    async def scrape_usd_price(self, slug: str) -> Decimal:
        """
        USD price scraped from https://coinmarketcap.com/currencies/<slug>/.

        Raises:
            RateFetchError: network error, non-2xx status or no price on the page
        """
        url = f"{self.scrape_url}/{slug}/"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url, headers={"User-Agent": BROWSER_USER_AGENT})
                response.raise_for_status()
                html = response.text
        except httpx.HTTPStatusError as e:
            raise RateFetchError(
                "coinmarketcap",
                f"HTTP {e.response.status_code} for {slug}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise RateFetchError("coinmarketcap", f"Request error for {slug}: {e}") from e

        price = parse_cmc_price(html)
        if price is None:
            raise RateFetchError("coinmarketcap", f"No price found on page for {slug}")
        logger.info(f"Scraped {slug} price from CoinMarketCap: ${price}")
        return price

    async def fetch_usd_prices(self, codes: Iterable[str]) -> tuple[Dict[str, Decimal], List[str]]:
        """
        Fetch USD prices for several coins, one request each.

        Failures are logged and skipped.

        Returns:
            Tuple of (code -> USD price, list of failure messages)
        """
        prices: Dict[str, Decimal] = {}
        failures: List[str] = []

        for code in codes:
            try:
                price = await self.fetch_usd_price(code)
            except RateFetchError as e:
                logger.error(f"Failed to fetch crypto price for {code}: {e.message}")
                failures.append(f"{code}: {e.message}")
                continue
            if price is not None:
                prices[code.upper()] = price

        return prices, failures


# =============================================================================
# Precious metals
# =============================================================================

class MetalPriceSource(ABC):
    """Source of USD prices per troy ounce for precious metals."""

    @abstractmethod
    async def get_usd_prices(self, codes: Iterable[str]) -> Dict[str, Decimal]:
        """Return code -> USD per ounce for the codes this source knows."""


class StaticMetalPriceSource(MetalPriceSource):
    """Hardcoded estimates; stand-in until a live metals feed is chosen."""

    def __init__(self, prices: Optional[Dict[str, Decimal]] = None):
        self.prices = dict(prices) if prices is not None else dict(STATIC_METAL_PRICES_USD)

    async def get_usd_prices(self, codes: Iterable[str]) -> Dict[str, Decimal]:
        return {
            code.upper(): self.prices[code.upper()]
            for code in codes
            if code.upper() in self.prices
        }


# =============================================================================
# Collection of one refresh cycle
# =============================================================================

@dataclass
class FetchOutcome:
    """Raw rates gathered in one cycle plus per-source failures."""
    rates: List[dict] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)
    bases_fetched: int = 0

    def add(self, from_currency: str, to_currency: str, rate: Decimal) -> None:
        self.rates.append({
            "from_currency": from_currency,
            "to_currency": to_currency,
            "rate": rate,
        })


class RateCollector:
    """
    Runs the fetchers for one refresh cycle.

    For every active fiat base:
    - fiat pairs against the other active fiats, skipping a pair whose reverse
      was already recorded this cycle,
    - base->crypto = (base->USD) / cryptoUSD,
    - base->metal = metalUSD / (base->USD).
    A failing base is logged and skipped; the loop continues.
    """

    def __init__(
        self,
        fiat_fetcher: FiatRateFetcher,
        crypto_fetcher: CryptoPriceFetcher,
        metal_source: MetalPriceSource,
    ):
        self.fiat_fetcher = fiat_fetcher
        self.crypto_fetcher = crypto_fetcher
        self.metal_source = metal_source

    async def collect(
        self,
        fiats: List[str],
        cryptos: List[str],
        metals: List[str],
        use_api_key: bool = True,
    ) -> FetchOutcome:
        outcome = FetchOutcome()

        crypto_prices: Dict[str, Decimal] = {}
        if cryptos:
            crypto_prices, crypto_failures = await self.crypto_fetcher.fetch_usd_prices(cryptos)
            outcome.failures.extend(crypto_failures)

        metal_prices = await self.metal_source.get_usd_prices(metals) if metals else {}

        seen_pairs: set[tuple[str, str]] = set()

        # USD goes first so every USD->X quote is recorded; the cross-rate
        # deriver pivots on those rows.
        fiats = sorted(fiats, key=lambda code: code != PIVOT_CURRENCY)

        for base in fiats:
            try:
                table = await self.fiat_fetcher.fetch_rate_table(base, use_api_key=use_api_key)
            except RateFetchError as e:
                logger.error(
                    f"Failed to fetch rates for {base}: {e.message}"
                    + (f" (status {e.status_code})" if e.status_code else "")
                )
                outcome.failures.append(f"{base}: {e.message}")
                continue

            outcome.bases_fetched += 1
            base_to_usd = Decimal("1") if base == PIVOT_CURRENCY else table.get(PIVOT_CURRENCY)

            for target in fiats:
                if target == base or target not in table:
                    continue
                if (base, target) in seen_pairs or (target, base) in seen_pairs:
                    continue
                seen_pairs.add((base, target))
                outcome.add(base, target, table[target])

            if base_to_usd is None:
                logger.warning(f"No {PIVOT_CURRENCY} quote for base {base}, skipping crypto/metal legs")
                continue

            for crypto in cryptos:
                price = crypto_prices.get(crypto)
                if price is None:
                    continue
                outcome.add(base, crypto, base_to_usd / price)

            for metal in metals:
                price = metal_prices.get(metal)
                if price is None:
                    continue
                outcome.add(base, metal, price / base_to_usd)

        if fiats and outcome.bases_fetched == 0:
            logger.error("No fiat base could be fetched this cycle")

        return outcome
