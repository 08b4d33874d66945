"""
Unit Tests - Rate Fetchers
Fiat table client, crypto price client, metal source and the per-cycle collector.
"""
import pytest
import httpx
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from famhub.services.rate_fetchers import (
    CryptoPriceFetcher,
    FiatRateFetcher,
    RateCollector,
    StaticMetalPriceSource,
    parse_cmc_price,
    _to_decimal,
)
from famhub.utils.exceptions import RateFetchError


def _response(payload=None, status_code=200, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = text
    if status_code >= 400:
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "error", request=MagicMock(), response=MagicMock(status_code=status_code)
        )
    else:
        response.raise_for_status.return_value = None
    return response


class TestToDecimal:

    def test_parses_numbers(self):
        assert _to_decimal(1.08) == Decimal("1.08")
        assert _to_decimal("0.5") == Decimal("0.5")

    @pytest.mark.parametrize("value", [None, 0, -1, "abc", True, float("nan")])
    def test_rejects_invalid(self, value):
        assert _to_decimal(value) is None


class TestFiatRateFetcher:

    def test_keyed_request(self):
        fetcher = FiatRateFetcher(api_key="abc123", api_url="https://v6.example.com/v6")
        url, params = fetcher.build_request("EUR")
        assert url == "https://v6.example.com/v6/abc123/latest/EUR"
        assert params == {}

    def test_keyless_request_has_cache_busting(self):
        fetcher = FiatRateFetcher(api_key="", free_api_url="https://free.example.com/v4/latest")
        url, params = fetcher.build_request("EUR")
        assert url == "https://free.example.com/v4/latest/EUR"
        assert "t" in params and "r" in params

    def test_keyless_forced_even_with_key(self):
        fetcher = FiatRateFetcher(api_key="abc123", free_api_url="https://free.example.com/v4/latest")
        url, _ = fetcher.build_request("USD", use_api_key=False)
        assert "abc123" not in url

    @pytest.mark.asyncio
    async def test_fetch_rate_table_success(self):
        fetcher = FiatRateFetcher(api_key="")
        payload = {"base": "EUR", "rates": {"EUR": 1, "USD": 1.08, "GBP": 0.86, "BAD": None}}

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response(payload)
            mock_client_class.return_value.__aenter__.return_value = mock_client

            table = await fetcher.fetch_rate_table("eur")

        assert table["USD"] == Decimal("1.08")
        assert table["GBP"] == Decimal("0.86")
        assert "BAD" not in table

    @pytest.mark.asyncio
    async def test_fetch_rate_table_reads_v6_body(self):
        fetcher = FiatRateFetcher(api_key="abc123")
        payload = {"result": "success", "conversion_rates": {"USD": 1, "EUR": 0.9}}

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response(payload)
            mock_client_class.return_value.__aenter__.return_value = mock_client

            table = await fetcher.fetch_rate_table("USD")

        assert table["EUR"] == Decimal("0.9")

    @pytest.mark.asyncio
    async def test_fetch_rate_table_http_error(self):
        fetcher = FiatRateFetcher(api_key="")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response(status_code=429)
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(RateFetchError) as exc_info:
                await fetcher.fetch_rate_table("EUR")

        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_fetch_rate_table_network_error(self):
        fetcher = FiatRateFetcher(api_key="")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get.side_effect = httpx.ConnectError("connection refused")
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(RateFetchError):
                await fetcher.fetch_rate_table("EUR")

    @pytest.mark.asyncio
    async def test_fetch_rate_table_missing_rates(self):
        fetcher = FiatRateFetcher(api_key="")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response({"result": "error"})
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(RateFetchError):
                await fetcher.fetch_rate_table("EUR")


CMC_PAGE = """
<html><body>
  <div class="sc-16r8icm-0 kjciSH priceTitle">
    <span class="sc-f70bb44c-0 jxpCgO base-text">Price</span>
    <span class="sc-f70bb44c-0 jxpCgO priceValue ">{price}</span>
  </div>
</body></html>
"""


class TestParseCmcPrice:

    def test_reads_price_value_span(self):
        assert parse_cmc_price(CMC_PAGE.format(price="$67,123.45")) == Decimal("67123.45")

    def test_falls_through_to_later_selector(self):
        html = '<div><p data-test="text-cdp-price-display">$0.5123</p></div>'
        assert parse_cmc_price(html) == Decimal("0.5123")

    def test_skips_unparseable_match(self):
        html = '<span class="priceValue">--</span><div class="priceValue">$1,234</div>'
        assert parse_cmc_price(html) == Decimal("1234")

    def test_no_price_on_page(self):
        assert parse_cmc_price("<html><body>Just a moment...</body></html>") is None


class TestCryptoPriceFetcher:

    @pytest.mark.asyncio
    async def test_fetch_usd_price(self):
        fetcher = CryptoPriceFetcher(api_url="https://charts.example.com/chart")
        payload = {"chart": {"result": [{"meta": {"regularMarketPrice": 50000.5}}]}}

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response(payload)
            mock_client_class.return_value.__aenter__.return_value = mock_client

            price = await fetcher.fetch_usd_price("btc")

            called_url = mock_client.get.call_args.args[0]

        assert price == Decimal("50000.5")
        assert called_url == "https://charts.example.com/chart/BTC-USD"

    @pytest.mark.asyncio
    async def test_unknown_coin_returns_none(self):
        fetcher = CryptoPriceFetcher()
        assert await fetcher.fetch_usd_price("NOTACOIN") is None

    @pytest.mark.asyncio
    async def test_missing_price_raises_without_scrape_source(self):
        fetcher = CryptoPriceFetcher(slugs={})

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response({"chart": {"result": []}})
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(RateFetchError):
                await fetcher.fetch_usd_price("ETH")

    @pytest.mark.asyncio
    async def test_chart_failure_falls_back_to_coinmarketcap(self):
        fetcher = CryptoPriceFetcher(
            api_url="https://charts.example.com/chart",
            scrape_url="https://cmc.example.com/currencies",
        )
        page = CMC_PAGE.format(price="$67,123.45")

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get.side_effect = [
                _response(status_code=429),
                _response(text=page),
            ]
            mock_client_class.return_value.__aenter__.return_value = mock_client

            price = await fetcher.fetch_usd_price("BTC")

            urls = [call.args[0] for call in mock_client.get.call_args_list]

        assert price == Decimal("67123.45")
        assert urls == [
            "https://charts.example.com/chart/BTC-USD",
            "https://cmc.example.com/currencies/bitcoin/",
        ]

    @pytest.mark.asyncio
    async def test_both_sources_failing_raises(self):
        fetcher = CryptoPriceFetcher()

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get.side_effect = [
                _response(status_code=500),
                _response(text="<html><body>Access denied</body></html>"),
            ]
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(RateFetchError) as exc_info:
                await fetcher.fetch_usd_price("ETH")

        assert "coinmarketcap" in exc_info.value.message
        assert mock_client.get.await_count == 2

    @pytest.mark.asyncio
    async def test_scrape_network_error_raises(self):
        fetcher = CryptoPriceFetcher(tickers={})

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get.side_effect = httpx.ConnectError("connection refused")
            mock_client_class.return_value.__aenter__.return_value = mock_client

            with pytest.raises(RateFetchError):
                await fetcher.fetch_usd_price("SOL")

    @pytest.mark.asyncio
    async def test_coin_without_ticker_is_scraped(self):
        fetcher = CryptoPriceFetcher(tickers={})

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get.return_value = _response(text=CMC_PAGE.format(price="$145.20"))
            mock_client_class.return_value.__aenter__.return_value = mock_client

            price = await fetcher.fetch_usd_price("SOL")

            called_url = mock_client.get.call_args.args[0]

        assert price == Decimal("145.20")
        assert called_url == "https://coinmarketcap.com/currencies/solana/"

    @pytest.mark.asyncio
    async def test_fetch_usd_prices_skips_failures(self):
        fetcher = CryptoPriceFetcher()

        async def fake_price(code):
            if code == "ETH":
                raise RateFetchError("market-data", "HTTP 500 for ETH-USD", status_code=500)
            return Decimal("50000")

        with patch.object(fetcher, "fetch_usd_price", side_effect=fake_price):
            prices, failures = await fetcher.fetch_usd_prices(["BTC", "ETH"])

        assert prices == {"BTC": Decimal("50000")}
        assert len(failures) == 1
        assert "ETH" in failures[0]


class TestStaticMetalPriceSource:

    @pytest.mark.asyncio
    async def test_known_metals_only(self):
        source = StaticMetalPriceSource()
        prices = await source.get_usd_prices(["gold", "SILVER", "COPPER"])
        assert prices == {"GOLD": Decimal("2100"), "SILVER": Decimal("25")}


class TestRateCollector:

    @pytest.fixture
    def tables(self):
        return {
            "USD": {"USD": Decimal("1"), "EUR": Decimal("0.9"), "GBP": Decimal("0.8")},
            "EUR": {"EUR": Decimal("1"), "USD": Decimal("1.1"), "GBP": Decimal("0.88")},
            "GBP": {"GBP": Decimal("1"), "USD": Decimal("1.25"), "EUR": Decimal("1.13")},
        }

    def _collector(self, tables, crypto_prices=None, failing=()):
        fiat = MagicMock(spec=FiatRateFetcher)

        async def fetch_table(base, use_api_key=True):
            if base in failing:
                raise RateFetchError("exchangerate-api", f"HTTP 500 for base {base}", status_code=500)
            return tables[base]

        fiat.fetch_rate_table = AsyncMock(side_effect=fetch_table)
        crypto = MagicMock(spec=CryptoPriceFetcher)
        crypto.fetch_usd_prices = AsyncMock(return_value=(crypto_prices or {}, []))
        metals = StaticMetalPriceSource({"GOLD": Decimal("2000")})
        return RateCollector(fiat, crypto, metals), fiat

    @staticmethod
    def _as_map(outcome):
        return {(r["from_currency"], r["to_currency"]): r["rate"] for r in outcome.rates}

    @pytest.mark.asyncio
    async def test_pair_dedup_keeps_first_direction(self, tables):
        collector, _ = self._collector(tables)

        outcome = await collector.collect(["EUR", "GBP", "USD"], [], [])
        rates = self._as_map(outcome)

        # USD is fetched first, so its quotes win
        assert rates[("USD", "EUR")] == Decimal("0.9")
        assert rates[("USD", "GBP")] == Decimal("0.8")
        assert ("EUR", "USD") not in rates
        assert rates[("EUR", "GBP")] == Decimal("0.88")
        assert ("GBP", "EUR") not in rates
        assert outcome.bases_fetched == 3

    @pytest.mark.asyncio
    async def test_crypto_and_metal_legs(self, tables):
        collector, _ = self._collector(tables, crypto_prices={"BTC": Decimal("50000")})

        outcome = await collector.collect(["USD", "EUR"], ["BTC"], ["GOLD"])
        rates = self._as_map(outcome)

        assert rates[("USD", "BTC")] == Decimal("1") / Decimal("50000")
        assert rates[("EUR", "BTC")] == Decimal("1.1") / Decimal("50000")
        assert rates[("USD", "GOLD")] == Decimal("2000")
        assert rates[("EUR", "GOLD")] == Decimal("2000") / Decimal("1.1")

    @pytest.mark.asyncio
    async def test_failing_base_does_not_abort_cycle(self, tables):
        collector, fiat = self._collector(tables, failing=("EUR",))

        outcome = await collector.collect(["USD", "EUR", "GBP"], [], [])
        rates = self._as_map(outcome)

        assert fiat.fetch_rate_table.await_count == 3
        assert outcome.bases_fetched == 2
        assert len(outcome.failures) == 1
        assert rates[("GBP", "EUR")] == Decimal("1.13")
        assert rates[("USD", "EUR")] == Decimal("0.9")

    @pytest.mark.asyncio
    async def test_all_bases_failing_yields_no_rates(self, tables):
        collector, _ = self._collector(tables, failing=("USD", "EUR"))

        outcome = await collector.collect(["USD", "EUR"], [], [])

        assert outcome.rates == []
        assert outcome.bases_fetched == 0
        assert len(outcome.failures) == 2

    @pytest.mark.asyncio
    async def test_keyless_flag_is_forwarded(self, tables):
        collector, fiat = self._collector(tables)

        await collector.collect(["USD"], [], [], use_api_key=False)

        fiat.fetch_rate_table.assert_awaited_once_with("USD", use_api_key=False)
