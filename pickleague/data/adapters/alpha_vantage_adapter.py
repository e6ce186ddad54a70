"""
PICK LEAGUE — Alpha Vantage Adapter
Global-quote source queried by symbol + API key. Rate limited upstream,
so every request goes through a RequestThrottle.
"""
from datetime import date
from typing import Any, Dict, Optional

from pickleague.data.adapters.base import BaseDataAdapter, closes_to_series, latest_on_or_before
from pickleague.data.errors import UpstreamUnavailable, RateLimited, NotConfigured
from pickleague.data.models import PriceQuote, PriceProvider
from pickleague.data.throttle import RequestThrottle
from pickleague.config.settings import get_settings, DataSourceSettings
from pickleague.utils.helpers import utc_now
from pickleague.utils.logger import get_logger

logger = get_logger("alpha_vantage_adapter")


class AlphaVantageAdapter(BaseDataAdapter):
    """Alpha Vantage query API (GLOBAL_QUOTE and TIME_SERIES_DAILY)."""

    def __init__(
        self,
        settings: Optional[DataSourceSettings] = None,
        throttle: Optional[RequestThrottle] = None,
    ):
        self.settings = settings or get_settings().data
        if throttle is None:
            throttle = RequestThrottle(
                max_requests=self.settings.alpha_vantage_requests_per_window,
                window_seconds=self.settings.alpha_vantage_window_seconds,
                name="alpha_vantage",
            )
        super().__init__(
            provider=PriceProvider.ALPHA_VANTAGE,
            timeout_seconds=self.settings.request_timeout_seconds,
            throttle=throttle,
        )
        self.api_key = self.settings.alpha_vantage_api_key
        self.base_url = self.settings.alpha_vantage_base_url

    def _require_key(self) -> str:
        if not self.api_key:
            raise NotConfigured("Alpha Vantage API key not configured (ALPHA_VANTAGE_API_KEY)")
        return self.api_key

    async def _query(self, function: str, ticker: str, **extra: str) -> Dict[str, Any]:
        params = {
            "function": function,
            "symbol": self.format_ticker(ticker),
            "apikey": self._require_key(),
            **extra,
        }
        data = await self._get_json(f"{self.base_url}/query", ticker, params=params)
        if not isinstance(data, dict):
            raise UpstreamUnavailable(ticker, "alpha_vantage returned a malformed payload")

        # Throttling is signalled in-band with HTTP 200
        if data.get("Note") or data.get("Information"):
            logger.warning("alpha_vantage_rate_limited", ticker=ticker, function=function)
            raise RateLimited(ticker, "API rate limit reached. Please try again in a moment.")
        if data.get("Error Message"):
            logger.warning("alpha_vantage_error", ticker=ticker, error=data["Error Message"])
            raise UpstreamUnavailable(ticker, f"invalid ticker: {data['Error Message']}")
        return data

    def output_size(self, target: date) -> str:
        """compact holds the latest ~100 trading days; older targets need the full history."""
        if (utc_now().date() - target).days > self.settings.alpha_vantage_compact_days:
            return "full"
        return "compact"

    async def get_current_price(self, ticker: str) -> PriceQuote:
        data = await self._query("GLOBAL_QUOTE", ticker)
        quote = data.get("Global Quote")
        if not isinstance(quote, dict) or "05. price" not in quote:
            raise UpstreamUnavailable(ticker, f"no data found for ticker: {ticker}")
        return self._quote(ticker, quote["05. price"])

    async def get_price_on_or_before(self, ticker: str, target: date) -> PriceQuote:
        data = await self._query("TIME_SERIES_DAILY", ticker, outputsize=self.output_size(target))
        time_series = data.get("Time Series (Daily)")
        if not time_series or not isinstance(time_series, dict):
            raise UpstreamUnavailable(ticker, f"no time series for ticker: {ticker}")

        points = []
        for day, bar in time_series.items():
            try:
                close = bar.get("4. close") if isinstance(bar, dict) else None
                points.append((date.fromisoformat(day), close))
            except ValueError:
                logger.debug("alpha_vantage_bad_date", ticker=ticker, day=day)
        series = closes_to_series(points)
        if series.empty:
            raise UpstreamUnavailable(ticker, f"time series for {ticker} has no usable closes")
        as_of, close = latest_on_or_before(series, target, ticker)
        return self._quote(ticker, close, as_of=as_of)
