"""
PICK LEAGUE — Yahoo Finance Adapter
Daily-bar chart source queried by symbol + epoch-second range.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Optional

from pickleague.data.adapters.base import BaseDataAdapter, closes_to_series, latest_on_or_before
from pickleague.data.errors import UpstreamUnavailable, NoDataForDate
from pickleague.data.models import PriceQuote, PriceProvider
from pickleague.config.settings import get_settings, DataSourceSettings
from pickleague.utils.logger import get_logger

logger = get_logger("yahoo_adapter")


class YahooFinanceAdapter(BaseDataAdapter):
    """Yahoo Finance v8 chart API. No key, no hard rate ceiling."""

    def __init__(self, settings: Optional[DataSourceSettings] = None):
        self.settings = settings or get_settings().data
        super().__init__(
            provider=PriceProvider.YAHOO_FINANCE,
            timeout_seconds=self.settings.request_timeout_seconds,
            headers={"User-Agent": self.settings.yahoo_user_agent},
        )
        self.base_url = self.settings.yahoo_base_url

    def _chart_url(self, ticker: str) -> str:
        return f"{self.base_url}/v8/finance/chart/{self.format_ticker(ticker)}"

    async def get_current_price(self, ticker: str) -> PriceQuote:
        data = await self._get_json(
            self._chart_url(ticker), ticker, params={"interval": "1d", "range": "1d"}
        )
        series = self._parse_chart(data, ticker)
        if series.empty:
            raise UpstreamUnavailable(ticker, "yahoo_finance returned no closes")
        logger.debug("yahoo_current_price", ticker=ticker, price=float(series.iloc[-1]))
        return self._quote(ticker, series.iloc[-1])

    async def get_price_on_or_before(self, ticker: str, target: date) -> PriceQuote:
        start = target - timedelta(days=self.settings.yahoo_history_lookback_days)
        period1 = int(datetime.combine(start, time.min, tzinfo=timezone.utc).timestamp())
        # End of the target day so that day's bar is inside the range
        period2 = int(datetime.combine(target + timedelta(days=1), time.min, tzinfo=timezone.utc).timestamp()) - 1

        data = await self._get_json(
            self._chart_url(ticker),
            ticker,
            params={"interval": "1d", "period1": period1, "period2": period2},
        )
        series = self._parse_chart(data, ticker)
        if series.empty:
            raise NoDataForDate(ticker, target)
        as_of, close = latest_on_or_before(series, target, ticker)
        return self._quote(ticker, close, as_of=as_of)

    def _parse_chart(self, data: Dict[str, Any], ticker: str):
        """chart.result[0] -> Series of closes keyed by exchange-local trading date."""
        chart = data.get("chart") if isinstance(data, dict) else None
        if not isinstance(chart, dict):
            raise UpstreamUnavailable(ticker, "yahoo_finance payload has no chart")

        if chart.get("error"):
            err = chart["error"]
            description = err.get("description") if isinstance(err, dict) else str(err)
            raise UpstreamUnavailable(ticker, f"yahoo_finance error: {description}")

        results = chart.get("result") or []
        if not results:
            raise UpstreamUnavailable(ticker, "yahoo_finance returned no result")

        result = results[0] if isinstance(results, list) else None
        if not isinstance(result, dict):
            raise UpstreamUnavailable(ticker, "yahoo_finance result is malformed")
        timestamps = result.get("timestamp") or []
        try:
            closes = result["indicators"]["quote"][0].get("close") or []
        except (KeyError, IndexError, TypeError, AttributeError):
            raise UpstreamUnavailable(ticker, "yahoo_finance payload has no close prices")

        if not isinstance(timestamps, list) or not isinstance(closes, list) or len(timestamps) != len(closes):
            raise UpstreamUnavailable(ticker, "yahoo_finance timestamps and closes differ in length")

        meta = result.get("meta")
        offset = int(meta.get("gmtoffset") or 0) if isinstance(meta, dict) else 0
        points = [
            (datetime.fromtimestamp(ts + offset, tz=timezone.utc).date(), close)
            for ts, close in zip(timestamps, closes)
        ]
        return closes_to_series(points)
