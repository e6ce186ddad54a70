"""
PICK LEAGUE — Base Price Adapter Interface
All price provider adapters must implement this interface.
"""
import asyncio
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Optional, Iterable, Tuple, Dict, Any

import aiohttp
import pandas as pd

from pickleague.data.errors import (
    UpstreamUnavailable, RateLimited, NoDataForDate, InvalidPriceData,
)
from pickleague.data.models import PriceQuote, PriceProvider
from pickleague.data.throttle import RequestThrottle
from pickleague.utils.logger import get_logger

logger = get_logger("adapter")


class BaseDataAdapter(ABC):
    """Abstract base class for all price adapters. Adapters never retry."""

    def __init__(
        self,
        provider: PriceProvider,
        timeout_seconds: float = 10.0,
        throttle: Optional[RequestThrottle] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self.throttle = throttle
        self._headers = headers or {}
        self._session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        """Initialize the HTTP session."""
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        self._session = aiohttp.ClientSession(headers=self._headers, timeout=timeout)
        logger.info("adapter_connected", provider=self.provider.value)

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
        logger.info("adapter_disconnected", provider=self.provider.value)

    @abstractmethod
    async def get_current_price(self, ticker: str) -> PriceQuote:
        """Latest available price for a canonical ticker."""

    @abstractmethod
    async def get_price_on_or_before(self, ticker: str, target: date) -> PriceQuote:
        """Close price of the latest trading day <= target."""

    def format_ticker(self, ticker: str) -> str:
        """Symbol as the upstream source expects it."""
        return ticker.upper()

    async def _get_json(self, url: str, ticker: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a JSON document, mapping transport failures onto typed errors."""
        if not self._session:
            await self.connect()

        if self.throttle is not None:
            await self.throttle.acquire()

        try:
            async with self._session.get(url, params=params) as resp:
                if resp.status == 429:
                    raise RateLimited(ticker, f"{self.provider.value} returned HTTP 429")
                if resp.status < 200 or resp.status >= 300:
                    logger.warning("adapter_http_error", provider=self.provider.value,
                                   status=resp.status, ticker=ticker)
                    raise UpstreamUnavailable(
                        ticker, f"{self.provider.value} returned HTTP {resp.status}"
                    )
                return await resp.json(content_type=None)
        except asyncio.TimeoutError:
            logger.warning("adapter_timeout", provider=self.provider.value, ticker=ticker,
                           timeout_seconds=self.timeout_seconds)
            raise UpstreamUnavailable(
                ticker, f"{self.provider.value} timed out after {self.timeout_seconds}s"
            )
        except (aiohttp.ClientError, ValueError) as e:
            logger.warning("adapter_request_failed", provider=self.provider.value,
                           ticker=ticker, error=str(e))
            raise UpstreamUnavailable(ticker, f"{self.provider.value} request failed: {e}")

    def _quote(self, ticker: str, price: Any, as_of: Optional[date] = None) -> PriceQuote:
        """Build a quote, rejecting anything that is not a positive number."""
        try:
            value = float(price)
        except (TypeError, ValueError):
            raise InvalidPriceData(ticker, f"{self.provider.value} returned non-numeric price {price!r}")
        if pd.isna(value) or value <= 0:
            raise InvalidPriceData(ticker, f"{self.provider.value} returned invalid price {value}")
        return PriceQuote(
            ticker=ticker,
            price=value,
            as_of=as_of,
            source=self.provider.value,
            fetched_at=datetime.now(timezone.utc),
        )


def closes_to_series(points: Iterable[Tuple[date, Any]]) -> pd.Series:
    """(date, close) pairs -> float Series indexed by date, sorted ascending, nulls dropped."""
    rows = [(pd.Timestamp(d), c) for d, c in points]
    if not rows:
        return pd.Series(dtype=float)
    index, values = zip(*rows)
    series = pd.Series(pd.to_numeric(list(values), errors="coerce"), index=pd.DatetimeIndex(index))
    series = series.dropna()
    series = series[~series.index.duplicated(keep="last")]
    return series.sort_index()


def latest_on_or_before(series: pd.Series, target: date, ticker: str) -> Tuple[date, float]:
    """Highest-dated point <= target. Never falls forward to a later date."""
    eligible = series[series.index <= pd.Timestamp(target)]
    if eligible.empty:
        raise NoDataForDate(ticker, target)
    return eligible.index[-1].date(), float(eligible.iloc[-1])
