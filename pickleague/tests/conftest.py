"""
PICK LEAGUE — Test Configuration & Fixtures
Shared fixtures for all test modules.
"""
import pytest
from datetime import date
from typing import Dict, List, Optional, Tuple, Union

from pickleague.config.settings import CacheSettings, EngineSettings, CompetitionSettings
from pickleague.data.adapters.base import BaseDataAdapter, closes_to_series, latest_on_or_before
from pickleague.data.cache.price_cache import PriceCache
from pickleague.data.models import CompetitionContext, PriceProvider, PriceQuote, Holding
from pickleague.data.overrides import InMemoryOverrideStore
from pickleague.engines.resolver import PriceResolver


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubAdapter(BaseDataAdapter):
    """Scripted provider. Values may be prices or exceptions to raise."""

    def __init__(
        self,
        provider: PriceProvider = PriceProvider.YAHOO_FINANCE,
        current: Optional[Dict[str, Union[float, Exception]]] = None,
        series: Optional[Dict[str, List[Tuple[date, float]]]] = None,
    ):
        super().__init__(provider=provider)
        self.current = current or {}
        self.series = series or {}
        self.current_calls: List[str] = []
        self.history_calls: List[Tuple[str, date]] = []

    async def get_current_price(self, ticker: str) -> PriceQuote:
        self.current_calls.append(ticker)
        value = self.current[ticker]
        if isinstance(value, Exception):
            raise value
        return self._quote(ticker, value)

    async def get_price_on_or_before(self, ticker: str, target: date) -> PriceQuote:
        self.history_calls.append((ticker, target))
        points = self.series[ticker]
        if isinstance(points, Exception):
            raise points
        as_of, close = latest_on_or_before(closes_to_series(points), target, ticker)
        return self._quote(ticker, close, as_of=as_of)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine_settings():
    return EngineSettings(max_concurrent_prices=4, max_concurrent_participants=2, fetch_timeout_seconds=2.0)


@pytest.fixture
def competition_settings():
    return CompetitionSettings()


@pytest.fixture
def cache(clock):
    return PriceCache(CacheSettings(current_price_ttl_seconds=60, historical_price_ttl_seconds=3600), timer=clock)


@pytest.fixture
def ctx():
    return CompetitionContext(
        id=1,
        name="2026 Stock Competition",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 12, 31),
        entry_price_date=date(2026, 1, 1),
        price_provider=PriceProvider.YAHOO_FINANCE,
        refresh_interval=60,
    )


@pytest.fixture
def yahoo():
    return StubAdapter(
        PriceProvider.YAHOO_FINANCE,
        current={"AAPL": 165.0, "MSFT": 420.0, "NVDA": 130.0},
        series={
            "AAPL": [(date(2026, 1, 1), 100.0), (date(2026, 1, 10), 110.0), (date(2026, 2, 1), 120.0)],
            "MSFT": [(date(2025, 12, 31), 400.0)],
        },
    )


@pytest.fixture
def alpha():
    return StubAdapter(
        PriceProvider.ALPHA_VANTAGE,
        current={"AAPL": 170.0},
        series={"AAPL": [(date(2025, 12, 31), 150.0)]},
    )


@pytest.fixture
def overrides():
    return InMemoryOverrideStore()


@pytest.fixture
def resolver(yahoo, alpha, cache, overrides, engine_settings):
    adapters = {PriceProvider.YAHOO_FINANCE: yahoo, PriceProvider.ALPHA_VANTAGE: alpha}
    return PriceResolver(adapters, cache, overrides, engine_settings)


@pytest.fixture
def aapl_holding():
    return Holding(ticker="AAPL", entry_price=150.0, quantity=6.6667)
