"""
PICK LEAGUE — Price Resolver
Mediates manual overrides, the result cache and the competition's active
provider into one authoritative PriceQuote per ticker.
"""
import asyncio
from datetime import date, datetime, timezone
from typing import Dict, Iterable, Mapping, Optional, Union

from pickleague.config.settings import get_settings, EngineSettings
from pickleague.data.adapters.base import BaseDataAdapter
from pickleague.data.cache.price_cache import PriceCache, current_key, as_of_key
from pickleague.data.errors import (
    PriceError, NoDataForDate, NotConfigured, InvalidPriceData, UpstreamUnavailable,
)
from pickleague.data.models import CompetitionContext, PriceProvider, PriceQuote, MANUAL_SOURCE
from pickleague.data.overrides import ManualOverrideStore
from pickleague.utils.helpers import normalize_ticker, parse_date
from pickleague.utils.logger import get_logger

logger = get_logger("resolver")

ResolveResult = Union[PriceQuote, PriceError]


class PriceResolver:
    """
    Resolution order for a ticker:
      1. manual override (always for as-of lookups; for current lookups when
         configured or when the competition runs on manual prices)
      2. live cache entry
      3. the competition's provider adapter, result cached on success
    Failures propagate as typed errors. There is no stale fallback and no
    failover to a second provider.
    """

    def __init__(
        self,
        adapters: Mapping[PriceProvider, BaseDataAdapter],
        cache: PriceCache,
        overrides: ManualOverrideStore,
        settings: Optional[EngineSettings] = None,
    ):
        self.settings = settings or get_settings().engine
        self._adapters = dict(adapters)
        self.cache = cache
        self.overrides = overrides
        self._fetch_semaphore = asyncio.Semaphore(self.settings.max_concurrent_prices)
        self.provider_calls = 0

    def adapter_for(self, provider: PriceProvider) -> BaseDataAdapter:
        adapter = self._adapters.get(provider)
        if adapter is None:
            raise NotConfigured(f"no adapter registered for price provider '{provider.value}'")
        return adapter

    async def _manual_quote(
        self, ctx: CompetitionContext, ticker: str, as_of: Optional[date]
    ) -> Optional[PriceQuote]:
        price = await self.overrides.lookup(ctx.id, ticker)
        if price is None:
            return None
        if price <= 0:
            raise InvalidPriceData(ticker, f"manual price {price} is not positive")
        logger.debug("manual_price_used", ticker=ticker, competition_id=ctx.id, price=price)
        return PriceQuote(
            ticker=ticker,
            price=float(price),
            as_of=as_of,
            source=MANUAL_SOURCE,
            fetched_at=datetime.now(timezone.utc),
        )

    async def resolve_current(self, ticker: str, ctx: CompetitionContext) -> PriceQuote:
        ticker = normalize_ticker(ticker)
        provider = ctx.price_provider

        if self.settings.overrides_apply_to_current or provider == PriceProvider.MANUAL:
            manual = await self._manual_quote(ctx, ticker, None)
            if manual is not None:
                return manual
        if provider == PriceProvider.MANUAL:
            raise NoDataForDate(ticker, reason="no manual price configured")

        key = current_key(provider.value, ticker)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        adapter = self.adapter_for(provider)
        quote = await self._fetch(ticker, lambda: adapter.get_current_price(ticker))
        self.cache.set(key, quote)
        return quote

    async def resolve_as_of(
        self, ticker: str, target: Union[str, date], ctx: CompetitionContext
    ) -> PriceQuote:
        ticker = normalize_ticker(ticker)
        target = parse_date(target)
        provider = ctx.price_provider

        # Overrides are authoritative for the whole competition, whatever the date
        manual = await self._manual_quote(ctx, ticker, target)
        if manual is not None:
            return manual
        if provider == PriceProvider.MANUAL:
            raise NoDataForDate(ticker, target, reason="no manual price configured")

        key = as_of_key(provider.value, ticker, target)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        adapter = self.adapter_for(provider)
        quote = await self._fetch(ticker, lambda: adapter.get_price_on_or_before(ticker, target))
        if quote.as_of is not None and quote.as_of > target:
            raise NoDataForDate(ticker, target, reason=f"provider returned a later date {quote.as_of}")
        self.cache.set(key, quote)
        return quote

    async def _fetch(self, ticker: str, call) -> PriceQuote:
        async with self._fetch_semaphore:
            self.provider_calls += 1
            try:
                quote = await asyncio.wait_for(call(), timeout=self.settings.fetch_timeout_seconds)
            except asyncio.TimeoutError:
                logger.warning("price_fetch_timeout", ticker=ticker,
                               timeout_seconds=self.settings.fetch_timeout_seconds)
                raise UpstreamUnavailable(
                    ticker, f"price lookup timed out after {self.settings.fetch_timeout_seconds}s"
                )
        if quote.price <= 0:
            raise InvalidPriceData(ticker, f"provider returned invalid price {quote.price}")
        logger.info("price_resolved", ticker=ticker, source=quote.source,
                    price=quote.price, as_of=quote.as_of.isoformat() if quote.as_of else None)
        return quote

    async def resolve_many(
        self, tickers: Iterable[str], ctx: CompetitionContext
    ) -> Dict[str, ResolveResult]:
        """Current prices for many tickers at once, each ticker fetched once.
        Per-ticker failures come back as the error instead of raising;
        NotConfigured is raised."""
        unique = list(dict.fromkeys(normalize_ticker(t) for t in tickers))
        results = await asyncio.gather(
            *(self.resolve_current(t, ctx) for t in unique), return_exceptions=True
        )
        resolved: Dict[str, ResolveResult] = {}
        for ticker, result in zip(unique, results):
            if isinstance(result, (PriceQuote, PriceError)):
                resolved[ticker] = result
            else:
                raise result
        return resolved
