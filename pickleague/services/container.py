"""
PICK LEAGUE — Service Container
Builds and tears down the engine components the API works with.
"""
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from pickleague.config.settings import AppSettings, get_settings
from pickleague.data.adapters.alpha_vantage_adapter import AlphaVantageAdapter
from pickleague.data.adapters.base import BaseDataAdapter
from pickleague.data.adapters.yahoo_adapter import YahooFinanceAdapter
from pickleague.data.cache.price_cache import PriceCache
from pickleague.data.models import PriceProvider
from pickleague.data.overrides import SqlManualOverrideStore
from pickleague.db.repository import CompetitionRepository
from pickleague.db.schema import init_db
from pickleague.engines.leaderboard import LeaderboardAggregator
from pickleague.engines.picks import PickService
from pickleague.engines.resolver import PriceResolver
from pickleague.engines.valuator import PortfolioValuator
from pickleague.services.logo_service import LogoService
from pickleague.utils.logger import get_logger

logger = get_logger("container")


@dataclass
class Services:
    repository: CompetitionRepository
    overrides: SqlManualOverrideStore
    cache: PriceCache
    adapters: Dict[PriceProvider, BaseDataAdapter]
    resolver: PriceResolver
    valuator: PortfolioValuator
    leaderboard: LeaderboardAggregator
    picks: PickService
    logos: LogoService

    async def close(self) -> None:
        for adapter in self.adapters.values():
            await adapter.disconnect()
        await self.logos.disconnect()
        logger.info("services_closed")


def default_adapters(settings: AppSettings) -> Dict[PriceProvider, BaseDataAdapter]:
    """One adapter per live provider. `manual` has none; it only serves overrides."""
    return {
        PriceProvider.ALPHA_VANTAGE: AlphaVantageAdapter(settings.data),
        PriceProvider.YAHOO_FINANCE: YahooFinanceAdapter(settings.data),
    }


def build_services(
    session_factory: async_sessionmaker,
    settings: Optional[AppSettings] = None,
    adapters: Optional[Dict[PriceProvider, BaseDataAdapter]] = None,
    logos: Optional[LogoService] = None,
) -> Services:
    settings = settings or get_settings()
    adapters = adapters if adapters is not None else default_adapters(settings)
    repository = CompetitionRepository(session_factory)
    overrides = SqlManualOverrideStore(session_factory)
    cache = PriceCache(settings.cache)
    resolver = PriceResolver(adapters, cache, overrides, settings.engine)
    valuator = PortfolioValuator(settings.competition, settings.engine)
    return Services(
        repository=repository,
        overrides=overrides,
        cache=cache,
        adapters=adapters,
        resolver=resolver,
        valuator=valuator,
        leaderboard=LeaderboardAggregator(repository, resolver, valuator, settings.engine),
        picks=PickService(repository, resolver, settings.competition),
        logos=logos or LogoService(settings.logo, settings.data.request_timeout_seconds),
    )


async def init_services(
    settings: Optional[AppSettings] = None,
    adapters: Optional[Dict[PriceProvider, BaseDataAdapter]] = None,
    logos: Optional[LogoService] = None,
) -> Services:
    settings = settings or get_settings()
    session_factory = await init_db(settings.database.db_url, settings.database.echo_sql)
    services = build_services(session_factory, settings, adapters, logos)
    logger.info("services_ready", providers=[p.value for p in services.adapters])
    return services
