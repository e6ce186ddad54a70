"""
PICK LEAGUE — Ticker Logo Service
Fetches ticker logos from logo.dev into a long-lived cache of its own, and
falls back to a generated initials badge.
"""
import asyncio
import time
from typing import Callable, Optional, Tuple

import aiohttp
from cachetools import TTLCache

from pickleague.config.settings import get_settings, LogoSettings
from pickleague.utils.helpers import normalize_ticker
from pickleague.utils.logger import get_logger

logger = get_logger("logo_service")

Logo = Tuple[bytes, str]


def fallback_logo(ticker: str) -> Logo:
    initials = ticker[:4].upper()
    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg" width="48" height="48" viewBox="0 0 48 48">'
        '<rect width="48" height="48" rx="12" fill="hsl(222, 47%, 11%)" />'
        '<text x="50%" y="50%" dy="0.35em" text-anchor="middle" fill="white" '
        'font-family="Arial, sans-serif" font-size="18" font-weight="700">'
        f"{initials}</text></svg>"
    )
    return svg.encode(), "image/svg+xml"


class LogoService:
    def __init__(
        self,
        settings: Optional[LogoSettings] = None,
        timeout_seconds: Optional[float] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or get_settings().logo
        self.timeout_seconds = timeout_seconds or get_settings().data.request_timeout_seconds
        self._cache: TTLCache = TTLCache(
            maxsize=self.settings.max_entries, ttl=self.settings.cache_ttl_seconds, timer=timer
        )
        self._session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        self._session = aiohttp.ClientSession(timeout=timeout, headers={"Accept": "image/*"})

    async def disconnect(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def get_logo(self, ticker: str) -> Logo:
        ticker = normalize_ticker(ticker)
        cached = self._cache.get(ticker)
        if cached is not None:
            return cached

        if not self.settings.logo_dev_api_key:
            logger.warning("logo_api_key_missing")
            return fallback_logo(ticker)

        logo = await self._fetch(ticker)
        if logo is None:
            return fallback_logo(ticker)
        self._cache[ticker] = logo
        return logo

    async def _fetch(self, ticker: str) -> Optional[Logo]:
        if not self._session:
            await self.connect()
        # logo.dev expects lowercase symbols
        url = f"{self.settings.logo_base_url}/{ticker.lower()}"
        try:
            async with self._session.get(url, params={"token": self.settings.logo_dev_api_key}) as resp:
                if resp.status != 200:
                    logger.warning("logo_fetch_error", ticker=ticker, status=resp.status)
                    return None
                body = await resp.read()
                return body, resp.headers.get("Content-Type", "image/png")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("logo_fetch_exception", ticker=ticker, error=str(e))
            return None

    @property
    def stats(self):
        return {"logo_entries": len(self._cache)}
