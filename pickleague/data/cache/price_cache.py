"""
PICK LEAGUE — Price Cache Layer
In-memory TTL cache for resolved quotes, shielding providers from repeated calls.
"""
import threading
import time
from datetime import date
from typing import Optional, Dict, Any, Callable
from cachetools import TTLCache

from pickleague.data.models import PriceQuote
from pickleague.config.settings import get_settings, CacheSettings
from pickleague.utils.logger import get_logger

logger = get_logger("price_cache")


def current_key(provider: str, ticker: str) -> str:
    return f"current:{provider}:{ticker}"


def as_of_key(provider: str, ticker: str, target: date) -> str:
    return f"asof:{provider}:{ticker}:{target.isoformat()}"


class PriceCache:
    """Thread-safe cache of PriceQuotes with separate TTL classes for current and historical."""

    def __init__(
        self,
        settings: Optional[CacheSettings] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        settings = settings or get_settings().cache
        self._lock = threading.Lock()
        self._current: TTLCache = TTLCache(
            maxsize=settings.max_entries, ttl=settings.current_price_ttl_seconds, timer=timer
        )
        self._historical: TTLCache = TTLCache(
            maxsize=settings.max_entries, ttl=settings.historical_price_ttl_seconds, timer=timer
        )
        self._hits = 0
        self._misses = 0

    def _namespace(self, key: str) -> TTLCache:
        return self._historical if key.startswith("asof:") else self._current

    def get(self, key: str) -> Optional[PriceQuote]:
        """Live entry or None. Expired entries are never returned."""
        with self._lock:
            value = self._namespace(key).get(key)
            if value is None:
                self._misses += 1
            else:
                self._hits += 1
            return value

    def set(self, key: str, quote: PriceQuote) -> None:
        # Only validated quotes reach here; the resolver rejects non-positive prices
        if quote.price <= 0:
            raise ValueError(f"refusing to cache non-positive price for {key}")
        with self._lock:
            self._namespace(key)[key] = quote

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._namespace(key).pop(key, None)

    def clear(self) -> None:
        """Clear all caches."""
        with self._lock:
            self._current.clear()
            self._historical.clear()
        logger.info("cache_cleared")

    @property
    def stats(self) -> Dict[str, Any]:
        """Return cache statistics."""
        with self._lock:
            self._current.expire()
            self._historical.expire()
            return {
                "current_entries": len(self._current),
                "historical_entries": len(self._historical),
                "hits": self._hits,
                "misses": self._misses,
            }

