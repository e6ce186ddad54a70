"""
PICK LEAGUE — Request Throttle
Rolling-window limiter for upstream sources with a hard request ceiling
(Alpha Vantage free tier: ~5 requests/minute).
"""
import asyncio
import time
from collections import deque
from typing import Callable, Deque, Dict, Any

from pickleague.utils.logger import get_logger

logger = get_logger("throttle")


class RequestThrottle:
    """Allows at most `max_requests` starts per `window_seconds`; callers wait their turn."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        name: str = "throttle",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._starts: Deque[float] = deque()
        self._lock = asyncio.Lock()
        self._waits = 0

    async def acquire(self) -> None:
        async with self._lock:
            while True:
                now = self._clock()
                while self._starts and now - self._starts[0] >= self.window_seconds:
                    self._starts.popleft()
                if len(self._starts) < self.max_requests:
                    self._starts.append(now)
                    return
                delay = self.window_seconds - (now - self._starts[0])
                self._waits += 1
                logger.info("throttle_wait", throttle=self.name, delay_seconds=round(delay, 2))
                await self._sleep(delay)

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "max_requests": self.max_requests,
            "window_seconds": self.window_seconds,
            "in_window": len(self._starts),
            "waits": self._waits,
        }
