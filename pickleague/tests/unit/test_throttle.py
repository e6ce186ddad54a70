"""
PICK LEAGUE — Unit Tests for the Request Throttle
"""
import pytest

from conftest import FakeClock
from pickleague.data.throttle import RequestThrottle


class FakeSleep:
    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)
        self.clock.advance(delay)


@pytest.fixture
def throttle(clock):
    return RequestThrottle(max_requests=2, window_seconds=60, name="test", clock=clock, sleep=FakeSleep(clock))


class TestRequestThrottle:
    @pytest.mark.asyncio
    async def test_requests_under_ceiling_do_not_wait(self, throttle):
        await throttle.acquire()
        await throttle.acquire()
        assert throttle._sleep.delays == []
        assert throttle.stats["in_window"] == 2

    @pytest.mark.asyncio
    async def test_waits_for_oldest_start_to_leave_window(self, throttle, clock):
        await throttle.acquire()
        clock.advance(10)
        await throttle.acquire()
        await throttle.acquire()
        assert throttle._sleep.delays == [50]
        assert throttle.stats["waits"] == 1

    @pytest.mark.asyncio
    async def test_window_rolls_over(self, throttle, clock):
        await throttle.acquire()
        await throttle.acquire()
        clock.advance(60)
        async with throttle:
            pass
        assert throttle._sleep.delays == []

    def test_rejects_zero_ceiling(self):
        with pytest.raises(ValueError):
            RequestThrottle(max_requests=0, window_seconds=60)
