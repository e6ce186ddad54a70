"""
PICK LEAGUE — Unit Tests for Portfolio Valuation
"""
import pytest

from pickleague.config.settings import CompetitionSettings, EngineSettings
from pickleague.data.errors import NotConfigured, UpstreamUnavailable
from pickleague.data.models import Holding
from pickleague.engines.valuator import PortfolioValuator
from pickleague.utils.helpers import compute_quantity


@pytest.fixture
def valuator(competition_settings, engine_settings):
    return PortfolioValuator(competition_settings, engine_settings)


class TestPortfolioValuator:
    @pytest.mark.asyncio
    async def test_single_position_end_to_end(self, valuator, resolver, ctx):
        quantity = compute_quantity(1000.0, 150.0)
        assert quantity == 6.6667
        holding = Holding(ticker="AAPL", entry_price=150.0, quantity=quantity)

        valuation = await valuator.value([holding], lambda t: resolver.resolve_current(t, ctx))
        assert valuation.invested == 1000.0
        assert valuation.current == pytest.approx(1100.0, abs=0.01)
        assert valuation.gain == pytest.approx(100.0, abs=0.01)
        assert valuation.percent_gain == pytest.approx(10.0, abs=0.01)
        assert valuation.is_complete

    @pytest.mark.asyncio
    async def test_unresolvable_position_excluded_from_both_totals(self, valuator, resolver, yahoo, ctx):
        yahoo.current["TSLA"] = UpstreamUnavailable("TSLA", "HTTP 503")
        holdings = [
            Holding(ticker="AAPL", entry_price=150.0, quantity=6.6667),
            Holding(ticker="TSLA", entry_price=250.0, quantity=4.0),
        ]
        valuation = await valuator.value(holdings, lambda t: resolver.resolve_current(t, ctx))
        assert valuation.missing_tickers == ["TSLA"]
        assert valuation.invested == 1000.0
        assert valuation.percent_gain == pytest.approx(10.0, abs=0.01)
        assert not valuation.is_complete
        missing = [p for p in valuation.positions if not p.is_resolved][0]
        assert missing.ticker == "TSLA"
        assert "HTTP 503" in missing.error

    @pytest.mark.asyncio
    async def test_no_holdings_is_zero_percent(self, valuator, resolver, ctx):
        valuation = await valuator.value([], lambda t: resolver.resolve_current(t, ctx))
        assert valuation.invested == 0.0
        assert valuation.current == 0.0
        assert valuation.percent_gain == 0.0

    @pytest.mark.asyncio
    async def test_all_positions_missing_is_zero_percent(self, valuator, resolver, yahoo, ctx):
        yahoo.current["AAPL"] = UpstreamUnavailable("AAPL", "HTTP 503")
        valuation = await valuator.value(
            [Holding(ticker="AAPL", entry_price=150.0, quantity=6.6667)],
            lambda t: resolver.resolve_current(t, ctx),
        )
        assert valuation.invested == 0.0
        assert valuation.percent_gain == 0.0
        assert valuation.missing_tickers == ["AAPL"]

    @pytest.mark.asyncio
    async def test_not_configured_propagates(self, valuator):
        async def unconfigured(ticker):
            raise NotConfigured("Alpha Vantage API key not configured")

        with pytest.raises(NotConfigured):
            await valuator.value([Holding(ticker="AAPL", entry_price=150.0, quantity=6.6667)], unconfigured)

    @pytest.mark.asyncio
    async def test_losing_position_is_negative(self, valuator, resolver, ctx):
        # MSFT entered at 500, now 420
        holding = Holding(ticker="MSFT", entry_price=500.0, quantity=compute_quantity(1000.0, 500.0))
        valuation = await valuator.value([holding], lambda t: resolver.resolve_current(t, ctx))
        assert valuation.current == pytest.approx(840.0)
        assert valuation.gain == pytest.approx(-160.0)
        assert valuation.percent_gain == pytest.approx(-16.0)

    def test_invested_uses_fixed_allocation(self):
        valuator = PortfolioValuator(CompetitionSettings(allocation_per_pick=500.0), EngineSettings())
        summary = valuator.summarize([], [])
        assert summary.invested == 0.0
        assert valuator.allocation == 500.0
