"""
PICK LEAGUE — Portfolio Valuator
Values a participant's holdings against current prices.
"""
import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence

from pickleague.config.settings import get_settings, CompetitionSettings, EngineSettings
from pickleague.data.errors import PriceError
from pickleague.data.models import Holding, ParticipantValuation, PositionValuation, PriceQuote
from pickleague.utils.helpers import safe_divide
from pickleague.utils.logger import get_logger

logger = get_logger("valuator")

ResolveCurrentFn = Callable[[str], Awaitable[PriceQuote]]


class PortfolioValuator:
    """
    Invested value per holding is the fixed allocation, not entry_price * quantity
    (quantity was rounded at pick time, so the product drifts from the allocation).
    A position whose price cannot be resolved is left out of both totals.
    """

    def __init__(
        self,
        competition: Optional[CompetitionSettings] = None,
        engine: Optional[EngineSettings] = None,
    ):
        settings = get_settings()
        self.allocation = (competition or settings.competition).allocation_per_pick
        self.max_concurrent = (engine or settings.engine).max_concurrent_prices

    async def value(
        self, holdings: Sequence[Holding], resolve_current: ResolveCurrentFn
    ) -> ParticipantValuation:
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def resolve(ticker: str) -> PriceQuote:
            async with semaphore:
                return await resolve_current(ticker)

        results = await asyncio.gather(
            *(resolve(h.ticker) for h in holdings), return_exceptions=True
        )

        positions: List[PositionValuation] = []
        missing: List[str] = []
        for holding, result in zip(holdings, results):
            if isinstance(result, PriceError):
                logger.warning("position_price_missing", ticker=holding.ticker, error=str(result))
                missing.append(holding.ticker)
                positions.append(PositionValuation(
                    ticker=holding.ticker,
                    entry_price=holding.entry_price,
                    quantity=holding.quantity,
                    error=str(result),
                ))
                continue
            if isinstance(result, BaseException):
                # Systemic (NotConfigured) or unexpected: no valid valuation is possible
                raise result
            positions.append(self.value_position(holding, result))

        return self.summarize(positions, missing)

    def value_position(self, holding: Holding, quote: PriceQuote) -> PositionValuation:
        current_value = quote.price * holding.quantity
        gain = current_value - self.allocation
        return PositionValuation(
            ticker=holding.ticker,
            entry_price=holding.entry_price,
            quantity=holding.quantity,
            current_price=quote.price,
            invested=self.allocation,
            current_value=current_value,
            gain=gain,
            percent_gain=safe_divide(gain, self.allocation) * 100.0,
            source=quote.source,
        )

    def summarize(self, positions: List[PositionValuation], missing: List[str]) -> ParticipantValuation:
        resolved = [p for p in positions if p.is_resolved]
        invested = sum(p.invested for p in resolved)
        current = sum(p.current_value for p in resolved)
        gain = current - invested
        return ParticipantValuation(
            invested=invested,
            current=current,
            gain=gain,
            percent_gain=safe_divide(gain, invested) * 100.0,
            positions=positions,
            missing_tickers=missing,
        )
