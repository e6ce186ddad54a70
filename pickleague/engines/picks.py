"""
PICK LEAGUE — Pick Service
Captures a participant's pick at the competition's entry price.
"""
from typing import Optional, Protocol

from pickleague.config.settings import get_settings, CompetitionSettings
from pickleague.data.errors import AlreadyExists, PickLimitExceeded
from pickleague.data.models import CompetitionContext, Holding, PriceQuote
from pickleague.engines.resolver import PriceResolver
from pickleague.utils.helpers import normalize_ticker, compute_quantity
from pickleague.utils.logger import get_logger

logger = get_logger("picks")


class PickStore(Protocol):
    async def get_participant(self, participant_id: int): ...

    async def add_pick(
        self, competition_id: int, participant_id: int, ticker: str, entry_price: float, quantity: float
    ) -> Holding: ...

    async def remove_pick(self, pick_id: int) -> None: ...


class PickService:
    def __init__(
        self,
        store: PickStore,
        resolver: PriceResolver,
        settings: Optional[CompetitionSettings] = None,
    ):
        self.settings = settings or get_settings().competition
        self.store = store
        self.resolver = resolver

    async def add_pick(self, ctx: CompetitionContext, participant_id: int, ticker: str):
        """Returns (holding, entry quote). The entry price is persisted once, here."""
        ticker = normalize_ticker(ticker)
        participant = await self.store.get_participant(participant_id)
        if len(participant.holdings) >= self.settings.max_picks:
            raise PickLimitExceeded(f"You can only pick {self.settings.max_picks} stocks")
        if any(h.ticker == ticker for h in participant.holdings):
            raise AlreadyExists(f"You already picked {ticker}")

        quote: PriceQuote = await self.resolver.resolve_as_of(ticker, ctx.entry_price_date, ctx)
        quantity = compute_quantity(
            self.settings.allocation_per_pick, quote.price, self.settings.quantity_decimals
        )
        holding = await self.store.add_pick(ctx.id, participant_id, ticker, quote.price, quantity)
        logger.info("pick_captured", participant_id=participant_id, ticker=ticker,
                    entry_price=quote.price, quantity=quantity, source=quote.source)
        return holding, quote

    async def remove_pick(self, pick_id: int) -> None:
        await self.store.remove_pick(pick_id)
