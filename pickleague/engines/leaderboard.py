"""
PICK LEAGUE — Leaderboard Aggregator
Values every participant of a competition and ranks them by percent return.

Ordering is total: percent gain desc, then dollar gain desc, then participant
id asc. Ranks are 1-based positions in that order, so two participants with
identical gains still get distinct ranks (the lower id ranks first).
"""
import asyncio
import itertools
from typing import Dict, List, Optional, Protocol

from pickleague.config.settings import get_settings, EngineSettings
from pickleague.data.errors import NotConfigured, PriceError
from pickleague.data.models import (
    CompetitionContext, LeaderboardEntry, LeaderboardSnapshot, Participant, PriceQuote,
)
from pickleague.engines.resolver import PriceResolver, ResolveResult
from pickleague.engines.valuator import PortfolioValuator, ResolveCurrentFn
from pickleague.utils.helpers import utc_now
from pickleague.utils.logger import get_logger, log_context

logger = get_logger("leaderboard")

EXCLUDE_POSITION = "exclude_position"
EXCLUDE_PARTICIPANT = "exclude_participant"


class ParticipantSource(Protocol):
    async def list_participants(self, competition_id: int) -> List[Participant]:
        ...


def sort_key(entry: LeaderboardEntry):
    return (not entry.ranked, -entry.percent_gain, -entry.gain, entry.participant_id)


def assign_ranks(entries: List[LeaderboardEntry]) -> List[LeaderboardEntry]:
    """Sort into the total order and number ranked entries 1..n. Unranked entries get 0."""
    ordered = sorted(entries, key=sort_key)
    position = 0
    for entry in ordered:
        if entry.ranked:
            position += 1
            entry.rank = position
        else:
            entry.rank = 0
    return ordered


class LeaderboardAggregator:
    def __init__(
        self,
        participants: ParticipantSource,
        resolver: PriceResolver,
        valuator: Optional[PortfolioValuator] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.settings = settings or get_settings().engine
        self.participants = participants
        self.resolver = resolver
        self.valuator = valuator or PortfolioValuator(engine=self.settings)
        self._pass_ids = itertools.count(1)
        self._published: Dict[int, LeaderboardSnapshot] = {}

    def current(self, competition_id: int) -> Optional[LeaderboardSnapshot]:
        """Last published snapshot; never a partially built one."""
        return self._published.get(competition_id)

    def get_user_rank(self, competition_id: int, participant_id: int) -> Optional[LeaderboardEntry]:
        snapshot = self.current(competition_id)
        if snapshot is None:
            return None
        return snapshot.entry_for(participant_id)

    async def rank(self, ctx: CompetitionContext) -> LeaderboardSnapshot:
        pass_id = next(self._pass_ids)
        with log_context(competition_id=ctx.id, pass_id=pass_id):
            snapshot = await self._run_pass(ctx, pass_id)
            self._publish(snapshot)
        return snapshot

    async def _run_pass(self, ctx: CompetitionContext, pass_id: int) -> LeaderboardSnapshot:
        participants = await self.participants.list_participants(ctx.id)
        logger.info("leaderboard_pass_started", participants=len(participants))

        # One upstream lookup per distinct ticker, shared by every participant holding it
        tickers = [h.ticker for p in participants for h in p.holdings]
        prices = await self.resolver.resolve_many(tickers, ctx)
        resolve_current = self._lookup(prices, ctx)

        semaphore = asyncio.Semaphore(self.settings.max_concurrent_participants)

        async def evaluate(participant: Participant) -> LeaderboardEntry:
            async with semaphore:
                return await self._evaluate(participant, resolve_current)

        results = await asyncio.gather(*(evaluate(p) for p in participants), return_exceptions=True)
        entries: List[LeaderboardEntry] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            entries.append(result)
        return LeaderboardSnapshot(
            competition_id=ctx.id,
            pass_id=pass_id,
            computed_at=utc_now(),
            entries=assign_ranks(entries),
        )

    def _lookup(self, prices: Dict[str, ResolveResult], ctx: CompetitionContext) -> ResolveCurrentFn:
        async def resolve_current(ticker: str) -> PriceQuote:
            result = prices.get(ticker)
            if result is None:
                return await self.resolver.resolve_current(ticker, ctx)
            if isinstance(result, PriceError):
                raise result
            return result
        return resolve_current

    async def _evaluate(self, participant: Participant, resolve_current: ResolveCurrentFn) -> LeaderboardEntry:
        try:
            valuation = await self.valuator.value(participant.holdings, resolve_current)
        except NotConfigured:
            raise
        except Exception as e:
            logger.error("participant_valuation_failed", participant_id=participant.id, error=str(e))
            return LeaderboardEntry(
                participant_id=participant.id,
                display_name=participant.display_name,
                invested=0.0,
                current=0.0,
                gain=0.0,
                percent_gain=0.0,
                missing_tickers=[h.ticker for h in participant.holdings],
                ranked=False,
                error=str(e),
            )

        ranked = True
        if valuation.missing_tickers and self.settings.missing_price_policy == EXCLUDE_PARTICIPANT:
            ranked = False
        return LeaderboardEntry(
            participant_id=participant.id,
            display_name=participant.display_name,
            invested=valuation.invested,
            current=valuation.current,
            gain=valuation.gain,
            percent_gain=valuation.percent_gain,
            missing_tickers=valuation.missing_tickers,
            ranked=ranked,
        )

    def _publish(self, snapshot: LeaderboardSnapshot) -> None:
        previous = self._published.get(snapshot.competition_id)
        if previous is not None and previous.pass_id > snapshot.pass_id:
            # A newer pass already finished; this one is superseded
            logger.info("leaderboard_pass_discarded", competition_id=snapshot.competition_id,
                        pass_id=snapshot.pass_id, published_pass_id=previous.pass_id)
            return
        self._published[snapshot.competition_id] = snapshot
        logger.info("leaderboard_published", competition_id=snapshot.competition_id,
                    pass_id=snapshot.pass_id, entries=len(snapshot.entries))
