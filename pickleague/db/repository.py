"""
PICK LEAGUE — Competition Repository
Read/write access to competitions, participants and their picks.
"""
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from pickleague.data.errors import AlreadyExists, NotFound, NotConfigured
from pickleague.data.models import CompetitionContext, Holding, Participant, PriceProvider
from pickleague.db.schema import CompetitionRecord, ParticipantRecord, StockPickRecord
from pickleague.utils.logger import get_logger

logger = get_logger("repository")


class CompetitionRepository:
    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def get_current_competition(self) -> CompetitionContext:
        """The newest competition. Raises NotConfigured when none exists."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(CompetitionRecord).order_by(CompetitionRecord.id.desc()).limit(1)
            )
            record = result.scalar_one_or_none()
        if record is None:
            raise NotConfigured("Competition has not been configured yet")
        return self._to_context(record)

    async def save_competition(self, ctx: CompetitionContext) -> CompetitionContext:
        """Insert a new competition (ctx.id == 0) or update an existing one."""
        async with self._session_factory() as session:
            record = await session.get(CompetitionRecord, ctx.id) if ctx.id else None
            if record is None:
                record = CompetitionRecord()
                session.add(record)
            record.name = ctx.name
            record.start_date = ctx.start_date
            record.end_date = ctx.end_date
            record.entry_price_date = ctx.entry_price_date
            record.price_provider = ctx.price_provider.value
            record.refresh_interval = ctx.refresh_interval
            await session.commit()
            await session.refresh(record)
        return self._to_context(record)

    async def add_participant(self, competition_id: int, display_name: str) -> Participant:
        async with self._session_factory() as session:
            record = ParticipantRecord(competition_id=competition_id, display_name=display_name)
            session.add(record)
            await session.commit()
            await session.refresh(record)
        return Participant(id=record.id, display_name=record.display_name)

    async def list_participants(self, competition_id: int) -> List[Participant]:
        """Participants with their holdings, ordered by id."""
        async with self._session_factory() as session:
            participants = (await session.execute(
                select(ParticipantRecord)
                .where(ParticipantRecord.competition_id == competition_id)
                .order_by(ParticipantRecord.id)
            )).scalars().all()
            picks = (await session.execute(
                select(StockPickRecord)
                .where(StockPickRecord.competition_id == competition_id)
                .order_by(StockPickRecord.id)
            )).scalars().all()

        by_participant = {}
        for pick in picks:
            by_participant.setdefault(pick.participant_id, []).append(self._to_holding(pick))
        return [
            Participant(id=p.id, display_name=p.display_name, holdings=by_participant.get(p.id, []))
            for p in participants
        ]

    async def get_participant(self, participant_id: int) -> Participant:
        async with self._session_factory() as session:
            record = await session.get(ParticipantRecord, participant_id)
            if record is None:
                raise NotFound(f"participant {participant_id} not found")
            picks = (await session.execute(
                select(StockPickRecord)
                .where(StockPickRecord.participant_id == participant_id)
                .order_by(StockPickRecord.id)
            )).scalars().all()
        return Participant(
            id=record.id,
            display_name=record.display_name,
            holdings=[self._to_holding(p) for p in picks],
        )

    async def add_pick(
        self, competition_id: int, participant_id: int, ticker: str, entry_price: float, quantity: float
    ) -> Holding:
        record = StockPickRecord(
            competition_id=competition_id,
            participant_id=participant_id,
            ticker=ticker,
            entry_price=entry_price,
            quantity=quantity,
        )
        async with self._session_factory() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise AlreadyExists(f"You already picked {ticker}")
            await session.refresh(record)
        logger.info("pick_added", participant_id=participant_id, ticker=ticker,
                    entry_price=entry_price, quantity=quantity)
        return self._to_holding(record)

    async def remove_pick(self, pick_id: int) -> None:
        async with self._session_factory() as session:
            record = await session.get(StockPickRecord, pick_id)
            if record is None:
                raise NotFound(f"pick {pick_id} not found")
            await session.delete(record)
            await session.commit()
        logger.info("pick_removed", pick_id=pick_id)

    @staticmethod
    def _to_context(record: CompetitionRecord) -> CompetitionContext:
        return CompetitionContext(
            id=record.id,
            name=record.name,
            start_date=record.start_date,
            end_date=record.end_date,
            entry_price_date=record.entry_price_date,
            price_provider=PriceProvider(record.price_provider),
            refresh_interval=record.refresh_interval,
        )

    @staticmethod
    def _to_holding(record: StockPickRecord) -> Holding:
        return Holding(
            id=record.id,
            ticker=record.ticker,
            entry_price=record.entry_price,
            quantity=record.quantity,
        )
