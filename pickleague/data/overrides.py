"""
PICK LEAGUE — Manual Override Store
Administrator-entered prices per (competition, ticker). An override always
wins over any provider, for current and historical lookups alike.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, Tuple

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from pickleague.data.errors import AlreadyExists, NotFound, InvalidInput
from pickleague.db.schema import ManualEntryPriceRecord
from pickleague.utils.helpers import normalize_ticker
from pickleague.utils.logger import get_logger

logger = get_logger("overrides")


class ManualPrice(BaseModel):
    id: int
    competition_id: int
    ticker: str
    price: float


class ManualOverrideStore(Protocol):
    async def lookup(self, competition_id: int, ticker: str) -> Optional[float]:
        ...


def _validate_price(ticker: str, price: float) -> float:
    if price is None or price <= 0:
        raise InvalidInput(ticker, f"manual price must be positive, got {price}")
    return float(price)


class SqlManualOverrideStore:
    """Overrides backed by the manual_entry_prices table."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def lookup(self, competition_id: int, ticker: str) -> Optional[float]:
        ticker = normalize_ticker(ticker)
        async with self._session_factory() as session:
            result = await session.execute(
                select(ManualEntryPriceRecord.price).where(
                    ManualEntryPriceRecord.competition_id == competition_id,
                    ManualEntryPriceRecord.ticker == ticker,
                )
            )
            return result.scalar_one_or_none()

    async def list(self, competition_id: int) -> List[ManualPrice]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ManualEntryPriceRecord)
                .where(ManualEntryPriceRecord.competition_id == competition_id)
                .order_by(ManualEntryPriceRecord.ticker)
            )
            return [self._to_model(r) for r in result.scalars()]

    async def add(self, competition_id: int, ticker: str, price: float) -> ManualPrice:
        ticker = normalize_ticker(ticker)
        price = _validate_price(ticker, price)
        record = ManualEntryPriceRecord(competition_id=competition_id, ticker=ticker, price=price)
        async with self._session_factory() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise AlreadyExists(f"Price for {ticker} already exists. Use update to modify.")
            await session.refresh(record)
        logger.info("manual_price_added", competition_id=competition_id, ticker=ticker, price=price)
        return self._to_model(record)

    async def update(self, price_id: int, price: float) -> ManualPrice:
        async with self._session_factory() as session:
            record = await session.get(ManualEntryPriceRecord, price_id)
            if record is None:
                raise NotFound(f"manual price {price_id} not found")
            record.price = _validate_price(record.ticker, price)
            record.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(record)
        logger.info("manual_price_updated", price_id=price_id, ticker=record.ticker, price=record.price)
        return self._to_model(record)

    async def delete(self, price_id: int) -> None:
        async with self._session_factory() as session:
            record = await session.get(ManualEntryPriceRecord, price_id)
            if record is None:
                raise NotFound(f"manual price {price_id} not found")
            await session.delete(record)
            await session.commit()
        logger.info("manual_price_deleted", price_id=price_id)

    @staticmethod
    def _to_model(record: ManualEntryPriceRecord) -> ManualPrice:
        return ManualPrice(
            id=record.id,
            competition_id=record.competition_id,
            ticker=record.ticker,
            price=record.price,
        )


class InMemoryOverrideStore:
    """Dictionary-backed store for scripts and tests."""

    def __init__(self, prices: Optional[Dict[Tuple[int, str], float]] = None):
        self._prices: Dict[Tuple[int, str], float] = {}
        self.lookups = 0
        for (competition_id, ticker), price in (prices or {}).items():
            self._prices[(competition_id, normalize_ticker(ticker))] = _validate_price(ticker, price)

    async def lookup(self, competition_id: int, ticker: str) -> Optional[float]:
        self.lookups += 1
        return self._prices.get((competition_id, normalize_ticker(ticker)))

    def put(self, competition_id: int, ticker: str, price: float) -> None:
        ticker = normalize_ticker(ticker)
        self._prices[(competition_id, ticker)] = _validate_price(ticker, price)
