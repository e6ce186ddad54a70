"""
PICK LEAGUE — Database Schema
SQLAlchemy models for competitions, participants, picks and manual prices.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, ForeignKey,
    Index, UniqueConstraint
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

Base = declarative_base()


class CompetitionRecord(Base):
    """A trading round. The service treats the newest row as the current one."""
    __tablename__ = "competitions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    start_date = Column(Date)
    end_date = Column(Date)
    entry_price_date = Column(Date, nullable=False)
    price_provider = Column(String(32), nullable=False, default="alpha_vantage")
    refresh_interval = Column(Integer, nullable=False, default=60)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


class ParticipantRecord(Base):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    competition_id = Column(Integer, ForeignKey("competitions.id"), nullable=False, index=True)
    display_name = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


class StockPickRecord(Base):
    """A participant's pick; entry_price and quantity are fixed at pick time."""
    __tablename__ = "stock_picks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=False)
    competition_id = Column(Integer, ForeignKey("competitions.id"), nullable=False)
    ticker = Column(String(10), nullable=False)
    entry_price = Column(Float, nullable=False)
    quantity = Column(Float, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("participant_id", "ticker", name="uq_stock_picks_participant_ticker"),
        Index("idx_stock_picks_participant", "participant_id"),
    )


class ManualEntryPriceRecord(Base):
    """Administrator-entered price; outranks every provider within its competition."""
    __tablename__ = "manual_entry_prices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    competition_id = Column(Integer, ForeignKey("competitions.id"), nullable=False)
    ticker = Column(String(10), nullable=False)
    price = Column(Float, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("competition_id", "ticker", name="uq_manual_prices_competition_ticker"),
    )


async def init_db(db_url: str, echo: bool = False) -> async_sessionmaker:
    """Initialize database and create all tables."""
    engine = create_async_engine(db_url, echo=echo)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
