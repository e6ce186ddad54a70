"""
PICK LEAGUE — Data Models
Canonical data structures used across the engine and the API.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from enum import Enum


class PriceProvider(str, Enum):
    ALPHA_VANTAGE = "alpha_vantage"
    YAHOO_FINANCE = "yahoo_finance"
    MANUAL = "manual"


MANUAL_SOURCE = "manual"


class CompetitionContext(BaseModel):
    """The trading round every resolution and valuation runs against."""
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    entry_price_date: date
    price_provider: PriceProvider = PriceProvider.ALPHA_VANTAGE
    refresh_interval: int = Field(default=60, ge=5, le=300)


class PriceQuote(BaseModel):
    """An authoritative price with provenance."""
    ticker: str
    price: float
    as_of: Optional[date] = None
    source: str
    fetched_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"price": self.price, "source": self.source}
        if self.as_of is not None:
            payload["date"] = self.as_of.isoformat()
        return payload


class Holding(BaseModel):
    """A participant's stock pick."""
    id: Optional[int] = None
    ticker: str
    entry_price: float
    quantity: float


class Participant(BaseModel):
    id: int
    display_name: str
    holdings: List[Holding] = []


class PositionValuation(BaseModel):
    ticker: str
    entry_price: float
    quantity: float
    current_price: Optional[float] = None
    invested: float = 0.0
    current_value: float = 0.0
    gain: float = 0.0
    percent_gain: float = 0.0
    source: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.current_price is not None


class ParticipantValuation(BaseModel):
    """Derived, never persisted."""
    invested: float = 0.0
    current: float = 0.0
    gain: float = 0.0
    percent_gain: float = 0.0
    positions: List[PositionValuation] = []
    missing_tickers: List[str] = []

    @property
    def is_complete(self) -> bool:
        return not self.missing_tickers


class LeaderboardEntry(BaseModel):
    participant_id: int
    display_name: str
    invested: float
    current: float
    gain: float
    percent_gain: float
    missing_tickers: List[str] = []
    ranked: bool = True
    error: Optional[str] = None
    rank: int = 0


class LeaderboardSnapshot(BaseModel):
    """One published aggregation pass."""
    competition_id: int
    pass_id: int
    computed_at: datetime
    entries: List[LeaderboardEntry] = []

    def entry_for(self, participant_id: int) -> Optional[LeaderboardEntry]:
        for entry in self.entries:
            if entry.participant_id == participant_id:
                return entry
        return None
