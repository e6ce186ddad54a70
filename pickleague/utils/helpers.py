"""
PICK LEAGUE — Common Utility Functions
"""
import re
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from pickleague.data.errors import InvalidInput

_TICKER_RE = re.compile(r"^[A-Z0-9.\-]{1,10}$")


def utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


def utc_timestamp() -> str:
    """Return current UTC timestamp as ISO string."""
    return utc_now().isoformat()


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safe division avoiding ZeroDivisionError."""
    if denominator == 0:
        return default
    return numerator / denominator


def normalize_ticker(ticker: Optional[str]) -> str:
    """Canonicalize a ticker: aapl -> AAPL. Rejects empty or malformed symbols."""
    if ticker is None or not ticker.strip():
        raise InvalidInput(ticker or "", "ticker is required")
    canonical = ticker.strip().upper()
    if not _TICKER_RE.match(canonical):
        raise InvalidInput(canonical, "ticker must be 1-10 letters, digits, '.' or '-'")
    return canonical


def parse_date(value: Union[str, date, datetime, None]) -> date:
    """Parse a YYYY-MM-DD string (or pass through a date)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise InvalidInput("", "date is required")
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise InvalidInput("", f"malformed date: {value!r}")


def round_quantity(value: float, decimals: int = 4) -> float:
    """Round half-up to a fixed number of decimals (share quantities)."""
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def compute_quantity(allocation: float, entry_price: float, decimals: int = 4) -> float:
    """Fractional shares bought with a fixed allocation at entry_price."""
    if entry_price <= 0:
        raise InvalidInput("", f"entry price must be positive, got {entry_price}")
    return round_quantity(allocation / entry_price, decimals)
