"""
PICK LEAGUE — Error Taxonomy
All engine and store errors derive from PickLeagueError. Each carries the HTTP
status the API boundary reports it with.
"""
from datetime import date
from typing import Optional


class PickLeagueError(Exception):
    """Base exception for Pick League errors."""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PriceError(PickLeagueError):
    """A per-ticker resolution failure. Valuation skips the position and continues."""

    def __init__(self, ticker: str, reason: str):
        self.ticker = ticker
        self.reason = reason
        super().__init__(f"{ticker}: {reason}" if ticker else reason)


class InvalidInput(PriceError):
    """Empty or malformed ticker, malformed date."""
    status_code = 400


class UpstreamUnavailable(PriceError):
    """Non-2xx response, timeout, malformed payload or empty series."""
    status_code = 500


class InvalidPriceData(UpstreamUnavailable):
    """Upstream returned a zero, negative or non-numeric price."""


class RateLimited(PriceError):
    """Explicit upstream rate-limit signal."""
    status_code = 429


class NoDataForDate(PriceError):
    """Valid ticker, but no quote on or before the requested date."""
    status_code = 404

    def __init__(self, ticker: str, target_date: Optional[date] = None, reason: Optional[str] = None):
        self.target_date = target_date
        if reason is None:
            reason = (
                f"no price data on or before {target_date.isoformat()}"
                if target_date else "no price data available"
            )
        super().__init__(ticker, reason)


class NotConfigured(PickLeagueError):
    """Systemic: missing provider credentials or no competition. No valuation is possible."""
    status_code = 500


class StoreError(PickLeagueError):
    """Base store error."""


class AlreadyExists(StoreError):
    """Unique constraint violated; the caller should offer an update instead."""
    status_code = 409


class NotFound(StoreError):
    status_code = 404


class PickLimitExceeded(StoreError):
    status_code = 409
