from __future__ import annotations


class TrackerError(Exception):
    """Base class for position tracker errors."""


class PositionNotFoundError(TrackerError):
    def __init__(self, position_id: str):
        super().__init__(f"Position not found: {position_id}")
        self.position_id = position_id


class PriceUnavailableError(TrackerError):
    def __init__(self, market_id: str, outcome: str):
        super().__init__(f"Price unavailable for market={market_id} outcome={outcome}")
        self.market_id = market_id
        self.outcome = outcome


class PositionStoreError(TrackerError):
    """Raised when the backing file cannot be read or written."""
