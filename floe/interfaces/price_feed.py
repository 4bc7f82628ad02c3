"""Price feed protocol — external market price abstraction."""
from __future__ import annotations

from typing import Protocol


class PriceFeed(Protocol):
    """Abstract interface for fetching the reference asset's market price."""

    async def fetch_reference_price(self) -> float: ...
