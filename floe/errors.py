"""Error taxonomy.

Gating outcomes (missing collateral, missing approval, cap exceeded) are not
exceptions; they surface as ``ActionGate`` values on the position view.
"""
from __future__ import annotations


class FloeError(Exception):
    """Base class for all errors raised by this package."""


class InvalidBase(FloeError, ValueError):
    """A decimal base was negative."""


class InvalidConfig(FloeError, ValueError):
    """Configuration is missing or invalid. Fatal at startup."""


class FeedError(FloeError):
    """The external market-data source could not provide a price."""


class FeedUnavailable(FeedError):
    """Transport failure or non-success response from the market source."""


class FeedMalformed(FeedError):
    """The market source answered, but without a usable price."""


class ChainReadFailure(FloeError):
    """A contract read or RPC query failed."""


class ChainWriteFailure(FloeError):
    """A transaction was rejected, reverted or not confirmed in time."""

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason
