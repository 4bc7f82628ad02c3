"""Price sources: external market feed and on-chain adapter."""
from .adapter import PriceAdapter
from .yahoo import YahooFinanceFeed

__all__ = ["PriceAdapter", "YahooFinanceFeed"]
