"""NVDA lending pool: ledger reads, writes and result decoding."""
from .adapter import NvdaPoolAdapter

__all__ = ["NvdaPoolAdapter"]
