"""Protocol interfaces for the Floe client and price feeder."""
from .chain import ChainClient
from .notifier import Notifier
from .price_feed import PriceFeed
from .signer import TransactionSigner

__all__ = ["ChainClient", "Notifier", "PriceFeed", "TransactionSigner"]
