"""EVM chain access: JSON-RPC client, ABI codec and local signer."""
from .client import EvmClient
from .signer import LocalSigner

__all__ = ["EvmClient", "LocalSigner"]
