"""
Clients for the two views of chain state.

- BitcoinCoreRpc: the custodial Bitcoin Core descriptor wallet
- OrdIndexClient: the ord index server JSON API
"""

from ordwallet.backends.bitcoin_core import BitcoinCoreRpc
from ordwallet.backends.ord_index import OrdIndexClient

__all__ = ["BitcoinCoreRpc", "OrdIndexClient"]
