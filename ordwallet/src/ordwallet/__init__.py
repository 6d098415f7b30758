"""
ordwallet - Bitcoin Core descriptor wallet reconciled against an ord index.

Keeps the node's UTXO set and the index's per-output ordinal metadata
consistent, derives BIP86 taproot wallets from a seed, and resolves sat
ordinals to satpoints.
"""

__version__ = "0.3.0"

from ordwallet.errors import (
    ConsistencyError,
    NetworkError,
    NotFoundError,
    OrdWalletError,
    PreconditionError,
    RpcError,
    SyncTimeoutError,
    TransportError,
    VersionError,
    WalletShapeError,
)
from ordwallet.models import OutPoint, SatPoint
from ordwallet.wallet.service import OrdWallet

__all__ = [
    "ConsistencyError",
    "NetworkError",
    "NotFoundError",
    "OrdWallet",
    "OrdWalletError",
    "OutPoint",
    "PreconditionError",
    "RpcError",
    "SatPoint",
    "SyncTimeoutError",
    "TransportError",
    "VersionError",
    "WalletShapeError",
]
