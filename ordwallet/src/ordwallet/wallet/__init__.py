"""
Wallet functionality: key derivation, descriptors, guards and the
wallet/index reconciliation service.
"""

from ordwallet.wallet.initializer import (
    create_wallet,
    generate_mnemonic,
    initialize_wallet,
    restore_wallet,
    validate_mnemonic,
)
from ordwallet.wallet.service import OrdWallet
from ordwallet.wallet.session import IndexServerHandle, wallet_session

__all__ = [
    "IndexServerHandle",
    "OrdWallet",
    "create_wallet",
    "generate_mnemonic",
    "initialize_wallet",
    "restore_wallet",
    "validate_mnemonic",
    "wallet_session",
]
