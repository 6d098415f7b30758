"""
Bitcoin utilities for ordwallet.

This module provides:
- Network types and BIP32 extended key version bytes
- Amount conversion (BTC -> satoshis)
- Hash functions (hash160)
"""

from __future__ import annotations

import hashlib
from decimal import Decimal
from enum import Enum

from ordwallet.constants import SATS_PER_BTC


class NetworkType(str, Enum):
    """Bitcoin network types."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"


# BIP32 serialization version bytes (private, public)
XKEY_VERSIONS = {
    NetworkType.MAINNET: (bytes.fromhex("0488ade4"), bytes.fromhex("0488b21e")),
    NetworkType.TESTNET: (bytes.fromhex("04358394"), bytes.fromhex("043587cf")),
    NetworkType.SIGNET: (bytes.fromhex("04358394"), bytes.fromhex("043587cf")),
    NetworkType.REGTEST: (bytes.fromhex("04358394"), bytes.fromhex("043587cf")),
}


def coin_type(network: str | NetworkType) -> int:
    """SLIP-44 coin type: 0 on mainnet, 1 on every test network."""
    return 0 if NetworkType(network) == NetworkType.MAINNET else 1


# Bech32 human-readable parts
HRP_MAP = {
    NetworkType.MAINNET: "bc",
    NetworkType.TESTNET: "tb",
    NetworkType.SIGNET: "tb",
    NetworkType.REGTEST: "bcrt",
}


def get_hrp(network: str | NetworkType) -> str:
    """Bech32 HRP for ``network`` (bc, tb, bcrt)."""
    return HRP_MAP[NetworkType(network)]


# =============================================================================
# Amount Utilities
# =============================================================================


def btc_to_sats(btc: float | Decimal) -> int:
    """
    Convert BTC to satoshis safely.

    Uses round() instead of int() to avoid floating point precision errors
    that can truncate values (e.g. 0.0003 * 1e8 = 29999.999...). Decimal
    input (as parsed from RPC responses) converts exactly.

    Args:
        btc: Amount in BTC

    Returns:
        Amount in satoshis
    """
    return int(round(btc * SATS_PER_BTC))


# =============================================================================
# Hash Functions
# =============================================================================


def hash160(data: bytes) -> bytes:
    """
    RIPEMD160(SHA256(data)) - Used for BIP32 key fingerprints.

    Args:
        data: Input data to hash

    Returns:
        20-byte hash
    """
    return hashlib.new("ripemd160", hashlib.sha256(data).digest()).digest()
