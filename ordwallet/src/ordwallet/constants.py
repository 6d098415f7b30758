"""
Constants shared across ordwallet modules.
"""

from __future__ import annotations

SATS_PER_BTC = 100_000_000

# Bitcoin Core version encoding: major * 10000 + minor * 100 + patch
MIN_BITCOIN_CORE_VERSION = 240000

# BIP86 (single key P2TR) purpose
TAPROOT_PURPOSE = 86

# Index sync polling: ~500ms total, tuned for a co-located index server
DEFAULT_SYNC_ATTEMPTS = 20
DEFAULT_SYNC_INTERVAL = 0.025  # seconds

# Timeout for regular RPC/HTTP calls (seconds)
DEFAULT_RPC_TIMEOUT = 30.0
DEFAULT_INDEX_TIMEOUT = 30.0

DEFAULT_WALLET_NAME = "ord"
