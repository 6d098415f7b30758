"""
Preconditions checked on every Bitcoin Core client acquisition.

The node behind the configured URL may change between calls, so nothing
here is cached.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from loguru import logger

from ordwallet.backends.bitcoin_core import BitcoinCoreRpc
from ordwallet.constants import MIN_BITCOIN_CORE_VERSION
from ordwallet.errors import VersionError, WalletShapeError
from ordwallet.wallet.descriptors import DescriptorKind, descriptor_kind


def format_bitcoin_core_version(version: int) -> str:
    """240000 -> '24.0.0'"""
    return f"{version // 10000}.{version % 10000 // 100}.{version % 100}"


def ensure_min_version(version: int, minimum: int = MIN_BITCOIN_CORE_VERSION) -> None:
    if version < minimum:
        raise VersionError(
            format_bitcoin_core_version(minimum),
            format_bitcoin_core_version(version),
        )


async def check_version(
    rpc: BitcoinCoreRpc, minimum: int = MIN_BITCOIN_CORE_VERSION
) -> BitcoinCoreRpc:
    """Return ``rpc`` if the node is at least ``minimum``, else raise VersionError."""
    version = await rpc.get_version()
    logger.debug(f"Bitcoin Core version {format_bitcoin_core_version(version)}")
    ensure_min_version(version, minimum)
    return rpc


def check_wallet_shape(wallet_name: str, descriptors: Iterable[str]) -> None:
    """
    Accept only wallets holding exactly the two taproot descriptors this
    package imports, plus any rawtr descriptors Bitcoin Core adds itself.
    """
    kinds = Counter(descriptor_kind(desc) for desc in descriptors)
    taproot = kinds[DescriptorKind.TAPROOT]
    raw_taproot = kinds[DescriptorKind.RAW_TAPROOT]
    total = sum(kinds.values())

    if taproot != 2 or total != 2 + raw_taproot:
        logger.debug(
            f"Wallet '{wallet_name}' has {taproot} tr, {raw_taproot} rawtr, "
            f"{total} total descriptor(s)"
        )
        raise WalletShapeError(wallet_name)
