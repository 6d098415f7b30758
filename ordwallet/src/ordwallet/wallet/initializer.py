"""
One-time wallet setup: create a blank descriptor wallet in Bitcoin Core and
import the BIP86 receive and change descriptors derived from a seed.

There is no cleanup on failure. If the first descriptor imports and the
second does not, the wallet is left half-initialized and needs operator
attention; the error is raised unchanged.
"""

from __future__ import annotations

from loguru import logger
from mnemonic import Mnemonic

from ordwallet.backends.bitcoin_core import BitcoinCoreRpc
from ordwallet.bitcoin import NetworkType
from ordwallet.wallet.bip32 import mnemonic_to_seed
from ordwallet.wallet.descriptors import TaprootDescriptor, derive_taproot_descriptors
from ordwallet.wallet.guards import check_version

SEED_LENGTH = 64

WORD_COUNT_TO_STRENGTH = {12: 128, 15: 160, 18: 192, 21: 224, 24: 256}


def import_request(descriptor: TaprootDescriptor) -> dict:
    return {
        "desc": descriptor.private,
        "timestamp": "now",
        "active": True,
        "internal": descriptor.internal,
    }


async def initialize_wallet(
    rpc: BitcoinCoreRpc,
    seed: bytes,
    network: str | NetworkType = NetworkType.MAINNET,
) -> list[TaprootDescriptor]:
    """
    Create ``rpc.wallet_name`` and import its two taproot descriptors.

    Returns:
        The imported descriptors (receive first, then change)
    """
    if len(seed) != SEED_LENGTH:
        raise ValueError(f"Seed must be {SEED_LENGTH} bytes, got {len(seed)}")

    await check_version(rpc)
    await rpc.create_wallet()

    descriptors = derive_taproot_descriptors(seed, network)
    for descriptor in descriptors:
        await rpc.import_descriptors([import_request(descriptor)])

    logger.info(f"Initialized wallet '{rpc.wallet_name}' with receive and change descriptors")
    return descriptors


def validate_mnemonic(mnemonic: str) -> bool:
    """Check a BIP39 English mnemonic's word list membership and checksum."""
    try:
        return Mnemonic("english").check(mnemonic.strip())
    except (ValueError, LookupError):
        return False


def generate_mnemonic(word_count: int = 12) -> str:
    if word_count not in WORD_COUNT_TO_STRENGTH:
        raise ValueError(f"Invalid word count: {word_count}. Must be 12, 15, 18, 21, or 24.")
    return Mnemonic("english").generate(strength=WORD_COUNT_TO_STRENGTH[word_count])


async def restore_wallet(
    rpc: BitcoinCoreRpc,
    mnemonic: str,
    passphrase: str = "",
    network: str | NetworkType = NetworkType.MAINNET,
) -> list[TaprootDescriptor]:
    """Recreate a wallet from an existing BIP39 mnemonic."""
    if not validate_mnemonic(mnemonic):
        raise ValueError("Invalid BIP39 mnemonic (unknown word or bad checksum)")
    seed = mnemonic_to_seed(" ".join(mnemonic.split()), passphrase)
    return await initialize_wallet(rpc, seed, network)


async def create_wallet(
    rpc: BitcoinCoreRpc,
    passphrase: str = "",
    network: str | NetworkType = NetworkType.MAINNET,
    word_count: int = 12,
) -> str:
    """
    Create a wallet from a freshly generated mnemonic.

    Returns:
        The mnemonic; the caller must show it to the user, it is not stored.
    """
    mnemonic = generate_mnemonic(word_count)
    await initialize_wallet(rpc, mnemonic_to_seed(mnemonic, passphrase), network)
    return mnemonic
