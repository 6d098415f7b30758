"""
Output descriptor helpers.

- BIP380 descriptor checksums
- Descriptor kind classification (tr / rawtr / other)
- BIP86 taproot descriptors for the receive and change branches
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ordwallet.bitcoin import NetworkType, coin_type
from ordwallet.constants import TAPROOT_PURPOSE
from ordwallet.wallet.bip32 import HDKey

INPUT_CHARSET = (
    "0123456789()[],'/*abcdefgh@:$%{}"
    "IJKLMNOPQRSTUVWXYZ&+-.;<=>?!^_|~"
    'ijklmnopqrstuvwxyzABCDEFGH`#"\\ '
)
CHECKSUM_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
GENERATOR = [0xF5DEE51989, 0xA9FDCA3312, 0x1BAB10E32D, 0x3706B1677A, 0x644D626FFD]


def descsum_polymod(symbols: list[int]) -> int:
    """Descriptor checksum polymod (BIP380)"""
    chk = 1
    for value in symbols:
        top = chk >> 35
        chk = (chk & 0x7FFFFFFFF) << 5 ^ value
        for i in range(5):
            chk ^= GENERATOR[i] if ((top >> i) & 1) else 0
    return chk


def descsum_expand(s: str) -> list[int]:
    """Map descriptor characters to checksum symbols"""
    groups: list[int] = []
    symbols: list[int] = []
    for c in s:
        v = INPUT_CHARSET.find(c)
        if v < 0:
            raise ValueError(f"Invalid character in descriptor: {c!r}")
        symbols.append(v & 31)
        groups.append(v >> 5)
        if len(groups) == 3:
            symbols.append(groups[0] * 9 + groups[1] * 3 + groups[2])
            groups = []
    if len(groups) == 1:
        symbols.append(groups[0])
    elif len(groups) == 2:
        symbols.append(groups[0] * 3 + groups[1])
    return symbols


def descriptor_checksum(descriptor: str) -> str:
    symbols = descsum_expand(descriptor) + [0] * 8
    checksum = descsum_polymod(symbols) ^ 1
    return "".join(CHECKSUM_CHARSET[(checksum >> (5 * (7 - i))) & 31] for i in range(8))


def add_checksum(descriptor: str) -> str:
    """Append '#checksum' unless one is already present."""
    if "#" in descriptor:
        return descriptor
    return f"{descriptor}#{descriptor_checksum(descriptor)}"


def strip_checksum(descriptor: str) -> str:
    return descriptor.split("#", 1)[0]


def verify_checksum(descriptor: str) -> bool:
    body, sep, checksum = descriptor.partition("#")
    return bool(sep) and descriptor_checksum(body) == checksum


class DescriptorKind(str, Enum):
    TAPROOT = "tr"
    RAW_TAPROOT = "rawtr"
    OTHER = "other"


def descriptor_kind(descriptor: str) -> DescriptorKind:
    """
    Classify a descriptor by its top-level script expression.

    ``tr(...)`` is TAPROOT and ``rawtr(...)`` is RAW_TAPROOT (Bitcoin Core
    synthesizes the latter alongside imported taproot keys). Anything else,
    including malformed strings, is OTHER.
    """
    body = strip_checksum(descriptor).strip()
    name, sep, _ = body.partition("(")
    if not sep or not body.endswith(")"):
        return DescriptorKind.OTHER
    name = name.strip()
    if name == DescriptorKind.TAPROOT.value:
        return DescriptorKind.TAPROOT
    if name == DescriptorKind.RAW_TAPROOT.value:
        return DescriptorKind.RAW_TAPROOT
    return DescriptorKind.OTHER


@dataclass(frozen=True)
class TaprootDescriptor:
    """
    A BIP86 single-key taproot descriptor for one wallet branch.

    ``private`` carries the account xprv and is what gets imported into a
    wallet with private keys enabled; ``public`` is the equivalent watch-only
    form.
    """

    private: str
    public: str
    internal: bool


def account_path(network: str | NetworkType) -> str:
    """m/86'/{0 mainnet, 1 otherwise}'/0'"""
    return f"m/{TAPROOT_PURPOSE}'/{coin_type(network)}'/0'"


def derive_taproot_descriptors(
    seed: bytes, network: str | NetworkType = NetworkType.MAINNET
) -> list[TaprootDescriptor]:
    """
    Derive the receive (``/0/*``) and change (``/1/*``) taproot descriptors.

    Both keys carry their origin: ``[fingerprint/86'/c'/0']``.
    """
    master = HDKey.from_seed(seed)
    fingerprint = master.fingerprint.hex()
    path = account_path(network)
    account = master.derive(path)
    origin = f"[{fingerprint}{path[1:]}]"

    xprv = account.get_xprv(network)
    xpub = account.get_xpub(network)

    descriptors = []
    for change in (False, True):
        branch = int(change)
        descriptors.append(
            TaprootDescriptor(
                private=add_checksum(f"tr({origin}{xprv}/{branch}/*)"),
                public=add_checksum(f"tr({origin}{xpub}/{branch}/*)"),
                internal=change,
            )
        )
    return descriptors
