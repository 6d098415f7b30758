"""
Exception hierarchy for wallet/index reconciliation.

Every error carries the context needed to diagnose it (outpoint, wallet name,
sat, versions or heights) both as attributes and in its message.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ordwallet.models import OutPoint


class OrdWalletError(Exception):
    """Base exception for ordwallet errors."""

    pass


class TransportError(OrdWalletError):
    """An RPC or HTTP call failed, or returned a non-success status."""

    pass


NetworkError = TransportError


class RpcError(TransportError):
    """Bitcoin Core answered with a JSON-RPC error object."""

    def __init__(self, code: int | str, message: str, method: str | None = None):
        self.code = code
        self.rpc_message = message
        self.method = method
        super().__init__(f"RPC error {code}: {message}")


class VersionError(OrdWalletError):
    """Bitcoin Core is older than the minimum supported version."""

    def __init__(self, required: str, actual: str):
        self.required = required
        self.actual = actual
        super().__init__(
            f"Bitcoin Core {required} or newer required, current version is {actual}"
        )


class WalletShapeError(OrdWalletError):
    """The named wallet holds descriptors this package did not create."""

    def __init__(self, wallet_name: str):
        self.wallet_name = wallet_name
        super().__init__(
            f'wallet "{wallet_name}" contains unexpected output descriptors, and does not '
            "appear to be an ord wallet, create a new wallet with `ord wallet create`"
        )


class SyncTimeoutError(OrdWalletError):
    """The index did not reach the node's block count within the attempt budget."""

    def __init__(self, target: int, last_height: int | None, attempts: int):
        self.target = target
        self.last_height = last_height
        self.attempts = attempts
        super().__init__(
            f"wallet failed to synchronize to index: index at {last_height}, "
            f"expected {target} after {attempts} attempts"
        )


class ConsistencyError(OrdWalletError):
    """Wallet and index disagree about an output."""

    def __init__(self, message: str, outpoint: OutPoint | None = None):
        self.outpoint = outpoint
        super().__init__(message)


class PreconditionError(OrdWalletError):
    """A required index feature (sat or rune index) is disabled."""

    pass


class NotFoundError(OrdWalletError):
    """A sat or inscription could not be found."""

    pass
