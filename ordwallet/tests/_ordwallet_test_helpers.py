"""
Shared test helpers for ordwallet tests.

Constants and factory functions used across ordwallet test files.
Separated from conftest.py to avoid import collisions when running
tests from the repository root.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

from ordwallet.backends.bitcoin_core import BitcoinCoreRpc
from ordwallet.backends.ord_index import OrdIndexClient
from ordwallet.models import OutPoint, OutputInfo, ServerStatus
from ordwallet.wallet.service import OrdWallet

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TEST_MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon about"
)

TEST_RPC_URL = "http://localhost:18443"
TEST_INDEX_URL = "http://localhost:8080"

TXID_A = "aa" * 32
TXID_B = "bb" * 32
TXID_C = "cc" * 32

# Descriptors as listdescriptors reports them for an ord wallet
ACCOUNT_XPUB = (
    "xpub6BgBgsespWvERF3LHQu6CnqdvfEvtMcQjYrcRzx53QJjSxarj2afYWcLteoGVky7D3UKDP9QyrLprQ3VCECoY49yfdDEHGCtMMj92pReUsQ"
)
TR_RECEIVE = f"tr([73c5da0a/86h/0h/0h]{ACCOUNT_XPUB}/0/*)"
TR_CHANGE = f"tr([73c5da0a/86h/0h/0h]{ACCOUNT_XPUB}/1/*)"
WPKH = f"wpkh([73c5da0a/84h/0h/0h]{ACCOUNT_XPUB}/0/*)"


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


def make_mock_rpc(
    responses: dict[str, Any],
    *,
    default: Any = None,
    strict: bool = True,
) -> Any:
    """Create a mock RPC dispatcher function from a method->response mapping.

    Args:
        responses: Dict mapping RPC method names to their return values.
                   Values can be callables ``(params, use_wallet) -> Any``
                   for dynamic responses, exceptions (raised), or plain
                   values returned as-is.
        default: Value returned for methods not in *responses* when
                 *strict* is False.
        strict: If True (default), raise ``ValueError`` for unknown methods.

    Returns:
        An async function compatible with ``BitcoinCoreRpc._rpc_call``.
    """

    async def _mock_rpc(
        method: str,
        params: list[Any] | None = None,
        use_wallet: bool = True,
    ) -> Any:
        if method in responses:
            value = responses[method]
            if isinstance(value, Exception):
                raise value
            if callable(value):
                return value(params, use_wallet)
            return value
        if strict:
            raise ValueError(f"Unexpected RPC method: {method}")
        return default

    return _mock_rpc


def ord_wallet_responses(**overrides: Any) -> dict[str, Any]:
    """RPC responses for a healthy, loaded ord wallet with no outputs."""
    responses: dict[str, Any] = {
        "getnetworkinfo": {"version": 250000},
        "listwallets": ["ord"],
        "listdescriptors": {
            "wallet_name": "ord",
            "descriptors": [{"desc": TR_RECEIVE}, {"desc": TR_CHANGE}],
        },
        "getblockcount": 100,
        "listunspent": [],
        "listlockunspent": [],
    }
    responses.update(overrides)
    return responses


def unspent(txid: str, vout: int, amount: str) -> dict[str, Any]:
    """A listunspent entry as parsed from the node's JSON (Decimal amounts)."""
    return {"txid": txid, "vout": vout, "amount": Decimal(amount), "confirmations": 6}


def make_index(
    outputs: dict[OutPoint, dict[str, Any]] | None = None,
    *,
    block_count: int = 101,
    sat_index: bool = True,
    rune_index: bool = True,
) -> OrdIndexClient:
    """OrdIndexClient with its request methods replaced by AsyncMocks.

    ``outputs`` maps outpoints to ``/output`` JSON bodies; unknown outpoints
    are reported as not indexed.
    """
    outputs = outputs or {}
    index = OrdIndexClient(TEST_INDEX_URL)
    index.get_block_count = AsyncMock(return_value=block_count)
    index.get_output = AsyncMock(
        side_effect=lambda outpoint: OutputInfo.model_validate(
            outputs.get(outpoint, {"indexed": False})
        )
    )
    index.get_status = AsyncMock(
        return_value=ServerStatus(sat_index=sat_index, rune_index=rune_index)
    )
    return index


def make_wallet(
    responses: dict[str, Any] | None = None,
    index: OrdIndexClient | None = None,
    **kwargs: Any,
) -> OrdWallet:
    """OrdWallet over a mocked RPC dispatcher and a mocked index."""
    rpc = BitcoinCoreRpc(rpc_url=TEST_RPC_URL, wallet_name="ord")
    rpc._rpc_call = make_mock_rpc(responses if responses is not None else ord_wallet_responses())
    return OrdWallet("ord", rpc, index or make_index(), **kwargs)
