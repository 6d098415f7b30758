"""
Bitcoin Core descriptor wallet RPC client.

Thin JSON-RPC layer over the wallet and chain calls the ord wallet needs:
wallet creation/loading, descriptor import and listing, unspent and locked
outputs, raw transactions, change addresses and the block count.

Amounts are parsed from the JSON body as Decimal so BTC values convert to
satoshis exactly.
"""

from __future__ import annotations

import json
import os
from decimal import Decimal
from typing import Any

import httpx
from loguru import logger

from ordwallet.bitcoin import btc_to_sats
from ordwallet.constants import DEFAULT_RPC_TIMEOUT
from ordwallet.errors import RpcError, TransportError
from ordwallet.models import OutPoint, UnspentOutput

# Environment variable to enable sensitive logging (descriptors, addresses, etc.)
SENSITIVE_LOGGING = os.environ.get("SENSITIVE_LOGGING", "").lower() in ("1", "true", "yes")


class BitcoinCoreRpc:
    """
    Async Bitcoin Core RPC client bound to one named wallet.

    Wallet-scoped calls go to ``{rpc_url}/wallet/{wallet_name}``; node-level
    calls (version, wallet management, block count) go to ``rpc_url``.

    Usage:
        rpc = BitcoinCoreRpc(
            rpc_url="http://127.0.0.1:8332",
            rpc_user="user",
            rpc_password="pass",
            wallet_name="ord",
        )
        version = await rpc.get_version()
        utxos = await rpc.list_unspent()
        await rpc.close()
    """

    def __init__(
        self,
        rpc_url: str = "http://127.0.0.1:18443",
        rpc_user: str = "rpcuser",
        rpc_password: str = "rpcpassword",
        wallet_name: str = "ord",
        timeout: float = DEFAULT_RPC_TIMEOUT,
    ):
        self.rpc_url = rpc_url.rstrip("/")
        self.rpc_user = rpc_user
        self.rpc_password = rpc_password
        self.wallet_name = wallet_name

        self.client = httpx.AsyncClient(timeout=timeout, auth=(rpc_user, rpc_password))
        self._request_id = 0

    def _get_wallet_url(self) -> str:
        """Get the RPC URL for wallet-specific calls."""
        return f"{self.rpc_url}/wallet/{self.wallet_name}"

    async def _rpc_call(
        self,
        method: str,
        params: list | None = None,
        use_wallet: bool = True,
    ) -> Any:
        """
        Make an RPC call to Bitcoin Core.

        Bitcoin Core reports RPC failures with HTTP 500 (or 404 for unknown
        methods) and a JSON-RPC error body, so the body is inspected before
        the status code.

        Args:
            method: RPC method name
            params: Method parameters
            use_wallet: If True, use wallet-specific URL

        Returns:
            RPC result

        Raises:
            RpcError: On JSON-RPC errors
            TransportError: On connection/timeout errors or non-JSON failures
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }
        url = self._get_wallet_url() if use_wallet else self.rpc_url

        try:
            response = await self.client.post(url, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"RPC call timed out: {method} - {e}")
            raise TransportError(f"RPC call timed out: {method}") from e
        except httpx.HTTPError as e:
            logger.error(f"RPC call failed: {method} - {e}")
            raise TransportError(f"RPC call failed: {method}: {e}") from e

        try:
            data = json.loads(response.text, parse_float=Decimal)
        except ValueError:
            data = None

        if isinstance(data, dict) and data.get("error"):
            error_info = data["error"]
            error_code = error_info.get("code", "unknown")
            error_msg = error_info.get("message", str(error_info))
            logger.debug(f"RPC {method} returned error {error_code}: {error_msg}")
            raise RpcError(error_code, error_msg, method)

        if response.status_code != 200 or not isinstance(data, dict):
            logger.error(f"RPC call failed: {method} - HTTP {response.status_code}")
            raise TransportError(f"RPC call {method} failed with HTTP {response.status_code}")

        return data.get("result")

    # =========================================================================
    # Node
    # =========================================================================

    async def get_version(self) -> int:
        """Node version as major * 10000 + minor * 100 + patch."""
        info = await self._rpc_call("getnetworkinfo", use_wallet=False)
        return int(info["version"])

    async def get_block_count(self) -> int:
        return int(await self._rpc_call("getblockcount", use_wallet=False))

    async def get_raw_transaction(self, txid: str) -> dict[str, Any]:
        """Decoded transaction (verbose getrawtransaction)."""
        return await self._rpc_call("getrawtransaction", [txid, True], use_wallet=False)

    # =========================================================================
    # Wallet management
    # =========================================================================

    async def list_wallets(self) -> list[str]:
        return await self._rpc_call("listwallets", use_wallet=False)

    async def load_wallet(self, wallet_name: str | None = None) -> dict[str, Any]:
        name = wallet_name or self.wallet_name
        result = await self._rpc_call("loadwallet", [name], use_wallet=False)
        logger.info(f"Loaded wallet '{name}'")
        return result

    async def create_wallet(self, wallet_name: str | None = None) -> dict[str, Any]:
        """
        Create a blank descriptor wallet with private keys enabled.

        The wallet is blank so that the only descriptors it ever holds are the
        two taproot descriptors imported afterwards. An existing wallet of the
        same name makes Bitcoin Core fail, and that error is raised as-is.
        """
        name = wallet_name or self.wallet_name
        # Params: wallet_name, disable_private_keys, blank, passphrase, avoid_reuse, descriptors
        result = await self._rpc_call(
            "createwallet",
            [
                name,  # wallet_name
                False,  # disable_private_keys
                True,  # blank (no default keys)
                "",  # passphrase (unencrypted)
                False,  # avoid_reuse
                True,  # descriptors
            ],
            use_wallet=False,
        )
        logger.info(f"Created descriptor wallet '{name}'")
        return result

    # =========================================================================
    # Descriptors
    # =========================================================================

    async def list_descriptors(self) -> list[dict[str, Any]]:
        """
        List all descriptors currently imported in the wallet.

        Returns:
            List of descriptor info dicts with fields like 'desc', 'timestamp', 'active', etc.
        """
        result = await self._rpc_call("listdescriptors")
        return result.get("descriptors", [])

    async def import_descriptors(self, requests: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Import descriptors into the wallet.

        Each request follows the importdescriptors RPC format, e.g.
        ``{"desc": "tr(...)#checksum", "timestamp": "now", "active": True,
        "internal": False}``.

        Raises:
            RpcError: If Bitcoin Core rejects any of the descriptors
        """
        if SENSITIVE_LOGGING:
            logger.debug(f"Importing {len(requests)} descriptor(s): {requests}")
        else:
            logger.info(f"Importing {len(requests)} descriptor(s) into wallet...")

        result = await self._rpc_call("importdescriptors", [requests])

        for i, r in enumerate(result):
            if not r.get("success", False):
                error = r.get("error", {})
                logger.error(f"Descriptor {i} failed to import: {error}")
                raise RpcError(
                    error.get("code", "unknown"),
                    error.get("message", "descriptor import failed"),
                    "importdescriptors",
                )

        logger.info(f"Successfully imported {len(result)} descriptor(s)")
        return result

    # =========================================================================
    # Outputs
    # =========================================================================

    async def list_unspent(self) -> list[UnspentOutput]:
        """All spendable wallet outputs, with Bitcoin Core's default filters."""
        result = await self._rpc_call("listunspent")

        utxos = [
            UnspentOutput(
                outpoint=OutPoint(utxo_data["txid"], utxo_data["vout"]),
                value=btc_to_sats(utxo_data["amount"]),
                address=utxo_data.get("address", ""),
                confirmations=utxo_data.get("confirmations", 0),
            )
            for utxo_data in result
        ]
        logger.debug(f"Found {len(utxos)} UTXOs via listunspent")
        return utxos

    async def list_lock_unspent(self) -> list[OutPoint]:
        """Outputs locked by the wallet (excluded from listunspent)."""
        result = await self._rpc_call("listlockunspent")
        return sorted({OutPoint(entry["txid"], entry["vout"]) for entry in result})

    async def get_raw_change_address(self, address_type: str = "bech32m") -> str:
        return await self._rpc_call("getrawchangeaddress", [address_type])

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> BitcoinCoreRpc:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
