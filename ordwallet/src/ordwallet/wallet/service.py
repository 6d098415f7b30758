"""
Ord wallet service.

Binds a Bitcoin Core descriptor wallet to an ord index and answers the
questions the rest of the application asks about it: which outputs the wallet
holds, which sats and inscriptions sit in them, and what rune balances they
carry.

Every client acquisition re-runs its guards (node version and wallet shape for
Bitcoin Core, block-count sync for the index). Nothing is cached between
calls; after any mutation callers simply query again.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from loguru import logger

from ordwallet.backends.bitcoin_core import BitcoinCoreRpc
from ordwallet.backends.ord_index import OrdIndexClient
from ordwallet.bitcoin import NetworkType, btc_to_sats, get_hrp
from ordwallet.constants import DEFAULT_SYNC_ATTEMPTS, DEFAULT_SYNC_INTERVAL
from ordwallet.errors import (
    ConsistencyError,
    NotFoundError,
    PreconditionError,
    RpcError,
    TransportError,
)
from ordwallet.models import (
    InscriptionInfo,
    OutPoint,
    OutputInfo,
    RuneBalance,
    RuneInfo,
    SatPoint,
    SatRange,
    ServerStatus,
    strip_spacers,
)
from ordwallet.wallet.descriptors import TaprootDescriptor
from ordwallet.wallet.guards import check_version, check_wallet_shape
from ordwallet.wallet.initializer import initialize_wallet
from ordwallet.wallet.sats import find_sat_in_ranges
from ordwallet.wallet.sync import Sleep, wait_for_index


class OrdWallet:
    """
    A named Bitcoin Core wallet reconciled against an ord index.

    Usage:
        wallet = OrdWallet("ord", rpc, index)
        utxos = await wallet.get_unspent_outputs()
        satpoint = await wallet.find_sat_in_outputs(sat, utxos)
    """

    def __init__(
        self,
        name: str,
        rpc: BitcoinCoreRpc,
        index: OrdIndexClient,
        network: str | NetworkType = NetworkType.MAINNET,
        no_sync: bool = False,
        sync_attempts: int = DEFAULT_SYNC_ATTEMPTS,
        sync_interval: float = DEFAULT_SYNC_INTERVAL,
        sleep: Sleep = asyncio.sleep,
    ):
        self.name = name
        self.rpc = rpc
        self.index = index
        self.network = NetworkType(network)
        self.no_sync = no_sync
        self.sync_attempts = sync_attempts
        self.sync_interval = sync_interval
        self._sleep = sleep

    # =========================================================================
    # Client acquisition
    # =========================================================================

    async def bitcoin_client(self) -> BitcoinCoreRpc:
        """
        Return the RPC client after checking the node version, loading the
        wallet if needed and validating its descriptors.
        """
        rpc = await check_version(self.rpc)

        if self.name not in await rpc.list_wallets():
            logger.debug(f"Wallet '{self.name}' not loaded, loading")
            await rpc.load_wallet(self.name)

        descriptors = await rpc.list_descriptors()
        check_wallet_shape(self.name, (d["desc"] for d in descriptors))
        return rpc

    async def ord_client(self) -> OrdIndexClient:
        """
        Return the index client once it has caught up with the node.

        The Bitcoin Core guards run even with ``no_sync`` set.
        """
        rpc = await self.bitcoin_client()
        target = await rpc.get_block_count() + 1
        if not self.no_sync:
            await wait_for_index(
                self.index,
                target,
                attempts=self.sync_attempts,
                interval=self.sync_interval,
                sleep=self._sleep,
            )
        return self.index

    async def initialize(self, seed: bytes) -> list[TaprootDescriptor]:
        """Create this wallet in Bitcoin Core from a 64-byte seed."""
        return await initialize_wallet(self.rpc, seed, self.network)

    # =========================================================================
    # Outputs
    # =========================================================================

    async def get_output(self, outpoint: OutPoint) -> OutputInfo:
        index = await self.ord_client()
        output = await index.get_output(outpoint)
        if not output.indexed:
            raise ConsistencyError(
                f"output in Bitcoin Core wallet but not in ord index: {outpoint}", outpoint
            )
        return output

    async def get_locked_outputs(self) -> list[OutPoint]:
        rpc = await self.bitcoin_client()
        return await rpc.list_lock_unspent()

    async def get_unspent_outputs(self) -> dict[OutPoint, int]:
        """
        Wallet outputs (including locked ones) mapped to their value in sats.

        Every returned output is known to the index. The node and index are
        read in separate round-trips, so the result can be stale by the time
        it is used.
        """
        rpc = await self.bitcoin_client()

        utxos = {utxo.outpoint: utxo.value for utxo in await rpc.list_unspent()}

        for outpoint in await rpc.list_lock_unspent():
            tx = await rpc.get_raw_transaction(outpoint.txid)
            vouts = tx.get("vout", [])
            if outpoint.vout >= len(vouts):
                raise ConsistencyError(
                    f"locked output {outpoint} not found in transaction", outpoint
                )
            utxos[outpoint] = btc_to_sats(vouts[outpoint.vout]["value"])

        for outpoint in utxos:
            await self.get_output(outpoint)

        logger.debug(f"Reconciled {len(utxos)} output(s) against the index")
        return dict(sorted(utxos.items()))

    async def get_output_sat_ranges(self) -> list[tuple[OutPoint, list[SatRange]]]:
        self.check_sat_index(await self.get_server_status())

        result = []
        for outpoint in await self.get_unspent_outputs():
            output = await self.get_output(outpoint)
            if output.sat_ranges is None:
                raise ConsistencyError(
                    f"output {outpoint} in wallet but is spent according to index", outpoint
                )
            result.append((outpoint, output.sat_ranges))
        return result

    async def find_sat_in_outputs(self, sat: int, utxos: Iterable[OutPoint]) -> SatPoint:
        """
        Locate ``sat`` in the given (already reconciled) outputs.

        Raises:
            PreconditionError: If the index has no sat index
            NotFoundError: If no output holds the sat
        """
        self.check_sat_index(await self.get_server_status())

        for outpoint in utxos:
            output = await self.get_output(outpoint)
            satpoint = find_sat_in_ranges(sat, [(outpoint, output.sat_ranges)])
            if satpoint is not None:
                return satpoint

        raise NotFoundError(f"could not find sat `{sat}` in wallet outputs")

    # =========================================================================
    # Inscriptions and runes
    # =========================================================================

    async def get_inscription(self, inscription_id: str) -> InscriptionInfo:
        index = await self.ord_client()
        return await index.get_inscription(inscription_id)

    async def get_inscription_satpoint(self, inscription_id: str) -> SatPoint:
        return (await self.get_inscription(inscription_id)).satpoint

    async def get_inscriptions(self) -> dict[SatPoint, str]:
        """Satpoint of every inscription held in the wallet's outputs."""
        inscriptions: dict[SatPoint, str] = {}
        for outpoint in await self.get_unspent_outputs():
            output = await self.get_output(outpoint)
            for inscription_id in output.inscriptions:
                satpoint = await self.get_inscription_satpoint(inscription_id)
                inscriptions[satpoint] = inscription_id
        return dict(sorted(inscriptions.items()))

    async def get_rune(self, spaced_rune: str) -> RuneInfo | None:
        index = await self.ord_client()
        return await index.get_rune(spaced_rune)

    async def get_runic_outputs(self) -> set[OutPoint]:
        runic = set()
        for outpoint in await self.get_unspent_outputs():
            if (await self.get_output(outpoint)).runes:
                runic.add(outpoint)
        return runic

    async def get_runes_balances_for_output(self, outpoint: OutPoint) -> list[RuneBalance]:
        return (await self.get_output(outpoint)).runes

    async def get_rune_balance_in_output(self, outpoint: OutPoint, rune: str) -> int:
        """Total amount of ``rune`` in ``outpoint``; spacers in names are ignored."""
        wanted = strip_spacers(rune)
        balances = await self.get_runes_balances_for_output(outpoint)
        return sum(b.pile.amount for b in balances if b.rune == wanted)

    # =========================================================================
    # Misc
    # =========================================================================

    async def get_change_address(self) -> str:
        """A fresh bech32m change address, checked against the configured network."""
        rpc = await self.bitcoin_client()
        try:
            address = await rpc.get_raw_change_address("bech32m")
        except RpcError as e:
            raise TransportError("could not get change addresses from wallet") from e

        # bc1p... on mainnet, tb1p... on testnet/signet, bcrt1p... on regtest
        if not address.lower().startswith(f"{get_hrp(self.network)}1p"):
            raise ConsistencyError(
                f"change address {address} is not valid for network {self.network.value}"
            )
        return address

    async def get_server_status(self) -> ServerStatus:
        index = await self.ord_client()
        return await index.get_status()

    @staticmethod
    def check_sat_index(status: ServerStatus) -> None:
        if not status.sat_index:
            raise PreconditionError("index must be built with `--index-sats` to use `--sat`")

    @staticmethod
    def check_rune_index(status: ServerStatus) -> None:
        if not status.rune_index:
            raise PreconditionError("index must be built with `--index-runes` to use runes")


__all__ = ["OrdWallet"]
