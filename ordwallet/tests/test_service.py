"""
Tests for OrdWallet: client guards, UTXO reconciliation and queries.

Bitcoin Core is mocked at ``BitcoinCoreRpc._rpc_call``; the index client's
request methods are AsyncMocks.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from _ordwallet_test_helpers import (
    TR_RECEIVE,
    TXID_A,
    TXID_B,
    TXID_C,
    WPKH,
    make_index,
    make_wallet,
    ord_wallet_responses,
    unspent,
)

from ordwallet.errors import (
    ConsistencyError,
    NotFoundError,
    PreconditionError,
    RpcError,
    SyncTimeoutError,
    TransportError,
    VersionError,
    WalletShapeError,
)
from ordwallet.models import InscriptionInfo, OutPoint, RuneInfo, SatPoint, ServerStatus
from ordwallet.wallet.guards import check_wallet_shape

A = OutPoint(TXID_A, 0)
B = OutPoint(TXID_B, 1)
C = OutPoint(TXID_C, 2)


async def no_sleep(delay: float) -> None:
    return None


class TestBitcoinClient:
    @pytest.mark.asyncio
    async def test_loaded_wallet(self):
        wallet = make_wallet()
        assert await wallet.bitcoin_client() is wallet.rpc

    @pytest.mark.asyncio
    async def test_loads_wallet_when_absent(self):
        loaded = []
        responses = ord_wallet_responses(
            listwallets=[],
            loadwallet=lambda params, use_wallet: loaded.append(params[0]) or {"name": params[0]},
        )
        wallet = make_wallet(responses)

        await wallet.bitcoin_client()
        assert loaded == ["ord"]

    @pytest.mark.asyncio
    async def test_old_node_rejected(self):
        wallet = make_wallet(ord_wallet_responses(getnetworkinfo={"version": 230100}))
        with pytest.raises(VersionError):
            await wallet.bitcoin_client()

    @pytest.mark.asyncio
    async def test_foreign_wallet_rejected(self):
        responses = ord_wallet_responses(
            listdescriptors={"descriptors": [{"desc": TR_RECEIVE}, {"desc": WPKH}]}
        )
        with pytest.raises(WalletShapeError):
            await make_wallet(responses).bitcoin_client()

    @pytest.mark.asyncio
    async def test_missing_wallet_error_propagates(self):
        responses = ord_wallet_responses(
            listwallets=[],
            loadwallet=RpcError(-18, "Path does not exist", "loadwallet"),
        )
        with pytest.raises(RpcError) as exc_info:
            await make_wallet(responses).bitcoin_client()
        assert exc_info.value.code == -18


class TestOrdClient:
    @pytest.mark.asyncio
    async def test_waits_for_block_count_plus_one(self):
        index = make_index(block_count=101)
        wallet = make_wallet(ord_wallet_responses(getblockcount=100), index, sleep=no_sleep)

        assert await wallet.ord_client() is index
        index.get_block_count.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lagging_index_times_out(self):
        index = make_index(block_count=100)
        wallet = make_wallet(
            ord_wallet_responses(getblockcount=100), index, sync_attempts=3, sleep=no_sleep
        )

        with pytest.raises(SyncTimeoutError):
            await wallet.ord_client()
        assert index.get_block_count.await_count == 3

    @pytest.mark.asyncio
    async def test_no_sync_skips_polling(self):
        index = make_index(block_count=0)
        wallet = make_wallet(index=index, no_sync=True)

        assert await wallet.ord_client() is index
        index.get_block_count.assert_not_called()

    @pytest.mark.asyncio
    async def test_old_node_rejected_before_index(self):
        index = make_index()
        wallet = make_wallet(ord_wallet_responses(getnetworkinfo={"version": 230100}), index)

        with pytest.raises(VersionError):
            await wallet.get_server_status()
        index.get_block_count.assert_not_called()
        index.get_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_foreign_wallet_rejected_with_no_sync(self):
        index = make_index()
        responses = ord_wallet_responses(
            listdescriptors={"descriptors": [{"desc": TR_RECEIVE}, {"desc": WPKH}]}
        )
        wallet = make_wallet(responses, index, no_sync=True)

        with pytest.raises(WalletShapeError):
            await wallet.ord_client()
        with pytest.raises(WalletShapeError):
            await wallet.get_server_status()
        index.get_status.assert_not_called()


class TestUnspentOutputs:
    @pytest.mark.asyncio
    async def test_reconciled_outputs(self):
        index = make_index({A: {"indexed": True}, B: {"indexed": True}})
        responses = ord_wallet_responses(
            listunspent=[unspent(TXID_B, 1, "0.00020000"), unspent(TXID_A, 0, "0.0003")]
        )
        wallet = make_wallet(responses, index)

        assert await wallet.get_unspent_outputs() == {A: 30000, B: 20000}

    @pytest.mark.asyncio
    async def test_ordered_by_outpoint(self):
        index = make_index({A: {"indexed": True}, B: {"indexed": True}})
        responses = ord_wallet_responses(
            listunspent=[unspent(TXID_B, 1, "0.0002"), unspent(TXID_A, 0, "0.0003")]
        )
        utxos = await make_wallet(responses, index).get_unspent_outputs()
        assert list(utxos) == [A, B]

    @pytest.mark.asyncio
    async def test_locked_outputs_included(self):
        index = make_index({A: {"indexed": True}, C: {"indexed": True}})

        def raw_tx(params, use_wallet):
            assert params == [TXID_C, True]
            return {
                "txid": TXID_C,
                "vout": [
                    {"n": 0, "value": Decimal("0.1")},
                    {"n": 1, "value": Decimal("0.2")},
                    {"n": 2, "value": Decimal("0.00000546")},
                ],
            }

        responses = ord_wallet_responses(
            listunspent=[unspent(TXID_A, 0, "0.0003")],
            listlockunspent=[{"txid": TXID_C, "vout": 2}],
            getrawtransaction=raw_tx,
        )
        utxos = await make_wallet(responses, index).get_unspent_outputs()

        assert utxos == {A: 30000, C: 546}

    @pytest.mark.asyncio
    async def test_locked_output_missing_vout(self):
        responses = ord_wallet_responses(
            listlockunspent=[{"txid": TXID_C, "vout": 5}],
            getrawtransaction={"txid": TXID_C, "vout": [{"n": 0, "value": Decimal("0.1")}]},
        )
        with pytest.raises(ConsistencyError) as exc_info:
            await make_wallet(responses).get_unspent_outputs()
        assert exc_info.value.outpoint == OutPoint(TXID_C, 5)

    @pytest.mark.asyncio
    async def test_unindexed_output_rejected(self):
        index = make_index({A: {"indexed": True}})
        responses = ord_wallet_responses(
            listunspent=[unspent(TXID_A, 0, "0.0003"), unspent(TXID_B, 1, "0.0002")]
        )

        with pytest.raises(ConsistencyError) as exc_info:
            await make_wallet(responses, index).get_unspent_outputs()

        assert str(exc_info.value) == (
            f"output in Bitcoin Core wallet but not in ord index: {TXID_B}:1"
        )
        assert exc_info.value.outpoint == B

    @pytest.mark.asyncio
    async def test_get_locked_outputs(self):
        responses = ord_wallet_responses(
            listlockunspent=[{"txid": TXID_C, "vout": 2}, {"txid": TXID_A, "vout": 0}]
        )
        assert await make_wallet(responses).get_locked_outputs() == [A, C]


class TestSatRanges:
    @pytest.mark.asyncio
    async def test_ranges_per_output(self):
        index = make_index(
            {
                A: {"indexed": True, "sat_ranges": [[100, 150], [150, 200]]},
                B: {"indexed": True, "sat_ranges": [[0, 10]]},
            }
        )
        responses = ord_wallet_responses(
            listunspent=[unspent(TXID_A, 0, "0.000001"), unspent(TXID_B, 1, "0.0000001")]
        )

        ranges = await make_wallet(responses, index).get_output_sat_ranges()

        assert ranges == [(A, [(100, 150), (150, 200)]), (B, [(0, 10)])]

    @pytest.mark.asyncio
    async def test_requires_sat_index(self):
        wallet = make_wallet(index=make_index(sat_index=False))
        with pytest.raises(PreconditionError, match="--index-sats"):
            await wallet.get_output_sat_ranges()

    @pytest.mark.asyncio
    async def test_spent_output_rejected(self):
        index = make_index({A: {"indexed": True, "sat_ranges": None}})
        responses = ord_wallet_responses(listunspent=[unspent(TXID_A, 0, "0.0003")])

        with pytest.raises(ConsistencyError, match="is spent according to index"):
            await make_wallet(responses, index).get_output_sat_ranges()


class TestFindSat:
    @pytest.mark.asyncio
    async def test_found(self):
        index = make_index(
            {
                A: {"indexed": True, "sat_ranges": [[0, 50]]},
                B: {"indexed": True, "sat_ranges": [[100, 150], [150, 200]]},
            }
        )
        wallet = make_wallet(index=index)

        assert await wallet.find_sat_in_outputs(175, [A, B]) == SatPoint(B, 75)

    @pytest.mark.asyncio
    async def test_not_found(self):
        index = make_index({A: {"indexed": True, "sat_ranges": [[0, 50]]}})
        with pytest.raises(NotFoundError, match="could not find sat `5000` in wallet outputs"):
            await make_wallet(index=index).find_sat_in_outputs(5000, [A])

    @pytest.mark.asyncio
    async def test_requires_sat_index(self):
        wallet = make_wallet(index=make_index(sat_index=False))
        with pytest.raises(PreconditionError, match="--index-sats"):
            await wallet.find_sat_in_outputs(1, [A])


class TestInscriptions:
    @pytest.mark.asyncio
    async def test_inscriptions_by_satpoint(self):
        inscription_a = f"{TXID_A}i0"
        inscription_b = f"{TXID_B}i0"
        index = make_index(
            {
                A: {"indexed": True, "inscriptions": [inscription_a]},
                B: {"indexed": True, "inscriptions": [inscription_b]},
            }
        )
        satpoints = {
            inscription_a: SatPoint(A, 0),
            inscription_b: SatPoint(B, 330),
        }
        index.get_inscription = AsyncMock(
            side_effect=lambda i: InscriptionInfo(id=i, satpoint=satpoints[i])
        )
        responses = ord_wallet_responses(
            listunspent=[unspent(TXID_A, 0, "0.0001"), unspent(TXID_B, 1, "0.0001")]
        )

        inscriptions = await make_wallet(responses, index).get_inscriptions()

        assert inscriptions == {SatPoint(A, 0): inscription_a, SatPoint(B, 330): inscription_b}

    @pytest.mark.asyncio
    async def test_inscription_satpoint(self):
        index = make_index()
        index.get_inscription = AsyncMock(
            return_value=InscriptionInfo(id=f"{TXID_A}i0", satpoint=SatPoint(A, 12))
        )
        assert await make_wallet(index=index).get_inscription_satpoint(
            f"{TXID_A}i0"
        ) == SatPoint(A, 12)

    @pytest.mark.asyncio
    async def test_inscription_not_found(self):
        index = make_index()
        index.get_inscription = AsyncMock(side_effect=NotFoundError("inscription x not found"))
        with pytest.raises(NotFoundError):
            await make_wallet(index=index).get_inscription("x")


class TestRunes:
    OUTPUTS = {
        A: {
            "indexed": True,
            "runes": [
                ["UNCOMMON•GOODS", {"amount": 500, "divisibility": 0, "symbol": "⧉"}],
                ["UNCOMMONGOODS", {"amount": 250, "divisibility": 0}],
                ["OTHER•RUNE", {"amount": 7, "divisibility": 2}],
            ],
        },
        B: {"indexed": True, "runes": []},
    }

    def _wallet(self):
        responses = ord_wallet_responses(
            listunspent=[unspent(TXID_A, 0, "0.0001"), unspent(TXID_B, 1, "0.0001")]
        )
        return make_wallet(responses, make_index(self.OUTPUTS))

    @pytest.mark.asyncio
    async def test_runic_outputs(self):
        assert await self._wallet().get_runic_outputs() == {A}

    @pytest.mark.asyncio
    async def test_balances_for_output(self):
        balances = await self._wallet().get_runes_balances_for_output(A)
        assert [b.spaced_rune for b in balances] == [
            "UNCOMMON•GOODS",
            "UNCOMMONGOODS",
            "OTHER•RUNE",
        ]
        assert balances[0].pile.symbol == "⧉"

    @pytest.mark.asyncio
    async def test_balance_ignores_spacers(self):
        wallet = self._wallet()
        assert await wallet.get_rune_balance_in_output(A, "UNCOMMON.GOODS") == 750
        assert await wallet.get_rune_balance_in_output(A, "MISSING") == 0
        assert await wallet.get_rune_balance_in_output(B, "UNCOMMONGOODS") == 0

    @pytest.mark.asyncio
    async def test_get_rune(self):
        index = make_index()
        index.get_rune = AsyncMock(return_value=RuneInfo(id="840000:3", entry={"spacers": 128}))
        rune = await make_wallet(index=index).get_rune("UNCOMMON•GOODS")
        assert rune.id == "840000:3"

    @pytest.mark.asyncio
    async def test_get_unknown_rune(self):
        index = make_index()
        index.get_rune = AsyncMock(return_value=None)
        assert await make_wallet(index=index).get_rune("NOPE") is None


class TestMisc:
    @pytest.mark.asyncio
    async def test_change_address(self):
        responses = ord_wallet_responses(
            getrawchangeaddress=lambda params, use_wallet: f"bcrt1p-{params[0]}"
        )
        wallet = make_wallet(responses, network="regtest")
        assert await wallet.get_change_address() == "bcrt1p-bech32m"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "network,address",
        [("mainnet", "bc1p-change"), ("signet", "tb1p-change"), ("testnet", "TB1P-CHANGE")],
    )
    async def test_change_address_prefix_per_network(self, network, address):
        wallet = make_wallet(ord_wallet_responses(getrawchangeaddress=address), network=network)
        assert await wallet.get_change_address() == address

    @pytest.mark.asyncio
    async def test_change_address_for_wrong_network(self):
        responses = ord_wallet_responses(getrawchangeaddress="bcrt1p-bech32m")
        with pytest.raises(ConsistencyError, match="not valid for network mainnet"):
            await make_wallet(responses).get_change_address()

    @pytest.mark.asyncio
    async def test_change_address_failure(self):
        responses = ord_wallet_responses(
            getrawchangeaddress=RpcError(-12, "Keypool ran out", "getrawchangeaddress")
        )
        with pytest.raises(TransportError, match="could not get change addresses from wallet"):
            await make_wallet(responses).get_change_address()

    @pytest.mark.asyncio
    async def test_server_status(self):
        status = await make_wallet(index=make_index(sat_index=False)).get_server_status()
        assert status == ServerStatus(sat_index=False, rune_index=True)

    def test_index_checks(self):
        wallet = make_wallet()
        wallet.check_sat_index(ServerStatus(sat_index=True))
        wallet.check_rune_index(ServerStatus(rune_index=True))
        with pytest.raises(PreconditionError, match="--index-sats"):
            wallet.check_sat_index(ServerStatus())
        with pytest.raises(PreconditionError, match="--index-runes"):
            wallet.check_rune_index(ServerStatus())

    @pytest.mark.asyncio
    async def test_initialize(self, test_seed):
        imported = []
        responses = {
            "getnetworkinfo": {"version": 260000},
            "createwallet": {"name": "ord", "warning": ""},
            "importdescriptors": lambda params, use_wallet: imported.extend(params[0])
            or [{"success": True}],
        }
        wallet = make_wallet(responses)

        descriptors = await wallet.initialize(test_seed)

        assert [d["internal"] for d in imported] == [False, True]
        assert [d["desc"] for d in imported] == [d.private for d in descriptors]
        # A freshly initialized wallet passes the shape check
        check_wallet_shape("ord", [d.private for d in descriptors])
