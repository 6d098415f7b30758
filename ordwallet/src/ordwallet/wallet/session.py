"""
Scoped wallet sessions.

A session owns the RPC and index clients for one command and, optionally, an
index server started just for that command. Everything it owns is released
on exit, whether the command succeeded or raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Protocol

from loguru import logger

from ordwallet.backends.bitcoin_core import BitcoinCoreRpc
from ordwallet.backends.ord_index import OrdIndexClient
from ordwallet.settings import OrdWalletSettings
from ordwallet.wallet.service import OrdWallet
from ordwallet.wallet.sync import Sleep


class IndexServerHandle(Protocol):
    """A running index server the session must shut down when it ends."""

    url: str

    async def shutdown(self) -> None: ...


IndexServerStarter = Callable[[], Awaitable[IndexServerHandle]]


@asynccontextmanager
async def wallet_session(
    settings: OrdWalletSettings,
    *,
    name: str | None = None,
    no_sync: bool | None = None,
    start_index_server: IndexServerStarter | None = None,
    sleep: Sleep = asyncio.sleep,
) -> AsyncIterator[OrdWallet]:
    """
    Open an OrdWallet for the duration of an ``async with`` block.

    Args:
        settings: Loaded settings
        name: Wallet name, defaults to ``settings.wallet.name``
        no_sync: Skip index sync, defaults to ``settings.wallet.no_sync``
        start_index_server: Coroutine function starting a dedicated index
            server; the wallet then talks to the returned handle's url
        sleep: Async sleep used while waiting for the index
    """
    wallet_name = name or settings.wallet.name
    handle: IndexServerHandle | None = None
    rpc: BitcoinCoreRpc | None = None
    index: OrdIndexClient | None = None

    try:
        index_url = settings.index.url
        if start_index_server is not None:
            handle = await start_index_server()
            index_url = handle.url
            logger.debug(f"Using index server at {index_url}")

        rpc = BitcoinCoreRpc(
            rpc_url=settings.bitcoin.rpc_url,
            rpc_user=settings.bitcoin.rpc_user,
            rpc_password=settings.bitcoin.rpc_password.get_secret_value(),
            wallet_name=wallet_name,
            timeout=settings.bitcoin.rpc_timeout,
        )
        index = OrdIndexClient(index_url, timeout=settings.index.timeout)

        yield OrdWallet(
            wallet_name,
            rpc,
            index,
            network=settings.network,
            no_sync=settings.wallet.no_sync if no_sync is None else no_sync,
            sync_attempts=settings.index.sync_attempts,
            sync_interval=settings.index.sync_interval,
            sleep=sleep,
        )
    finally:
        try:
            try:
                if index is not None:
                    await index.close()
            finally:
                if rpc is not None:
                    await rpc.close()
        finally:
            if handle is not None:
                logger.debug("Shutting down index server")
                await handle.shutdown()
