"""
Wait for the ord index to catch up with Bitcoin Core.

The index reports blocks processed (tip height + 1), so the target is the
node's ``getblockcount() + 1``. Polling is bounded: a fixed number of
attempts with a short fixed delay between them, failing with
SyncTimeoutError when the budget is spent.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

from ordwallet.backends.ord_index import OrdIndexClient
from ordwallet.constants import DEFAULT_SYNC_ATTEMPTS, DEFAULT_SYNC_INTERVAL
from ordwallet.errors import SyncTimeoutError

Sleep = Callable[[float], Awaitable[None]]


async def wait_for_index(
    index: OrdIndexClient,
    target_block_count: int,
    attempts: int = DEFAULT_SYNC_ATTEMPTS,
    interval: float = DEFAULT_SYNC_INTERVAL,
    sleep: Sleep = asyncio.sleep,
) -> int:
    """
    Poll ``/blockcount`` until it reaches ``target_block_count``.

    Args:
        index: Index client to poll
        target_block_count: Bitcoin Core block count + 1
        attempts: Maximum number of polls
        interval: Seconds to sleep between polls (not after the last one)
        sleep: Async sleep function, injectable for tests

    Returns:
        The index block count that satisfied the target

    Raises:
        SyncTimeoutError: If the index is still behind after ``attempts`` polls
    """
    height: int | None = None
    for attempt in range(1, attempts + 1):
        height = await index.get_block_count()
        if height >= target_block_count:
            if attempt > 1:
                logger.debug(f"Index reached block count {height} after {attempt} polls")
            return height

        if attempt < attempts:
            logger.debug(
                f"Index at {height}, waiting for {target_block_count} "
                f"(attempt {attempt}/{attempts})"
            )
            await sleep(interval)

    logger.warning(
        f"Index still at {height} after {attempts} polls, expected {target_block_count}"
    )
    raise SyncTimeoutError(target_block_count, height, attempts)
