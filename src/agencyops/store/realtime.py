from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from agencyops.store.cache import QueryCache

logger = logging.getLogger(__name__)

ACTIVITY_CHANNEL = "activity_logs_feed"
PORTAL_POLL_SECONDS = 30.0


async def subscribe_activity_logs(
    async_client,
    cache: QueryCache,
    on_insert: Callable[[dict[str, Any]], None] | None = None,
):
    """Invalidate the activity queries whenever a row is inserted into ``activity_logs``.

    Push events are not ordered against in-flight mutations; a read made right
    after a write may still be stale until the next refetch.
    """

    def handle(payload: dict[str, Any]) -> None:
        cache.invalidate_for("activity-logs")
        logger.debug("activity_logs INSERT received")
        if on_insert is not None:
            on_insert(payload)

    channel = async_client.channel(ACTIVITY_CHANNEL)
    channel.on_postgres_changes("INSERT", handle, table="activity_logs", schema="public")
    await channel.subscribe()
    return channel


async def unsubscribe(async_client, channel) -> None:
    await async_client.remove_channel(channel)


async def poll(
    refresh: Callable[[], Any],
    stop: asyncio.Event,
    interval: float = PORTAL_POLL_SECONDS,
    on_result: Callable[[Any], None] | None = None,
) -> int:
    """Call ``refresh`` in a worker thread every ``interval`` seconds until ``stop`` is set.

    Returns the number of completed refreshes.
    """
    rounds = 0
    while not stop.is_set():
        result = await asyncio.to_thread(refresh)
        rounds += 1
        if on_result is not None:
            on_result(result)
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except TimeoutError:
            continue
    return rounds
