import asyncio

from agencyops.store import realtime
from agencyops.store.cache import QueryCache


class FakeChannel:
    def __init__(self, name: str) -> None:
        self.name = name
        self.handlers = []
        self.subscribed = False

    def on_postgres_changes(self, event, callback, table=None, schema=None):
        self.handlers.append((event, table, schema, callback))
        return self

    async def subscribe(self):
        self.subscribed = True
        return self

    def emit(self, payload) -> None:
        for _, _, _, callback in self.handlers:
            callback(payload)


class FakeAsyncClient:
    def __init__(self) -> None:
        self.channels = []
        self.removed = []

    def channel(self, name):
        channel = FakeChannel(name)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel):
        self.removed.append(channel)


def test_insert_event_invalidates_activity_queries() -> None:
    client = FakeAsyncClient()
    cache = QueryCache()
    cache.fetch("activity-logs", None, lambda: [])
    cache.fetch("activity-unread", None, lambda: 0)
    cache.fetch("clients", None, lambda: [])
    received = []

    async def run():
        channel = await realtime.subscribe_activity_logs(client, cache, on_insert=received.append)
        channel.emit({"data": {"record": {"id": "a1"}}})
        await realtime.unsubscribe(client, channel)
        return channel

    channel = asyncio.run(run())

    assert channel.subscribed
    assert channel.name == "activity_logs_feed"
    assert channel.handlers[0][:3] == ("INSERT", "activity_logs", "public")
    assert received == [{"data": {"record": {"id": "a1"}}}]
    assert cache.entry("activity-logs") is None
    assert cache.entry("activity-unread") is None
    assert cache.entry("clients") is not None
    assert client.removed == [channel]


def test_poll_refreshes_until_stopped() -> None:
    calls = []

    async def run():
        stop = asyncio.Event()
        results = []

        def on_result(result):
            results.append(result)
            if len(results) == 3:
                stop.set()

        rounds = await realtime.poll(lambda: calls.append(1) or len(calls), stop, interval=0.01, on_result=on_result)
        return rounds, results

    rounds, results = asyncio.run(run())

    assert rounds == 3
    assert results == [1, 2, 3]
