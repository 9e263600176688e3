"""Tests for Supabase adapter implementations."""

import asyncio
from dataclasses import dataclass, field
from datetime import date

import pytest

from fitplate.adapters.supabase_daily_log_repository import SupabaseDailyLogRepository
from fitplate.adapters.supabase_food_library_repository import (
    SupabaseFoodLibraryRepository,
)
from fitplate.adapters.supabase_goal_repository import SupabaseGoalRepository

DAY = date(2024, 3, 5)


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "upsert": []}
    )
    last_payload: object | None = None
    last_on_conflict: str | None = None
    last_filters: list[tuple[str, str, object]] = field(default_factory=list)
    last_order: tuple[str, bool] | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def upsert(self, payload: object, on_conflict: str = "") -> "FakeTable":
        self._action = "upsert"
        self.last_payload = payload
        self.last_on_conflict = on_conflict
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("eq", column, value))
        return self

    def gte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("gte", column, value))
        return self

    def lt(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("lt", column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.last_order = (column, desc)
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    async def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeRpc:
    name: str
    params: dict[str, object]
    calls: list[tuple[str, dict[str, object]]]

    async def execute(self) -> FakeResponse:
        self.calls.append((self.name, self.params))
        return FakeResponse(data=[])


@dataclass
class FakeChannel:
    topic: str
    callback: object | None = None
    table: str | None = None
    filter: str | None = None
    subscribed: bool = False

    def on_postgres_changes(  # type: ignore[no-untyped-def]
        self, event, callback, table="*", schema="public", filter=None
    ):
        self.callback = callback
        self.table = table
        self.filter = filter
        return self

    async def subscribe(self) -> "FakeChannel":
        self.subscribed = True
        return self


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)
    rpc_calls: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    channels: list[FakeChannel] = field(default_factory=list)
    removed: list[FakeChannel] = field(default_factory=list)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]

    def rpc(self, name: str, params: dict[str, object]) -> FakeRpc:
        return FakeRpc(name=name, params=params, calls=self.rpc_calls)

    def channel(self, topic: str) -> FakeChannel:
        channel = FakeChannel(topic=topic)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel: FakeChannel) -> None:
        self.removed.append(channel)


def test_fetch_and_save_daily_log() -> None:
    client = FakeSupabaseClient()
    logs_table = client.table("daily_logs")
    row = {"user_id": "u", "log_date": "2024-03-05", "meals": []}
    logs_table.queue("select", [row])
    logs_table.queue("upsert", [{"user_id": "u", "log_date": "2024-03-05"}])
    repository = SupabaseDailyLogRepository(client)

    async def scenario():
        document = await repository.fetch("u", DAY)
        missing = await repository.fetch("u", DAY)
        await repository.save({"user_id": "u", "log_date": "2024-03-05", "meals": []})
        return document, missing

    document, missing = asyncio.run(scenario())

    assert document["log_date"] == "2024-03-05"
    assert missing is None
    assert ("eq", "log_date", "2024-03-05") in logs_table.last_filters
    assert logs_table.last_on_conflict == "user_id,log_date"


def test_save_without_returned_rows_raises() -> None:
    repository = SupabaseDailyLogRepository(FakeSupabaseClient())

    with pytest.raises(RuntimeError):
        asyncio.run(repository.save({"user_id": "u", "log_date": "2024-03-05"}))


def test_journal_entries_use_rpc() -> None:
    client = FakeSupabaseClient()
    repository = SupabaseDailyLogRepository(client)
    entry = {"id": "J1", "text": "Hello"}

    async def scenario() -> None:
        await repository.append_journal_entry("u", DAY, entry)
        await repository.remove_journal_entry("u", DAY, entry)

    asyncio.run(scenario())

    assert [name for name, _ in client.rpc_calls] == [
        "daily_log_append_journal_entry",
        "daily_log_remove_journal_entry",
    ]
    assert client.rpc_calls[0][1] == {
        "p_user_id": "u",
        "p_log_date": "2024-03-05",
        "p_entry": entry,
    }


def test_list_range_filters_half_open_window() -> None:
    client = FakeSupabaseClient()
    logs_table = client.table("daily_logs")
    logs_table.queue("select", [{"log_date": "2024-03-01"}, {"log_date": "2024-03-02"}])
    repository = SupabaseDailyLogRepository(client)

    rows = asyncio.run(repository.list_range("u", date(2024, 3, 1), date(2024, 3, 8)))

    assert len(rows) == 2
    assert ("gte", "log_date", "2024-03-01") in logs_table.last_filters
    assert ("lt", "log_date", "2024-03-08") in logs_table.last_filters
    assert logs_table.last_order == ("log_date", False)


def test_summaries_roundtrip() -> None:
    client = FakeSupabaseClient()
    summaries_table = client.table("daily_summaries")
    summaries_table.queue("upsert", [{"summary_date": "2024-03-05"}])
    summaries_table.queue("select", [{"summary_date": "2024-03-05", "meal_score": "B"}])
    repository = SupabaseDailyLogRepository(client)

    async def scenario():
        await repository.save_summary("u", DAY, {"meal_score": "B"})
        return await repository.list_summaries("u", 30)

    rows = asyncio.run(scenario())

    assert rows == [{"summary_date": "2024-03-05", "meal_score": "B"}]
    assert summaries_table.last_payload == {
        "meal_score": "B",
        "user_id": "u",
        "summary_date": "2024-03-05",
    }
    assert summaries_table.last_order == ("summary_date", True)


def test_subscribe_delivers_initial_and_changed_documents() -> None:
    client = FakeSupabaseClient()
    logs_table = client.table("daily_logs")
    repository = SupabaseDailyLogRepository(client)
    received: list[dict[str, object] | None] = []

    async def on_snapshot(document: dict[str, object] | None) -> None:
        received.append(document)

    async def scenario():
        subscription = await repository.subscribe("u", DAY, on_snapshot)
        channel = client.channels[0]
        logs_table.queue("select", [{"log_date": "2024-03-05", "meals": []}])
        channel.callback({"data": {"record": {"log_date": "2024-03-06"}}})
        channel.callback({"data": {"record": {"log_date": "2024-03-05"}}})
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await subscription.close()
        return channel

    channel = asyncio.run(scenario())

    assert channel.subscribed
    assert channel.filter == "user_id=eq.u"
    assert received == [None, {"log_date": "2024-03-05", "meals": []}]
    assert client.removed == [channel]


@dataclass
class SlowStaleTable(FakeTable):
    """Answers reads of the stale row only after a delay."""

    async def execute(self) -> FakeResponse:
        response = await super().execute()
        if response.data and response.data[0].get("version") == "stale":
            await asyncio.sleep(0.05)
        return response


def test_overlapping_changes_never_deliver_an_older_read_last() -> None:
    client = FakeSupabaseClient()
    logs_table = SlowStaleTable(name="daily_logs")
    client.tables["daily_logs"] = logs_table
    repository = SupabaseDailyLogRepository(client)
    received: list[dict[str, object] | None] = []

    async def on_snapshot(document: dict[str, object] | None) -> None:
        received.append(document)

    async def scenario() -> None:
        subscription = await repository.subscribe("u", DAY, on_snapshot)
        channel = client.channels[0]
        logs_table.queue("select", [{"log_date": "2024-03-05", "version": "stale"}])
        logs_table.queue("select", [{"log_date": "2024-03-05", "version": "fresh"}])
        channel.callback({"data": {"record": {"log_date": "2024-03-05"}}})
        # Let the first read start before the second change arrives.
        await asyncio.sleep(0.01)
        channel.callback({"data": {"record": {"log_date": "2024-03-05"}}})
        await asyncio.gather(*subscription.pending)
        await subscription.close()

    asyncio.run(scenario())

    assert received[0] is None
    assert received[-1] == {"log_date": "2024-03-05", "version": "fresh"}
    assert all(doc is None or doc["version"] == "fresh" for doc in received)


def test_goal_repository_returns_first_row() -> None:
    client = FakeSupabaseClient()
    client.table("goal_settings").queue("select", [{"user_id": "u", "calories": 1800}])
    repository = SupabaseGoalRepository(client)

    async def scenario():
        found = await repository.get_goals("u")
        missing = await repository.get_goals("u")
        return found, missing

    found, missing = asyncio.run(scenario())

    assert found["calories"] == 1800
    assert missing is None


def test_food_library_keys_rows_by_food_id() -> None:
    client = FakeSupabaseClient()
    recent_table = client.table("recent_foods")
    custom_table = client.table("custom_foods")
    recent_table.queue("upsert", [{"food_id": "toast"}])
    recent_table.queue("select", [{"food_id": "toast"}])
    custom_table.queue("select", [{"food_id": "bar", "name": "Bar"}])
    repository = SupabaseFoodLibraryRepository(client)

    async def scenario():
        await repository.record_recent_food("u", {"food_id": "toast", "name": "Toast"})
        recent = await repository.list_recent_foods("u", 10)
        custom = await repository.list_custom_foods("u")
        await repository.delete_custom_food("u", "bar")
        return recent, custom

    recent, custom = asyncio.run(scenario())

    assert recent == [{"food_id": "toast"}]
    assert custom == [{"food_id": "bar", "name": "Bar"}]
    assert recent_table.last_payload == {
        "food_id": "toast",
        "name": "Toast",
        "user_id": "u",
    }
    assert recent_table.last_on_conflict == "user_id,food_id"
    assert recent_table.last_order == ("logged_at", True)
    assert custom_table.last_order == ("name", False)
    assert ("eq", "food_id", "bar") in custom_table.last_filters


def test_custom_food_save_without_returned_rows_raises() -> None:
    repository = SupabaseFoodLibraryRepository(FakeSupabaseClient())

    with pytest.raises(RuntimeError):
        asyncio.run(repository.save_custom_food("u", {"food_id": "bar"}))
