"""Supabase repository for per-day log documents."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from supabase import AsyncClient

from fitplate.domain.days import day_key
from fitplate.services.log_store import DailyLogRepository, SnapshotHandler

_logger = logging.getLogger(__name__)

DAILY_LOGS_TABLE = "daily_logs"
DAILY_SUMMARIES_TABLE = "daily_summaries"
APPEND_JOURNAL_RPC = "daily_log_append_journal_entry"
REMOVE_JOURNAL_RPC = "daily_log_remove_journal_entry"


@dataclass
class SupabaseLogSubscription:
    """Realtime channel feeding one day's document to a handler."""

    client: AsyncClient
    channel: Any
    pending: set[asyncio.Task[None]] = field(default_factory=set)
    generation: int = 0
    delivery_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def close(self) -> None:
        """Remove the channel and drop undelivered snapshots."""
        for task in list(self.pending):
            task.cancel()
        self.pending.clear()
        await self.client.remove_channel(self.channel)


@dataclass
class SupabaseDailyLogRepository(DailyLogRepository):
    """Supabase implementation for daily log documents.

    Rows in ``daily_logs`` are keyed by ``(user_id, log_date)``. Journal
    entries are changed through database functions that add or remove a
    single element of the ``journal_entries`` array.
    """

    client: AsyncClient

    async def subscribe(
        self, user_id: str, day: date, on_snapshot: SnapshotHandler
    ) -> SupabaseLogSubscription:
        """Listen for row changes and deliver the full document each time."""
        key = day_key(day)
        channel = self.client.channel(f"{DAILY_LOGS_TABLE}:{user_id}:{key}")
        subscription = SupabaseLogSubscription(client=self.client, channel=channel)

        def on_change(payload: dict[str, Any]) -> None:
            changed = _changed_log_date(payload)
            if changed is not None and changed != key:
                return
            subscription.generation += 1
            task = asyncio.ensure_future(
                self._deliver(
                    subscription, subscription.generation, user_id, day, on_snapshot
                )
            )
            subscription.pending.add(task)
            task.add_done_callback(subscription.pending.discard)

        channel.on_postgres_changes(
            "*",
            callback=on_change,
            table=DAILY_LOGS_TABLE,
            filter=f"user_id=eq.{user_id}",
        )
        await channel.subscribe()
        # The first snapshot is always handed over; later ones queue behind it.
        await self._deliver(subscription, None, user_id, day, on_snapshot)
        return subscription

    async def _deliver(  # noqa: PLR0913
        self,
        subscription: SupabaseLogSubscription,
        generation: int | None,
        user_id: str,
        day: date,
        on_snapshot: SnapshotHandler,
    ) -> None:
        """Fetch and hand over the row unless a newer change superseded it.

        Deliveries run one at a time, so an older read never lands last.
        """
        async with subscription.delivery_lock:
            if _superseded(subscription, generation):
                return
            try:
                document = await self.fetch(user_id, day)
            except Exception:
                _logger.exception(
                    "Failed to read daily log %s for %s", day_key(day), user_id
                )
                return
            if _superseded(subscription, generation):
                return
            await on_snapshot(document)

    async def fetch(self, user_id: str, day: date) -> dict[str, object] | None:
        """Return the row for a day if it exists."""
        response = (
            await self.client.table(DAILY_LOGS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("log_date", day_key(day))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]

    async def save(self, document: dict[str, object]) -> None:
        """Upsert a whole document."""
        response = (
            await self.client.table(DAILY_LOGS_TABLE)
            .upsert(document, on_conflict="user_id,log_date")
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to save daily log")

    async def append_journal_entry(
        self, user_id: str, day: date, entry: dict[str, object]
    ) -> None:
        await self.client.rpc(
            APPEND_JOURNAL_RPC,
            {"p_user_id": user_id, "p_log_date": day_key(day), "p_entry": entry},
        ).execute()

    async def remove_journal_entry(
        self, user_id: str, day: date, entry: dict[str, object]
    ) -> None:
        await self.client.rpc(
            REMOVE_JOURNAL_RPC,
            {"p_user_id": user_id, "p_log_date": day_key(day), "p_entry": entry},
        ).execute()

    async def list_range(
        self, user_id: str, start: date, end: date
    ) -> list[dict[str, object]]:
        """Return rows for start <= log_date < end ordered by date."""
        response = (
            await self.client.table(DAILY_LOGS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .gte("log_date", day_key(start))
            .lt("log_date", day_key(end))
            .order("log_date")
            .execute()
        )
        return response.data or []

    async def save_summary(
        self, user_id: str, day: date, summary: dict[str, object]
    ) -> None:
        """Upsert the score summary for a day."""
        payload = {**summary, "user_id": user_id, "summary_date": day_key(day)}
        response = (
            await self.client.table(DAILY_SUMMARIES_TABLE)
            .upsert(payload, on_conflict="user_id,summary_date")
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to save daily summary")

    async def list_summaries(self, user_id: str, limit: int) -> list[dict[str, object]]:
        """Return the newest summaries first."""
        response = (
            await self.client.table(DAILY_SUMMARIES_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("summary_date", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []


def _superseded(subscription: SupabaseLogSubscription, generation: int | None) -> bool:
    return generation is not None and generation != subscription.generation


def _changed_log_date(payload: dict[str, Any]) -> str | None:
    data = payload.get("data", payload)
    for key in ("record", "old_record"):
        record = data.get(key) or {}
        value = record.get("log_date")
        if value:
            return str(value)[:10]
    return None
