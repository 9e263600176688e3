"""In-memory cache of the actively viewed day, kept live by a subscription."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import partial
from typing import Protocol

from pydantic import ValidationError

from fitplate.domain.days import day_key, start_of_day
from fitplate.domain.logs import DailyAggregate, JournalEntry
from fitplate.domain.totals import widget_snapshot
from fitplate.services.goals import GoalSettingsService
from fitplate.services.notifications import WidgetExporter

_logger = logging.getLogger(__name__)

SnapshotHandler = Callable[[dict[str, object] | None], Awaitable[None]]


class Subscription(Protocol):
    """Handle for a live document subscription."""

    async def close(self) -> None:
        """Stop delivering snapshots."""


class DailyLogRepository(Protocol):
    """Remote per-day document store."""

    async def subscribe(
        self, user_id: str, day: date, on_snapshot: SnapshotHandler
    ) -> Subscription:
        """Deliver the current document, then every change, to on_snapshot.

        A missing document is delivered as None.
        """

    async def fetch(self, user_id: str, day: date) -> dict[str, object] | None:
        """Return the document for a day, or None when it does not exist."""

    async def save(self, document: dict[str, object]) -> None:
        """Merge-write a whole document."""

    async def append_journal_entry(
        self, user_id: str, day: date, entry: dict[str, object]
    ) -> None:
        """Atomically add an entry to the journal array."""

    async def remove_journal_entry(
        self, user_id: str, day: date, entry: dict[str, object]
    ) -> None:
        """Atomically remove entries equal to entry from the journal array."""

    async def list_range(
        self, user_id: str, start: date, end: date
    ) -> list[dict[str, object]]:
        """Return documents with start <= day < end ordered by day."""

    async def save_summary(
        self, user_id: str, day: date, summary: dict[str, object]
    ) -> None:
        """Merge-write the score summary for a day."""

    async def list_summaries(self, user_id: str, limit: int) -> list[dict[str, object]]:
        """Return the most recent score summaries."""


def encode_document(aggregate: DailyAggregate) -> dict[str, object]:
    """Serialize an aggregate into its remote document shape."""
    document = aggregate.model_dump(mode="json", exclude={"day"})
    document["log_date"] = aggregate.document_id
    return document


def encode_journal_entry(entry: JournalEntry) -> dict[str, object]:
    return entry.model_dump(mode="json")


def decode_document(
    user_id: str, day: date, document: dict[str, object]
) -> DailyAggregate:
    """Decode a remote document, falling back to an empty day on bad data."""
    payload = {key: value for key, value in document.items() if value is not None}
    payload["user_id"] = user_id
    payload["day"] = day
    payload.pop("log_date", None)
    try:
        return DailyAggregate.model_validate(payload)
    except ValidationError as exc:
        _logger.warning(
            "Failed to decode daily log %s for %s, using empty log: %s",
            day_key(day),
            user_id,
            exc.error_count(),
        )
        return DailyAggregate.empty(user_id, day)


@dataclass
class LogStore:
    """Single-subscription cache for the day the user is looking at."""

    repository: DailyLogRepository
    widget_exporter: WidgetExporter
    goal_service: GoalSettingsService
    timezone_name: str = "UTC"
    _current: DailyAggregate | None = field(default=None, init=False, repr=False)
    _pending: DailyAggregate | None = field(default=None, init=False, repr=False)
    _observed: tuple[str, date] | None = field(default=None, init=False, repr=False)
    _subscription: Subscription | None = field(default=None, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _attach_lock: asyncio.Lock = field(
        default_factory=asyncio.Lock, init=False, repr=False
    )

    @property
    def current(self) -> DailyAggregate | None:
        """Return the aggregate currently visible to consumers."""
        return self._current

    @property
    def observed_day(self) -> date | None:
        return self._observed[1] if self._observed else None

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None

    def cached(self, user_id: str, day: date) -> DailyAggregate | None:
        """Return the cached aggregate when it belongs to the given day."""
        current = self._current
        if current is None or current.user_id != user_id or current.day != day:
            return None
        return current

    async def observe(self, user_id: str, day: date | datetime) -> DailyAggregate:
        """Subscribe to a day and return its aggregate."""
        normalized = start_of_day(day, self.timezone_name)
        key = (user_id, normalized)
        async with self._attach_lock:
            if self._observed == key and self._subscription is not None:
                cached = self.cached(user_id, normalized)
                if cached is not None:
                    return cached
            else:
                await self._detach()
                self._observed = key
                self._subscription = await self.repository.subscribe(
                    user_id,
                    normalized,
                    partial(self._on_snapshot, user_id, normalized),
                )
        return self.cached(user_id, normalized) or DailyAggregate.empty(
            user_id, normalized
        )

    async def close(self) -> None:
        """Tear down the subscription and return to idle."""
        async with self._attach_lock:
            await self._detach()
            self._observed = None

    async def publish_local(self, aggregate: DailyAggregate) -> bool:
        """Show an unconfirmed local write if it targets the observed day."""
        async with self._lock:
            if self._observed != (aggregate.user_id, aggregate.day):
                return False
            self._current = aggregate
            self._pending = aggregate
            return True

    async def clear_pending(self, aggregate: DailyAggregate) -> None:
        """Release the optimistic slot once its write has settled."""
        async with self._lock:
            if self._pending is aggregate:
                self._pending = None

    async def export_widget(self, aggregate: DailyAggregate) -> None:
        """Send recomputed totals to the widget exporter."""
        try:
            goals = await self.goal_service.get_goals(aggregate.user_id)
            await self.widget_exporter.export(widget_snapshot(aggregate, goals))
        except Exception:
            _logger.exception("Widget export failed for %s", aggregate.document_id)

    async def _detach(self) -> None:
        subscription = self._subscription
        self._subscription = None
        if subscription is not None:
            await subscription.close()

    async def _on_snapshot(
        self, user_id: str, day: date, document: dict[str, object] | None
    ) -> None:
        if document is None:
            aggregate = DailyAggregate.empty(user_id, day)
            try:
                await self.repository.save(encode_document(aggregate))
            except Exception:
                _logger.exception("Failed to create daily log %s", day_key(day))
        else:
            aggregate = decode_document(user_id, day, document)
        if await self._promote(aggregate):
            await self.export_widget(aggregate)

    async def _promote(self, aggregate: DailyAggregate) -> bool:
        async with self._lock:
            if self._observed != (aggregate.user_id, aggregate.day):
                _logger.debug("Dropping stale snapshot for %s", aggregate.document_id)
                return False
            if self._pending is not None and aggregate != self._pending:
                _logger.debug("Holding snapshot behind pending write")
                return False
            self._current = aggregate
            return True
