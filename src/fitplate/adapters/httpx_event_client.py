"""Webhook client forwarding log events to companion services."""

from dataclasses import asdict, dataclass
from datetime import date

import httpx

from fitplate.domain.days import day_key
from fitplate.domain.logs import FoodItem, LoggedExercise
from fitplate.domain.totals import WidgetSnapshot
from fitplate.services.notifications import MutationKind


@dataclass
class HttpxEventClient:
    """HTTPX-backed widget exporter, achievement notifier and health sink.

    Every event is posted as ``{"type": ..., "payload": ...}`` to one webhook.
    """

    webhook_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, webhook_url: str) -> "HttpxEventClient":
        """Create an event client with a managed httpx session."""
        return cls(webhook_url=webhook_url, http_client=httpx.AsyncClient())

    async def export(self, snapshot: WidgetSnapshot) -> None:
        await self._post("widget.snapshot", asdict(snapshot))

    async def log_updated(self, user_id: str, kind: MutationKind, day: date) -> None:
        await self._post(
            "log.updated", {"user_id": user_id, "kind": str(kind), "day": day_key(day)}
        )

    async def save_food(self, user_id: str, item: FoodItem) -> None:
        await self._post(
            "health.food", {"user_id": user_id, "item": item.model_dump(mode="json")}
        )

    async def save_exercise(self, user_id: str, exercise: LoggedExercise) -> None:
        await self._post(
            "health.exercise",
            {"user_id": user_id, "exercise": exercise.model_dump(mode="json")},
        )

    async def save_water(self, user_id: str, day: date, ounces: float) -> None:
        await self._post(
            "health.water", {"user_id": user_id, "day": day_key(day), "ounces": ounces}
        )

    async def _post(self, event_type: str, payload: dict[str, object]) -> None:
        response = await self.http_client.post(
            self.webhook_url,
            json={"type": event_type, "payload": payload},
            timeout=15,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
