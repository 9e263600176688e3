"""Supabase repository for recent and custom foods."""

from dataclasses import dataclass

from supabase import AsyncClient

from fitplate.services.daily_logs import FoodLibraryRepository

RECENT_FOODS_TABLE = "recent_foods"
CUSTOM_FOODS_TABLE = "custom_foods"


@dataclass
class SupabaseFoodLibraryRepository(FoodLibraryRepository):
    """Supabase implementation for a user's food library.

    Both tables are keyed by ``(user_id, food_id)``; logging a food again
    refreshes its recent-food row instead of adding another one.
    """

    client: AsyncClient

    async def record_recent_food(self, user_id: str, row: dict[str, object]) -> None:
        await self._upsert(RECENT_FOODS_TABLE, {**row, "user_id": user_id})

    async def list_recent_foods(
        self, user_id: str, limit: int
    ) -> list[dict[str, object]]:
        """Return the newest recent-food rows first."""
        response = (
            await self.client.table(RECENT_FOODS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("logged_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []

    async def save_custom_food(self, user_id: str, row: dict[str, object]) -> None:
        await self._upsert(CUSTOM_FOODS_TABLE, {**row, "user_id": user_id})

    async def delete_custom_food(self, user_id: str, food_id: str) -> None:
        await (
            self.client.table(CUSTOM_FOODS_TABLE)
            .delete()
            .eq("user_id", user_id)
            .eq("food_id", food_id)
            .execute()
        )

    async def list_custom_foods(self, user_id: str) -> list[dict[str, object]]:
        """Return custom-food rows ordered by name."""
        response = (
            await self.client.table(CUSTOM_FOODS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("name")
            .execute()
        )
        return response.data or []

    async def _upsert(self, table: str, payload: dict[str, object]) -> None:
        response = (
            await self.client.table(table)
            .upsert(payload, on_conflict="user_id,food_id")
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to save {table} row")
