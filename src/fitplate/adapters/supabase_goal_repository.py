"""Supabase repository for goal settings."""

from dataclasses import dataclass

from supabase import AsyncClient

from fitplate.services.goals import GoalRepository


@dataclass
class SupabaseGoalRepository(GoalRepository):
    """Supabase implementation for goal settings."""

    client: AsyncClient

    async def get_goals(self, user_id: str) -> dict[str, object] | None:
        """Return the goal row for a user."""
        response = (
            await self.client.table("goal_settings")
            .select("*")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]
