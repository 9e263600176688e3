"""Goal settings service."""

from dataclasses import dataclass, fields
from typing import Protocol

from fitplate.domain.goals import GoalSettings

_GOAL_FIELDS = {goal_field.name for goal_field in fields(GoalSettings)}


class GoalRepository(Protocol):
    """Read-only source of a user's daily targets."""

    async def get_goals(self, user_id: str) -> dict[str, object] | None:
        """Return the stored goal row for a user, if any."""


@dataclass
class GoalSettingsService:
    """Service resolving daily targets for analytics and widgets."""

    repository: GoalRepository

    async def get_goals(self, user_id: str) -> GoalSettings:
        """Return the user's goals or defaults when none are stored."""
        row = await self.repository.get_goals(user_id)
        if not row:
            return GoalSettings()
        values = {
            key: float(value)
            for key, value in row.items()
            if key in _GOAL_FIELDS and isinstance(value, int | float)
        }
        return GoalSettings(**values)
