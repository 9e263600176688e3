"""Write-only collaborators notified after log changes."""

import logging
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Protocol

from fitplate.domain.logs import FoodItem, LoggedExercise
from fitplate.domain.totals import WidgetSnapshot

_logger = logging.getLogger(__name__)


class MutationKind(StrEnum):
    """Kind of change applied to a daily log."""

    FOOD_LOGGED = "food_logged"
    MEAL_LOGGED = "meal_logged"
    FOOD_UPDATED = "food_updated"
    FOOD_DELETED = "food_deleted"
    EXERCISE_LOGGED = "exercise_logged"
    EXERCISE_DELETED = "exercise_deleted"
    EXERCISES_SYNCED = "exercises_synced"
    WATER_CHANGED = "water_changed"
    JOURNAL_ADDED = "journal_added"
    JOURNAL_DELETED = "journal_deleted"


class BannerSeverity(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class AchievementNotifier(Protocol):
    """Receives mutation events for gamification rules."""

    async def log_updated(self, user_id: str, kind: MutationKind, day: date) -> None:
        """Report that a daily log changed."""


class BannerPresenter(Protocol):
    """Shows short status messages to the user."""

    async def show(self, title: str, message: str, severity: BannerSeverity) -> None:
        """Display a banner."""


class WidgetExporter(Protocol):
    """Pushes the latest totals to widgets and companion devices."""

    async def export(self, snapshot: WidgetSnapshot) -> None:
        """Export a totals snapshot."""


class HealthDataSink(Protocol):
    """External health store receiving logged records."""

    async def save_food(self, user_id: str, item: FoodItem) -> None:
        """Record a logged food."""

    async def save_exercise(self, user_id: str, exercise: LoggedExercise) -> None:
        """Record a logged exercise."""

    async def save_water(self, user_id: str, day: date, ounces: float) -> None:
        """Record a water intake change."""


@dataclass
class LoggingNotifier:
    """Collaborator implementation that only writes log lines."""

    async def log_updated(self, user_id: str, kind: MutationKind, day: date) -> None:
        _logger.info("Log updated: user=%s kind=%s day=%s", user_id, kind, day)

    async def show(self, title: str, message: str, severity: BannerSeverity) -> None:
        if severity == BannerSeverity.ERROR:
            _logger.warning("%s: %s", title, message)
            return
        _logger.info("%s: %s", title, message)

    async def export(self, snapshot: WidgetSnapshot) -> None:
        _logger.info(
            "Widget export: user=%s day=%s calories=%.0f/%.0f",
            snapshot.user_id,
            snapshot.day,
            snapshot.calories,
            snapshot.calorie_goal,
        )

    async def save_food(self, user_id: str, item: FoodItem) -> None:
        _logger.info("Health sink food: user=%s item=%s", user_id, item.name)

    async def save_exercise(self, user_id: str, exercise: LoggedExercise) -> None:
        _logger.info("Health sink exercise: user=%s name=%s", user_id, exercise.name)

    async def save_water(self, user_id: str, day: date, ounces: float) -> None:
        _logger.info(
            "Health sink water: user=%s day=%s ounces=%s", user_id, day, ounces
        )
