"""Read-modify-write mutations of a daily log."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Protocol
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from fitplate.domain.days import start_of_day
from fitplate.domain.goals import DEFAULT_WATER_GOAL_OZ
from fitplate.domain.logs import (
    HEALTHKIT_SOURCE,
    DailyAggregate,
    FoodItem,
    JournalEntry,
    LoggedExercise,
    Meal,
    WaterTracker,
)
from fitplate.services.log_store import (
    DailyLogRepository,
    LogStore,
    decode_document,
    encode_document,
    encode_journal_entry,
)
from fitplate.services.notifications import (
    AchievementNotifier,
    BannerPresenter,
    BannerSeverity,
    HealthDataSink,
    MutationKind,
)

_logger = logging.getLogger(__name__)

RECENT_FOODS_LIMIT = 10

Transform = Callable[[DailyAggregate], tuple[DailyAggregate, str] | None]


@dataclass(frozen=True)
class _Mutation:
    kind: MutationKind
    apply: Transform
    failure_message: str
    success_title: str = "Success"
    persist: Callable[[DailyAggregate], Awaitable[None]] | None = None
    forward: Callable[[], Awaitable[None]] | None = None


def meal_name_for_hour(hour: int) -> str:
    """Return the default meal slot for an hour of the day."""
    if 4 <= hour < 11:  # noqa: PLR2004
        return "Breakfast"
    if 11 <= hour < 16:  # noqa: PLR2004
        return "Lunch"
    if 16 <= hour < 21:  # noqa: PLR2004
        return "Dinner"
    return "Snack"


class FoodLibraryRepository(Protocol):
    """Per-user recently logged foods and saved custom foods."""

    async def record_recent_food(self, user_id: str, row: dict[str, object]) -> None:
        """Upsert a recent-food row keyed by the food id."""

    async def list_recent_foods(
        self, user_id: str, limit: int
    ) -> list[dict[str, object]]:
        """Return recent-food rows, newest first."""

    async def save_custom_food(self, user_id: str, row: dict[str, object]) -> None:
        """Upsert a custom-food row keyed by the food id."""

    async def delete_custom_food(self, user_id: str, food_id: str) -> None:
        """Delete a custom food."""

    async def list_custom_foods(self, user_id: str) -> list[dict[str, object]]:
        """Return custom-food rows ordered by name."""


@dataclass
class _DayLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


@dataclass
class DailyLogService:
    """Applies mutations to a day's log and persists them."""

    repository: DailyLogRepository
    log_store: LogStore
    achievements: AchievementNotifier
    banners: BannerPresenter
    health_sink: HealthDataSink
    food_library: FoodLibraryRepository
    timezone_name: str = "UTC"
    _day_locks: dict[tuple[str, date], _DayLock] = field(
        default_factory=dict, init=False, repr=False
    )

    async def get_log(self, user_id: str, day: date | datetime) -> DailyAggregate:
        """Return a day's log without subscribing to it."""
        return await self._fetch_base(user_id, start_of_day(day, self.timezone_name))

    async def log_food(
        self,
        user_id: str,
        day: date | datetime,
        item: FoodItem,
        meal_name: str | None = None,
        source: str = "unknown",
    ) -> DailyAggregate | None:
        """Append a food item to a meal, creating the meal if needed.

        Once saved the item is also remembered as a recent food under source.
        """
        stamped = _stamp(item)
        meal = meal_name or meal_name_for_hour(
            datetime.now(tz=ZoneInfo(self.timezone_name)).hour
        )

        def apply(base: DailyAggregate) -> tuple[DailyAggregate, str]:
            message = f"{item.name} logged to {meal}!"
            return _append_items(base, meal, [stamped]), message

        async def forward() -> None:
            await self._remember_recent(user_id, [stamped], source)
            await self.health_sink.save_food(user_id, stamped)

        return await self._run(
            user_id,
            day,
            _Mutation(
                kind=MutationKind.FOOD_LOGGED,
                apply=apply,
                failure_message=f"Failed to log {item.name}.",
                forward=forward,
            ),
        )

    async def add_meal(  # noqa: PLR0913
        self,
        user_id: str,
        day: date | datetime,
        meal_name: str,
        items: list[FoodItem],
        source: str = "recipe",
    ) -> DailyAggregate | None:
        """Append several food items under one meal name."""
        stamped = [_stamp(item) for item in items]

        def apply(base: DailyAggregate) -> tuple[DailyAggregate, str]:
            return _append_items(base, meal_name, stamped), f"{meal_name} logged!"

        async def forward() -> None:
            await self._remember_recent(user_id, stamped, source)
            for item in stamped:
                await self.health_sink.save_food(user_id, item)

        return await self._run(
            user_id,
            day,
            _Mutation(
                kind=MutationKind.MEAL_LOGGED,
                apply=apply,
                failure_message=f"Failed to log {meal_name}.",
                forward=forward,
            ),
        )

    async def update_food(
        self, user_id: str, day: date | datetime, item: FoodItem
    ) -> DailyAggregate | None:
        """Replace the food item with the same id."""

        def apply(base: DailyAggregate) -> tuple[DailyAggregate, str] | None:
            meals = list(base.meals)
            for index, meal in enumerate(meals):
                positions = [
                    i for i, food in enumerate(meal.food_items) if food == item
                ]
                if positions:
                    foods = list(meal.food_items)
                    foods[positions[0]] = item
                    meals[index] = meal.model_copy(update={"food_items": foods})
                    updated = base.model_copy(update={"meals": meals})
                    return updated, f"{item.name} updated!"
            return None

        return await self._run(
            user_id,
            day,
            _Mutation(
                kind=MutationKind.FOOD_UPDATED,
                apply=apply,
                failure_message=f"Failed to update {item.name}.",
            ),
        )

    async def delete_food(
        self, user_id: str, day: date | datetime, item_id: str
    ) -> DailyAggregate | None:
        """Remove a food item by id from every meal."""

        def apply(base: DailyAggregate) -> tuple[DailyAggregate, str] | None:
            name = next(
                (food.name for food in base.food_items if food.id == item_id), None
            )
            if name is None:
                return None
            meals = [
                meal.model_copy(
                    update={
                        "food_items": [f for f in meal.food_items if f.id != item_id]
                    }
                )
                for meal in base.meals
            ]
            return base.model_copy(update={"meals": meals}), f"{name} removed from log."

        return await self._run(
            user_id,
            day,
            _Mutation(
                kind=MutationKind.FOOD_DELETED,
                apply=apply,
                failure_message="Failed to delete item.",
                success_title="Deleted",
            ),
        )

    async def add_exercise(
        self, user_id: str, day: date | datetime, exercise: LoggedExercise
    ) -> DailyAggregate | None:
        """Append an exercise stamped with the target day."""
        target_day = start_of_day(day, self.timezone_name)
        stamped = exercise.model_copy(update={"date": target_day})

        def apply(base: DailyAggregate) -> tuple[DailyAggregate, str]:
            exercises = [*(base.exercises or []), stamped]
            updated = base.model_copy(update={"exercises": exercises})
            return updated, f"{exercise.name} logged!"

        async def forward() -> None:
            await self.health_sink.save_exercise(user_id, stamped)

        return await self._run(
            user_id,
            target_day,
            _Mutation(
                kind=MutationKind.EXERCISE_LOGGED,
                apply=apply,
                failure_message=f"Failed to log {exercise.name}.",
                forward=forward,
            ),
        )

    async def delete_exercise(
        self, user_id: str, day: date | datetime, exercise_id: str
    ) -> DailyAggregate | None:
        """Remove an exercise by id."""

        def apply(base: DailyAggregate) -> tuple[DailyAggregate, str] | None:
            exercises = base.exercises or []
            name = next((e.name for e in exercises if e.id == exercise_id), None)
            if name is None:
                return None
            remaining = [e for e in exercises if e.id != exercise_id]
            return base.model_copy(update={"exercises": remaining}), f"{name} removed."

        return await self._run(
            user_id,
            day,
            _Mutation(
                kind=MutationKind.EXERCISE_DELETED,
                apply=apply,
                failure_message="Failed to delete exercise.",
                success_title="Deleted",
            ),
        )

    async def replace_external_exercises(
        self,
        user_id: str,
        day: date | datetime,
        exercises: list[LoggedExercise],
        source: str = HEALTHKIT_SOURCE,
    ) -> DailyAggregate | None:
        """Swap every exercise imported from source, keeping manual entries."""
        tagged = [
            exercise.model_copy(update={"source": source}) for exercise in exercises
        ]

        def apply(base: DailyAggregate) -> tuple[DailyAggregate, str]:
            kept = [e for e in base.exercises or [] if e.source != source]
            updated = base.model_copy(update={"exercises": [*kept, *tagged]})
            return updated, f"{len(tagged)} workouts synced."

        async def forward() -> None:
            for exercise in tagged:
                await self.health_sink.save_exercise(user_id, exercise)

        return await self._run(
            user_id,
            day,
            _Mutation(
                kind=MutationKind.EXERCISES_SYNCED,
                apply=apply,
                failure_message="Failed to sync workouts.",
                forward=forward,
            ),
        )

    async def add_water(
        self,
        user_id: str,
        day: date | datetime,
        ounces: float,
        goal_ounces: float | None = None,
    ) -> DailyAggregate | None:
        """Add (or with a negative amount, remove) water, never below zero."""
        target_day = start_of_day(day, self.timezone_name)

        def apply(base: DailyAggregate) -> tuple[DailyAggregate, str]:
            tracker = base.water_tracker
            if tracker is None:
                tracker = WaterTracker(
                    total_ounces=max(0.0, ounces),
                    goal_ounces=(
                        DEFAULT_WATER_GOAL_OZ if goal_ounces is None else goal_ounces
                    ),
                    date=target_day,
                )
            else:
                tracker = tracker.model_copy(
                    update={
                        "total_ounces": max(0.0, tracker.total_ounces + ounces),
                        "goal_ounces": (
                            tracker.goal_ounces if goal_ounces is None else goal_ounces
                        ),
                    }
                )
            verb = "added" if ounces >= 0 else "removed"
            updated = base.model_copy(update={"water_tracker": tracker})
            return updated, f"{abs(ounces):g} oz of water {verb}."

        async def forward() -> None:
            await self.health_sink.save_water(user_id, target_day, ounces)

        return await self._run(
            user_id,
            target_day,
            _Mutation(
                kind=MutationKind.WATER_CHANGED,
                apply=apply,
                failure_message="Could not update water intake.",
                forward=forward,
            ),
        )

    async def remove_water(
        self, user_id: str, day: date | datetime, ounces: float
    ) -> DailyAggregate | None:
        return await self.add_water(user_id, day, -abs(ounces))

    async def add_journal_entry(
        self, user_id: str, day: date | datetime, entry: JournalEntry
    ) -> DailyAggregate | None:
        """Add a journal entry with an atomic array union."""
        target_day = start_of_day(day, self.timezone_name)

        def apply(base: DailyAggregate) -> tuple[DailyAggregate, str]:
            entries = [*(base.journal_entries or []), entry]
            updated = base.model_copy(update={"journal_entries": entries})
            return updated, "Journal entry saved!"

        async def persist(_: DailyAggregate) -> None:
            await self.repository.append_journal_entry(
                user_id, target_day, encode_journal_entry(entry)
            )

        return await self._run(
            user_id,
            target_day,
            _Mutation(
                kind=MutationKind.JOURNAL_ADDED,
                apply=apply,
                failure_message="Failed to save journal entry.",
                persist=persist,
            ),
        )

    async def delete_journal_entry(
        self, user_id: str, day: date | datetime, entry: JournalEntry
    ) -> DailyAggregate | None:
        """Remove a journal entry with an atomic array remove."""
        target_day = start_of_day(day, self.timezone_name)

        def apply(base: DailyAggregate) -> tuple[DailyAggregate, str]:
            entries = [e for e in base.journal_entries or [] if e.id != entry.id]
            updated = base.model_copy(update={"journal_entries": entries})
            return updated, "Journal entry deleted."

        async def persist(_: DailyAggregate) -> None:
            await self.repository.remove_journal_entry(
                user_id, target_day, encode_journal_entry(entry)
            )

        return await self._run(
            user_id,
            target_day,
            _Mutation(
                kind=MutationKind.JOURNAL_DELETED,
                apply=apply,
                failure_message="Failed to delete entry.",
                success_title="Deleted",
                persist=persist,
            ),
        )

    async def recent_foods(
        self, user_id: str, limit: int = RECENT_FOODS_LIMIT
    ) -> list[FoodItem]:
        """Return the most recently logged foods, newest first."""
        rows = await self.food_library.list_recent_foods(user_id, limit)
        return _decode_food_rows(rows)

    async def custom_foods(self, user_id: str) -> list[FoodItem]:
        """Return the user's saved foods ordered by name."""
        return _decode_food_rows(await self.food_library.list_custom_foods(user_id))

    async def save_custom_food(self, user_id: str, item: FoodItem) -> bool:
        try:
            await self.food_library.save_custom_food(user_id, _food_row(item))
        except Exception:
            _logger.exception("Failed to save custom food %s for %s", item.id, user_id)
            return False
        return True

    async def delete_custom_food(self, user_id: str, food_id: str) -> bool:
        try:
            await self.food_library.delete_custom_food(user_id, food_id)
        except Exception:
            _logger.exception(
                "Failed to delete custom food %s for %s", food_id, user_id
            )
            return False
        return True

    async def _remember_recent(
        self, user_id: str, items: list[FoodItem], source: str
    ) -> None:
        logged_at = datetime.now(tz=UTC).isoformat()
        for item in items:
            row = {**_food_row(item), "source": source, "logged_at": logged_at}
            try:
                await self.food_library.record_recent_food(user_id, row)
            except Exception:
                _logger.exception("Failed to record recent food %s", item.id)

    async def _run(
        self, user_id: str, day: date | datetime, mutation: _Mutation
    ) -> DailyAggregate | None:
        target_day = start_of_day(day, self.timezone_name)
        # Once started, a mutation finishes even if the caller is cancelled.
        return await asyncio.shield(self._run_locked(user_id, target_day, mutation))

    async def _run_locked(
        self, user_id: str, day: date, mutation: _Mutation
    ) -> DailyAggregate | None:
        async with self._day_lock(user_id, day):
            try:
                base = await self._fetch_base(user_id, day)
            except Exception:
                _logger.exception("Failed to load daily log %s for %s", day, user_id)
                await self._notify_banner(
                    "Error", f"Could not load the log for {day}.", BannerSeverity.ERROR
                )
                return None
            outcome = mutation.apply(base)
            if outcome is None:
                return None
            updated, message = outcome
            published = await self.log_store.publish_local(updated)
            try:
                if mutation.persist is not None:
                    await mutation.persist(updated)
                else:
                    await self.repository.save(encode_document(updated))
            except Exception:
                _logger.exception("Failed to persist %s on %s", mutation.kind, day)
                await self._notify_banner(
                    "Error", mutation.failure_message, BannerSeverity.ERROR
                )
                return updated
            finally:
                if published:
                    await self.log_store.clear_pending(updated)
        await self._after_success(user_id, day, mutation, updated, message)
        return updated

    async def _after_success(
        self,
        user_id: str,
        day: date,
        mutation: _Mutation,
        updated: DailyAggregate,
        message: str,
    ) -> None:
        await self.log_store.export_widget(updated)
        try:
            await self.achievements.log_updated(user_id, mutation.kind, day)
            if mutation.forward is not None:
                await mutation.forward()
        except Exception:
            _logger.exception("Post-write notification failed for %s", mutation.kind)
        await self._notify_banner(
            mutation.success_title, message, BannerSeverity.SUCCESS
        )

    async def _notify_banner(
        self, title: str, message: str, severity: BannerSeverity
    ) -> None:
        try:
            await self.banners.show(title, message, severity)
        except Exception:
            _logger.exception("Banner presenter failed")

    async def _fetch_base(self, user_id: str, day: date) -> DailyAggregate:
        cached = self.log_store.cached(user_id, day)
        if cached is not None:
            return cached
        document = await self.repository.fetch(user_id, day)
        if document is None:
            return DailyAggregate.empty(user_id, day)
        return decode_document(user_id, day, document)

    @asynccontextmanager
    async def _day_lock(self, user_id: str, day: date) -> AsyncIterator[None]:
        """Hold the lock for one day; it is forgotten once nobody needs it."""
        key = (user_id, day)
        entry = self._day_locks.setdefault(key, _DayLock())
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._day_locks[key]


def _food_row(item: FoodItem) -> dict[str, object]:
    return {"food_id": item.id, "name": item.name, "item": item.model_dump(mode="json")}


def _decode_food_rows(rows: list[dict[str, object]]) -> list[FoodItem]:
    foods = []
    for row in rows:
        try:
            foods.append(FoodItem.model_validate(row.get("item")))
        except ValidationError:
            _logger.warning("Skipping undecodable food row %s", row.get("food_id"))
    return foods


def _stamp(item: FoodItem) -> FoodItem:
    if item.timestamp is not None:
        return item
    return item.model_copy(update={"timestamp": datetime.now(tz=UTC)})


def _append_items(
    base: DailyAggregate, meal_name: str, items: list[FoodItem]
) -> DailyAggregate:
    meals = list(base.meals)
    for index, meal in enumerate(meals):
        if meal.name == meal_name:
            meals[index] = meal.model_copy(
                update={"food_items": [*meal.food_items, *items]}
            )
            break
    else:
        meals.append(Meal(name=meal_name, food_items=items))
    return base.model_copy(update={"meals": meals})
