"""Daily log endpoints: observe a day and apply mutations."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from fitplate.api.models import (  # noqa: TC001
    ExerciseRequest,
    ExternalExercisesRequest,
    FoodLogRequest,
    JournalRequest,
    MealLogRequest,
    WaterRequest,
)
from fitplate.domain.logs import DailyAggregate, FoodItem, JournalEntry, LoggedExercise

if TYPE_CHECKING:
    from fitplate.containers import AppContainer
    from fitplate.services.daily_logs import DailyLogService

router = APIRouter(prefix="/users/{user_id}/logs/{day}", tags=["logs"])


def _service(request: Request) -> DailyLogService:
    container: AppContainer = request.app.state.container
    return container.daily_log_service


def _respond(aggregate: DailyAggregate | None) -> dict[str, object]:
    if aggregate is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return aggregate.model_dump(mode="json")


def _exercise(day: date, body: ExerciseRequest) -> LoggedExercise:
    return LoggedExercise(date=day, **body.model_dump())


@router.get("")
async def observe_day(user_id: str, day: date, request: Request) -> dict[str, object]:
    """Subscribe to a day and return its current log."""
    container: AppContainer = request.app.state.container
    return _respond(await container.log_store.observe(user_id, day))


@router.post("/foods")
async def log_food(
    user_id: str, day: date, body: FoodLogRequest, request: Request
) -> dict[str, object]:
    return _respond(
        await _service(request).log_food(
            user_id, day, body.item, body.meal_name, body.source
        )
    )


@router.post("/meals")
async def add_meal(
    user_id: str, day: date, body: MealLogRequest, request: Request
) -> dict[str, object]:
    return _respond(
        await _service(request).add_meal(
            user_id, day, body.meal_name, body.items, body.source
        )
    )


@router.put("/foods/{item_id}")
async def update_food(
    user_id: str, day: date, item_id: str, body: FoodItem, request: Request
) -> dict[str, object]:
    """Replace a logged food; the id in the path wins over the body."""
    item = body.model_copy(update={"id": item_id})
    return _respond(await _service(request).update_food(user_id, day, item))


@router.delete("/foods/{item_id}")
async def delete_food(
    user_id: str, day: date, item_id: str, request: Request
) -> dict[str, object]:
    return _respond(await _service(request).delete_food(user_id, day, item_id))


@router.post("/exercises")
async def add_exercise(
    user_id: str, day: date, body: ExerciseRequest, request: Request
) -> dict[str, object]:
    exercise = _exercise(day, body)
    return _respond(await _service(request).add_exercise(user_id, day, exercise))


@router.put("/exercises/external")
async def replace_external_exercises(
    user_id: str, day: date, body: ExternalExercisesRequest, request: Request
) -> dict[str, object]:
    """Replace every exercise previously imported from the body's source."""
    exercises = [_exercise(day, exercise) for exercise in body.exercises]
    return _respond(
        await _service(request).replace_external_exercises(
            user_id, day, exercises, source=body.source
        )
    )


@router.delete("/exercises/{exercise_id}")
async def delete_exercise(
    user_id: str, day: date, exercise_id: str, request: Request
) -> dict[str, object]:
    return _respond(await _service(request).delete_exercise(user_id, day, exercise_id))


@router.post("/water")
async def add_water(
    user_id: str, day: date, body: WaterRequest, request: Request
) -> dict[str, object]:
    return _respond(
        await _service(request).add_water(user_id, day, body.ounces, body.goal_ounces)
    )


@router.post("/water/remove")
async def remove_water(
    user_id: str, day: date, body: WaterRequest, request: Request
) -> dict[str, object]:
    return _respond(await _service(request).remove_water(user_id, day, body.ounces))


@router.post("/journal")
async def add_journal_entry(
    user_id: str, day: date, body: JournalRequest, request: Request
) -> dict[str, object]:
    entry = JournalEntry(
        date=datetime.now(tz=UTC), text=body.text, category=body.category
    )
    return _respond(await _service(request).add_journal_entry(user_id, day, entry))


@router.delete("/journal/{entry_id}")
async def delete_journal_entry(
    user_id: str, day: date, entry_id: str, request: Request
) -> dict[str, object]:
    """Remove a journal entry; the stored entry is needed for array removal."""
    service = _service(request)
    current = await service.get_log(user_id, day)
    entry = next((e for e in current.journal_entries or [] if e.id == entry_id), None)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return _respond(await service.delete_journal_entry(user_id, day, entry))
