"""Food library endpoints: recently logged foods and saved custom foods."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from fitplate.domain.logs import FoodItem

if TYPE_CHECKING:
    from fitplate.containers import AppContainer
    from fitplate.services.daily_logs import DailyLogService

router = APIRouter(prefix="/users/{user_id}/foods", tags=["foods"])


def _service(request: Request) -> DailyLogService:
    container: AppContainer = request.app.state.container
    return container.daily_log_service


def _dump(items: list[FoodItem]) -> list[dict[str, object]]:
    return [item.model_dump(mode="json") for item in items]


@router.get("/recent")
async def recent_foods(user_id: str, request: Request) -> list[dict[str, object]]:
    """Return the most recently logged foods, newest first."""
    return _dump(await _service(request).recent_foods(user_id))


@router.get("/custom")
async def custom_foods(user_id: str, request: Request) -> list[dict[str, object]]:
    return _dump(await _service(request).custom_foods(user_id))


@router.put("/custom")
async def save_custom_food(
    user_id: str, body: FoodItem, request: Request
) -> dict[str, object]:
    if not await _service(request).save_custom_food(user_id, body):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY)
    return body.model_dump(mode="json")


@router.delete("/custom/{food_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_custom_food(user_id: str, food_id: str, request: Request) -> None:
    if not await _service(request).delete_custom_food(user_id, food_id):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY)
