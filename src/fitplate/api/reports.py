"""Report, meal score and recommendation endpoints."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date  # noqa: TC003
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request

from fitplate.api.models import ReportRequest, WellnessRequest  # noqa: TC001

if TYPE_CHECKING:
    from fitplate.containers import AppContainer

router = APIRouter(prefix="/users/{user_id}", tags=["reports"])


@router.post("/reports")
async def build_report(
    user_id: str, body: ReportRequest, request: Request
) -> dict[str, object]:
    """Build a report for a window of days, cancelling the user's previous one."""
    container: AppContainer = request.app.state.container
    session = container.report_sessions.for_user(user_id)
    state = await session.request(
        body.start,
        body.end,
        body.timeframe,
        [sample.to_sample() for sample in body.sleep_samples],
    )
    # None means a newer request for the same user superseded this one.
    return asdict(state if state is not None else session.state)


@router.post("/meal-scores/{day}")
async def score_day(user_id: str, day: date, request: Request) -> dict[str, object]:
    """Compute and store the meal score for a day."""
    container: AppContainer = request.app.state.container
    score = await container.report_service.score_day(user_id, day)
    return {"score": asdict(score) if score else None}


@router.get("/meal-scores")
async def grade_history(user_id: str, request: Request) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    points = await container.report_service.grade_history(user_id)
    return {"history": [asdict(point) for point in points]}


@router.get("/recommendations")
async def recommend_foods(
    user_id: str, meal_name: str, today: date, request: Request
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    foods = await container.report_service.recommend_foods(user_id, meal_name, today)
    return {"foods": [food.model_dump(mode="json") for food in foods]}


@router.post("/wellness")
async def wellness(
    user_id: str, body: WellnessRequest, request: Request
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    score = await container.report_service.wellness(
        user_id,
        body.day,
        [sample.to_sample() for sample in body.sleep_samples],
        resting_heart_rate=body.resting_heart_rate,
        hrv=body.hrv,
    )
    return asdict(score)
