"""Pydantic request bodies for the HTTP API."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from fitplate.domain.logs import HEALTHKIT_SOURCE, MANUAL_SOURCE, FoodItem
from fitplate.domain.sleep import SleepSample, SleepStage


class FoodLogRequest(BaseModel):
    """Food item to append, optionally under an explicit meal."""

    item: FoodItem
    meal_name: str | None = None
    source: str = "unknown"


class MealLogRequest(BaseModel):
    """Several food items logged under one meal name."""

    meal_name: str
    items: list[FoodItem] = Field(default_factory=list)
    source: str = "recipe"


class ExerciseRequest(BaseModel):
    """Exercise to log; the day comes from the URL."""

    name: str
    duration_minutes: int | None = None
    calories_burned: float = 0.0
    source: str = MANUAL_SOURCE
    workout_id: str | None = None
    session_id: str | None = None


class ExternalExercisesRequest(BaseModel):
    """Full set of imported workouts replacing a source's previous import."""

    source: str = HEALTHKIT_SOURCE
    exercises: list[ExerciseRequest] = Field(default_factory=list)


class WaterRequest(BaseModel):
    ounces: float
    goal_ounces: float | None = None


class JournalRequest(BaseModel):
    text: str
    category: str = "other"


class SleepSampleRequest(BaseModel):
    start: datetime
    end: datetime
    stage: SleepStage

    def to_sample(self) -> SleepSample:
        return SleepSample(start=self.start, end=self.end, stage=self.stage)


class ReportRequest(BaseModel):
    """Window to report on, half-open: start <= day < end."""

    start: date
    end: date
    timeframe: str = "Custom"
    sleep_samples: list[SleepSampleRequest] = Field(default_factory=list)


class WellnessRequest(BaseModel):
    day: date
    sleep_samples: list[SleepSampleRequest] = Field(default_factory=list)
    resting_heart_rate: float | None = None
    hrv: float | None = None
