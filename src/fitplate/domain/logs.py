"""Domain models for the per-day log document."""

from datetime import date, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from fitplate.domain.days import day_key
from fitplate.domain.goals import DEFAULT_WATER_GOAL_OZ

MANUAL_SOURCE = "manual"
HEALTHKIT_SOURCE = "HealthKit"


def _new_id() -> str:
    return str(uuid4()).upper()


class FoodItem(BaseModel):
    """Single logged food with macros and optional micronutrients."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fats: float = 0.0
    serving_size: str = "1 serving"
    serving_weight: float = 0.0
    timestamp: datetime | None = None
    saturated_fat: float | None = None
    polyunsaturated_fat: float | None = None
    monounsaturated_fat: float | None = None
    fiber: float | None = None
    calcium: float | None = None
    iron: float | None = None
    potassium: float | None = None
    sodium: float | None = None
    vitamin_a: float | None = None
    vitamin_c: float | None = None
    vitamin_d: float | None = None
    vitamin_b12: float | None = None
    folate: float | None = None
    magnesium: float | None = None
    phosphorus: float | None = None
    zinc: float | None = None
    copper: float | None = None
    manganese: float | None = None
    selenium: float | None = None
    vitamin_b1: float | None = None
    vitamin_b2: float | None = None
    vitamin_b3: float | None = None
    vitamin_b5: float | None = None
    vitamin_b6: float | None = None
    vitamin_e: float | None = None
    vitamin_k: float | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FoodItem):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class Meal(BaseModel):
    """A named bucket of food items, e.g. Breakfast."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str
    food_items: list[FoodItem] = Field(default_factory=list)


class WaterTracker(BaseModel):
    """Water intake for one day."""

    model_config = ConfigDict(frozen=True)

    total_ounces: float = 0.0
    goal_ounces: float = DEFAULT_WATER_GOAL_OZ
    date: date


class LoggedExercise(BaseModel):
    """Exercise entry, either manual or imported from a wearable."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str
    duration_minutes: int | None = None
    calories_burned: float = 0.0
    date: date
    source: str = MANUAL_SOURCE
    workout_id: str | None = None
    session_id: str | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LoggedExercise):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class JournalEntry(BaseModel):
    """Free-form journal note for a day."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    date: datetime
    text: str
    category: str = "other"


class DailyAggregate(BaseModel):
    """Everything a user logged on one calendar day."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    day: date
    meals: list[Meal] = Field(default_factory=list)
    water_tracker: WaterTracker | None = None
    exercises: list[LoggedExercise] | None = None
    journal_entries: list[JournalEntry] | None = None
    total_calories_override: float | None = None

    @classmethod
    def empty(cls, user_id: str, day: date) -> "DailyAggregate":
        """Return the default aggregate for a day with nothing logged."""
        return cls(user_id=user_id, day=day, meals=[], journal_entries=[])

    @property
    def document_id(self) -> str:
        """Return the remote document key for this aggregate."""
        return day_key(self.day)

    @property
    def food_items(self) -> list[FoodItem]:
        """Return all food items across meals in order."""
        return [item for meal in self.meals for item in meal.food_items]

    def is_valid(self) -> bool:
        """Return True when the day has at least one food item or exercise."""
        return bool(self.food_items) or bool(self.exercises)
