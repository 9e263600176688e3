"""Immutable report structures produced by the analytics engine."""

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum


@dataclass(frozen=True)
class DateValuePoint:
    """Single chart point."""

    day: date
    value: float


@dataclass(frozen=True)
class ReportSummary:
    """Averages over the valid days of a window."""

    timeframe: str
    average_calories: float
    average_protein: float
    average_carbs: float
    average_fats: float
    days_logged: int


@dataclass(frozen=True)
class TrendSeries:
    """Per-day values for each tracked quantity, ascending by day."""

    calories: list[DateValuePoint] = field(default_factory=list)
    protein: list[DateValuePoint] = field(default_factory=list)
    carbs: list[DateValuePoint] = field(default_factory=list)
    fats: list[DateValuePoint] = field(default_factory=list)


@dataclass(frozen=True)
class MicronutrientAverage:
    """Average intake of one nutrient compared to its goal."""

    name: str
    unit: str
    average_value: float
    goal_value: float

    @property
    def percentage_met(self) -> float:
        if self.goal_value <= 0:
            return 0.0
        return self.average_value / self.goal_value * 100

    @property
    def progress(self) -> float:
        if self.goal_value <= 0:
            return 0.0
        return max(0.0, min(1.0, self.average_value / self.goal_value))


@dataclass(frozen=True)
class MealDistribution:
    """Average calories contributed by one meal name."""

    meal_name: str
    average_calories: float


@dataclass(frozen=True)
class NightSleep:
    """Sleep totals for one night, in seconds."""

    day: date
    time_in_bed: float
    time_asleep: float
    time_core: float
    time_deep: float
    time_rem: float
    time_awake: float


@dataclass(frozen=True)
class SleepReport:
    """Averages and bedtime consistency across counted nights."""

    nights: list[NightSleep]
    average_time_asleep: float
    average_time_in_bed: float
    average_time_deep: float
    average_time_rem: float
    average_time_awake: float
    bedtime_std_dev_minutes: float | None
    consistency_score: int
    consistency_message: str
    average_sleep_score: int
    last_night_sleep_score: int | None


@dataclass(frozen=True)
class MealScore:
    """Composite grade for one day of eating."""

    day: date
    grade: str
    summary: str
    calorie_score: float
    macro_score: float
    quality_score: float
    overall_score: float
    actual_calories: float
    goal_calories: float
    actual_protein: float
    goal_protein: float
    actual_carbs: float
    goal_carbs: float
    actual_fats: float
    goal_fats: float
    actual_fiber: float
    goal_fiber: float
    actual_saturated_fat: float
    actual_sodium: float
    goal_sodium: float


@dataclass(frozen=True)
class WorkoutReport:
    """Exercise totals across a window."""

    total_workouts: int
    total_calories_burned: float
    most_frequent_workout: str


@dataclass(frozen=True)
class ReportInsight:
    """Short observation derived from the window."""

    title: str
    message: str
    category: str


@dataclass(frozen=True)
class WellnessScore:
    """Blend of nutrition, sleep and recovery."""

    overall_score: int
    nutrition_score: int
    sleep_score: int
    recovery_score: int
    summary: str


@dataclass(frozen=True)
class NutritionReport:
    """Everything derived from one historical window."""

    summary: ReportSummary
    trends: TrendSeries
    micronutrients: list[MicronutrientAverage]
    meal_distribution: list[MealDistribution]
    workout: WorkoutReport | None
    insight: ReportInsight | None
    sleep: SleepReport | None = None


class ReportStatus(StrEnum):
    """Display state of a report request."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    INSUFFICIENT_DATA = "insufficient_data"
    ERROR = "error"


@dataclass(frozen=True)
class ReportState:
    """What the presentation layer should currently show."""

    status: ReportStatus
    report: NutritionReport | None = None
    message: str | None = None
