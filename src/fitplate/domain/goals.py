"""Daily nutrition targets."""

from dataclasses import dataclass

DEFAULT_FIBER_GOAL_G = 25.0
DEFAULT_SODIUM_GOAL_MG = 2300.0
DEFAULT_IRON_GOAL_MG = 18.0
DEFAULT_CALCIUM_GOAL_MG = 1000.0
DEFAULT_WATER_GOAL_OZ = 64.0


@dataclass(frozen=True)
class GoalSettings:
    """Daily targets used as denominators in analytics."""

    calories: float | None = None
    protein: float = 0.0
    carbs: float = 0.0
    fats: float = 0.0
    fiber: float = DEFAULT_FIBER_GOAL_G
    calcium: float | None = None
    iron: float | None = None
    potassium: float | None = None
    sodium: float | None = None
    vitamin_a: float | None = None
    vitamin_c: float | None = None
    vitamin_d: float | None = None
    water_ounces: float = DEFAULT_WATER_GOAL_OZ
