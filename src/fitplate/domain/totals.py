"""Pure aggregation over a daily log.

Every function recomputes from the meals and exercises on each call and
treats a missing optional nutrient as zero.
"""

from dataclasses import dataclass

from fitplate.domain.goals import GoalSettings
from fitplate.domain.logs import HEALTHKIT_SOURCE, MANUAL_SOURCE, DailyAggregate

MICRONUTRIENT_FIELDS = (
    "calcium",
    "iron",
    "potassium",
    "sodium",
    "vitamin_a",
    "vitamin_c",
    "vitamin_d",
    "vitamin_b12",
    "folate",
    "fiber",
    "magnesium",
    "phosphorus",
    "zinc",
    "copper",
    "manganese",
    "selenium",
    "vitamin_b1",
    "vitamin_b2",
    "vitamin_b3",
    "vitamin_b5",
    "vitamin_b6",
    "vitamin_e",
    "vitamin_k",
)


@dataclass(frozen=True)
class MacroTotals:
    """Summed macronutrients in grams."""

    protein: float
    carbs: float
    fats: float


@dataclass(frozen=True)
class WidgetSnapshot:
    """Latest totals against goals for companion displays."""

    user_id: str
    day: str
    calories: float
    calorie_goal: float
    protein: float
    protein_goal: float
    carbs: float
    carbs_goal: float
    fats: float
    fat_goal: float
    water_ounces: float
    water_goal_ounces: float


def total_calories(aggregate: DailyAggregate) -> float:
    """Return calories summed over every food item."""
    return sum(item.calories for item in aggregate.food_items)


def total_macros(aggregate: DailyAggregate) -> MacroTotals:
    """Return protein, carbs and fats summed over every food item."""
    items = aggregate.food_items
    return MacroTotals(
        protein=sum(item.protein for item in items),
        carbs=sum(item.carbs for item in items),
        fats=sum(item.fats for item in items),
    )


def total_micronutrients(aggregate: DailyAggregate) -> dict[str, float]:
    """Return every tracked micronutrient keyed by field name."""
    totals = dict.fromkeys(MICRONUTRIENT_FIELDS, 0.0)
    for item in aggregate.food_items:
        for name in MICRONUTRIENT_FIELDS:
            totals[name] += getattr(item, name) or 0.0
    return totals


def total_saturated_fat(aggregate: DailyAggregate) -> float:
    return sum(item.saturated_fat or 0.0 for item in aggregate.food_items)


def total_polyunsaturated_fat(aggregate: DailyAggregate) -> float:
    return sum(item.polyunsaturated_fat or 0.0 for item in aggregate.food_items)


def total_monounsaturated_fat(aggregate: DailyAggregate) -> float:
    return sum(item.monounsaturated_fat or 0.0 for item in aggregate.food_items)


def total_calories_burned(aggregate: DailyAggregate, source: str) -> float:
    """Return calories burned by exercises carrying the given source tag."""
    return sum(
        exercise.calories_burned
        for exercise in aggregate.exercises or []
        if exercise.source == source
    )


def total_calories_burned_manual(aggregate: DailyAggregate) -> float:
    return total_calories_burned(aggregate, MANUAL_SOURCE)


def total_calories_burned_external(aggregate: DailyAggregate) -> float:
    return total_calories_burned(aggregate, HEALTHKIT_SOURCE)


def widget_snapshot(aggregate: DailyAggregate, goals: GoalSettings) -> WidgetSnapshot:
    """Build the totals-vs-goals payload exported after each change."""
    macros = total_macros(aggregate)
    water = aggregate.water_tracker
    return WidgetSnapshot(
        user_id=aggregate.user_id,
        day=aggregate.document_id,
        calories=total_calories(aggregate),
        calorie_goal=goals.calories or 0.0,
        protein=macros.protein,
        protein_goal=goals.protein,
        carbs=macros.carbs,
        carbs_goal=goals.carbs,
        fats=macros.fats,
        fat_goal=goals.fats,
        water_ounces=water.total_ounces if water else 0.0,
        water_goal_ounces=water.goal_ounces if water else goals.water_ounces,
    )
