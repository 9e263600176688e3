"""Pure analytics over a window of daily logs."""

from collections import Counter, defaultdict
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from statistics import pstdev
from zoneinfo import ZoneInfo

from fitplate.domain.goals import (
    DEFAULT_CALCIUM_GOAL_MG,
    DEFAULT_FIBER_GOAL_G,
    DEFAULT_IRON_GOAL_MG,
    DEFAULT_SODIUM_GOAL_MG,
    GoalSettings,
)
from fitplate.domain.logs import DailyAggregate, FoodItem
from fitplate.domain.reports import (
    DateValuePoint,
    MealDistribution,
    MealScore,
    MicronutrientAverage,
    NightSleep,
    NutritionReport,
    ReportInsight,
    ReportSummary,
    SleepReport,
    TrendSeries,
    WellnessScore,
    WorkoutReport,
)
from fitplate.domain.sleep import ASLEEP_STAGES, SleepSample, SleepStage
from fitplate.domain.totals import (
    total_calories,
    total_macros,
    total_micronutrients,
    total_saturated_fat,
)

GRADE_VALUES = {"A+": 100.0, "A-": 90.0, "B": 80.0, "C": 70.0, "D": 60.0}
RECOMMENDATION_LIMIT = 10
MINUTES_PER_DAY = 24 * 60
NOON_HOUR = 12
MIN_CONSISTENCY_NIGHTS = 2
SINGLE_NIGHT_CONSISTENCY = 75
SINGLE_NIGHT_MESSAGE = "Need 2+ nights for consistency analysis."
_NIGHT_TOTALS = ("time_asleep", "time_in_bed", "time_deep", "time_rem", "time_awake")
_RHR_BANDS = ((50, 50), (55, 45), (60, 40), (65, 35), (70, 30), (75, 25), (80, 20))
_HRV_BANDS = ((70, 50), (50, 40), (30, 30), (20, 20))

# (display name, unit, totals key, goal attribute)
_MICRONUTRIENTS = (
    ("Fiber", "g", "fiber", "fiber"),
    ("Calcium", "mg", "calcium", "calcium"),
    ("Iron", "mg", "iron", "iron"),
    ("Potassium", "mg", "potassium", "potassium"),
    ("Sodium", "mg", "sodium", "sodium"),
    ("Vitamin A", "mcg", "vitamin_a", "vitamin_a"),
    ("Vitamin C", "mg", "vitamin_c", "vitamin_c"),
    ("Vitamin D", "mcg", "vitamin_d", "vitamin_d"),
)


def valid_days(window: Iterable[DailyAggregate]) -> list[DailyAggregate]:
    """Return the days with food or exercise, ascending by day."""
    return sorted(
        (aggregate for aggregate in window if aggregate.is_valid()),
        key=lambda aggregate: aggregate.day,
    )


def build_report(
    window: Iterable[DailyAggregate],
    goals: GoalSettings,
    timeframe: str,
    sleep: SleepReport | None = None,
) -> NutritionReport:
    """Build every window-level section of a report."""
    days = valid_days(window)
    return NutritionReport(
        summary=summarize(days, timeframe),
        trends=trend_series(days),
        micronutrients=micronutrient_averages(days, goals),
        meal_distribution=meal_distribution(days),
        workout=workout_report(days),
        insight=highest_calorie_insight(days),
        sleep=sleep,
    )


def summarize(days: list[DailyAggregate], timeframe: str) -> ReportSummary:
    """Average calories and macros over the valid days only."""
    valid = valid_days(days)
    count = len(valid)
    if count == 0:
        return ReportSummary(timeframe, 0.0, 0.0, 0.0, 0.0, 0)
    macros = [total_macros(aggregate) for aggregate in valid]
    return ReportSummary(
        timeframe=timeframe,
        average_calories=sum(total_calories(a) for a in valid) / count,
        average_protein=sum(m.protein for m in macros) / count,
        average_carbs=sum(m.carbs for m in macros) / count,
        average_fats=sum(m.fats for m in macros) / count,
        days_logged=count,
    )


def trend_series(days: list[DailyAggregate]) -> TrendSeries:
    """Emit one point per valid day for each tracked quantity."""
    series = TrendSeries()
    for aggregate in valid_days(days):
        macros = total_macros(aggregate)
        series.calories.append(DateValuePoint(aggregate.day, total_calories(aggregate)))
        series.protein.append(DateValuePoint(aggregate.day, macros.protein))
        series.carbs.append(DateValuePoint(aggregate.day, macros.carbs))
        series.fats.append(DateValuePoint(aggregate.day, macros.fats))
    return series


def micronutrient_averages(
    days: list[DailyAggregate], goals: GoalSettings
) -> list[MicronutrientAverage]:
    """Compare average nutrient intake with goals, skipping unset goals."""
    valid = valid_days(days)
    if not valid:
        return []
    totals: dict[str, float] = defaultdict(float)
    for aggregate in valid:
        for key, value in total_micronutrients(aggregate).items():
            totals[key] += value

    averages = []
    for name, unit, key, goal_attr in _MICRONUTRIENTS:
        goal = _micronutrient_goal(goals, goal_attr)
        if goal <= 0:
            continue
        averages.append(
            MicronutrientAverage(
                name=name,
                unit=unit,
                average_value=totals[key] / len(valid),
                goal_value=goal,
            )
        )
    return averages


def _micronutrient_goal(goals: GoalSettings, attr: str) -> float:
    value = getattr(goals, attr)
    if value is not None:
        return value
    if attr == "sodium":
        return DEFAULT_SODIUM_GOAL_MG
    return 0.0


def meal_distribution(days: list[DailyAggregate]) -> list[MealDistribution]:
    """Average calories per meal name, sorted by name."""
    valid = valid_days(days)
    per_meal: dict[str, float] = defaultdict(float)
    for aggregate in valid:
        for meal in aggregate.meals:
            per_meal[meal.name] += sum(item.calories for item in meal.food_items)
    if sum(per_meal.values()) <= 0:
        return []
    return [
        MealDistribution(meal_name=name, average_calories=calories / len(valid))
        for name, calories in sorted(per_meal.items())
    ]


def workout_report(days: list[DailyAggregate]) -> WorkoutReport | None:
    exercises = [e for aggregate in valid_days(days) for e in aggregate.exercises or []]
    if not exercises:
        return None
    most_common = Counter(e.name for e in exercises).most_common(1)
    return WorkoutReport(
        total_workouts=len(exercises),
        total_calories_burned=sum(e.calories_burned for e in exercises),
        most_frequent_workout=most_common[0][0],
    )


def highest_calorie_insight(days: list[DailyAggregate]) -> ReportInsight | None:
    valid = valid_days(days)
    if not valid:
        return None
    top = max(valid, key=total_calories)
    when = f"{top.day:%b} {top.day.day}, {top.day.year}"
    return ReportInsight(
        title="Highest Calorie Day",
        message=(
            f"Your highest calorie day was {when}, "
            f"with {total_calories(top):.0f} calories."
        ),
        category="smart_suggestion",
    )


def meal_score(aggregate: DailyAggregate, goals: GoalSettings) -> MealScore | None:
    """Grade one day of eating, or return None without a calorie goal.

    The final score weighs calorie adherence at 40%, macro balance at 30%
    and food quality (fiber, sodium, iron, calcium) at 30%.
    """
    calorie_goal = goals.calories
    if calorie_goal is None or calorie_goal <= 0:
        return None

    calories = total_calories(aggregate)
    calorie_score = _clamp(100 - abs(calories - calorie_goal) / calorie_goal * 200)

    macros = total_macros(aggregate)
    diffs = (
        _relative_diff(macros.protein, goals.protein),
        _relative_diff(macros.carbs, goals.carbs),
        _relative_diff(macros.fats, goals.fats),
    )
    macro_score = _clamp(100 - sum(diffs) / len(diffs) * 100)

    micros = total_micronutrients(aggregate)
    sodium_goal = goals.sodium or DEFAULT_SODIUM_GOAL_MG
    quality = 50.0
    quality += min(25.0, micros["fiber"] / DEFAULT_FIBER_GOAL_G * 25)
    if micros["sodium"] > sodium_goal:
        quality -= min(25.0, (micros["sodium"] - sodium_goal) / sodium_goal * 25)
    if micros["iron"] >= (goals.iron or DEFAULT_IRON_GOAL_MG):
        quality += 12.5
    if micros["calcium"] >= (goals.calcium or DEFAULT_CALCIUM_GOAL_MG):
        quality += 12.5
    quality_score = _clamp(quality)

    overall = calorie_score * 0.4 + macro_score * 0.3 + quality_score * 0.3
    return MealScore(
        day=aggregate.day,
        grade=grade_for(overall),
        summary=_score_summary(overall),
        calorie_score=calorie_score,
        macro_score=macro_score,
        quality_score=quality_score,
        overall_score=overall,
        actual_calories=calories,
        goal_calories=calorie_goal,
        actual_protein=macros.protein,
        goal_protein=goals.protein,
        actual_carbs=macros.carbs,
        goal_carbs=goals.carbs,
        actual_fats=macros.fats,
        goal_fats=goals.fats,
        actual_fiber=micros["fiber"],
        goal_fiber=DEFAULT_FIBER_GOAL_G,
        actual_saturated_fat=total_saturated_fat(aggregate),
        actual_sodium=micros["sodium"],
        goal_sodium=sodium_goal,
    )


def grade_for(score: float) -> str:
    if score >= 90:  # noqa: PLR2004
        return "A+"
    if score >= 80:  # noqa: PLR2004
        return "A-"
    if score >= 70:  # noqa: PLR2004
        return "B"
    if score >= 60:  # noqa: PLR2004
        return "C"
    return "D"


def grade_value(grade: str | None) -> float:
    """Map a stored letter grade back to a chartable number."""
    return GRADE_VALUES.get(grade or "", 0.0)


def _score_summary(score: float) -> str:
    if score >= 80:  # noqa: PLR2004
        return "Excellent work!"
    if score >= 60:  # noqa: PLR2004
        return "Good effort!"
    return "Focus on consistency."


def _relative_diff(actual: float, goal: float) -> float:
    if goal <= 0:
        return 0.0
    return abs(actual - goal) / goal


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def sleep_report(
    samples: Iterable[SleepSample], timezone_name: str = "UTC"
) -> SleepReport | None:
    """Summarize nights with asleep time, or return None when there are none."""
    tz = ZoneInfo(timezone_name)
    grouped: dict[date, list[SleepSample]] = defaultdict(list)
    for sample in samples:
        grouped[night_of(_local(sample.start, tz))].append(sample)

    nights: list[NightSleep] = []
    bedtimes: list[float] = []
    for day in sorted(grouped):
        night = _night(day, grouped[day])
        if night.time_asleep <= 0:
            continue
        nights.append(night)
        first_start = _local(min(s.start for s in grouped[day]), tz)
        bedtimes.append(bedtime_minutes(first_start))
    if not nights:
        return None

    std_dev: float | None = None
    if len(bedtimes) < MIN_CONSISTENCY_NIGHTS:
        consistency = SINGLE_NIGHT_CONSISTENCY
        message = SINGLE_NIGHT_MESSAGE
    else:
        std_dev = pstdev(bedtimes)
        consistency = consistency_score(std_dev)
        message = consistency_message(std_dev)
    count = len(nights)
    average = {
        name: sum(getattr(night, name) for night in nights) / count
        for name in _NIGHT_TOTALS
    }
    last = nights[-1]
    return SleepReport(
        nights=nights,
        average_time_asleep=average["time_asleep"],
        average_time_in_bed=average["time_in_bed"],
        average_time_deep=average["time_deep"],
        average_time_rem=average["time_rem"],
        average_time_awake=average["time_awake"],
        bedtime_std_dev_minutes=std_dev,
        consistency_score=consistency,
        consistency_message=message,
        average_sleep_score=sleep_score(
            average["time_asleep"],
            average["time_deep"],
            average["time_rem"],
            average["time_awake"],
            consistency,
        ),
        last_night_sleep_score=sleep_score(
            last.time_asleep,
            last.time_deep,
            last.time_rem,
            last.time_awake,
            consistency,
        ),
    )


def night_of(start: datetime) -> date:
    """Return the evening a sample belongs to; mornings join the night before."""
    return (start - timedelta(hours=NOON_HOUR)).date()


def _local(value: datetime, tz: ZoneInfo) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(tz)


def _night(day: date, samples: list[SleepSample]) -> NightSleep:
    seconds: dict[SleepStage, float] = defaultdict(float)
    for sample in samples:
        seconds[sample.stage] += sample.seconds
    asleep = sum(seconds[stage] for stage in ASLEEP_STAGES)
    in_bed = seconds[SleepStage.IN_BED] + seconds[SleepStage.AWAKE]
    if not seconds[SleepStage.IN_BED]:
        # Without in-bed samples the night spans first start to last end.
        first_start = min(sample.start for sample in samples)
        last_end = max(sample.end for sample in samples)
        in_bed = max(in_bed, (last_end - first_start).total_seconds(), asleep)
    return NightSleep(
        day=day,
        time_in_bed=in_bed,
        time_asleep=asleep,
        time_core=seconds[SleepStage.ASLEEP_CORE],
        time_deep=seconds[SleepStage.ASLEEP_DEEP],
        time_rem=seconds[SleepStage.ASLEEP_REM],
        time_awake=seconds[SleepStage.AWAKE],
    )


def bedtime_minutes(value: datetime) -> float:
    """Minutes since midnight, counting times before noon as the next day."""
    minutes = value.hour * 60 + value.minute
    if value.hour < NOON_HOUR:
        minutes += MINUTES_PER_DAY
    return float(minutes)


def consistency_message(std_dev_minutes: float) -> str:
    if std_dev_minutes <= 30:  # noqa: PLR2004
        return "Your bedtime is very consistent."
    if std_dev_minutes <= 60:  # noqa: PLR2004
        return "Your bedtime is fairly consistent."
    return "Your bedtime varies by more than an hour, a more regular schedule can help."


def consistency_score(std_dev_minutes: float) -> int:
    if std_dev_minutes <= 15:  # noqa: PLR2004
        return 100
    if std_dev_minutes <= 30:  # noqa: PLR2004
        return 85
    if std_dev_minutes <= 60:  # noqa: PLR2004
        return 65
    return 40


def sleep_score(  # noqa: PLR0913
    asleep: float, deep: float, rem: float, awake: float, consistency: int
) -> int:
    """Score a night (or an average night) from 0 to 100.

    Duration contributes up to 40 points, deep and REM share up to 20 each,
    bedtime consistency adds up to 20 and awake time above 15% costs up to 10.
    """
    hours = asleep / 3600
    if hours <= 0:
        return 0

    if 7 <= hours <= 9:  # noqa: PLR2004
        duration = 40.0
    elif hours > 9:  # noqa: PLR2004
        duration = max(20.0, 40 - (hours - 9) * 10)
    elif hours >= 6:  # noqa: PLR2004
        duration = 20 + (hours - 6) * 20
    else:
        duration = hours * 3.33
    duration = _clamp(duration, high=40.0)

    deep_pct = deep / asleep * 100
    if 13 <= deep_pct <= 23:  # noqa: PLR2004
        deep_score = 20.0
    elif deep_pct > 23:  # noqa: PLR2004
        deep_score = max(10.0, 20 - (deep_pct - 23))
    else:
        deep_score = deep_pct * 20 / 13
    deep_score = _clamp(deep_score, high=20.0)

    rem_pct = rem / asleep * 100
    if 20 <= rem_pct <= 25:  # noqa: PLR2004
        rem_score = 20.0
    elif rem_pct > 25:  # noqa: PLR2004
        rem_score = max(10.0, 20 - (rem_pct - 25))
    else:
        rem_score = rem_pct
    rem_score = _clamp(rem_score, high=20.0)

    awake_pct = awake / max(asleep, asleep + awake) * 100
    penalty = 0.0
    if awake_pct > 15:  # noqa: PLR2004
        penalty = min(10.0, (awake_pct - 15) * 0.67)

    total = duration + deep_score + rem_score + consistency * 0.2 - penalty
    return int(_clamp(round(total)))


def recovery_score(resting_heart_rate: float | None, hrv: float | None) -> int:
    """Score recovery from resting heart rate and heart rate variability."""
    if resting_heart_rate is None:
        heart = 25
    else:
        heart = next(
            (points for limit, points in _RHR_BANDS if resting_heart_rate < limit), 10
        )
    if hrv is None:
        variability = 25
    else:
        variability = next((points for floor, points in _HRV_BANDS if hrv >= floor), 10)
    return min(100, heart + variability)


def wellness_score(
    meal: MealScore | None,
    last_night_sleep_score: int | None,
    resting_heart_rate: float | None = None,
    hrv: float | None = None,
) -> WellnessScore:
    """Blend nutrition (40%), sleep (30%) and recovery (30%)."""
    nutrition = int(meal.overall_score) if meal else 0
    sleep = last_night_sleep_score or 0
    recovery = recovery_score(resting_heart_rate, hrv)
    overall = int(nutrition * 0.4 + sleep * 0.3 + recovery * 0.3)
    return WellnessScore(
        overall_score=overall,
        nutrition_score=nutrition,
        sleep_score=sleep,
        recovery_score=recovery,
        summary=_wellness_summary(overall),
    )


def _wellness_summary(score: int) -> str:
    if score >= 90:  # noqa: PLR2004
        return "Primed for a great day!"
    if score >= 80:  # noqa: PLR2004
        return "Feeling strong and ready."
    if score >= 70:  # noqa: PLR2004
        return "Solid foundation for today."
    if score >= 60:  # noqa: PLR2004
        return "A good day to focus on recovery."
    return "Prioritize rest and nutrition."


def recommend_foods(
    window: Iterable[DailyAggregate],
    meal_name: str,
    limit: int = RECOMMENDATION_LIMIT,
) -> list[FoodItem]:
    """Return the foods most often eaten in a meal slot, most frequent first."""
    wanted = meal_name.lower()
    counts: Counter[str] = Counter()
    first_seen: dict[str, FoodItem] = {}
    for aggregate in window:
        meal = next((m for m in aggregate.meals if m.name.lower() == wanted), None)
        if meal is None:
            continue
        for item in meal.food_items:
            counts[item.name] += 1
            first_seen.setdefault(item.name, item)
    return [first_seen[name] for name, _ in counts.most_common(limit)]
