"""Nutrition target math: BMR, TDEE, daily calories, macros and slot shares."""

from collections.abc import Sequence
from dataclasses import dataclass

from meal_planner.domain.meal_plans import MealSlot
from meal_planner.domain.nutrition import (
    Gender,
    Goal,
    MealNutrition,
    NutritionTarget,
    Objective,
    UserProfile,
    round_half_up,
)

LOW_ACTIVITY_MAX_SESSIONS = 3
MODERATE_ACTIVITY_MAX_SESSIONS = 5

TDEE_MULTIPLIERS = {
    "low": 1.375,
    "moderate": 1.55,
    "high": 1.725,
}

KCAL_PER_GRAM = {"protein": 4, "carbs": 4, "fat": 9}

MACRO_RATIOS: dict[Objective, dict[str, float]] = {
    Objective.GAIN_MUSCLE: {"protein": 0.30, "carbs": 0.45, "fat": 0.25},
    Objective.LOSE_FAT: {"protein": 0.35, "carbs": 0.35, "fat": 0.30},
    Objective.ENDURANCE: {"protein": 0.20, "carbs": 0.60, "fat": 0.20},
    Objective.MAINTAIN: {"protein": 0.25, "carbs": 0.50, "fat": 0.25},
}


@dataclass(frozen=True)
class CalorieAdjustment:
    """Training-day and rest-day calorie adjustment for an objective.

    A training-day adjustment is either a flat number of kcal added on top of
    the workout calories, or a ratio applied to the workout calories.
    """

    training_day: float
    rest_day: float
    ratio: bool = False


CALORIE_ADJUSTMENTS: dict[Objective, CalorieAdjustment] = {
    Objective.GAIN_MUSCLE: CalorieAdjustment(training_day=250, rest_day=200),
    Objective.LOSE_FAT: CalorieAdjustment(
        training_day=0.5, rest_day=-400, ratio=True
    ),
    Objective.ENDURANCE: CalorieAdjustment(
        training_day=0.75, rest_day=0, ratio=True
    ),
    Objective.MAINTAIN: CalorieAdjustment(training_day=1.0, rest_day=0, ratio=True),
}


def bmr(profile: UserProfile) -> float:
    """Basal metabolic rate by Mifflin-St Jeor.

    Only the male and female branches of the equation exist.
    """
    base = 10 * profile.weight_kg + 6.25 * profile.height_cm - 5 * profile.age
    if profile.gender is Gender.MALE:
        return base + 5
    return base - 161


def activity_level(sessions_per_week: int) -> str:
    """Tier weekly sessions into low, moderate or high activity."""
    if sessions_per_week <= LOW_ACTIVITY_MAX_SESSIONS:
        return "low"
    if sessions_per_week <= MODERATE_ACTIVITY_MAX_SESSIONS:
        return "moderate"
    return "high"


def tdee(bmr_kcal: float, sessions_per_week: int) -> float:
    """Total daily energy expenditure."""
    return bmr_kcal * TDEE_MULTIPLIERS[activity_level(sessions_per_week)]


def target_calories(
    tdee_kcal: float,
    objective: Objective,
    is_training_day: bool,
    workout_calories: float = 0.0,
) -> float:
    """Daily calorie target for the objective and day type."""
    adjustment = CALORIE_ADJUSTMENTS[objective]
    if not is_training_day:
        return tdee_kcal + adjustment.rest_day
    if adjustment.ratio:
        return tdee_kcal + workout_calories * adjustment.training_day
    return tdee_kcal + workout_calories + adjustment.training_day


def macros(calories: float, objective: Objective) -> MealNutrition:
    """Split calories into protein, carbs and fat grams."""
    ratios = MACRO_RATIOS[objective]
    grams = {
        macro: round_half_up(calories * ratios[macro] / KCAL_PER_GRAM[macro])
        for macro in KCAL_PER_GRAM
    }
    return MealNutrition(
        calories=calories,
        protein_g=grams["protein"],
        carbs_g=grams["carbs"],
        fat_g=grams["fat"],
    )


def meal_nutrition(target: NutritionTarget, slot_percentage: float) -> MealNutrition:
    """Scale the daily target by a slot's percentage share.

    Fields are rounded independently, so slot values need not sum exactly to
    the daily totals.
    """
    share = slot_percentage / 100
    return MealNutrition(
        calories=round_half_up(target.target_calories * share),
        protein_g=round_half_up(target.protein_g * share),
        carbs_g=round_half_up(target.carbs_g * share),
        fat_g=round_half_up(target.fat_g * share),
    )


def calculate_nutrition_target(
    profile: UserProfile,
    goal: Goal,
    is_training_day: bool,
    workout_calories: float = 0.0,
    slots: Sequence[MealSlot] = (),
) -> NutritionTarget:
    """Compute the complete daily target, including per-slot calories."""
    bmr_kcal = round_half_up(bmr(profile))
    tdee_kcal = round_half_up(tdee(bmr_kcal, goal.sessions_per_week))
    calories = round_half_up(
        target_calories(tdee_kcal, goal.objective, is_training_day, workout_calories)
    )
    split = macros(calories, goal.objective)
    target = NutritionTarget(
        bmr=bmr_kcal,
        tdee=tdee_kcal,
        target_calories=calories,
        protein_g=split.protein_g,
        carbs_g=split.carbs_g,
        fat_g=split.fat_g,
        is_training_day=is_training_day,
    )
    slot_calories = {
        slot.code: meal_nutrition(target, slot.default_percentage).calories
        for slot in slots
    }
    return NutritionTarget(
        bmr=target.bmr,
        tdee=target.tdee,
        target_calories=target.target_calories,
        protein_g=target.protein_g,
        carbs_g=target.carbs_g,
        fat_g=target.fat_g,
        is_training_day=is_training_day,
        slot_calories=slot_calories,
    )
