"""Scoring model for food candidates within a meal slot."""

from collections.abc import Iterable
from dataclasses import dataclass

from meal_planner.domain.categories import DiversityKind, diversity_kind
from meal_planner.domain.foods import FoodCandidate, FoodRecommendation
from meal_planner.domain.meal_plans import MealSlot
from meal_planner.domain.nutrition import Gender, Objective, round_half_up

SIMILARITY_WEIGHT = 70
PROTEIN_BONUS = 15
CARBS_BONUS = 10

HIGH_PROTEIN_TARGET_G = 20
HIGH_CARBS_TARGET_G = 20
PROTEIN_BONUS_THRESHOLD_G = 15
CARBS_BONUS_THRESHOLD_G = 20
HIGH_PROTEIN_FOOD_G = 20
HIGH_CARBS_FOOD_G = 20
LOW_CALORIE_FOOD_KCAL = 150

GOAL_BONUS = {
    Objective.GAIN_MUSCLE: 25,
    Objective.LOSE_FAT: 20,
    Objective.ENDURANCE: 20,
    Objective.MAINTAIN: 0,
}
GOAL_BONUS_FALLBACK = {
    Objective.GAIN_MUSCLE: 10,
    Objective.LOSE_FAT: 5,
    Objective.ENDURANCE: 10,
    Objective.MAINTAIN: 0,
}

DIVERSITY_BONUS = {
    DiversityKind.VEGETABLE: 15,
    DiversityKind.ROOT_VEGETABLE: 12,
    DiversityKind.NUT_SEED: 10,
    DiversityKind.DAIRY: 8,
}

_OBJECTIVE_PHRASES = {
    Objective.GAIN_MUSCLE: (
        "The goal is lean muscle gain: prioritize protein-rich foods, quality "
        "carbohydrates and little unhealthy fat."
    ),
    Objective.LOSE_FAT: (
        "The goal is fat loss: prefer low-calorie dishes with plenty of fiber "
        "and little sugar or oil."
    ),
    Objective.ENDURANCE: (
        "The goal is endurance: balance complex carbohydrates with a moderate "
        "amount of protein."
    ),
    Objective.MAINTAIN: (
        "The goal is to maintain the current weight with a balanced macro split."
    ),
}


@dataclass(frozen=True)
class RecommendationTuning:
    """Tunable constants for retrieval, sizing and truncation."""

    max_calorie_ratio: float = 1.2
    search_limit: int = 30
    max_recommendations: int = 5
    dishes_per_meal: int = 4
    min_serving_grams: float = 50
    max_serving_grams: float = 400
    serving_round_to: float = 10
    repair_calorie_multiplier: float = 2.0
    max_gap_repairs: int = 3
    max_vegetable_swaps: int = 2


@dataclass(frozen=True)
class MealContext:
    """Targets and user details for one meal slot."""

    slot: MealSlot
    target_calories: float
    target_protein_g: float
    target_carbs_g: float
    objective: Objective
    is_training_day: bool
    target_fat_g: float | None = None
    user_weight_kg: float | None = None
    user_height_cm: float | None = None
    user_gender: Gender | None = None


def build_meal_query(context: MealContext) -> str:
    """Describe the desired meal as text for embedding."""
    slot_name = context.slot.name.lower()
    parts = [
        f"You are a gym nutrition expert. Suggest dishes for {slot_name} "
        f"with {context.target_calories:g} calories, including "
        f"{context.target_protein_g:g}g protein and "
        f"{context.target_carbs_g:g}g carbs"
    ]
    if context.target_fat_g:
        parts[0] += f" and {context.target_fat_g:g}g fat."
    else:
        parts[0] += "."

    about: list[str] = []
    if context.user_gender is not None:
        about.append("male" if context.user_gender is Gender.MALE else "female")
    if context.user_weight_kg:
        about.append(f"weigh {context.user_weight_kg:g}kg")
    if context.user_height_cm:
        about.append(f"am {context.user_height_cm:g}cm tall")
    if about:
        parts.append("I am " + ", ".join(about) + ".")

    parts.append(_OBJECTIVE_PHRASES[context.objective])
    if context.is_training_day:
        parts.append("Today is a training day.")
    else:
        parts.append(
            "Today is a rest day, so slightly fewer carbs and calories than a "
            "training day."
        )
    parts.append(
        "Prefer healthy cooking methods such as boiling, steaming or grilling."
    )
    if context.slot.is_main_meal:
        parts.append(
            "Include green vegetables, root vegetables or nuts for a balanced meal."
        )
    return " ".join(parts)


def nutrition_bonus(candidate: FoodCandidate, context: MealContext) -> float:
    """Reward protein or carb rich foods when the slot needs them."""
    bonus = 0.0
    if (
        context.target_protein_g > HIGH_PROTEIN_TARGET_G
        and candidate.macros.protein_g > PROTEIN_BONUS_THRESHOLD_G
    ):
        bonus += PROTEIN_BONUS
    if (
        context.target_carbs_g > HIGH_CARBS_TARGET_G
        and candidate.macros.carbs_g > CARBS_BONUS_THRESHOLD_G
    ):
        bonus += CARBS_BONUS
    return bonus


def goal_bonus(candidate: FoodCandidate, objective: Objective) -> float:
    """Reward foods that suit the training objective."""
    macros = candidate.macros
    if objective is Objective.GAIN_MUSCLE:
        matches = macros.protein_g > HIGH_PROTEIN_FOOD_G
    elif objective is Objective.LOSE_FAT:
        matches = macros.calories < LOW_CALORIE_FOOD_KCAL
    elif objective is Objective.ENDURANCE:
        matches = macros.carbs_g > HIGH_CARBS_FOOD_G
    else:
        return 0.0
    return GOAL_BONUS[objective] if matches else GOAL_BONUS_FALLBACK[objective]


def diversity_bonus(candidate: FoodCandidate, slot: MealSlot) -> float:
    """Reward vegetables, root vegetables, nuts and dairy at lunch and dinner."""
    if not slot.is_main_meal:
        return 0.0
    kind = diversity_kind(candidate.category, candidate.names)
    if kind is None:
        return 0.0
    return DIVERSITY_BONUS[kind]


def score_candidate(candidate: FoodCandidate, context: MealContext) -> float:
    """Composite score: weighted similarity plus nutrition, goal and diversity."""
    return (
        candidate.similarity * SIMILARITY_WEIGHT
        + nutrition_bonus(candidate, context)
        + goal_bonus(candidate, context.objective)
        + diversity_bonus(candidate, context.slot)
    )


def serving_grams(
    food_calories: float, slot_calories: float, tuning: RecommendationTuning
) -> float:
    """Suggest a serving assuming the meal is split across several dishes."""
    per_dish_calories = slot_calories / tuning.dishes_per_meal
    ratio = per_dish_calories / (food_calories or 100)
    grams = min(tuning.max_serving_grams, max(tuning.min_serving_grams, ratio * 100))
    return round_half_up(grams / tuning.serving_round_to) * tuning.serving_round_to


def build_reason(candidate: FoodCandidate, context: MealContext) -> str:
    """Explain in a short sentence why the food suits this meal."""
    highlights: list[str] = []
    macros = candidate.macros
    if macros.protein_g > PROTEIN_BONUS_THRESHOLD_G:
        highlights.append(f"{macros.protein_g:g}g protein per 100g")
    if macros.carbs_g > CARBS_BONUS_THRESHOLD_G:
        highlights.append(f"{macros.carbs_g:g}g carbs per 100g")
    if macros.calories < LOW_CALORIE_FOOD_KCAL:
        highlights.append("low calorie")
    if context.slot.is_main_meal:
        kind = diversity_kind(candidate.category, candidate.names)
        if kind is not None:
            highlights.append(f"adds {kind.value.replace('_', ' ')} for balance")
    reason = f"Good fit for {context.slot.name}"
    if highlights:
        reason += ": " + ", ".join(highlights)
    return reason


def recommend(
    candidate: FoodCandidate,
    context: MealContext,
    tuning: RecommendationTuning,
    max_calories: float,
) -> FoodRecommendation:
    """Score a candidate and attach a serving suggestion."""
    return FoodRecommendation(
        candidate=candidate,
        score=score_candidate(candidate, context),
        reason=build_reason(candidate, context),
        serving_grams=serving_grams(
            candidate.macros.calories, context.target_calories, tuning
        ),
        max_calories=max_calories,
    )


def rank(
    recommendations: Iterable[FoodRecommendation],
) -> tuple[FoodRecommendation, ...]:
    """Sort recommendations by score, best first."""
    return tuple(sorted(recommendations, key=lambda item: item.score, reverse=True))
