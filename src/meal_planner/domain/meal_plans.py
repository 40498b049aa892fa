"""Domain models for daily meal plans."""

from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from meal_planner.domain.nutrition import MealNutrition

LUNCH_AND_DINNER = frozenset({"lunch", "dinner"})


@dataclass(frozen=True)
class MealSlot:
    """A configured meal time with its default share of daily calories."""

    id: UUID
    code: str
    name: str
    display_order: int
    default_percentage: float

    @property
    def is_main_meal(self) -> bool:
        """Return True for lunch and dinner."""
        return self.code.lower() in LUNCH_AND_DINNER


@dataclass(frozen=True)
class MealPlanItemDraft:
    """An unsaved meal plan item."""

    slot_id: UUID
    slot_code: str
    food_id: UUID
    food_name: str
    category: str
    grams: float
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    score: float
    reason: str
    display_order: int


@dataclass(frozen=True)
class MealPlanItem:
    """A persisted meal plan item."""

    id: UUID
    meal_plan_id: UUID
    slot_id: UUID
    slot_code: str
    food_id: UUID
    food_name: str
    category: str
    grams: float
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    display_order: int
    completed: bool = False
    reason: str | None = None


@dataclass(frozen=True)
class MealPlanDraft:
    """An unsaved plan: header fields plus all items."""

    user_id: UUID
    plan_date: date
    is_training_day: bool
    base_calories: float
    workout_adjustment: float
    target: MealNutrition
    items: list[MealPlanItemDraft]


@dataclass(frozen=True)
class MealPlan:
    """A persisted daily meal plan."""

    id: UUID
    user_id: UUID
    plan_date: date
    is_training_day: bool
    target: MealNutrition
    actual: MealNutrition
    meals: dict[str, list[MealPlanItem]] = field(default_factory=dict)

    @property
    def items(self) -> list[MealPlanItem]:
        """Return all items across slots."""
        return [item for items in self.meals.values() for item in items]


def sum_nutrition(items: list[MealPlanItem]) -> MealNutrition:
    """Sum calories and macros over items."""
    total = MealNutrition(0.0, 0.0, 0.0, 0.0)
    for item in items:
        total = MealNutrition(
            calories=total.calories + item.calories,
            protein_g=total.protein_g + item.protein_g,
            carbs_g=total.carbs_g + item.carbs_g,
            fat_g=total.fat_g + item.fat_g,
        )
    return total
