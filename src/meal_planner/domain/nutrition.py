"""Nutrition domain models."""

import math
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


def round_half_up(value: float, digits: int = 0) -> float:
    """Round to ``digits`` decimals with exact halves rounded up.

    Built-in ``round`` sends halves to the even neighbour, which shifts
    values such as ``6.25 * 178`` down by one.
    """
    if digits == 0:
        return math.floor(value + 0.5)
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


class Gender(Enum):
    """Gender as used by the BMR equation."""

    MALE = "MALE"
    FEMALE = "FEMALE"


class Objective(Enum):
    """Training objective of a goal."""

    GAIN_MUSCLE = "GAIN_MUSCLE"
    LOSE_FAT = "LOSE_FAT"
    ENDURANCE = "ENDURANCE"
    MAINTAIN = "MAINTAIN"


@dataclass(frozen=True)
class UserProfile:
    """Physiology snapshot used for a single calculation."""

    gender: Gender
    weight_kg: float
    height_cm: float
    age: int


@dataclass(frozen=True)
class Goal:
    """The user's active training goal."""

    id: UUID
    objective: Objective
    sessions_per_week: int


@dataclass(frozen=True)
class MealNutrition:
    """Calories and macro grams for a meal slot or a whole day."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float


@dataclass(frozen=True)
class NutritionTarget:
    """Daily nutrition target derived from profile and goal."""

    bmr: float
    tdee: float
    target_calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    is_training_day: bool = False
    slot_calories: dict[str, float] = field(default_factory=dict)

    @property
    def daily(self) -> MealNutrition:
        """Return the full-day target as meal nutrition."""
        return MealNutrition(
            calories=self.target_calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
        )
