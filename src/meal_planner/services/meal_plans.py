"""Daily meal plan orchestration."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Protocol
from uuid import UUID

from meal_planner.domain.errors import (
    FoodAlreadyPlannedError,
    PlanAlreadyExistsError,
    ProfileValidationError,
    TransactionFailedError,
)
from meal_planner.domain.foods import FoodCandidate, FoodRecommendation
from meal_planner.domain.meal_plans import (
    MealPlan,
    MealPlanDraft,
    MealPlanItem,
    MealPlanItemDraft,
    MealSlot,
    sum_nutrition,
)
from meal_planner.domain.nutrition import (
    Goal,
    MealNutrition,
    NutritionTarget,
    UserProfile,
    round_half_up,
)
from meal_planner.services.calculator import calculate_nutrition_target, meal_nutrition
from meal_planner.services.candidates import FoodLookup
from meal_planner.services.recommendations import MealRecommendationEngine
from meal_planner.services.scoring import MealContext

_logger = logging.getLogger(__name__)


class UserDataRepository(Protocol):
    """Read access to user physiology, goals and workouts."""

    def get_profile(self, user_id: UUID) -> UserProfile | None:
        """Return the user's profile."""

    def get_active_goal(self, user_id: UUID) -> Goal | None:
        """Return the user's active goal."""

    def has_scheduled_workout(self, user_id: UUID, plan_date: date) -> bool:
        """Return True when a workout is scheduled on the date."""


class MealSlotRepository(Protocol):
    """Read access to meal slot configuration."""

    def list_slots(self) -> list[MealSlot]:
        """Return active meal slots ordered for display."""


class NutritionTargetRepository(Protocol):
    """Persistence interface for daily nutrition targets."""

    def get_active_target(
        self, user_id: UUID, goal_id: UUID, is_training_day: bool
    ) -> NutritionTarget | None:
        """Return the active target for the goal and day type."""

    def save_target(
        self, user_id: UUID, goal_id: UUID, target: NutritionTarget
    ) -> None:
        """Store a target as the active one for the goal and day type."""


class MealPlanRepository(Protocol):
    """Persistence interface for meal plans."""

    def get_plan(self, user_id: UUID, plan_date: date) -> MealPlan | None:
        """Return the plan for a user and date."""

    def get_plan_by_id(self, plan_id: UUID) -> MealPlan | None:
        """Return a plan by id."""

    def create_plan(self, draft: MealPlanDraft) -> UUID:
        """Insert the plan header and items atomically and return the id.

        Raises ``PlanAlreadyExistsError`` when a plan exists for the user and
        date, and ``TransactionFailedError`` when the write fails.
        """

    def list_recent_completed_food_ids(
        self, user_id: UUID, since: date, until: date
    ) -> set[UUID]:
        """Return foods the user completed in plans within the date range."""

    def get_item(self, item_id: UUID) -> MealPlanItem | None:
        """Return a plan item by id."""

    def add_item(self, plan_id: UUID, draft: MealPlanItemDraft) -> MealPlanItem:
        """Insert one item into an existing plan."""

    def set_item_completed(self, item_id: UUID, completed: bool) -> None:
        """Mark an item completed or not."""

    def update_actual_totals(self, plan_id: UUID, totals: MealNutrition) -> None:
        """Store the nutrition of completed items on the plan."""


@dataclass
class MealPlanService:
    """Builds, stores and updates daily meal plans."""

    users: UserDataRepository
    slots: MealSlotRepository
    targets: NutritionTargetRepository
    plans: MealPlanRepository
    engine: MealRecommendationEngine
    foods: FoodLookup
    workout_calories: float = 400
    recent_food_window_days: int = 2

    async def generate_plan(self, user_id: UUID, plan_date: date) -> MealPlan:
        """Return the user's plan for the date, generating it when missing.

        A second call for the same user and date returns the stored plan
        without computing targets or searching foods.
        """
        existing = self.plans.get_plan(user_id, plan_date)
        if existing is not None:
            _logger.info("Meal plan cached: user_id=%s date=%s", user_id, plan_date)
            return existing

        profile, goal = self._load_profile(user_id)
        is_training_day = self.users.has_scheduled_workout(user_id, plan_date)
        slots = self.slots.list_slots()
        target = self.get_or_create_target(
            user_id, profile, goal, is_training_day, slots
        )
        excluded = self.plans.list_recent_completed_food_ids(
            user_id,
            since=plan_date - timedelta(days=self.recent_food_window_days),
            until=plan_date,
        )

        items: list[MealPlanItemDraft] = []
        for slot in slots:
            context = _meal_context(slot, target, profile, goal)
            recommendations = await self.engine.recommend(context, excluded)
            items.extend(_item_drafts(slot, recommendations))

        draft = MealPlanDraft(
            user_id=user_id,
            plan_date=plan_date,
            is_training_day=is_training_day,
            base_calories=target.tdee,
            workout_adjustment=target.target_calories - target.tdee,
            target=target.daily,
            items=items,
        )
        try:
            self.plans.create_plan(draft)
        except PlanAlreadyExistsError:
            _logger.info(
                "Meal plan created concurrently: user_id=%s date=%s",
                user_id,
                plan_date,
            )

        plan = self.plans.get_plan(user_id, plan_date)
        if plan is None:
            raise TransactionFailedError("Meal plan was not readable after insert")
        _logger.info(
            "Meal plan generated: user_id=%s date=%s items=%s training=%s",
            user_id,
            plan_date,
            len(items),
            is_training_day,
        )
        return plan

    def get_plan(self, user_id: UUID, plan_date: date) -> MealPlan | None:
        """Return the stored plan for the date, if any."""
        return self.plans.get_plan(user_id, plan_date)

    def get_or_create_target(
        self,
        user_id: UUID,
        profile: UserProfile,
        goal: Goal,
        is_training_day: bool,
        slots: list[MealSlot],
    ) -> NutritionTarget:
        """Reuse the active target for the goal, or compute and store one."""
        existing = self.targets.get_active_target(user_id, goal.id, is_training_day)
        if existing is not None:
            return existing
        target = calculate_nutrition_target(
            profile,
            goal,
            is_training_day,
            workout_calories=self.workout_calories if is_training_day else 0.0,
            slots=slots,
        )
        self.targets.save_target(user_id, goal.id, target)
        _logger.info(
            "Nutrition target computed: user_id=%s calories=%s training=%s",
            user_id,
            target.target_calories,
            is_training_day,
        )
        return target

    def set_item_completed(self, item_id: UUID, completed: bool) -> MealPlan | None:
        """Toggle an item's completion and refresh the plan's actual totals."""
        item = self.plans.get_item(item_id)
        if item is None:
            return None
        if item.completed != completed:
            self.plans.set_item_completed(item_id, completed)
            plan = self.plans.get_plan_by_id(item.meal_plan_id)
            if plan is None:
                return None
            actual = sum_nutrition([entry for entry in plan.items if entry.completed])
            self.plans.update_actual_totals(item.meal_plan_id, actual)
        return self.plans.get_plan_by_id(item.meal_plan_id)

    def add_food(
        self, plan_id: UUID, slot_id: UUID, food_id: UUID, grams: float
    ) -> MealPlan | None:
        """Add a catalog food to one slot of a plan.

        Returns None when the plan, slot or food is unknown. Raises
        ``FoodAlreadyPlannedError`` when the slot already holds the food.
        """
        plan = self.plans.get_plan_by_id(plan_id)
        if plan is None:
            return None
        slot = next(
            (slot for slot in self.slots.list_slots() if slot.id == slot_id), None
        )
        if slot is None:
            return None
        if any(
            item.slot_id == slot_id and item.food_id == food_id for item in plan.items
        ):
            raise FoodAlreadyPlannedError(
                f"Food {food_id} is already planned for {slot.code}"
            )
        food = self.foods.get_food(food_id)
        if food is None:
            return None

        order = max(
            (item.display_order for item in plan.meals.get(slot.code, [])), default=0
        )
        self.plans.add_item(
            plan_id, _item_draft(slot, food, grams, order + 1, score=0.0, reason="")
        )
        _logger.info(
            "Food added to meal plan: plan_id=%s slot=%s food_id=%s grams=%s",
            plan_id,
            slot.code,
            food_id,
            grams,
        )
        return self.plans.get_plan_by_id(plan_id)

    def _load_profile(self, user_id: UUID) -> tuple[UserProfile, Goal]:
        profile = self.users.get_profile(user_id)
        if profile is None:
            raise ProfileValidationError("User profile is missing")
        if profile.weight_kg <= 0 or profile.height_cm <= 0 or profile.age <= 0:
            raise ProfileValidationError("User profile is incomplete")
        goal = self.users.get_active_goal(user_id)
        if goal is None:
            raise ProfileValidationError("User has no active goal")
        if goal.sessions_per_week < 0:
            raise ProfileValidationError("Goal sessions per week cannot be negative")
        return profile, goal


def _meal_context(
    slot: MealSlot, target: NutritionTarget, profile: UserProfile, goal: Goal
) -> MealContext:
    share = meal_nutrition(target, slot.default_percentage)
    return MealContext(
        slot=slot,
        target_calories=target.slot_calories.get(slot.code, share.calories),
        target_protein_g=share.protein_g,
        target_carbs_g=share.carbs_g,
        target_fat_g=share.fat_g,
        objective=goal.objective,
        is_training_day=target.is_training_day,
        user_weight_kg=profile.weight_kg,
        user_height_cm=profile.height_cm,
        user_gender=profile.gender,
    )


def _item_drafts(
    slot: MealSlot, recommendations: tuple[FoodRecommendation, ...]
) -> list[MealPlanItemDraft]:
    return [
        _item_draft(
            slot,
            recommendation.candidate,
            recommendation.serving_grams,
            order,
            score=round_half_up(recommendation.score, 2),
            reason=recommendation.reason,
        )
        for order, recommendation in enumerate(recommendations, start=1)
    ]


def _item_draft(  # noqa: PLR0913
    slot: MealSlot,
    food: FoodCandidate,
    grams: float,
    display_order: int,
    score: float,
    reason: str,
) -> MealPlanItemDraft:
    """Scale per-100g macros to the serving."""
    macros = food.macros
    factor = grams / 100
    return MealPlanItemDraft(
        slot_id=slot.id,
        slot_code=slot.code,
        food_id=food.id,
        food_name=food.display_name,
        category=food.category.value,
        grams=grams,
        calories=round_half_up(macros.calories * factor),
        protein_g=round_half_up(macros.protein_g * factor, 1),
        carbs_g=round_half_up(macros.carbs_g * factor, 1),
        fat_g=round_half_up(macros.fat_g * factor, 1),
        score=score,
        reason=reason,
        display_order=display_order,
    )
