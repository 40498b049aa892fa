"""Supabase repository for meal plans and their items."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client

from meal_planner.domain.errors import PlanAlreadyExistsError, TransactionFailedError
from meal_planner.domain.meal_plans import (
    MealPlan,
    MealPlanDraft,
    MealPlanItem,
    MealPlanItemDraft,
)
from meal_planner.domain.nutrition import MealNutrition
from meal_planner.services.meal_plans import MealPlanRepository

_UNIQUE_VIOLATION = "23505"

_PLAN_COLUMNS = (
    "id, user_id, plan_date, is_training_day, target_calories, target_protein, "
    "target_carbs, target_fat, total_calories, total_protein, total_carbs, total_fat"
)
_ITEM_COLUMNS = (
    "id, meal_plan_id, meal_time_id, food_id, food_name, category, servings, "
    "calories, protein, carbs, fat, display_order, is_completed, reason, "
    "meal_times(code)"
)


@dataclass
class SupabaseMealPlanRepository(MealPlanRepository):
    """Supabase implementation for meal plans.

    Plans are created by the ``create_meal_plan`` Postgres function so the
    header and its items commit in one transaction.
    """

    client: Client

    def get_plan(self, user_id: UUID, plan_date: date) -> MealPlan | None:
        """Return the plan for a user and date."""
        response = (
            self.client.table("meal_plans")
            .select(_PLAN_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("plan_date", plan_date.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return self._with_items(response.data[0])

    def get_plan_by_id(self, plan_id: UUID) -> MealPlan | None:
        """Return a plan by id."""
        response = (
            self.client.table("meal_plans")
            .select(_PLAN_COLUMNS)
            .eq("id", str(plan_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return self._with_items(response.data[0])

    def create_plan(self, draft: MealPlanDraft) -> UUID:
        """Insert header and items atomically and return the plan id."""
        header = {
            "user_id": str(draft.user_id),
            "plan_date": draft.plan_date.isoformat(),
            "is_training_day": draft.is_training_day,
            "base_calories": draft.base_calories,
            "workout_adjustment": draft.workout_adjustment,
            "target_calories": draft.target.calories,
            "target_protein": draft.target.protein_g,
            "target_carbs": draft.target.carbs_g,
            "target_fat": draft.target.fat_g,
        }
        items = [_item_row(item) for item in draft.items]
        try:
            response = self.client.rpc(
                "create_meal_plan", {"p_plan": header, "p_items": items}
            ).execute()
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise PlanAlreadyExistsError(
                    f"Meal plan already exists for {draft.plan_date.isoformat()}"
                ) from exc
            raise TransactionFailedError("Failed to create meal plan") from exc
        if not response.data:
            raise TransactionFailedError("Failed to create meal plan")
        return UUID(str(_scalar(response.data)))

    def list_recent_completed_food_ids(
        self, user_id: UUID, since: date, until: date
    ) -> set[UUID]:
        """Return foods completed in the user's plans within the date range."""
        plans = (
            self.client.table("meal_plans")
            .select("id")
            .eq("user_id", str(user_id))
            .gte("plan_date", since.isoformat())
            .lte("plan_date", until.isoformat())
            .execute()
        )
        plan_ids = [row["id"] for row in plans.data or []]
        if not plan_ids:
            return set()
        items = (
            self.client.table("meal_plan_items")
            .select("food_id")
            .in_("meal_plan_id", plan_ids)
            .eq("is_completed", True)
            .execute()
        )
        return {UUID(row["food_id"]) for row in items.data or []}

    def get_item(self, item_id: UUID) -> MealPlanItem | None:
        """Return a plan item by id."""
        response = (
            self.client.table("meal_plan_items")
            .select(_ITEM_COLUMNS)
            .eq("id", str(item_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_item(response.data[0])

    def add_item(self, plan_id: UUID, draft: MealPlanItemDraft) -> MealPlanItem:
        """Insert one item into an existing plan."""
        response = (
            self.client.table("meal_plan_items")
            .insert({"meal_plan_id": str(plan_id), **_item_row(draft)})
            .execute()
        )
        if not response.data:
            raise TransactionFailedError("Failed to add meal plan item")
        row = {**response.data[0], "meal_times": {"code": draft.slot_code}}
        return _parse_item(row)

    def set_item_completed(self, item_id: UUID, completed: bool) -> None:
        """Mark an item completed, stamping the completion time."""
        completed_at = datetime.now(tz=UTC).isoformat() if completed else None
        self.client.table("meal_plan_items").update(
            {"is_completed": completed, "completed_at": completed_at}
        ).eq("id", str(item_id)).execute()

    def update_actual_totals(self, plan_id: UUID, totals: MealNutrition) -> None:
        """Store the nutrition of completed items on the plan."""
        self.client.table("meal_plans").update(
            {
                "total_calories": totals.calories,
                "total_protein": totals.protein_g,
                "total_carbs": totals.carbs_g,
                "total_fat": totals.fat_g,
            }
        ).eq("id", str(plan_id)).execute()

    def _with_items(self, row: dict[str, object]) -> MealPlan:
        response = (
            self.client.table("meal_plan_items")
            .select(_ITEM_COLUMNS)
            .eq("meal_plan_id", str(row["id"]))
            .order("display_order", desc=False)
            .execute()
        )
        meals: dict[str, list[MealPlanItem]] = {}
        for item_row in response.data or []:
            item = _parse_item(item_row)
            meals.setdefault(item.slot_code, []).append(item)
        return MealPlan(
            id=UUID(row["id"]),
            user_id=UUID(row["user_id"]),
            plan_date=date.fromisoformat(str(row["plan_date"])),
            is_training_day=bool(row.get("is_training_day")),
            target=_nutrition(row, "target"),
            actual=_nutrition(row, "total"),
            meals=meals,
        )


def _item_row(item: MealPlanItemDraft) -> dict[str, object]:
    return {
        "meal_time_id": str(item.slot_id),
        "food_id": str(item.food_id),
        "food_name": item.food_name,
        "category": item.category,
        "servings": item.grams,
        "calories": item.calories,
        "protein": item.protein_g,
        "carbs": item.carbs_g,
        "fat": item.fat_g,
        "score": item.score,
        "reason": item.reason,
        "display_order": item.display_order,
    }


def _scalar(data: object) -> object:
    if isinstance(data, list):
        first = data[0]
        return next(iter(first.values())) if isinstance(first, dict) else first
    return data


def _nutrition(row: dict[str, object], prefix: str) -> MealNutrition:
    return MealNutrition(
        calories=float(row.get(f"{prefix}_calories") or 0.0),
        protein_g=float(row.get(f"{prefix}_protein") or 0.0),
        carbs_g=float(row.get(f"{prefix}_carbs") or 0.0),
        fat_g=float(row.get(f"{prefix}_fat") or 0.0),
    )


def _parse_item(row: dict[str, object]) -> MealPlanItem:
    slot = row.get("meal_times") or {}
    return MealPlanItem(
        id=UUID(row["id"]),
        meal_plan_id=UUID(row["meal_plan_id"]),
        slot_id=UUID(row["meal_time_id"]),
        slot_code=str(slot.get("code") or ""),
        food_id=UUID(row["food_id"]),
        food_name=str(row.get("food_name") or ""),
        category=str(row.get("category") or "other"),
        grams=float(row.get("servings") or 0.0),
        calories=float(row.get("calories") or 0.0),
        protein_g=float(row.get("protein") or 0.0),
        carbs_g=float(row.get("carbs") or 0.0),
        fat_g=float(row.get("fat") or 0.0),
        display_order=int(row.get("display_order") or 0),
        completed=bool(row.get("is_completed")),
        reason=row.get("reason"),
    )
