"""Supabase repository for daily nutrition targets."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from meal_planner.domain.errors import TransactionFailedError
from meal_planner.domain.nutrition import NutritionTarget
from meal_planner.services.meal_plans import NutritionTargetRepository


@dataclass
class SupabaseNutritionTargetRepository(NutritionTargetRepository):
    """Supabase implementation for nutrition targets."""

    client: Client

    def get_active_target(
        self, user_id: UUID, goal_id: UUID, is_training_day: bool
    ) -> NutritionTarget | None:
        """Return the active target for the goal and day type."""
        response = (
            self.client.table("nutrition_targets")
            .select(
                "calories_kcal, protein_g, carbs_g, fat_g, bmr, tdee, is_training, "
                "slot_calories"
            )
            .eq("user_id", str(user_id))
            .eq("goal_id", str(goal_id))
            .eq("is_training", is_training_day)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return NutritionTarget(
            bmr=float(row.get("bmr") or 0.0),
            tdee=float(row.get("tdee") or 0.0),
            target_calories=float(row["calories_kcal"]),
            protein_g=float(row.get("protein_g") or 0.0),
            carbs_g=float(row.get("carbs_g") or 0.0),
            fat_g=float(row.get("fat_g") or 0.0),
            is_training_day=bool(row.get("is_training")),
            slot_calories={
                str(code): float(calories)
                for code, calories in (row.get("slot_calories") or {}).items()
            },
        )

    def save_target(
        self, user_id: UUID, goal_id: UUID, target: NutritionTarget
    ) -> None:
        """Insert an active target, retiring targets of other goals."""
        self.client.table("nutrition_targets").update({"is_active": False}).eq(
            "user_id", str(user_id)
        ).neq("goal_id", str(goal_id)).execute()
        response = (
            self.client.table("nutrition_targets")
            .insert(
                {
                    "user_id": str(user_id),
                    "goal_id": str(goal_id),
                    "calories_kcal": target.target_calories,
                    "protein_g": target.protein_g,
                    "carbs_g": target.carbs_g,
                    "fat_g": target.fat_g,
                    "bmr": target.bmr,
                    "tdee": target.tdee,
                    "is_training": target.is_training_day,
                    "slot_calories": target.slot_calories,
                    "is_active": True,
                }
            )
            .execute()
        )
        if not response.data:
            raise TransactionFailedError("Failed to create nutrition target")
