"""Supabase repository for meal slot configuration."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from meal_planner.domain.meal_plans import MealSlot
from meal_planner.services.meal_plans import MealSlotRepository


@dataclass
class SupabaseMealSlotRepository(MealSlotRepository):
    """Supabase implementation for meal slots."""

    client: Client

    def list_slots(self) -> list[MealSlot]:
        """Return meal slots in display order."""
        response = (
            self.client.table("meal_times")
            .select("id, code, name, display_order, default_calorie_percentage")
            .order("display_order", desc=False)
            .execute()
        )
        return [
            MealSlot(
                id=UUID(row["id"]),
                code=str(row["code"]),
                name=str(row.get("name") or row["code"]),
                display_order=int(row.get("display_order") or 0),
                default_percentage=float(row.get("default_calorie_percentage") or 0.0),
            )
            for row in response.data or []
        ]
