"""Supabase repository for user profiles, goals and scheduled workouts."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from supabase import Client

from meal_planner.domain.nutrition import Gender, Goal, Objective, UserProfile
from meal_planner.services.meal_plans import UserDataRepository


@dataclass
class SupabaseUserDataRepository(UserDataRepository):
    """Supabase implementation for user data reads."""

    client: Client

    def get_profile(self, user_id: UUID) -> UserProfile | None:
        """Return the user's profile."""
        response = (
            self.client.table("user_profiles")
            .select("user_id, gender, height_cm, weight_kg, age")
            .eq("user_id", str(user_id))
            .eq("is_deleted", False)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return UserProfile(
            gender=Gender(str(row["gender"]).upper()),
            weight_kg=float(row.get("weight_kg") or 0.0),
            height_cm=float(row.get("height_cm") or 0.0),
            age=int(row.get("age") or 0),
        )

    def get_active_goal(self, user_id: UUID) -> Goal | None:
        """Return the newest active goal."""
        response = (
            self.client.table("goals")
            .select("id, objective, sessions_per_week")
            .eq("user_id", str(user_id))
            .eq("status", "ACTIVE")
            .eq("is_deleted", False)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return Goal(
            id=UUID(row["id"]),
            objective=Objective(row["objective"]),
            sessions_per_week=int(row.get("sessions_per_week") or 0),
        )

    def has_scheduled_workout(self, user_id: UUID, plan_date: date) -> bool:
        """Return True when a workout plan day falls on the date."""
        response = (
            self.client.table("plan_days")
            .select("id, plans!inner(user_id)")
            .eq("plans.user_id", str(user_id))
            .eq("scheduled_date", plan_date.isoformat())
            .limit(1)
            .execute()
        )
        return bool(response.data)
