"""Pydantic request models for the meal plan API."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class GeneratePlanRequest(BaseModel):
    """Request body for plan generation."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: UUID
    plan_date: date | None = Field(default=None, alias="date")


class ItemCompletionRequest(BaseModel):
    """Request body for toggling a plan item."""

    completed: bool


class AddFoodRequest(BaseModel):
    """Request body for adding a catalog food to a plan slot."""

    slot_id: UUID
    food_id: UUID
    grams: float = Field(gt=0)
