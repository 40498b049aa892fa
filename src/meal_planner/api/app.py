"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from meal_planner.api.admin import router as admin_router
from meal_planner.api.schemas import (
    AddFoodRequest,
    GeneratePlanRequest,
    ItemCompletionRequest,
)
from meal_planner.app_logging import configure_logging
from meal_planner.containers import AppContainer
from meal_planner.domain.errors import (
    FoodAlreadyPlannedError,
    ProfileValidationError,
    TransactionFailedError,
    UpstreamUnavailableError,
)
from meal_planner.domain.meal_plans import MealPlan, MealPlanItem
from meal_planner.domain.nutrition import MealNutrition


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(ProfileValidationError)
    async def profile_error(_: Request, exc: ProfileValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc)},
        )

    @app.exception_handler(FoodAlreadyPlannedError)
    async def duplicate_food_error(
        _: Request, exc: FoodAlreadyPlannedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc)},
        )

    @app.exception_handler(UpstreamUnavailableError)
    async def upstream_error(_: Request, exc: UpstreamUnavailableError) -> JSONResponse:
        logger.warning("Upstream unavailable: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc)},
        )

    @app.exception_handler(TransactionFailedError)
    async def transaction_error(
        _: Request, exc: TransactionFailedError
    ) -> JSONResponse:
        logger.error("Meal plan transaction failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Failed to store meal plan"},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/meal-plans/generate")
    async def generate_meal_plan(
        body: GeneratePlanRequest, request: Request
    ) -> dict[str, object]:
        """Return the plan for the date, generating it when missing."""
        state_container: AppContainer = request.app.state.container
        plan = await state_container.meal_plan_service.generate_plan(
            body.user_id, body.plan_date or date.today()
        )
        return _serialize_plan(plan)

    @app.get("/meal-plans/{user_id}/{plan_date}")
    async def get_meal_plan(
        user_id: UUID, plan_date: date, request: Request
    ) -> dict[str, object]:
        """Return a stored plan."""
        state_container: AppContainer = request.app.state.container
        plan = state_container.meal_plan_service.get_plan(user_id, plan_date)
        if plan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return _serialize_plan(plan)

    @app.post("/meal-plans/{plan_id}/items")
    async def add_meal_plan_food(
        plan_id: UUID, body: AddFoodRequest, request: Request
    ) -> dict[str, object]:
        """Add a catalog food to one slot of a plan."""
        state_container: AppContainer = request.app.state.container
        plan = state_container.meal_plan_service.add_food(
            plan_id, body.slot_id, body.food_id, body.grams
        )
        if plan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return _serialize_plan(plan)

    @app.patch("/meal-plan-items/{item_id}")
    async def update_meal_plan_item(
        item_id: UUID, body: ItemCompletionRequest, request: Request
    ) -> dict[str, object]:
        """Mark a plan item completed or not."""
        state_container: AppContainer = request.app.state.container
        plan = state_container.meal_plan_service.set_item_completed(
            item_id, body.completed
        )
        if plan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return _serialize_plan(plan)

    return app


def _serialize_nutrition(nutrition: MealNutrition) -> dict[str, float]:
    return {
        "calories": nutrition.calories,
        "protein_g": nutrition.protein_g,
        "carbs_g": nutrition.carbs_g,
        "fat_g": nutrition.fat_g,
    }


def _serialize_item(item: MealPlanItem) -> dict[str, object]:
    return {
        "id": str(item.id),
        "food_id": str(item.food_id),
        "food_name": item.food_name,
        "category": item.category,
        "grams": item.grams,
        "calories": item.calories,
        "protein_g": item.protein_g,
        "carbs_g": item.carbs_g,
        "fat_g": item.fat_g,
        "display_order": item.display_order,
        "completed": item.completed,
        "reason": item.reason,
    }


def _serialize_plan(plan: MealPlan) -> dict[str, object]:
    return {
        "id": str(plan.id),
        "user_id": str(plan.user_id),
        "plan_date": plan.plan_date.isoformat(),
        "is_training_day": plan.is_training_day,
        "target": _serialize_nutrition(plan.target),
        "actual": _serialize_nutrition(plan.actual),
        "meals": {
            slot_code: [_serialize_item(item) for item in items]
            for slot_code, items in plan.meals.items()
        },
    }
