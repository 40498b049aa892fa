"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_planner.adapters.openai_embedding_client import OpenAIEmbeddingClient
from meal_planner.adapters.supabase_food_repository import SupabaseFoodRepository
from meal_planner.adapters.supabase_meal_plan_repository import (
    SupabaseMealPlanRepository,
)
from meal_planner.adapters.supabase_meal_slot_repository import (
    SupabaseMealSlotRepository,
)
from meal_planner.adapters.supabase_nutrition_target_repository import (
    SupabaseNutritionTargetRepository,
)
from meal_planner.adapters.supabase_user_data_repository import (
    SupabaseUserDataRepository,
)
from meal_planner.config import Settings, recommendation_tuning
from meal_planner.services.cache import InMemoryCache
from meal_planner.services.catalog import FoodCatalogService
from meal_planner.services.embeddings import EmbeddingService
from meal_planner.services.meal_plans import MealPlanService
from meal_planner.services.recommendations import MealRecommendationEngine


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    meal_plan_service: MealPlanService
    catalog_service: FoodCatalogService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    food_repository = SupabaseFoodRepository(supabase_client)
    embedding_client = OpenAIEmbeddingClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_embedding_model,
        dimensions=resolved_settings.embedding_dimensions,
    )
    embedding_service = EmbeddingService(
        client=embedding_client,
        cache=InMemoryCache(),
        ttl_seconds=resolved_settings.embedding_cache_ttl_seconds,
    )
    engine = MealRecommendationEngine(
        embeddings=embedding_service,
        source=food_repository,
        tuning=recommendation_tuning(resolved_settings),
    )
    meal_plan_service = MealPlanService(
        users=SupabaseUserDataRepository(supabase_client),
        slots=SupabaseMealSlotRepository(supabase_client),
        targets=SupabaseNutritionTargetRepository(supabase_client),
        plans=SupabaseMealPlanRepository(supabase_client),
        engine=engine,
        foods=food_repository,
        workout_calories=resolved_settings.default_workout_calories,
        recent_food_window_days=resolved_settings.recent_food_window_days,
    )
    catalog_service = FoodCatalogService(
        repository=food_repository,
        embedding_client=embedding_client,
        batch_size=resolved_settings.catalog_batch_size,
    )

    async def close_resources() -> None:
        await embedding_client.close()

    return AppContainer(
        settings=resolved_settings,
        meal_plan_service=meal_plan_service,
        catalog_service=catalog_service,
        close_resources=close_resources,
    )
