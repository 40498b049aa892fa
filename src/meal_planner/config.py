"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from meal_planner.services.scoring import RecommendationTuning

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    openai_api_key: str
    openai_embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_cache_ttl_seconds: int = 86400
    default_workout_calories: float = 400
    recent_food_window_days: int = 2
    max_calorie_ratio: float = 1.2
    max_recommendations: int = 5
    dishes_per_meal: int = 4
    search_limit: int = 30
    catalog_batch_size: int = 50
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def recommendation_tuning(settings: Settings) -> RecommendationTuning:
    """Build engine tuning from settings."""
    return RecommendationTuning(
        max_calorie_ratio=settings.max_calorie_ratio,
        search_limit=settings.search_limit,
        max_recommendations=settings.max_recommendations,
        dishes_per_meal=settings.dishes_per_meal,
    )
