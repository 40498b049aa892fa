"""Supabase repository for catalog foods, embeddings and vector search."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from meal_planner.domain.foods import (
    CatalogFood,
    EmbeddingStats,
    FoodCandidate,
    FoodEmbedding,
    FoodMacros,
)
from meal_planner.services.candidates import (
    FoodCandidateSource,
    FoodLookup,
    SearchFilters,
)
from meal_planner.services.catalog import FoodCatalogRepository

_FOOD_COLUMNS = (
    "id, food_name, food_name_vi, category, meal_time, calories, protein, carbs, "
    "fat, fiber, description, detailed_benefits, tags"
)


@dataclass
class SupabaseFoodRepository(FoodCandidateSource, FoodLookup, FoodCatalogRepository):
    """Supabase implementation for the food catalog.

    Similarity search goes through the ``match_foods`` Postgres function,
    which joins ``food_embeddings`` to ``foods`` and applies the filters and
    the exclusion list before the limit.
    """

    client: Client

    def search(
        self,
        query_embedding: list[float],
        filters: SearchFilters,
        excluded_ids: Iterable[UUID],
        limit: int,
    ) -> list[FoodCandidate]:
        """Return the foods most similar to the embedding."""
        excluded = {str(food_id) for food_id in excluded_ids}
        response = self.client.rpc(
            "match_foods",
            {
                "query_embedding": query_embedding,
                "match_count": limit,
                "filter_category": filters.category,
                "filter_meal_slot": filters.meal_slot,
                "min_protein": filters.min_protein,
                "max_calories": filters.max_calories,
                "excluded_ids": sorted(excluded),
            },
        ).execute()
        rows = [
            row for row in response.data or [] if str(row["food_id"]) not in excluded
        ]
        rows.sort(key=lambda row: float(row.get("similarity") or 0.0), reverse=True)
        return [_parse_candidate(row) for row in rows[:limit]]

    def get_food(self, food_id: UUID) -> FoodCandidate | None:
        """Return an active catalog food by id."""
        response = (
            self.client.table("foods")
            .select(_FOOD_COLUMNS)
            .eq("id", str(food_id))
            .eq("is_active", True)
            .eq("is_deleted", False)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return _parse_candidate({**row, "food_id": row["id"]})

    def list_foods(self) -> list[CatalogFood]:
        """Return active catalog foods."""
        response = (
            self.client.table("foods")
            .select(_FOOD_COLUMNS)
            .eq("is_active", True)
            .eq("is_deleted", False)
            .order("food_name", desc=False)
            .execute()
        )
        return [_parse_catalog_food(row) for row in response.data or []]

    def upsert_embeddings(self, embeddings: list[FoodEmbedding]) -> None:
        """Insert or replace embeddings keyed by food id."""
        payload = [
            {
                "food_id": str(embedding.food_id),
                "content": embedding.content,
                "embedding": embedding.embedding,
                "metadata": embedding.metadata,
            }
            for embedding in embeddings
        ]
        if payload:
            self.client.table("food_embeddings").upsert(
                payload, on_conflict="food_id"
            ).execute()

    def embedding_stats(self) -> EmbeddingStats:
        """Return the embedding count and last update time."""
        response = (
            self.client.table("food_embeddings")
            .select("updated_at", count="exact")
            .order("updated_at", desc=True)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        last_updated = (
            datetime.fromisoformat(rows[0]["updated_at"])
            if rows and rows[0].get("updated_at")
            else None
        )
        return EmbeddingStats(total=response.count or 0, last_updated=last_updated)


def _macros(row: dict[str, object]) -> FoodMacros:
    return FoodMacros(
        calories=float(row.get("calories") or 0.0),
        protein_g=float(row.get("protein") or 0.0),
        carbs_g=float(row.get("carbs") or 0.0),
        fat_g=float(row.get("fat") or 0.0),
        fiber_g=float(row.get("fiber") or 0.0),
    )


def _parse_candidate(row: dict[str, object]) -> FoodCandidate:
    return FoodCandidate(
        id=UUID(str(row["food_id"])),
        name=str(row.get("food_name") or ""),
        name_vi=row.get("food_name_vi"),
        raw_category=row.get("category"),
        macros=_macros(row),
        similarity=float(row.get("similarity") or 0.0),
    )


def _parse_catalog_food(row: dict[str, object]) -> CatalogFood:
    return CatalogFood(
        id=UUID(str(row["id"])),
        name=str(row.get("food_name") or ""),
        name_vi=row.get("food_name_vi"),
        category=row.get("category"),
        macros=_macros(row),
        meal_slots=row.get("meal_time"),
        description=row.get("description"),
        benefits=row.get("detailed_benefits"),
        tags=list(row.get("tags") or []),
    )
