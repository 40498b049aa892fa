"""Food catalog embedding maintenance."""

import logging
from dataclasses import dataclass
from typing import Protocol

from meal_planner.domain.foods import CatalogFood, EmbeddingStats, FoodEmbedding
from meal_planner.services.embeddings import EmbeddingClient

_logger = logging.getLogger(__name__)


class FoodCatalogRepository(Protocol):
    """Persistence interface for catalog foods and their embeddings."""

    def list_foods(self) -> list[CatalogFood]:
        """Return active catalog foods."""

    def upsert_embeddings(self, embeddings: list[FoodEmbedding]) -> None:
        """Insert or replace embeddings keyed by food id."""

    def embedding_stats(self) -> EmbeddingStats:
        """Return the embedding count and last update time."""


@dataclass
class FoodCatalogService:
    """Builds search documents for catalog foods and stores their embeddings."""

    repository: FoodCatalogRepository
    embedding_client: EmbeddingClient
    batch_size: int = 50

    async def refresh_embeddings(self) -> int:
        """Re-embed every catalog food and return how many were stored."""
        foods = self.repository.list_foods()
        if not foods:
            _logger.info("No catalog foods to embed")
            return 0

        stored = 0
        batches = (len(foods) + self.batch_size - 1) // self.batch_size
        for index in range(batches):
            batch = foods[index * self.batch_size : (index + 1) * self.batch_size]
            embeddings = [
                embedding
                for food in batch
                if (embedding := await self._embed_food(food)) is not None
            ]
            if embeddings:
                self.repository.upsert_embeddings(embeddings)
            stored += len(embeddings)
            _logger.info("Processed food batch %s/%s", index + 1, batches)
        return stored

    def embedding_stats(self) -> EmbeddingStats:
        """Return the stored embedding summary."""
        return self.repository.embedding_stats()

    async def _embed_food(self, food: CatalogFood) -> FoodEmbedding | None:
        content = food_document(food)
        try:
            vector = await self.embedding_client.embed(content)
        except Exception:
            _logger.exception("Failed to embed food %s", food.name)
            return None
        return FoodEmbedding(
            food_id=food.id,
            content=content,
            embedding=vector,
            metadata=_food_metadata(food),
        )


def food_document(food: CatalogFood) -> str:
    """Render the text that represents a food in vector search."""
    macros = food.macros
    lines = [
        f"Name: {food.name_vi or food.name}",
        f"Category: {food.category}",
        (
            f"Nutrition: {macros.calories:g} calories, {macros.protein_g:g}g protein, "
            f"{macros.carbs_g:g}g carbs, {macros.fat_g:g}g fat"
        ),
    ]
    if macros.fiber_g:
        lines.append(f"Fiber: {macros.fiber_g:g}g")
    if food.description:
        lines.append(f"Description: {food.description}")
    if food.benefits:
        lines.append(f"Benefits: {food.benefits}")
    if food.meal_slots:
        lines.append(f"Meals: {food.meal_slots}")
    if food.tags:
        lines.append(f"Tags: {', '.join(food.tags)}")
    return "\n".join(lines)


def _food_metadata(food: CatalogFood) -> dict[str, object]:
    return {
        "food_name": food.name,
        "food_name_vi": food.name_vi,
        "category": food.category,
        "meal_time": food.meal_slots,
        "calories": food.macros.calories,
        "protein": food.macros.protein_g,
        "carbs": food.macros.carbs_g,
        "fat": food.macros.fat_g,
        "tags": list(food.tags),
    }
