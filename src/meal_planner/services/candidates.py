"""Food candidate retrieval contract."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from meal_planner.domain.foods import FoodCandidate


@dataclass(frozen=True)
class SearchFilters:
    """Optional relational filters applied alongside vector similarity."""

    category: str | None = None
    meal_slot: str | None = None
    min_protein: float | None = None
    max_calories: float | None = None


class FoodCandidateSource(Protocol):
    """Vector-similarity search over the food catalog.

    Results are ordered by descending similarity. Filters that match nothing
    yield an empty list. ``excluded_ids`` is applied before ``limit``.
    """

    def search(
        self,
        query_embedding: list[float],
        filters: SearchFilters,
        excluded_ids: Iterable[UUID],
        limit: int,
    ) -> list[FoodCandidate]:
        """Return up to ``limit`` candidates most similar to the embedding."""


class FoodLookup(Protocol):
    """Direct catalog reads by id."""

    def get_food(self, food_id: UUID) -> FoodCandidate | None:
        """Return an active catalog food, or None."""
