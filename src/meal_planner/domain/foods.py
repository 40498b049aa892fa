"""Domain models for catalog foods and recommendations."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from meal_planner.domain.categories import FoodCategory, canonical_category


@dataclass(frozen=True)
class FoodMacros:
    """Macronutrient profile per 100 g."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float = 0.0


@dataclass(frozen=True)
class FoodCandidate:
    """A catalog food returned by similarity search."""

    id: UUID
    name: str
    name_vi: str | None
    raw_category: str | None
    macros: FoodMacros
    similarity: float = 0.0

    @property
    def category(self) -> FoodCategory:
        """Return the canonical category."""
        return canonical_category(self.raw_category, self.names)

    @property
    def names(self) -> tuple[str, ...]:
        """Return all localized names."""
        return tuple(name for name in (self.name_vi, self.name) if name)

    @property
    def display_name(self) -> str:
        """Return the localized name, falling back to the default name."""
        return self.name_vi or self.name


@dataclass(frozen=True)
class FoodRecommendation:
    """A scored candidate with a suggested serving."""

    candidate: FoodCandidate
    score: float
    reason: str
    serving_grams: float
    max_calories: float

    @property
    def food_id(self) -> UUID:
        """Return the catalog food id."""
        return self.candidate.id

    @property
    def category(self) -> FoodCategory:
        """Return the candidate's canonical category."""
        return self.candidate.category


@dataclass(frozen=True)
class CatalogFood:
    """Catalog entry used to build search documents."""

    id: UUID
    name: str
    name_vi: str | None
    category: str | None
    macros: FoodMacros
    meal_slots: str | None = None
    description: str | None = None
    benefits: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FoodEmbedding:
    """Search document and embedding for a catalog food."""

    food_id: UUID
    content: str
    embedding: list[float]
    metadata: dict[str, object]


@dataclass(frozen=True)
class EmbeddingStats:
    """Summary of the stored food embeddings."""

    total: int
    last_updated: datetime | None
