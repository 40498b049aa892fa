"""Meal recommendation engine: retrieval, scoring and diversity repair."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import UUID

from meal_planner.domain.categories import FoodCategory, diversity_kind
from meal_planner.domain.errors import UpstreamUnavailableError
from meal_planner.domain.foods import FoodCandidate, FoodRecommendation
from meal_planner.services.candidates import FoodCandidateSource, SearchFilters
from meal_planner.services.diversity import (
    CATEGORY_CAPS,
    REPAIR_STRATEGIES,
    Recommendations,
    backfill,
    detect_gaps,
    diverse_items,
    enforce_caps,
    finalize,
    merge_replacements,
)
from meal_planner.services.embeddings import EmbeddingService
from meal_planner.services.scoring import (
    MealContext,
    RecommendationTuning,
    build_meal_query,
    rank,
    recommend,
)

_logger = logging.getLogger(__name__)

CATEGORY_QUERIES = {
    FoodCategory.PROTEIN: "High-protein dishes with lean meat, fish, eggs or tofu.",
    FoodCategory.CARBS: "Complex carbohydrates such as rice, oats, potatoes or bread.",
    FoodCategory.VEGETABLES: "Fresh green vegetables and leafy salads rich in fiber.",
    FoodCategory.FRUITS: "Fresh fruit rich in vitamins and natural sugars.",
    FoodCategory.DAIRY: "Dairy foods such as yogurt, milk and cheese.",
    FoodCategory.FATS: "Healthy fats such as avocado, olive oil, nuts and seeds.",
}
VEGETABLE_QUERY = (
    "Boiled, steamed or stir-fried green vegetables and root vegetables such as "
    "broccoli, spinach, carrots, pumpkin and sweet potato."
)
NUT_DAIRY_QUERY = "Nuts, seeds, yogurt or milk to add to a balanced meal."
VEGETABLE_POOL_SIZE = 30


@dataclass
class MealRecommendationEngine:
    """Recommends a small, category-balanced set of foods for one meal slot."""

    embeddings: EmbeddingService
    source: FoodCandidateSource
    tuning: RecommendationTuning = field(default_factory=RecommendationTuning)
    caps: dict[FoodCategory, int] = field(default_factory=lambda: dict(CATEGORY_CAPS))

    async def recommend(
        self, context: MealContext, excluded_ids: Iterable[UUID] = ()
    ) -> Recommendations:
        """Return up to ``max_recommendations`` foods ordered by score.

        Failures of the primary embedding or search raise
        ``UpstreamUnavailableError``; failures during diversity repair only
        skip that repair.
        """
        excluded = frozenset(excluded_ids)
        limit = self.tuning.max_recommendations
        max_calories = context.target_calories * self.tuning.max_calorie_ratio

        try:
            embedding = await self.embeddings.embed(build_meal_query(context))
            candidates = self.source.search(
                embedding,
                SearchFilters(meal_slot=context.slot.code, max_calories=max_calories),
                excluded,
                self.tuning.search_limit,
            )
        except Exception as exc:
            raise UpstreamUnavailableError(
                f"Food search failed for slot {context.slot.code}"
            ) from exc

        ranked = rank(self._score(candidates, context, max_calories))
        admitted, overflow = enforce_caps(ranked, self.caps, limit)
        items = backfill(admitted, overflow, self.caps, limit)

        replacements: list[FoodRecommendation] = []
        for category in detect_gaps(items, self.tuning.max_gap_repairs):
            replacement = await self._repair_gap(
                context, category, items, excluded, max_calories
            )
            if replacement is not None:
                replacements.append(replacement)
        if replacements:
            items = merge_replacements(items, replacements, self.caps, limit)

        if context.slot.is_main_meal:
            items = await self._ensure_vegetables(
                context, items, excluded, max_calories
            )

        result = finalize(items, limit)
        _logger.info(
            "Recommended %s foods for slot=%s from %s candidates (repairs=%s)",
            len(result),
            context.slot.code,
            len(candidates),
            len(replacements),
        )
        return result

    def _score(
        self,
        candidates: Iterable[FoodCandidate],
        context: MealContext,
        max_calories: float,
    ) -> list[FoodRecommendation]:
        return [
            recommend(candidate, context, self.tuning, max_calories)
            for candidate in candidates
        ]

    async def _repair_gap(
        self,
        context: MealContext,
        category: FoodCategory,
        items: Recommendations,
        excluded: frozenset[UUID],
        max_calories: float,
    ) -> FoodRecommendation | None:
        """Find the best food of a missing category, or None."""
        taken = excluded | {item.food_id for item in items}
        ceiling = max_calories * self.tuning.repair_calorie_multiplier
        try:
            embedding = await self.embeddings.embed(CATEGORY_QUERIES[category])
            for strategy in REPAIR_STRATEGIES:
                filters = SearchFilters(
                    category=category.value if strategy.use_category_filter else None,
                    meal_slot=context.slot.code if strategy.use_slot_filter else None,
                    max_calories=ceiling,
                )
                found = self.source.search(
                    embedding, filters, taken, strategy.pool_size
                )
                usable = [
                    candidate
                    for candidate in found
                    if candidate.category is category and candidate.id not in taken
                ]
                if usable:
                    best = rank(self._score(usable, context, max_calories))[0]
                    _logger.info(
                        "Filled %s gap in slot=%s via %s",
                        category.value,
                        context.slot.code,
                        strategy.name,
                    )
                    return best
        except Exception as exc:
            _logger.warning(
                "Gap repair for %s in slot=%s failed: %s",
                category.value,
                context.slot.code,
                exc,
            )
        return None

    async def _ensure_vegetables(
        self,
        context: MealContext,
        items: Recommendations,
        excluded: frozenset[UUID],
        max_calories: float,
    ) -> Recommendations:
        """Make sure lunch and dinner carry vegetables, nuts or dairy.

        On a full slot each added food displaces the lowest scorer, so the
        slot size never grows.
        """
        present = diverse_items(items)
        if len(present) >= 2:
            return items
        if present:
            wanted, queries = 1, (VEGETABLE_QUERY,)
        else:
            wanted = self.tuning.max_vegetable_swaps
            queries = (VEGETABLE_QUERY, NUT_DAIRY_QUERY)

        for query in queries:
            found = await self._search_diverse(
                context, query, items, excluded, max_calories
            )
            merged = merge_replacements(
                items,
                found,
                self.caps,
                self.tuning.max_recommendations,
                protected=[item.food_id for item in present],
                max_added=wanted,
                displace_sole=True,
            )
            if len(diverse_items(merged)) > len(present):
                return merged
        _logger.warning(
            "No vegetable, nut or dairy food added for slot=%s", context.slot.code
        )
        return items

    async def _search_diverse(
        self,
        context: MealContext,
        query: str,
        items: Recommendations,
        excluded: frozenset[UUID],
        max_calories: float,
    ) -> Recommendations:
        taken = excluded | {item.food_id for item in items}
        filters = SearchFilters(
            max_calories=max_calories * self.tuning.repair_calorie_multiplier
        )
        try:
            embedding = await self.embeddings.embed(query)
            found = self.source.search(embedding, filters, taken, VEGETABLE_POOL_SIZE)
        except Exception as exc:
            _logger.warning(
                "Vegetable search for slot=%s failed: %s", context.slot.code, exc
            )
            return ()
        usable = [
            candidate
            for candidate in found
            if candidate.id not in taken
            and diversity_kind(candidate.category, candidate.names) is not None
        ]
        return rank(self._score(usable, context, max_calories))
