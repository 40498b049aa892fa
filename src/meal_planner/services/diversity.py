"""Category caps, backfill, gap detection and replacement merging.

Every stage takes and returns immutable tuples of recommendations ordered by
score, so each step can be exercised in isolation.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from meal_planner.domain.categories import FoodCategory, diversity_kind
from meal_planner.domain.foods import FoodRecommendation

CATEGORY_CAPS: dict[FoodCategory, int] = {
    FoodCategory.PROTEIN: 3,
    FoodCategory.CARBS: 2,
    FoodCategory.VEGETABLES: 2,
    FoodCategory.FRUITS: 1,
    FoodCategory.DAIRY: 1,
    FoodCategory.FATS: 1,
    FoodCategory.OTHER: 1,
}

MUST_HAVE = (FoodCategory.PROTEIN, FoodCategory.CARBS, FoodCategory.VEGETABLES)
NICE_TO_HAVE = (FoodCategory.FRUITS, FoodCategory.DAIRY, FoodCategory.FATS)
NICE_TO_HAVE_MIN_MISSING = 2

Recommendations = tuple[FoodRecommendation, ...]


@dataclass(frozen=True)
class RetrievalStrategy:
    """One step of the gap-repair fallback chain."""

    name: str
    use_category_filter: bool
    use_slot_filter: bool
    pool_size: int


REPAIR_STRATEGIES: tuple[RetrievalStrategy, ...] = (
    RetrievalStrategy("category_and_slot", True, True, 10),
    RetrievalStrategy("category_only", True, False, 10),
    RetrievalStrategy("slot_only", False, True, 30),
    RetrievalStrategy("unfiltered", False, False, 60),
)


def category_counts(items: Iterable[FoodRecommendation]) -> Counter[FoodCategory]:
    """Count items per canonical category."""
    return Counter(item.category for item in items)


def _under_cap(
    category: FoodCategory,
    counts: Counter[FoodCategory],
    caps: dict[FoodCategory, int],
) -> bool:
    return counts[category] < caps.get(category, 1)


def enforce_caps(
    ranked: Recommendations,
    caps: dict[FoodCategory, int],
    limit: int,
) -> tuple[Recommendations, Recommendations]:
    """Admit the top ``limit`` items while their category is under its cap.

    Returns the admitted items and the overflow: over-cap items set aside from
    the top ``limit`` followed by the ranked items below it, in score order.
    """
    counts: Counter[FoodCategory] = Counter()
    admitted: list[FoodRecommendation] = []
    set_aside: list[FoodRecommendation] = []
    for item in ranked[:limit]:
        if _under_cap(item.category, counts, caps):
            admitted.append(item)
            counts[item.category] += 1
        else:
            set_aside.append(item)
    overflow = sorted(
        [*set_aside, *ranked[limit:]], key=lambda item: item.score, reverse=True
    )
    return tuple(admitted), tuple(overflow)


def backfill(
    admitted: Recommendations,
    overflow: Recommendations,
    caps: dict[FoodCategory, int],
    limit: int,
) -> Recommendations:
    """Refill a short list from overflow.

    Categories not yet represented are preferred; afterwards any item whose
    category is still under its cap is accepted.
    """
    items = list(admitted)
    counts = category_counts(items)
    remaining = list(overflow)

    for unrepresented_only in (True, False):
        for item in list(remaining):
            if len(items) >= limit:
                return tuple(items)
            if unrepresented_only and counts[item.category]:
                continue
            if not _under_cap(item.category, counts, caps):
                continue
            items.append(item)
            counts[item.category] += 1
            remaining.remove(item)
    return tuple(items)


def detect_gaps(
    items: Recommendations, max_repairs: int
) -> tuple[FoodCategory, ...]:
    """Categories to repair, must-haves first.

    Missing nice-to-have categories only count when at least two are absent.
    """
    counts = category_counts(items)
    gaps = [category for category in MUST_HAVE if not counts[category]]
    missing_nice = [category for category in NICE_TO_HAVE if not counts[category]]
    if len(missing_nice) >= NICE_TO_HAVE_MIN_MISSING:
        gaps.extend(missing_nice)
    return tuple(gaps[:max_repairs])


def merge_replacements(
    current: Recommendations,
    replacements: Iterable[FoodRecommendation],
    caps: dict[FoodCategory, int],
    limit: int,
    protected: Iterable[UUID] = (),
    max_added: int | None = None,
    displace_sole: bool = False,
) -> Recommendations:
    """Add replacements, displacing the lowest scorers when the list is full.

    A replacement is skipped when its food is already listed or its category
    is at its cap. Each accepted replacement removes at most one item, never
    one that was just added or is protected. Items whose category appears more
    than once are displaced first. Next, a must-have replacement may displace
    the only item of a nice-to-have or other category. Any remaining sole item
    is displaced only when ``displace_sole`` is set; otherwise the
    replacement is skipped.
    """
    items = list(current)
    keep = set(protected)
    added = 0
    for replacement in replacements:
        if max_added is not None and added >= max_added:
            break
        if any(item.food_id == replacement.food_id for item in items):
            continue
        counts = category_counts(items)
        if not _under_cap(replacement.category, counts, caps):
            continue
        if len(items) >= limit:
            victim = _lowest_scorer(
                items, counts, keep, replacement.category, displace_sole
            )
            if victim is None:
                continue
            items.remove(victim)
        items.append(replacement)
        keep.add(replacement.food_id)
        added += 1
    return tuple(sorted(items, key=lambda item: item.score, reverse=True))


def _lowest_scorer(
    items: list[FoodRecommendation],
    counts: Counter[FoodCategory],
    keep: set[UUID],
    incoming: FoodCategory,
    displace_sole: bool,
) -> FoodRecommendation | None:
    candidates = [item for item in items if item.food_id not in keep]
    duplicated = [item for item in candidates if counts[item.category] > 1]
    optional = [item for item in candidates if item.category not in MUST_HAVE]
    pool = (
        duplicated
        or (optional if incoming in MUST_HAVE else [])
        or (candidates if displace_sole else [])
    )
    if not pool:
        return None
    return min(pool, key=lambda item: item.score)


def is_diverse(item: FoodRecommendation) -> bool:
    """Return True for vegetable, root vegetable, nut/seed or dairy foods."""
    return diversity_kind(item.category, item.candidate.names) is not None


def diverse_items(items: Iterable[FoodRecommendation]) -> Recommendations:
    """Items counted toward the lunch and dinner vegetable guarantee."""
    return tuple(item for item in items if is_diverse(item))


def finalize(items: Iterable[FoodRecommendation], limit: int) -> Recommendations:
    """Sort by score descending and truncate."""
    return tuple(sorted(items, key=lambda item: item.score, reverse=True))[:limit]
