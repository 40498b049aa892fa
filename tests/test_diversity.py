"""Tests for category caps, backfill, gap detection and merging."""

from meal_planner.domain.categories import FoodCategory
from meal_planner.domain.foods import FoodRecommendation
from meal_planner.services.diversity import (
    CATEGORY_CAPS,
    REPAIR_STRATEGIES,
    backfill,
    category_counts,
    detect_gaps,
    diverse_items,
    enforce_caps,
    finalize,
    merge_replacements,
)
from tests.conftest import make_food


def _rec(name: str, category: str, score: float) -> FoodRecommendation:
    return FoodRecommendation(
        candidate=make_food(name, category),
        score=score,
        reason="",
        serving_grams=100,
        max_calories=600,
    )


def _names(items: tuple[FoodRecommendation, ...]) -> list[str]:
    return [item.candidate.name for item in items]


def test_enforce_caps_sets_aside_over_cap_items() -> None:
    ranked = (
        _rec("Chicken", "protein", 10),
        _rec("Beef", "protein", 9),
        _rec("Tuna", "protein", 8),
        _rec("Pork", "protein", 7),
        _rec("Rice", "carbs", 6),
        _rec("Spinach", "vegetables", 5),
    )

    admitted, overflow = enforce_caps(ranked, CATEGORY_CAPS, limit=5)

    assert _names(admitted) == ["Chicken", "Beef", "Tuna", "Rice"]
    assert _names(overflow) == ["Pork", "Spinach"]


def test_backfill_prefers_unrepresented_categories() -> None:
    ranked = (
        _rec("Chicken", "protein", 10),
        _rec("Beef", "protein", 9),
        _rec("Tuna", "protein", 8),
        _rec("Pork", "protein", 7),
        _rec("Rice", "carbs", 6),
        _rec("Bread", "carbs", 5.5),
        _rec("Spinach", "vegetables", 5),
    )
    admitted, overflow = enforce_caps(ranked, CATEGORY_CAPS, limit=5)

    filled = backfill(admitted, overflow, CATEGORY_CAPS, limit=5)

    assert _names(filled) == ["Chicken", "Beef", "Tuna", "Rice", "Spinach"]


def test_backfill_uses_any_item_under_cap_after_new_categories() -> None:
    admitted = (_rec("Chicken", "protein", 10), _rec("Rice", "carbs", 9))
    overflow = (
        _rec("Beef", "protein", 8),
        _rec("Bread", "carbs", 7),
        _rec("Oats", "carbs", 6),
    )

    filled = backfill(admitted, overflow, CATEGORY_CAPS, limit=5)

    assert _names(filled) == ["Chicken", "Rice", "Beef", "Bread"]
    assert category_counts(filled)[FoodCategory.CARBS] == 2


def test_detect_gaps_must_have_first_and_bounded() -> None:
    only_protein = (_rec("Chicken", "protein", 10),)

    assert detect_gaps(only_protein, max_repairs=3) == (
        FoodCategory.CARBS,
        FoodCategory.VEGETABLES,
        FoodCategory.FRUITS,
    )


def test_detect_gaps_ignores_single_missing_nice_to_have() -> None:
    items = (
        _rec("Chicken", "protein", 10),
        _rec("Rice", "carbs", 9),
        _rec("Spinach", "vegetables", 8),
        _rec("Banana", "fruits", 7),
        _rec("Yogurt", "dairy", 6),
    )

    assert detect_gaps(items, max_repairs=3) == ()


def test_detect_gaps_targets_two_missing_nice_to_haves() -> None:
    items = (
        _rec("Chicken", "protein", 10),
        _rec("Rice", "carbs", 9),
        _rec("Spinach", "vegetables", 8),
        _rec("Banana", "fruits", 7),
    )

    assert detect_gaps(items, max_repairs=3) == (
        FoodCategory.DAIRY,
        FoodCategory.FATS,
    )


def test_merge_replacements_displaces_lowest_duplicated_item() -> None:
    current = (
        _rec("Chicken", "protein", 10),
        _rec("Beef", "protein", 9),
        _rec("Tuna", "protein", 8),
        _rec("Rice", "carbs", 6),
        _rec("Spinach", "vegetables", 5),
    )

    merged = merge_replacements(
        current, [_rec("Banana", "fruits", 4)], CATEGORY_CAPS, limit=5
    )

    assert _names(merged) == ["Chicken", "Beef", "Rice", "Spinach", "Banana"]


def test_nice_to_have_replacement_keeps_sole_representatives() -> None:
    current = (
        _rec("Chicken", "protein", 10),
        _rec("Rice", "carbs", 6),
        _rec("Spinach", "vegetables", 5),
        _rec("Banana", "fruits", 4),
        _rec("Almonds", "fats", 3),
    )

    merged = merge_replacements(
        current, [_rec("Yogurt", "dairy", 2)], CATEGORY_CAPS, limit=5
    )

    assert merged == current


def test_must_have_replacement_displaces_lowest_optional_item() -> None:
    current = (
        _rec("Chicken", "protein", 10),
        _rec("Rice", "carbs", 6),
        _rec("Banana", "fruits", 5),
        _rec("Yogurt", "dairy", 4),
        _rec("Mystery bowl", "other", 3),
    )

    merged = merge_replacements(
        current, [_rec("Broccoli", "vegetables", 2)], CATEGORY_CAPS, limit=5
    )

    assert _names(merged) == ["Chicken", "Rice", "Banana", "Yogurt", "Broccoli"]


def test_must_have_replacement_never_displaces_sole_must_have() -> None:
    current = (
        _rec("Chicken", "protein", 3),
        _rec("Rice", "carbs", 2),
    )

    merged = merge_replacements(
        current, [_rec("Broccoli", "vegetables", 9)], CATEGORY_CAPS, limit=2
    )

    assert merged == current


def test_merge_replacements_displace_sole_when_requested() -> None:
    current = (
        _rec("Chicken", "protein", 10),
        _rec("Rice", "carbs", 6),
        _rec("Banana", "fruits", 4),
    )
    spinach = _rec("Spinach", "vegetables", 2)

    merged = merge_replacements(
        current,
        [spinach],
        CATEGORY_CAPS,
        limit=3,
        protected=[current[0].food_id],
        displace_sole=True,
    )

    assert _names(merged) == ["Chicken", "Rice", "Spinach"]


def test_merge_replacements_never_removes_more_than_added() -> None:
    current = tuple(
        _rec(f"Chicken {index}", "protein", 10 - index) for index in range(3)
    )
    duplicate = current[0]
    over_cap = _rec("Beef", "protein", 20)

    merged = merge_replacements(current, [duplicate, over_cap], CATEGORY_CAPS, limit=3)

    assert merged == current


def test_merge_replacements_respects_max_added() -> None:
    current = (_rec("Chicken", "protein", 10),)
    replacements = [_rec("Spinach", "vegetables", 5), _rec("Kale", "vegetables", 4)]

    merged = merge_replacements(
        current, replacements, CATEGORY_CAPS, limit=5, max_added=1
    )

    assert _names(merged) == ["Chicken", "Spinach"]


def test_diverse_items_and_finalize() -> None:
    items = (
        _rec("Brown rice", "carbs", 3),
        _rec("Steamed broccoli", "vegetables", 9),
        _rec("Grilled chicken", "protein", 12),
        _rec("Greek yogurt", "dairy", 1),
    )

    assert _names(diverse_items(items)) == ["Steamed broccoli", "Greek yogurt"]
    assert _names(finalize(items, limit=2)) == ["Grilled chicken", "Steamed broccoli"]


def test_repair_strategies_relax_filters_in_order() -> None:
    flags = [
        (strategy.use_category_filter, strategy.use_slot_filter)
        for strategy in REPAIR_STRATEGIES
    ]

    assert flags == [(True, True), (True, False), (False, True), (False, False)]
    assert REPAIR_STRATEGIES[-1].pool_size > REPAIR_STRATEGIES[0].pool_size
