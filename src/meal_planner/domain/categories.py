"""Food group canonicalization shared by scoring, capping and gap detection.

Catalog category strings are not reliable: they come in singular and plural
forms, in English and Vietnamese, and are sometimes missing. Every decision
that depends on a food group goes through ``canonical_category`` so that the
scorer, the cap walk and the gap detector always agree.
"""

import re
import unicodedata
from collections.abc import Iterable
from enum import Enum
from functools import lru_cache


class FoodCategory(Enum):
    """Canonical food groups."""

    PROTEIN = "protein"
    CARBS = "carbs"
    VEGETABLES = "vegetables"
    FRUITS = "fruits"
    DAIRY = "dairy"
    FATS = "fats"
    OTHER = "other"


class DiversityKind(Enum):
    """Food types that make lunch and dinner more balanced."""

    VEGETABLE = "vegetable"
    ROOT_VEGETABLE = "root_vegetable"
    NUT_SEED = "nut_seed"
    DAIRY = "dairy"


_CATEGORY_ALIASES: dict[FoodCategory, frozenset[str]] = {
    FoodCategory.PROTEIN: frozenset(
        {
            "protein",
            "proteins",
            "meat",
            "meats",
            "poultry",
            "seafood",
            "fish",
            "egg",
            "eggs",
            "đạm",
            "chất đạm",
            "thịt",
            "hải sản",
        }
    ),
    FoodCategory.CARBS: frozenset(
        {
            "carb",
            "carbs",
            "carbohydrate",
            "carbohydrates",
            "grain",
            "grains",
            "starch",
            "starches",
            "tinh bột",
            "ngũ cốc",
        }
    ),
    FoodCategory.VEGETABLES: frozenset(
        {
            "vegetable",
            "vegetables",
            "veg",
            "veggie",
            "veggies",
            "greens",
            "rau",
            "rau củ",
            "rau xanh",
        }
    ),
    FoodCategory.FRUITS: frozenset(
        {"fruit", "fruits", "trái cây", "hoa quả"}
    ),
    FoodCategory.DAIRY: frozenset(
        {"dairy", "dairies", "milk", "milk product", "milk products", "sữa"}
    ),
    FoodCategory.FATS: frozenset(
        {
            "fat",
            "fats",
            "healthy fat",
            "healthy fats",
            "oil",
            "oils",
            "nut",
            "nuts",
            "chất béo",
        }
    ),
}

# Checked in order, first match wins.
NAME_RULES: tuple[tuple[FoodCategory, frozenset[str]], ...] = (
    (
        FoodCategory.DAIRY,
        frozenset(
            {
                "sữa",
                "sữa chua",
                "phô mai",
                "milk",
                "yogurt",
                "yoghurt",
                "cheese",
                "kefir",
                "cottage",
            }
        ),
    ),
    (
        FoodCategory.PROTEIN,
        frozenset(
            {
                "thịt",
                "gà",
                "bò",
                "heo",
                "lợn",
                "cá",
                "tôm",
                "mực",
                "trứng",
                "đậu phụ",
                "đậu hũ",
                "ức gà",
                "chicken",
                "beef",
                "pork",
                "fish",
                "salmon",
                "tuna",
                "shrimp",
                "egg",
                "eggs",
                "tofu",
                "turkey",
                "steak",
            }
        ),
    ),
    (
        FoodCategory.CARBS,
        frozenset(
            {
                "cơm",
                "gạo",
                "bún",
                "phở",
                "miến",
                "xôi",
                "bánh mì",
                "yến mạch",
                "khoai",
                "khoai lang",
                "rice",
                "bread",
                "noodle",
                "noodles",
                "pasta",
                "oat",
                "oats",
                "oatmeal",
                "potato",
                "potatoes",
                "quinoa",
                "cereal",
            }
        ),
    ),
    (
        FoodCategory.VEGETABLES,
        frozenset(
            {
                "rau",
                "cải",
                "bông cải",
                "súp lơ",
                "cà rốt",
                "dưa leo",
                "dưa chuột",
                "cà chua",
                "bí",
                "nấm",
                "salad",
                "broccoli",
                "spinach",
                "carrot",
                "carrots",
                "cucumber",
                "tomato",
                "tomatoes",
                "cabbage",
                "kale",
                "lettuce",
                "mushroom",
                "mushrooms",
                "vegetable",
                "vegetables",
            }
        ),
    ),
    (
        FoodCategory.FRUITS,
        frozenset(
            {
                "chuối",
                "táo",
                "cam",
                "xoài",
                "dưa hấu",
                "bưởi",
                "nho",
                "ổi",
                "banana",
                "apple",
                "orange",
                "mango",
                "berries",
                "blueberries",
                "strawberries",
                "watermelon",
                "grape",
                "grapes",
                "fruit",
            }
        ),
    ),
    (
        FoodCategory.FATS,
        frozenset(
            {
                "hạt",
                "lạc",
                "đậu phộng",
                "bơ",
                "dầu",
                "óc chó",
                "hạnh nhân",
                "avocado",
                "almond",
                "almonds",
                "walnut",
                "walnuts",
                "peanut",
                "peanuts",
                "cashew",
                "cashews",
                "olive oil",
                "nuts",
                "seeds",
                "butter",
            }
        ),
    ),
)

_NAME_KEYWORDS = dict(NAME_RULES)

_DIVERSITY_KEYWORDS: dict[DiversityKind, frozenset[str]] = {
    DiversityKind.ROOT_VEGETABLE: frozenset(
        {
            "củ",
            "khoai",
            "khoai lang",
            "khoai môn",
            "cà rốt",
            "củ cải",
            "sắn",
            "potato",
            "potatoes",
            "sweet potato",
            "carrot",
            "carrots",
            "beet",
            "beetroot",
            "yam",
            "cassava",
            "taro",
        }
    ),
    DiversityKind.VEGETABLE: _NAME_KEYWORDS[FoodCategory.VEGETABLES],
    DiversityKind.NUT_SEED: frozenset(
        {
            "hạt",
            "lạc",
            "đậu phộng",
            "óc chó",
            "hạnh nhân",
            "hạt điều",
            "almond",
            "almonds",
            "walnut",
            "walnuts",
            "peanut",
            "peanuts",
            "cashew",
            "cashews",
            "pistachio",
            "chia",
            "seed",
            "seeds",
            "nut",
            "nuts",
        }
    ),
    DiversityKind.DAIRY: _NAME_KEYWORDS[FoodCategory.DAIRY],
}


def normalize_text(value: str) -> str:
    """Lowercase, NFC-normalize and collapse separators."""
    text = unicodedata.normalize("NFC", value).casefold()
    text = re.sub(r"[_\-/,;]+", " ", text)
    return " ".join(text.split())


@lru_cache(maxsize=None)
def _keyword_pattern(keywords: frozenset[str]) -> re.Pattern[str]:
    ordered = sorted(keywords, key=len, reverse=True)
    alternatives = "|".join(re.escape(normalize_text(word)) for word in ordered)
    return re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)")


def matches_any(names: Iterable[str], keywords: frozenset[str]) -> bool:
    """Return True when a keyword appears as a whole word in any name."""
    pattern = _keyword_pattern(keywords)
    return any(pattern.search(normalize_text(name)) for name in names if name)


def normalize_category(raw: str | None) -> FoodCategory | None:
    """Map a raw catalog category string to a canonical category."""
    if not raw:
        return None
    cleaned = normalize_text(raw)
    for category, aliases in _CATEGORY_ALIASES.items():
        if cleaned in aliases:
            return category
    return None


def infer_category(names: Iterable[str]) -> FoodCategory:
    """Infer a category from localized names using the ordered rule table."""
    names = tuple(names)
    for category, keywords in NAME_RULES:
        if matches_any(names, keywords):
            return category
    return FoodCategory.OTHER


def canonical_category(raw: str | None, names: Iterable[str] = ()) -> FoodCategory:
    """Return the canonical category, inferring from names when needed."""
    normalized = normalize_category(raw)
    if normalized is not None:
        return normalized
    return infer_category(names)


def diversity_kind(
    category: FoodCategory, names: Iterable[str]
) -> DiversityKind | None:
    """Classify a food as vegetable, root vegetable, nut/seed or dairy."""
    names = tuple(names)
    if matches_any(names, _DIVERSITY_KEYWORDS[DiversityKind.ROOT_VEGETABLE]):
        return DiversityKind.ROOT_VEGETABLE
    if category is FoodCategory.VEGETABLES or matches_any(
        names, _DIVERSITY_KEYWORDS[DiversityKind.VEGETABLE]
    ):
        return DiversityKind.VEGETABLE
    if matches_any(names, _DIVERSITY_KEYWORDS[DiversityKind.NUT_SEED]):
        return DiversityKind.NUT_SEED
    if category is FoodCategory.DAIRY or matches_any(
        names, _DIVERSITY_KEYWORDS[DiversityKind.DAIRY]
    ):
        return DiversityKind.DAIRY
    return None
