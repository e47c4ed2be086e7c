# Maps logical categories onto the two Mapbox query shapes.

from pydantic import BaseModel, ConfigDict
from typing import Dict, List, Optional, Tuple

from neighborhood_explorer.models.dto import Bounds, Category, CategoryInfo

DEFAULT_PROVIDER_TOKEN = "restaurant"

# Search Box canonical category ids
CATEGORY_TOKENS: Dict[str, str] = {
    Category.HIGHLIGHTS.value: "tourist_attraction",
    Category.GROCERY.value: "grocery",
    Category.FOOD_DRINK.value: "restaurant",
    Category.PARKS.value: "park",
    Category.SHOPPING.value: "shopping",
    Category.SPORTS.value: "fitness_center",
    Category.ENTERTAINMENT.value: "entertainment",
}

_SEPARATORS = ("-", "_")


class StructuredQuery(BaseModel):
    """Category search: proximity point + provider category token."""
    model_config = ConfigDict(frozen=True)

    category_token: str
    proximity: Tuple[float, float]
    limit: int
    bbox: Optional[Bounds] = None


class FreeTextQuery(BaseModel):
    """Free-text search: proximity point + natural-language phrase."""
    model_config = ConfigDict(frozen=True)

    phrase: str
    proximity: Tuple[float, float]
    limit: int
    bbox: Optional[Bounds] = None


def resolve_category(category: Optional[str]) -> str:
    """Provider token for a logical category; unknown categories get the catch-all."""
    return CATEGORY_TOKENS.get((category or "").strip().lower(), DEFAULT_PROVIDER_TOKEN)


def category_phrase(category: Optional[str]) -> str:
    """'food-drink' -> 'food drink'."""
    phrase = (category or "").strip()
    for separator in _SEPARATORS:
        phrase = phrase.replace(separator, " ")
    return " ".join(phrase.split())


def structured_query(
    category: str,
    proximity: Tuple[float, float],
    limit: int,
    bbox: Optional[Bounds] = None,
) -> StructuredQuery:
    return StructuredQuery(
        category_token=resolve_category(category),
        proximity=proximity,
        limit=limit,
        bbox=bbox,
    )


def free_text_query(
    category: str,
    proximity: Tuple[float, float],
    limit: int,
    bbox: Optional[Bounds] = None,
) -> FreeTextQuery:
    return FreeTextQuery(
        phrase=category_phrase(category) or category_phrase(DEFAULT_PROVIDER_TOKEN),
        proximity=proximity,
        limit=limit,
        bbox=bbox,
    )


def list_categories() -> List[CategoryInfo]:
    return [
        CategoryInfo(
            id=category.value,
            label=category_phrase(category.value).title(),
            provider_token=CATEGORY_TOKENS[category.value],
        )
        for category in Category
    ]
