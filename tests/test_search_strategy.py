import pytest

from neighborhood_explorer.models.dto import Bounds, Category
from neighborhood_explorer.services.search_strategy import (
    CATEGORY_TOKENS,
    DEFAULT_PROVIDER_TOKEN,
    category_phrase,
    free_text_query,
    list_categories,
    resolve_category,
    structured_query,
)


@pytest.mark.parametrize("category", [c.value for c in Category])
def test_every_category_has_a_token(category):
    assert resolve_category(category) == CATEGORY_TOKENS[category]


@pytest.mark.parametrize("category", ["nightlife", "", None, "   "])
def test_unknown_category_maps_to_catch_all(category):
    assert resolve_category(category) == DEFAULT_PROVIDER_TOKEN


def test_resolve_category_ignores_case_and_padding():
    assert resolve_category(" Parks ") == "park"


def test_category_phrase_replaces_separators():
    assert category_phrase("food-drink") == "food drink"
    assert category_phrase("late_night-food") == "late night food"
    assert category_phrase("parks") == "parks"


def test_structured_query_shape():
    bbox = Bounds(sw=(-81.32, 28.32), ne=(-81.22, 28.42))
    query = structured_query("food-drink", (-81.2737, 28.3722), 12, bbox=bbox)
    assert query.category_token == "restaurant"
    assert query.proximity == (-81.2737, 28.3722)
    assert query.limit == 12
    assert query.bbox == bbox


def test_free_text_query_shape():
    query = free_text_query("food-drink", (-81.2737, 28.3722), 8)
    assert query.phrase == "food drink"
    assert query.bbox is None
    assert query.limit == 8


def test_list_categories():
    categories = list_categories()
    assert [c.id for c in categories] == [c.value for c in Category]
    assert categories[2].label == "Food Drink"
    assert categories[2].provider_token == "restaurant"
