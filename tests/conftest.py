"""
Shared fixtures: the default neighborhood, Mapbox feature builders and a
mocked search provider.
"""
import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from neighborhood_explorer.models.dto import FreeTextResult, StructuredResult
from neighborhood_explorer.services.neighborhoods import registry
from neighborhood_explorer.services.poi_service import POIDiscoveryPipeline


@pytest.fixture
def lake_nona():
    return registry.lookup("lake-nona-south")


@pytest.fixture
def structured_feature():
    """Build a Search Box category feature."""
    def build(mapbox_id, name, lng, lat, category="park"):
        return {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [lng, lat]},
            "properties": {
                "mapbox_id": mapbox_id,
                "name": name,
                "full_address": f"{name}, 100 Main St, Orlando, Florida",
                "poi_category": [category],
            },
        }
    return build


@pytest.fixture
def text_feature():
    """Build a Geocoding v5 POI feature."""
    def build(feature_id, name, lng, lat, address=None):
        feature = {
            "id": feature_id,
            "type": "Feature",
            "text": name,
            "place_name": f"{name}, 200 Lake Nona Blvd, Orlando, Florida",
            "center": [lng, lat],
            "geometry": {"type": "Point", "coordinates": [lng, lat]},
            "properties": {"category": "park, garden"},
        }
        if address:
            feature["properties"]["address"] = address
        return feature
    return build


@pytest.fixture
def structured():
    def build(*features):
        return StructuredResult(features=list(features))
    return build


@pytest.fixture
def free_text():
    def build(*features):
        return FreeTextResult(features=list(features))
    return build


@pytest.fixture
def provider():
    """Search provider whose calls return no features unless overridden."""
    mock = MagicMock()
    mock.category_search = AsyncMock(return_value=StructuredResult())
    mock.text_search = AsyncMock(return_value=FreeTextResult())
    return mock


@pytest.fixture
def pipeline(provider):
    return POIDiscoveryPipeline(provider, rng=random.Random(7))
