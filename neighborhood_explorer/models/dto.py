# Data models for neighborhoods, provider results, POIs and the HTTP surface.
# Coordinates are always (longitude, latitude), matching Mapbox/GeoJSON order.

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from neighborhood_explorer.core.config import settings
from neighborhood_explorer.utils.geo_filter import contains_point

LngLat = Tuple[float, float]


# --- Geography ---

class Bounds(BaseModel):
    """Axis-aligned rectangle given by its southwest and northeast corners."""
    model_config = ConfigDict(frozen=True)

    sw: LngLat = Field(..., description="Southwest corner (lng, lat).")
    ne: LngLat = Field(..., description="Northeast corner (lng, lat).")

    @model_validator(mode="after")
    def check_corners(self) -> "Bounds":
        if self.sw[0] > self.ne[0] or self.sw[1] > self.ne[1]:
            raise ValueError("southwest corner must not exceed northeast corner")
        return self

    def as_bbox_param(self) -> str:
        """Render as Mapbox `bbox` query value: minLng,minLat,maxLng,maxLat."""
        return f"{self.sw[0]},{self.sw[1]},{self.ne[0]},{self.ne[1]}"


class Neighborhood(BaseModel):
    """Immutable neighborhood record from the static registry."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique slug.")
    name: str = Field(..., description="Display name.")
    center: LngLat = Field(..., description="Center point (lng, lat).")
    boundary: Tuple[LngLat, ...] = Field(..., description="Closed outline ring.")
    bounds: Bounds = Field(..., description="Rectangular pan/zoom and search limit.")
    default_zoom: float = Field(..., gt=0, description="Initial map zoom.")

    @model_validator(mode="after")
    def check_geometry(self) -> "Neighborhood":
        if len(self.boundary) < 4 or self.boundary[0] != self.boundary[-1]:
            raise ValueError(f"boundary ring of '{self.id}' is not closed")
        if not contains_point(self.bounds, self.center):
            raise ValueError(f"center of '{self.id}' lies outside its bounds")
        return self


class NeighborhoodSummary(BaseModel):
    id: str
    name: str
    center: LngLat
    default_zoom: float


class Category(str, Enum):
    HIGHLIGHTS = "highlights"
    GROCERY = "grocery"
    FOOD_DRINK = "food-drink"
    PARKS = "parks"
    SHOPPING = "shopping"
    SPORTS = "sports"
    ENTERTAINMENT = "entertainment"


class CategoryInfo(BaseModel):
    id: str
    label: str
    provider_token: str


# --- Provider results ---

class StructuredResult(BaseModel):
    """Features returned by the Search Box category endpoint."""
    kind: Literal["structured"] = "structured"
    features: List[Dict[str, Any]] = Field(default_factory=list)


class FreeTextResult(BaseModel):
    """Features returned by the Geocoding free-text endpoint."""
    kind: Literal["free_text"] = "free_text"
    features: List[Dict[str, Any]] = Field(default_factory=list)


ProviderResult = Annotated[Union[StructuredResult, FreeTextResult], Field(discriminator="kind")]


class RawCandidate(BaseModel):
    """A provider record reduced to the fields discovery cares about.

    Every field may be missing; nothing here is trusted yet.
    """
    id: Optional[str] = None
    coordinates: Optional[Any] = None
    center: Optional[Any] = None
    name: Optional[str] = None
    address: Optional[str] = None
    place_name: Optional[str] = None
    categories: List[str] = Field(default_factory=list)


# --- Canonical POI ---

class POI(BaseModel):
    """Canonical point of interest handed to the presentation layer.

    rating, reviews, price_level, is_open and image_url are placeholders
    synthesized for display; they do not come from any business data source.
    """
    id: str = Field(..., description="Provider id or generated fallback.")
    name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    category: str
    coordinates: LngLat
    distance_meters: Optional[float] = Field(None, description="Distance from the neighborhood center.")
    rating: float = Field(..., ge=4.0, le=4.9)
    reviews: int = Field(..., ge=50, le=549)
    price_level: str
    is_open: bool
    image_url: str


class DiscoveryStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    STALE = "stale"


class TierAttempt(BaseModel):
    """Bookkeeping for one fallback tier."""
    tier: int
    query: Literal["structured", "free_text"]
    raw_count: int = 0
    qualified_count: int = 0
    failed: bool = False


class DiscoveryResult(BaseModel):
    status: DiscoveryStatus
    tier: Optional[int] = None
    pois: List[POI] = Field(default_factory=list)
    viewport: Bounds
    attempts: List[TierAttempt] = Field(default_factory=list)
    message: Optional[str] = None

    @property
    def poi_ids(self) -> List[str]:
        return [poi.id for poi in self.pois]


# --- Sessions ---

class DiscoverySession(BaseModel):
    """Per-client discovery state, replaced on every commit.

    `generation` increases with every request; a result may only be committed
    for the generation that is current at commit time.
    """
    model_config = ConfigDict(frozen=True)

    session_id: str
    neighborhood_id: Optional[str] = None
    category: Optional[str] = None
    generation: int = 0
    committed_generation: int = 0
    status: Optional[DiscoveryStatus] = None
    tier: Optional[int] = None
    pois: Tuple[POI, ...] = ()
    viewport: Optional[Bounds] = None

    def begin(self, neighborhood_id: str, category: str) -> "DiscoverySession":
        return self.model_copy(update={
            "neighborhood_id": neighborhood_id,
            "category": category,
            "generation": self.generation + 1,
        })

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def commit(self, generation: int, result: DiscoveryResult) -> "DiscoverySession":
        """Install `result` if it belongs to the current generation, else return self unchanged."""
        if not self.is_current(generation):
            return self
        return self.model_copy(update={
            "committed_generation": generation,
            "status": result.status,
            "tier": result.tier,
            "pois": tuple(result.pois),
            "viewport": result.viewport,
        })


# --- API Request / Response Models ---

class DiscoverRequest(BaseModel):
    """Request model for the /api/discover endpoint."""
    neighborhood_id: Optional[str] = Field(None, description="Registry id; the default neighborhood is used when unknown.")
    category: str = Field(default_factory=lambda: settings.DEFAULT_CATEGORY, description="Logical category.")
    access_token: Optional[str] = Field(None, description="Mapbox access token.")


class DiscoverResponse(BaseModel):
    status: DiscoveryStatus
    tier: Optional[int] = None
    neighborhood_id: str
    category: str
    generation: int
    pois: List[POI] = Field(default_factory=list)
    viewport: Optional[Bounds] = None
    message: Optional[str] = None


# --- Error Response Model ---

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="A machine-readable error code.")
    detail: str = Field(..., description="A human-readable explanation.")
