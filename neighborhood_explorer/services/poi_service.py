# POI discovery: tiered Mapbox searches around a neighborhood, geographic
# qualification of the candidates, and normalization into display-ready POIs.

import logging
import random
from typing import Any, Awaitable, Dict, List, Optional, Protocol, Tuple

from neighborhood_explorer.core.config import settings
from neighborhood_explorer.models.dto import (
    POI,
    Bounds,
    DiscoveryResult,
    DiscoveryStatus,
    FreeTextResult,
    Neighborhood,
    ProviderResult,
    RawCandidate,
    StructuredResult,
    TierAttempt,
)
from neighborhood_explorer.services.mapbox_client import ProviderUnavailable
from neighborhood_explorer.services.search_strategy import (
    FreeTextQuery,
    StructuredQuery,
    category_phrase,
    free_text_query,
    structured_query,
)
from neighborhood_explorer.utils.geo_filter import (
    bounds_of,
    extract_coordinates,
    filter_within_bounds,
    filter_within_radius,
    great_circle_distance_meters,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_NAME = "Local Spot"
PLACEHOLDER_CATEGORY = "point of interest"
PRICE_LEVELS = ("$", "$$", "$$$")


class NoCredential(ValueError):
    """Discovery was invoked without an access token."""


class SearchProvider(Protocol):
    async def category_search(self, query: StructuredQuery, access_token: str) -> StructuredResult: ...
    async def text_search(self, query: FreeTextQuery, access_token: str) -> FreeTextResult: ...


# --- Provider shape parsing ---

def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


def _tags(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    return [tag for tag in (_text(item) for item in value) if tag]


def _structured_candidate(feature: Dict[str, Any]) -> RawCandidate:
    props = _as_dict(feature.get("properties"))
    geometry = _as_dict(feature.get("geometry"))
    routable = _as_dict(props.get("coordinates"))
    center = None
    if "longitude" in routable and "latitude" in routable:
        center = [routable.get("longitude"), routable.get("latitude")]

    return RawCandidate(
        id=_text(props.get("mapbox_id")) or _text(feature.get("id")),
        coordinates=geometry.get("coordinates"),
        center=center,
        name=_text(props.get("name")) or _text(props.get("name_preferred")),
        address=_text(props.get("address")),
        place_name=_text(props.get("full_address")) or _text(props.get("place_formatted")),
        categories=_tags(props.get("poi_category")),
    )


def _free_text_candidate(feature: Dict[str, Any]) -> RawCandidate:
    props = _as_dict(feature.get("properties"))
    geometry = _as_dict(feature.get("geometry"))
    return RawCandidate(
        id=_text(feature.get("id")),
        coordinates=geometry.get("coordinates"),
        center=feature.get("center"),
        name=_text(feature.get("text")),
        address=_text(props.get("address")),
        place_name=_text(feature.get("place_name")),
        categories=_tags(props.get("category")),
    )


def candidates_from(result: ProviderResult) -> List[RawCandidate]:
    """Reduce a provider response to raw candidates, dispatching on its kind."""
    if result.kind == "structured":
        parse = _structured_candidate
    elif result.kind == "free_text":
        parse = _free_text_candidate
    else:
        raise ValueError(f"Unknown provider result kind: {result.kind}")
    return [parse(feature) for feature in result.features]


def dedupe(candidates: List[RawCandidate]) -> List[RawCandidate]:
    """Drop repeated places, keeping the first occurrence."""
    seen = set()
    unique = []
    for candidate in candidates:
        point = extract_coordinates(candidate)
        keys = []
        if candidate.id:
            keys.append(("id", candidate.id))
        if candidate.name and point is not None:
            keys.append(("place", candidate.name.lower(), round(point[0], 6), round(point[1], 6)))
        if any(key in seen for key in keys):
            continue
        seen.update(keys)
        unique.append(candidate)
    return unique


# --- Pipeline ---

class POIDiscoveryPipeline:
    """
    Turns a (neighborhood, category) pair into an ordered list of POIs.

    Tiers run strictly one after another and the first tier that yields any
    qualified candidate wins; results from different tiers are never merged.

    1. category search biased to the center and limited to the neighborhood
       bbox, re-checked against the bounds;
    2. category search without bbox and a larger cap, kept within a fixed
       radius of the center and sorted nearest first;
    3. free-text search biased to the center; candidates inside the bounds
       if there are any, otherwise the top raw results.

    A failing provider call counts as an empty tier.
    """

    def __init__(
        self,
        provider: SearchProvider,
        structured_limit: int = settings.STRUCTURED_RESULT_LIMIT,
        relaxed_limit: int = settings.RELAXED_RESULT_LIMIT,
        radius_meters: float = settings.FALLBACK_RADIUS_METERS,
        free_text_limit: int = settings.FREE_TEXT_RESULT_LIMIT,
        rng: Optional[random.Random] = None,
    ):
        self.provider = provider
        self.structured_limit = structured_limit
        self.relaxed_limit = relaxed_limit
        self.radius_meters = radius_meters
        self.free_text_limit = free_text_limit
        self._rng = rng or random.Random()

    async def discover(self, neighborhood: Neighborhood, category: str, access_token: str) -> DiscoveryResult:
        if not access_token or not access_token.strip():
            raise NoCredential("An access token is required for discovery")

        tiers = (
            (1, self._bounded_category_tier),
            (2, self._radius_category_tier),
            (3, self._free_text_tier),
        )
        attempts: List[TierAttempt] = []

        for tier, run in tiers:
            logger.debug(f"discovery {neighborhood.id}/{category}: querying tier {tier}")
            attempt, qualified = await run(neighborhood, category, access_token)
            attempts.append(attempt)

            if qualified:
                pois = self._finalize(qualified, neighborhood, category)
                logger.info(
                    f"Discovered {len(pois)} POIs for '{category}' in {neighborhood.id} (tier {tier})."
                )
                return DiscoveryResult(
                    status=DiscoveryStatus.OK,
                    tier=tier,
                    pois=pois,
                    viewport=self._viewport(pois, neighborhood),
                    attempts=attempts,
                )

        logger.info(f"No POIs for '{category}' in {neighborhood.id} after {len(attempts)} tiers.")
        return DiscoveryResult(
            status=DiscoveryStatus.EMPTY,
            viewport=neighborhood.bounds,
            attempts=attempts,
            message="No locations found nearby. Try another category.",
        )

    # --- Tiers ---

    async def _bounded_category_tier(self, neighborhood: Neighborhood, category: str, access_token: str):
        attempt = TierAttempt(tier=1, query="structured")
        query = structured_query(category, neighborhood.center, self.structured_limit, bbox=neighborhood.bounds)
        candidates = await self._fetch(attempt, self.provider.category_search(query, access_token))

        qualified = filter_within_bounds(candidates, neighborhood.bounds)
        attempt.qualified_count = len(qualified)
        return attempt, qualified

    async def _radius_category_tier(self, neighborhood: Neighborhood, category: str, access_token: str):
        attempt = TierAttempt(tier=2, query="structured")
        query = structured_query(category, neighborhood.center, self.relaxed_limit)
        candidates = await self._fetch(attempt, self.provider.category_search(query, access_token))

        qualified = filter_within_radius(candidates, neighborhood.center, self.radius_meters)
        attempt.qualified_count = len(qualified)
        return attempt, qualified

    async def _free_text_tier(self, neighborhood: Neighborhood, category: str, access_token: str):
        attempt = TierAttempt(tier=3, query="free_text")
        query = free_text_query(category, neighborhood.center, self.free_text_limit)
        candidates = await self._fetch(attempt, self.provider.text_search(query, access_token))

        located = [c for c in candidates if extract_coordinates(c) is not None]
        qualified = filter_within_bounds(located, neighborhood.bounds)
        if not qualified:
            # Nothing inside the neighborhood: take the provider's best guesses as-is
            qualified = located[: self.free_text_limit]
        attempt.qualified_count = len(qualified)
        return attempt, qualified

    async def _fetch(self, attempt: TierAttempt, call: Awaitable[ProviderResult]) -> List[RawCandidate]:
        try:
            result = await call
        except ProviderUnavailable as e:
            logger.warning(f"Tier {attempt.tier} provider call failed ({e}); falling back.")
            attempt.failed = True
            return []
        candidates = candidates_from(result)
        attempt.raw_count = len(candidates)
        return candidates

    # --- Finalization ---

    def _finalize(self, qualified: List[RawCandidate], neighborhood: Neighborhood, category: str) -> List[POI]:
        pois = []
        for index, candidate in enumerate(dedupe(qualified)):
            point = extract_coordinates(candidate)
            if point is None:
                continue
            pois.append(self.normalize(candidate, point, index, neighborhood, category))
        return pois

    def normalize(
        self,
        candidate: RawCandidate,
        point: Tuple[float, float],
        index: int,
        neighborhood: Neighborhood,
        category: str,
    ) -> POI:
        phrase = category_phrase(category)
        poi_id = candidate.id or f"{neighborhood.id}-{phrase.replace(' ', '-') or 'poi'}-{index}"
        address = candidate.address
        if not address and candidate.place_name:
            address = candidate.place_name.split(",")[0].strip() or None

        return POI(
            id=poi_id,
            name=candidate.name or PLACEHOLDER_NAME,
            address=address or neighborhood.name,
            category=(candidate.categories[0] if candidate.categories else None) or phrase or PLACEHOLDER_CATEGORY,
            coordinates=point,
            distance_meters=round(great_circle_distance_meters(point, neighborhood.center), 1),
            **self._placeholders(poi_id, phrase),
        )

    def _placeholders(self, poi_id: str, phrase: str) -> Dict[str, Any]:
        """Display-only stand-ins for rating, reviews, price and opening state."""
        keywords = ",".join(phrase.split()) or "city"
        return {
            "rating": round(4 + self._rng.random() * 0.9, 1),
            "reviews": self._rng.randint(50, 549),
            "price_level": self._rng.choice(PRICE_LEVELS),
            "is_open": self._rng.random() > 0.3,
            "image_url": f"https://loremflickr.com/400/250/{keywords},modern/all?lock={len(poi_id)}",
        }

    @staticmethod
    def _viewport(pois: List[POI], neighborhood: Neighborhood) -> Bounds:
        frame = bounds_of(poi.coordinates for poi in pois)
        if frame is None:
            return neighborhood.bounds
        sw, ne = frame
        return Bounds(sw=sw, ne=ne)
