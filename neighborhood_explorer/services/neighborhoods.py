# Static catalog of supported neighborhoods.
# Entries are validated once at import; the first entry is the default.

import logging
from typing import Any, Dict, Iterable, List, Optional

from neighborhood_explorer.models.dto import Bounds, Neighborhood

logger = logging.getLogger(__name__)

DEFAULT_ZOOM = 13.8

_NEIGHBORHOODS: List[Dict[str, Any]] = [
    {
        "id": "lake-nona-south",
        "name": "Lake Nona South",
        "center": (-81.2737, 28.3722),
        "boundary": [
            (-81.298, 28.398), (-81.246, 28.398), (-81.246, 28.338),
            (-81.298, 28.338), (-81.298, 28.398),
        ],
        "bounds": {"sw": (-81.32, 28.32), "ne": (-81.22, 28.42)},
    },
    {
        "id": "river-oaks",
        "name": "River Oaks",
        "center": (-97.1176, 33.1423),
        "boundary": [
            (-97.143, 33.168), (-97.092, 33.168), (-97.092, 33.117),
            (-97.143, 33.117), (-97.143, 33.168),
        ],
        "bounds": {"sw": (-97.16, 33.09), "ne": (-97.08, 33.20)},
    },
    {
        "id": "government-hill",
        "name": "Government Hill",
        "center": (-98.4611, 29.4401),
        "boundary": [
            (-98.487, 29.466), (-98.435, 29.466), (-98.435, 29.414),
            (-98.487, 29.414), (-98.487, 29.466),
        ],
        "bounds": {"sw": (-98.51, 29.39), "ne": (-98.41, 29.49)},
    },
    {
        "id": "north-hollywood",
        "name": "North Hollywood",
        "center": (-118.3904, 34.1896),
        "boundary": [
            (-118.416, 34.216), (-118.365, 34.216), (-118.365, 34.163),
            (-118.416, 34.163), (-118.416, 34.216),
        ],
        "bounds": {"sw": (-118.44, 34.14), "ne": (-118.34, 34.24)},
    },
    {
        "id": "shadyside",
        "name": "Shadyside",
        "center": (-79.9323, 40.4535),
        "boundary": [
            (-79.958, 40.480), (-79.907, 40.480), (-79.907, 40.427),
            (-79.958, 40.427), (-79.958, 40.480),
        ],
        "bounds": {"sw": (-79.98, 40.40), "ne": (-79.88, 40.51)},
    },
    {
        "id": "downtown-orlando",
        "name": "Downtown Orlando",
        "center": (-81.379, 28.538),
        "boundary": [
            (-81.395, 28.555), (-81.360, 28.555), (-81.360, 28.520),
            (-81.395, 28.520), (-81.395, 28.555),
        ],
        "bounds": {"sw": (-81.42, 28.50), "ne": (-81.34, 28.58)},
    },
    {
        "id": "winter-park",
        "name": "Winter Park",
        "center": (-81.353, 28.599),
        "boundary": [
            (-81.375, 28.615), (-81.330, 28.615), (-81.330, 28.580),
            (-81.375, 28.580), (-81.375, 28.615),
        ],
        "bounds": {"sw": (-81.40, 28.56), "ne": (-81.31, 28.64)},
    },
]


class NeighborhoodRegistry:
    """Read-only lookup over a fixed, ordered set of neighborhoods."""

    def __init__(self, neighborhoods: Iterable[Neighborhood]):
        self._ordered: List[Neighborhood] = list(neighborhoods)
        if not self._ordered:
            raise ValueError("NeighborhoodRegistry needs at least one neighborhood")
        self._by_id: Dict[str, Neighborhood] = {}
        for neighborhood in self._ordered:
            if neighborhood.id in self._by_id:
                raise ValueError(f"Duplicate neighborhood id: {neighborhood.id}")
            self._by_id[neighborhood.id] = neighborhood

    @classmethod
    def from_config(cls, entries: Iterable[Dict[str, Any]]) -> "NeighborhoodRegistry":
        return cls(
            Neighborhood(
                default_zoom=entry.get("default_zoom", DEFAULT_ZOOM),
                bounds=Bounds(**entry["bounds"]),
                **{k: v for k, v in entry.items() if k not in ("bounds", "default_zoom")},
            )
            for entry in entries
        )

    def all(self) -> List[Neighborhood]:
        return list(self._ordered)

    def lookup(self, neighborhood_id: Optional[str]) -> Optional[Neighborhood]:
        if neighborhood_id is None:
            return None
        return self._by_id.get(neighborhood_id)

    def default(self) -> Neighborhood:
        return self._ordered[0]

    def resolve(self, neighborhood_id: Optional[str]) -> Neighborhood:
        """Lookup that falls back to the default neighborhood."""
        neighborhood = self.lookup(neighborhood_id)
        if neighborhood is None:
            if neighborhood_id:
                logger.warning(f"Unknown neighborhood '{neighborhood_id}', using default.")
            return self.default()
        return neighborhood

    def __len__(self) -> int:
        return len(self._ordered)


def boundary_feature(neighborhood: Neighborhood) -> Dict[str, Any]:
    """GeoJSON line feature tracing the neighborhood outline for map overlays."""
    return {
        "type": "Feature",
        "properties": {"id": neighborhood.id, "name": neighborhood.name},
        "geometry": {
            "type": "LineString",
            "coordinates": [list(point) for point in neighborhood.boundary],
        },
    }


registry = NeighborhoodRegistry.from_config(_NEIGHBORHOODS)
