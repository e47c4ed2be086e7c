# Geometry helpers used to qualify provider candidates against a neighborhood.
# All points are (longitude, latitude) pairs in decimal degrees.

import math
from collections.abc import Sequence
from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar

from neighborhood_explorer.utils.haversine import haversine

T = TypeVar("T")
Point = Tuple[float, float]


def _as_point(value: Any) -> Optional[Point]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        return None
    if len(value) < 2:
        return None
    lng, lat = value[0], value[1]
    if isinstance(lng, bool) or isinstance(lat, bool):
        return None
    if not isinstance(lng, (int, float)) or not isinstance(lat, (int, float)):
        return None
    if not (math.isfinite(lng) and math.isfinite(lat)):
        return None
    return float(lng), float(lat)


def extract_coordinates(candidate: Any) -> Optional[Point]:
    """
    Pull a usable (lng, lat) pair out of a candidate.

    The `coordinates` field wins over the `center` field. Works on objects
    exposing those attributes, on mappings with those keys, and on bare pairs.
    Returns None when neither field holds a pair of finite numbers.
    """
    if isinstance(candidate, dict):
        fields = (candidate.get("coordinates"), candidate.get("center"))
    elif hasattr(candidate, "coordinates") or hasattr(candidate, "center"):
        fields = (getattr(candidate, "coordinates", None), getattr(candidate, "center", None))
    else:
        return _as_point(candidate)

    for value in fields:
        if value is not None:
            return _as_point(value)
    return None


def contains_point(bounds: Any, point: Point) -> bool:
    """True iff `point` lies inside `bounds` (edges included)."""
    (min_lng, min_lat), (max_lng, max_lat) = bounds.sw, bounds.ne
    lng, lat = point
    return min_lng <= lng <= max_lng and min_lat <= lat <= max_lat


def great_circle_distance_meters(a: Point, b: Point) -> float:
    return haversine(a[1], a[0], b[1], b[0])


def filter_within_radius(
    candidates: Iterable[T],
    center: Point,
    radius_meters: float,
    coordinates_of: Callable[[T], Optional[Point]] = extract_coordinates,
) -> List[T]:
    """
    Keep candidates within `radius_meters` of `center`, nearest first.

    Equal distances keep their input order (sorted() is stable).
    """
    measured = []
    for candidate in candidates:
        point = coordinates_of(candidate)
        if point is None:
            continue
        distance = great_circle_distance_meters(point, center)
        if distance <= radius_meters:
            measured.append((distance, candidate))

    measured.sort(key=lambda item: item[0])
    return [candidate for _, candidate in measured]


def filter_within_bounds(
    candidates: Iterable[T],
    bounds: Any,
    coordinates_of: Callable[[T], Optional[Point]] = extract_coordinates,
) -> List[T]:
    kept = []
    for candidate in candidates:
        point = coordinates_of(candidate)
        if point is not None and contains_point(bounds, point):
            kept.append(candidate)
    return kept


def bounds_of(points: Iterable[Point]) -> Optional[Tuple[Point, Point]]:
    """Smallest (sw, ne) rectangle enclosing `points`, or None when empty."""
    points = list(points)
    if not points:
        return None
    lngs = [p[0] for p in points]
    lats = [p[1] for p in points]
    return (min(lngs), min(lats)), (max(lngs), max(lats))
