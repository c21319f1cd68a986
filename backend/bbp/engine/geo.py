"""Great-circle distances and axis-aligned tolerance checks on {lat, lng} points."""

import math
from typing import NamedTuple, Protocol, Sequence

EARTH_RADIUS_KM = 6371.0


class LatLng(Protocol):
    lat: float
    lng: float


def haversine_distance_km(origin: LatLng, target: LatLng) -> float:
    delta_lat = math.radians(target.lat - origin.lat)
    delta_lng = math.radians(target.lng - origin.lng)

    half_chord = (
        math.cos(math.radians(origin.lat)) * math.cos(math.radians(target.lat))
        * math.sin(delta_lng / 2) ** 2
        + math.sin(delta_lat / 2) ** 2
    )
    angular_distance = 2 * math.atan2(math.sqrt(half_chord), math.sqrt(1 - half_chord))
    return EARTH_RADIUS_KM * angular_distance


def haversine_distance_meters(origin: LatLng, target: LatLng) -> float:
    return haversine_distance_km(origin, target) * 1000


def polyline_distance_km(points: Sequence[LatLng]) -> float:
    """Sum of the leg lengths; 0 for fewer than two points."""
    return sum(
        haversine_distance_km(points[i], points[i + 1]) for i in range(len(points) - 1)
    )


def polyline_distance_meters(points: Sequence[LatLng]) -> float:
    return polyline_distance_km(points) * 1000


def within_tolerance(a: LatLng, b: LatLng, tolerance_deg: float) -> bool:
    """True when the points differ by at most `tolerance_deg` on each axis."""
    return abs(a.lat - b.lat) <= tolerance_deg and abs(a.lng - b.lng) <= tolerance_deg


def polylines_match(first: Sequence[LatLng], second: Sequence[LatLng], tolerance_deg: float) -> bool:
    """Same number of points, pairwise within tolerance, in the same order."""
    if len(first) != len(second):
        return False
    return all(within_tolerance(a, b, tolerance_deg) for a, b in zip(first, second))


class GeoPoint(NamedTuple):
    lat: float
    lng: float
