"""Great-circle distances between cities and map reference points."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Hashable, Optional, Sequence, Tuple

from city_schema import City

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class ReferencePoint:
    """A clicked map coordinate, or the user's own location. Carries no city identity."""

    lat: float
    lon: float


@dataclass(frozen=True)
class DistanceEntry:
    city_id: Hashable
    distance: int  # whole kilometers


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> int:
    """
    Haversine distance between two (lat, lon) points in decimal degrees.

    Returns whole kilometers, rounded half up. Inputs are not range-checked:
    out-of-range coordinates give a number, just not a meaningful one.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2.0) ** 2
    )
    # Rounding can push a just past 1.0 for antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return int(math.floor(EARTH_RADIUS_KM * c + 0.5))


def distance_to_city(point: ReferencePoint, city: City) -> DistanceEntry:
    return DistanceEntry(
        city_id=city.id,
        distance=distance_km(point.lat, point.lon, city.latitude, city.longitude),
    )


def compute_all(point: ReferencePoint, cities: Sequence[City]) -> Tuple[DistanceEntry, ...]:
    """One entry per city, in collection order, measured from ``point``."""
    return tuple(distance_to_city(point, city) for city in cities)


class ProximityIndex:
    """Distances from a reference point to a city collection.

    The result is recomputed whenever the point or the collection is replaced
    by a different object; equal-but-new values still trigger a recompute.
    """

    def __init__(self) -> None:
        self._point: Optional[ReferencePoint] = None
        self._cities: Optional[Sequence[City]] = None
        self._entries: Optional[Tuple[DistanceEntry, ...]] = None

    def distances(
        self,
        point: ReferencePoint,
        cities: Sequence[City],
    ) -> Tuple[DistanceEntry, ...]:
        if self._entries is not None and point is self._point and cities is self._cities:
            return self._entries

        self._point = point
        self._cities = cities
        self._entries = compute_all(point, cities)
        return self._entries

    def clear(self) -> None:
        self._point = None
        self._cities = None
        self._entries = None
