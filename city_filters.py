"""Client-side filters applied to a fetched city collection."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Optional, Sequence

from city_schema import City, CityCollection


@dataclass(frozen=True)
class CityFilter:
    region: Optional[str] = None
    min_population: Optional[int] = None
    max_count: Optional[int] = None


def normalize_region(value: str) -> str:
    folded = unicodedata.normalize("NFKD", str(value))
    without_marks = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return without_marks.strip().casefold()


def _positive_int(value: object) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def filter_cities(cities: Sequence[City], options: CityFilter) -> CityCollection:
    """
    Apply region, minimum population and maximum count, in that order.

    Each filter is skipped when its option is missing or unusable. The count
    limit keeps a prefix of what the earlier filters left, in source order.
    """
    filtered = tuple(cities)

    region = normalize_region(options.region) if options.region is not None else ""
    if region:
        filtered = tuple(city for city in filtered if normalize_region(city.region) == region)

    min_population = _positive_int(options.min_population)
    if min_population is not None:
        filtered = tuple(city for city in filtered if city.population >= min_population)

    max_count = _positive_int(options.max_count)
    if max_count is not None:
        filtered = filtered[:max_count]

    return filtered
