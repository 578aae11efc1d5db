"""Shared schema for city records returned by the city source."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Iterable, List, Mapping, Sequence, Set, Tuple

import pandas as pd

CITY_REQUIRED_FIELDS: Set[str] = {
    "id",
    "name",
    "region",
    "population",
    "latitude",
    "longitude",
}

CITY_COLUMNS: List[str] = ["id", "name", "region", "population", "latitude", "longitude"]


@dataclass(frozen=True)
class City:
    id: Hashable
    name: str
    region: str
    population: int
    latitude: float
    longitude: float


CityCollection = Tuple[City, ...]


def validate_city_frame(data: pd.DataFrame) -> None:
    """Raise a ValueError when required fields are missing."""
    missing = CITY_REQUIRED_FIELDS - set(data.columns)
    if missing:
        raise ValueError(f"City records missing fields: {', '.join(sorted(missing))}")


def cities_from_records(records: Sequence[Mapping[str, object]]) -> CityCollection:
    if not records:
        return ()

    data = pd.DataFrame.from_records(list(records))
    validate_city_frame(data)

    data["name"] = data["name"].fillna("").astype(str)
    data["region"] = data["region"].fillna("").astype(str)
    data["population"] = (
        pd.to_numeric(data["population"], errors="coerce").fillna(0).clip(lower=0).astype(int)
    )
    for col in ("latitude", "longitude"):
        data[col] = pd.to_numeric(data[col], errors="coerce").astype(float)

    # Rows without usable coordinates cannot take part in distance lookups.
    data = data.dropna(subset=["latitude", "longitude"])

    return tuple(
        City(
            id=row["id"],
            name=row["name"],
            region=row["region"],
            population=int(row["population"]),
            latitude=float(row["latitude"]),
            longitude=float(row["longitude"]),
        )
        for row in data.loc[:, CITY_COLUMNS].to_dict(orient="records")
    )


def cities_to_frame(cities: Iterable[City]) -> pd.DataFrame:
    rows = [
        {
            "id": city.id,
            "name": city.name,
            "region": city.region,
            "population": city.population,
            "latitude": city.latitude,
            "longitude": city.longitude,
        }
        for city in cities
    ]
    return pd.DataFrame(rows, columns=CITY_COLUMNS)
