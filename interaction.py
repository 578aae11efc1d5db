"""Hover/click interaction state for the city explorer.

The state machine owns which city is highlighted, which map point (if any)
distances are measured from, and which distance annotations are shown. It
never renders or fetches anything: callers feed it events and the current
city collection, then read back an immutable ``InteractionState``.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Hashable, List, Optional, Sequence, Tuple

from city_geo import DistanceEntry, ProximityIndex, ReferencePoint, distance_to_city
from city_schema import City, CityCollection

LOGGER = logging.getLogger("city_explorer.interaction")


class DistanceMode(enum.Enum):
    HOVER = "hover"  # one distance, user location -> hovered city
    CLICK = "click"  # one distance per city, clicked point -> city


@dataclass(frozen=True)
class InteractionState:
    hovered_city_id: Optional[Hashable] = None
    reference_point: Optional[ReferencePoint] = None
    distances: Optional[Tuple[DistanceEntry, ...]] = None

    @property
    def mode(self) -> Optional[DistanceMode]:
        if self.reference_point is not None:
            return DistanceMode.CLICK
        if self.distances is not None:
            return DistanceMode.HOVER
        return None

    @property
    def is_idle(self) -> bool:
        return self.hovered_city_id is None and self.reference_point is None

    def distance_for(self, city_id: Hashable) -> Optional[int]:
        if not self.distances:
            return None
        for entry in self.distances:
            if entry.city_id == city_id:
                return entry.distance
        return None


IDLE = InteractionState()


@dataclass(frozen=True)
class CityListRow:
    city: City
    distance: Optional[int]
    highlighted: bool

    @property
    def label(self) -> str:
        if self.distance is None:
            return self.city.name
        return f"[ {self.distance} km ] - {self.city.name}"


def annotate_cities(cities: Sequence[City], state: InteractionState) -> List[CityListRow]:
    """City list rows: the distance for each city if one is shown, plus hover highlight."""
    return [
        CityListRow(
            city=city,
            distance=state.distance_for(city.id),
            highlighted=state.hovered_city_id is not None and city.id == state.hovered_city_id,
        )
        for city in cities
    ]


class InteractionStateMachine:
    """Applies HOVER / UNHOVER / CLICK events to the interaction state.

    Every transition replaces ``state`` with a new value. While a reference
    point is active its per-city distances take precedence: hovering only
    moves the highlight and un-hovering changes nothing.
    """

    def __init__(
        self,
        cities: Sequence[City] = (),
        user_location: Optional[ReferencePoint] = None,
    ) -> None:
        self._cities: CityCollection = tuple(cities)
        self._user_location = user_location
        self._proximity = ProximityIndex()
        self._state = IDLE

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def cities(self) -> CityCollection:
        return self._cities

    @property
    def user_location(self) -> Optional[ReferencePoint]:
        return self._user_location

    def _find_city(self, city_id: Hashable) -> Optional[City]:
        for city in self._cities:
            if city.id == city_id:
                return city
        return None

    def _hover_distances(self, city: City) -> Optional[Tuple[DistanceEntry, ...]]:
        if self._user_location is None:
            return None
        return (distance_to_city(self._user_location, city),)

    def hover(self, city: City) -> InteractionState:
        if self._state.reference_point is not None:
            self._state = replace(self._state, hovered_city_id=city.id)
        else:
            self._state = InteractionState(
                hovered_city_id=city.id,
                distances=self._hover_distances(city),
            )
        LOGGER.debug("HOVER %s -> %s", city.id, self._state.mode)
        return self._state

    def hover_id(self, city_id: Hashable) -> InteractionState:
        city = self._find_city(city_id)
        if city is None:
            LOGGER.warning("Ignoring hover on unknown city id %r.", city_id)
            return self._state
        return self.hover(city)

    def unhover(self) -> InteractionState:
        if self._state.reference_point is None:
            self._state = IDLE
        LOGGER.debug("UNHOVER -> %s", self._state.mode)
        return self._state

    def click(self, point: ReferencePoint) -> InteractionState:
        self._state = InteractionState(
            hovered_city_id=None,
            reference_point=point,
            distances=self._proximity.distances(point, self._cities),
        )
        LOGGER.debug("CLICK (%.5f, %.5f) -> %d distances", point.lat, point.lon, len(self._cities))
        return self._state

    def set_cities(self, cities: Sequence[City]) -> InteractionState:
        """Swap in a new collection and bring the derived distances in line with it."""
        self._cities = tuple(cities)
        state = self._state

        if state.reference_point is not None:
            hovered = state.hovered_city_id
            if hovered is not None and self._find_city(hovered) is None:
                hovered = None
            self._state = InteractionState(
                hovered_city_id=hovered,
                reference_point=state.reference_point,
                distances=self._proximity.distances(state.reference_point, self._cities),
            )
        elif state.hovered_city_id is not None:
            city = self._find_city(state.hovered_city_id)
            self._state = IDLE if city is None else InteractionState(
                hovered_city_id=city.id,
                distances=self._hover_distances(city),
            )
        return self._state

    def set_user_location(self, location: Optional[ReferencePoint]) -> InteractionState:
        self._user_location = location
        state = self._state
        if state.reference_point is None and state.hovered_city_id is not None:
            city = self._find_city(state.hovered_city_id)
            if city is not None:
                self._state = InteractionState(
                    hovered_city_id=city.id,
                    distances=self._hover_distances(city),
                )
        return self._state

    def reset(self) -> InteractionState:
        self._proximity.clear()
        self._state = IDLE
        return self._state
