"""Single owner of the explorer's city collection and interaction state."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Hashable, List, Optional

from city_filters import CityFilter, filter_cities
from city_geo import ReferencePoint
from city_schema import CityCollection
from city_source import CitySource, FetchFailure
from interaction import CityListRow, InteractionState, InteractionStateMachine, annotate_cities

LOGGER = logging.getLogger("city_explorer.controller")


@dataclass(frozen=True)
class FetchTicket:
    number: int
    options: Optional[CityFilter]


class ExplorerController:
    """Loads cities, applies filters and routes map events to the state machine.

    Fetch responses are applied in issue order: a response that arrives after
    a newer request has been issued is dropped, so a slow unfiltered load can
    never overwrite a fresher filtered result.
    """

    def __init__(self, source: CitySource, user_location: Optional[ReferencePoint] = None) -> None:
        self.source = source
        self.machine = InteractionStateMachine(user_location=user_location)
        self.active_filter: Optional[CityFilter] = None
        self.last_error: Optional[str] = None
        self._counter = itertools.count(1)
        self._latest_ticket = 0

    @property
    def cities(self) -> CityCollection:
        return self.machine.cities

    @property
    def state(self) -> InteractionState:
        return self.machine.state

    def issue_fetch(self, options: Optional[CityFilter] = None) -> FetchTicket:
        ticket = FetchTicket(number=next(self._counter), options=options)
        self._latest_ticket = ticket.number
        return ticket

    def complete_fetch(self, ticket: FetchTicket, cities: CityCollection) -> bool:
        if ticket.number < self._latest_ticket:
            LOGGER.info(
                "Discarding stale city response #%d (latest request is #%d).",
                ticket.number,
                self._latest_ticket,
            )
            return False

        collection = cities if ticket.options is None else filter_cities(cities, ticket.options)
        self.active_filter = ticket.options
        self.last_error = None
        self.machine.set_cities(collection)
        LOGGER.info("Showing %d cities.", len(collection))
        return True

    def fail_fetch(self, ticket: FetchTicket, exc: FetchFailure) -> bool:
        if ticket.number < self._latest_ticket:
            LOGGER.info("Ignoring failure of stale city request #%d: %s", ticket.number, exc)
            return False

        self.last_error = str(exc)
        LOGGER.error("City request #%d failed, keeping current cities: %s", ticket.number, exc)
        return True

    def _run_fetch(self, options: Optional[CityFilter]) -> bool:
        ticket = self.issue_fetch(options)
        try:
            cities = self.source.fetch_cities()
        except FetchFailure as exc:
            self.fail_fetch(ticket, exc)
            return False
        return self.complete_fetch(ticket, cities)

    def load(self) -> bool:
        return self._run_fetch(None)

    def submit_filters(self, options: CityFilter) -> bool:
        LOGGER.info(
            "Filtering cities: region=%r min_population=%r max_count=%r",
            options.region,
            options.min_population,
            options.max_count,
        )
        return self._run_fetch(options)

    def hover(self, city_id: Hashable) -> InteractionState:
        return self.machine.hover_id(city_id)

    def unhover(self) -> InteractionState:
        return self.machine.unhover()

    def click(self, point: ReferencePoint) -> InteractionState:
        return self.machine.click(point)

    def set_user_location(self, location: Optional[ReferencePoint]) -> InteractionState:
        return self.machine.set_user_location(location)

    def reset_interaction(self) -> InteractionState:
        return self.machine.reset()

    def city_rows(self) -> List[CityListRow]:
        return annotate_cities(self.cities, self.state)
