"""HTTP access to the city list endpoint."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from city_schema import CityCollection, cities_from_records
from explorer_config import DEFAULT_API_URL, DEFAULT_FETCH_TIMEOUT

LOGGER = logging.getLogger("city_explorer.source")


class FetchFailure(Exception):
    """The city list could not be loaded or decoded."""


class CitySource:
    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout: Optional[float] = DEFAULT_FETCH_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_url = api_url
        self.timeout = timeout
        self._session = session

    def _get(self) -> requests.Response:
        if self._session is not None:
            return self._session.get(self.api_url, timeout=self.timeout)
        return requests.get(self.api_url, timeout=self.timeout)

    def fetch_cities(self) -> CityCollection:
        try:
            response = self._get()
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise FetchFailure(f"City fetch from {self.api_url} failed: {exc}") from exc

        if not isinstance(payload, list):
            raise FetchFailure(
                f"City fetch from {self.api_url} returned {type(payload).__name__}, expected a list."
            )

        try:
            cities = cities_from_records(payload)
        except (TypeError, ValueError) as exc:
            raise FetchFailure(f"City records from {self.api_url} are unusable: {exc}") from exc

        LOGGER.info("Fetched %d cities from %s.", len(cities), self.api_url)
        return cities
