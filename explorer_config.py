"""Shared explorer configuration, filter-form parsing and logging setup."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from city_filters import CityFilter

DEFAULT_API_URL = "http://localhost:8080/citys"
DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_MAP_CENTER = (46.603354, 1.888334)
DEFAULT_ZOOM = 6
DEFAULT_TILES = "OpenStreetMap"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class IconSpec:
    color: str
    size: Tuple[int, int]
    anchor: Tuple[int, int]
    popup_anchor: Tuple[int, int] = (0, 0)


CITY_ICON = IconSpec(color="#1d4ed8", size=(32, 32), anchor=(16, 32), popup_anchor=(0, -32))
HOVERED_CITY_ICON = IconSpec(color="#1d4ed8", size=(55, 55), anchor=(18, 55), popup_anchor=(0, -55))
REFERENCE_ICON = IconSpec(color="#dc2626", size=(32, 32), anchor=(16, 32))


@dataclass(frozen=True)
class ExplorerSettings:
    api_url: str = DEFAULT_API_URL
    fetch_timeout: Optional[float] = DEFAULT_FETCH_TIMEOUT
    map_center: Tuple[float, float] = DEFAULT_MAP_CENTER
    zoom: int = DEFAULT_ZOOM
    tiles: str = DEFAULT_TILES


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ExplorerSettings:
    """Read overrides from ``CITY_EXPLORER_*`` environment variables."""
    env = os.environ if environ is None else environ

    api_url = env.get("CITY_EXPLORER_API_URL", "").strip() or DEFAULT_API_URL

    raw_timeout = env.get("CITY_EXPLORER_TIMEOUT", "").strip()
    if not raw_timeout:
        timeout: Optional[float] = DEFAULT_FETCH_TIMEOUT
    else:
        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            raise ValueError("CITY_EXPLORER_TIMEOUT is not numeric.") from exc
        if timeout <= 0:
            timeout = None

    raw_zoom = env.get("CITY_EXPLORER_ZOOM", "").strip()
    try:
        zoom = int(raw_zoom) if raw_zoom else DEFAULT_ZOOM
    except ValueError as exc:
        raise ValueError("CITY_EXPLORER_ZOOM is not an integer.") from exc

    tiles = env.get("CITY_EXPLORER_TILES", "").strip() or DEFAULT_TILES
    return ExplorerSettings(api_url=api_url, fetch_timeout=timeout, zoom=zoom, tiles=tiles)


def parse_form_int(raw: object) -> Optional[int]:
    """Leading integer of a form value, or None when there is none."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw == raw and abs(raw) != float("inf") else None
    match = _LEADING_INT.match(str(raw))
    if match is None:
        return None
    return int(match.group(1))


def parse_filter_form(
    max_count: object = None,
    min_population: object = None,
    region: object = None,
) -> CityFilter:
    """Turn the three raw filter inputs into a ``CityFilter``.

    Values that cannot be used (blank, non-numeric, zero or negative) become
    None so the matching filter is skipped.
    """
    count = parse_form_int(max_count)
    population = parse_form_int(min_population)
    region_text = str(region).strip() if region is not None else ""

    return CityFilter(
        region=region_text or None,
        min_population=population if population is not None and population > 0 else None,
        max_count=count if count is not None and count > 0 else None,
    )


def setup_logging(log_file: Optional[Path] = None, verbose: bool = False) -> None:
    """Configure root logging to console and optionally a file."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
