"""Generate a City Explorer map as a standalone HTML file."""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from city_geo import ReferencePoint
from city_map import FoliumMapAdapter, render_explorer_map
from city_source import CitySource
from explorer_config import load_settings, parse_filter_form, setup_logging
from explorer_controller import ExplorerController
from interaction import CityListRow

LOGGER = logging.getLogger("city_explorer.cli")

MIN_ZOOM = 1
MAX_ZOOM = 18


@dataclass(frozen=True)
class ExplorerBuildResult:
    adapter: FoliumMapAdapter
    rows: List[CityListRow]
    controller: ExplorerController


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(
        description="Render the city explorer map, optionally filtered and measured from a point."
    )
    parser.add_argument(
        "--api-url",
        default=settings.api_url,
        help="City list endpoint returning a JSON array.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("output/city_explorer_map.html"),
        help="Output HTML path.",
    )
    parser.add_argument("--region", default="", help="Keep only cities in this region.")
    parser.add_argument(
        "--min-population",
        default="",
        help="Keep only cities with at least this population.",
    )
    parser.add_argument(
        "--max-count",
        default="",
        help="Keep at most this many cities, after the other filters.",
    )
    parser.add_argument(
        "--click",
        nargs=2,
        type=float,
        metavar=("LAT", "LON"),
        help="Measure distances from this map point to every city.",
    )
    parser.add_argument("--hover", help="City id to highlight.")
    parser.add_argument(
        "--user-location",
        nargs=2,
        type=float,
        metavar=("LAT", "LON"),
        help="Your location, used for the hovered city's distance.",
    )
    parser.add_argument("--zoom", type=int, default=settings.zoom, help="Initial map zoom.")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs here.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def _validate_args(args: argparse.Namespace) -> None:
    if args.zoom < MIN_ZOOM or args.zoom > MAX_ZOOM:
        raise SystemExit(f"--zoom must be between {MIN_ZOOM} and {MAX_ZOOM}.")
    if args.click is not None:
        lat, lon = args.click
        if not -90 <= lat <= 90 or not -180 <= lon <= 180:
            raise SystemExit("--click must be a valid latitude/longitude pair.")


def _resolve_city_id(controller: ExplorerController, raw_id: str) -> object:
    for city in controller.cities:
        if str(city.id) == raw_id:
            return city.id
    return raw_id


def build_explorer(args: argparse.Namespace, source: Optional[CitySource] = None) -> ExplorerBuildResult:
    settings = load_settings()
    source = source or CitySource(api_url=args.api_url, timeout=settings.fetch_timeout)

    user_location = ReferencePoint(*args.user_location) if args.user_location else None
    controller = ExplorerController(source, user_location=user_location)

    options = parse_filter_form(
        max_count=args.max_count,
        min_population=args.min_population,
        region=args.region,
    )
    if options.region or options.min_population or options.max_count:
        loaded = controller.submit_filters(options)
    else:
        loaded = controller.load()
    if not loaded:
        raise SystemExit(f"Could not load cities: {controller.last_error}")

    if args.click is not None:
        controller.click(ReferencePoint(*args.click))
    if args.hover:
        controller.hover(_resolve_city_id(controller, args.hover))

    adapter = FoliumMapAdapter(center=settings.map_center, zoom=args.zoom, tiles=settings.tiles)
    render_explorer_map(
        adapter,
        controller.cities,
        controller.state,
        active_filter=controller.active_filter,
    )
    return ExplorerBuildResult(adapter=adapter, rows=controller.city_rows(), controller=controller)


def _log_summary(result: ExplorerBuildResult, output_path: Path) -> None:
    LOGGER.info("Generated map: %s", output_path.resolve())
    LOGGER.info("Cities shown: %d", len(result.rows))
    for row in result.rows:
        marker = "*" if row.highlighted else "-"
        LOGGER.info("%s %s", marker, row.label)
    LOGGER.info("Generated at: %s", datetime.now().isoformat(timespec="seconds"))


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    _validate_args(args)
    setup_logging(args.log_file, verbose=args.verbose)

    result = build_explorer(args)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    result.adapter.build_map().save(str(args.output))
    _log_summary(result, output_path=args.output)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
