from __future__ import annotations

import html
import logging
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd
import streamlit as st
import streamlit.runtime as st_runtime
from streamlit_folium import st_folium

from city_geo import ReferencePoint
from city_map import FoliumMapAdapter, render_explorer_map
from city_schema import cities_to_frame
from city_source import CitySource
from explorer_config import ExplorerSettings, load_settings, parse_filter_form, setup_logging
from explorer_controller import ExplorerController
from interaction import CityListRow

LOGGER = logging.getLogger("city_explorer.app")

MAP_HEIGHT = 560
MAP_KEY = "explorer_map"

DEFAULT_FILTER_STATE = {
    "max_count_input": "",
    "min_population_input": "",
    "region_input": "",
}

DEFAULT_LOCATION_STATE = {
    "use_user_location": False,
    "user_lat": 48.8566,
    "user_lon": 2.3522,
}

MapEvent = Tuple[str, float, float]


def _initialize_ui_state() -> None:
    defaults = {**DEFAULT_FILTER_STATE, **DEFAULT_LOCATION_STATE}
    for key, value in defaults.items():
        st.session_state.setdefault(key, value)
    st.session_state.setdefault("seen_map_output", {})


def _reset_filter_controls() -> None:
    for key, value in DEFAULT_FILTER_STATE.items():
        st.session_state[key] = value


def _streamlit_runtime_exists() -> bool:
    try:
        return bool(st_runtime.exists())
    except Exception:
        return False


def _point_key(value: object) -> Optional[Tuple[float, float]]:
    if not isinstance(value, dict):
        return None
    try:
        return float(value["lat"]), float(value["lng"])
    except (KeyError, TypeError, ValueError):
        return None


def _pending_map_events(
    output: Optional[Dict[str, object]],
    seen: Dict[str, object],
) -> Tuple[List[MapEvent], Dict[str, object]]:
    """Translate new st_folium click values into explorer events.

    st_folium keeps returning the last click on every rerun, so only values
    that differ from ``seen`` become events. A marker click is a hover on
    that city; a click on empty map is a reference-point click.
    """
    if not output:
        return [], dict(seen)

    events: List[MapEvent] = []
    updated = dict(seen)

    object_click = _point_key(output.get("last_object_clicked"))
    map_click = _point_key(output.get("last_clicked"))

    if object_click is not None and object_click != seen.get("last_object_clicked"):
        events.append(("hover", object_click[0], object_click[1]))
        updated["last_object_clicked"] = object_click
        # Some leaflet builds also report the marker click as a map click.
        if map_click == object_click:
            updated["last_clicked"] = map_click

    if map_click is not None and map_click != updated.get("last_clicked"):
        events.append(("click", map_click[0], map_click[1]))
        updated["last_clicked"] = map_click

    return events, updated


def _dispatch_map_events(adapter: FoliumMapAdapter, events: Sequence[MapEvent]) -> bool:
    handled = False
    for kind, lat, lon in events:
        if kind == "hover":
            handle = adapter.marker_at(lat, lon)
            if handle is None:
                LOGGER.debug("Marker click at (%.5f, %.5f) matched no city.", lat, lon)
                continue
            handled = adapter.dispatch_hover(handle) or handled
        elif kind == "click":
            handled = adapter.dispatch_map_click(lat, lon) or handled
    return handled


def _city_list_frame(rows: Sequence[CityListRow]) -> pd.DataFrame:
    frame = cities_to_frame(row.city for row in rows)
    frame["distance_km"] = pd.array([row.distance for row in rows], dtype="Int64")
    return frame


def _city_list_html(rows: Sequence[CityListRow]) -> str:
    items = []
    for row in rows:
        prefix = f"[ {row.distance} km ] - " if row.distance is not None else ""
        style = "color:#dc2626;font-size:1.2em;font-weight:600;" if row.highlighted else ""
        items.append(
            f'<li>{html.escape(prefix)}<span style="{style}">{html.escape(str(row.city.name))}</span></li>'
        )
    return f"<ul style=\"list-style:none;padding-left:0;\">{''.join(items)}</ul>"


def _get_controller(settings: ExplorerSettings) -> ExplorerController:
    controller = st.session_state.get("controller")
    if isinstance(controller, ExplorerController):
        return controller

    controller = ExplorerController(
        CitySource(api_url=settings.api_url, timeout=settings.fetch_timeout)
    )
    controller.load()
    st.session_state["controller"] = controller
    return controller


def app() -> None:
    st.set_page_config(
        page_title="City Explorer",
        page_icon=":world_map:",
        layout="wide",
    )

    if not st.session_state.get("logging_configured"):
        setup_logging()
        st.session_state["logging_configured"] = True

    st.title("City Explorer")
    st.caption(
        "Hover a city for details, click anywhere on the map to measure distances to every city."
    )
    _initialize_ui_state()

    settings = load_settings()
    controller = _get_controller(settings)

    with st.sidebar:
        st.header("Filters")
        with st.form("city_filters"):
            max_count_raw = st.text_input("Max number of cities", key="max_count_input")
            min_population_raw = st.text_input("Minimum population", key="min_population_input")
            region_raw = st.text_input("Region", key="region_input")
            submitted = st.form_submit_button("Filter", type="primary")

        left, right = st.columns(2)
        reset_clicked = left.button("Reset Filters", on_click=_reset_filter_controls)
        reload_clicked = right.button("Reload Cities")

        st.subheader("My Location")
        use_location = st.checkbox("Measure hover distance from my location", key="use_user_location")
        user_lat = st.number_input("Latitude", min_value=-90.0, max_value=90.0, key="user_lat")
        user_lon = st.number_input("Longitude", min_value=-180.0, max_value=180.0, key="user_lon")

        st.subheader("Selection")
        sel_left, sel_right = st.columns(2)
        clear_highlight = sel_left.button("Clear Highlight")
        clear_point = sel_right.button("Clear Point")

    if submitted:
        controller.submit_filters(
            parse_filter_form(
                max_count=max_count_raw,
                min_population=min_population_raw,
                region=region_raw,
            )
        )
    elif reset_clicked or reload_clicked:
        controller.load()

    location = ReferencePoint(lat=float(user_lat), lon=float(user_lon)) if use_location else None
    if location != controller.machine.user_location:
        controller.set_user_location(location)

    if clear_point:
        controller.reset_interaction()
    elif clear_highlight:
        controller.unhover()

    if controller.last_error:
        st.caption(f"Could not refresh cities: `{controller.last_error}`")

    list_col, map_col = st.columns([1, 3])

    adapter = FoliumMapAdapter(center=settings.map_center, zoom=settings.zoom, tiles=settings.tiles)
    render_explorer_map(
        adapter,
        controller.cities,
        controller.state,
        handler=controller,
        active_filter=controller.active_filter,
    )

    with map_col:
        output = st_folium(
            adapter.build_map(),
            key=MAP_KEY,
            height=MAP_HEIGHT,
            use_container_width=True,
            returned_objects=["last_clicked", "last_object_clicked"],
        )

    events, seen = _pending_map_events(output, st.session_state["seen_map_output"])
    st.session_state["seen_map_output"] = seen
    if events and _dispatch_map_events(adapter, events):
        st.rerun()

    rows = controller.city_rows()
    with list_col:
        st.subheader("Cities")
        st.markdown(_city_list_html(rows), unsafe_allow_html=True)

        frame = _city_list_frame(rows)
        st.download_button(
            label="Download City List CSV",
            data=frame.to_csv(index=False).encode("utf-8"),
            file_name="city_list.csv",
            mime="text/csv",
        )


if __name__ == "__main__":
    if not _streamlit_runtime_exists():
        raise SystemExit("Run this UI with: python3 -m streamlit run app.py")
    app()
