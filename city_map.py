"""Folium rendering of the explorer map.

``FoliumMapAdapter`` is the only place that knows about folium. It records
markers, icons and popups through a small imperative interface and turns
them into a ``folium.Map`` on ``build_map``. ``render_explorer_map`` drives
that interface from the current city collection and interaction state, so
the whole map is a function of (cities, state).
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, List, Optional, Sequence

try:
    import folium
    from branca.element import MacroElement, Template
    from folium import plugins
except ImportError as exc:
    raise SystemExit(
        "Folium dependencies are missing. Run: pip3 install -e ."
    ) from exc

from city_filters import CityFilter
from city_geo import ReferencePoint
from city_schema import City
from explorer_config import (
    CITY_ICON,
    DEFAULT_MAP_CENTER,
    DEFAULT_TILES,
    DEFAULT_ZOOM,
    HOVERED_CITY_ICON,
    REFERENCE_ICON,
    IconSpec,
)
from interaction import InteractionState

LOGGER = logging.getLogger("city_explorer.map")

HoverCallback = Callable[[], None]
ClickCallback = Callable[[ReferencePoint], None]


@dataclass
class MarkerHandle:
    lat: float
    lon: float
    icon: IconSpec
    tooltip: str = ""
    city_id: Optional[Hashable] = None
    popup_html: str = ""
    popup_open: bool = False

    @property
    def is_reference(self) -> bool:
        return self.city_id is None


def city_popup_html(city: City, distance: Optional[int] = None) -> str:
    distance_line = f"<br><b>Distance:</b> {distance} km" if distance is not None else ""
    return (
        '<div style="min-width:180px;font-family:Arial,sans-serif;font-size:13px;">'
        f"<b>{html.escape(str(city.name))}</b><br>"
        f"<b>Region:</b> {html.escape(str(city.region))}<br>"
        f"<b>Population:</b> {int(city.population):,}"
        f"{distance_line}"
        "</div>"
    )


def _div_icon(spec: IconSpec) -> folium.DivIcon:
    width, height = spec.size
    return folium.DivIcon(
        html=(
            f'<div style="width:{width}px;height:{height}px;border-radius:50% 50% 50% 0;'
            f"background:{spec.color};border:2px solid #ffffff;transform:rotate(-45deg);"
            'box-shadow:0 1px 4px rgba(0,0,0,0.4);"></div>'
        ),
        icon_size=spec.size,
        icon_anchor=spec.anchor,
        popup_anchor=spec.popup_anchor,
    )


class FoliumMapAdapter:
    def __init__(
        self,
        center: Sequence[float] = DEFAULT_MAP_CENTER,
        zoom: int = DEFAULT_ZOOM,
        tiles: str = DEFAULT_TILES,
    ) -> None:
        self.center = [float(center[0]), float(center[1])]
        self.zoom = zoom
        self.tiles = tiles
        self.markers: List[MarkerHandle] = []
        self.reference_marker: Optional[MarkerHandle] = None
        self.summary_lines: List[str] = []
        self._hover_callbacks: Dict[int, HoverCallback] = {}
        self._unhover_callbacks: Dict[int, HoverCallback] = {}
        self._click_callbacks: List[ClickCallback] = []

    def place_marker(self, city: City, icon: IconSpec) -> MarkerHandle:
        handle = MarkerHandle(
            lat=float(city.latitude),
            lon=float(city.longitude),
            icon=icon,
            tooltip=str(city.name),
            city_id=city.id,
        )
        self.markers.append(handle)
        return handle

    def place_reference_marker(self, point: ReferencePoint, icon: IconSpec) -> MarkerHandle:
        self.reference_marker = MarkerHandle(
            lat=float(point.lat),
            lon=float(point.lon),
            icon=icon,
            tooltip=f"{point.lat:.4f}, {point.lon:.4f}",
        )
        return self.reference_marker

    def set_icon(self, handle: MarkerHandle, icon: IconSpec) -> None:
        handle.icon = icon

    def open_popup(self, handle: MarkerHandle) -> None:
        handle.popup_open = True

    def set_popup_content(self, handle: MarkerHandle, content: str) -> None:
        handle.popup_html = content

    def on_hover(self, handle: MarkerHandle, callback: HoverCallback) -> None:
        self._hover_callbacks[id(handle)] = callback

    def on_unhover(self, handle: MarkerHandle, callback: HoverCallback) -> None:
        self._unhover_callbacks[id(handle)] = callback

    def on_map_click(self, callback: ClickCallback) -> None:
        self._click_callbacks.append(callback)

    def marker_for(self, city_id: Hashable) -> Optional[MarkerHandle]:
        for handle in self.markers:
            if handle.city_id == city_id:
                return handle
        return None

    def marker_at(self, lat: float, lon: float, tolerance: float = 1e-6) -> Optional[MarkerHandle]:
        for handle in self.markers:
            if abs(handle.lat - lat) <= tolerance and abs(handle.lon - lon) <= tolerance:
                return handle
        return None

    def dispatch_hover(self, handle: MarkerHandle) -> bool:
        callback = self._hover_callbacks.get(id(handle))
        if callback is None:
            return False
        callback()
        return True

    def dispatch_unhover(self, handle: MarkerHandle) -> bool:
        callback = self._unhover_callbacks.get(id(handle))
        if callback is None:
            return False
        callback()
        return True

    def dispatch_map_click(self, lat: float, lon: float) -> bool:
        point = ReferencePoint(lat=float(lat), lon=float(lon))
        for callback in self._click_callbacks:
            callback(point)
        return bool(self._click_callbacks)

    def _add_summary_panel(self, map_object: folium.Map) -> None:
        if not self.summary_lines:
            return
        items = "".join(f"<p>{html.escape(line)}</p>" for line in self.summary_lines)
        template = Template(
            f"""
            {{% macro html(this, kwargs) %}}
            <style>
              #explorer-card {{
                position: fixed;
                bottom: 18px;
                left: 18px;
                z-index: 9999;
                width: 260px;
                background: rgba(255, 255, 255, 0.96);
                border-radius: 10px;
                border: 1px solid #d6dde8;
                box-shadow: 0 8px 20px rgba(10, 25, 47, 0.15);
                padding: 10px 12px;
                font-family: Arial, sans-serif;
              }}
              #explorer-card h3 {{
                margin: 0 0 6px 0;
                font-size: 15px;
                color: #0f172a;
              }}
              #explorer-card p {{
                margin: 0 0 4px 0;
                font-size: 12px;
                color: #334155;
              }}
            </style>
            <div id="explorer-card">
              <h3>City Explorer</h3>
              {items}
            </div>
            {{% endmacro %}}
            """
        )
        macro = MacroElement()
        macro._template = template
        map_object.get_root().add_child(macro)

    def build_map(self) -> folium.Map:
        explorer_map = folium.Map(
            location=self.center,
            zoom_start=self.zoom,
            control_scale=True,
            tiles=self.tiles,
        )
        plugins.Fullscreen(
            position="topright",
            title="Full screen",
            title_cancel="Exit full screen",
            force_separate_button=True,
        ).add_to(explorer_map)

        city_layer = folium.FeatureGroup(name="Cities", show=True)
        for handle in self.markers:
            popup = None
            if handle.popup_html:
                popup = folium.Popup(handle.popup_html, max_width=300, show=handle.popup_open)
            folium.Marker(
                location=[handle.lat, handle.lon],
                icon=_div_icon(handle.icon),
                popup=popup,
                tooltip=handle.tooltip or None,
            ).add_to(city_layer)
        city_layer.add_to(explorer_map)

        if self.reference_marker is not None:
            folium.Marker(
                location=[self.reference_marker.lat, self.reference_marker.lon],
                icon=_div_icon(self.reference_marker.icon),
                tooltip=self.reference_marker.tooltip,
            ).add_to(explorer_map)

        self._add_summary_panel(explorer_map)
        return explorer_map


def _summary_lines(
    cities: Sequence[City],
    state: InteractionState,
    active_filter: Optional[CityFilter],
) -> List[str]:
    lines = [f"Cities shown: {len(cities):,}"]
    if active_filter is not None:
        if active_filter.region:
            lines.append(f"Region: {active_filter.region}")
        if active_filter.min_population:
            lines.append(f"Min population: {active_filter.min_population:,}")
        if active_filter.max_count:
            lines.append(f"Max cities: {active_filter.max_count:,}")
    if state.reference_point is not None:
        lines.append(
            "Distances from "
            f"{state.reference_point.lat:.4f}, {state.reference_point.lon:.4f}"
        )
    return lines


def render_explorer_map(
    adapter: FoliumMapAdapter,
    cities: Sequence[City],
    state: InteractionState,
    handler: Optional[object] = None,
    active_filter: Optional[CityFilter] = None,
) -> FoliumMapAdapter:
    """Place every marker and popup for ``cities`` as ``state`` dictates.

    ``handler`` receives map events: ``hover(city_id)``, ``unhover()`` and
    ``click(point)``; the controller implements all three.
    """
    for city in cities:
        hovered = state.hovered_city_id is not None and city.id == state.hovered_city_id
        handle = adapter.place_marker(city, CITY_ICON)
        adapter.set_popup_content(handle, city_popup_html(city, state.distance_for(city.id)))
        if hovered:
            adapter.set_icon(handle, HOVERED_CITY_ICON)
            adapter.open_popup(handle)

        if handler is not None:
            adapter.on_hover(handle, lambda city_id=city.id: handler.hover(city_id))
            adapter.on_unhover(handle, handler.unhover)

    if state.reference_point is not None:
        adapter.place_reference_marker(state.reference_point, REFERENCE_ICON)

    if handler is not None:
        adapter.on_map_click(handler.click)

    adapter.summary_lines = _summary_lines(cities, state, active_filter)
    LOGGER.debug(
        "Rendered %d markers (hovered=%r, reference=%s).",
        len(adapter.markers),
        state.hovered_city_id,
        state.reference_point is not None,
    )
    return adapter
