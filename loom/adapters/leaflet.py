"""
Leaflet interactive maps (no API key required).

Markup:
    <div data-leaflet id="city-map" style="height:400px"
         data-lat="51.505" data-lng="-0.09" data-zoom="13"
         data-tiles="carto"
         data-markers='[{"lat": 51.5, "lng": -0.09, "label": "Hello"}]'></div>

Scrolly fly-to:
    data-update='{"city-map": {"lat": 48.858, "lng": 2.295, "zoom": 15}}'

Data attributes take precedence over the element's options.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from bs4 import Tag

from loom.adapters.mounting import write_state
from loom.runtime.base import CdnManifest, DetectionContext
from loom.runtime.page import document_of, library_available

logger = logging.getLogger(__name__)

LEAFLET_CDN = CdnManifest(
    styles=("https://unpkg.com/leaflet@1.9/dist/leaflet.css",),
    scripts=("https://unpkg.com/leaflet@1.9/dist/leaflet.js",),
)

OSM_ATTRIBUTION = '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a>'
CARTO_ATTRIBUTION = f'{OSM_ATTRIBUTION} &copy; <a href="https://carto.com/attributions">CARTO</a>'

TILE_PRESETS: dict[str, dict[str, Any]] = {
    "osm": {
        "url": "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        "attr": OSM_ATTRIBUTION,
        "maxZoom": 19,
    },
    "carto": {
        "url": "https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}{r}.png",
        "attr": CARTO_ATTRIBUTION,
        "maxZoom": 20,
    },
    "carto-dark": {
        "url": "https://{s}.basemaps.cartocdn.com/dark_all/{z}/{x}/{y}{r}.png",
        "attr": CARTO_ATTRIBUTION,
        "maxZoom": 20,
    },
    "stadia": {
        "url": "https://tiles.stadiamaps.com/tiles/alidade_smooth/{z}/{x}/{y}{r}.png",
        "attr": f'&copy; <a href="https://stadiamaps.com/">Stadia Maps</a>, {OSM_ATTRIBUTION}',
        "maxZoom": 20,
    },
}

DEFAULT_VIEW = {"lat": 51.505, "lng": -0.09, "zoom": 13}
FLY_DURATION = 1.5


@dataclass
class LeafletMap:
    """View state of one mounted Leaflet map."""

    element: Tag
    lat: float
    lng: float
    zoom: float
    tiles: str = "osm"
    dark_tiles: str = "osm"
    dark: bool = False
    markers: list[dict[str, Any]] = field(default_factory=list)
    transition: dict[str, Any] | None = None

    @property
    def active_tiles(self) -> str:
        return self.dark_tiles if self.dark else self.tiles

    def fly_to(self, lat: float, lng: float, zoom: float | None = None, *, animate: bool = True) -> None:
        self.lat = float(lat)
        self.lng = float(lng)
        if zoom is not None:
            self.zoom = float(zoom)
        self.transition = {"type": "flyTo", "duration": FLY_DURATION if animate else 0}
        self.sync()

    def set_zoom(self, zoom: float, *, animate: bool = True) -> None:
        self.zoom = float(zoom)
        self.transition = {"type": "setZoom", "animate": animate}
        self.sync()

    def sync(self) -> None:
        write_state(self.element, "leaflet", self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        preset = TILE_PRESETS[self.active_tiles]
        return {
            "center": [self.lat, self.lng],
            "zoom": self.zoom,
            "tiles": self.active_tiles,
            "tileUrl": preset["url"],
            "maxZoom": preset["maxZoom"],
            "markers": self.markers,
            "transition": self.transition,
        }


def detect_leaflet(context: DetectionContext) -> bool:
    page = context.page
    return page.has_flag("tag-hash-leaflet") or page.exists("[data-leaflet]")


def parse_markers(element: Tag) -> list[dict[str, Any]]:
    """Markers from ``data-markers``; malformed JSON is reported and ignored."""
    raw = element.get("data-markers")
    if not raw:
        return []
    try:
        markers = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"[loom/leaflet] Invalid data-markers JSON on #{element.get('id')}: {e}")
        return []
    if not isinstance(markers, list):
        logger.warning(f"[loom/leaflet] data-markers on #{element.get('id')} is not a list")
        return []
    return [
        {"lat": float(m["lat"]), "lng": float(m["lng"]), "label": m.get("label")}
        for m in markers
        if isinstance(m, dict) and "lat" in m and "lng" in m
    ]


def _setting(element: Tag, options: dict[str, Any], name: str) -> Any:
    value = element.get(f"data-{name}")
    if value is not None:
        return value
    return options.get(name, DEFAULT_VIEW.get(name))


def render_leaflet(element: Tag, options: dict[str, Any]) -> LeafletMap | None:
    """Mount a map; None if Leaflet is not on the page."""
    if not library_available(element, "leaflet"):
        return None

    options = options or {}
    tiles = element.get("data-tiles") or options.get("tiles", "osm")
    if tiles not in TILE_PRESETS:
        tiles = "osm"
    dark_tiles = element.get("data-tiles-dark") or ("carto-dark" if tiles == "carto" else tiles)
    if dark_tiles not in TILE_PRESETS:
        dark_tiles = tiles

    root = document_of(element).find("html")
    leaflet_map = LeafletMap(
        element=element,
        lat=float(_setting(element, options, "lat")),
        lng=float(_setting(element, options, "lng")),
        zoom=float(_setting(element, options, "zoom")),
        tiles=tiles,
        dark_tiles=dark_tiles,
        dark=root is not None and root.get("data-theme") == "dark",
        markers=parse_markers(element),
    )
    leaflet_map.sync()
    return leaflet_map


def update_leaflet(element: Tag, data: Any, instance: LeafletMap | None) -> None:
    """Fly to ``lat``/``lng`` (keeping the zoom unless given), or just zoom."""
    if instance is None or not isinstance(data, dict):
        return
    lat, lng, zoom = data.get("lat"), data.get("lng"), data.get("zoom")
    animate = data.get("animate", True)

    if lat is not None and lng is not None:
        instance.fly_to(lat, lng, zoom, animate=animate)
    elif zoom is not None:
        instance.set_zoom(zoom, animate=animate)
