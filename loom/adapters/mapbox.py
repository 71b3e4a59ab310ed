"""
Mapbox GL maps (requires an access token).

Markup:
    <div data-map="calgary" style="height:500px;"></div>
    <div data-map="custom" data-center="-113.5,51.0" data-zoom="10"></div>
    <div data-map="custom" data-center="7.82,45.97" data-zoom="13"
         data-pitch="55" data-bearing="170" data-terrain="1.5"
         data-style="mapbox://styles/mapbox/satellite-streets-v12"></div>

Access token, in order of precedence:
    1. data-token attribute on the element
    2. LOOM_MAPBOX_TOKEN setting

Camera precedence: data attributes, then options, then the named preset,
then defaults. For token-free maps use the Leaflet adapter.
"""

import logging
from dataclasses import dataclass
from typing import Any

from bs4 import Tag

from config.settings import get_settings
from loom.adapters.mounting import show_error, write_state
from loom.runtime.base import CdnManifest, DetectionContext
from loom.runtime.page import library_available

logger = logging.getLogger(__name__)

MAPBOX_CDN = CdnManifest(
    styles=("https://api.mapbox.com/mapbox-gl-js/v3.10.0/mapbox-gl.css",),
    scripts=("https://api.mapbox.com/mapbox-gl-js/v3.10.0/mapbox-gl.js",),
)

DEFAULT_STYLE = "mapbox://styles/mapbox/outdoors-v12"
DEFAULT_TERRAIN_EXAGGERATION = 1.5
FLY_DURATION_MS = 1500

PRESETS: dict[str, dict[str, Any]] = {
    "calgary": {"center": [-114.0719, 51.0447], "zoom": 11},
    "edmonton": {"center": [-113.4938, 53.5461], "zoom": 11},
    "vancouver": {"center": [-123.1207, 49.2827], "zoom": 11},
    "toronto": {"center": [-79.3832, 43.6532], "zoom": 11},
    "world": {"center": [0, 20], "zoom": 1.5},
    "zermatt": {"center": [7.7491, 46.0207], "zoom": 13},
    "findelen": {"center": [7.840, 46.012], "zoom": 13},
    "gorner": {"center": [7.820, 45.970], "zoom": 12},
    "chamonix": {"center": [6.869, 45.924], "zoom": 12},
    "peyto": {"center": [-116.530, 51.715], "zoom": 13},
    "athabasca": {"center": [-117.245, 52.190], "zoom": 12},
}


@dataclass
class MapboxMap:
    """Camera state of one mounted Mapbox map."""

    element: Tag
    center: list[float]
    zoom: float
    pitch: float = 0.0
    bearing: float = 0.0
    style: str = DEFAULT_STYLE
    terrain: float | None = None
    last_fly: dict[str, Any] | None = None

    def fly_to(self, **camera: Any) -> None:
        duration = camera.pop("duration", FLY_DURATION_MS)
        for key, value in camera.items():
            setattr(self, key, [float(v) for v in value] if key == "center" else float(value))
        self.last_fly = {"duration": duration, **camera}
        self.sync()

    def sync(self) -> None:
        write_state(self.element, "mapbox", self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        return {
            "center": self.center,
            "zoom": self.zoom,
            "pitch": self.pitch,
            "bearing": self.bearing,
            "style": self.style,
            "terrain": self.terrain,
            "lastFly": self.last_fly,
        }


def detect_mapbox(context: DetectionContext) -> bool:
    page = context.page
    return page.has_flag("tag-hash-geo") or page.exists("[data-map]")


def parse_center(value: str | None) -> list[float] | None:
    """Parse ``"lng,lat"``; None if absent or malformed."""
    if not value:
        return None
    parts = value.split(",")
    if len(parts) != 2:
        return None
    try:
        return [float(parts[0]), float(parts[1])]
    except ValueError:
        return None


def _number(element: Tag, name: str) -> float | None:
    raw = element.get(f"data-{name}")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _first(*values: Any) -> Any:
    return next((v for v in values if v is not None), None)


def render_map(element: Tag, options: dict[str, Any]) -> MapboxMap | None:
    """Mount a map; None (with an inert message) if it cannot be created."""
    if not library_available(element, "mapbox-gl"):
        return None

    token = element.get("data-token") or get_settings().mapbox_token
    if not token:
        show_error(element, "Map unavailable: no Mapbox access token found.")
        return None

    options = options or {}
    preset = PRESETS.get(element.get("data-map", ""), {})

    terrain = None
    if element.has_attr("data-terrain"):
        terrain = _number(element, "terrain") or DEFAULT_TERRAIN_EXAGGERATION

    mapbox_map = MapboxMap(
        element=element,
        center=_first(parse_center(element.get("data-center")), options.get("center"), preset.get("center"), [0, 0]),
        zoom=float(_first(_number(element, "zoom"), options.get("zoom"), preset.get("zoom"), 2)),
        pitch=float(_first(_number(element, "pitch"), options.get("pitch"), 0)),
        bearing=float(_first(_number(element, "bearing"), options.get("bearing"), 0)),
        style=element.get("data-style") or options.get("style") or DEFAULT_STYLE,
        terrain=terrain,
    )
    mapbox_map.sync()
    return mapbox_map


def update_map(element: Tag, data: Any, instance: MapboxMap | None) -> None:
    """Fly the camera to any of ``center``/``zoom``/``pitch``/``bearing``."""
    if instance is None or not isinstance(data, dict):
        return
    camera = {k: data[k] for k in ("center", "zoom", "pitch", "bearing") if data.get(k) is not None}
    if not camera:
        return
    duration = FLY_DURATION_MS if data.get("animate", True) else 0
    instance.fly_to(duration=duration, **camera)
