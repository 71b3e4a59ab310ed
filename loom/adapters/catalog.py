"""
Descriptors for the built-in visualization adapters, in bootstrap order.

Each entry describes one library: how to detect whether a page needs it,
which CDN assets to load, how to initialise it and how to render or update
individual elements in response to story steps.
"""

from typing import Any

from bs4 import Tag

from loom.adapters.d3 import D3_CDN, detect_d3, render_d3, update_d3
from loom.adapters.diagrams import MERMAID_CDN, detect_diagrams, init_diagrams
from loom.adapters.echarts import ECHARTS_CDN, detect_echarts, render_echart, update_echart
from loom.adapters.katex import KATEX_CDN, detect_math, init_math
from loom.adapters.leaflet import LEAFLET_CDN, detect_leaflet, render_leaflet, update_leaflet
from loom.adapters.mapbox import MAPBOX_CDN, detect_mapbox, render_map, update_map
from loom.models.ricker import render_ricker, render_ricker_scrolly
from loom.runtime.base import AdapterDescriptor

# data-viz values with a dedicated renderer; everything else is a generic chart
ECHARTS_RENDERERS = {
    "ricker": render_ricker,
    "ricker-scrolly": render_ricker_scrolly,
}


def render_echarts_element(element: Tag, options: dict[str, Any]) -> Any:
    named = ECHARTS_RENDERERS.get(element.get("data-viz"))
    if named is not None:
        return named(element, options)
    return render_echart(element, options or {})


DEFAULT_ADAPTERS: tuple[AdapterDescriptor, ...] = (
    # init renders the whole page; no per-element API
    AdapterDescriptor(id="math", detect=detect_math, cdn=KATEX_CDN, init=init_math),
    AdapterDescriptor(id="diagrams", detect=detect_diagrams, cdn=MERMAID_CDN, init=init_diagrams),
    AdapterDescriptor(
        id="echarts",
        detect=detect_echarts,
        cdn=ECHARTS_CDN,
        selector="[data-viz]",
        render=render_echarts_element,
        update=update_echart,
    ),
    AdapterDescriptor(
        id="leaflet",
        detect=detect_leaflet,
        cdn=LEAFLET_CDN,
        selector="[data-leaflet]",
        render=render_leaflet,
        update=update_leaflet,
    ),
    AdapterDescriptor(
        id="d3",
        detect=detect_d3,
        cdn=D3_CDN,
        selector="[data-d3]",
        render=render_d3,
        update=update_d3,
    ),
    AdapterDescriptor(
        id="mapbox",
        detect=detect_mapbox,
        cdn=MAPBOX_CDN,
        selector="[data-map]",
        render=render_map,
        update=update_map,
    ),
)

__all__ = [
    "DEFAULT_ADAPTERS",
    "ECHARTS_RENDERERS",
    "render_echarts_element",
]
