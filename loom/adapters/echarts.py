"""
ECharts adapter (generic option-driven charts).

Markup:
    <div data-viz="echarts" id="gdp" data-options='{ ECharts option JSON }'></div>

Scrolly update (generic charts only):
    data-update='{"gdp": { setOption-compatible partial }}'

Updates merge into the current option the way ``setOption(partial, false)``
does: objects merge recursively, component arrays (series, xAxis ...) merge
element by element, and anything else is replaced.
"""

import copy
import logging
from typing import Any

from bs4 import Tag

from loom.adapters.mounting import write_state
from loom.runtime.base import CdnManifest, DetectionContext
from loom.runtime.page import library_available

logger = logging.getLogger(__name__)

ECHARTS_CDN = CdnManifest(
    scripts=("https://cdn.jsdelivr.net/npm/echarts@5/dist/echarts.min.js",),
)

LOOM_THEME = {
    "color": ["#F0177A", "#2563EB", "#16A34A", "#D97706", "#7C3AED", "#0891B2"],
    "backgroundColor": "transparent",
    "textStyle": {"fontFamily": "'DM Sans', system-ui, sans-serif"},
}


def _merge_value(base: Any, patch: Any) -> Any:
    if isinstance(base, dict) and isinstance(patch, dict):
        merged = dict(base)
        for key, value in patch.items():
            merged[key] = _merge_value(base[key], value) if key in base else copy.deepcopy(value)
        return merged
    return copy.deepcopy(patch)


def merge_option(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Merge ``patch`` into ``base`` with setOption (merge mode) semantics."""
    merged = dict(base)
    for key, value in patch.items():
        current = base.get(key)
        if isinstance(current, list) and isinstance(value, list):
            # Component arrays merge by index
            components = [_merge_value(c, p) for c, p in zip(current, value)]
            components.extend(copy.deepcopy(value[len(current):]))
            components.extend(current[len(value):])
            merged[key] = components
        else:
            merged[key] = _merge_value(current, value) if key in base else copy.deepcopy(value)
    return merged


class EChart:
    """An ECharts instance mounted on one element."""

    def __init__(self, element: Tag, option: dict[str, Any], *, theme: str = "loom") -> None:
        self.element = element
        self.theme = theme
        self.option: dict[str, Any] = {}
        self.revision = 0
        self.set_option(option, not_merge=True)

    def set_option(self, option: dict[str, Any], not_merge: bool = False) -> None:
        if not isinstance(option, dict):
            return
        self.option = copy.deepcopy(option) if not_merge else merge_option(self.option, option)
        self.revision += 1
        write_state(self.element, "echarts", self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        return {"theme": self.theme, "revision": self.revision, "option": self.option}


def detect_echarts(context: DetectionContext) -> bool:
    page = context.page
    return page.has_flag("tag-hash-viz") or page.exists("[data-viz]")


def render_echart(element: Tag, option: dict[str, Any]) -> EChart | None:
    """Mount a chart on ``element``; None if ECharts is not on the page."""
    if not library_available(element, "echarts"):
        return None
    return EChart(element, option or {})


def update_echart(element: Tag, data: Any, instance: Any) -> None:
    if instance is not None and callable(getattr(instance, "set_option", None)):
        instance.set_option(data)
