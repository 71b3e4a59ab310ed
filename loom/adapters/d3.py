"""
D3 chart adapter.

Built-in chart types:

    bar    Horizontal bar chart.  data-options: {"data": [{label, value}]}
    line   Line chart.            data-options: {"data": [{x, value}]}
    force  Force-directed graph.  data-options: {"data": {"nodes": [{id}], "links": [{source, target}]}}

Markup:
    <div data-d3="bar" id="pop-chart" style="height:320px"
         data-options='{"data": [{"label": "1970", "value": 3.7}]}'></div>

Scrolly update:
    data-update='{"pop-chart": {"data": [{"label": "2024", "value": 8.1}]}}'

Custom chart types are added with ``register_d3_chart(name, factory)``, where
``factory(element, data, options)`` returns an object with ``update(data)``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from bs4 import Tag

from loom.adapters.charts import BarChart, ForceGraph, LineChart
from loom.runtime.base import CdnManifest, DetectionContext

logger = logging.getLogger(__name__)

ChartFactory = Callable[[Tag, Any, dict[str, Any]], Any]

# D3 is imported as an ES module by the charts themselves
D3_CDN = CdnManifest()

_D3_CHARTS: dict[str, ChartFactory] = {}


def register_d3_chart(name: str, factory: ChartFactory) -> None:
    """Register a chart factory under the ``data-d3`` name it handles."""
    _D3_CHARTS[name] = factory


def get_d3_chart(name: str | None) -> ChartFactory | None:
    if name is None:
        return None
    return _D3_CHARTS.get(name)


def d3_chart_types() -> list[str]:
    return sorted(_D3_CHARTS)


def _builtin(chart_cls: type) -> ChartFactory:
    def factory(element: Tag, data: Any, options: dict[str, Any]) -> Any:
        return chart_cls(element=element, data=data, config=options)

    return factory


register_d3_chart("bar", _builtin(BarChart))
register_d3_chart("line", _builtin(LineChart))
register_d3_chart("force", _builtin(ForceGraph))


@dataclass
class D3Mount:
    """The instance registered for a D3 element: a handle on its chart."""

    chart: Any
    chart_type: str

    def update(self, data: Any) -> None:
        update = getattr(self.chart, "update", None)
        if callable(update):
            update(data)


def detect_d3(context: DetectionContext) -> bool:
    page = context.page
    return page.has_flag("tag-hash-d3") or page.exists("[data-d3]")


def render_d3(element: Tag, options: dict[str, Any]) -> D3Mount | None:
    """Mount the chart named by ``data-d3``; None for unknown chart types."""
    chart_type = element.get("data-d3")
    factory = get_d3_chart(chart_type)
    if factory is None:
        logger.warning(
            f'[loom/d3] Unknown chart type: "{chart_type}". '
            f"Register it with register_d3_chart() or use: {', '.join(d3_chart_types())}."
        )
        return None

    opts = dict(options or {})
    data = opts.pop("data", None)
    chart = factory(element, data if data is not None else [], opts)
    return D3Mount(chart=chart, chart_type=chart_type)


def update_d3(element: Tag, data: Any, instance: D3Mount | None) -> None:
    """Forward ``data["data"]`` (or the whole payload) to the chart."""
    if instance is None:
        return
    if isinstance(data, dict) and "data" in data:
        data = data["data"]
    instance.update(data)
