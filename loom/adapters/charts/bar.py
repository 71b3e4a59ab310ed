"""
Horizontal bar chart.

data-options: {"data": [{"label": "Apples", "value": 42}, ...]}
"""

from typing import Any

from loom.adapters.charts.base import D3Chart, nice_ceiling


class BarChart(D3Chart):
    chart_type = "bar"
    margin = {"top": 16, "right": 24, "bottom": 40, "left": 120}
    padding = 0.28

    def layout(self) -> dict[str, Any]:
        labels = [d.get("label") for d in self.data]
        max_value = max((d.get("value", 0) for d in self.data), default=1)
        inner_w, inner_h = self.inner_size
        band = inner_h / len(labels) if labels else 0.0

        return {
            "y_domain": labels,
            "x_domain": [0, nice_ceiling(max_value)],
            "bandwidth": round(band * (1 - self.padding), 3),
            "range": [0, inner_w],
        }
