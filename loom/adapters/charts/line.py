"""
Line chart with a monotone curve.

data-options: {"data": [{"x": 1970, "value": 3.7}, ...]}
"""

from typing import Any

from loom.adapters.charts.base import D3Chart, nice_ceiling


class LineChart(D3Chart):
    chart_type = "line"
    curve = "monotoneX"

    def layout(self) -> dict[str, Any]:
        xs = [d["x"] for d in self.data if "x" in d]
        max_value = max((d.get("value", 0) for d in self.data), default=1)
        return {
            "x_domain": [min(xs), max(xs)] if xs else [0, 1],
            "y_domain": [0, nice_ceiling(max_value)],
            "curve": self.curve,
        }
