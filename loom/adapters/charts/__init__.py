"""
Built-in D3 chart types.

Each chart type has its own module with a D3Chart subclass. The d3 adapter
registers these under their ``data-d3`` names.
"""

from loom.adapters.charts.bar import BarChart
from loom.adapters.charts.base import D3Chart, nice_ceiling
from loom.adapters.charts.force import ForceGraph
from loom.adapters.charts.line import LineChart

__all__ = [
    "BarChart",
    "D3Chart",
    "ForceGraph",
    "LineChart",
    "nice_ceiling",
]
