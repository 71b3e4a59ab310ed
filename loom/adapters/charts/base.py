"""
Base dataclass for D3 chart mounts.

A chart holds the data and layout the browser-side D3 code draws from:
the element size, margins, scale domains and the current data. The drawing
itself happens in the browser; this side keeps the description that every update
recomputes and writes onto the element.
"""

import math
from dataclasses import dataclass, field
from typing import Any

from bs4 import Tag

from loom.adapters.mounting import write_state

DEFAULT_WIDTH = 640
DEFAULT_HEIGHT = 320
DEFAULT_COLOR = "#F0177A"


def nice_ceiling(value: float, ticks: int = 10) -> float:
    """Round ``value`` up to a tick boundary, like d3's ``scale.nice()``."""
    if value <= 0 or not math.isfinite(value):
        return 1.0
    raw_step = value / ticks
    power = 10 ** math.floor(math.log10(raw_step))
    error = raw_step / power
    if error >= math.sqrt(50):
        power *= 10
    elif error >= math.sqrt(10):
        power *= 5
    elif error >= math.sqrt(2):
        power *= 2
    return math.ceil(value / power) * power


def element_size(element: Tag) -> tuple[int, int]:
    """Pixel size from ``width``/``height`` in the inline style, or defaults."""
    sizes = {"width": DEFAULT_WIDTH, "height": DEFAULT_HEIGHT}
    for declaration in (element.get("style") or "").split(";"):
        name, _, value = declaration.partition(":")
        name, value = name.strip().lower(), value.strip().lower()
        if name in sizes and value.endswith("px"):
            try:
                sizes[name] = int(float(value[:-2]))
            except ValueError:
                continue
    return sizes["width"], sizes["height"]


@dataclass
class D3Chart:
    """Size, data and layout of one mounted D3 chart.

    Subclasses set ``chart_type`` and ``margin`` and implement ``layout``,
    which derives scale domains from the current data.
    """

    element: Tag
    data: Any = None
    config: dict[str, Any] = field(default_factory=dict)
    revision: int = 0

    chart_type = "chart"
    margin = {"top": 16, "right": 24, "bottom": 40, "left": 52}

    def __post_init__(self) -> None:
        self.width, self.height = element_size(self.element)
        self.sync()

    @property
    def color(self) -> str:
        return self.config.get("color", DEFAULT_COLOR)

    @property
    def inner_size(self) -> tuple[int, int]:
        m = self.margin
        return self.width - m["left"] - m["right"], self.height - m["top"] - m["bottom"]

    def accepts(self, data: Any) -> bool:
        return isinstance(data, list)

    def layout(self) -> dict[str, Any]:
        return {}

    def update(self, data: Any) -> None:
        """Replace the data; payloads of the wrong shape are ignored.

        If the layout cannot be computed for the new data, the previous data
        and state are kept and the error propagates.
        """
        if not self.accepts(data):
            return
        previous = self.data
        self.data = data
        try:
            self.sync()
        except Exception:
            self.data = previous
            raise

    def sync(self) -> None:
        # Revision moves only once the state has been built
        state = self.to_dict()
        state["revision"] = self.revision + 1
        write_state(self.element, "d3", state)
        self.revision += 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        inner_w, inner_h = self.inner_size
        return {
            "chart_type": self.chart_type,
            "width": self.width,
            "height": self.height,
            "inner": [inner_w, inner_h],
            "color": self.color,
            "data": self.data if self.accepts(self.data) else None,
            "layout": self.layout() if self.accepts(self.data) else {},
            "revision": self.revision,
        }
