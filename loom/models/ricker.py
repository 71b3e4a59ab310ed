"""
Ricker population model widgets.

The Ricker map: x[n+1] = x[n] * exp(r * (1 - x[n]))
Produces a stable fixed point, periodic orbits or chaos depending on the
growth rate r.

Markup (rendered through the ECharts adapter):
    <div data-viz="ricker"></div>           interactive widget with sliders
    <div data-viz="ricker-scrolly"></div>   driven by story steps

Inside a ``.story-graphic`` the scrolly variant follows the section's steps
on its own: entering a step selects the preset named by its ``data-step``
(or its index), and unknown steps show preset 0. It also accepts step
payloads either as a preset step number or as explicit parameters:

    data-update='{"ricker-demo": {"step": 2}}'
    data-update='{"ricker-demo": {"r": 2.7, "n": 120}}'
"""

from typing import Any

import numpy as np
from bs4 import Tag

from loom.adapters.echarts import EChart, render_echart
from loom.adapters.mounting import make_tag, write_state

ACCENT = "#F0177A"

# Step 0: stable fixed point, step 1: period-2 orbit, step 2: chaotic regime
SCROLLY_STEPS: tuple[dict[str, float], ...] = (
    {"r": 1.2, "x0": 0.5, "n": 80},
    {"r": 2.2, "x0": 0.5, "n": 80},
    {"r": 3.0, "x0": 0.5, "n": 80},
)

INTERACTIVE_DEFAULTS = {"r": 2.5, "x0": 0.1, "n": 80}


# =============================================================================
# MODEL
# =============================================================================


def ricker_series(r: float, x0: float, n: int) -> np.ndarray:
    """Iterate the Ricker map for ``n`` steps starting from ``x0``."""
    n = max(int(n), 1)
    xs = np.empty(n, dtype=float)
    xs[0] = x0
    for i in range(1, n):
        xs[i] = xs[i - 1] * np.exp(r * (1.0 - xs[i - 1]))
    return xs


# =============================================================================
# CHART OPTIONS
# =============================================================================


def time_series_option(xs: np.ndarray) -> dict[str, Any]:
    values = np.round(xs, 6).tolist()
    return {
        "animation": False,
        "title": {"text": "Time series", "left": 0, "top": 0, "textStyle": {"fontSize": 13, "fontWeight": "500"}},
        "grid": {"top": 36, "right": 16, "bottom": 40, "left": 56},
        "xAxis": {"type": "category", "data": list(range(len(values))), "name": "n",
                  "nameLocation": "middle", "nameGap": 28},
        "yAxis": {"type": "value", "name": "xₙ", "nameLocation": "middle", "nameGap": 40, "min": 0},
        "series": [{
            "type": "line",
            "data": values,
            "showSymbol": len(values) <= 60,
            "symbolSize": 4,
            "lineStyle": {"width": 1.5, "color": ACCENT},
            "itemStyle": {"color": ACCENT},
        }],
        "tooltip": {"trigger": "axis"},
    }


def phase_option(xs: np.ndarray) -> dict[str, Any]:
    """Phase plot of the pairs (x[n], x[n+1]) against the 45 degree diagonal."""
    pairs = np.round(np.column_stack([xs[:-1], xs[1:]]), 6).tolist()
    max_val = float(max(xs.max(initial=0.0), 1.5))

    return {
        "animation": False,
        "title": {"text": "Phase plot", "left": 0, "top": 0, "textStyle": {"fontSize": 13, "fontWeight": "500"}},
        "grid": {"top": 36, "right": 16, "bottom": 40, "left": 56},
        "xAxis": {"type": "value", "name": "xₙ", "nameLocation": "middle", "nameGap": 28, "min": 0},
        "yAxis": {"type": "value", "name": "xₙ₊₁", "nameLocation": "middle", "nameGap": 40, "min": 0},
        "series": [
            {
                "type": "line",
                "data": [[0, 0], [max_val, max_val]],
                "showSymbol": False,
                "lineStyle": {"type": "dashed", "color": "#888", "width": 1},
                "z": 1,
                "silent": True,
            },
            {
                "type": "scatter",
                "data": pairs,
                "symbolSize": 3 if len(pairs) > 80 else 5,
                "itemStyle": {"color": ACCENT, "opacity": 0.65},
                "z": 2,
            },
        ],
        "tooltip": {"trigger": "item"},
    }


# =============================================================================
# WIDGET
# =============================================================================


class RickerWidget:
    """Time-series and phase charts for one parameter set."""

    def __init__(self, element: Tag, *, r: float, x0: float, n: int, variant: str) -> None:
        self.element = element
        self.variant = variant
        self.r = float(r)
        self.x0 = float(x0)
        self.n = int(n)
        self.ts_el = element.select_one(".ricker-timeseries")
        self.ph_el = element.select_one(".ricker-phase")
        self.ts_chart: EChart | None = None
        self.ph_chart: EChart | None = None
        self._draw()

    def set_params(self, r: float | None = None, x0: float | None = None, n: int | None = None) -> None:
        if r is not None:
            self.r = float(r)
        if x0 is not None:
            self.x0 = float(x0)
        if n is not None:
            self.n = int(n)
        self._draw()

    def set_option(self, data: dict[str, Any]) -> None:
        """Apply a step payload: ``{"step": k}`` or explicit ``r``/``x0``/``n``."""
        if not isinstance(data, dict):
            return
        if "step" in data:
            preset = _step_preset(data["step"])
            self.set_params(preset["r"], preset["x0"], preset["n"])
            return
        self.set_params(data.get("r"), data.get("x0"), data.get("n"))

    def on_step(self, notification: Any) -> None:
        """Follow the story steps of the enclosing section (scrolly variant only)."""
        if self.variant != "ricker-scrolly":
            return
        preset = _step_preset(notification.step)
        self.set_params(preset["r"], preset["x0"], preset["n"])

    def series(self) -> np.ndarray:
        return ricker_series(self.r, self.x0, self.n)

    def to_dict(self) -> dict[str, Any]:
        return {"variant": self.variant, "r": self.r, "x0": self.x0, "n": self.n}

    def _draw(self) -> None:
        xs = self.series()
        self.ts_chart = _draw_chart(self.ts_chart, self.ts_el, time_series_option(xs))
        self.ph_chart = _draw_chart(self.ph_chart, self.ph_el, phase_option(xs))
        write_state(self.element, "echarts", self.to_dict())


def _draw_chart(chart: EChart | None, element: Tag | None, option: dict[str, Any]) -> EChart | None:
    if chart is not None:
        chart.set_option(option, not_merge=True)
        return chart
    if element is None:
        return None
    return render_echart(element, option)


def _step_preset(step: Any) -> dict[str, float]:
    # "2" and "2.0" both select preset 2; anything else falls back to step 0
    try:
        value = float(step)
    except (TypeError, ValueError):
        return SCROLLY_STEPS[0]
    if value.is_integer() and 0 <= value < len(SCROLLY_STEPS):
        return SCROLLY_STEPS[int(value)]
    return SCROLLY_STEPS[0]


def _charts_markup(element: Tag, variant_class: str) -> None:
    element.clear()
    widget = make_tag("div", {"class": ["ricker-widget", variant_class]})
    charts = make_tag("div", {"class": ["ricker-charts"]})
    charts.append(make_tag("div", {"class": ["ricker-timeseries"]}))
    charts.append(make_tag("div", {"class": ["ricker-phase"]}))
    widget.append(charts)
    element.append(widget)


def _controls_markup(element: Tag, r: float, x0: float, n: int) -> None:
    controls = make_tag("div", {"class": ["ricker-controls"]})
    sliders = (
        ("ricker-r", "Growth rate r", 0, 4, 0.05, r, f"{r:.2f}"),
        ("ricker-x0", "Initial value x0", 0.01, 0.99, 0.01, x0, f"{x0:.2f}"),
        ("ricker-n", "Iterations n", 10, 300, 5, n, str(n)),
    )
    for css, label, lo, hi, step, value, shown in sliders:
        wrapper = make_tag("label", {"class": ["ricker-label"]})
        wrapper.append(make_tag("span", string=label))
        wrapper.append(make_tag("input", {
            "class": [css],
            "type": "range",
            "min": str(lo),
            "max": str(hi),
            "step": str(step),
            "value": str(value),
        }))
        wrapper.append(make_tag("strong", {"class": [f"{css}-val"]}, string=shown))
        controls.append(wrapper)
    element.select_one(".ricker-widget").insert(0, controls)


def render_ricker(element: Tag, options: dict[str, Any]) -> RickerWidget:
    """Interactive widget: sliders for r, x0 and n plus both charts."""
    params = {**INTERACTIVE_DEFAULTS, **{k: v for k, v in (options or {}).items() if k in INTERACTIVE_DEFAULTS}}
    _charts_markup(element, "ricker-widget--interactive")
    _controls_markup(element, float(params["r"]), float(params["x0"]), int(params["n"]))
    return RickerWidget(element, r=params["r"], x0=params["x0"], n=params["n"], variant="ricker")


def render_ricker_scrolly(element: Tag, options: dict[str, Any]) -> RickerWidget:
    """Scrolly widget: no controls, starts at step 0."""
    preset = SCROLLY_STEPS[0]
    _charts_markup(element, "ricker-widget--scrolly")
    return RickerWidget(element, r=preset["r"], x0=preset["x0"], n=preset["n"], variant="ricker-scrolly")
