"""
Numerical models rendered as interactive visualization widgets.
"""

from loom.models.ricker import (
    SCROLLY_STEPS,
    RickerWidget,
    render_ricker,
    render_ricker_scrolly,
    ricker_series,
)

__all__ = [
    "SCROLLY_STEPS",
    "RickerWidget",
    "render_ricker",
    "render_ricker_scrolly",
    "ricker_series",
]
