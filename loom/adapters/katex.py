"""
KaTeX auto-render (inline and display mathematics).

Page-wide only: there is no per-element API. ``init_math`` injects one
auto-render bootstrap that typesets the content root with the delimiters

    Inline  $...$   and  \\(...\\)
    Display $$...$$ and  \\[...\\]
"""

import json
import logging

from loom.runtime.base import CdnManifest, DetectionContext
from loom.runtime.page import Page

logger = logging.getLogger(__name__)

KATEX_CDN = CdnManifest(
    styles=("https://cdn.jsdelivr.net/npm/katex@0.16/dist/katex.min.css",),
    scripts=(
        "https://cdn.jsdelivr.net/npm/katex@0.16/dist/katex.min.js",
        "https://cdn.jsdelivr.net/npm/katex@0.16/dist/contrib/auto-render.min.js",
    ),
)

INIT_SCRIPT_ID = "loom-math-init"

RENDER_CONFIG = {
    "delimiters": [
        {"left": "$$", "right": "$$", "display": True},
        {"left": "$", "right": "$", "display": False},
        {"left": "\\[", "right": "\\]", "display": True},
        {"left": "\\(", "right": "\\)", "display": False},
    ],
    # Unknown macros render as plain text
    "throwOnError": False,
    "ignoredTags": ["script", "noscript", "style", "textarea", "pre", "code"],
}


def detect_math(context: DetectionContext) -> bool:
    """Math is needed if flagged, marked up, or bare ``$`` appears in content."""
    page = context.page
    return (
        page.has_flag("tag-hash-math")
        or page.exists(".math, .math-inline, .math-display")
        or "$" in context.content_text()
    )


async def init_math(page: Page) -> None:
    """Inject the page-wide auto-render call (once)."""
    if not page.library_available("auto-render"):
        logger.debug("KaTeX auto-render unavailable, math left unrendered")
        return
    if page.get_by_id(INIT_SCRIPT_ID) is not None:
        return

    source = (
        "renderMathInElement("
        "document.querySelector('.gh-content') ?? document.body, "
        f"{json.dumps(RENDER_CONFIG)});"
    )
    page.body.append(page.new_tag("script", {"id": INIT_SCRIPT_ID}, string=source))
