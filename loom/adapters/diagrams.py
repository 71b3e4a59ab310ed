"""
Mermaid diagrams (flowcharts, sequence diagrams, Gantt charts ...).

Supported markup:

    1. Fenced code block rendered by the CMS:
       <pre><code class="language-mermaid">graph TD; A-->B;</code></pre>

    2. Raw div:
       <div class="mermaid">graph TD; A-->B;</div>

Both forms are normalised to ``<div class="mermaid">`` before Mermaid runs.
"""

import json
import logging

from loom.runtime.base import CdnManifest, DetectionContext
from loom.runtime.page import Page

logger = logging.getLogger(__name__)

MERMAID_CDN = CdnManifest(
    scripts=("https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.min.js",),
)

INIT_SCRIPT_ID = "loom-diagrams-init"


def detect_diagrams(context: DetectionContext) -> bool:
    page = context.page
    return page.has_flag("tag-hash-diagram") or page.exists(".mermaid, code.language-mermaid")


def normalize_mermaid_blocks(page: Page) -> int:
    """Replace ``pre > code.language-mermaid`` blocks with ``div.mermaid``.

    Returns:
        Number of blocks converted
    """
    converted = 0
    for code in page.select("pre > code.language-mermaid"):
        div = page.new_tag("div", {"class": ["mermaid"]}, string=code.get_text())
        code.parent.replace_with(div)
        converted += 1
    return converted


def mermaid_config(page: Page) -> dict:
    return {
        "startOnLoad": False,
        "theme": "dark" if page.theme == "dark" else "default",
        "securityLevel": "loose",
        "fontFamily": "'DM Sans', system-ui, sans-serif",
    }


async def init_diagrams(page: Page) -> None:
    """Normalise diagram markup and inject one Mermaid bootstrap."""
    if not page.library_available("mermaid"):
        logger.debug("Mermaid unavailable, diagrams left as source")
        return

    normalize_mermaid_blocks(page)

    if not page.exists(".mermaid") or page.get_by_id(INIT_SCRIPT_ID) is not None:
        return

    source = (
        f"mermaid.initialize({json.dumps(mermaid_config(page))});\n"
        "mermaid.run({ querySelector: '.mermaid' });"
    )
    page.body.append(page.new_tag("script", {"id": INIT_SCRIPT_ID}, string=source))
