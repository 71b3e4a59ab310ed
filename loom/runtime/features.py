"""
Page-wide features mounted after every bootstrap pass.

- Reading progress bar on post pages
- Copy buttons on code blocks in post content

Essay pages (``#essay-content``) mount their own versions of both, so the
runtime skips them there to avoid double-mounting.
"""

import logging

from loom.runtime.page import Page

logger = logging.getLogger(__name__)

ESSAY_CONTENT_ID = "essay-content"


def is_essay_page(page: Page) -> bool:
    return page.get_by_id(ESSAY_CONTENT_ID) is not None


def init_post_progress(page: Page) -> bool:
    """Prepend a reading-progress bar to the body of post pages.

    Returns:
        True if a bar was mounted by this call
    """
    if is_essay_page(page):
        return False
    if not page.exists(".post-main"):
        return False
    if page.exists(".essay-progress-bar"):
        return False

    bar = page.new_tag("div", {
        "class": "essay-progress-bar",
        "role": "progressbar",
        "aria-label": "Reading progress",
        "aria-valuemin": "0",
        "aria-valuemax": "100",
        "aria-valuenow": "0",
    })
    page.body.insert(0, bar)
    return True


def add_copy_buttons(page: Page) -> int:
    """Add a copy button to each ``pre > code`` block in post content.

    Returns:
        Number of buttons added
    """
    if is_essay_page(page):
        return 0

    added = 0
    for code in page.select(".gh-content pre > code"):
        pre = code.parent
        if pre.select_one(".copy-btn") is not None:
            continue

        button = page.new_tag(
            "button",
            {
                "type": "button",
                "class": "copy-btn",
                "aria-label": "Copy code to clipboard",
            },
            string="Copy",
        )
        pre["style"] = _with_style(pre.get("style", ""), "position: relative")
        pre.append(button)
        added += 1
    return added


def mount_page_features(page: Page) -> list[str]:
    """Mount every page-wide feature; returns the names of those mounted."""
    mounted = []
    if init_post_progress(page):
        mounted.append("progress")
    if add_copy_buttons(page):
        mounted.append("copy-buttons")
    if mounted:
        logger.debug(f"Mounted page features: {', '.join(mounted)}")
    return mounted


def _with_style(style: str, declaration: str) -> str:
    style = style.strip().rstrip(";")
    if declaration in style:
        return style
    return f"{style}; {declaration}" if style else declaration
