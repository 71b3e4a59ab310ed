"""
Page model for the visualization runtime.

Wraps a parsed HTML document (BeautifulSoup) with the handful of document
operations the runtime needs: CSS selection, document-root feature flags,
content-root lookup, asset tag lookup and a minimal event target for
page-wide notifications such as narrative step changes.
"""

import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

ASSET_STATUS_ATTR = "data-loom-load"
AVAILABLE_STATUSES = ("loaded", "deferred")

Listener = Callable[[Any], Any]


def document_of(node: Tag) -> Tag:
    """Walk up from ``node`` to the top of its document tree."""
    root = node
    while root.parent is not None:
        root = root.parent
    return root


def library_available(node: Tag, fragment: str) -> bool:
    """Check whether a usable script whose URL contains ``fragment`` is on the page.

    The asset loader resolves whether a script loaded or failed, so adapters
    that need a library must check for it here before using it. Matching on
    a URL fragment (``"leaflet"``, ``"auto-render"``) keeps the check valid
    when the bundle URLs are overridden.
    """
    for tag in document_of(node).find_all("script", src=True):
        if fragment in tag["src"] and tag.get(ASSET_STATUS_ATTR) in AVAILABLE_STATUSES:
            return True
    return False


class Page:
    """A parsed HTML page plus its page-wide event listeners."""

    def __init__(self, html: str | bytes = "", *, parser: str = "html.parser") -> None:
        self.soup = BeautifulSoup(html, parser)
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    @classmethod
    def from_file(cls, path: Path | str, *, parser: str = "html.parser") -> "Page":
        """Load a page from an HTML file."""
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            return cls(f.read(), parser=parser)

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    @property
    def root(self) -> Tag | None:
        return self.soup.find("html")

    @property
    def head(self) -> Tag:
        """The document head, created if the markup has none."""
        head = self.soup.find("head")
        if head is None:
            head = self.soup.new_tag("head")
            container = self.root or self.soup
            container.insert(0, head)
        return head

    @property
    def body(self) -> Tag:
        return self.soup.find("body") or self.root or self.soup

    @property
    def theme(self) -> str:
        root = self.root
        if root is not None and root.get("data-theme") == "dark":
            return "dark"
        return "light"

    def flags(self) -> set[str]:
        """Feature flags exposed as classes on the document root and body."""
        flags: set[str] = set()
        for tag in (self.root, self.soup.find("body")):
            if tag is not None:
                flags.update(tag.get("class", []))
        return flags

    def has_flag(self, flag: str) -> bool:
        return flag in self.flags()

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select(self, selector: str) -> list[Tag]:
        return list(self.soup.select(selector))

    def select_one(self, selector: str) -> Tag | None:
        return self.soup.select_one(selector)

    def exists(self, selector: str) -> bool:
        return self.select_one(selector) is not None

    def get_by_id(self, element_id: str) -> Tag | None:
        return self.soup.find(id=element_id)

    def content_root(self, selector: str) -> Tag | None:
        """First element matching ``selector`` (the main content container)."""
        return self.select_one(selector)

    def new_tag(self, name: str, attrs: dict[str, Any] | None = None, string: str | None = None) -> Tag:
        tag = self.soup.new_tag(name, attrs=attrs or {})
        if string is not None:
            tag.string = string
        return tag

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    def find_style_tag(self, url: str) -> Tag | None:
        return self.soup.find("link", href=url)

    def find_script_tag(self, url: str) -> Tag | None:
        return self.soup.find("script", src=url)

    def library_available(self, fragment: str) -> bool:
        return library_available(self.soup, fragment)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def add_listener(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def dispatch(self, event: str, payload: Any) -> None:
        """Deliver ``payload`` to every listener for ``event``.

        A listener that raises is logged and does not stop the others.
        """
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
            except Exception:
                logger.exception(f"Listener for {event} raised")

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def to_html(self) -> str:
        return str(self.soup)

    def save(self, output_path: Path | str) -> None:
        """Save the page HTML to a file."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.to_html())
        logger.info(f"Saved page to {output_path}")
