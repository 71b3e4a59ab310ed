"""
Helpers adapters use to record mounted state on their elements.

A mounted element carries ``data-loom-mounted`` (the adapter id) and
``data-loom-state`` (the instance state as JSON), rewritten on every update
so a page snapshot shows each visualization as of the last step.
"""

import json
from typing import Any

from bs4 import BeautifulSoup, Tag

MOUNT_ATTR = "data-loom-mounted"
STATE_ATTR = "data-loom-state"
ERROR_ATTR = "data-loom-error"


def write_state(element: Tag, adapter_id: str, state: dict[str, Any]) -> None:
    element[MOUNT_ATTR] = adapter_id
    element[STATE_ATTR] = json.dumps(state, default=str, separators=(",", ":"))


def read_state(element: Tag) -> dict[str, Any] | None:
    """Mounted state of ``element``, or None if it was never mounted."""
    raw = element.get(STATE_ATTR)
    if raw is None:
        return None
    return json.loads(raw)


def make_tag(name: str, attrs: dict[str, Any] | None = None, string: str | None = None) -> Tag:
    """Create a detached tag that can be appended to any document."""
    tag = BeautifulSoup("", "html.parser").new_tag(name, attrs=attrs or {})
    if string is not None:
        tag.string = string
    return tag


def show_error(element: Tag, message: str) -> None:
    """Replace the element's content with an inert error message."""
    element.clear()
    element[ERROR_ATTR] = ""
    element.append(make_tag("p", {"class": ["loom-error"]}, string=message))
