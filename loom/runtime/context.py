"""
Runtime context shared by the orchestrator and the narrative bridge.

Each bootstrap pass owns one context; the bridge receives it by reference
when it is wired, so several independent pages can be processed in the same
process without shared state.
"""

from dataclasses import dataclass, field

from bs4 import Tag

from config.settings import LoomSettings
from loom.exceptions import LoomError
from loom.runtime.instances import InstanceRegistry
from loom.runtime.page import Page


@dataclass
class RuntimeContext:
    """Page, instance registry and identity counter for one page load."""

    page: Page
    settings: LoomSettings
    instances: InstanceRegistry = field(default_factory=InstanceRegistry)
    failures: list[LoomError] = field(default_factory=list)
    _next_id: int = 0

    def ensure_identity(self, element: Tag) -> str:
        """Return the element's id, assigning a fresh one if it has none.

        Assigned ids come from a monotonic counter and skip any id that is
        already present in the page.
        """
        existing = element.get("id")
        if existing:
            return existing

        while True:
            self._next_id += 1
            candidate = f"{self.settings.auto_id_prefix}-{self._next_id}"
            if self.page.get_by_id(candidate) is None:
                element["id"] = candidate
                return candidate

    def record_failure(self, error: LoomError) -> None:
        self.failures.append(error)
