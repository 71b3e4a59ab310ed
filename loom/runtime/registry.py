"""
Ordered, read-only catalog of adapter descriptors.

Order is meaningful: it is both the detection order and the bootstrap
processing order, so cheap page-wide features settle before heavy
per-element libraries.

Adding a new library:
    1. Create loom/adapters/your_lib.py with a descriptor built from
       detect / init / render / update functions
    2. Add it to DEFAULT_ADAPTERS in loom/adapters/catalog.py
    3. Have the templating layer set a document-root flag if needed
"""

from dataclasses import replace
from typing import Iterator, Sequence

from loom.exceptions import RegistryError
from loom.runtime.base import AdapterDescriptor, CdnManifest


class AdapterRegistry:
    """Immutable ordered sequence of descriptors with unique ids."""

    def __init__(self, descriptors: Sequence[AdapterDescriptor]) -> None:
        seen: set[str] = set()
        for descriptor in descriptors:
            if not descriptor.id:
                raise RegistryError("Descriptor id must be a non-empty string")
            if descriptor.id in seen:
                raise RegistryError(
                    f"Duplicate descriptor id: {descriptor.id}",
                    descriptor_id=descriptor.id,
                )
            if not callable(descriptor.detect):
                raise RegistryError(
                    f"Descriptor {descriptor.id} has no detect predicate",
                    descriptor_id=descriptor.id,
                )
            seen.add(descriptor.id)

        self._descriptors: tuple[AdapterDescriptor, ...] = tuple(descriptors)
        self._index = {d.id: d for d in self._descriptors}

    def __iter__(self) -> Iterator[AdapterDescriptor]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, descriptor_id: object) -> bool:
        return descriptor_id in self._index

    @property
    def ids(self) -> list[str]:
        return [d.id for d in self._descriptors]

    def get(self, descriptor_id: str) -> AdapterDescriptor | None:
        """Get a descriptor by id."""
        return self._index.get(descriptor_id)

    def with_cdn(self, overrides: dict[str, CdnManifest]) -> "AdapterRegistry":
        """Return a copy whose listed descriptors use replacement bundles.

        Unknown ids in ``overrides`` are ignored; order is preserved.
        """
        return AdapterRegistry([
            replace(d, cdn=overrides[d.id]) if d.id in overrides else d
            for d in self._descriptors
        ])

    def to_dict(self) -> list[dict]:
        """Convert to a list of descriptor summaries."""
        return [d.to_dict() for d in self._descriptors]


def default_registry() -> AdapterRegistry:
    """Registry of the built-in adapters in bootstrap order."""
    from loom.adapters.catalog import DEFAULT_ADAPTERS

    return AdapterRegistry(DEFAULT_ADAPTERS)
