"""
Identity-keyed table of mounted visualization instances.

Entries are created by the orchestrator's render phase and looked up by the
narrative bridge. Entries live for the page lifetime; there is no removal.
"""

from typing import Any, Iterator

from bs4 import Tag

from loom.exceptions import UnknownInstanceError
from loom.runtime.base import AdapterDescriptor, InstanceRecord


class InstanceRegistry:
    """Mounted instances keyed by element identity."""

    def __init__(self) -> None:
        self._records: dict[str, InstanceRecord] = {}

    def register(
        self,
        identity: str,
        descriptor: AdapterDescriptor,
        element: Tag,
        instance: Any = None,
    ) -> InstanceRecord:
        """Store a mounted instance; a later entry for the same identity wins."""
        record = InstanceRecord(
            identity=identity,
            descriptor=descriptor,
            element=element,
            instance=instance,
        )
        self._records[identity] = record
        return record

    def get(self, identity: str) -> InstanceRecord | None:
        return self._records.get(identity)

    def require(self, identity: str) -> InstanceRecord:
        """Get a record, raising if the identity was never registered."""
        record = self._records.get(identity)
        if record is None:
            raise UnknownInstanceError(
                f"No visualization instance registered as {identity!r}",
                instance_id=identity,
            )
        return record

    def ids(self) -> list[str]:
        return list(self._records)

    def for_descriptor(self, descriptor_id: str) -> list[InstanceRecord]:
        return [r for r in self._records.values() if r.descriptor.id == descriptor_id]

    def __contains__(self, identity: object) -> bool:
        return identity in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[InstanceRecord]:
        return iter(list(self._records.values()))
