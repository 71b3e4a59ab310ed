"""
Base data structures for the visualization runtime.

This module defines the core records shared by every runtime component:
- CdnManifest: Style/script bundle a library needs before it can run
- AdapterDescriptor: Capability record describing one visualization library
- DetectionContext: What detection predicates may inspect
- LoadedAsset: Dedup record for one inserted asset tag
- InstanceRecord: One mounted visualization in the instance registry
- StepDetail / StepNotification: Narrative step-change notification
- DescriptorResult / BootstrapReport: Outcome of one bootstrap pass
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal

from bs4 import Tag
from pydantic import BaseModel, ConfigDict, Field

from loom.exceptions import LoomError

if TYPE_CHECKING:
    from loom.runtime.page import Page


# =============================================================================
# SCHEMAS
# =============================================================================


class BaseSchema(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class CdnManifest(BaseSchema):
    """Style and script URLs a library requires.

    Scripts are loaded in declaration order; later scripts may depend on
    globals established by earlier ones.
    """

    styles: tuple[str, ...] = ()
    scripts: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.styles and not self.scripts

    def to_dict(self) -> dict[str, list[str]]:
        """Convert to dictionary for serialization."""
        return {"styles": list(self.styles), "scripts": list(self.scripts)}


class StepDetail(BaseSchema):
    """Payload of a step-change notification."""

    index: int = Field(ge=0)
    step: str
    direction: Literal["up", "down"] = "down"


# =============================================================================
# ADAPTER CONTRACT
# =============================================================================

DetectFn = Callable[["DetectionContext"], bool]
InitFn = Callable[["Page"], Awaitable[None]]
RenderFn = Callable[[Tag, dict[str, Any]], Any]
UpdateFn = Callable[[Tag, Any, Any], Any]


@dataclass(frozen=True)
class DetectionContext:
    """What a detection predicate may inspect.

    ``content`` is the shared content root resolved once per pass; it is
    None on pages without a recognised content container.
    """

    page: Page
    content: Tag | None = None

    def content_text(self) -> str:
        return self.content.get_text() if self.content is not None else ""


@dataclass(frozen=True)
class AdapterDescriptor:
    """Declarative record for one visualization library.

    ``detect`` is mandatory. ``init`` runs at most once per page, ``render``
    runs once per element matched by ``selector`` and ``update`` receives
    narrative step payloads addressed to a mounted instance. Any of the
    optional capabilities may be None.
    """

    id: str
    detect: DetectFn
    cdn: CdnManifest = field(default_factory=CdnManifest)
    init: InitFn | None = None
    selector: str | None = None
    render: RenderFn | None = None
    update: UpdateFn | None = None

    @property
    def has_init(self) -> bool:
        return self.init is not None

    @property
    def has_selector(self) -> bool:
        return bool(self.selector)

    @property
    def can_render(self) -> bool:
        return self.render is not None

    @property
    def can_update(self) -> bool:
        return self.update is not None

    def capabilities(self) -> list[str]:
        """Names of the optional capabilities this descriptor declares."""
        caps = []
        if self.has_init:
            caps.append("init")
        if self.has_selector:
            caps.append("selector")
        if self.can_render:
            caps.append("render")
        if self.can_update:
            caps.append("update")
        return caps

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "cdn": self.cdn.to_dict(),
            "selector": self.selector,
            "capabilities": self.capabilities(),
        }


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


# =============================================================================
# RUNTIME RECORDS
# =============================================================================


class AssetKind(str, Enum):
    """Kinds of asset the loader inserts."""

    STYLE = "style"
    SCRIPT = "script"


class AssetStatus(str, Enum):
    """Load state recorded on an inserted asset tag."""

    PENDING = "pending"
    LOADED = "loaded"
    FAILED = "failed"
    DEFERRED = "deferred"  # Not fetched here; the browser will load it


@dataclass
class LoadedAsset:
    """One asset tag inserted by the loader, keyed by URL."""

    url: str
    kind: AssetKind
    status: AssetStatus = AssetStatus.PENDING
    integrity: str | None = None

    @property
    def available(self) -> bool:
        return self.status in (AssetStatus.LOADED, AssetStatus.DEFERRED)


@dataclass
class InstanceRecord:
    """A mounted visualization, keyed by element identity."""

    identity: str
    descriptor: AdapterDescriptor
    element: Tag
    instance: Any = None

    @property
    def updatable(self) -> bool:
        return self.descriptor.can_update


@dataclass(frozen=True)
class StepNotification:
    """Step-change notification emitted by the step controller."""

    element: Tag | None
    detail: StepDetail

    @property
    def index(self) -> int:
        return self.detail.index

    @property
    def step(self) -> str:
        return self.detail.step

    @property
    def direction(self) -> str:
        return self.detail.direction


# =============================================================================
# BOOTSTRAP REPORT
# =============================================================================


@dataclass
class DescriptorResult:
    """Outcome of processing one descriptor during a bootstrap pass."""

    descriptor_id: str
    detected: bool
    duration_ms: float = 0.0
    initialized: bool = False
    matched: int = 0
    rendered: int = 0
    failures: list[LoomError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures


@dataclass
class BootstrapReport:
    """Outcome of a complete bootstrap pass."""

    results: list[DescriptorResult] = field(default_factory=list)
    total_duration_ms: float = 0.0
    features: list[str] = field(default_factory=list)

    @property
    def detected(self) -> list[str]:
        return [r.descriptor_id for r in self.results if r.detected]

    @property
    def failures(self) -> list[LoomError]:
        return [f for r in self.results for f in r.failures]

    def get_result(self, descriptor_id: str) -> DescriptorResult | None:
        return next((r for r in self.results if r.descriptor_id == descriptor_id), None)

    def get_summary(self) -> dict[str, Any]:
        """Get summary of the pass."""
        return {
            "detected": self.detected,
            "rendered": sum(r.rendered for r in self.results),
            "failures": len(self.failures),
            "features": self.features,
            "total_duration_ms": self.total_duration_ms,
            "descriptors": [
                {
                    "id": r.descriptor_id,
                    "detected": r.detected,
                    "initialized": r.initialized,
                    "matched": r.matched,
                    "rendered": r.rendered,
                    "duration_ms": r.duration_ms,
                }
                for r in self.results
            ],
        }
