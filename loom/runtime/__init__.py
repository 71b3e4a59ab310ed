"""
Visualization runtime for scrollytelling pages.

On each content page the runtime decides which optional visualization
libraries are needed, loads their assets once, runs a one-time init and a
per-element render through a uniform adapter contract, and routes narrative
step notifications to the mounted instances.

Key components:
- page: Parsed HTML page with flags, selection and page-wide events
- assets: Deduplicated style/script loading
- registry: Ordered catalog of adapter descriptors
- orchestrator: The bootstrap pass (detect -> load -> init -> render)
- instances: Identity-keyed table of mounted instances
- narrative: Step notification routing and an offline step controller
- overrides: CDN bundle overrides from YAML

Example usage:
    from loom.runtime import Page, run_bootstrap

    page = Page.from_file("output/essays/index.html")
    orchestrator = await run_bootstrap(page)
    print(orchestrator.report.get_summary())
"""

from loom.runtime.assets import AssetLoader, HttpxFetcher
from loom.runtime.base import (
    AdapterDescriptor,
    BootstrapReport,
    CdnManifest,
    DetectionContext,
    InstanceRecord,
    StepDetail,
    StepNotification,
)
from loom.runtime.context import RuntimeContext
from loom.runtime.instances import InstanceRegistry
from loom.runtime.narrative import NarrativeBridge, StoryStepper
from loom.runtime.orchestrator import Orchestrator, run_bootstrap
from loom.runtime.page import Page
from loom.runtime.registry import AdapterRegistry, default_registry

__all__ = [
    # Core records
    "AdapterDescriptor",
    "BootstrapReport",
    "CdnManifest",
    "DetectionContext",
    "InstanceRecord",
    "StepDetail",
    "StepNotification",
    # Components
    "AdapterRegistry",
    "AssetLoader",
    "HttpxFetcher",
    "InstanceRegistry",
    "NarrativeBridge",
    "Orchestrator",
    "Page",
    "RuntimeContext",
    "StoryStepper",
    "default_registry",
    "run_bootstrap",
]
