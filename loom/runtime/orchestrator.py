"""
Module: orchestrator

Purpose: Run the single bootstrap pass that mounts a page's visualizations.

Key Functions:
- Orchestrator.bootstrap: detect -> load -> init -> render for every descriptor
- run_bootstrap: Convenience wrapper that builds the loader from settings

Architecture Notes:
- Descriptors are processed strictly in registry order; one descriptor
  (including all of its matched elements, one at a time) completes before
  the next descriptor's detection runs
- Failures are isolated: a broken predicate, init or render only disables
  that descriptor or element, and is recorded on the report
- The orchestrator owns the RuntimeContext and hands it to the narrative
  bridge when wiring, so nothing is shared between pages
"""

import json
import logging
import time

from bs4 import Tag

from config.settings import LoomSettings, get_settings
from loom.exceptions import (
    AdapterOperationError,
    BootstrapError,
    DetectionError,
    LoomError,
    OptionsParseError,
)
from loom.runtime.assets import AssetLoader, Fetcher, HttpxFetcher
from loom.runtime.base import (
    AdapterDescriptor,
    BootstrapReport,
    DescriptorResult,
    DetectionContext,
    maybe_await,
)
from loom.runtime.context import RuntimeContext
from loom.runtime.features import mount_page_features
from loom.runtime.narrative import NarrativeBridge
from loom.runtime.page import Page
from loom.runtime.registry import AdapterRegistry, default_registry

logger = logging.getLogger(__name__)


class Orchestrator:
    """Bootstrap the visualizations of one page."""

    def __init__(
        self,
        page: Page,
        registry: AdapterRegistry | None = None,
        *,
        loader: AssetLoader | None = None,
        settings: LoomSettings | None = None,
        page_features: bool = True,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            page: Page to bootstrap
            registry: Adapter catalog; defaults to the built-in adapters
            loader: Asset loader; defaults to one that defers script loads
            settings: Runtime settings; defaults to get_settings()
            page_features: Mount the progress bar and copy buttons
        """
        self.settings = settings or get_settings()
        self.registry = registry if registry is not None else default_registry()
        self.loader = loader or AssetLoader(
            page,
            compute_integrity=self.settings.compute_integrity,
        )
        self.context = RuntimeContext(page=page, settings=self.settings)
        self.bridge = NarrativeBridge(self.context)
        self.page_features = page_features
        self.report: BootstrapReport | None = None

    @property
    def page(self) -> Page:
        return self.context.page

    @property
    def instances(self):
        return self.context.instances

    async def bootstrap(self) -> BootstrapReport:
        """Run the bootstrap pass; allowed once per orchestrator.

        Returns:
            BootstrapReport with one result per descriptor

        Raises:
            BootstrapError: If the page was already bootstrapped
        """
        if self.report is not None:
            raise BootstrapError("Page has already been bootstrapped")

        report = BootstrapReport()
        self.report = report
        start = time.perf_counter()

        content = self.page.content_root(self.settings.content_selector)
        detection = DetectionContext(page=self.page, content=content)

        for descriptor in self.registry:
            report.results.append(await self._process(descriptor, detection))

        if self.page_features:
            report.features = mount_page_features(self.page)
        self.bridge.wire()

        report.total_duration_ms = (time.perf_counter() - start) * 1000
        summary = report.get_summary()
        logger.info(
            f"Bootstrapped {len(summary['detected'])} libraries "
            f"({', '.join(summary['detected']) or 'none'}), "
            f"{summary['rendered']} instances, {summary['failures']} failures "
            f"in {report.total_duration_ms:.1f}ms"
        )
        return report

    # -------------------------------------------------------------------------
    # Per-descriptor phases
    # -------------------------------------------------------------------------

    async def _process(self, descriptor: AdapterDescriptor, detection: DetectionContext) -> DescriptorResult:
        start = time.perf_counter()
        result = DescriptorResult(descriptor_id=descriptor.id, detected=False)

        result.detected = self._detect(descriptor, detection, result)
        if result.detected:
            await self.loader.load_bundle(descriptor.cdn)

            if descriptor.has_init:
                result.initialized = await self._init(descriptor, result)

            if descriptor.has_selector and (result.initialized or not descriptor.has_init):
                for element in self._match(descriptor, result):
                    await self._render_element(descriptor, element, result)

        result.duration_ms = (time.perf_counter() - start) * 1000
        return result

    def _detect(self, descriptor: AdapterDescriptor, detection: DetectionContext, result: DescriptorResult) -> bool:
        try:
            return bool(descriptor.detect(detection))
        except Exception as e:
            self._fail(result, DetectionError(
                f"detect raised for {descriptor.id}: {e}",
                descriptor_id=descriptor.id,
            ), e)
            return False

    async def _init(self, descriptor: AdapterDescriptor, result: DescriptorResult) -> bool:
        try:
            await maybe_await(descriptor.init(self.page))
        except Exception as e:
            self._fail(result, AdapterOperationError(
                f"init failed for {descriptor.id}: {e}",
                descriptor_id=descriptor.id,
                operation="init",
            ), e)
            return False
        return True

    def _match(self, descriptor: AdapterDescriptor, result: DescriptorResult) -> list[Tag]:
        # Snapshot: elements inserted by render calls are not picked up
        try:
            elements = self.page.select(descriptor.selector)
        except Exception as e:
            self._fail(result, AdapterOperationError(
                f"invalid selector for {descriptor.id}: {descriptor.selector!r}",
                descriptor_id=descriptor.id,
                operation="select",
            ), e)
            return []
        result.matched = len(elements)
        return elements

    async def _render_element(self, descriptor: AdapterDescriptor, element: Tag, result: DescriptorResult) -> None:
        identity = self.context.ensure_identity(element)
        options = self.parse_options(element, identity, result)

        instance = None
        if descriptor.can_render:
            try:
                instance = await maybe_await(descriptor.render(element, options))
            except Exception as e:
                self._fail(result, AdapterOperationError(
                    f"render failed for {descriptor.id}#{identity}: {e}",
                    descriptor_id=descriptor.id,
                    operation="render",
                    element_id=identity,
                ), e)
                return

        self.context.instances.register(identity, descriptor, element, instance)
        result.rendered += 1

    def parse_options(self, element: Tag, identity: str, result: DescriptorResult | None = None) -> dict:
        """Parse the element's JSON options; malformed options fall back to {}."""
        raw = element.get(self.settings.options_attribute)
        # An empty attribute counts as absent
        if not raw:
            return {}

        try:
            options = json.loads(raw)
        except json.JSONDecodeError:
            options = None

        if isinstance(options, dict):
            return options

        error = OptionsParseError(
            f"Invalid {self.settings.options_attribute} JSON on #{identity}",
            element_id=identity,
            raw_options=raw,
        )
        logger.warning(f"[loom] {error.message}: {raw[:80]!r}")
        if result is not None:
            result.failures.append(error)
        self.context.record_failure(error)
        return {}

    def _fail(self, result: DescriptorResult, error: LoomError, cause: Exception) -> None:
        result.failures.append(error)
        self.context.record_failure(error)
        logger.debug(error.message, exc_info=cause)


async def run_bootstrap(
    page: Page,
    registry: AdapterRegistry | None = None,
    *,
    settings: LoomSettings | None = None,
    fetcher: Fetcher | None = None,
    page_features: bool = True,
) -> Orchestrator:
    """Bootstrap ``page`` and return the orchestrator (report, instances, bridge).

    When no fetcher is given and ``settings.fetch_assets`` is set, scripts are
    fetched with an httpx client that is closed when the pass completes.
    """
    settings = settings or get_settings()

    if fetcher is None and settings.fetch_assets:
        async with HttpxFetcher(timeout=settings.asset_timeout) as http_fetcher:
            return await _bootstrap_with(page, registry, settings, http_fetcher, page_features)
    return await _bootstrap_with(page, registry, settings, fetcher, page_features)


async def _bootstrap_with(
    page: Page,
    registry: AdapterRegistry | None,
    settings: LoomSettings,
    fetcher: Fetcher | None,
    page_features: bool,
) -> Orchestrator:
    loader = AssetLoader(page, fetcher=fetcher, compute_integrity=settings.compute_integrity)
    orchestrator = Orchestrator(
        page,
        registry,
        loader=loader,
        settings=settings,
        page_features=page_features,
    )
    await orchestrator.bootstrap()
    return orchestrator
