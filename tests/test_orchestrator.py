"""
Tests for the bootstrap pass.

Tests cover:
- Detection, loading, init and render ordering
- Render once per matched element with parsed options
- Identity assignment
- Failure isolation for detect, init and render
- The bootstrap report
- Narrative wiring and the single-pass rule
"""

import asyncio
import logging

import pytest

from config.settings import LoomSettings
from loom.exceptions import AdapterOperationError, BootstrapError, DetectionError, OptionsParseError
from loom.runtime.assets import AssetLoader
from loom.runtime.base import AdapterDescriptor, CdnManifest
from loom.runtime.orchestrator import Orchestrator, run_bootstrap
from loom.runtime.page import Page
from loom.runtime.registry import AdapterRegistry


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def settings() -> LoomSettings:
    return LoomSettings(_env_file=None)


class Recorder:
    """Builds descriptors that log every phase to a shared list."""

    def __init__(self) -> None:
        self.log: list[str] = []
        self.rendered: list[tuple[str, dict]] = []

    def descriptor(
        self,
        adapter_id: str,
        *,
        detected: bool = True,
        selector: str | None = None,
        with_init: bool = False,
        cdn: CdnManifest | None = None,
    ) -> AdapterDescriptor:
        def detect(context) -> bool:
            self.log.append(f"detect {adapter_id}")
            return detected

        async def init(page) -> None:
            self.log.append(f"init {adapter_id}")

        def render(element, options):
            self.log.append(f"render {adapter_id} #{element['id']}")
            self.rendered.append((element["id"], options))
            return {"adapter": adapter_id}

        return AdapterDescriptor(
            id=adapter_id,
            detect=detect,
            cdn=cdn or CdnManifest(),
            init=init if with_init else None,
            selector=selector,
            render=render if selector else None,
        )


class RecordingFetcher:
    def __init__(self, log: list[str]) -> None:
        self.log = log

    async def __call__(self, url: str) -> bytes:
        self.log.append(f"fetch {url}")
        await asyncio.sleep(0)
        return b""


def make_orchestrator(page: Page, descriptors, settings: LoomSettings, **kwargs) -> Orchestrator:
    return Orchestrator(page, AdapterRegistry(descriptors), settings=settings, page_features=False, **kwargs)


# =============================================================================
# ORDERING TESTS
# =============================================================================


class TestBootstrapOrdering:
    """Tests for strictly sequential descriptor processing."""

    @pytest.mark.asyncio
    async def test_descriptor_completes_before_next_detects(self, settings: LoomSettings):
        page = Page('<div class="a" id="x"></div><div class="a" id="y"></div>')
        rec = Recorder()
        orchestrator = make_orchestrator(page, [
            rec.descriptor("a", selector=".a"),
            rec.descriptor("b"),
        ], settings)

        await orchestrator.bootstrap()

        assert rec.log == ["detect a", "render a #x", "render a #y", "detect b"]

    @pytest.mark.asyncio
    async def test_scripts_load_before_init(self, settings: LoomSettings):
        page = Page("<html><head></head><body></body></html>")
        rec = Recorder()
        loader = AssetLoader(page, fetcher=RecordingFetcher(rec.log))
        orchestrator = make_orchestrator(page, [
            rec.descriptor("a", with_init=True, cdn=CdnManifest(scripts=("/a1.js", "/a2.js"))),
        ], settings, loader=loader)

        await orchestrator.bootstrap()

        assert rec.log == ["detect a", "fetch /a1.js", "fetch /a2.js", "init a"]

    @pytest.mark.asyncio
    async def test_undetected_descriptor_skipped(self, settings: LoomSettings):
        page = Page('<div class="a"></div>')
        rec = Recorder()
        orchestrator = make_orchestrator(page, [
            rec.descriptor("a", detected=False, with_init=True, selector=".a",
                           cdn=CdnManifest(scripts=("/a.js",))),
        ], settings)

        report = await orchestrator.bootstrap()

        assert rec.log == ["detect a"]
        assert page.select("script") == []
        assert report.detected == []
        assert len(orchestrator.instances) == 0

    @pytest.mark.asyncio
    async def test_elements_inserted_by_render_not_matched(self, settings: LoomSettings):
        page = Page('<div class="a" id="x"></div>')

        def render(element, options):
            element.parent.append(page.new_tag("div", {"class": "a", "id": "late"}))
            return None

        orchestrator = make_orchestrator(page, [
            AdapterDescriptor(id="a", detect=lambda ctx: True, selector=".a", render=render),
        ], settings)

        report = await orchestrator.bootstrap()

        assert orchestrator.instances.ids() == ["x"]
        assert report.get_result("a").matched == 1


# =============================================================================
# RENDER TESTS
# =============================================================================


class TestRender:
    """Tests for per-element rendering."""

    @pytest.mark.asyncio
    async def test_options_parsed(self, settings: LoomSettings):
        page = Page('<div class="a" id="x" data-options=\'{"a": 1}\'></div>')
        rec = Recorder()

        await make_orchestrator(page, [rec.descriptor("a", selector=".a")], settings).bootstrap()

        assert rec.rendered == [("x", {"a": 1})]

    @pytest.mark.asyncio
    async def test_malformed_options_fall_back(self, settings: LoomSettings, caplog):
        page = Page('<div class="a" id="x" data-options="{bad json"></div>')
        rec = Recorder()
        orchestrator = make_orchestrator(page, [rec.descriptor("a", selector=".a")], settings)

        with caplog.at_level(logging.WARNING, logger="loom.runtime.orchestrator"):
            report = await orchestrator.bootstrap()

        assert rec.rendered == [("x", {})]
        assert "Invalid data-options JSON on #x" in caplog.text
        assert isinstance(report.failures[0], OptionsParseError)
        assert "x" in orchestrator.instances

    @pytest.mark.asyncio
    async def test_empty_options_treated_as_absent(self, settings: LoomSettings, caplog):
        page = Page('<div class="a" id="x" data-options=""></div><div class="a" id="y" data-options></div>')
        rec = Recorder()
        orchestrator = make_orchestrator(page, [rec.descriptor("a", selector=".a")], settings)

        with caplog.at_level(logging.WARNING, logger="loom.runtime.orchestrator"):
            report = await orchestrator.bootstrap()

        assert rec.rendered == [("x", {}), ("y", {})]
        assert report.failures == []
        assert "Invalid data-options" not in caplog.text

    @pytest.mark.asyncio
    async def test_non_object_options_fall_back(self, settings: LoomSettings):
        page = Page('<div class="a" id="x" data-options="[1, 2]"></div>')
        rec = Recorder()

        await make_orchestrator(page, [rec.descriptor("a", selector=".a")], settings).bootstrap()

        assert rec.rendered == [("x", {})]

    @pytest.mark.asyncio
    async def test_auto_ids_distinct(self, settings: LoomSettings):
        page = Page('<div class="a"></div><div class="a"></div>')
        rec = Recorder()
        orchestrator = make_orchestrator(page, [rec.descriptor("a", selector=".a")], settings)

        await orchestrator.bootstrap()

        assert orchestrator.instances.ids() == ["loom-viz-1", "loom-viz-2"]
        assert [el["id"] for el in page.select(".a")] == ["loom-viz-1", "loom-viz-2"]

    @pytest.mark.asyncio
    async def test_async_render_awaited(self, settings: LoomSettings):
        page = Page('<div class="a" id="x"></div>')

        async def render(element, options):
            await asyncio.sleep(0)
            return "chart"

        orchestrator = make_orchestrator(page, [
            AdapterDescriptor(id="a", detect=lambda ctx: True, selector=".a", render=render),
        ], settings)

        await orchestrator.bootstrap()

        assert orchestrator.instances.get("x").instance == "chart"

    @pytest.mark.asyncio
    async def test_selector_without_render_registers(self, settings: LoomSettings):
        page = Page('<div class="a" id="x"></div>')
        orchestrator = make_orchestrator(page, [
            AdapterDescriptor(id="a", detect=lambda ctx: True, selector=".a"),
        ], settings)

        await orchestrator.bootstrap()

        assert orchestrator.instances.get("x").instance is None


# =============================================================================
# FAILURE ISOLATION TESTS
# =============================================================================


class TestFailureIsolation:
    """Tests that one failure never stops the pass."""

    @pytest.mark.asyncio
    async def test_detect_raising_treated_as_not_detected(self, settings: LoomSettings):
        page = Page("<div></div>")
        rec = Recorder()

        def broken(context):
            raise ValueError("broken predicate")

        orchestrator = make_orchestrator(page, [
            AdapterDescriptor(id="broken", detect=broken),
            rec.descriptor("b"),
        ], settings)

        report = await orchestrator.bootstrap()

        assert rec.log == ["detect b"]
        assert report.detected == ["b"]
        assert isinstance(report.failures[0], DetectionError)

    @pytest.mark.asyncio
    async def test_render_failure_isolated_to_element(self, settings: LoomSettings):
        page = Page('<div class="a" id="x"></div><div class="a" id="y"></div>')

        def render(element, options):
            if element["id"] == "x":
                raise RuntimeError("render exploded")
            return "ok"

        orchestrator = make_orchestrator(page, [
            AdapterDescriptor(id="a", detect=lambda ctx: True, selector=".a", render=render),
        ], settings)

        report = await orchestrator.bootstrap()

        assert orchestrator.instances.ids() == ["y"]
        error = report.failures[0]
        assert isinstance(error, AdapterOperationError)
        assert error.operation == "render"
        assert error.element_id == "x"
        assert report.get_result("a").rendered == 1

    @pytest.mark.asyncio
    async def test_init_failure_skips_render_only(self, settings: LoomSettings):
        page = Page('<div class="a" id="x"></div>')
        rec = Recorder()

        async def init(page):
            raise RuntimeError("init exploded")

        orchestrator = make_orchestrator(page, [
            AdapterDescriptor(id="a", detect=lambda ctx: True, init=init, selector=".a",
                              render=lambda el, opts: "never"),
            rec.descriptor("b", selector=".a"),
        ], settings)

        report = await orchestrator.bootstrap()

        assert not report.get_result("a").initialized
        assert report.get_result("a").rendered == 0
        assert rec.rendered == [("x", {})]
        assert orchestrator.instances.get("x").descriptor.id == "b"
        assert orchestrator.context.failures[0].operation == "init"

    @pytest.mark.asyncio
    async def test_failed_script_does_not_stop_pass(self, settings: LoomSettings):
        page = Page("<html><head></head><body></body></html>")
        rec = Recorder()

        async def failing(url: str) -> bytes:
            raise ConnectionError("offline")

        orchestrator = make_orchestrator(page, [
            rec.descriptor("a", with_init=True, cdn=CdnManifest(scripts=("/a.js",))),
        ], settings, loader=AssetLoader(page, fetcher=failing))

        await orchestrator.bootstrap()

        assert rec.log == ["detect a", "init a"]
        assert page.find_script_tag("/a.js")["data-loom-load"] == "failed"


# =============================================================================
# PASS-LEVEL TESTS
# =============================================================================


class TestBootstrapPass:
    """Tests for the pass as a whole."""

    @pytest.mark.asyncio
    async def test_second_bootstrap_raises(self, settings: LoomSettings):
        orchestrator = make_orchestrator(Page("<div></div>"), [], settings)

        await orchestrator.bootstrap()

        with pytest.raises(BootstrapError):
            await orchestrator.bootstrap()

    @pytest.mark.asyncio
    async def test_bridge_wired_once(self, settings: LoomSettings):
        page = Page("<div></div>")
        orchestrator = make_orchestrator(page, [], settings)

        await orchestrator.bootstrap()

        assert orchestrator.bridge.wired
        assert page.listener_count("story:step") == 1

    @pytest.mark.asyncio
    async def test_report_summary(self, settings: LoomSettings):
        page = Page('<div class="a" id="x"></div>')
        rec = Recorder()
        orchestrator = make_orchestrator(page, [
            rec.descriptor("a", selector=".a"),
            rec.descriptor("b", detected=False),
        ], settings)

        report = await orchestrator.bootstrap()
        summary = report.get_summary()

        assert summary["detected"] == ["a"]
        assert summary["rendered"] == 1
        assert summary["failures"] == 0
        assert [d["id"] for d in summary["descriptors"]] == ["a", "b"]
        assert report.get_result("a").success

    @pytest.mark.asyncio
    async def test_detection_sees_content_root(self, settings: LoomSettings):
        page = Page('<article class="gh-content">Costs $5 and $6</article>')
        seen = []

        def detect(context):
            seen.append(context.content_text())
            return False

        await make_orchestrator(page, [AdapterDescriptor(id="a", detect=detect)], settings).bootstrap()

        assert seen == ["Costs $5 and $6"]

    @pytest.mark.asyncio
    async def test_page_features_mounted(self, settings: LoomSettings):
        page = Page('<body><main class="post-main"><div class="gh-content"><pre><code>x</code></pre></div></main></body>')
        orchestrator = Orchestrator(page, AdapterRegistry([]), settings=settings)

        report = await orchestrator.bootstrap()

        assert report.features == ["progress", "copy-buttons"]


class TestRunBootstrap:
    """Tests for the convenience entry point."""

    @pytest.mark.asyncio
    async def test_uses_given_fetcher(self, settings: LoomSettings):
        page = Page("<html><head></head><body></body></html>")
        log: list[str] = []
        registry = AdapterRegistry([
            AdapterDescriptor(id="a", detect=lambda ctx: True, cdn=CdnManifest(scripts=("/a.js",))),
        ])

        orchestrator = await run_bootstrap(
            page, registry, settings=settings, fetcher=RecordingFetcher(log), page_features=False,
        )

        assert log == ["fetch /a.js"]
        assert orchestrator.report.detected == ["a"]
        assert page.find_script_tag("/a.js")["data-loom-load"] == "loaded"

    @pytest.mark.asyncio
    async def test_defers_scripts_by_default(self, settings: LoomSettings):
        page = Page("<html><head></head><body></body></html>")
        registry = AdapterRegistry([
            AdapterDescriptor(id="a", detect=lambda ctx: True, cdn=CdnManifest(scripts=("/a.js",))),
        ])

        await run_bootstrap(page, registry, settings=settings, page_features=False)

        assert page.find_script_tag("/a.js")["data-loom-load"] == "deferred"
