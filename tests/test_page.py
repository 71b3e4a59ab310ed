"""
Tests for the page model.

Tests cover:
- Document-root feature flags and theme
- Head creation and content-root lookup
- Library availability lookup by URL fragment
- Page-wide event dispatch
- Saving
"""

import pytest

from loom.runtime.page import Page, library_available


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def page() -> Page:
    return Page(
        """
        <html class="tag-hash-viz" data-theme="dark">
        <head>
          <script src="https://cdn.example.com/leaflet@1.9/leaflet.js" data-loom-load="loaded"></script>
          <script src="https://cdn.example.com/echarts@5/echarts.min.js" data-loom-load="failed"></script>
          <script src="https://cdn.example.com/mermaid@10/mermaid.min.js" data-loom-load="deferred"></script>
        </head>
        <body class="post-template tag-hash-d3">
          <article class="gh-content"><p id="intro">Hello</p></article>
        </body>
        </html>
        """
    )


# =============================================================================
# STRUCTURE TESTS
# =============================================================================


class TestPageStructure:
    """Tests for flags, theme and lookups."""

    def test_flags_from_root_and_body(self, page: Page):
        assert page.flags() == {"tag-hash-viz", "post-template", "tag-hash-d3"}
        assert page.has_flag("tag-hash-d3")
        assert not page.has_flag("tag-hash-math")

    def test_theme(self, page: Page):
        assert page.theme == "dark"
        assert Page("<html><body></body></html>").theme == "light"

    def test_head_created_when_missing(self):
        page = Page("<html><body><p>x</p></body></html>")

        head = page.head

        assert head.name == "head"
        assert page.head is head
        assert page.root.contents[0] is head

    def test_content_root(self, page: Page):
        root = page.content_root(".gh-content, article")
        assert root is not None
        assert "gh-content" in root["class"]
        assert page.content_root(".essay-content") is None

    def test_get_by_id(self, page: Page):
        assert page.get_by_id("intro").get_text() == "Hello"
        assert page.get_by_id("missing") is None


# =============================================================================
# LIBRARY AVAILABILITY TESTS
# =============================================================================


class TestLibraryAvailable:
    """Tests for script availability lookup."""

    def test_loaded_script_is_available(self, page: Page):
        assert page.library_available("leaflet")

    def test_deferred_script_is_available(self, page: Page):
        assert page.library_available("mermaid")

    def test_failed_script_is_unavailable(self, page: Page):
        assert not page.library_available("echarts")

    def test_missing_script_is_unavailable(self, page: Page):
        assert not page.library_available("mapbox-gl")

    def test_lookup_from_any_element(self, page: Page):
        element = page.get_by_id("intro")
        assert library_available(element, "leaflet")
        assert not library_available(element, "echarts")


# =============================================================================
# EVENT TESTS
# =============================================================================


class TestPageEvents:
    """Tests for page-wide event dispatch."""

    def test_dispatch_reaches_listeners(self, page: Page):
        received = []
        page.add_listener("story:step", received.append)

        page.dispatch("story:step", {"index": 0})

        assert received == [{"index": 0}]
        assert page.listener_count("story:step") == 1
        assert page.listener_count("other") == 0

    def test_raising_listener_does_not_stop_others(self, page: Page):
        received = []

        def broken(payload):
            raise RuntimeError("boom")

        page.add_listener("story:step", broken)
        page.add_listener("story:step", received.append)

        page.dispatch("story:step", "payload")

        assert received == ["payload"]


# =============================================================================
# OUTPUT TESTS
# =============================================================================


class TestPageOutput:
    def test_save_and_reload(self, page: Page, tmp_path):
        path = tmp_path / "out" / "page.html"

        page.save(path)

        reloaded = Page.from_file(path)
        assert reloaded.get_by_id("intro").get_text() == "Hello"
        assert reloaded.has_flag("tag-hash-viz")
