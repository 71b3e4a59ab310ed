"""
Tests for page-wide features (reading progress bar and code copy buttons).
"""

import pytest

from loom.runtime.features import add_copy_buttons, init_post_progress, is_essay_page, mount_page_features
from loom.runtime.page import Page

POST = """
<html><body>
<main class="post-main">
  <div class="gh-content">
    <pre><code class="language-python">print("a")</code></pre>
    <pre style="margin: 0"><code>print("b")</code></pre>
  </div>
  <pre><code>outside content</code></pre>
</main>
</body></html>
"""


@pytest.fixture
def post() -> Page:
    return Page(POST)


class TestProgressBar:
    """Tests for the reading progress bar."""

    def test_mounted_on_post_pages(self, post: Page):
        assert init_post_progress(post)

        bar = post.body.contents[0]
        assert bar.name == "div"
        assert post.select_one(".essay-progress-bar") is bar
        assert bar["role"] == "progressbar"
        assert bar["aria-valuenow"] == "0"

    def test_idempotent(self, post: Page):
        init_post_progress(post)

        assert not init_post_progress(post)
        assert len(post.select(".essay-progress-bar")) == 1

    def test_skipped_on_essay_pages(self):
        page = Page('<body><main class="post-main"><div id="essay-content"></div></main></body>')

        assert is_essay_page(page)
        assert not init_post_progress(page)

    def test_skipped_without_post_main(self):
        assert not init_post_progress(Page("<body><p>x</p></body>"))


class TestCopyButtons:
    """Tests for code block copy buttons."""

    def test_one_button_per_block_in_content(self, post: Page):
        assert add_copy_buttons(post) == 2

        buttons = post.select(".gh-content pre > button.copy-btn")
        assert len(buttons) == 2
        assert buttons[0]["aria-label"] == "Copy code to clipboard"
        assert buttons[0].get_text() == "Copy"

    def test_pre_positioned(self, post: Page):
        add_copy_buttons(post)

        styles = [pre["style"] for pre in post.select(".gh-content pre")]
        assert styles == ["position: relative", "margin: 0; position: relative"]

    def test_idempotent(self, post: Page):
        add_copy_buttons(post)

        assert add_copy_buttons(post) == 0
        assert len(post.select("button.copy-btn")) == 2

    def test_skipped_on_essay_pages(self):
        page = Page('<div id="essay-content"><div class="gh-content"><pre><code>x</code></pre></div></div>')

        assert add_copy_buttons(page) == 0


class TestMountPageFeatures:
    def test_reports_mounted_features(self, post: Page):
        assert mount_page_features(post) == ["progress", "copy-buttons"]
        assert mount_page_features(post) == []
