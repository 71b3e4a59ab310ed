"""
Tests for CDN bundle override loading, application and export.
"""

import logging

import pytest
import yaml

from loom.runtime.base import CdnManifest
from loom.runtime.overrides import (
    apply_cdn_overrides,
    export_cdn_manifest,
    export_cdn_manifest_to_yaml,
    load_cdn_overrides,
    load_cdn_overrides_safe,
)
from loom.runtime.registry import default_registry


# =============================================================================
# LOADING TESTS
# =============================================================================


class TestLoadOverrides:
    """Tests for reading override files."""

    def test_load_bundles(self, tmp_path):
        path = tmp_path / "cdn.yaml"
        path.write_text(
            "cdn:\n"
            "  echarts:\n"
            "    scripts: ['/vendor/echarts.min.js']\n"
            "  leaflet:\n"
            "    styles: ['/vendor/leaflet.css']\n"
            "    scripts: ['/vendor/leaflet.js']\n"
        )

        overrides = load_cdn_overrides(path)

        assert overrides["echarts"] == CdnManifest(scripts=("/vendor/echarts.min.js",))
        assert overrides["leaflet"].styles == ("/vendor/leaflet.css",)

    def test_invalid_entries_skipped(self, tmp_path, caplog):
        path = tmp_path / "cdn.yaml"
        path.write_text(
            "cdn:\n"
            "  echarts: not-a-dict\n"
            "  d3:\n"
            "    scripts: ['/vendor/d3.js']\n"
        )

        with caplog.at_level(logging.WARNING):
            overrides = load_cdn_overrides(path)

        assert list(overrides) == ["d3"]
        assert "Invalid overrides for echarts" in caplog.text

    def test_empty_file(self, tmp_path):
        path = tmp_path / "cdn.yaml"
        path.write_text("")

        assert load_cdn_overrides(path) == {}

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_cdn_overrides(tmp_path / "missing.yaml")

    def test_safe_loader(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("cdn: [unclosed")

        assert load_cdn_overrides_safe(None) == {}
        assert load_cdn_overrides_safe(tmp_path / "missing.yaml") == {}
        assert load_cdn_overrides_safe(bad) == {}

    def test_safe_loader_undecodable_file(self, tmp_path):
        path = tmp_path / "latin1.yaml"
        path.write_bytes("cdn:\n  echarts:\n    scripts: ['/vendor/\xe9charts.js']\n".encode("latin-1"))

        assert load_cdn_overrides_safe(path) == {}

    def test_utf8_paths_loaded(self, tmp_path):
        path = tmp_path / "cdn.yaml"
        path.write_bytes("cdn:\n  echarts:\n    scripts: ['/vendor/\xe9charts.js']\n".encode("utf-8"))

        assert load_cdn_overrides(path)["echarts"].scripts == ("/vendor/\xe9charts.js",)


# =============================================================================
# APPLICATION TESTS
# =============================================================================


class TestApplyOverrides:
    """Tests for applying overrides to a registry."""

    def test_replaces_bundle(self):
        registry = default_registry()
        bundle = CdnManifest(scripts=("/vendor/echarts.min.js",))

        updated = apply_cdn_overrides(registry, {"echarts": bundle})

        assert updated.get("echarts").cdn == bundle
        assert updated.get("leaflet").cdn == registry.get("leaflet").cdn
        assert updated.ids == registry.ids

    def test_unknown_adapter_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            apply_cdn_overrides(default_registry(), {"plotly": CdnManifest()})

        assert "unknown adapter plotly" in caplog.text


# =============================================================================
# EXPORT TESTS
# =============================================================================


class TestExportOverrides:
    """Tests for exporting the default bundles."""

    def test_export_skips_empty_bundles(self):
        exported = export_cdn_manifest(default_registry())

        assert "d3" not in exported["cdn"]
        assert exported["cdn"]["math"]["scripts"][-1].endswith("auto-render.min.js")

    def test_export_to_yaml_is_loadable(self, tmp_path):
        path = tmp_path / "config" / "cdn.yaml"

        export_cdn_manifest_to_yaml(default_registry(), path)

        assert path.read_text().startswith("# CDN bundle overrides")
        assert yaml.safe_load(path.read_text())["cdn"]["mapbox"]["styles"]
        assert set(load_cdn_overrides(path)) == {"math", "diagrams", "echarts", "leaflet", "mapbox"}
