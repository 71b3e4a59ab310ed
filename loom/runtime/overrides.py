"""
Load and apply CDN bundle overrides from YAML.

Sites that self-host their visualization libraries, or pin different
versions, can re-point any adapter's bundle without touching the adapter:

```yaml
cdn:
  math:
    styles: ["/vendor/katex/katex.min.css"]
    scripts:
      - "/vendor/katex/katex.min.js"
      - "/vendor/katex/contrib/auto-render.min.js"
  echarts:
    scripts: ["/vendor/echarts/echarts.min.js"]
```

A listed adapter's bundle is replaced as a whole; omitted keys become empty.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from loom.runtime.base import CdnManifest
from loom.runtime.registry import AdapterRegistry

logger = logging.getLogger(__name__)


# =============================================================================
# OVERRIDE LOADING
# =============================================================================


def load_cdn_overrides(path: Path | str) -> dict[str, CdnManifest]:
    """Load CDN overrides from a YAML file.

    Args:
        path: Path to the YAML override file

    Returns:
        Dictionary mapping adapter id to its replacement bundle

    Raises:
        FileNotFoundError: If the override file doesn't exist
        yaml.YAMLError: If the YAML is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Override file not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}

    cdn = data.get("cdn", {}) if isinstance(data, dict) else None

    if not isinstance(cdn, dict):
        logger.warning("Invalid 'cdn' section in override file, expected dict")
        return {}

    result: dict[str, CdnManifest] = {}

    for adapter_id, manifest in cdn.items():
        if not isinstance(manifest, dict):
            logger.warning(f"Invalid overrides for {adapter_id}, expected dict")
            continue

        try:
            result[str(adapter_id)] = CdnManifest(
                styles=manifest.get("styles") or (),
                scripts=manifest.get("scripts") or (),
            )
        except ValidationError as e:
            logger.warning(f"Invalid bundle for {adapter_id}: {e.error_count()} errors")

    return result


def load_cdn_overrides_safe(path: Path | str | None) -> dict[str, CdnManifest]:
    """Load overrides, returning an empty dict on any error.

    Args:
        path: Path to override file, or None

    Returns:
        Override dictionary, or empty dict if path is None or file can't be loaded
    """
    if path is None:
        return {}

    try:
        return load_cdn_overrides(path)
    except FileNotFoundError:
        logger.info(f"No override file found at {path}")
        return {}
    except yaml.YAMLError as e:
        logger.warning(f"Invalid YAML in override file {path}: {e}")
        return {}
    except Exception as e:
        logger.warning(f"Error loading overrides from {path}: {e}")
        return {}


# =============================================================================
# OVERRIDE APPLICATION
# =============================================================================


def apply_cdn_overrides(
    registry: AdapterRegistry,
    overrides: dict[str, CdnManifest],
) -> AdapterRegistry:
    """Apply bundle overrides to a registry.

    Args:
        registry: Registry with the default bundles
        overrides: Dictionary of overrides by adapter id

    Returns:
        New registry with overridden bundles (original is unchanged)
    """
    unknown = sorted(set(overrides) - set(registry.ids))
    for adapter_id in unknown:
        logger.warning(f"Override for unknown adapter {adapter_id} ignored")
    return registry.with_cdn(overrides)


# =============================================================================
# EXPORT
# =============================================================================


def export_cdn_manifest(registry: AdapterRegistry) -> dict[str, Any]:
    """Export the registry's bundles in override-file format."""
    return {
        "cdn": {
            descriptor.id: descriptor.cdn.to_dict()
            for descriptor in registry
            if not descriptor.cdn.is_empty
        }
    }


def export_cdn_manifest_to_yaml(registry: AdapterRegistry, path: Path | str) -> None:
    """Write the registry's bundles to a YAML file (editable as an override file)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    header = (
        "# CDN bundle overrides\n"
        "# Edit a bundle to re-point it; remove adapters you don't need to override.\n\n"
    )

    with open(path, "w", encoding="utf-8") as f:
        f.write(header)
        yaml.dump(export_cdn_manifest(registry), f, default_flow_style=False, sort_keys=False)

    logger.info(f"Exported CDN manifest to {path}")
