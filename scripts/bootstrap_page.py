#!/usr/bin/env python3
"""
Bootstrap the visualizations of an HTML page.

Detects which visualization libraries the page needs, inserts their CDN
assets, initialises them and mounts every matching element, then writes the
page back out with each visualization's mounted state recorded on it.

Usage:
    # Bootstrap a page (scripts are left for the browser to load)
    python scripts/bootstrap_page.py post.html -o output/post.html

    # Fetch scripts and add integrity attributes
    python scripts/bootstrap_page.py post.html -o output/post.html --fetch-assets

    # Replay every story step and save the state after each one
    python scripts/bootstrap_page.py post.html -o output/post.html --replay-steps output/steps.json

    # Re-point CDN bundles (e.g. to self-hosted copies)
    python scripts/bootstrap_page.py post.html -o output/post.html --cdn-overrides config/cdn.yaml

    # Export the default bundles (to edit and use as overrides)
    python scripts/bootstrap_page.py --export-cdn config/cdn.yaml
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import LoomSettings, get_settings
from loom.adapters.mounting import read_state
from loom.runtime import Orchestrator, Page, StoryStepper, default_registry, run_bootstrap
from loom.runtime.overrides import (
    apply_cdn_overrides,
    export_cdn_manifest_to_yaml,
    load_cdn_overrides_safe,
)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Bootstrap the visualizations of an HTML page",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "page",
        type=str,
        nargs="?",
        default=None,
        help="HTML page to bootstrap",
    )

    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output HTML file (default: <page>.loom.html next to the input)",
    )

    parser.add_argument(
        "--fetch-assets",
        action="store_true",
        help="Fetch script assets over HTTP instead of deferring them to the browser",
    )

    parser.add_argument(
        "--replay-steps",
        type=str,
        default=None,
        help="Replay every story step and write per-step state snapshots to this JSON file",
    )

    parser.add_argument(
        "--cdn-overrides",
        type=str,
        default=None,
        help="Path to YAML file with CDN bundle overrides",
    )

    parser.add_argument(
        "--export-cdn",
        type=str,
        default=None,
        help="Export the default CDN bundles to a YAML file and exit",
    )

    parser.add_argument(
        "--no-page-features",
        action="store_true",
        help="Skip the reading progress bar and code copy buttons",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    return parser.parse_args()


def build_settings(args: argparse.Namespace) -> LoomSettings:
    """Settings from the environment, with command line flags applied on top."""
    settings = get_settings()
    updates = {}
    if args.fetch_assets:
        updates["fetch_assets"] = True
    if args.cdn_overrides:
        updates["cdn_overrides_path"] = args.cdn_overrides
    if args.verbose:
        updates["log_level"] = "DEBUG"
    return settings.model_copy(update=updates) if updates else settings


def snapshot_states(orchestrator: Orchestrator) -> dict[str, dict | None]:
    """Mounted state of every registered instance, by identity."""
    return {record.identity: read_state(record.element) for record in orchestrator.instances}


async def replay_steps(orchestrator: Orchestrator) -> list[dict]:
    """Enter every story step in document order, recording state after each."""
    snapshots = []
    steppers = StoryStepper.for_page(orchestrator.page, event=orchestrator.settings.step_event)

    for stepper in steppers:
        for notification in stepper.replay():
            await orchestrator.bridge.drain()
            snapshots.append({
                "section": stepper.section.get("id"),
                "index": notification.index,
                "step": notification.step,
                "states": snapshot_states(orchestrator),
            })

    return snapshots


async def run(args: argparse.Namespace, settings: LoomSettings) -> int:
    page_path = Path(args.page)
    if not page_path.exists():
        print(f"Page not found: {page_path}")
        return 1

    registry = default_registry()
    if settings.cdn_overrides_path:
        print(f"Applying CDN overrides from: {settings.cdn_overrides_path}")
        registry = apply_cdn_overrides(registry, load_cdn_overrides_safe(settings.cdn_overrides_path))

    page = Page.from_file(page_path)
    orchestrator = await run_bootstrap(
        page,
        registry,
        settings=settings,
        page_features=not args.no_page_features,
    )

    summary = orchestrator.report.get_summary()
    print(f"Detected: {', '.join(summary['detected']) or 'none'}")
    print(f"Mounted {summary['rendered']} visualizations in {summary['total_duration_ms']:.1f}ms")
    if summary["failures"]:
        print(f"Failures: {summary['failures']}")
        for error in orchestrator.report.failures:
            print(f"  - {error.message}")

    if args.replay_steps:
        snapshots = await replay_steps(orchestrator)
        steps_path = Path(args.replay_steps)
        steps_path.parent.mkdir(parents=True, exist_ok=True)
        steps_path.write_text(json.dumps(snapshots, indent=2, default=str))
        print(f"Replayed {len(snapshots)} story steps to: {steps_path}")

    output_path = Path(args.output) if args.output else page_path.with_suffix(".loom.html")
    page.save(output_path)
    print(f"Saved bootstrapped page to: {output_path}")
    return 0


def main() -> int:
    """Main entry point."""
    args = parse_args()
    settings = build_settings(args)

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.export_cdn:
        export_cdn_manifest_to_yaml(default_registry(), args.export_cdn)
        print(f"Exported CDN bundles to: {args.export_cdn}")
        return 0

    if args.page is None:
        print("No page given. Pass an HTML file to bootstrap, or --export-cdn.")
        return 1

    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
