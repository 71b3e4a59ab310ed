#!/usr/bin/env python3
"""Quick start example for the loom visualization runtime.

Bootstraps a small scrollytelling page with a D3 bar chart and a Leaflet
map, then walks through its story steps.

Usage:
    python examples/quick_start.py
"""

import asyncio
import json

from loom.adapters.mounting import read_state
from loom.runtime import Page, StoryStepper, run_bootstrap

PAGE = """
<html>
<head><script src="https://unpkg.com/leaflet@1.9/dist/leaflet.js" data-loom-load="loaded"></script></head>
<body class="post-template">
  <article class="gh-content">
    <section class="story-section">
      <div class="story-sticky">
        <div class="story-graphic">
          <div data-d3="bar" id="pop-chart" style="height:320px"
               data-options='{"data": [{"label": "1970", "value": 3.7}]}'></div>
          <div data-leaflet id="city-map" data-tiles="carto"></div>
        </div>
      </div>
      <div class="story-steps">
        <div class="story-step" data-step="1970"
             data-update='{"city-map": {"lat": 48.858, "lng": 2.295, "zoom": 14}}'>Paris</div>
        <div class="story-step" data-step="2024"
             data-update='{"pop-chart": {"data": [{"label": "1970", "value": 3.7},
                                                  {"label": "2024", "value": 8.1}]}}'>Growth</div>
      </div>
    </section>
  </article>
</body>
</html>
"""


async def main() -> None:
    """Run a quick bootstrap demo."""
    print("=" * 60)
    print("loom - Quick Start Demo")
    print("=" * 60)

    page = Page(PAGE)
    orchestrator = await run_bootstrap(page)

    summary = orchestrator.report.get_summary()
    print(f"\nDetected libraries: {', '.join(summary['detected'])}")
    print(f"Mounted instances: {', '.join(orchestrator.instances.ids())}")

    print("\n" + "=" * 60)
    print("STORY STEPS")
    print("=" * 60)

    for stepper in StoryStepper.for_page(page):
        for notification in stepper.replay():
            await orchestrator.bridge.drain()
            print(f"\nStep {notification.index} ({notification.step})")
            for record in orchestrator.instances:
                state = read_state(record.element)
                print(f"  {record.identity}: {json.dumps(state)[:100]}")


if __name__ == "__main__":
    asyncio.run(main())
