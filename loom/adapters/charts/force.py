"""
Force-directed graph.

data-options: {"data": {"nodes": [{"id": "a"}], "links": [{"source": "a", "target": "b"}]}}

The simulation runs in the browser. Updates are ignored: a force graph is
re-mounted rather than updated in place.
"""

from typing import Any

from loom.adapters.charts.base import D3Chart

FORCES = {"link_distance": 60, "charge": -100, "node_radius": 7}


class ForceGraph(D3Chart):
    chart_type = "force"
    margin = {"top": 0, "right": 0, "bottom": 0, "left": 0}

    def accepts(self, data: Any) -> bool:
        return isinstance(data, dict) and isinstance(data.get("nodes"), list)

    def update(self, data: Any) -> None:
        return None

    def layout(self) -> dict[str, Any]:
        node_ids = {n.get("id") for n in self.data["nodes"]}
        links = self.data.get("links") or []
        dangling = [
            link for link in links
            if link.get("source") not in node_ids or link.get("target") not in node_ids
        ]
        return {
            "center": [self.width / 2, self.height / 2],
            "nodes": len(node_ids),
            "links": len(links),
            "dangling_links": len(dangling),
            **FORCES,
        }
