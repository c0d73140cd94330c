"""
Remote layout engine - delegates placement to an ELK-compatible HTTP service.

The request body is an ELK JSON graph (nested `children`, root-level `edges`);
the response is the same graph with x/y/width/height filled in. Child
coordinates in ELK are relative to their parent, so they are resolved
recursively into absolute positions.
"""

from typing import Dict, List, Optional

import requests

from domainmap.compiler.engines.base import LayoutInput, LayoutOutput, Point
from domainmap.compiler.types import Geometry
from domainmap.ir.errors import LayoutFailure

ELK_LAYOUT_OPTIONS = {
    "elk.algorithm": "layered",
    "elk.edgeRouting": "ORTHOGONAL",
    "elk.hierarchyHandling": "INCLUDE_CHILDREN",
    "elk.spacing.nodeNode": "30",
    "elk.layered.spacing.nodeNodeBetweenLayers": "60",
    "elk.padding": "[top=30,left=20,bottom=20,right=20]",
}


class RemoteLayoutEngine:
    def __init__(self, base_url: str, timeout: float = 30, layout_options: Optional[Dict[str, str]] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.layout_options = dict(ELK_LAYOUT_OPTIONS)
        if layout_options:
            self.layout_options.update(layout_options)

    def layout(self, data: LayoutInput) -> LayoutOutput:
        payload = self.to_elk(data)
        try:
            response = requests.post(
                f"{self.base_url}/layout",
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            raise LayoutFailure(f"Layout service request failed: {e}", e) from e

        return self.from_elk(result, data)

    def to_elk(self, data: LayoutInput) -> dict:
        ids = {n.id for n in data.nodes}
        elk_nodes: Dict[str, dict] = {}
        for item in data.nodes:
            elk_nodes[item.id] = {
                "id": item.id,
                "width": item.width,
                "height": item.height,
                "labels": [{"text": item.label}],
                "children": [],
            }

        root_children: List[dict] = []
        for item in data.nodes:
            if item.parent in ids:
                elk_nodes[item.parent]["children"].append(elk_nodes[item.id])
            else:
                root_children.append(elk_nodes[item.id])

        return {
            "id": "root",
            "layoutOptions": self.layout_options,
            "children": root_children,
            "edges": [
                {"id": e.id, "sources": [e.source], "targets": [e.target]}
                for e in data.edges
            ],
        }

    def from_elk(self, graph: dict, data: LayoutInput) -> LayoutOutput:
        geometry: Dict[str, Geometry] = {}

        def walk(children: List[dict], origin_x: float, origin_y: float) -> None:
            for child in children:
                x = origin_x + float(child.get("x", 0))
                y = origin_y + float(child.get("y", 0))
                geometry[child["id"]] = Geometry(
                    x, y, float(child.get("width", 0)), float(child.get("height", 0))
                )
                walk(child.get("children", []), x, y)

        try:
            walk(graph.get("children", []), 0.0, 0.0)
            routes: Dict[str, List[Point]] = {}
            for edge in graph.get("edges", []):
                points: List[Point] = []
                for section in edge.get("sections", []):
                    points.append(self._point(section["startPoint"]))
                    points.extend(self._point(p) for p in section.get("bendPoints", []))
                    points.append(self._point(section["endPoint"]))
                if points:
                    routes[edge["id"]] = points
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise LayoutFailure(f"Malformed layout service response: {e}", e) from e

        missing = [n.id for n in data.nodes if n.id not in geometry]
        if missing:
            raise LayoutFailure(f"Layout service returned no position for {len(missing)} nodes: {missing[:5]}")

        return LayoutOutput(geometry=geometry, routes=routes)

    @staticmethod
    def _point(raw: dict) -> Point:
        return (float(raw["x"]), float(raw["y"]))
