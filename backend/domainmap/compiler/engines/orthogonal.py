"""
Orthogonal layout engine.

Every scope (the view root, then each expanded group) is laid out on its own,
innermost groups first, so a group's box is known before its parent scope
places it as a single unit. Per scope:
  1. Project edges onto the scope's direct members
  2. Cycle removal + longest-path layering
  3. Crossing reduction (barycenter sweeps)
  4. Grid-snapped coordinates, one row per layer
Edges are routed with axis-aligned segments once absolute positions are known.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import networkx as nx

from domainmap.compiler.engines.base import LayoutInput, LayoutItem, LayoutOutput, Point
from domainmap.compiler.types import Geometry

GRID = 10
NODE_GAP = 30        # between nodes in one row
LAYER_GAP = 60       # between rows
GROUP_PADDING = 20   # group border to content (left/right/bottom)
GROUP_HEADER = 30    # band holding the group label
MAX_PASSES = 24


@dataclass
class ScopeLayout:
    positions: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    ordering: List[List[str]] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0
    crossings: int = 0


def count_crossings(ordering: List[List[str]], graph: nx.DiGraph) -> int:
    """Edge crossings between consecutive layers (inversion count)."""
    total = 0
    for l_idx in range(len(ordering) - 1):
        tgt_pos = {nid: i for i, nid in enumerate(ordering[l_idx + 1])}
        edges: List[Tuple[int, int]] = []
        for sp, src_id in enumerate(ordering[l_idx]):
            for nb in graph.successors(src_id):
                if nb in tgt_pos:
                    edges.append((sp, tgt_pos[nb]))
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] < ej[0] and ei[1] > ej[1]) or (ei[0] > ej[0] and ei[1] < ej[1]):
                    total += 1
    return total


class OrthogonalLayoutEngine:
    def __init__(
        self,
        grid: int = GRID,
        node_gap: int = NODE_GAP,
        layer_gap: int = LAYER_GAP,
        padding: int = GROUP_PADDING,
        header: int = GROUP_HEADER,
    ):
        self.grid = grid
        self.node_gap = node_gap
        self.layer_gap = layer_gap
        self.padding = padding
        self.header = header

    def layout(self, data: LayoutInput) -> LayoutOutput:
        items: Dict[str, LayoutItem] = {n.id: n for n in data.nodes}
        parent_of: Dict[str, Optional[str]] = {
            n.id: (n.parent if n.parent in items else None) for n in data.nodes
        }
        members: Dict[Optional[str], List[str]] = defaultdict(list)
        for n in data.nodes:
            members[parent_of[n.id]].append(n.id)

        links = [(e.source, e.target) for e in data.edges if e.source in items and e.target in items]

        sizes: Dict[str, Tuple[float, float]] = {}
        content: Dict[str, Tuple[float, float]] = {}
        relative: Dict[str, Tuple[float, float]] = {}
        crossings = 0

        def is_open(node_id: str) -> bool:
            return items[node_id].container and bool(members.get(node_id))

        def layout_scope(scope_id: Optional[str]) -> Tuple[float, float]:
            nonlocal crossings
            for mid in members.get(scope_id, []):
                item = items[mid]
                if is_open(mid):
                    cw, ch = layout_scope(mid)
                    content[mid] = (cw, ch)
                    sizes[mid] = (
                        max(self._snap_up(item.width), self._snap_up(cw + 2 * self.padding)),
                        max(self._snap_up(item.height), self._snap_up(ch + self.header + self.padding)),
                    )
                else:
                    sizes[mid] = (self._snap_up(item.width), self._snap_up(item.height))

            scope_links = []
            for source, target in links:
                su = self._unit_in_scope(source, scope_id, parent_of)
                tu = self._unit_in_scope(target, scope_id, parent_of)
                if su is not None and tu is not None and su != tu:
                    scope_links.append((su, tu))

            scope = self._layout_members(members.get(scope_id, []), scope_links, sizes)
            relative.update(scope.positions)
            crossings += scope.crossings
            return scope.width, scope.height

        layout_scope(None)

        geometry: Dict[str, Geometry] = {}

        def place(scope_id: Optional[str], origin_x: float, origin_y: float) -> None:
            for mid in members.get(scope_id, []):
                rx, ry = relative[mid]
                w, h = sizes[mid]
                box = Geometry(origin_x + rx, origin_y + ry, w, h)
                geometry[mid] = box
                if is_open(mid):
                    cw, _ = content[mid]
                    offset = math.floor((w - cw) / 2 / self.grid) * self.grid
                    place(mid, box.x + offset, box.y + self.header)

        place(None, 0.0, 0.0)

        routes = {
            e.id: self.route(geometry[e.source], geometry[e.target])
            for e in data.edges
            if e.source in geometry and e.target in geometry
        }
        return LayoutOutput(geometry=geometry, routes=routes, crossings=crossings)

    # -------------------------
    # Per-scope phases
    # -------------------------

    def _layout_members(
        self,
        member_ids: List[str],
        links: List[Tuple[str, str]],
        sizes: Dict[str, Tuple[float, float]],
    ) -> ScopeLayout:
        if not member_ids:
            return ScopeLayout()

        graph = nx.DiGraph()
        graph.add_nodes_from(member_ids)
        for source, target in links:
            if graph.has_edge(source, target):
                graph[source][target]["weight"] += 1
            else:
                graph.add_edge(source, target, weight=1)

        order = {m: i for i, m in enumerate(member_ids)}
        dag = self._acyclic(graph, order)

        rank = {m: 0 for m in member_ids}
        for node_id in nx.topological_sort(dag):
            for succ in dag.successors(node_id):
                rank[succ] = max(rank[succ], rank[node_id] + 1)

        ordering: List[List[str]] = [[] for _ in range(max(rank.values()) + 1)]
        for m in member_ids:
            ordering[rank[m]].append(m)

        ordering, crossings = self._reduce_crossings(ordering, dag)

        layer_widths = [
            sum(sizes[m][0] for m in layer) + self.node_gap * (len(layer) - 1)
            for layer in ordering
        ]
        width = max(layer_widths)

        positions: Dict[str, Tuple[float, float]] = {}
        y = 0.0
        for layer, layer_width in zip(ordering, layer_widths):
            x = math.floor((width - layer_width) / 2 / self.grid) * self.grid
            row_height = max(sizes[m][1] for m in layer)
            for m in layer:
                positions[m] = (float(x), y)
                x += sizes[m][0] + self.node_gap
            y += row_height + self.layer_gap

        return ScopeLayout(
            positions=positions,
            ordering=ordering,
            width=width,
            height=y - self.layer_gap,
            crossings=crossings,
        )

    @staticmethod
    def _unit_in_scope(
        node_id: str,
        scope_id: Optional[str],
        parent_of: Dict[str, Optional[str]],
    ) -> Optional[str]:
        """The direct member of `scope_id` that contains (or is) `node_id`."""
        current: Optional[str] = node_id
        while current is not None:
            if parent_of[current] == scope_id:
                return current
            current = parent_of[current]
        return None

    @staticmethod
    def _acyclic(graph: nx.DiGraph, order: Dict[str, int]) -> nx.DiGraph:
        """Reverse every edge pointing backwards in member order."""
        if nx.is_directed_acyclic_graph(graph):
            return graph
        dag = nx.DiGraph()
        dag.add_nodes_from(graph.nodes)
        for source, target, attrs in graph.edges(data=True):
            if order[source] > order[target]:
                source, target = target, source
            if dag.has_edge(source, target):
                dag[source][target]["weight"] += attrs["weight"]
            else:
                dag.add_edge(source, target, weight=attrs["weight"])
        return dag

    def _reduce_crossings(self, ordering: List[List[str]], dag: nx.DiGraph) -> Tuple[List[List[str]], int]:
        best = [list(layer) for layer in ordering]
        best_count = count_crossings(best, dag)
        current = [list(layer) for layer in ordering]

        for _pass in range(MAX_PASSES):
            if best_count == 0:
                break
            for idx in range(1, len(current)):
                prev = {nid: float(i) for i, nid in enumerate(current[idx - 1])}
                current[idx] = self._by_barycenter(current[idx], dag.predecessors, prev)
            for idx in range(len(current) - 2, -1, -1):
                nxt = {nid: float(i) for i, nid in enumerate(current[idx + 1])}
                current[idx] = self._by_barycenter(current[idx], dag.successors, nxt)

            count = count_crossings(current, dag)
            if count >= best_count:
                break
            best, best_count = [list(layer) for layer in current], count

        return best, best_count

    @staticmethod
    def _by_barycenter(layer: List[str], neighbours, neighbour_pos: Dict[str, float]) -> List[str]:
        keys: Dict[str, float] = {}
        for idx, node_id in enumerate(layer):
            positions = [neighbour_pos[nb] for nb in neighbours(node_id) if nb in neighbour_pos]
            # Nodes without neighbours in the adjacent layer hold their slot.
            keys[node_id] = sum(positions) / len(positions) if positions else float(idx)
        return sorted(layer, key=keys.__getitem__)

    # -------------------------
    # Edge routing
    # -------------------------

    def route(self, source: Geometry, target: Geometry) -> List[Point]:
        """Axis-aligned polyline from `source` to `target`."""
        sx, sy = source.center
        tx, ty = target.center

        if target.y >= source.bottom:
            mid = self._snap((source.bottom + target.y) / 2)
            points = [(sx, source.bottom), (sx, mid), (tx, mid), (tx, target.y)]
        elif source.y >= target.bottom:
            mid = self._snap((target.bottom + source.y) / 2)
            points = [(sx, source.y), (sx, mid), (tx, mid), (tx, target.bottom)]
        elif target.x >= source.right:
            mid = self._snap((source.right + target.x) / 2)
            points = [(source.right, sy), (mid, sy), (mid, ty), (target.x, ty)]
        elif source.x >= target.right:
            mid = self._snap((target.right + source.x) / 2)
            points = [(source.x, sy), (mid, sy), (mid, ty), (target.right, ty)]
        else:
            below = self._snap_up(max(source.bottom, target.bottom) + self.grid)
            points = [(sx, source.bottom), (sx, below), (tx, below), (tx, target.bottom)]

        route: List[Point] = []
        for point in points:
            if not route or route[-1] != point:
                route.append(point)
        return route

    def _snap(self, value: float) -> float:
        return float(round(value / self.grid) * self.grid)

    def _snap_up(self, value: float) -> float:
        return float(math.ceil(value / self.grid) * self.grid)
