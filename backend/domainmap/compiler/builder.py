"""
Graph Builder

rows -> EntityRegistry (dedup) -> GraphModel (nodes, containment, edges)
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from domainmap.compiler.registry import EntityRegistry
from domainmap.compiler.types import Edge, Geometry, GraphModel, Node
from domainmap.ir.rows import Row, RowLike, parse_rows
from domainmap.visual.node_styles import GroupNodeStyle, PathNodeStyle, ShapeNodeStyle
from domainmap.visual.visual_style import default_size, resolve_style, style_entry

logger = logging.getLogger(__name__)

DUPLICATE_EDGE_POLICIES = {"keep", "merge"}


class GraphBuilder:
    """
    Builds the domain -> system -> table model, one batch at a time.

    Usage:
        builder = GraphBuilder()
        graph = builder.build(rows)
    """

    def __init__(
        self,
        graph: Optional[GraphModel] = None,
        registry: Optional[EntityRegistry] = None,
        duplicate_edges: str = "keep",
        glyphs: Optional[Dict[str, str]] = None,
    ):
        if duplicate_edges not in DUPLICATE_EDGE_POLICIES:
            raise ValueError(
                f"duplicate_edges must be one of {sorted(DUPLICATE_EDGE_POLICIES)}, got '{duplicate_edges}'"
            )
        self.graph = graph if graph is not None else GraphModel()
        self.registry = registry if registry is not None else EntityRegistry()
        self.duplicate_edges = duplicate_edges
        self.glyphs = dict(glyphs or {})
        self._edge_index: Dict[Tuple[str, str], Edge] = {}

    def build(self, rows: Iterable[RowLike]) -> GraphModel:
        # Validate everything first so a bad row never leaves a half-built batch.
        parsed = parse_rows(rows)
        if self.registry.strict:
            self.registry.check(claim for row in parsed for claim in self._claims(row))

        nodes_before = len(self.graph)
        edges_before = len(self.graph.edges)

        for row in parsed:
            self._ingest(row)

        logger.info(
            "[BUILDER] %d rows -> +%d nodes, +%d edges (total %d nodes, %d edges)",
            len(parsed),
            len(self.graph) - nodes_before,
            len(self.graph.edges) - edges_before,
            len(self.graph),
            len(self.graph.edges),
        )
        return self.graph

    @staticmethod
    def _claims(row: Row):
        """(scope, key, identity) triples `_ingest` registers for a row."""
        return (
            ("domain", row.domain_key, None),
            ("system", row.system_key, (row.domain, row.source_system)),
            ("table", row.table_key, row.domain),
        )

    def _ingest(self, row: Row) -> None:
        domain_node = self.registry.get_or_create(
            row.domain_key,
            lambda: self._create_domain_node(row.domain),
            scope="domain",
        )
        # "a-b"/"c" and "a"/"b-c" share a key; the identity tells them apart.
        system_node = self.registry.get_or_create(
            row.system_key,
            lambda: self._create_leaf_node("system", domain_node, row.source_system, row.system_key),
            scope="system",
            identity=(row.domain, row.source_system),
        )
        # First creating row decides the parent; later domains only register as a conflict.
        table_node = self.registry.get_or_create(
            row.table_key,
            lambda: self._create_leaf_node("table", domain_node, row.table, row.table_key),
            scope="table",
            identity=row.domain,
        )
        self._link(system_node, table_node)

    def _link(self, system_node: Node, table_node: Node) -> Edge:
        if self.duplicate_edges == "merge":
            pair = (system_node.id, table_node.id)
            existing = self._edge_index.get(pair)
            if existing is not None:
                existing.multiplicity += 1
                return existing
            edge = self.graph.create_edge(system_node, table_node)
            self._edge_index[pair] = edge
            return edge
        return self.graph.create_edge(system_node, table_node)

    # -------------------------
    # Node factories
    # -------------------------

    def _create_domain_node(self, name: str) -> Node:
        style = resolve_style("domain")
        width, height = default_size("domain")
        return self.graph.create_group_node(
            "domain",
            name,
            name,
            Geometry(0, 0, width, height),
            style,
            visual_style=GroupNodeStyle(stroke=style.stroke_color, content_area_fill=style.fill_color),
            label_position=style_entry("domain")["label_position"],
        )

    def _create_leaf_node(self, kind: str, parent: Node, name: str, key: str) -> Node:
        style = resolve_style(kind)
        width, height = default_size(kind)
        return self.graph.create_node(
            kind,
            name,
            key,
            Geometry(0, 0, width, height),
            style,
            parent=parent,
            visual_style=self._leaf_visual_style(kind),
            label_position=style_entry(kind)["label_position"],
        )

    def _leaf_visual_style(self, kind: str):
        style = resolve_style(kind)
        path_data = self.glyphs.get(kind)
        if path_data:
            return PathNodeStyle(path_data, style.fill_color, style.stroke_color)
        return ShapeNodeStyle(fill=style.fill_color, stroke=style.stroke_color, shape=style_entry(kind)["shape"])


def build_graph(rows: Iterable[RowLike], duplicate_edges: str = "keep") -> GraphModel:
    """Convenience: build a fresh model from one batch."""
    return GraphBuilder(duplicate_edges=duplicate_edges).build(rows)
