"""
Folding view - collapse / expand domain groups without touching the base model.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Union

from domainmap.compiler.types import Edge, Geometry, GraphModel, Node
from domainmap.visual.visual_style import FOLDER_SIZE

logger = logging.getLogger(__name__)

NodeRef = Union[Node, str]


@dataclass(frozen=True)
class ViewEdge:
    """A base edge as seen through the view; endpoints may be folder nodes."""
    id: str
    source: str
    target: str
    edge: Edge

    @property
    def is_folded(self) -> bool:
        return self.source != self.edge.source or self.target != self.edge.target


class FoldingView:
    """
    Read-only projection over a GraphModel.

    A node is visible when it lies inside the current local root (if any) and
    none of its proper ancestors is collapsed. Collapse state is kept per
    group, so a nested group keeps its state while an outer group hides it.
    """

    def __init__(self, graph: GraphModel):
        self.graph = graph
        self._collapsed: Set[str] = set()
        self._folder_geometry: Dict[str, Geometry] = {}
        self._root_stack: List[str] = []

    # -------------------------
    # Fold state
    # -------------------------

    def collapse(self, node: NodeRef) -> None:
        group = self._group(node)
        self._collapsed.add(group.id)
        logger.debug("[FOLDING] collapsed %s (%s)", group.id, group.label)

    def expand(self, node: NodeRef) -> None:
        group = self._group(node)
        self._collapsed.discard(group.id)
        logger.debug("[FOLDING] expanded %s (%s)", group.id, group.label)

    def toggle(self, node: NodeRef) -> bool:
        """Flip the fold state; returns True when the group ends up collapsed."""
        group = self._group(node)
        if group.id in self._collapsed:
            self.expand(group)
            return False
        self.collapse(group)
        return True

    def is_collapsed(self, node: NodeRef) -> bool:
        return self._resolve(node).id in self._collapsed

    def collapse_all(self) -> None:
        for node in self.graph.nodes:
            if node.is_group:
                self._collapsed.add(node.id)

    def expand_all(self) -> None:
        self._collapsed.clear()

    @property
    def collapsed_groups(self) -> List[str]:
        return [n.id for n in self.graph.nodes if n.id in self._collapsed]

    # -------------------------
    # Group navigation
    # -------------------------

    def enter(self, node: NodeRef) -> None:
        """Show only the contents of `node`."""
        group = self._group(node)
        if not self.is_visible(group):
            raise ValueError(f"Group '{group.id}' is not visible and cannot be entered")
        # Entering a folder opens it, like double-clicking a collapsed group.
        self._collapsed.discard(group.id)
        self._root_stack.append(group.id)

    def exit(self) -> Optional[Node]:
        """Leave the current group; returns the group that was left."""
        if not self._root_stack:
            return None
        return self.graph.node(self._root_stack.pop())

    @property
    def local_root(self) -> Optional[Node]:
        return self.graph.node(self._root_stack[-1]) if self._root_stack else None

    # -------------------------
    # Visibility queries
    # -------------------------

    def representative(self, node: NodeRef) -> Optional[Node]:
        """
        The visible node standing in for `node`: itself when visible, else its
        outermost collapsed ancestor. None when `node` is outside the local root.
        """
        node = self._resolve(node)
        root = self.local_root
        if root is not None and node.id == root.id:
            return None

        outermost: Optional[Node] = None
        inside_root = root is None
        for ancestor in self.graph.ancestors(node):
            if root is not None and ancestor.id == root.id:
                inside_root = True
                break
            if ancestor.id in self._collapsed:
                outermost = ancestor

        if not inside_root:
            return None
        return outermost if outermost is not None else node

    def is_visible(self, node: NodeRef) -> bool:
        node = self._resolve(node)
        rep = self.representative(node)
        return rep is not None and rep.id == node.id

    def visible_nodes(self) -> List[Node]:
        return [n for n in self.graph.nodes if self.is_visible(n)]

    def visible_edges(self) -> List[ViewEdge]:
        edges: List[ViewEdge] = []
        for edge in self.graph.edges:
            source = self.representative(edge.source)
            target = self.representative(edge.target)
            if source is None or target is None or source.id == target.id:
                continue
            edges.append(ViewEdge(id=edge.id, source=source.id, target=target.id, edge=edge))
        return edges

    def visible_children(self, node: Optional[NodeRef]) -> List[Node]:
        """Visible direct children of an expanded group (or of the view root for None)."""
        if node is None:
            root = self.local_root
            candidates = self.graph.get_children(root)
        else:
            group = self._resolve(node)
            if group.id in self._collapsed:
                return []
            candidates = self.graph.get_children(group)
        return [c for c in candidates if self.is_visible(c)]

    # -------------------------
    # Geometry
    # -------------------------

    def display_geometry(self, node: NodeRef) -> Geometry:
        node = self._resolve(node)
        if node.id in self._collapsed:
            folder = self._folder_geometry.get(node.id)
            if folder is None:
                folder = Geometry(node.geometry.x, node.geometry.y, *FOLDER_SIZE)
            return folder
        return node.geometry

    def set_display_geometry(self, node: NodeRef, geometry: Geometry) -> None:
        """Folders keep their own geometry so expanding restores the group's box."""
        node = self._resolve(node)
        if node.id in self._collapsed:
            self._folder_geometry[node.id] = geometry.copy()
        else:
            node.geometry = geometry.copy()

    def display_size(self, node: NodeRef) -> tuple:
        node = self._resolve(node)
        if node.id in self._collapsed:
            return FOLDER_SIZE
        return (node.geometry.width, node.geometry.height)

    # -------------------------
    # Helpers
    # -------------------------

    def _resolve(self, node: NodeRef) -> Node:
        if isinstance(node, Node):
            return self.graph.node(node.id)
        return self.graph.node(node)

    def _group(self, node: NodeRef) -> Node:
        resolved = self._resolve(node)
        if not resolved.is_group:
            raise ValueError(f"Node '{resolved.id}' is not a group node")
        return resolved
