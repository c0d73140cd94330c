from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from domainmap.visual.visual_style import StyleDescriptor


@dataclass
class Geometry:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def center(self) -> tuple:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def overlaps(self, other: "Geometry") -> bool:
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )

    def contains(self, other: "Geometry") -> bool:
        return (
            self.x <= other.x
            and self.y <= other.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )

    def copy(self) -> "Geometry":
        return Geometry(self.x, self.y, self.width, self.height)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass
class Node:
    id: str
    kind: str                               # domain | system | table
    label: str
    key: str
    geometry: Geometry
    style: StyleDescriptor
    visual_style: Any = None                # produces the glyph, see visual.node_styles
    parent: Optional[str] = None
    is_group: bool = False
    label_position: str = "center"          # north_west for groups


@dataclass
class Edge:
    id: str
    source: str
    target: str
    multiplicity: int = 1


class GraphModel:
    """
    Owns node and edge lifetime. Containment is stored as a parent id per
    node plus an ordered child list per group.
    """

    def __init__(self):
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, Edge] = {}
        self._children: Dict[Optional[str], List[str]] = {None: []}
        self._node_counter = 0
        self._edge_counter = 0

    # -------------------------
    # Creation
    # -------------------------

    def create_node(
        self,
        kind: str,
        label: str,
        key: str,
        geometry: Geometry,
        style: StyleDescriptor,
        parent: Optional[Node] = None,
        is_group: bool = False,
        visual_style: Any = None,
        label_position: str = "center",
    ) -> Node:
        if parent is not None:
            if parent.id not in self._nodes:
                raise KeyError(f"Unknown parent node '{parent.id}'")
            if not parent.is_group:
                raise ValueError(f"Node '{parent.id}' is not a group node")

        self._node_counter += 1
        node = Node(
            id=f"n{self._node_counter}",
            kind=kind,
            label=label,
            key=key,
            geometry=geometry,
            style=style,
            visual_style=visual_style,
            parent=parent.id if parent is not None else None,
            is_group=is_group,
            label_position=label_position,
        )
        self._nodes[node.id] = node
        self._children[node.parent].append(node.id)
        if is_group:
            self._children[node.id] = []
        return node

    def create_group_node(self, kind: str, label: str, key: str, geometry: Geometry,
                          style: StyleDescriptor, **kwargs) -> Node:
        return self.create_node(kind, label, key, geometry, style, is_group=True, **kwargs)

    def create_edge(self, source: Node, target: Node) -> Edge:
        for node in (source, target):
            if node.id not in self._nodes:
                raise KeyError(f"Unknown node '{node.id}'")
        self._edge_counter += 1
        edge = Edge(id=f"e{self._edge_counter}", source=source.id, target=target.id)
        self._edges[edge.id] = edge
        return edge

    # -------------------------
    # Queries
    # -------------------------

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges.values())

    def node(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise KeyError(f"Unknown node '{node_id}'") from None

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_parent(self, node: Node) -> Optional[Node]:
        return self._nodes[node.parent] if node.parent else None

    def get_children(self, node: Optional[Node]) -> List[Node]:
        """Direct children; `None` gives the top-level nodes."""
        key = node.id if node is not None else None
        return [self._nodes[nid] for nid in self._children.get(key, [])]

    def ancestors(self, node: Node) -> Iterator[Node]:
        """Proper ancestors, nearest first."""
        seen = {node.id}
        current = self.get_parent(node)
        while current is not None:
            if current.id in seen:
                raise ValueError(f"Containment cycle at node '{current.id}'")
            seen.add(current.id)
            yield current
            current = self.get_parent(current)

    def descendants(self, node: Node) -> List[Node]:
        """All transitive children, depth first."""
        result: List[Node] = []
        stack = list(reversed(self.get_children(node)))
        while stack:
            child = stack.pop()
            result.append(child)
            stack.extend(reversed(self.get_children(child)))
        return result

    def edges_between(self, source: Node, target: Node) -> List[Edge]:
        return [e for e in self._edges.values() if e.source == source.id and e.target == target.id]

    def nodes_of_kind(self, kind: str) -> List[Node]:
        return [n for n in self._nodes.values() if n.kind == kind]

    def __len__(self) -> int:
        return len(self._nodes)
