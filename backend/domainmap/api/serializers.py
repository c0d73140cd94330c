from typing import Any

from domainmap.compiler.folding import FoldingView
from domainmap.compiler.types import Edge, Node
from domainmap.pipeline.context import DiagramContext


PRIMITIVE_TYPES = (str, int, float, bool, type(None))


def serialize_ir(obj: Any):
    """
    Serialize model objects into JSON-compatible structures.
    Deterministic. Tolerant to primitives.
    """

    if isinstance(obj, PRIMITIVE_TYPES):
        return obj

    if isinstance(obj, (list, tuple)):
        return [serialize_ir(item) for item in obj]

    if isinstance(obj, dict):
        return {k: serialize_ir(v) for k, v in obj.items()}

    if hasattr(obj, "to_dict"):
        return serialize_ir(obj.to_dict())

    if hasattr(obj, "__dict__"):
        return {
            key: serialize_ir(value)
            for key, value in obj.__dict__.items()
            if not key.startswith("_")
        }

    return str(obj)


def serialize_node(node: Node, view: FoldingView) -> dict:
    # Style objects are render-side only; the descriptor is what clients need.
    return {
        "id": node.id,
        "kind": node.kind,
        "label": node.label,
        "key": node.key,
        "parent": node.parent,
        "is_group": node.is_group,
        "collapsed": node.is_group and view.is_collapsed(node),
        "geometry": view.display_geometry(node).to_dict(),
        "style": node.style.to_dict(),
    }


def serialize_edge(edge: Edge) -> dict:
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "multiplicity": edge.multiplicity,
    }


def serialize_context(graph_id: str, context: DiagramContext) -> dict:
    graph = context.graph
    view = context.view
    stats = context.validation.stats if context.validation is not None else {
        "nodes": len(graph.nodes),
        "edges": len(graph.edges),
    }
    return {
        "id": graph_id,
        "stats": stats,
        "nodes": [serialize_node(n, view) for n in graph.nodes],
        "edges": [serialize_edge(e) for e in graph.edges],
        "visible_nodes": [n.id for n in view.visible_nodes()],
        "visible_edges": [
            {"id": e.id, "source": e.source, "target": e.target, "folded": e.is_folded}
            for e in view.visible_edges()
        ],
        "conflicts": serialize_ir(context.registry.conflicts),
        "warnings": list(context.errors),
    }
