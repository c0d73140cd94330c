from domainmap.compiler.builder import GraphBuilder, build_graph
from domainmap.compiler.folding import FoldingView, ViewEdge
from domainmap.compiler.layout import LayoutHandle, LayoutOrchestrator, LayoutResult
from domainmap.compiler.registry import EntityRegistry, KeyConflict
from domainmap.compiler.types import Edge, Geometry, GraphModel, Node

__all__ = [
    "Edge",
    "EntityRegistry",
    "FoldingView",
    "Geometry",
    "GraphBuilder",
    "GraphModel",
    "KeyConflict",
    "LayoutHandle",
    "LayoutOrchestrator",
    "LayoutResult",
    "Node",
    "ViewEdge",
    "build_graph",
]
