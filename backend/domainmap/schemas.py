from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List


class BuildRequest(BaseModel):
    # Rows stay loosely keyed ("SourceSystem", "source_system", ...); the builder validates them.
    rows: List[Dict[str, Any]]
    duplicate_edges: Optional[str] = None  # keep | merge, defaults to DUPLICATE_EDGE_POLICY


class IngestRequest(BaseModel):
    """Another batch for an existing graph"""
    rows: List[Dict[str, Any]]


class LayoutRequest(BaseModel):
    timeout: Optional[float] = Field(default=None, gt=0)  # seconds, defaults to LAYOUT_TIMEOUT


class GeometryOut(BaseModel):
    x: float
    y: float
    width: float
    height: float


class NodeOut(BaseModel):
    id: str
    kind: str
    label: str
    key: str
    parent: Optional[str] = None
    is_group: bool = False
    collapsed: bool = False
    geometry: GeometryOut
    style: Dict[str, str]


class EdgeOut(BaseModel):
    id: str
    source: str
    target: str
    multiplicity: int = 1


class ViewEdgeOut(BaseModel):
    id: str
    source: str
    target: str
    folded: bool = False


class GraphResponse(BaseModel):
    id: str
    stats: Dict[str, int]
    nodes: List[NodeOut]
    edges: List[EdgeOut]
    visible_nodes: List[str] = []
    visible_edges: List[ViewEdgeOut] = []
    conflicts: List[Dict[str, Any]] = []
    warnings: List[str] = []


class LayoutResponse(BaseModel):
    id: str
    old: Dict[str, GeometryOut]
    new: Dict[str, GeometryOut]
    routes: Dict[str, List[List[float]]]
    crossings: int


class SearchHitOut(BaseModel):
    id: str
    kind: str
    label: str
    key: str
    score: int


class SearchResponse(BaseModel):
    query: str
    hits: List[SearchHitOut]
