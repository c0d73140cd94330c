from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple

from domainmap.compiler.types import Geometry

Point = Tuple[float, float]


@dataclass
class LayoutItem:
    id: str
    label: str
    width: float
    height: float
    parent: Optional[str] = None        # visible parent container, None at the view root
    container: bool = False             # expanded group: sized from its children


@dataclass
class LayoutLink:
    id: str
    source: str
    target: str


@dataclass
class LayoutInput:
    nodes: List[LayoutItem] = field(default_factory=list)
    edges: List[LayoutLink] = field(default_factory=list)


@dataclass
class LayoutOutput:
    geometry: Dict[str, Geometry] = field(default_factory=dict)
    routes: Dict[str, List[Point]] = field(default_factory=dict)
    crossings: int = 0


class LayoutEngine(Protocol):
    """Anything that can place the visible projection. Runs off the event loop."""

    def layout(self, data: LayoutInput) -> LayoutOutput:
        ...
