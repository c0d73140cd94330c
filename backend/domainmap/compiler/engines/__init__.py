from domainmap.compiler.engines.base import (
    LayoutEngine,
    LayoutInput,
    LayoutItem,
    LayoutLink,
    LayoutOutput,
)
from domainmap.compiler.engines.orthogonal import OrthogonalLayoutEngine, count_crossings
from domainmap.compiler.engines.remote import RemoteLayoutEngine
from domainmap.config import LAYOUT_ENGINE, LAYOUT_SERVICE_URL, LAYOUT_TIMEOUT


def get_layout_engine(name: str = LAYOUT_ENGINE) -> LayoutEngine:
    if name == "remote":
        return RemoteLayoutEngine(base_url=LAYOUT_SERVICE_URL, timeout=LAYOUT_TIMEOUT)
    if name == "orthogonal":
        return OrthogonalLayoutEngine()
    raise ValueError(f"Unknown layout engine '{name}'")


__all__ = [
    "LayoutEngine",
    "LayoutInput",
    "LayoutItem",
    "LayoutLink",
    "LayoutOutput",
    "OrthogonalLayoutEngine",
    "RemoteLayoutEngine",
    "count_crossings",
    "get_layout_engine",
]
