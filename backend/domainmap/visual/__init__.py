# Visual module
# Maps node kinds to colours and turns nodes into SVG glyphs

from domainmap.visual.visual_style import VISUAL_STYLE, StyleDescriptor, resolve_style
from domainmap.visual.node_styles import GroupNodeStyle, PathNodeStyle, ShapeNodeStyle, Visual

__all__ = [
    "VISUAL_STYLE",
    "StyleDescriptor",
    "resolve_style",
    "GroupNodeStyle",
    "PathNodeStyle",
    "ShapeNodeStyle",
    "Visual",
]
