from html import escape
from typing import Dict, List, Optional

from domainmap.compiler.folding import FoldingView
from domainmap.compiler.layout import LayoutResult
from domainmap.compiler.types import Geometry, Node
from domainmap.visual.node_styles import GroupNodeStyle, ShapeNodeStyle, Visual

MARGIN = 20
FONT_SIZE = 12
LABEL_INSET = 6


def _canvas(boxes: List[Geometry]) -> tuple:
    if not boxes:
        return (2 * MARGIN, 2 * MARGIN)
    right = max(b.right for b in boxes)
    bottom = max(b.bottom for b in boxes)
    return (right + MARGIN, bottom + MARGIN)


def _node_visual(view: FoldingView, node: Node, box: Geometry) -> Visual:
    # Folders are drawn as plain boxes in the group's colours.
    if view.is_collapsed(node):
        style = ShapeNodeStyle(fill=node.style.fill_color, stroke=node.style.stroke_color, shape="rounded_rect")
    else:
        style = node.visual_style
        if style is None:
            if node.is_group:
                style = GroupNodeStyle(stroke=node.style.stroke_color, content_area_fill=node.style.fill_color)
            else:
                style = ShapeNodeStyle(fill=node.style.fill_color, stroke=node.style.stroke_color)
    sized = Node(
        id=node.id,
        kind=node.kind,
        label=node.label,
        key=node.key,
        geometry=box,
        style=node.style,
    )
    return style.produce_visual(sized)


def _label(node: Node, box: Geometry, collapsed: bool) -> str:
    text = escape(node.label)
    if node.is_group and not collapsed and node.label_position == "north_west":
        return (
            f'<text x="{box.x + LABEL_INSET}" y="{box.y + LABEL_INSET + FONT_SIZE}" '
            f'font-family="Arial" font-size="{FONT_SIZE}" font-weight="bold">{text}</text>'
        )
    cx, cy = box.center
    return (
        f'<text x="{cx}" y="{cy}" text-anchor="middle" dominant-baseline="middle" '
        f'font-family="Arial" font-size="{FONT_SIZE}">{text}</text>'
    )


def _depth(view: FoldingView, node: Node) -> int:
    return sum(1 for _ in view.graph.ancestors(node))


def render_svg(view: FoldingView, layout_result: Optional[LayoutResult] = None) -> str:
    """
    Draw the visible projection as a standalone SVG document.

    Groups are drawn before their contents, edges on top of groups and
    beneath leaves. Edges follow the layout routes when a result is given.
    """
    nodes = view.visible_nodes()
    boxes: Dict[str, Geometry] = {n.id: view.display_geometry(n) for n in nodes}

    w, h = _canvas(list(boxes.values()))
    svg = [
        f'<svg width="{w}" height="{h}" viewBox="0 0 {w} {h}" xmlns="http://www.w3.org/2000/svg">',
        '<defs><marker id="arrow" viewBox="0 0 10 10" refX="10" refY="5" '
        'markerWidth="6" markerHeight="6" orient="auto-start-reverse">'
        '<path d="M 0 0 L 10 5 L 0 10 z" fill="#555"/></marker></defs>',
    ]

    containers = [n for n in nodes if n.is_group and not view.is_collapsed(n)]
    leaves = [n for n in nodes if not (n.is_group and not view.is_collapsed(n))]

    # Draw groups first, outermost first
    for node in sorted(containers, key=lambda n: _depth(view, n)):
        box = boxes[node.id]
        visual = _node_visual(view, node, box)
        svg.append(f'<g id="{node.id}" class="{node.kind}" transform="translate({box.x},{box.y})">{visual.svg}</g>')
        svg.append(_label(node, box, collapsed=False))

    # Edges
    routes = layout_result.routes if layout_result is not None else {}
    for edge in view.visible_edges():
        points = routes.get(edge.id)
        if not points:
            src = boxes[edge.source]
            dst = boxes[edge.target]
            points = [src.center, dst.center]
        path = " ".join(f"{x},{y}" for x, y in points)
        svg.append(
            f'<polyline id="{edge.id}" points="{path}" fill="none" '
            f'stroke="#555" stroke-width="1.5" marker-end="url(#arrow)"/>'
        )

    # Leaves and folders
    for node in leaves:
        box = boxes[node.id]
        visual = _node_visual(view, node, box)
        css = f"{node.kind} folder" if view.is_collapsed(node) else node.kind
        svg.append(f'<g id="{node.id}" class="{css}" transform="translate({box.x},{box.y})">{visual.svg}</g>')
        svg.append(_label(node, box, collapsed=view.is_collapsed(node)))

    svg.append("</svg>")
    return "\n".join(svg)
