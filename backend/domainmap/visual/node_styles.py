"""
Node styles - turn a node into an SVG fragment.

Every style offers the same three capabilities, so a renderer never needs to
know which concrete style it holds:
- produce_visual(node) -> Visual
- can_reuse_visual(old, node) -> bool
- update_visual(old, node) -> Visual
"""

from dataclasses import dataclass
from html import escape
from typing import Protocol


@dataclass(frozen=True)
class Visual:
    svg: str
    width: float
    height: float
    fingerprint: tuple


class NodeStyle(Protocol):
    def produce_visual(self, node) -> Visual:
        ...

    def can_reuse_visual(self, old: Visual, node) -> bool:
        ...

    def update_visual(self, old: Visual, node) -> Visual:
        ...


class _ReusableStyle:
    """Reuse the old visual while the node's box and the style properties are unchanged."""

    def _fingerprint(self, node) -> tuple:
        return (node.geometry.width, node.geometry.height) + self._props()

    def _props(self) -> tuple:
        return ()

    def can_reuse_visual(self, old: Visual, node) -> bool:
        return old is not None and old.fingerprint == self._fingerprint(node)

    def update_visual(self, old: Visual, node) -> Visual:
        if self.can_reuse_visual(old, node):
            return old
        return self.produce_visual(node)


class ShapeNodeStyle(_ReusableStyle):
    def __init__(self, fill: str, stroke: str, shape: str = "rectangle", stroke_width: float = 1):
        self.fill = fill
        self.stroke = stroke
        self.shape = shape
        self.stroke_width = stroke_width

    def _props(self) -> tuple:
        return (self.shape, self.fill, self.stroke, self.stroke_width)

    def produce_visual(self, node) -> Visual:
        w = node.geometry.width
        h = node.geometry.height
        rx = 6 if self.shape == "rounded_rect" else 0
        svg = (
            f'<rect width="{w}" height="{h}" rx="{rx}" ry="{rx}" '
            f'fill="{self.fill}" stroke="{self.stroke}" stroke-width="{self.stroke_width}"/>'
        )
        return Visual(svg=svg, width=w, height=h, fingerprint=self._fingerprint(node))


class GroupNodeStyle(_ReusableStyle):
    """Container box with a header band; the label sits north-west."""

    HEADER_HEIGHT = 20

    def __init__(self, stroke: str, content_area_fill: str, stroke_width: float = 1):
        self.stroke = stroke
        self.content_area_fill = content_area_fill
        self.stroke_width = stroke_width

    def _props(self) -> tuple:
        return (self.stroke, self.content_area_fill, self.stroke_width)

    def produce_visual(self, node) -> Visual:
        w = node.geometry.width
        h = node.geometry.height
        header = min(self.HEADER_HEIGHT, h)
        svg = (
            f'<rect width="{w}" height="{h}" fill="{self.content_area_fill}" '
            f'stroke="{self.stroke}" stroke-width="{self.stroke_width}"/>'
            f'<rect width="{w}" height="{header}" fill="{self.stroke}" fill-opacity="0.15" stroke="none"/>'
        )
        return Visual(svg=svg, width=w, height=h, fingerprint=self._fingerprint(node))


class PathNodeStyle(_ReusableStyle):
    """Arbitrary SVG path glyph drawn into a box the size of the node."""

    SVG_NS = "http://www.w3.org/2000/svg"

    def __init__(self, path_data: str, fill_color: str, stroke_color: str = "black", stroke_width: float = 1):
        self.path_data = path_data
        self.fill_color = fill_color
        self.stroke_color = stroke_color
        self.stroke_width = stroke_width

    def _props(self) -> tuple:
        return (self.path_data, self.fill_color, self.stroke_color, self.stroke_width)

    def produce_visual(self, node) -> Visual:
        w = node.geometry.width
        h = node.geometry.height
        svg = (
            f'<svg xmlns="{self.SVG_NS}" width="{w}" height="{h}" viewBox="0 0 {w} {h}">'
            f'<path d="{escape(self.path_data, quote=True)}" fill="{self.fill_color}" '
            f'stroke="{self.stroke_color}" stroke-width="{self.stroke_width}"/>'
            f'</svg>'
        )
        return Visual(svg=svg, width=w, height=h, fingerprint=self._fingerprint(node))
